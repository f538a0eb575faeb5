"""
bloatjack - measures running containers and recommends resource right-sizing
"""

__version__ = "0.3.4"
