"""
Reporting and output formatting
"""

from .console import ConsoleReporter, format_results
from .json_reporter import JSONReporter

__all__ = ["ConsoleReporter", "JSONReporter", "format_results"]
