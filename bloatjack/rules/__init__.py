"""
Rule engine: matching, conditions, interpolation and patch resolution
"""

from .engine import RuleEngine, apply
from .loader import load_bundled_rules, load_rules_from_directory, load_rules_from_file
from .models import Patch, Rule, RuleSet, Service, ServiceStats

__all__ = [
    "RuleEngine",
    "apply",
    "load_bundled_rules",
    "load_rules_from_directory",
    "load_rules_from_file",
    "Patch",
    "Rule",
    "RuleSet",
    "Service",
    "ServiceStats",
]
