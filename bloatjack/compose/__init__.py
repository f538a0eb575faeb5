"""
Compose file handling: parsing, static checks and rule application
"""

from .models import ComposeFile, ComposeService, OptimizationResult
from .optimizer import apply_rules, facts_for_services, merge_results, static_analysis
from .parser import extract_services, parse_compose_file

__all__ = [
    "ComposeFile",
    "ComposeService",
    "OptimizationResult",
    "apply_rules",
    "facts_for_services",
    "merge_results",
    "static_analysis",
    "extract_services",
    "parse_compose_file",
]
