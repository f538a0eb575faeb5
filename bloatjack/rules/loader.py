"""
Loading rule files into an immutable RuleSet
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from ..errors import DuplicateRuleError, RuleLoadError
from .models import Rule, RuleSet

logger = logging.getLogger(__name__)

BUNDLED_RULES_DIR = Path(__file__).parent / "data"
RULE_FILE_SUFFIXES = (".yml", ".yaml")


def load_rules_from_file(file_path: Union[str, Path]) -> List[Rule]:
    """Load rules from a single YAML file"""
    path = Path(file_path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise RuleLoadError(f"cannot read rule file: {e}", path.name)
    except yaml.YAMLError as e:
        raise RuleLoadError(f"invalid YAML: {e}", path.name)

    if data is None:
        return []

    # Rule file format with a top-level `rules:` list, or a bare list
    if isinstance(data, dict):
        if "rules" not in data:
            raise RuleLoadError("missing top-level 'rules' list", path.name)
        entries = data["rules"] or []
    elif isinstance(data, list):
        entries = data
    else:
        raise RuleLoadError("expected a mapping or a list of rules", path.name)

    rules = []
    seen: Dict[str, bool] = {}
    for index, rule_data in enumerate(entries):
        if not isinstance(rule_data, dict):
            raise RuleLoadError(f"rule #{index + 1} is not a mapping", path.name)
        try:
            rule = Rule.model_validate(rule_data)
        except ValidationError as e:
            raise RuleLoadError(f"invalid rule #{index + 1}: {e}", path.name)

        if rule.id in seen:
            raise DuplicateRuleError(rule.id, path.name)
        seen[rule.id] = True
        rules.append(rule)

    logger.debug("Loaded %d rules from %s", len(rules), path)
    return rules


def build_rule_set(rules_by_source: Dict[str, List[Rule]], version: str = "") -> RuleSet:
    """Combine rules from several sources, failing fast on duplicate ids"""
    origin: Dict[str, str] = {}
    combined: List[Rule] = []

    for source, rules in rules_by_source.items():
        for rule in rules:
            if rule.id in origin:
                raise DuplicateRuleError(rule.id, source, origin[rule.id])
            origin[rule.id] = source
            combined.append(rule)

    return RuleSet(version=version, rules=tuple(combined))


def load_rules_from_directory(directory: Union[str, Path], version: Optional[str] = None) -> RuleSet:
    """Load all YAML rule files from a directory, in file-name order"""
    rules_path = Path(directory)
    if not rules_path.is_dir():
        raise RuleLoadError(f"Rules directory not found: {directory}")

    rule_files = sorted(
        p for p in rules_path.iterdir()
        if p.is_file() and p.suffix in RULE_FILE_SUFFIXES
    )

    rules_by_source = {p.name: load_rules_from_file(p) for p in rule_files}

    if version is None:
        version = read_version_file(rules_path) or ""

    return build_rule_set(rules_by_source, version)


def read_version_file(directory: Union[str, Path]) -> Optional[str]:
    """Read a rule directory's VERSION file, None when absent"""
    version_file = Path(directory) / "VERSION"
    if not version_file.is_file():
        return None
    return version_file.read_text().strip()


def get_ruleset_version() -> str:
    """Version of the bundled rule set"""
    version = read_version_file(BUNDLED_RULES_DIR)
    if version is None:
        raise RuleLoadError("bundled VERSION file is missing")
    return version


def load_bundled_rules() -> RuleSet:
    """Load the rule set shipped with the package"""
    return load_rules_from_directory(BUNDLED_RULES_DIR)
