"""
Rule engine for evaluating optimization rules against services and runtime facts
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from ..errors import ConditionError, InterpolationError
from .conditions import evaluate
from .interpolation import ExpressionEvaluator, interpolate_map
from .matcher import matches
from .models import Patch, Rule, RuleSet, Service, ServiceStats
from .resolver import resolve_patches

logger = logging.getLogger(__name__)


def build_candidate(rule: Rule, service: Service, stats: ServiceStats,
                    evaluator: Optional[ExpressionEvaluator] = None) -> Optional[Patch]:
    """Run one rule against a service; None when the rule drops out"""
    if not matches(rule.match, service):
        return None

    if rule.condition:
        try:
            if not evaluate(rule.condition, stats):
                logger.debug("Rule %s condition not met for service %s", rule.id, service.name)
                return None
        except ConditionError as e:
            logger.debug("Rule %s condition evaluation error for service %s: %s",
                         rule.id, service.name, e)
            return None

    try:
        interpolated_set = interpolate_map(rule.set, stats, evaluator)
        interpolated_env = interpolate_map(rule.set_env, stats, evaluator)
    except InterpolationError as e:
        logger.debug("Skipping rule %s for service %s due to interpolation error: %s",
                     rule.id, service.name, e)
        return None

    return Patch(
        service_name=service.name,
        set=interpolated_set,
        set_env=interpolated_env,
        action=rule.action,
        priority=rule.priority,
        rule_id=rule.id,
    )


def apply(rules: Iterable[Rule], service: Service, stats: Optional[ServiceStats] = None,
          evaluator: Optional[ExpressionEvaluator] = None) -> Patch:
    """Evaluate all rules for a service and return the resolved patch.

    Pure function of its inputs: rules that do not match, fail their
    condition or fail to interpolate are dropped, the remaining candidates
    are resolved by priority. No match yields an empty Patch.
    """
    stats = stats or {}
    candidates = []

    for rule in rules:
        candidate = build_candidate(rule, service, stats, evaluator)
        if candidate is not None:
            candidates.append(candidate)

    if not candidates:
        return Patch(service_name=service.name)
    return resolve_patches(candidates)


class RuleEngine:
    """Engine holding one immutable rule set for the duration of a run"""

    def __init__(self, rule_set: RuleSet, evaluator: Optional[ExpressionEvaluator] = None):
        self.rule_set = rule_set
        self.evaluator = evaluator

    @property
    def rules(self) -> List[Rule]:
        return list(self.rule_set.rules)

    def apply(self, service: Service, stats: Optional[ServiceStats] = None) -> Patch:
        """Resolve the patch for a single service"""
        return apply(self.rule_set.rules, service, stats, self.evaluator)

    def apply_all(self, services: Iterable[Service],
                  stats_by_service: Optional[Mapping[str, ServiceStats]] = None) -> Dict[str, Patch]:
        """Resolve patches for every service, keyed by service name"""
        stats_by_service = stats_by_service or {}
        return {
            service.name: self.apply(service, stats_by_service.get(service.name))
            for service in services
        }

    def get_statistics(self) -> Dict[str, object]:
        """Get statistics about loaded rules"""
        kind_counts: Dict[str, int] = {}
        for rule in self.rule_set.rules:
            kind = rule.match.get("kind", "*")
            kind_counts[kind] = kind_counts.get(kind, 0) + 1

        return {
            "total_rules": len(self.rule_set),
            "version": self.rule_set.version,
            "kind_counts": kind_counts,
            "conditional_rules": sum(1 for r in self.rule_set.rules if r.condition),
            "rule_ids": [rule.id for rule in self.rule_set.rules],
        }
