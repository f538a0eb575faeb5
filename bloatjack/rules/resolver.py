"""
Priority-based conflict resolution across candidate patches
"""

from typing import Dict, Iterable, List

from .models import Patch


def rank_candidates(candidates: Iterable[Patch]) -> List[Patch]:
    """Order candidates by priority, highest first.

    Equal priorities are ordered by rule id so the outcome never depends
    on the order rules were declared or loaded.
    """
    return sorted(candidates, key=lambda patch: (-patch.priority, patch.rule_id))


def resolve_patches(candidates: Iterable[Patch]) -> Patch:
    """Merge candidate patches into a single patch.

    The top-ranked candidate supplies action, rule id and priority.
    Lower-ranked candidates can only add Set/SetEnv keys that are not yet
    present; they never override and never contribute an action.
    """
    ranked = rank_candidates(candidates)
    if not ranked:
        return Patch()

    base = ranked[0]
    merged_set: Dict[str, str] = {}
    merged_env: Dict[str, str] = {}

    for patch in ranked:
        for key, value in patch.set.items():
            merged_set.setdefault(key, value)
        for key, value in patch.set_env.items():
            merged_env.setdefault(key, value)

    return Patch(
        service_name=base.service_name,
        set=merged_set,
        set_env=merged_env,
        action=base.action,
        priority=base.priority,
        rule_id=base.rule_id,
    )
