"""
Selector matching logic for optimization rules
"""

from typing import Mapping

from .models import Service, WILDCARD


def matches(selector: Mapping[str, str], service: Service) -> bool:
    """Check if a rule's match selector applies to a service"""
    # An empty selector applies to every service
    if not selector:
        return True

    for key, expected in selector.items():
        # Wildcard is satisfied even when the attribute is absent
        if expected == WILDCARD:
            continue

        if key == "kind":
            if service.kind != expected:
                return False
            continue

        actual = service.metadata.get(key)
        if actual is None or actual != expected:
            return False

    return True
