"""
Exception hierarchy shared by the rule engine, the collector and the CLI
"""

from typing import Optional


class BloatjackError(Exception):
    """Base exception for bloatjack"""


class RuleLoadError(BloatjackError):
    """Rule file could not be read or does not describe valid rules"""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class DuplicateRuleError(RuleLoadError):
    """Two rules in the same rule set share an id"""

    def __init__(self, rule_id: str, source: str, first_source: Optional[str] = None):
        self.rule_id = rule_id
        self.first_source = first_source
        detail = f"duplicate rule id {rule_id}"
        if first_source and first_source != source:
            detail += f" (first defined in {first_source})"
        super().__init__(detail, source)


class ConditionError(BloatjackError):
    """A rule's `if` clause could not be evaluated"""

    def __init__(self, condition: str, reason: str):
        self.condition = condition
        self.reason = reason
        super().__init__(f"{reason}: {condition!r}")


class InterpolationError(BloatjackError):
    """An embedded template expression failed to compile or run"""

    def __init__(self, template: str, expression: str, reason: str):
        self.template = template
        self.expression = expression
        self.reason = reason
        super().__init__(f"failed to evaluate {{{expression}}} in {template!r}: {reason}")


class ContainerFetchError(BloatjackError):
    """Stats or inspection call failed for a single container"""

    def __init__(self, container_id: str, container_name: str, cause: Exception):
        self.container_id = container_id
        self.container_name = container_name
        self.cause = cause
        super().__init__(
            f"failed fetching stats for {container_name} ({container_id[:12]}): {cause}"
        )


class StatsDeadlineExceeded(BloatjackError):
    """The stats batch ran out of time before every container reported"""

    def __init__(self, timeout: float, collected: int, pending: int):
        self.timeout = timeout
        self.collected = collected
        self.pending = pending
        super().__init__(
            f"stats collection timed out after {timeout:g}s "
            f"({collected} collected, {pending} still pending)"
        )


class RuntimeUnavailableError(BloatjackError):
    """The container runtime cannot be reached at all"""


class ComposeFileError(BloatjackError):
    """Compose file could not be read or parsed"""
