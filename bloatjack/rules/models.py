"""
Data models for rules, services, runtime facts, and patches
"""

from typing import Dict, Iterator, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


# A single runtime fact: integer, float or string
FactValue = Union[int, float, str]

# The fact bag consulted by conditions and templates
ServiceStats = Dict[str, FactValue]

WILDCARD = "*"


def _scalar_to_str(value) -> str:
    """Render a YAML scalar the way it was written"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


class Rule(BaseModel):
    """Optimization rule definition"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Unique rule identifier (name@semver)")
    priority: int = Field(0, description="Higher priority wins conflicts")
    match: Dict[str, str] = Field(default_factory=dict, description="Selector: attribute -> value or '*'")
    condition: Optional[str] = Field(None, alias="if", description="Single numeric comparison")
    set: Dict[str, str] = Field(default_factory=dict, description="Config key -> output template")
    set_env: Dict[str, str] = Field(default_factory=dict, description="Env var -> output template")
    action: Optional[str] = Field(None, description="Opaque instruction for the operator")
    note: Optional[str] = Field(None, description="Documentation only")

    @field_validator("match", "set", "set_env", mode="before")
    @classmethod
    def _stringify_values(cls, value):
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(k): _scalar_to_str(v) for k, v in value.items()}
        return value

    @field_validator("condition", "action", "note", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class RuleSet(BaseModel):
    """Immutable collection of rules loaded for one run"""
    model_config = ConfigDict(frozen=True)

    version: str = Field("", description="Rule set version")
    rules: Tuple[Rule, ...] = Field(default_factory=tuple, description="Rules in declaration order")

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def get_rule_by_id(self, rule_id: str) -> Optional[Rule]:
        """Get rule by ID"""
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None


class Service(BaseModel):
    """A compose service with its classification and side-channel attributes"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Service name, unique within a scan")
    kind: str = Field("", description="Classification such as db, cache, web")
    metadata: Dict[str, str] = Field(default_factory=dict, description="engine, image, limits, labels")


class Patch(BaseModel):
    """Resolved changes for one service"""
    model_config = ConfigDict(frozen=True)

    service_name: str = Field("", description="Service the patch targets")
    set: Dict[str, str] = Field(default_factory=dict, description="Config changes")
    set_env: Dict[str, str] = Field(default_factory=dict, description="Environment changes")
    action: Optional[str] = Field(None, description="Action of the winning rule only")
    priority: int = Field(0, description="Priority of the winning rule")
    rule_id: str = Field("", description="Winning rule")

    @property
    def is_empty(self) -> bool:
        """True when the patch recommends nothing"""
        return not self.set and not self.set_env and not self.action
