"""
Schema mapping for docker-compose files and optimization results
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _key_value_map(value: Any) -> Dict[str, str]:
    """Accept both `{KEY: value}` and `["KEY=value"]` compose forms"""
    if value is None:
        return {}
    if isinstance(value, dict):
        return {str(k): _stringify(v) for k, v in value.items()}
    if isinstance(value, list):
        result = {}
        for item in value:
            key, _, val = str(item).partition("=")
            result[key] = val
        return result
    return value


class ResourceValues(BaseModel):
    """CPU and memory values"""
    cpus: Optional[str] = Field(None, description="CPU limit, e.g. '0.5'")
    memory: Optional[str] = Field(None, description="Memory limit, e.g. '512M'")

    @field_validator("cpus", "memory", mode="before")
    @classmethod
    def _to_str(cls, value):
        return None if value is None else _stringify(value)


class ResourceConfig(BaseModel):
    """Resource limits and reservations"""
    limits: Optional[ResourceValues] = None
    reservations: Optional[ResourceValues] = None


class DeployConfig(BaseModel):
    """Deploy section of a service"""
    resources: Optional[ResourceConfig] = None


class ComposeService(BaseModel):
    """A single service in a compose file"""
    image: str = Field("", description="Image reference")
    container_name: Optional[str] = Field(None, description="Fixed container name")
    environment: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)
    deploy: Optional[DeployConfig] = None
    mem_limit: Optional[str] = Field(None, description="Legacy top-level memory limit")
    cpus: Optional[str] = Field(None, description="Legacy top-level CPU limit")

    @field_validator("environment", "labels", mode="before")
    @classmethod
    def _normalize_map(cls, value):
        return _key_value_map(value)

    @field_validator("mem_limit", "cpus", mode="before")
    @classmethod
    def _to_str(cls, value):
        return None if value is None else _stringify(value)

    @field_validator("image", mode="before")
    @classmethod
    def _image_to_str(cls, value):
        return _stringify(value)

    @property
    def limits(self) -> Optional[ResourceValues]:
        if self.deploy and self.deploy.resources:
            return self.deploy.resources.limits
        return None


class ComposeFile(BaseModel):
    """A docker-compose.yml file"""
    version: Optional[str] = None
    services: Dict[str, ComposeService] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def _version_to_str(cls, value):
        return None if value is None else _stringify(value)

    @field_validator("services", mode="before")
    @classmethod
    def _empty_services(cls, value):
        if value is None:
            return {}
        # `service:` with no body is valid YAML and means an empty service
        if isinstance(value, dict):
            return {k: (v if v is not None else {}) for k, v in value.items()}
        return value


class OptimizationResult(BaseModel):
    """Optimization suggestions and static warnings for a service"""
    service_name: str = Field(..., description="Service name")
    current_state: Dict[str, str] = Field(default_factory=dict, description="Current values of suggested keys")
    suggestions: Dict[str, str] = Field(default_factory=dict, description="Suggested config changes")
    env_changes: Dict[str, str] = Field(default_factory=dict, description="Suggested environment changes")
    static_warnings: List[str] = Field(default_factory=list, description="Static analysis warnings")
    priority: int = Field(0, description="Priority of the triggered rule")
    rule_id: str = Field("", description="Triggered rule")
    action: Optional[str] = Field(None, description="Action required")

    @property
    def has_runtime_suggestions(self) -> bool:
        return bool(self.suggestions or self.env_changes or self.action)
