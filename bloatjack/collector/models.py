"""
Data models for collected container metrics
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..errors import ContainerFetchError, StatsDeadlineExceeded


class ContainerRef(BaseModel):
    """A running container as listed by the runtime"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Container id")
    name: str = Field("", description="Display name without leading slash")


class ObservedStats(BaseModel):
    """Point-in-time metrics for one container"""
    model_config = ConfigDict(frozen=True)

    container_id: str = Field(..., description="Container id")
    container_name: str = Field(..., description="Often includes the compose project prefix")
    memory_usage_mb: float = Field(0.0, description="Usage minus page cache, MiB")
    memory_limit_mb: float = Field(0.0, description="Declared memory limit, MiB (0 = unlimited)")
    memory_max_used_mb: float = Field(0.0, description="Max observed usage, MiB")
    cpu_usage_percent: float = Field(0.0, description="Usage across all cores, percent of one core")


class CollectionResult(BaseModel):
    """Outcome of one stats batch"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    snapshots: List[ObservedStats] = Field(default_factory=list, description="Successfully collected stats")
    warnings: List[ContainerFetchError] = Field(default_factory=list, description="Per-container failures")
    deadline_error: Optional[StatsDeadlineExceeded] = Field(None, description="Set when the batch timed out")
    containers_listed: int = Field(0, description="Running containers at the start of the batch")

    @property
    def deadline_exceeded(self) -> bool:
        return self.deadline_error is not None

    @property
    def complete(self) -> bool:
        """Every listed container either reported or failed before the deadline"""
        return not self.deadline_exceeded
