"""
Runtime metrics collection from running containers
"""

from .metrics import build_observed_stats, calculate_cpu_percent, calculate_memory_usage_mb
from .models import CollectionResult, ContainerRef, ObservedStats
from .runtime import DockerRuntimeClient, RuntimeClient
from .stats import StatsCollector
from .taskgroup import TaskGroup

__all__ = [
    "build_observed_stats",
    "calculate_cpu_percent",
    "calculate_memory_usage_mb",
    "CollectionResult",
    "ContainerRef",
    "ObservedStats",
    "DockerRuntimeClient",
    "RuntimeClient",
    "StatsCollector",
    "TaskGroup",
]
