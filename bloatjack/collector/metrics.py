"""
Derivation of memory and CPU figures from raw runtime stats payloads
"""

from typing import Any, Mapping, Optional

from .models import ObservedStats

MIB = 1024 * 1024


def _section(payload: Optional[Mapping[str, Any]], key: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        return {}
    value = payload.get(key)
    return value if isinstance(value, Mapping) else {}


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def calculate_memory_usage_mb(memory_stats: Mapping[str, Any]) -> float:
    """Current memory usage in MiB, excluding page cache when reported"""
    usage = _int(memory_stats.get("usage"))
    breakdown = memory_stats.get("stats")
    if isinstance(breakdown, Mapping) and "cache" in breakdown:
        return (usage - _int(breakdown["cache"])) / MIB
    return usage / MIB


def online_cpu_count(cpu_stats: Mapping[str, Any]) -> int:
    """Cores visible to the container, never zero"""
    online = _int(cpu_stats.get("online_cpus"))
    if online == 0:
        percpu = _section(cpu_stats, "cpu_usage").get("percpu_usage") or []
        online = len(percpu) if isinstance(percpu, list) else 0
    if online == 0:
        online = 1
    return online


def calculate_cpu_percent(precpu_stats: Mapping[str, Any], cpu_stats: Mapping[str, Any]) -> float:
    """CPU usage relative to host CPU time, scaled by online cores"""
    cpu_delta = float(
        _int(_section(cpu_stats, "cpu_usage").get("total_usage"))
        - _int(_section(precpu_stats, "cpu_usage").get("total_usage"))
    )
    system_delta = float(
        _int(cpu_stats.get("system_cpu_usage")) - _int(precpu_stats.get("system_cpu_usage"))
    )

    if system_delta > 0.0 and cpu_delta > 0.0:
        return (cpu_delta / system_delta) * online_cpu_count(cpu_stats) * 100.0
    return 0.0


def build_observed_stats(container_id: str, stats_payload: Mapping[str, Any],
                         inspect_payload: Mapping[str, Any]) -> ObservedStats:
    """Combine a one-shot stats frame and an inspect record"""
    memory_stats = _section(stats_payload, "memory_stats")
    host_config = _section(inspect_payload, "HostConfig")

    name = inspect_payload.get("Name") or stats_payload.get("name") or container_id
    usage_mb = calculate_memory_usage_mb(memory_stats)

    # cgroup v2 does not report max_usage; the current reading is the best peak we have
    if "max_usage" in memory_stats:
        max_used_mb = _int(memory_stats.get("max_usage")) / MIB
    else:
        max_used_mb = usage_mb

    return ObservedStats(
        container_id=stats_payload.get("id") or inspect_payload.get("Id") or container_id,
        container_name=str(name).lstrip("/"),
        memory_usage_mb=usage_mb,
        memory_limit_mb=_int(host_config.get("Memory")) / MIB,
        memory_max_used_mb=max_used_mb,
        cpu_usage_percent=calculate_cpu_percent(
            _section(stats_payload, "precpu_stats"),
            _section(stats_payload, "cpu_stats"),
        ),
    )
