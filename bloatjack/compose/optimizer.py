"""
Static checks, fact mapping and rule application for compose services
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from ..collector.models import ObservedStats
from ..rules.engine import RuleEngine
from ..rules.models import Service, ServiceStats
from .models import ComposeFile, ComposeService, OptimizationResult
from .units import ram_in_mb

logger = logging.getLogger(__name__)

MEMORY_HIGH_THRESHOLD_MB = 1500.0
MEMORY_VERY_HIGH_THRESHOLD_MB = 4000.0


def static_warnings(compose_service: ComposeService) -> List[str]:
    """Check a service declaration for missing or oversized limits"""
    warnings = []
    limits = compose_service.limits

    memory = (limits.memory if limits else None) or compose_service.mem_limit
    if not memory:
        warnings.append("Memory limit not defined.")
    else:
        try:
            memory_mb = ram_in_mb(memory)
        except ValueError:
            logger.debug("Unparseable memory limit %r", memory)
        else:
            if memory_mb > MEMORY_VERY_HIGH_THRESHOLD_MB:
                warnings.append(f"Defined memory limit ('{memory}' ≈ {memory_mb:.0f} MB) seems very high.")
            elif memory_mb > MEMORY_HIGH_THRESHOLD_MB:
                warnings.append(f"Defined memory limit ('{memory}' ≈ {memory_mb:.0f} MB) may be high.")

    cpus = (limits.cpus if limits else None) or compose_service.cpus
    if not cpus:
        warnings.append("CPU limit not defined.")

    # Preserve order, drop duplicates
    return list(dict.fromkeys(warnings))


def static_analysis(compose: ComposeFile) -> Dict[str, OptimizationResult]:
    """Static warnings for every service that has any"""
    results = {}
    for name, compose_service in compose.services.items():
        warnings = static_warnings(compose_service)
        if warnings:
            results[name] = OptimizationResult(service_name=name, static_warnings=warnings)
    return results


def container_matches_service(container_name: str, service_name: str,
                              fixed_name: Optional[str] = None) -> bool:
    """Compose containers are named project_service_N or project-service-N"""
    if container_name == service_name or (fixed_name and container_name == fixed_name):
        return True
    return (
        f"_{service_name}_" in container_name
        or f"-{service_name}-" in container_name
        or container_name.endswith(f"_{service_name}")
        or container_name.endswith(f"-{service_name}")
    )


def stats_to_facts(service_name: str, observed: ObservedStats) -> ServiceStats:
    """Build the fact bag the rule engine consults"""
    return {
        "service_name": service_name,
        "container_id": observed.container_id,
        "container_name": observed.container_name,
        "peak_mem_mb": observed.memory_max_used_mb,
        "avg_mem_mb": observed.memory_usage_mb,
        "current_mem_mb": observed.memory_usage_mb,
        "mem_limit_mb": observed.memory_limit_mb,
        "peak_cpu_percent": observed.cpu_usage_percent,
        "current_cpu_percent": observed.cpu_usage_percent,
    }


def facts_for_services(services: Iterable[Service], snapshots: Iterable[ObservedStats],
                       compose: Optional[ComposeFile] = None) -> Dict[str, ServiceStats]:
    """Map container snapshots back to services.

    The first container matching a service wins; further matches (replicas)
    and containers that match no service are skipped.
    """
    services = list(services)
    facts: Dict[str, ServiceStats] = {}

    for observed in snapshots:
        matched = None
        for service in services:
            fixed_name = None
            if compose is not None and service.name in compose.services:
                fixed_name = compose.services[service.name].container_name
            if container_matches_service(observed.container_name, service.name, fixed_name):
                matched = service.name
                break

        if matched is None:
            logger.info("Could not map container '%s' to a compose service, skipping its stats",
                        observed.container_name)
            continue

        if matched in facts:
            logger.warning("Multiple containers found matching service '%s'. "
                           "Using stats from first match (%s).",
                           matched, facts[matched]["container_name"])
            continue

        facts[matched] = stats_to_facts(matched, observed)

    return facts


def apply_rules(engine: RuleEngine, services: Iterable[Service],
                facts: Mapping[str, ServiceStats]) -> List[OptimizationResult]:
    """Run the rule engine per service; services with nothing to change are skipped"""
    results = []

    for service in services:
        patch = engine.apply(service, facts.get(service.name))
        if patch.is_empty:
            continue

        current_state = {
            key: service.metadata.get(key, "(unknown)") for key in patch.set
        }
        results.append(OptimizationResult(
            service_name=service.name,
            current_state=current_state,
            suggestions=dict(patch.set),
            env_changes=dict(patch.set_env),
            priority=patch.priority,
            rule_id=patch.rule_id,
            action=patch.action,
        ))

    return results


def merge_results(runtime_results: Iterable[OptimizationResult],
                  static_results: Mapping[str, OptimizationResult]) -> List[OptimizationResult]:
    """Attach static warnings to runtime results and keep static-only services"""
    merged: Dict[str, OptimizationResult] = {}

    for result in runtime_results:
        static = static_results.get(result.service_name)
        if static is not None:
            result = result.model_copy(update={
                "static_warnings": result.static_warnings + static.static_warnings
            })
        merged[result.service_name] = result

    for name, static in static_results.items():
        if name not in merged:
            merged[name] = static

    return [merged[name] for name in sorted(merged)]
