"""
Concurrent stats collection across all running containers
"""

import logging
from typing import Optional

from ..errors import ContainerFetchError, StatsDeadlineExceeded
from .metrics import build_observed_stats
from .models import CollectionResult, ContainerRef, ObservedStats
from .runtime import RuntimeClient
from .taskgroup import DeadlineExpired, TaskCancelled, TaskGroup

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class StatsCollector:
    """Fetches one metrics snapshot per running container, in parallel"""

    def __init__(self, runtime: RuntimeClient, max_workers: Optional[int] = None):
        self.runtime = runtime
        self.max_workers = max_workers

    def fetch(self, container: ContainerRef, group: Optional[TaskGroup] = None) -> ObservedStats:
        """Collect stats for a single container.

        Any failure is wrapped in ContainerFetchError naming the container.
        """
        try:
            stats_payload = self.runtime.stats(container.id)
            if group is not None:
                group.checkpoint()
            inspect_payload = self.runtime.inspect(container.id)
            return build_observed_stats(container.id, stats_payload, inspect_payload)
        except TaskCancelled:
            raise
        except Exception as e:
            raise ContainerFetchError(container.id, container.name, e) from e

    def collect(self, timeout: float = DEFAULT_TIMEOUT) -> CollectionResult:
        """Collect stats for every running container within ``timeout`` seconds.

        Per-container failures land in ``warnings``. When the deadline
        passes, whatever was collected so far is returned with
        ``deadline_error`` set. Fetches already in flight are joined before
        returning, so the call can overrun ``timeout`` by up to one Docker
        request timeout (``BLOATJACK_DOCKER_TIMEOUT``); queued fetches are
        cancelled. Listing the containers is not covered by
        the per-container error handling: a runtime that cannot be reached
        raises.
        """
        containers = self.runtime.list_running()
        result = CollectionResult(containers_listed=len(containers))
        if not containers:
            return result

        logger.debug("Fetching stats for %d running containers", len(containers))

        with TaskGroup(max_workers=self.max_workers, name="stats") as group:
            group.spawn_all(lambda c: self.fetch(c, group), containers)
            try:
                for future in group.as_completed(timeout=timeout):
                    try:
                        result.snapshots.append(future.result())
                    except ContainerFetchError as e:
                        logger.warning("%s", e)
                        result.warnings.append(e)
            except DeadlineExpired as e:
                result.deadline_error = StatsDeadlineExceeded(
                    timeout, len(result.snapshots), e.pending
                )
                logger.warning("%s", result.deadline_error)

        logger.debug("Collected %d snapshots, %d errors",
                     len(result.snapshots), len(result.warnings))
        return result
