"""
Test cases for runtime stats collection
"""

import threading
import time

import pytest

from bloatjack.collector.metrics import (
    MIB,
    build_observed_stats,
    calculate_cpu_percent,
    calculate_memory_usage_mb,
    online_cpu_count,
)
from bloatjack.collector.models import ContainerRef
from bloatjack.collector.stats import StatsCollector
from bloatjack.collector.taskgroup import DeadlineExpired, TaskCancelled, TaskGroup
from bloatjack.errors import ContainerFetchError, RuntimeUnavailableError


def stats_payload(container_id, usage_mb=500, cache_mb=100, max_usage_mb=700):
    memory = {"usage": usage_mb * MIB, "stats": {"cache": cache_mb * MIB}}
    if max_usage_mb is not None:
        memory["max_usage"] = max_usage_mb * MIB
    return {
        "id": container_id,
        "name": f"/{container_id}",
        "memory_stats": memory,
        "cpu_stats": {
            "cpu_usage": {"total_usage": 1200},
            "system_cpu_usage": 2000,
            "online_cpus": 4,
        },
        "precpu_stats": {
            "cpu_usage": {"total_usage": 1000},
            "system_cpu_usage": 1000,
        },
    }


def inspect_payload(container_id, memory_limit_mb=1024):
    return {
        "Id": container_id,
        "Name": f"/{container_id}",
        "HostConfig": {"Memory": memory_limit_mb * MIB},
    }


class FakeRuntime:
    """In-memory RuntimeClient"""

    def __init__(self, names, failing=(), delay=0.0):
        self.containers = [ContainerRef(id=f"{name}-id-0000000000", name=name) for name in names]
        self.failing = set(failing)
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def _name(self, container_id):
        return container_id.split("-id-")[0]

    def list_running(self):
        return list(self.containers)

    def stats(self, container_id):
        with self._lock:
            self.calls.append(("stats", container_id))
        if self.delay:
            time.sleep(self.delay)
        if self._name(container_id) in self.failing:
            raise ConnectionError("connection reset")
        return stats_payload(container_id)

    def inspect(self, container_id):
        with self._lock:
            self.calls.append(("inspect", container_id))
        payload = inspect_payload(container_id)
        payload["Name"] = "/" + self._name(container_id)
        return payload


class TestMetrics:
    """Test the memory and CPU formulas"""

    def test_memory_excludes_cache(self):
        memory = {"usage": 500 * MIB, "stats": {"cache": 100 * MIB}}
        assert calculate_memory_usage_mb(memory) == 400.0

    def test_memory_without_cache(self):
        assert calculate_memory_usage_mb({"usage": 256 * MIB}) == 256.0

    def test_cpu_percent(self):
        precpu = {"cpu_usage": {"total_usage": 100}, "system_cpu_usage": 1000}
        cpu = {"cpu_usage": {"total_usage": 300}, "system_cpu_usage": 2000, "online_cpus": 4}

        assert calculate_cpu_percent(precpu, cpu) == 80.0

    def test_cpu_percent_zero_deltas(self):
        same = {"cpu_usage": {"total_usage": 100}, "system_cpu_usage": 1000, "online_cpus": 2}
        assert calculate_cpu_percent(same, same) == 0.0

    def test_cpu_percent_first_sample(self):
        """An empty precpu frame with no system delta reports zero"""
        cpu = {"cpu_usage": {"total_usage": 300}, "online_cpus": 4}
        assert calculate_cpu_percent({}, cpu) == 0.0

    def test_online_cpus_fallbacks(self):
        assert online_cpu_count({"online_cpus": 8}) == 8
        assert online_cpu_count({"cpu_usage": {"percpu_usage": [1, 2, 3]}}) == 3
        assert online_cpu_count({}) == 1

    def test_build_observed_stats(self):
        observed = build_observed_stats("abc", stats_payload("abc"), inspect_payload("abc", 2048))

        assert observed.container_id == "abc"
        assert observed.container_name == "abc"
        assert observed.memory_usage_mb == 400.0
        assert observed.memory_max_used_mb == 700.0
        assert observed.memory_limit_mb == 2048.0
        assert observed.cpu_usage_percent == 80.0

    def test_missing_max_usage_falls_back_to_usage(self):
        payload = stats_payload("abc", max_usage_mb=None)
        observed = build_observed_stats("abc", payload, inspect_payload("abc"))

        assert observed.memory_max_used_mb == observed.memory_usage_mb

    def test_unlimited_container(self):
        observed = build_observed_stats("abc", stats_payload("abc"), {"HostConfig": {"Memory": 0}})
        assert observed.memory_limit_mb == 0.0


class TestTaskGroup:
    """Test the fan-out/fan-in helper"""

    def test_collects_every_result(self):
        with TaskGroup() as group:
            group.spawn_all(lambda n: n * 2, [1, 2, 3])
            results = sorted(f.result() for f in group.as_completed(timeout=5))

        assert results == [2, 4, 6]

    def test_deadline_cancels_group(self):
        with TaskGroup(name="slow") as group:
            group.spawn(time.sleep, 0.3)
            with pytest.raises(DeadlineExpired) as exc_info:
                list(group.as_completed(timeout=0.05))

            assert exc_info.value.pending == 1
            assert group.cancelled

    def test_checkpoint_after_cancel(self):
        group = TaskGroup()
        group.checkpoint()
        group.cancel()
        with pytest.raises(TaskCancelled):
            group.checkpoint()

    def test_no_task_outlives_group(self):
        finished = []

        def work():
            time.sleep(0.1)
            finished.append(True)

        with TaskGroup() as group:
            group.spawn(work)
        assert finished == [True]

    def test_max_workers_bounds_concurrency(self):
        running = []
        peak = []
        lock = threading.Lock()

        def work(_):
            with lock:
                running.append(1)
                peak.append(len(running))
            time.sleep(0.02)
            with lock:
                running.pop()

        with TaskGroup(max_workers=2) as group:
            group.spawn_all(work, list(range(6)))
            for future in group.as_completed(timeout=5):
                future.result()

        assert max(peak) <= 2


class TestStatsCollector:
    """Test concurrent collection against a fake runtime"""

    def test_collects_all_containers(self):
        runtime = FakeRuntime(["app_web_1", "app_db_1", "app_cache_1"])
        result = StatsCollector(runtime).collect(timeout=5)

        assert sorted(s.container_name for s in result.snapshots) == ["app_cache_1", "app_db_1", "app_web_1"]
        assert result.warnings == []
        assert result.complete
        assert result.containers_listed == 3

    def test_partial_failure(self):
        """One broken container yields N-1 snapshots and one warning naming it"""
        runtime = FakeRuntime(["web", "db", "cache", "worker"], failing=["db"])
        result = StatsCollector(runtime).collect(timeout=5)

        assert len(result.snapshots) == 3
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert isinstance(warning, ContainerFetchError)
        assert warning.container_name == "db"
        assert "db" in str(warning)
        assert isinstance(warning.cause, ConnectionError)
        assert not result.deadline_exceeded

    def test_no_running_containers(self):
        result = StatsCollector(FakeRuntime([])).collect(timeout=1)

        assert result.snapshots == []
        assert result.warnings == []
        assert result.complete

    def test_deadline_returns_partial_result(self):
        runtime = FakeRuntime(["slow-a", "slow-b"], delay=0.5)

        start = time.monotonic()
        result = StatsCollector(runtime).collect(timeout=0.1)
        elapsed = time.monotonic() - start

        assert result.deadline_exceeded
        assert result.deadline_error.pending == 2
        assert result.deadline_error.collected == 0
        assert result.snapshots == []
        # in-flight stats calls are joined, follow-up inspect calls are cancelled
        assert elapsed < 2
        assert not any(call[0] == "inspect" for call in runtime.calls)

    def test_deadline_joins_in_flight_and_cancels_queued(self):
        """The fetch already running finishes; queued fetches never start"""
        runtime = FakeRuntime(["a", "b", "c"], delay=0.3)

        start = time.monotonic()
        result = StatsCollector(runtime, max_workers=1).collect(timeout=0.1)
        elapsed = time.monotonic() - start

        assert result.deadline_exceeded
        assert elapsed >= 0.3
        assert [call for call in runtime.calls if call[0] == "stats"] == [("stats", "a-id-0000000000")]

    def test_listing_failure_propagates(self):
        class DownRuntime(FakeRuntime):
            def list_running(self):
                raise RuntimeUnavailableError("daemon down")

        with pytest.raises(RuntimeUnavailableError):
            StatsCollector(DownRuntime([])).collect()

    def test_fetch_wraps_errors(self):
        runtime = FakeRuntime(["db"], failing=["db"])
        collector = StatsCollector(runtime)

        with pytest.raises(ContainerFetchError):
            collector.fetch(runtime.containers[0])

    def test_bounded_workers(self):
        runtime = FakeRuntime([f"svc{i}" for i in range(5)])
        result = StatsCollector(runtime, max_workers=2).collect(timeout=5)

        assert len(result.snapshots) == 5
