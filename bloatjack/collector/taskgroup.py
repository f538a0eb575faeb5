"""
Thread-based task group for fan-out/fan-in work with a shared deadline
"""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Iterator, List, Optional, Set

logger = logging.getLogger(__name__)


class TaskCancelled(Exception):
    """Raised inside a task that noticed the group was cancelled"""


class DeadlineExpired(Exception):
    """The group's deadline passed before every task finished"""

    def __init__(self, pending: int):
        self.pending = pending
        super().__init__(f"{pending} task(s) still pending at deadline")


class TaskGroup:
    """Spawn independent units of work and collect them as they finish.

    Tasks run on a thread pool sized to the number of tasks unless
    ``max_workers`` bounds it. ``cancel()`` sets a flag tasks check at
    their own boundaries via ``checkpoint()``. Leaving the ``with`` block
    cancels queued tasks and waits for running ones, so no task outlives
    the group.
    """

    def __init__(self, max_workers: Optional[int] = None, name: str = "task"):
        self.max_workers = max_workers
        self.name = name
        self._cancel_event = threading.Event()
        self._futures: List[Future] = []
        self._executor: Optional[ThreadPoolExecutor] = None

    def __enter__(self) -> "TaskGroup":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=self.cancelled)
            self._executor = None

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Ask every task to stop at its next checkpoint"""
        self._cancel_event.set()

    def checkpoint(self) -> None:
        """Called by tasks between steps; raises TaskCancelled once cancelled"""
        if self._cancel_event.is_set():
            raise TaskCancelled()

    def spawn(self, fn: Callable[..., Any], *args: Any) -> Future:
        """Schedule one task; it is skipped if the group is already cancelled"""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix=self.name
            )

        def run() -> Any:
            self.checkpoint()
            return fn(*args)

        future = self._executor.submit(run)
        self._futures.append(future)
        return future

    def spawn_all(self, fn: Callable[..., Any], items: List[Any]) -> List[Future]:
        """Schedule ``fn(item)`` for every item on a pool of matching size"""
        if self._executor is None and items:
            workers = self.max_workers or len(items)
            self._executor = ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix=self.name
            )
        return [self.spawn(fn, item) for item in items]

    def as_completed(self, timeout: Optional[float] = None) -> Iterator[Future]:
        """Yield futures as they finish.

        Raises DeadlineExpired once ``timeout`` seconds have passed and
        cancels the group; futures yielded before that stay valid.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        pending: Set[Future] = set(self._futures)

        while pending:
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                logger.debug("%s group deadline expired with %d pending", self.name, len(pending))
                self.cancel()
                raise DeadlineExpired(len(pending))

            done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
            for future in done:
                yield future
