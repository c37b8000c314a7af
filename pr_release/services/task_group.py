"""Bounded fan-out with a shared cancellation scope.

Every fan-out point of a resolution (per-number fetch, per-SHA fallback,
closed-PR pagination) runs as one task group: at most ``max_workers`` tasks in
flight, the first failure cancels the tasks that have not started and sets the
group's cancel event, and the group re-raises that first error. Results are
returned in submission order, never completion order.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Iterable, TypeVar

from pr_release.errors import ResolutionTimeoutError

T = TypeVar("T")

LOG = logging.getLogger("pr_release.services.task_group")


class Deadline:
    """Absolute deadline on the monotonic clock; None means no limit."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout
        self._expires_at = None if timeout is None else time.monotonic() + timeout

    @property
    def timeout(self) -> float | None:
        return self._timeout

    def remaining(self) -> float | None:
        """Seconds left (never negative), or None when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self) -> None:
        """Raise ResolutionTimeoutError if the deadline has passed."""
        if self.expired():
            raise ResolutionTimeoutError(f"deadline of {self._timeout}s exceeded")

    def clamp(self, value: float) -> float:
        """Return value limited by the remaining time (for per-call timeouts)."""
        remaining = self.remaining()
        if remaining is None:
            return value
        return min(value, remaining)


class TaskCancelledError(Exception):
    """Raised inside a task that starts after its group was cancelled."""

    pass


class TaskGroup:
    """Run callables concurrently; all-or-nothing with first-error-wins."""

    def __init__(
        self,
        name: str,
        max_workers: int = 8,
        deadline: Deadline | None = None,
    ) -> None:
        self.name = name
        self._max_workers = max(1, max_workers)
        self._deadline = deadline or Deadline()
        self.cancelled = threading.Event()

    def _guard(self, fn: Callable[..., T], *args: Any) -> T:
        if self.cancelled.is_set():
            raise TaskCancelledError(self.name)
        self._deadline.check()
        return fn(*args)

    def map(self, fn: Callable[..., T], items: Iterable[Any]) -> list[T]:
        """Call fn(item) for every item; return results in input order."""
        items = list(items)
        if not items:
            return []
        workers = min(self._max_workers, len(items))
        LOG.debug("Task group %s: %d tasks, %d workers", self.name, len(items), workers)
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"pr-release-{self.name}")
        futures: list[Future] = [executor.submit(self._guard, fn, item) for item in items]
        try:
            done, pending = wait(futures, timeout=self._deadline.remaining(), return_when=FIRST_EXCEPTION)
            failed = [
                f
                for f in futures
                if f in done and f.exception() is not None and not isinstance(f.exception(), TaskCancelledError)
            ]
            if failed:
                self.cancelled.set()
                err = failed[0].exception()
                LOG.debug("Task group %s failed: %s", self.name, err)
                raise err
            if pending:
                # wait() returns with pending work and no failure only when the deadline expired
                self.cancelled.set()
                raise ResolutionTimeoutError(
                    f"task group {self.name}: deadline of {self._deadline.timeout}s exceeded "
                    f"with {len(pending)} tasks outstanding"
                )
            return [future.result() for future in futures]
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
