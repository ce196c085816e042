"""
Bounded worker pool for per-row / per-voucher work.

Contract:
    ``run_bounded(fn, items, max_workers, timeout)`` runs ``fn`` over every
    item on at most ``max_workers`` threads and returns one ``TaskOutcome``
    per item, in input order.  It returns only once every item has finished,
    failed, or timed out (barrier).

    ``timeout`` bounds each task from the moment it actually starts, so time
    spent queued behind other tasks is not charged to it.  A task that cannot
    even start within ``timeout`` (all workers stuck) is cancelled and
    reported as timed out.  Timed-out tasks are abandoned, not killed: their
    threads finish in the background and their results are discarded.

Non-goals:
    - No retry.  Callers decide what a failed outcome means.
    - No shared state between tasks; ``fn`` must be thread-safe.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

from voucher_kernel.logging_config import get_logger

logger = get_logger("batch.pool")

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class TaskOutcome(Generic[R]):
    """Result of one pooled task."""

    index: int
    value: R | None = None
    error: Exception | None = None
    timed_out: bool = False
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and not self.timed_out


class _Tracked:
    """Start bookkeeping for one submitted task."""

    __slots__ = ("started", "started_at")

    def __init__(self):
        self.started = threading.Event()
        self.started_at = 0.0


def run_bounded(
    fn: Callable[[T], R],
    items: Iterable[T],
    max_workers: int,
    timeout: float | None = None,
    thread_name_prefix: str = "voucher-worker",
) -> list[TaskOutcome[R]]:
    """Run ``fn`` over ``items`` with bounded concurrency; see module docstring."""
    work = list(items)
    if not work:
        return []
    if max_workers < 1:
        raise ValueError(f"max_workers must be >= 1, got {max_workers}")

    tracking = [_Tracked() for _ in work]

    def _run(index: int, item: T) -> R:
        tracking[index].started_at = time.monotonic()
        tracking[index].started.set()
        return fn(item)

    executor = ThreadPoolExecutor(
        max_workers=min(max_workers, len(work)),
        thread_name_prefix=thread_name_prefix,
    )
    abandoned = 0
    try:
        futures = [executor.submit(_run, i, item) for i, item in enumerate(work)]
        outcomes = []
        for index, future in enumerate(futures):
            outcome = _collect(index, future, tracking[index], timeout)
            if outcome.timed_out:
                abandoned += 1
            outcomes.append(outcome)
    finally:
        # Abandoned tasks must not hold up the barrier.
        executor.shutdown(wait=abandoned == 0, cancel_futures=True)

    if abandoned:
        logger.warning(
            "pool_tasks_timed_out",
            extra={"timed_out": abandoned, "total": len(work), "timeout": timeout},
        )
    return outcomes


def _collect(
    index: int,
    future: Future,
    tracked: _Tracked,
    timeout: float | None,
) -> TaskOutcome:
    if timeout is not None and not tracked.started.wait(timeout):
        if future.cancel():
            return TaskOutcome(index=index, timed_out=True)
        tracked.started.wait()

    remaining = None
    if timeout is not None:
        remaining = max(0.0, tracked.started_at + timeout - time.monotonic())

    try:
        value = future.result(timeout=remaining)
    except TimeoutError:
        if not future.done():
            return TaskOutcome(
                index=index, timed_out=True, duration_ms=_elapsed_ms(tracked),
            )
        # The task itself raised TimeoutError.
        return TaskOutcome(
            index=index, error=future.exception(), duration_ms=_elapsed_ms(tracked),
        )
    except Exception as exc:
        return TaskOutcome(index=index, error=exc, duration_ms=_elapsed_ms(tracked))
    return TaskOutcome(index=index, value=value, duration_ms=_elapsed_ms(tracked))


def _elapsed_ms(tracked: _Tracked) -> int:
    if not tracked.started.is_set():
        return 0
    return int((time.monotonic() - tracked.started_at) * 1000)
