# src/concurrency/bounded.py - v1
"""Bounded-concurrency task runner.

At most ``concurrency`` workers are in flight at any instant. Completion
order is unspecified; every item is attempted exactly once unless
``stop_on_error`` truncates the queue.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

from compforge.concurrency.timeout import with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Worker = Callable[[T, int], Awaitable[R]]

DEFAULT_CONCURRENCY = 5
DEFAULT_TASK_TIMEOUT_S = 30.0


@dataclass(frozen=True)
class TaskError:
    """Failure of the item at ``index``."""

    index: int
    error: BaseException


@dataclass
class BoundedResult(Generic[R]):
    """Outcome of run_bounded.

    ``results`` is indexed like the input; failed or never-started items
    leave a ``None`` hole.
    """

    results: list[R | None]
    errors: list[TaskError] = field(default_factory=list)
    duration_s: float = 0.0

    @property
    def failed_indices(self) -> set[int]:
        return {e.index for e in self.errors}

    @property
    def ok(self) -> bool:
        return not self.errors


class BoundedMapError(Exception):
    """Raised by map_bounded when any item fails."""

    def __init__(self, index: int, error: BaseException) -> None:
        self.index = index
        self.error = error
        super().__init__(f"Parallel execution failed at index {index}: {error}")


async def run_bounded(
    items: Sequence[T],
    worker: Worker,
    concurrency: int = DEFAULT_CONCURRENCY,
    stop_on_error: bool = False,
    task_timeout_s: float | None = DEFAULT_TASK_TIMEOUT_S,
) -> BoundedResult:
    """Run ``worker(item, index)`` over ``items`` with bounded concurrency.

    Args:
        items: Work items.
        worker: Coroutine function called with (item, index).
        concurrency: Max simultaneously in-flight workers.
        stop_on_error: On the first error, drop the remaining queue; tasks
            already in flight are allowed to finish.
        task_timeout_s: Per-task deadline (None disables). A timed-out
            worker is abandoned, not cancelled.

    Returns:
        BoundedResult with per-index results and errors.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    start = time.monotonic()
    results: list = [None] * len(items)
    errors: list[TaskError] = []
    queue: deque[tuple[int, T]] = deque(enumerate(items))
    in_flight: dict[asyncio.Task, int] = {}

    async def _run(index: int, item: T):
        if task_timeout_s is None:
            return await worker(item, index)
        return await with_timeout(
            worker(item, index), task_timeout_s, message=f"Task {index} timed out"
        )

    while queue or in_flight:
        while queue and len(in_flight) < concurrency:
            index, item = queue.popleft()
            in_flight[asyncio.ensure_future(_run(index, item))] = index

        done, _ = await asyncio.wait(in_flight.keys(), return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            index = in_flight.pop(task)
            exc = task.exception()
            if exc is None:
                results[index] = task.result()
                continue
            errors.append(TaskError(index=index, error=exc))
            logger.debug("Task %d failed: %s", index, exc)
            if stop_on_error and queue:
                logger.info("Stopping after error: %d queued item(s) dropped", len(queue))
                queue.clear()

    errors.sort(key=lambda e: e.index)
    return BoundedResult(
        results=results,
        errors=errors,
        duration_s=time.monotonic() - start,
    )


async def map_bounded(
    items: Sequence[T],
    worker: Worker,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> list:
    """Like run_bounded, but all-or-nothing.

    Raises:
        BoundedMapError: For the lowest failing index.
    """
    outcome = await run_bounded(items, worker, concurrency=concurrency, task_timeout_s=None)
    if outcome.errors:
        first = outcome.errors[0]
        raise BoundedMapError(first.index, first.error) from first.error
    return outcome.results


async def in_batches(
    items: Sequence[T],
    batch_size: int,
    operation: Callable[[list[T]], Awaitable[list[R]]],
) -> list[R]:
    """Feed ``items`` to ``operation`` in sequential fixed-size batches."""
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    out: list[R] = []
    for i in range(0, len(items), batch_size):
        out.extend(await operation(list(items[i : i + batch_size])))
    return out
