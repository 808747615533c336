# src/concurrency/timeout.py - v1
"""Cooperative timeout: race an awaitable against a timer.

Unlike ``asyncio.wait_for`` the losing operation is NOT cancelled. It keeps
running in the background and its result is discarded, so wrapped
operations must be idempotent.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from compforge.core.errors import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Strong references to abandoned tasks; the event loop only keeps weak ones.
_abandoned: set[asyncio.Future] = set()


async def with_timeout(
    operation: Awaitable[T],
    timeout_s: float,
    message: str = "Operation timed out",
) -> T:
    """Await ``operation`` for at most ``timeout_s`` seconds.

    Raises:
        OperationTimeoutError: If the timer fires first. The operation is
            left running.
        ValueError: If ``timeout_s`` is not positive.
    """
    if timeout_s <= 0:
        raise ValueError(f"timeout_s must be > 0, got {timeout_s}")

    task = asyncio.ensure_future(operation)
    done, _ = await asyncio.wait({task}, timeout=timeout_s)
    if task in done:
        return task.result()

    _abandoned.add(task)
    task.add_done_callback(_reap)
    raise OperationTimeoutError(f"{message} after {timeout_s:g}s")


def _reap(task: asyncio.Future) -> None:
    """Retrieve the outcome of an abandoned task so it is never reported as lost."""
    _abandoned.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Abandoned operation finished with error: %s", exc)
