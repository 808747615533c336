# src/concurrency/retry.py - v1
"""Retry with classic exponential backoff.

Delay before retry ``n`` (0-based attempt index) is
``initial_delay_s * backoff_factor ** n``. No jitter: callers that need
spreading pass a smaller factor.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryObserver = Callable[[BaseException, int], None]


def compute_delay(initial_delay_s: float, backoff_factor: float, attempt: int) -> float:
    """Delay to wait after the 0-based ``attempt`` failed."""
    return initial_delay_s * (backoff_factor ** attempt)


async def retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = 3,
    initial_delay_s: float = 1.0,
    backoff_factor: float = 2.0,
    on_retry: RetryObserver | None = None,
    retry_on: Callable[[BaseException], bool] | None = None,
) -> T:
    """Invoke ``operation`` until it succeeds or ``retries`` retries are used.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt.
        retries: Retries after the first attempt (0 = single attempt).
        initial_delay_s: Delay before the first retry.
        backoff_factor: Multiplier applied per attempt.
        on_retry: Observer called with (error, attempt_number) before each
            wait; attempt_number is 1-based.
        retry_on: Predicate deciding whether an error is transient. Errors
            it rejects are re-raised immediately.

    Raises:
        The last error raised by ``operation``, unchanged.
    """
    if retries < 0:
        raise ValueError("retries must be >= 0")

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= retries or (retry_on is not None and not retry_on(exc)):
                raise
            delay = compute_delay(initial_delay_s, backoff_factor, attempt)
            attempt += 1
            logger.warning(
                "Attempt %d/%d failed (%s), retrying in %.1fs",
                attempt, retries + 1, exc, delay,
            )
            if on_retry is not None:
                on_retry(exc, attempt)
            await asyncio.sleep(delay)
