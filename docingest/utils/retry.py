"""Async retry combinator with pluggable backoff.

Shared by the OCR client and the field extractors. Attempts run
sequentially; only the calling coroutine waits between them.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from docingest.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

BackoffFn = Callable[[int, float], float]
SleepFn = Callable[[float], Awaitable[None]]


def linear_backoff(attempt: int, base_delay: float) -> float:
    """Delay before the next attempt: ``attempt * base_delay`` seconds."""
    return attempt * base_delay


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to call and how long to wait in between.

    Args:
        max_attempts: Total number of calls, including the first one.
        base_delay: Base delay in seconds fed to ``backoff``.
        backoff: Maps ``(attempt, base_delay)`` to a delay in seconds.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    backoff: BackoffFn = linear_backoff


async def retry_call(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    operation: str = "call",
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """Await ``fn()`` until it succeeds or the policy is exhausted.

    Every failed attempt is logged with its attempt number. After the
    last attempt fails, that attempt's exception is re-raised unchanged.

    Args:
        fn: Zero-argument coroutine factory; called once per attempt.
        policy: Retry policy. Defaults to three attempts, linear backoff.
        operation: Label used in log messages.
        sleep: Awaitable sleep, injectable for tests.

    Returns:
        The first successful result.
    """
    policy = policy or RetryPolicy()
    attempts = max(1, policy.max_attempts)

    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except Exception as exc:
            logger.warning(
                "%s failed on attempt %d/%d: %s",
                operation,
                attempt,
                attempts,
                exc,
            )
            if attempt == attempts:
                raise
            await sleep(policy.backoff(attempt, policy.base_delay))

    raise AssertionError("unreachable")
