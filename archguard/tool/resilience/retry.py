"""Retry with exponential backoff for model calls.

- Max 3 retries (4 attempts total) with exponential backoff: 2s -> 4s -> 8s
- Only retry on retriable exceptions; others propagate immediately
- Cancellation during the backoff wait aborts the whole call at once
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)

_DEFAULT_RETRIABLE: tuple[type[Exception], ...] = (Exception,)


class RetryExhaustedError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        super().__init__(f"Retry exhausted after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior."""

    max_retries: int = 3
    base_delay: float = 2.0
    multiplier: float = 2.0  # 2s -> 4s -> 8s
    max_delay: float = 8.0

    @property
    def max_attempts(self) -> int:
        return 1 + self.max_retries

    def delay_for_attempt(self, attempt: int) -> float:
        """Calculate delay before retry number *attempt* (0-indexed)."""
        delay = self.base_delay * (self.multiplier**attempt)
        return min(delay, self.max_delay)


async def retry_with_backoff(  # noqa: UP047
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy | None = None,
    retriable_exceptions: tuple[type[Exception], ...] = _DEFAULT_RETRIABLE,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    label: str = "",
) -> T:
    """Execute an async callable with retry and exponential backoff.

    Args:
        fn: Async callable (no arguments) to execute.
        policy: Retry policy configuration.
        retriable_exceptions: Exception types that trigger a retry.
        sleep: Awaitable sleep used between attempts (asyncio.sleep by default).
        label: Operation name for log lines.

    Returns:
        Result of fn().

    Raises:
        RetryExhaustedError: If all retries are exhausted.
        asyncio.CancelledError: If the calling task is cancelled, including
            while waiting between attempts.
        Exception: Non-retriable exceptions propagate immediately.
    """
    p = policy or RetryPolicy()
    wait = sleep or asyncio.sleep
    last_error: Exception | None = None

    for attempt in range(p.max_attempts):
        if attempt > 0:
            delay = p.delay_for_attempt(attempt - 1)
            logger.debug(
                "Retrying %s in %.1fs (attempt %d/%d)",
                label or "call",
                delay,
                attempt + 1,
                p.max_attempts,
            )
            await wait(delay)
        try:
            return await fn()
        except retriable_exceptions as exc:
            last_error = exc
            logger.debug("%s attempt %d failed: %s", label or "call", attempt + 1, exc)

    assert last_error is not None
    raise RetryExhaustedError(attempts=p.max_attempts, last_error=last_error)
