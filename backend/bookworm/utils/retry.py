"""Exponential-backoff retry for flaky async operations."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterator, TypeVar

import httpx

from bookworm.core.errors import ValidationError
from bookworm.core.logging import log_context

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryObserver = Callable[[int, BaseException], None]
RetryPredicate = Callable[[BaseException], bool]
Sleeper = Callable[[float], Awaitable[None]]

_RETRYABLE_MESSAGES = (
    "econnrefused",
    "etimedout",
    "enotfound",
    "econnreset",
    "timeout",
    "timed out",
    "network",
    "connection",
)


def always_retry(_error: BaseException) -> bool:
    return True


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Immutable backoff configuration. Delays are in seconds."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    should_retry: RetryPredicate = field(default=always_retry, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValidationError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValidationError("initial_delay must be non-negative")
        if self.max_delay < self.initial_delay:
            raise ValidationError("max_delay must be >= initial_delay")
        if self.backoff_multiplier <= 1:
            raise ValidationError("backoff_multiplier must be greater than 1")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the failure of ``attempt`` (1-indexed)."""
        return min(self.initial_delay * self.backoff_multiplier ** (attempt - 1), self.max_delay)


def backoff_delays(policy: RetryPolicy) -> Iterator[float]:
    """Yield the full schedule of waits between attempts."""
    for attempt in range(1, policy.max_attempts):
        yield policy.delay_for(attempt)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    on_retry: RetryObserver | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> T:
    """Await ``operation`` until it succeeds or the attempt budget runs out.

    The last attempt's exception propagates unchanged. Errors rejected by
    ``policy.should_retry`` propagate immediately without further attempts.
    """
    policy = policy or RetryPolicy()
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= policy.max_attempts:
                logger.error("All %d attempts failed: %s", policy.max_attempts, exc)
                raise
            if not policy.should_retry(exc):
                logger.info("Not retrying after attempt %d: %s", attempt, exc)
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "Attempt %d/%d failed: %s. Retrying in %.2fs",
                attempt,
                policy.max_attempts,
                exc,
                delay,
                extra=log_context(attempt=attempt, delay=delay),
            )
            if on_retry is not None:
                on_retry(attempt, exc)
            await sleep(delay)
            attempt += 1


def is_retryable_error(error: BaseException) -> bool:
    """Classify transport and timeout failures as retryable."""
    if isinstance(error, (httpx.TransportError, asyncio.TimeoutError, ConnectionError)):
        return True
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        return status_code >= 500 or status_code == 429
    message = str(error).lower()
    return any(token in message for token in _RETRYABLE_MESSAGES)


__all__ = [
    "RetryPolicy",
    "always_retry",
    "backoff_delays",
    "is_retryable_error",
    "retry_with_backoff",
]
