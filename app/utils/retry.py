"""Retry with exponential backoff for transient failures"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from app.core.exceptions import is_transient_error
from app.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, initial_delay: float) -> float:
    """Delay before retry `attempt` (0-based): initial, 2x, 4x, ..."""
    return initial_delay * (2 ** attempt)


async def execute_with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    is_retryable: Callable[[BaseException], bool] = is_transient_error,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "operation",
    log_extra: Optional[dict] = None,
) -> T:
    """
    Await `fn()` and retry it on retryable errors.

    With the defaults a transient failure is retried up to 3 times after
    1s, 2s and 4s. Permanent errors, and the last transient one, are re-raised.

    Args:
        fn: Zero-argument coroutine factory; called once per attempt
        max_retries: Retries after the first attempt
        initial_delay: Seconds before the first retry
        is_retryable: Error classifier
        sleep: Awaitable sleep (injected by tests)
        description: Label for log lines
        log_extra: Extra structured fields for log lines
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as exc:
            if attempt >= max_retries or not is_retryable(exc):
                raise
            delay = backoff_delay(attempt, initial_delay)
            logger.warning(
                "Retry %d/%d for %s after %.1fs: %s",
                attempt + 1,
                max_retries,
                description,
                delay,
                exc,
                extra=log_extra or {},
            )
            await sleep(delay)
            attempt += 1
