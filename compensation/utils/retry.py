"""
Retry helpers.

Exponential backoff for transient ledger failures: base, 2x, 4x, ...
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

from compensation.utils.exceptions import is_transient

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
BASE_RETRY_DELAY_SECONDS = 0.5


def backoff_delay(attempt: int, base_delay: float = BASE_RETRY_DELAY_SECONDS) -> float:
    """
    Delay before the given retry attempt.

    Args:
        attempt: Retry number, starting at 1
        base_delay: Delay of the first retry in seconds

    Returns:
        Delay in seconds
    """
    return base_delay * (2 ** (attempt - 1))


async def retry_transient(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = BASE_RETRY_DELAY_SECONDS,
    description: str = "ledger operation",
) -> T:
    """
    Run operation, retrying transient store failures with exponential backoff.

    TransientStoreError and untranslated driver errors (OperationalError,
    connection and timeout errors) are retried; anything else propagates
    on the first attempt.

    Args:
        operation: Zero-argument coroutine factory (called once per attempt)
        max_retries: Retries after the first attempt
        base_delay: Delay of the first retry in seconds
        description: Label used in log messages

    Returns:
        Result of the first successful attempt

    Raises:
        TransientStoreError: If every attempt failed (a driver error is
            re-raised as is)
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if not is_transient(e):
                raise
            attempt += 1
            if attempt > max_retries:
                logger.error(
                    f"{description} failed after {max_retries} retries: {e}"
                )
                raise
            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                f"{description} failed (attempt {attempt}/{max_retries}), "
                f"retrying in {delay:.2f}s: {e}"
            )
            await asyncio.sleep(delay)
