"""Retry helper for contended critical sections."""
from typing import Awaitable, Callable, TypeVar
import asyncio
import logging
import random

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from backend.utils.lock_client import LockTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar('T')

RETRYABLE_ERRORS = (LockTimeoutError, StaleDataError, OperationalError)


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 0.2,
    max_delay: float = 5.0,
    jitter: bool = True,
    operation_name: str = "operation",
) -> T:
    """
    Retry an async function with exponential backoff.

    Only lock timeouts, optimistic version conflicts and database lock errors are
    retried; every other exception propagates immediately.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries (default: 5s)
        jitter: Add random jitter to delays to prevent thundering herd (default: True)
        operation_name: Name for logging purposes

    Returns:
        Result of the function call

    Raises:
        The last exception if all retries fail
    """
    for attempt in range(max_retries + 1):
        try:
            return await func()
        except RETRYABLE_ERRORS as e:
            if attempt >= max_retries:
                logger.error(
                    f"[RETRY] {operation_name} failed after {max_retries + 1} attempts. Giving up. Error: {e}"
                )
                raise

            delay = min(base_delay * (2 ** attempt), max_delay)
            if jitter:
                delay = delay * (0.5 + random.random())

            logger.warning(
                f"[RETRY] {operation_name} conflicted (attempt {attempt + 1}/{max_retries + 1}). "
                f"Retrying in {delay:.2f}s... Error: {e}"
            )
            await asyncio.sleep(delay)

    raise RuntimeError("unreachable")  # pragma: no cover
