"""
Base utilities for Google API clients.

Provides retry logic with exponential backoff for transient failures
(rate limits, server errors), and execute_request(), which turns
googleapiclient HttpError into GoogleAPIError carrying the HTTP status.

Usage:
    from .base import execute_request, with_retry

    async def my_api_call():
        def _sync():
            return execute_request(service.events().list(...))
        return await with_retry(lambda: asyncio.to_thread(_sync))
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# HTTP status codes that indicate transient failures worth retrying
TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0


class GoogleAPIError(Exception):
    """Wrapper for Google API errors with status code."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def execute_request(request):
    """
    Run a googleapiclient request synchronously. HttpError is re-raised as
    GoogleAPIError with the API's error message and HTTP status.
    """
    from googleapiclient.errors import HttpError  # type: ignore[import]

    try:
        return request.execute()
    except HttpError as e:
        try:
            status = int(e.resp.status)
        except (TypeError, ValueError):
            status = None
        reason = getattr(e, "reason", None) or str(e)
        raise GoogleAPIError(f"Google API error {status}: {reason}", status_code=status) from e


def _is_transient_error(error: Exception) -> bool:
    """Check if an error is transient and worth retrying."""
    if isinstance(error, GoogleAPIError) and error.status_code is not None:
        return error.status_code in TRANSIENT_STATUS_CODES
    if isinstance(error, (TimeoutError, ConnectionError)):
        return True
    error_str = str(error).lower()
    return any(indicator in error_str for indicator in [
        "rate limit", "quota", "timeout", "connection reset",
        "temporarily unavailable",
    ])


def _get_retry_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Exponential backoff with jitter."""
    delay = min(base_delay * (2 ** attempt), max_delay)
    return delay + random.uniform(0, delay * 0.1)


async def with_retry(
    coro_factory: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
) -> T:
    """
    Execute an async operation with exponential backoff retry.

    Args:
        coro_factory: A callable that returns a new coroutine each time.
                     Coroutines can only be awaited once.
        max_retries: Maximum number of attempts.
        base_delay: Initial delay between retries in seconds.
        max_delay: Maximum delay between retries in seconds.

    Raises:
        The last exception if all retries are exhausted, or immediately for
        non-transient errors.
    """
    for attempt in range(max_retries):
        try:
            return await coro_factory()
        except Exception as e:
            if not _is_transient_error(e):
                logger.debug("Non-transient error (not retrying): %s", e)
                raise
            if attempt >= max_retries - 1:
                logger.error("All %d retry attempts exhausted: %s", max_retries, e)
                raise
            delay = _get_retry_delay(attempt, base_delay, max_delay)
            logger.warning(
                "Transient error on attempt %d/%d, retrying in %.1fs: %s",
                attempt + 1, max_retries, delay, e,
            )
            await asyncio.sleep(delay)
    raise RuntimeError("Retry loop completed without result or error")
