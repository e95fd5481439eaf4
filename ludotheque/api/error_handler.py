"""Unified error handling for ScreenScraper API interactions."""

from typing import Optional, Tuple, Callable, Awaitable
from enum import Enum
import asyncio
import logging

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categorize errors for selective retry logic."""
    RETRYABLE = "retryable"        # 429, 5xx, network - should retry
    NOT_FOUND = "not_found"        # 404 - don't retry
    NON_RETRYABLE = "non_retryable"  # 400 - don't retry
    FATAL = "fatal"                # 403, quota, blacklist


class APIError(Exception):
    """Base exception for API errors."""
    pass


class FatalAPIError(APIError):
    """Fatal API error (credentials, quota, blacklisted software)."""
    pass


class RetryableAPIError(APIError):
    """Retryable API error (rate limits, transient failures)."""
    pass


class SkippableAPIError(APIError):
    """Non-fatal error, treat as a miss and continue."""
    pass


# HTTP status code mapping
HTTP_STATUS_MESSAGES = {
    200: "Success",
    400: "Malformed request",
    401: "API closed for non-members (server overload)",
    403: "Invalid credentials",
    404: "Game not found",
    423: "API fully closed",
    426: "Software blacklisted",
    429: "Thread limit reached",
    430: "Daily quota exceeded",
    431: "Too many not-found requests",
}


def get_error_message(status_code: int) -> str:
    """
    Get user-friendly error message for HTTP status code.

    Args:
        status_code: HTTP status code

    Returns:
        Error message string
    """
    return HTTP_STATUS_MESSAGES.get(
        status_code,
        f"Unknown error (HTTP {status_code})"
    )


def handle_http_status(status_code: int, context: str = "") -> None:
    """
    Handle HTTP status code and raise appropriate exception.

    Args:
        status_code: HTTP status code from API
        context: Additional context for error message

    Raises:
        FatalAPIError: For fatal errors (403, 423, 426, 430)
        RetryableAPIError: For retryable errors (401, 429, 5xx)
        SkippableAPIError: For skippable errors (400, 404, 431)
        APIError: For any other non-200 status
    """
    msg = get_error_message(status_code)
    if context:
        msg = f"{msg} ({context})"

    if status_code in (403, 423, 426, 430):
        raise FatalAPIError(msg)
    elif status_code in (401, 429) or 500 <= status_code < 600:
        raise RetryableAPIError(msg)
    elif status_code in (400, 404, 431):
        raise SkippableAPIError(msg)
    elif status_code != 200:
        raise APIError(msg)


def categorize_error(exception: Exception) -> Tuple[Exception, ErrorCategory]:
    """
    Categorize an error for selective retry logic.

    Args:
        exception: Exception to categorize

    Returns:
        Tuple of (exception, ErrorCategory)
    """
    if isinstance(exception, FatalAPIError):
        return (exception, ErrorCategory.FATAL)

    error_str = str(exception).lower()
    if isinstance(exception, SkippableAPIError) and ('not found' in error_str or '404' in error_str):
        return (exception, ErrorCategory.NOT_FOUND)

    if isinstance(exception, SkippableAPIError):
        return (exception, ErrorCategory.NON_RETRYABLE)

    if isinstance(exception, RetryableAPIError):
        return (exception, ErrorCategory.RETRYABLE)

    retryable_keywords = ['timeout', 'connection', 'network', 'temporary', 'unavailable']
    if any(keyword in error_str for keyword in retryable_keywords):
        return (exception, ErrorCategory.RETRYABLE)

    return (exception, ErrorCategory.NON_RETRYABLE)


async def retry_with_backoff(
    func: Callable[[], Awaitable],
    max_attempts: int = 3,
    initial_delay: float = 5.0,
    backoff_factor: float = 2.0,
    context: str = ""
):
    """
    Retry an async function with exponential backoff.

    Only RETRYABLE errors are retried; every other category propagates
    immediately.

    Args:
        func: Zero-argument coroutine function
        max_attempts: Maximum number of attempts
        initial_delay: Initial delay in seconds
        backoff_factor: Multiplier for each retry
        context: Context string for log messages

    Returns:
        Function result if successful

    Raises:
        Last exception if all retries fail or if error is not retryable
    """
    delay = initial_delay
    last_exception: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await func()
        except Exception as e:
            exception, category = categorize_error(e)
            last_exception = exception

            if category != ErrorCategory.RETRYABLE:
                raise exception

            if attempt < max_attempts:
                logger.warning(f"{context}: {exception} - retrying in {delay:.1f}s "
                               f"(attempt {attempt}/{max_attempts})")
                await asyncio.sleep(delay)
                delay *= backoff_factor
            else:
                logger.warning(f"{context}: failed after {max_attempts} attempts")

    if last_exception:
        raise last_exception
    raise APIError(f"Failed after {max_attempts} attempts")
