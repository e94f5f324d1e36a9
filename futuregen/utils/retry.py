"""Rate-limit aware retry with exponential backoff for async operations."""

import asyncio
from typing import Awaitable, Callable, TypeVar

from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

RATE_LIMIT_MARKERS = ("429", "quota", "RESOURCE_EXHAUSTED")


def is_rate_limit_error(error: BaseException) -> bool:
    """
    Decide whether an error looks like a rate-limit / quota rejection.

    The remote service does not expose a structured error kind to every
    caller, so the message text is matched as well as any numeric status.

    Args:
        error: Exception raised by a remote call

    Returns:
        True if the error should be retried with backoff
    """
    message = str(error)
    if any(marker in message for marker in RATE_LIMIT_MARKERS):
        return True

    for attr in ("status", "status_code", "code"):
        value = getattr(error, attr, None)
        if value == 429 or value == "429":
            return True

    return False


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 2.0,
) -> T:
    """
    Run an async operation, retrying rate-limit failures with backoff.

    Waits ``initial_delay * 2 ** attempt_index`` seconds between attempts.
    Errors that are not rate-limit-like are re-raised immediately.

    Args:
        operation: Zero-argument callable returning an awaitable
        max_attempts: Maximum number of attempts
        initial_delay: Delay before the first retry, in seconds

    Returns:
        Result of the operation

    Example:
        response = await run_with_retry(lambda: client.generate_content(...))
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_exception = None

    for attempt in range(max_attempts):
        try:
            return await operation()

        except Exception as e:
            last_exception = e

            if not is_rate_limit_error(e):
                raise

            if attempt == max_attempts - 1:
                logger.error(
                    f"Rate limited after {max_attempts} attempts",
                    extra={"attempts": max_attempts, "error": str(e)}
                )
                raise

            delay = initial_delay * (2 ** attempt)
            logger.warning(
                f"Rate limit hit. Retrying in {delay}s... (Attempt {attempt + 1}/{max_attempts})",
                extra={
                    "attempt": attempt + 1,
                    "max_attempts": max_attempts,
                    "delay_seconds": delay,
                    "error": str(e),
                }
            )
            await asyncio.sleep(delay)

    raise last_exception
