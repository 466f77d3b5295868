"""
Retry with exponential backoff for store round-trips.

Authorization and not-found failures are re-raised on the first attempt;
everything else is treated as transient and retried until the attempt
ceiling is reached.
"""

import asyncio
import functools
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from jobfinder_sync.exceptions import (
    error_code,
    PERMISSION_DENIED,
    NOT_FOUND,
    UNAUTHENTICATED,
)
from jobfinder_sync.util.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

NON_RETRIABLE_CODES = frozenset({PERMISSION_DENIED, NOT_FOUND, UNAUTHENTICATED})


@dataclass
class RetryPolicy:
    """Configuration for retry behavior with exponential backoff."""
    max_attempts: int = 3
    base_delay_seconds: float = 1.0

    def get_delay(self, attempt: int) -> float:
        """Delay after the failed attempt with zero-based index ``attempt``."""
        return self.base_delay_seconds * (2 ** attempt)

    @classmethod
    def from_config(cls, config: dict) -> "RetryPolicy":
        from jobfinder_sync.config.loader import get_retry_max_attempts, get_retry_base_delay

        return cls(
            max_attempts=get_retry_max_attempts(config),
            base_delay_seconds=get_retry_base_delay(config),
        )


def is_retriable(error: BaseException) -> bool:
    """Whether a failure is worth another attempt."""
    return error_code(error) not in NON_RETRIABLE_CODES


async def retry_operation(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: Optional[str] = None,
) -> T:
    """
    Run ``operation`` with bounded exponential-backoff retries.

    Args:
        operation: Zero-argument callable returning an awaitable
        max_attempts: Total attempts including the first one
        base_delay: Seconds to wait after the first failure; doubles each time
        sleep: Awaitable sleep, injectable for tests
        description: Label used in log lines

    Returns:
        The operation's result

    Raises:
        The last observed error once attempts are exhausted, or the first
        non-retriable error immediately.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    label = description or getattr(operation, "__name__", "operation")
    last_error: Optional[BaseException] = None

    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            last_error = e

            if not is_retriable(e):
                raise

            if attempt < max_attempts - 1:
                delay = base_delay * (2 ** attempt)
                logger.warning(
                    f"{label} failed (attempt {attempt + 1}/{max_attempts}): {e}; retrying in {delay:.2f}s"
                )
                await sleep(delay)

    logger.error(f"{label} failed after {max_attempts} attempts: {last_error}")
    raise last_error


def with_retry(policy: Optional[RetryPolicy] = None):
    """Decorator adding retry_operation to an async function."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            active = policy or RetryPolicy()
            return await retry_operation(
                lambda: func(*args, **kwargs),
                max_attempts=active.max_attempts,
                base_delay=active.base_delay_seconds,
                description=func.__name__,
            )
        return wrapper
    return decorator
