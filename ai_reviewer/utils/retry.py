"""
Retry mechanism with exponential backoff for the GitLab AI Reviewer.

Provides a decorator for retrying async collaborator calls on
transient failures (transport errors, HTTP 429 and 5xx).
"""

import time
import random
import functools
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from .exceptions import ReviewBotError, RetryExhaustedError
from .logger import get_logger

T = TypeVar('T')

logger = get_logger("ai_reviewer.retry")


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay between retries in seconds
        backoff_factor: Multiplier for exponential backoff
        max_delay: Maximum delay between retries in seconds
        jitter: Whether to add random jitter to delays
        retryable_exceptions: Exception types that may trigger retries
    """
    max_retries: int = 3
    initial_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0
    jitter: bool = True
    retryable_exceptions: Tuple[Type[Exception], ...] = (
        ReviewBotError,
        ConnectionError,
        OSError,
    )

    def should_retry(self, exception: Exception) -> bool:
        """
        Determine if an exception should trigger a retry.

        Errors carrying an HTTP status are only retried for 429 and 5xx;
        errors without a status (transport failures) are always retried.
        """
        if not isinstance(exception, self.retryable_exceptions):
            return False
        if getattr(exception, "retryable", True) is False:
            return False

        status_code = getattr(exception, "status_code", None)
        if status_code is None:
            return True
        return status_code == 429 or status_code >= 500

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given retry attempt (0-based).
        """
        delay = min(self.initial_delay * (self.backoff_factor ** attempt), self.max_delay)
        if self.jitter:
            delay *= 0.75 + (random.random() * 0.5)
        return delay


def retry_with_backoff(config: Optional[RetryConfig] = None, **config_kwargs):
    """
    Decorator for retrying async functions with exponential backoff.

    Non-retryable errors propagate unchanged on the first failure. When
    every attempt fails with a retryable error, RetryExhaustedError is
    raised chained to the last error.

    Args:
        config: Retry configuration (if not provided, created from config_kwargs)
        **config_kwargs: Configuration options for RetryConfig
    """
    if config is None:
        config = RetryConfig(**config_kwargs)

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            start_time = time.time()
            last_exception: Optional[Exception] = None

            for attempt in range(config.max_retries + 1):
                if attempt > 0:
                    await asyncio.sleep(config.calculate_delay(attempt - 1))

                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    if not config.should_retry(e):
                        raise
                    last_exception = e
                    if attempt < config.max_retries:
                        logger.warning(
                            f"Operation failed, retrying... (attempt {attempt + 1}/{config.max_retries})",
                            extra={
                                "operation": func.__name__,
                                "attempt": attempt + 1,
                                "error_type": type(e).__name__,
                                "error_message": str(e)
                            }
                        )
                    continue

                if attempt > 0:
                    logger.info(
                        f"Operation succeeded after {attempt} retries",
                        extra={
                            "operation": func.__name__,
                            "attempts": attempt + 1,
                            "duration_seconds": time.time() - start_time
                        }
                    )
                return result

            raise RetryExhaustedError(
                f"Operation '{func.__name__}' failed after {config.max_retries} retries: {last_exception}",
                attempts=config.max_retries,
                last_error=last_exception
            ) from last_exception

        return wrapper

    return decorator


API_RETRY_CONFIG = RetryConfig(
    max_retries=3,
    initial_delay=1.0,
    backoff_factor=2.0,
    max_delay=30.0,
    jitter=True
)

NO_RETRY_CONFIG = RetryConfig(max_retries=0)
