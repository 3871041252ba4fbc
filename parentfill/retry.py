"""
Retry logic with exponential backoff for handling transient failures.

A backfill run is idempotent per row, so a run that dies on a locked database
or a dropped connection can simply be retried from the top.
"""

import time
import functools
from typing import Callable, Type, Tuple, Optional


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""
    pass


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
    retry_if: Optional[Callable[[Exception], bool]] = None,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (0 = no retries)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential calculation (delay *= base)
        exceptions: Tuple of exceptions to catch and retry
        on_retry: Optional callback function(attempt, exception, delay)
        retry_if: Optional predicate; exceptions it rejects propagate unchanged
        sleep: Sleep function (injectable for tests)

    Example:
        @exponential_backoff(max_retries=3, exceptions=(WriteFailure,), retry_if=is_transient_error)
        def populate():
            return driver.run()
    """
    if max_retries < 0:
        raise ValueError(f"max_retries must be 0 or more, got {max_retries}")

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = base_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        raise

                    if attempt < max_retries:
                        current_delay = min(delay, max_delay)

                        if on_retry:
                            on_retry(attempt + 1, e, current_delay)

                        sleep(current_delay)
                        delay *= exponential_base
                    else:
                        raise RetryError(
                            f"Failed after {max_retries + 1} attempts: {str(e)}"
                        ) from e

        return wrapper
    return decorator


def is_transient_error(exception: Exception) -> bool:
    """
    Determine if a storage failure is likely transient and worth a retry.

    Looks at the exception and its cause chain, since the store wraps
    driver errors in its own exception types.

    Args:
        exception: Exception to check

    Returns:
        True if error is likely transient (lock, deadlock, lost connection, timeout)
    """
    transient_keywords = [
        'database is locked',
        'database table is locked',
        'deadlock',
        'lock wait timeout',
        'lost connection',
        'server has gone away',
        'connection reset',
        'connection refused',
        'timeout',
        'timed out',
    ]

    seen = set()
    current: Optional[BaseException] = exception
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        error_str = str(current).lower()
        if any(keyword in error_str for keyword in transient_keywords):
            return True
        current = current.__cause__
    return False
