"""
Retry and pacing utilities.

Provides backoff decorators for operations that may fail transiently
(browser navigation, SMTP delivery) and an explicit rate limiter that is
passed down the call chain instead of living in module state.
"""

import asyncio
import collections
import functools
import time
from typing import Awaitable, Callable, Deque, Optional, Tuple, Type


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""
    pass


def _delays(max_retries: int, base_delay: float, max_delay: float, exponential_base: float):
    delay = base_delay
    for _ in range(max_retries):
        yield min(delay, max_delay)
        delay *= exponential_base


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
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

    Example:
        @exponential_backoff(max_retries=3, base_delay=1.0)
        def send(msg):
            return smtp.sendmail(...)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delays = _delays(max_retries, base_delay, max_delay, exponential_base)
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    attempt += 1
                    current_delay = next(delays, None)
                    if current_delay is None:
                        raise RetryError(
                            f"Failed after {max_retries + 1} attempts: {str(e)}"
                        ) from e
                    if on_retry:
                        on_retry(attempt, e, current_delay)
                    time.sleep(current_delay)

        return wrapper
    return decorator


def async_backoff(
    max_retries: int = 2,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
):
    """
    Coroutine flavour of :func:`exponential_backoff`.

    The sleep function is injectable so tests can retry without waiting.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            delays = _delays(max_retries, base_delay, max_delay, exponential_base)
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    attempt += 1
                    current_delay = next(delays, None)
                    if current_delay is None:
                        raise RetryError(
                            f"Failed after {max_retries + 1} attempts: {str(e)}"
                        ) from e
                    if on_retry:
                        on_retry(attempt, e, current_delay)
                    await sleep(current_delay)

        return wrapper
    return decorator


class RateLimiter:
    """
    Sliding-window limiter: at most ``max_calls`` acquisitions per ``period``.

    Owned by whoever drives the requests and passed explicitly to the code
    that issues them. ``clock`` and ``sleep`` are injectable so window
    rollover can be simulated without real delays.
    """

    def __init__(
        self,
        max_calls: int = 1,
        period: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        self.max_calls = max_calls
        self.period = period
        self.clock = clock
        self.sleep = sleep
        self._calls: Deque[float] = collections.deque()

    def _evict(self, now: float):
        while self._calls and now - self._calls[0] >= self.period:
            self._calls.popleft()

    def wait_time(self) -> float:
        """Seconds until the next slot frees up (0 if one is free now)."""
        now = self.clock()
        self._evict(now)
        if len(self._calls) < self.max_calls:
            return 0.0
        return max(0.0, self.period - (now - self._calls[0]))

    async def acquire(self) -> float:
        """Wait for a free slot and claim it. Returns the time spent waiting."""
        waited = 0.0
        delay = self.wait_time()
        while delay > 0:
            await self.sleep(delay)
            waited += delay
            delay = self.wait_time()
        self._calls.append(self.clock())
        return waited

    def release(self):
        """
        Restamp the latest acquisition with the current time.

        For sequential callers that want the period measured from the end
        of a call rather than its start.
        """
        if self._calls:
            self._calls.pop()
            self._calls.append(self.clock())


def is_transient_error(exception: Exception) -> bool:
    """
    Determine if an exception is likely transient and should be retried.

    Args:
        exception: Exception to check

    Returns:
        True if error is likely transient (timeout, connection, 5xx)
    """
    error_str = str(exception).lower()

    transient_keywords = [
        'timeout',
        'connection',
        'temporary failure',
        'service unavailable',
        'net::err_',
        '503',
        '502',
        '500',
        '429',  # Rate limit
        'read timed out',
        'connection reset',
    ]

    return any(keyword in error_str for keyword in transient_keywords)


def should_retry_http_status(status_code: int) -> bool:
    """
    Check if HTTP status code indicates a retryable error.

    Args:
        status_code: HTTP status code

    Returns:
        True if should retry
    """
    retryable_codes = {
        408,  # Request Timeout
        429,  # Too Many Requests
        500,  # Internal Server Error
        502,  # Bad Gateway
        503,  # Service Unavailable
        504,  # Gateway Timeout
    }

    return status_code in retryable_codes
