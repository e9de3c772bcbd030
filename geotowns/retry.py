"""
Retry with exponential backoff for the registry endpoint.

Only transport-level trouble is retried. A geocoder answer such as
ZERO_RESULTS or OVER_QUERY_LIMIT is a response, not a failure, and is
classified by the caller.
"""

import functools
import time
from typing import Callable, Optional, Tuple, Type

# Request Timeout, Too Many Requests, and the transient 5xx family
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class RetryError(Exception):
    """Every attempt failed; the last failure is chained as __cause__."""
    pass


class RetryableStatusError(Exception):
    """An HTTP status worth another attempt (see RETRYABLE_STATUS_CODES)."""

    def __init__(self, status_code: int, url: str):
        super().__init__(f"HTTP {status_code} from {url}")
        self.status_code = status_code
        self.url = url


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
):
    """
    Decorator: call again after a growing pause when one of ``exceptions`` is raised.

    Args:
        max_retries: Extra attempts after the first one (0 = call once)
        base_delay: Pause before the first retry, in seconds
        max_delay: Upper bound for any single pause
        exponential_base: Factor applied to the pause after each retry
        exceptions: Exception types that trigger a retry; others propagate
        on_retry: Called as on_retry(retry_number, exception, pause) before sleeping

    Raises:
        RetryError: When the last attempt also fails

    Example:
        @exponential_backoff(max_retries=3, exceptions=(requests.Timeout,))
        def fetch_page(offset):
            return requests.get(URL, params={"offset": offset})
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            pause = base_delay
            retries_left = max_retries
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if retries_left <= 0:
                        raise RetryError(f"Failed after {max_retries + 1} attempts: {e}") from e
                    retries_left -= 1
                    wait = min(pause, max_delay)
                    if on_retry:
                        on_retry(max_retries - retries_left, e, wait)
                    time.sleep(wait)
                    pause *= exponential_base

        return wrapper
    return decorator


def should_retry_http_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS_CODES
