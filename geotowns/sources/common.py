"""Shared HTTP helpers for the registry endpoint and the geocoder."""

from typing import Any, Dict, Optional

import requests

from ..errors import SourceError
from ..logger import get_logger
from ..retry import RetryableStatusError, RetryError, exponential_backoff, should_retry_http_status

logger = get_logger()

RETRYABLE = (
    requests.exceptions.Timeout,
    requests.exceptions.ConnectionError,
    RetryableStatusError,
)


def _get(url: str, params: Optional[Dict[str, Any]], timeout: float):
    resp = requests.get(url, params=params, timeout=timeout)
    if should_retry_http_status(resp.status_code):
        raise RetryableStatusError(resp.status_code, url)
    return resp


@exponential_backoff(max_retries=3, base_delay=1.0, exceptions=RETRYABLE)
def _get_with_retry(url: str, params: Optional[Dict[str, Any]], timeout: float):
    """GET with automatic retry on transient errors."""
    return _get(url, params, timeout)


def fetch_json(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    source: str = "registry",
    timeout: float = 30,
    retry: bool = True,
) -> Any:
    """Fetch a JSON document with standardized error handling and logging.

    Args:
        url: Endpoint URL
        params: Query parameters
        source: Name used in log messages (e.g., 'registry', 'geocoder')
        timeout: Per-request timeout in seconds
        retry: Back off and try again on transient errors; False sends exactly one request

    Returns:
        Decoded JSON body

    Raises:
        SourceError: On any HTTP error, exhausted retries or a non-JSON body
    """
    logger.record_api_call()
    get = _get_with_retry if retry else _get
    try:
        resp = get(url, params, timeout)
        resp.raise_for_status()
        return resp.json()
    except RetryError as e:
        logger.error(f"{source.capitalize()} request failed after retries", url=url, error=str(e))
        raise SourceError(f"{source.capitalize()} request failed after retries: {e}") from e
    except RetryableStatusError as e:
        logger.error(f"{source.capitalize()} request failed", url=url, status=e.status_code)
        raise SourceError(f"{source.capitalize()} request failed ({e.status_code}): {url}") from e
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else "HTTPError"
        logger.error(f"{source.capitalize()} request failed", url=url, status=status)
        raise SourceError(f"{source.capitalize()} request failed ({status}): {url}") from e
    except requests.exceptions.JSONDecodeError as e:
        logger.error(f"{source.capitalize()} returned invalid JSON", url=url)
        raise SourceError(f"{source.capitalize()} returned invalid JSON: {url}") from e
    except requests.exceptions.RequestException as e:
        logger.error(f"{source.capitalize()} request error", url=url, error=str(e))
        raise SourceError(f"{source.capitalize()} request error: {e}") from e
