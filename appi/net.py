"""
HTTP transport shared by the upstream sources and the bundle fetcher.
"""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request
from typing import Any

from .errors import NetworkError, NotFoundError, ParseError

logger = logging.getLogger(__name__)

USER_AGENT = "appi/1.0"
DEFAULT_TIMEOUT = 30


def _request(url: str, headers: dict[str, str] | None = None) -> urllib.request.Request:
    default_headers = {"User-Agent": USER_AGENT}
    if headers:
        default_headers.update(headers)
    return urllib.request.Request(url, headers=default_headers)


def http_open(url: str, timeout: float | None = DEFAULT_TIMEOUT, headers: dict[str, str] | None = None):
    """Open a URL for streaming.

    The caller owns the returned response and must close it.

    Raises:
        NotFoundError: On HTTP 404
        NetworkError: On any other HTTP or transport failure
    """
    logger.debug(f"GET {url}")
    try:
        return urllib.request.urlopen(_request(url, headers), timeout=timeout)
    except urllib.error.HTTPError as e:
        if e.code == 404:
            raise NotFoundError(f"Not found: {url}") from e
        raise NetworkError(f"Failed to fetch {url}: HTTP {e.code}") from e
    except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
        raise NetworkError(f"Failed to fetch {url}: {e}") from e


def http_get(url: str, timeout: float | None = DEFAULT_TIMEOUT, headers: dict[str, str] | None = None) -> bytes:
    """Perform HTTP GET request.

    Args:
        url: URL to fetch
        timeout: Timeout in seconds (None waits indefinitely)
        headers: Optional HTTP headers

    Returns:
        Response body as bytes

    Raises:
        NotFoundError: On HTTP 404
        NetworkError: If the request fails
    """
    with http_open(url, timeout=timeout, headers=headers) as response:
        try:
            return response.read()
        except (http.client.HTTPException, OSError) as e:
            raise NetworkError(f"Failed to read {url}: {e}") from e


def http_get_text(url: str, timeout: float | None = DEFAULT_TIMEOUT, headers: dict[str, str] | None = None) -> str:
    return http_get(url, timeout=timeout, headers=headers).decode("utf-8", "replace")


def http_get_json(url: str, timeout: float | None = DEFAULT_TIMEOUT, headers: dict[str, str] | None = None) -> Any:
    """Fetch and decode a JSON document.

    Raises:
        NetworkError: If the request fails
        ParseError: If the body is not JSON
    """
    body = http_get(url, timeout=timeout, headers=headers)
    try:
        return json.loads(body)
    except ValueError as e:
        raise ParseError(f"Invalid JSON from {url}: {e}") from e
