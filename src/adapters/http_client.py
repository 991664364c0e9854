"""httpx wrapper.

Why a wrapper:
- Standardizes timeouts, headers and the bounded retry policy for every remote
  call (catalog index, tree listing, raw file contents).
- Eases testing: the client can be built over an `httpx.MockTransport`.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import httpx

from core.config import AppSettings
from core.domain.errors import NetworkError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


def build_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Create an `httpx.Client` with safe defaults.

    Why a builder:
    - Centralizes timeouts/headers so catalog and fetcher behave the same.
    - `transport` lets tests inject `httpx.MockTransport`.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json, text/plain;q=0.9, */*;q=0.8",
    }
    if settings.github_token:
        headers["Authorization"] = f"Bearer {settings.github_token}"
    if extra_headers:
        headers.update(extra_headers)
    return httpx.Client(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def get_with_retries(
    client: httpx.Client,
    url: str,
    *,
    max_retries: int = 2,
    backoff_seconds: float = 0.5,
    params: dict[str, str] | None = None,
    stream: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> httpx.Response:
    """GET `url`, retrying transient failures a bounded number of times.

    Transport errors, timeouts and `RETRYABLE_STATUS` answers are retried up to
    `max_retries` times. Any other response (including 404) is returned to the
    caller, which decides what it means. Exhausted retries raise `NetworkError`
    carrying the attempted URL.

    With `stream=True` the body is left unread and the caller must close the
    response.
    """

    delay = backoff_seconds
    attempts = max_retries + 1
    for attempt in range(1, attempts + 1):
        try:
            request = client.build_request("GET", url, params=params)
            response = client.send(request, stream=stream)
        except httpx.TimeoutException as exc:
            failure = NetworkError(f"Timed out fetching {url}: {exc}", location=url)
        except httpx.TransportError as exc:
            failure = NetworkError(f"Could not reach {url}: {exc}", location=url)
        else:
            if response.status_code not in RETRYABLE_STATUS:
                return response
            response.close()
            failure = NetworkError(
                f"Remote answered HTTP {response.status_code} for {url}",
                location=url,
                status_code=response.status_code,
            )

        if attempt == attempts:
            logger.error("All %d attempts failed for %s", attempts, url)
            raise failure

        logger.warning(
            "Attempt %d/%d failed for %s: %s. Retrying in %.1fs...",
            attempt,
            attempts,
            url,
            failure.message,
            delay,
        )
        sleep(delay)
        delay *= 2

    # Unreachable: the loop either returns or raises.
    raise NetworkError(f"Could not fetch {url}", location=url)


def require_ok(response: httpx.Response, url: str) -> httpx.Response:
    """Raise `NetworkError` for any non-2xx response."""

    if response.is_success:
        return response
    raise NetworkError(
        f"Remote answered HTTP {response.status_code} for {url}",
        location=url,
        status_code=response.status_code,
    )
