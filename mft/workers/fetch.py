"""Page fetcher — one GET per feed with a bounded timeout.

No retries: a failed fetch raises :class:`FetchError` and the crawler skips
the feed for this pass.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from mft.config import settings
from mft.errors import FetchError
from mft.metrics import FETCH_ATTEMPTS_TOTAL, FETCH_LATENCY_SECONDS, status_class
from mft.schemas.feed import DEFAULT_SELECTOR
from mft.workers.extract import extract_page

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "text/html,application/xhtml+xml"


@dataclass(frozen=True)
class FetchResult:
    content: str
    title: str


def default_headers(user_agent: str | None = None) -> dict[str, str]:
    return {
        "User-Agent": user_agent or settings.USER_AGENT,
        "Accept": ACCEPT_HEADER,
    }


def build_client(timeout: float | None = None, user_agent: str | None = None) -> httpx.Client:
    return httpx.Client(
        headers=default_headers(user_agent),
        timeout=timeout if timeout is not None else settings.FETCH_TIMEOUT_S,
        follow_redirects=True,
    )


def _get(client: httpx.Client, url: str, feed_id: str) -> str:
    started = time.monotonic()
    status_code = 0
    error_class = "NONE"
    try:
        resp = client.get(url)
        status_code = resp.status_code
        resp.raise_for_status()
        return resp.text
    except httpx.HTTPStatusError as e:
        error_class = "HTTPStatusError"
        raise FetchError(
            url,
            status_code=e.response.status_code,
            reason=f"HTTP {e.response.status_code}: {e.response.reason_phrase}",
        ) from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        error_class = type(e).__name__
        raise FetchError(url, error_class=error_class, reason=f"{error_class}: {e}") from e
    finally:
        FETCH_LATENCY_SECONDS.observe(max(time.monotonic() - started, 0.0))
        FETCH_ATTEMPTS_TOTAL.labels(
            feed_id=feed_id or "unknown",
            status_class=status_class(status_code),
            error_class=error_class,
        ).inc()


def fetch_content(
    url: str,
    selector: str = DEFAULT_SELECTOR,
    *,
    client: Optional[httpx.Client] = None,
    timeout: float | None = None,
    feed_id: str = "",
) -> FetchResult:
    """Fetch ``url`` and extract the ``selector`` region plus the page title.

    A caller-supplied ``client`` is reused and left open.
    """
    if client is not None:
        body = _get(client, url, feed_id)
    else:
        with build_client(timeout=timeout) as own_client:
            body = _get(own_client, url, feed_id)

    content, title = extract_page(body, selector or DEFAULT_SELECTOR, url)
    return FetchResult(content=content, title=title)


class Fetcher:
    """Callable wrapper holding one HTTP client for a whole crawl pass."""

    def __init__(self, client: Optional[httpx.Client] = None, *, timeout: float | None = None) -> None:
        self._owns_client = client is None
        self._client = client or build_client(timeout=timeout)

    def __call__(self, url: str, selector: str = DEFAULT_SELECTOR, *, feed_id: str = "") -> FetchResult:
        return fetch_content(url, selector, client=self._client, feed_id=feed_id)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
