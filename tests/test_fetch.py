from __future__ import annotations

import httpx
import pytest

from mft.errors import FetchError
from mft.workers.fetch import Fetcher, default_headers, fetch_content

HTML = "<html><head><title>Shop</title></head><body><div class='price'>\n100 yen\n</div></body></html>"


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler), headers=default_headers())


def test_fetch_content_extracts_selector_and_title() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text=HTML, headers={"content-type": "text/html; charset=utf-8"})

    with _client(handler) as client:
        result = fetch_content("https://shop.example.com/item", ".price", client=client)

    assert result.content == "100 yen"
    assert result.title == "Shop"
    assert seen[0].headers["User-Agent"].startswith("MFT-Crawler/1.0")
    assert seen[0].headers["Accept"] == "text/html,application/xhtml+xml"


def test_non_success_status_raises_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="missing")

    with _client(handler) as client:
        with pytest.raises(FetchError) as info:
            fetch_content("https://example.com/gone", client=client)

    assert info.value.status_code == 404
    assert info.value.error_class == "HTTPStatusError"
    assert "404" in info.value.reason


def test_timeout_raises_fetch_error_with_transport_class() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with _client(handler) as client:
        with pytest.raises(FetchError) as info:
            fetch_content("https://slow.example.com", client=client)

    assert info.value.status_code is None
    assert info.value.error_class == "ReadTimeout"


def test_fetcher_reuses_injected_client_and_leaves_it_open() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.host)
        return httpx.Response(200, text=HTML)

    client = _client(handler)
    with Fetcher(client) as fetcher:
        fetcher("https://a.example.com", "body", feed_id="a")
        fetcher("https://b.example.com", "body", feed_id="b")

    assert calls == ["a.example.com", "b.example.com"]
    assert client.is_closed is False
    client.close()
