from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from mft.pending import load_pending, merge_pending, slugify_feed_id
from mft.schemas.feed import Feed, RegistryDocument

NOW = datetime(2025, 5, 1, tzinfo=timezone.utc)


def _registry() -> RegistryDocument:
    return RegistryDocument(
        feeds=[Feed(id="feed-example-com-news", url="https://example.com/news", title="News", tags=["news"])],
        tags=["news"],
    )


def test_slugify_feed_id_from_url() -> None:
    assert slugify_feed_id("https://Example.com/News/") == "feed-example-com-news"
    assert slugify_feed_id("https://example.com") == "feed-example-com"


def test_merge_adds_new_feed_with_defaults() -> None:
    registry = _registry()
    report = merge_pending(registry, [{"url": "https://blog.example.org/posts", "tags": ["blog", "news"]}], NOW)

    assert report.added == ["feed-blog-example-org-posts"]
    feed = registry.get("feed-blog-example-org-posts")
    assert feed is not None
    assert feed.title == "https://blog.example.org/posts"
    assert feed.selector == "body"
    assert feed.added_at == "2025-05-01T00:00:00.000Z"
    assert feed.last_checked is None
    assert registry.tags == ["news", "blog"]


def test_merge_skips_registered_urls_and_bad_rows() -> None:
    registry = _registry()
    report = merge_pending(
        registry,
        [
            {"url": "https://example.com/news"},
            {"title": "no url"},
            {"url": "not a url"},
        ],
        NOW,
    )
    assert report.added == []
    assert [row["reason"] for row in report.skipped] == ["already registered", "missing url", "invalid"]
    assert len(registry.feeds) == 1


def test_merge_resolves_colliding_ids() -> None:
    registry = _registry()
    report = merge_pending(
        registry,
        [{"id": "feed-example-com-news", "url": "https://example.com/news?page=2", "title": "Page 2"}],
        NOW,
    )
    assert report.added == ["feed-example-com-news-2"]
    assert registry.get("feed-example-com-news-2").title == "Page 2"


def test_merge_keeps_exported_id_and_added_at() -> None:
    registry = _registry()
    merge_pending(
        registry,
        [{"id": "feed-1700000000000", "url": "https://shop.example.com", "addedAt": "2024-11-14T22:13:20.000Z"}],
        NOW,
    )
    feed = registry.get("feed-1700000000000")
    assert feed is not None
    assert feed.added_at == "2024-11-14T22:13:20.000Z"


def test_merge_rejects_entries_the_crawler_would_skip() -> None:
    registry = _registry()
    report = merge_pending(
        registry,
        [
            {"url": "ftp://files.example.com/x"},
            {"id": "../escape", "url": "https://escape.example.com"},
        ],
        NOW,
    )
    assert report.added == []
    assert [row["reason"] for row in report.skipped] == ["invalid", "invalid"]
    assert [f.id for f in registry.feeds] == ["feed-example-com-news"]

def test_load_pending_accepts_json_list_and_yaml_mapping(tmp_path: Path) -> None:
    json_path = tmp_path / "pending.json"
    json_path.write_text(json.dumps([{"url": "https://a.example.com"}]), encoding="utf-8")
    assert load_pending(json_path) == [{"url": "https://a.example.com"}]

    yaml_path = tmp_path / "pending.yaml"
    yaml_path.write_text("feeds:\n  - url: https://b.example.com\n    tags: [x]\n", encoding="utf-8")
    assert load_pending(yaml_path) == [{"url": "https://b.example.com", "tags": ["x"]}]


def test_load_pending_rejects_scalar(tmp_path: Path) -> None:
    path = tmp_path / "pending.json"
    path.write_text('"nope"', encoding="utf-8")
    with pytest.raises(ValueError):
        load_pending(path)
