"""Merge queued "add feed" requests into the registry.

The site stores submissions client-side and lets the user export them; an
operator merges that export here. This is never part of a crawl pass.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List
from urllib.parse import urlparse

import yaml
from pydantic import ValidationError

from mft.schemas.feed import Feed, RegistryDocument, utc_now_iso

logger = logging.getLogger(__name__)


@dataclass
class MergeReport:
    added: List[str] = field(default_factory=list)
    skipped: List[dict[str, str]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {"added": self.added, "added_total": len(self.added), "skipped": self.skipped}


def slugify_feed_id(url: str) -> str:
    parsed = urlparse(url or "")
    raw = f"{parsed.netloc}{parsed.path}"
    text = re.sub(r"[^a-zA-Z0-9]+", "-", raw.strip().lower())
    text = re.sub(r"-+", "-", text).strip("-")
    return f"feed-{text or 'site'}"[:80].rstrip("-")


def _unique_id(candidate: str, taken: set[str]) -> str:
    if candidate not in taken:
        return candidate
    n = 2
    while f"{candidate}-{n}" in taken:
        n += 1
    return f"{candidate}-{n}"


def load_pending(path: Path) -> list[dict[str, Any]]:
    """Read a JSON or YAML export: a list, or a mapping with ``feeds``."""
    text = Path(path).read_text(encoding="utf-8")
    if Path(path).suffix.lower() in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    else:
        data = json.loads(text)
    if isinstance(data, dict):
        data = data.get("feeds") or data.get("pendingFeeds") or []
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of feeds")
    return [row for row in data if isinstance(row, dict)]


def merge_pending(
    registry: RegistryDocument,
    entries: list[dict[str, Any]],
    now: datetime | None = None,
) -> MergeReport:
    """Append new feeds to ``registry`` in place; known URLs are skipped."""
    report = MergeReport()
    added_at = utc_now_iso(now or datetime.now(timezone.utc))
    taken = {f.id for f in registry.feeds}

    for row in entries:
        url = str(row.get("url") or "").strip()
        if not url:
            report.skipped.append({"url": "", "reason": "missing url"})
            continue
        if registry.has_url(url):
            report.skipped.append({"url": url, "reason": "already registered"})
            continue

        requested = str(row.get("id") or "").strip()
        feed_id = _unique_id(requested or slugify_feed_id(url), taken)
        try:
            feed = Feed(
                id=feed_id,
                url=url,
                title=str(row.get("title") or ""),
                selector=row.get("selector"),
                tags=row.get("tags") or [],
                added_at=row.get("addedAt") or row.get("added_at") or added_at,
                last_checked=None,
                last_updated=None,
            )
        except ValidationError as exc:
            logger.warning("Rejected pending feed %s: %s", url, exc.errors()[0].get("msg"))
            report.skipped.append({"url": url, "reason": "invalid"})
            continue
        reason = feed.invalid_reason()
        if reason:
            logger.warning("Rejected pending feed %s: %s", url, reason)
            report.skipped.append({"url": url, "reason": "invalid"})
            continue

        registry.feeds.append(feed)
        taken.add(feed.id)
        for tag in feed.tags:
            if tag not in registry.tags:
                registry.tags.append(tag)
        report.added.append(feed.id)
        logger.info("Merged pending feed %s", feed.id, extra={"feed_id": feed.id, "url": url})

    return report
