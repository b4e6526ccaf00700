"""Static site rendering (docs/index.html + JSON copies for the frontend).

All render functions take an explicit :class:`SiteState`; nothing here reads
module-level state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from html import escape
from pathlib import Path
from zoneinfo import ZoneInfo

from mft.config import Settings, settings as default_settings
from mft.core.diff_engine import preview
from mft.errors import StorageError
from mft.schemas.feed import ChangeRecord, DiffType, Feed, HistoryDocument, RegistryDocument, is_http_url
from mft.storage import history_store, registry_store

logger = logging.getLogger(__name__)

PREVIEW_CLIP_CHARS = 200

# Hand-maintained front-end files that live next to index.html in DOCS_DIR.
STYLESHEET = "styles.css"
SCRIPT = "app.js"


@dataclass
class SiteState:
    registry: RegistryDocument
    history: HistoryDocument
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    title: str = "MFT - My Favorite Things"
    tz: str = "Asia/Tokyo"
    preview_max: int = 5

    @property
    def all_tags(self) -> list[str]:
        tags = list(self.registry.tags)
        for feed in self.registry.feeds:
            tags.extend(t for t in feed.tags if t not in tags)
        return tags


def _parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def format_date(value: str | None, tz: str = "Asia/Tokyo") -> str:
    parsed = _parse_iso(value)
    if parsed is None:
        return "未取得"
    return parsed.astimezone(ZoneInfo(tz)).strftime("%Y/%m/%d %H:%M")


def time_ago(value: str | None, now: datetime) -> str:
    parsed = _parse_iso(value)
    if parsed is None:
        return ""
    minutes = max(0, int((now - parsed).total_seconds() // 60))
    if minutes < 60:
        return f"{minutes}分前"
    if minutes < 60 * 24:
        return f"{minutes // 60}時間前"
    return f"{minutes // (60 * 24)}日前"


def render_update_card(state: SiteState, update: ChangeRecord) -> str:
    tags_html = "".join(
        f'<span class="tag" data-tag="{escape(tag)}">{escape(tag)}</span>' for tag in update.tags
    )
    diff_html = "".join(
        f"""
      <div class="diff-item diff-{seg.type.value}">
        <span class="diff-marker">{'+' if seg.type == DiffType.ADDED else '-'}</span>
        <span class="diff-content">{escape(seg.content[:PREVIEW_CLIP_CHARS])}</span>
      </div>"""
        for seg in preview(update.diff, state.preview_max)
    )
    return f"""
    <article class="update-card" data-tags="{escape(','.join(update.tags))}" data-feed="{escape(update.feed_id)}">
      <header class="card-header">
        <div class="card-meta">
          <span class="time-ago">{time_ago(update.detected_at, state.generated_at)}</span>
          <time datetime="{escape(update.detected_at)}">{format_date(update.detected_at, state.tz)}</time>
        </div>
        <h3 class="card-title">
          <a href="{escape(update.url)}" target="_blank" rel="noopener noreferrer">{escape(update.feed_title)}</a>
        </h3>
      </header>
      <div class="card-tags">{tags_html}</div>
      <div class="diff-summary"><span class="diff-badge">{escape(update.diff_summary)}</span></div>
      <div class="diff-preview">{diff_html}</div>
    </article>"""


def render_feed_item(state: SiteState, feed: Feed) -> str:
    tags_html = "".join(f'<span class="tag small">{escape(t)}</span>' for t in feed.tags)
    if not is_http_url(feed.url):
        url_html = f'<span class="feed-url">{escape(feed.url)}</span>'
    else:
        url_html = f'<a class="feed-url" href="{escape(feed.url)}" target="_blank">{escape(feed.url)}</a>'
    return f"""
    <div class="feed-item" data-id="{escape(feed.id)}">
      <div class="feed-info">
        <h4 class="feed-title">{escape(feed.title)}</h4>
        {url_html}
        <div class="feed-tags">{tags_html}</div>
      </div>
      <div class="feed-status">
        <span class="status-label">最終確認:</span>
        <span class="status-value">{format_date(feed.last_checked, state.tz)}</span>
      </div>
    </div>"""


def render_index(state: SiteState) -> str:
    if state.history.updates:
        updates_html = "".join(render_update_card(state, u) for u in state.history.updates)
    else:
        updates_html = (
            '<div class="empty-state"><p>まだ更新はありません</p>'
            "<p>URLを追加して巡回を待ちましょう</p></div>"
        )
    feeds_html = "".join(render_feed_item(state, f) for f in state.registry.feeds)
    tag_filters = "".join(
        f'<button class="tag-filter" data-tag="{escape(tag)}">{escape(tag)}</button>'
        for tag in state.all_tags
    )
    generated = state.generated_at.isoformat()
    return f"""<!DOCTYPE html>
<html lang="ja">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(state.title)}</title>
  <link rel="stylesheet" href="{STYLESHEET}">
</head>
<body>
  <div class="app-container">
    <main class="main-content">
      <section id="updates-view" class="view active">
        <div class="view-header">
          <h2>最新の更新</h2>
          <div class="tag-filters">
            <button class="tag-filter active" data-tag="all">すべて</button>{tag_filters}
          </div>
        </div>
        <div class="updates-grid">{updates_html}
        </div>
      </section>
      <section id="feeds-view" class="view">
        <div class="view-header"><h2>登録フィード</h2></div>
        <div class="feeds-list">{feeds_html}
        </div>
      </section>
    </main>
    <footer class="main-footer">
      <p>最終更新: <time id="last-update" datetime="{generated}">{format_date(generated, state.tz)}</time></p>
    </footer>
  </div>
  <script src="{SCRIPT}"></script>
</body>
</html>
"""


def build_site(settings: Settings | None = None, *, now: datetime | None = None) -> Path:
    """Render ``index.html`` and copy the documents into ``DOCS_DIR``."""
    cfg = settings or default_settings
    registry = registry_store(cfg.feeds_path).load()
    history = history_store(cfg.history_path).load()
    state = SiteState(
        registry=registry,
        history=history,
        generated_at=now or datetime.now(timezone.utc),
        title=cfg.SITE_TITLE,
        tz=cfg.DISPLAY_TZ,
        preview_max=cfg.DIFF_PREVIEW_MAX,
    )

    docs_dir = Path(cfg.DOCS_DIR)
    index_path = docs_dir / "index.html"
    try:
        docs_dir.mkdir(parents=True, exist_ok=True)
        index_path.write_text(render_index(state), encoding="utf-8")
    except OSError as exc:
        raise StorageError(index_path, f"unwritable: {exc}") from exc
    registry_store(docs_dir / "feeds.json").store(registry)
    history_store(docs_dir / "history.json").store(history)

    missing = [name for name in (STYLESHEET, SCRIPT) if not (docs_dir / name).is_file()]
    if missing:
        logger.warning(
            "Site assets missing from %s: %s; tag filters will not work",
            docs_dir,
            ", ".join(missing),
            extra={"missing_assets": missing},
        )

    logger.info(
        "Site built",
        extra={"path": str(index_path), "updates": len(history.updates), "feeds": len(registry.feeds)},
    )
    return index_path


__all__ = ["SiteState", "build_site", "format_date", "render_index", "time_ago"]
