"""Crawl orchestration — one sequential pass over every registered feed.

fetch → detect → diff → ledger → snapshot → registry metadata, one feed at a
time, with a fixed delay between feeds. Registry and history are persisted
once, after the whole pass.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol, Tuple

from prometheus_client import write_to_textfile

from mft.config import Settings, settings as default_settings
from mft.core.change_detector import ChangeState, detect_change
from mft.core.diff_engine import diff_texts
from mft.errors import FetchError, SnapshotIOError
from mft.history import build_change_record, existing_ids, record_change, trim
from mft.logging_config import current_feed_id
from mft.metrics import CHANGES_DETECTED_TOTAL, CRAWL_OUTCOMES_TOTAL, REGISTRY
from mft.schemas.feed import Feed, HistoryDocument, RegistryDocument, utc_now_iso
from mft.snapshots import SnapshotStore
from mft.storage import history_store, registry_store
from mft.workers.fetch import FetchResult, Fetcher

logger = logging.getLogger(__name__)


class FetchFn(Protocol):
    def __call__(self, url: str, selector: str = ..., *, feed_id: str = ...) -> FetchResult: ...


@dataclass
class CrawlReport:
    started_at: str
    updated: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    first_seen: List[str] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    def as_dict(self) -> dict:
        return {
            "started_at": self.started_at,
            "updated": self.updated_count,
            "unchanged": len(self.unchanged),
            "first_seen": len(self.first_seen),
            "skipped": [{"feed_id": fid, "reason": reason} for fid, reason in self.skipped],
        }


def _informative_title(title: str, url: str) -> bool:
    text = (title or "").strip()
    return bool(text) and text != url


def process_feed(
    feed: Feed,
    history: HistoryDocument,
    *,
    fetcher: FetchFn,
    snapshots: SnapshotStore,
    now: datetime,
    report: CrawlReport,
    cfg: Settings,
) -> None:
    """Run one feed through the pipeline. Per-feed errors are contained here."""
    now_iso = utc_now_iso(now)
    log_extra = {"feed_id": feed.id}

    invalid = feed.invalid_reason()
    if invalid:
        logger.warning("Skipping %s: %s (%s)", feed.id, invalid, feed.url, extra=log_extra)
        report.skipped.append((feed.id, invalid))
        CRAWL_OUTCOMES_TOTAL.labels(outcome="skipped").inc()
        return

    try:
        result = fetcher(feed.url, feed.selector, feed_id=feed.id)
    except FetchError as exc:
        logger.warning("Skipping %s: fetch failed (%s)", feed.id, exc.reason, extra=log_extra)
        report.skipped.append((feed.id, exc.reason))
        CRAWL_OUTCOMES_TOTAL.labels(outcome="skipped").inc()
        return

    feed.last_checked = now_iso
    if _informative_title(result.title, feed.url):
        feed.title = result.title.strip()

    detection = detect_change(feed.id, result.content, snapshots)

    if detection.state == ChangeState.UNCHANGED:
        logger.info("No change for %s", feed.id, extra=log_extra)
        report.unchanged.append(feed.id)
        CRAWL_OUTCOMES_TOTAL.labels(outcome="unchanged").inc()
        return

    try:
        snapshots.save(feed.id, result.content)
    except SnapshotIOError as exc:
        logger.error("Skipping %s: %s", feed.id, exc.reason, extra=log_extra)
        report.skipped.append((feed.id, exc.reason))
        CRAWL_OUTCOMES_TOTAL.labels(outcome="skipped").inc()
        return

    if detection.state == ChangeState.FIRST_SEEN:
        logger.info("First snapshot stored for %s", feed.id, extra=log_extra)
        report.first_seen.append(feed.id)
        CRAWL_OUTCOMES_TOTAL.labels(outcome="first_seen").inc()
        return

    segments = diff_texts(
        detection.previous or "",
        result.content,
        max_chars=cfg.DIFF_CONTENT_MAX_CHARS,
    )
    record = build_change_record(feed, segments, now, existing_ids(history))
    record_change(history, record, cfg.HISTORY_MAX_ENTRIES)
    feed.last_updated = now_iso

    logger.info(
        "Change detected for %s (%s)",
        feed.id,
        record.diff_summary,
        extra={**log_extra, "record_id": record.id},
    )
    report.updated.append(feed.id)
    CHANGES_DETECTED_TOTAL.labels(feed_id=feed.id).inc()
    CRAWL_OUTCOMES_TOTAL.labels(outcome="updated").inc()


def run_crawl(
    registry: RegistryDocument,
    history: HistoryDocument,
    *,
    fetcher: FetchFn,
    snapshots: SnapshotStore,
    sleep: Callable[[float], None] = time.sleep,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> CrawlReport:
    """Process every feed once, sequentially, mutating the documents in place.

    ``now`` is the single run timestamp stamped on every feed and record.
    """
    cfg = settings or default_settings
    run_at = now or datetime.now(timezone.utc)
    report = CrawlReport(started_at=utc_now_iso(run_at))

    logger.info("Crawl started", extra={"feeds": len(registry.feeds), "started_at": report.started_at})
    for feed in registry.feeds:
        logger.info("Checking %s (%s)", feed.title, feed.url, extra={"feed_id": feed.id})
        token = current_feed_id.set(feed.id)
        try:
            process_feed(
                feed,
                history,
                fetcher=fetcher,
                snapshots=snapshots,
                now=run_at,
                report=report,
                cfg=cfg,
            )
        finally:
            current_feed_id.reset(token)
        sleep(cfg.REQUEST_DELAY_S)

    trim(history, cfg.HISTORY_MAX_ENTRIES)
    logger.info(
        "Crawl finished: %s updated",
        report.updated_count,
        extra={
            "updated": report.updated_count,
            "unchanged": len(report.unchanged),
            "first_seen": len(report.first_seen),
            "skipped": len(report.skipped),
        },
    )
    return report


def crawl_once(
    settings: Optional[Settings] = None,
    *,
    fetcher: Optional[FetchFn] = None,
    sleep: Callable[[float], None] = time.sleep,
    now: Optional[datetime] = None,
) -> CrawlReport:
    """Load documents, run one pass, persist. ``StorageError`` propagates."""
    cfg = settings or default_settings
    registry_docs = registry_store(cfg.feeds_path)
    history_docs = history_store(cfg.history_path)

    registry = registry_docs.load()
    history = history_docs.load()
    snapshots = SnapshotStore(cfg.snapshots_dir)

    if fetcher is None:
        with Fetcher(timeout=cfg.FETCH_TIMEOUT_S) as own_fetcher:
            report = run_crawl(
                registry, history, fetcher=own_fetcher, snapshots=snapshots,
                sleep=sleep, now=now, settings=cfg,
            )
    else:
        report = run_crawl(
            registry, history, fetcher=fetcher, snapshots=snapshots,
            sleep=sleep, now=now, settings=cfg,
        )

    # History before registry, so a stored lastUpdated always has its record.
    history_docs.store(history)
    registry_docs.store(registry)

    if cfg.METRICS_TEXTFILE:
        cfg.METRICS_TEXTFILE.parent.mkdir(parents=True, exist_ok=True)
        write_to_textfile(str(cfg.METRICS_TEXTFILE), REGISTRY)
    return report
