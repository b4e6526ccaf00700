"""History ledger — bounded, newest-first list of change records."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Sequence

from mft.core.diff_engine import summarize
from mft.metrics import HISTORY_ENTRIES_GAUGE
from mft.schemas.feed import ChangeRecord, DiffSegment, Feed, HistoryDocument, utc_now_iso

logger = logging.getLogger(__name__)


def record_id(feed_id: str, detected_at: datetime, existing_ids: Iterable[str] = ()) -> str:
    """``<feed id>-<epoch ms>``, suffixed when that id is already taken."""
    base = f"{feed_id}-{int(detected_at.timestamp() * 1000)}"
    taken = set(existing_ids)
    candidate = base
    n = 1
    while candidate in taken:
        n += 1
        candidate = f"{base}-{n}"
    return candidate


def build_change_record(
    feed: Feed,
    segments: Sequence[DiffSegment],
    detected_at: datetime | None = None,
    existing_ids: Iterable[str] = (),
) -> ChangeRecord:
    when = detected_at or datetime.now(timezone.utc)
    return ChangeRecord(
        id=record_id(feed.id, when, existing_ids),
        feed_id=feed.id,
        feed_title=feed.title,
        url=feed.url,
        tags=list(feed.tags),
        detected_at=utc_now_iso(when),
        diff=list(segments),
        diff_summary=summarize(segments),
    )


def trim(history: HistoryDocument, cap: int) -> int:
    """Drop the oldest entries beyond ``cap``; return how many were dropped."""
    cap = max(0, int(cap))
    dropped = max(0, len(history.updates) - cap)
    if dropped:
        history.updates = history.updates[:cap]
        logger.debug("History trimmed by %s entries (cap=%s)", dropped, cap)
    HISTORY_ENTRIES_GAUGE.set(len(history.updates))
    return dropped


def record_change(history: HistoryDocument, record: ChangeRecord, cap: int) -> None:
    """Prepend ``record`` and enforce the cap."""
    history.updates.insert(0, record)
    trim(history, cap)


def existing_ids(history: HistoryDocument) -> set[str]:
    return {u.id for u in history.updates}
