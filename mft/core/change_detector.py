"""Snapshot comparison: first-seen / unchanged / changed."""
from __future__ import annotations

import enum
import hashlib
import logging
from dataclasses import dataclass

from mft.errors import SnapshotIOError
from mft.snapshots import SnapshotStore

logger = logging.getLogger(__name__)


class ChangeState(str, enum.Enum):
    FIRST_SEEN = "first_seen"
    UNCHANGED = "unchanged"
    CHANGED = "changed"


@dataclass(frozen=True)
class Detection:
    state: ChangeState
    current_hash: str
    previous: str | None = None


def content_hash(text: str) -> str:
    """SHA-256 of the UTF-8 text."""
    return hashlib.sha256((text or "").encode("utf-8")).hexdigest()


def classify(previous: str | None, current: str) -> Detection:
    current_hash = content_hash(current)
    if previous is None:
        return Detection(ChangeState.FIRST_SEEN, current_hash)
    if content_hash(previous) == current_hash:
        return Detection(ChangeState.UNCHANGED, current_hash, previous)
    return Detection(ChangeState.CHANGED, current_hash, previous)


def detect_change(feed_id: str, current: str, store: SnapshotStore) -> Detection:
    """Compare ``current`` with the stored snapshot for ``feed_id``.

    An unreadable snapshot is treated as missing, so the feed is re-baselined
    instead of producing a bogus diff.
    """
    try:
        previous = store.load(feed_id)
    except SnapshotIOError as exc:
        logger.warning(
            "Snapshot unreadable for %s, treating as first fetch: %s",
            feed_id,
            exc.reason,
            extra={"feed_id": feed_id},
        )
        previous = None
    return classify(previous, current)
