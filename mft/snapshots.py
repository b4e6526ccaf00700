"""Snapshot store — latest extracted text per feed, one text file per feed id."""
from __future__ import annotations

import logging
from pathlib import Path

from mft.errors import SnapshotIOError

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Keeps only the most recent snapshot; no versioning."""

    def __init__(self, directory: Path) -> None:
        self._dir = Path(directory)

    def path_for(self, feed_id: str) -> Path:
        return self._dir / f"{feed_id}.txt"

    def load(self, feed_id: str) -> str | None:
        """Return the stored text, or ``None`` when the feed was never fetched."""
        path = self.path_for(feed_id)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise SnapshotIOError(feed_id, f"read failed: {exc}") from exc

    def save(self, feed_id: str, content: str) -> None:
        path = self.path_for(feed_id)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise SnapshotIOError(feed_id, f"write failed: {exc}") from exc
