"""Error taxonomy for the crawl pipeline.

Per-source errors (``FetchError``, ``SnapshotIOError``) are caught by the
crawler and never abort a pass; ``StorageError`` is fatal for the run.
"""
from __future__ import annotations


class MftError(Exception):
    """Base class for all crawler errors."""


class FetchError(MftError):
    """Network, timeout or non-success HTTP status while fetching a page."""

    def __init__(
        self,
        url: str,
        *,
        status_code: int | None = None,
        error_class: str | None = None,
        reason: str = "",
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.error_class = error_class or ("HTTPStatusError" if status_code else "FetchError")
        self.reason = reason or (f"HTTP {status_code}" if status_code else self.error_class)
        super().__init__(f"{url}: {self.reason}")


class ParseError(MftError):
    """Markup or selector could not be evaluated."""


class StorageError(MftError):
    """Registry or history document could not be read or written."""

    def __init__(self, path: object, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class SnapshotIOError(MftError):
    """Snapshot read/write failure for a single feed."""

    def __init__(self, feed_id: str, reason: str) -> None:
        self.feed_id = feed_id
        self.reason = reason
        super().__init__(f"snapshot {feed_id}: {reason}")
