"""Registry and history documents — the on-disk JSON shapes.

Field names on disk stay camelCase (``lastChecked``, ``feedTitle``...) so the
rendered site and existing data files keep working; Python code uses the
snake_case attribute names.
"""
from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DEFAULT_SELECTOR = "body"


def utc_now_iso(now: datetime | None = None) -> str:
    """ISO-8601 UTC with millisecond precision and ``Z`` suffix."""
    value = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def is_http_url(url: str) -> bool:
    parsed = urlparse(url or "")
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _dedupe(values: List[str]) -> List[str]:
    seen: list[str] = []
    for raw in values or []:
        text = str(raw).strip()
        if text and text not in seen:
            seen.append(text)
    return seen


class JsonDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Feed(JsonDocument):
    """A tracked page (registry entry)."""

    id: str
    url: str
    title: str = ""
    selector: str = DEFAULT_SELECTOR
    tags: List[str] = Field(default_factory=list)
    added_at: Optional[str] = Field(default=None, alias="addedAt")
    last_checked: Optional[str] = Field(default=None, alias="lastChecked")
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")

    @field_validator("id", "url", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> str:
        return str(v if v is not None else "").strip()

    @field_validator("selector", mode="before")
    @classmethod
    def default_selector(cls, v: object) -> str:
        return str(v).strip() if v and str(v).strip() else DEFAULT_SELECTOR

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: object) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return _dedupe(list(v))

    @model_validator(mode="after")
    def default_title(self) -> "Feed":
        if not self.title.strip():
            self.title = self.url
        return self

    def invalid_reason(self) -> str | None:
        """Why this entry cannot be crawled, or ``None`` when it can.

        The registry still loads with such entries; the crawl skips them.
        """
        if not self.id or "/" in self.id or "\\" in self.id or self.id in {".", ".."}:
            return "invalid id"
        if not is_http_url(self.url):
            return "invalid url"
        return None


class DiffType(str, enum.Enum):
    ADDED = "added"
    REMOVED = "removed"


class DiffSegment(JsonDocument):
    type: DiffType
    content: str


class ChangeRecord(JsonDocument):
    """One detected change, denormalized from the feed at detection time."""

    id: str
    feed_id: str = Field(alias="feedId")
    feed_title: str = Field(alias="feedTitle")
    url: str
    tags: List[str] = Field(default_factory=list)
    detected_at: str = Field(alias="detectedAt")
    diff: List[DiffSegment] = Field(default_factory=list)
    diff_summary: str = Field(default="", alias="diffSummary")


class RegistryDocument(JsonDocument):
    feeds: List[Feed] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: object) -> List[str]:
        return _dedupe(list(v or []))

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "RegistryDocument":
        ids = [feed.id for feed in self.feeds]
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        if dupes:
            raise ValueError(f"Duplicate feed ids: {', '.join(dupes)}")
        return self

    def get(self, feed_id: str) -> Feed | None:
        return next((f for f in self.feeds if f.id == feed_id), None)

    def has_url(self, url: str) -> bool:
        return any(f.url == url for f in self.feeds)


class HistoryDocument(JsonDocument):
    updates: List[ChangeRecord] = Field(default_factory=list)
