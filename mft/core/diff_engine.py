"""Line-level diff between two snapshots.

Both texts are split into lines and diffed with ``difflib.SequenceMatcher``.
Runs of lines that share an opcode become one part, in diff order; a
``replace`` opcode yields its removed part before its added part.
"""
from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from mft.schemas.feed import DiffSegment, DiffType

UNCHANGED = "unchanged"
ADDED = DiffType.ADDED.value
REMOVED = DiffType.REMOVED.value

DEFAULT_MAX_CHARS = 500
DEFAULT_PREVIEW = 5


@dataclass(frozen=True)
class DiffPart:
    kind: str
    lines: tuple[str, ...]

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


def compute_diff(old_text: str, new_text: str) -> List[DiffPart]:
    """Full diff including unchanged runs."""
    old_lines = (old_text or "").splitlines()
    new_lines = (new_text or "").splitlines()
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    parts: list[DiffPart] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            parts.append(DiffPart(UNCHANGED, tuple(old_lines[i1:i2])))
            continue
        if tag in ("delete", "replace"):
            parts.append(DiffPart(REMOVED, tuple(old_lines[i1:i2])))
        if tag in ("insert", "replace"):
            parts.append(DiffPart(ADDED, tuple(new_lines[j1:j2])))
    return parts


def changed_segments(parts: Iterable[DiffPart], max_chars: int = DEFAULT_MAX_CHARS) -> List[DiffSegment]:
    """Added/removed parts only, interleaved as they occur, each text clipped."""
    return [
        DiffSegment(type=DiffType(part.kind), content=part.text[:max_chars])
        for part in parts
        if part.kind != UNCHANGED
    ]


def diff_texts(old_text: str, new_text: str, max_chars: int = DEFAULT_MAX_CHARS) -> List[DiffSegment]:
    return changed_segments(compute_diff(old_text, new_text), max_chars=max_chars)


def count_segments(segments: Sequence[DiffSegment]) -> tuple[int, int]:
    added = sum(1 for s in segments if s.type == DiffType.ADDED)
    removed = sum(1 for s in segments if s.type == DiffType.REMOVED)
    return added, removed


def summarize(segments: Sequence[DiffSegment]) -> str:
    added, removed = count_segments(segments)
    return f"+{added}件 / -{removed}件"


def preview(segments: Sequence[DiffSegment], limit: int = DEFAULT_PREVIEW) -> List[DiffSegment]:
    """First ``limit`` segments, for display only."""
    return list(segments[: max(0, limit)])
