from __future__ import annotations

from pathlib import Path

from mft.core.change_detector import ChangeState, classify, content_hash, detect_change
from mft.snapshots import SnapshotStore


def test_content_hash_is_deterministic() -> None:
    text = "Hello\nWorld\n日本語"
    assert content_hash(text) == content_hash(text)
    assert len(content_hash(text)) == 64


def test_content_hash_differs_for_different_text() -> None:
    assert content_hash("Hello") != content_hash("Hello ")


def test_classify_first_seen_without_previous() -> None:
    detection = classify(None, "anything")
    assert detection.state == ChangeState.FIRST_SEEN
    assert detection.previous is None


def test_classify_unchanged_and_changed() -> None:
    assert classify("same", "same").state == ChangeState.UNCHANGED
    changed = classify("before", "after")
    assert changed.state == ChangeState.CHANGED
    assert changed.previous == "before"
    assert changed.current_hash == content_hash("after")


def test_empty_previous_snapshot_is_not_first_seen() -> None:
    assert classify("", "now there is text").state == ChangeState.CHANGED


def test_detect_change_reads_store(tmp_path: Path) -> None:
    store = SnapshotStore(tmp_path / "snapshots")
    assert detect_change("feed-a", "v1", store).state == ChangeState.FIRST_SEEN

    store.save("feed-a", "v1")
    assert detect_change("feed-a", "v1", store).state == ChangeState.UNCHANGED
    assert detect_change("feed-a", "v2", store).state == ChangeState.CHANGED


def test_unreadable_snapshot_is_treated_as_first_seen(tmp_path: Path) -> None:
    store = SnapshotStore(tmp_path / "snapshots")
    # A directory where the snapshot file should be makes the read fail.
    store.path_for("feed-a").mkdir(parents=True)
    assert detect_change("feed-a", "v1", store).state == ChangeState.FIRST_SEEN
