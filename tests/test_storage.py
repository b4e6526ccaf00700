from __future__ import annotations

import json
from pathlib import Path

import pytest

from mft.errors import SnapshotIOError, StorageError
from mft.schemas.feed import Feed, HistoryDocument, RegistryDocument
from mft.snapshots import SnapshotStore
from mft.storage import history_store, registry_store


def test_missing_documents_load_empty(tmp_path: Path) -> None:
    assert registry_store(tmp_path / "feeds.json").load() == RegistryDocument()
    assert history_store(tmp_path / "history.json").load() == HistoryDocument()


def test_registry_round_trip_keeps_camel_case_on_disk(tmp_path: Path) -> None:
    path = tmp_path / "data" / "feeds.json"
    doc = RegistryDocument(
        feeds=[Feed(id="f1", url="https://example.com", title="日本語サイト", tags=["tech"], lastChecked=None)],
        tags=["tech"],
    )
    registry_store(path).store(doc)

    raw = path.read_text(encoding="utf-8")
    assert "日本語サイト" in raw
    payload = json.loads(raw)
    assert set(payload["feeds"][0]) >= {"addedAt", "lastChecked", "lastUpdated", "selector"}
    assert registry_store(path).load() == doc
    assert not list(path.parent.glob(".feeds.json.*"))


def test_invalid_json_is_storage_error(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    path.write_text("{broken", encoding="utf-8")
    with pytest.raises(StorageError):
        history_store(path).load()


def test_non_object_root_is_storage_error(tmp_path: Path) -> None:
    path = tmp_path / "feeds.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(StorageError):
        registry_store(path).load()


def test_duplicate_feed_ids_are_storage_error(tmp_path: Path) -> None:
    path = tmp_path / "feeds.json"
    feed = {"id": "dup", "url": "https://example.com"}
    path.write_text(json.dumps({"feeds": [feed, feed], "tags": []}), encoding="utf-8")
    with pytest.raises(StorageError):
        registry_store(path).load()


def test_unwritable_target_is_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    with pytest.raises(StorageError):
        history_store(blocker / "history.json").store(HistoryDocument())


def test_snapshot_store_round_trip(tmp_path: Path) -> None:
    store = SnapshotStore(tmp_path / "snapshots")
    assert store.load("a") is None
    store.save("a", "line 1\nline 2")
    assert store.path_for("a") == tmp_path / "snapshots" / "a.txt"
    assert store.load("a") == "line 1\nline 2"
    store.save("a", "replaced")
    assert store.load("a") == "replaced"


def test_snapshot_read_failure_raises_snapshot_io_error(tmp_path: Path) -> None:
    store = SnapshotStore(tmp_path)
    store.path_for("a").mkdir()
    with pytest.raises(SnapshotIOError):
        store.load("a")


def test_unknown_keys_survive_load_and_store(tmp_path: Path) -> None:
    path = tmp_path / "feeds.json"
    path.write_text(
        json.dumps(
            {
                "version": 2,
                "feeds": [{"id": "a", "url": "https://a.example.com/", "note": "keep me"}],
                "tags": [],
            }
        ),
        encoding="utf-8",
    )
    store = registry_store(path)
    store.store(store.load())

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["version"] == 2
    assert payload["feeds"][0]["note"] == "keep me"


def test_history_records_keep_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    record = {
        "id": "a-1",
        "feedId": "a",
        "feedTitle": "A",
        "url": "https://a.example.com/",
        "detectedAt": "2025-01-01T00:00:00.000Z",
        "diff": [],
        "diffSummary": "+0件 / -0件",
        "pinned": True,
    }
    path.write_text(json.dumps({"updates": [record]}), encoding="utf-8")
    store = history_store(path)
    store.store(store.load())

    assert json.loads(path.read_text(encoding="utf-8"))["updates"][0]["pinned"] is True


def test_registry_with_invalid_entry_still_loads(tmp_path: Path) -> None:
    path = tmp_path / "feeds.json"
    path.write_text(
        json.dumps(
            {
                "feeds": [
                    {"id": "bad", "url": "ftp://files.example.com/x"},
                    {"id": "ok", "url": "https://ok.example.com/"},
                ]
            }
        ),
        encoding="utf-8",
    )
    registry = registry_store(path).load()
    assert [f.invalid_reason() for f in registry.feeds] == ["invalid url", None]
