"""JSON document store for the registry (feeds.json) and history (history.json)."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Type, TypeVar

from pydantic import ValidationError

from mft.errors import StorageError
from mft.schemas.feed import HistoryDocument, RegistryDocument, JsonDocument

logger = logging.getLogger(__name__)

DocT = TypeVar("DocT", bound=JsonDocument)


class JsonDocumentStore:
    """Load and persist one pydantic document as pretty-printed JSON.

    A missing file loads as an empty document. Anything else that prevents
    reading or writing raises :class:`StorageError`.
    """

    def __init__(self, path: Path, model: Type[DocT], *, logger: Optional[logging.Logger] = None) -> None:
        self._path = Path(path)
        self._model = model
        self._logger = logger or logging.getLogger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> DocT:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._logger.info("Document %s not found, starting empty", self._path)
            return self._model()
        except OSError as exc:
            raise StorageError(self._path, f"unreadable: {exc}") from exc

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageError(self._path, f"invalid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise StorageError(self._path, "root is not an object")

        try:
            return self._model.model_validate(payload)
        except ValidationError as exc:
            raise StorageError(self._path, f"invalid document: {exc}") from exc

    def store(self, document: DocT) -> None:
        """Persist ``document`` atomically (temp file + rename)."""
        text = json.dumps(document.to_json_dict(), ensure_ascii=False, indent=2) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(text)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(self._path, f"unwritable: {exc}") from exc


def registry_store(path: Path) -> JsonDocumentStore:
    return JsonDocumentStore(path, RegistryDocument)


def history_store(path: Path) -> JsonDocumentStore:
    return JsonDocumentStore(path, HistoryDocument)


__all__ = ["JsonDocumentStore", "history_store", "registry_store"]
