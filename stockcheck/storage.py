"""Async key/value stores holding the persisted dataset, ledger, mapping and UI blobs."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Protocol

from .errors import StorageError

logger = logging.getLogger(__name__)

KEYS = {
    "dataset": "dataset_v1",
    "scanned": "scanned_v1",
    "mapping": "mapping_v1",
    "ui": "ui_v2",
}

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(Protocol):
    """Opaque async get/set/delete capability; values are JSON-compatible."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store that copies values on the way in and out."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileStore:
    """Store each key as one JSON file under `directory`.

    Writes go to a temporary file that replaces the target, so each blob is
    written atomically. File I/O runs in a worker thread.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Any | None:
        path = self._path(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("Failed to read %s: %s", path, exc)
            raise StorageError(key, f"read failed: {exc}") from exc
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            logger.error("Stored blob %s is not valid JSON: %s", path, exc)
            raise StorageError(key, f"invalid JSON: {exc}") from exc

    def _write(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(value, handle, ensure_ascii=False, sort_keys=True)
                    handle.write("\n")
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.error("Failed to write %s: %s", path, exc)
            raise StorageError(key, f"write failed: {exc}") from exc

    def _delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to delete %s: %s", path, exc)
            raise StorageError(key, f"delete failed: {exc}") from exc

    async def get(self, key: str) -> Any | None:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)
