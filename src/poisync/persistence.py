"""Durable key/value storage adapters.

The state store serializes its data to text blobs and hands them to a
:class:`DurableStore`.  Adapters know nothing about the blob contents.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from poisync.config import PoiSyncConfig
from poisync.exceptions import PoiSyncPersistenceError

_logger = logging.getLogger(__name__)


class DurableStore(Protocol):
    """Opaque blob storage keyed by logical name."""

    def save(self, key: str, value: str) -> None:
        ...

    def load(self, key: str) -> str | None:
        ...

    def clear(self) -> None:
        ...


class MemoryDurableStore:
    """Process-local adapter; useful for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def save(self, key: str, value: str) -> None:
        self._data[key] = value

    def load(self, key: str) -> str | None:
        return self._data.get(key)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileDurableStore:
    """Adapter persisting every key into one JSON object file.

    Writes go to a temporary file in the same directory followed by an
    atomic ``os.replace``, so a crash never leaves a half-written file.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise PoiSyncPersistenceError(f"Cannot read {self._path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PoiSyncPersistenceError(f"{self._path} is not valid JSON") from exc
        if not isinstance(data, dict):
            raise PoiSyncPersistenceError(f"{self._path} does not hold a JSON object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path: Path | None = None
            try:
                with tempfile.NamedTemporaryFile(
                    "w",
                    dir=str(self._path.parent),
                    prefix=f".{self._path.name}.",
                    delete=False,
                    encoding="utf-8",
                ) as tmp:
                    tmp_path = Path(tmp.name)
                    json.dump(data, tmp, ensure_ascii=False, indent=2)
                    tmp.flush()
                    os.fsync(tmp.fileno())
                os.replace(tmp_path, self._path)
            finally:
                if tmp_path is not None:
                    tmp_path.unlink(missing_ok=True)
        except OSError as exc:
            raise PoiSyncPersistenceError(f"Cannot write {self._path}: {exc}") from exc
        _logger.debug("Wrote %d keys to %s", len(data), self._path)

    def save(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def load(self, key: str) -> str | None:
        return self._read_all().get(key)

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            raise PoiSyncPersistenceError(f"Cannot remove {self._path}: {exc}") from exc


def durable_store_from_config(config: PoiSyncConfig) -> DurableStore:
    """JSON file adapter at ``config.storage_path``; in-memory when unset."""
    if config.storage_path:
        return JsonFileDurableStore(config.storage_path)
    return MemoryDurableStore()
