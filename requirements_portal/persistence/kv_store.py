"""
Key-Value Store — the client's durable local storage for drafts.

Two backends, chosen by ``storage_backend``:
  - "memory": a dict, lost when the process exits (tests, one-shot CLI runs)
  - "local":  a single JSON file on disk, shared by every session of the user
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from requirements_portal.config import Settings, get_settings

logger = logging.getLogger(__name__)


class StorageQuotaExceeded(OSError):
    """Raised when a write would push the store past its byte quota."""


class KeyValueStore(ABC):
    """String keys to string values, like a browser's localStorage."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        ...

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class MemoryKeyValueStore(KeyValueStore):
    """In-process store with an optional quota counted in characters."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Store values must be str, got {type(value).__name__}")
        if self.quota_bytes is not None:
            projected = self.used_bytes() - self._entry_size(key) + len(key) + len(value)
            if projected > self.quota_bytes:
                raise StorageQuotaExceeded(
                    f"Writing {key!r} needs {projected} bytes, quota is {self.quota_bytes}"
                )
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def used_bytes(self) -> int:
        return sum(len(k) + len(v) for k, v in self._data.items())

    def _entry_size(self, key: str) -> int:
        if key not in self._data:
            return 0
        return len(key) + len(self._data[key])


class JsonFileKeyValueStore(MemoryKeyValueStore):
    """Memory store mirrored to a JSON file after every write."""

    def __init__(self, path: str | Path, quota_bytes: Optional[int] = None):
        super().__init__(quota_bytes=quota_bytes)
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._load()

    def set(self, key: str, value: str) -> None:
        previous = self._data.get(key)
        super().set(key, value)
        try:
            self._flush()
        except OSError:
            # Keep memory and disk in agreement
            if previous is None:
                self._data.pop(key, None)
            else:
                self._data[key] = previous
            raise

    def remove(self, key: str) -> None:
        if key not in self._data:
            return
        super().remove(key)
        self._flush()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Ignoring unreadable store file {self.path}: {exc}")
            return
        if isinstance(raw, dict):
            self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}
            logger.debug(f"Loaded {len(self._data)} keys from {self.path}")

    def _flush(self) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data), encoding="utf-8")
        os.replace(tmp, self.path)


def create_store(settings: Settings | None = None) -> KeyValueStore:
    """Build the configured key-value store."""
    settings = settings or get_settings()
    if settings.storage_backend == "memory":
        return MemoryKeyValueStore(quota_bytes=settings.storage_quota_bytes)
    if settings.storage_backend == "local":
        return JsonFileKeyValueStore(
            settings.local_storage_path, quota_bytes=settings.storage_quota_bytes
        )
    raise NotImplementedError(f"Storage backend '{settings.storage_backend}' not implemented")
