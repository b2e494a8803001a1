"""Key-value backends for durable world storage.

Backends store opaque strings under string keys. Any I/O failure surfaces as
``StorageUnavailable`` so callers only ever handle one error type.
"""

from __future__ import annotations

import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import quote, unquote

from isoworld.core.errors import StorageUnavailable

logger = logging.getLogger(__name__)


class KeyValueBackend(ABC):
    """Minimal durable mapping from string keys to string values."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove *key*; return True if it existed."""

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """Return all keys starting with *prefix*."""


class MemoryBackend(KeyValueBackend):
    """Process-local backend; immediate completion, useful for tests and demos."""

    __slots__ = ("_data", "_lock")

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return [k for k in self._data if k.startswith(prefix)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class FileBackend(KeyValueBackend):
    """One file per key under a root directory.

    File names are the percent-quoted key, so any key maps to exactly one
    flat file name. Writes go through a temp file and ``os.replace``.
    """

    __slots__ = ("_root",)

    _SUFFIX = ".json"

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageUnavailable(f"cannot create storage directory {self._root}: {exc}") from exc

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        return self._root / (quote(key, safe="") + self._SUFFIX)

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageUnavailable(f"read failed for {key!r}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_name(path.name + f".{threading.get_ident()}.tmp")
        try:
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise StorageUnavailable(f"write failed for {key!r}: {exc}") from exc

    def delete(self, key: str) -> bool:
        try:
            self._path(key).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageUnavailable(f"delete failed for {key!r}: {exc}") from exc

    def keys(self, prefix: str = "") -> list[str]:
        try:
            names = [p.name for p in self._root.iterdir() if p.name.endswith(self._SUFFIX)]
        except OSError as exc:
            raise StorageUnavailable(f"cannot list {self._root}: {exc}") from exc
        result = []
        for name in names:
            key = unquote(name[: -len(self._SUFFIX)])
            if key.startswith(prefix):
                result.append(key)
        return result


def create_backend(kind: str, path: str | Path = "saves") -> KeyValueBackend:
    if kind == "memory":
        return MemoryBackend()
    if kind == "file":
        logger.info("Using file storage at %s", Path(path).resolve())
        return FileBackend(path)
    raise ValueError(f"unknown storage backend {kind!r}")
