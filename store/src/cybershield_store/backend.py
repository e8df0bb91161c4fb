"""Durable key-value backends.

A backend holds string values under string keys. Writes replace the whole
value and there is no multi-key transaction.
"""

import logging
import re
import threading
from pathlib import Path
from typing import Protocol

from .errors import QuotaExceededError

logger = logging.getLogger(__name__)

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueBackend(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class MemoryBackend:
    """In-process backend with an optional byte quota."""

    def __init__(self, quota_bytes: int | None = None):
        self._data: dict[str, str] = {}
        self._quota_bytes = quota_bytes
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            if self._quota_bytes is not None:
                others = sum(_entry_size(k, v) for k, v in self._data.items() if k != key)
                needed = others + _entry_size(key, value)
                if needed > self._quota_bytes:
                    raise QuotaExceededError(key, needed, self._quota_bytes)
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)

    def used_bytes(self) -> int:
        with self._lock:
            return sum(_entry_size(k, v) for k, v in self._data.items())


class FileBackend:
    """Stores each key as a file in a directory."""

    def __init__(self, storage_dir: Path, quota_bytes: int | None = DEFAULT_QUOTA_BYTES):
        self._storage_dir = storage_dir
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        self._quota_bytes = quota_bytes
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._storage_dir / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return None
            try:
                return path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                logger.exception("Failed to read %s", path)
                return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        with self._lock:
            if self._quota_bytes is not None:
                needed = self._used_bytes(exclude=key) + _entry_size(key, value)
                if needed > self._quota_bytes:
                    raise QuotaExceededError(key, needed, self._quota_bytes)
            tmp_path = path.with_suffix(".tmp")
            tmp_path.write_text(value, encoding="utf-8")
            tmp_path.replace(path)
        logger.debug("Wrote %d chars to %s", len(value), path.name)

    def remove(self, key: str) -> None:
        path = self._path(key)
        with self._lock:
            path.unlink(missing_ok=True)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(p.stem for p in self._storage_dir.glob("*.json"))

    def used_bytes(self) -> int:
        with self._lock:
            return self._used_bytes()

    def _used_bytes(self, exclude: str | None = None) -> int:
        total = 0
        for path in self._storage_dir.glob("*.json"):
            if path.stem == exclude:
                continue
            total += len(path.stem.encode("utf-8")) + path.stat().st_size
        return total
