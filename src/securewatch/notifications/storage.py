"""Durable key/value storage for client-side notification state.

One JSON file per key under a storage directory. Writes go through a
temporary file and an atomic replace; a file lock guards each key against
concurrent processes sharing the directory.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from filelock import FileLock, Timeout

from securewatch.errors import PersistenceError

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """persist/load/remove contract used by the dismissal store."""

    def persist(self, key: str, value: Any) -> None:
        ...

    def load(self, key: str) -> Optional[Any]:
        ...

    def remove(self, key: str) -> None:
        ...


class JsonFileStorage:
    """File-backed storage (default: ~/.securewatch/notifications/)."""

    DEFAULT_STORAGE_DIR = "~/.securewatch/notifications"

    def __init__(self, storage_dir: Optional[Path] = None, lock_timeout: float = 10):
        """Initialize storage.

        Args:
            storage_dir: Directory holding one ``<key>.json`` file per key
            lock_timeout: Seconds to wait for a file lock
        """
        self.storage_dir = Path(storage_dir or self.DEFAULT_STORAGE_DIR).expanduser()
        self._lock_timeout = lock_timeout

    def _path(self, key: str) -> Path:
        return self.storage_dir / f"{key}.json"

    def _lock(self, key: str) -> FileLock:
        return FileLock(str(self.storage_dir / f"{key}.lock"), timeout=self._lock_timeout)

    def persist(self, key: str, value: Any) -> None:
        """Write ``value`` as JSON under ``key``.

        Raises:
            PersistenceError: If the directory or file cannot be written
        """
        path = self._path(key)
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            with self._lock(key):
                tmp_path = path.with_suffix(".tmp")
                tmp_path.write_text(json.dumps(value, indent=2))
                os.replace(tmp_path, path)
        except (OSError, Timeout, TypeError) as e:
            raise PersistenceError(f"Failed to persist {key}: {e}", key=key) from e

    def load(self, key: str) -> Optional[Any]:
        """Read the value stored under ``key``, or None if absent.

        Raises:
            PersistenceError: If the record cannot be checked, read or parsed
        """
        path = self._path(key)
        try:
            if not path.exists():
                return None
            with self._lock(key):
                return json.loads(path.read_text())
        except (OSError, Timeout, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to load {key}: {e}", key=key) from e

    def remove(self, key: str) -> None:
        """Delete the record for ``key``; missing records are ignored."""
        path = self._path(key)
        try:
            if not path.exists():
                return
            with self._lock(key):
                path.unlink(missing_ok=True)
        except (OSError, Timeout) as e:
            raise PersistenceError(f"Failed to remove {key}: {e}", key=key) from e


class MemoryStorage:
    """Process-local storage, used when nothing should touch the disk."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.persist(key, value)

    def persist(self, key: str, value: Any) -> None:
        # Stored serialized so callers never share mutable state with us
        self._data[key] = json.dumps(value)

    def load(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data
