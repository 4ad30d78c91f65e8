"""
storage.py

Key/value persistence backends for the token store.
MemoryStorage keeps values in a dict (tests, throwaway sessions);
JsonFileStorage keeps them in a JSON file that survives restarts.
Part of JobTrack — Personal Job Application Tracker.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Mapping

_log = logging.getLogger("jobtrack.auth.storage")


class KeyValueStorage(ABC):
    """
    String key/value persistence used by TokenStore.

    Implementations must apply each set_many and delete_many call as a
    single write, so readers never observe half of an update.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value for key, or None if absent."""
        ...

    @abstractmethod
    def set_many(self, values: Mapping[str, str], delete: Iterable[str] = ()) -> None:
        """Write every key in values and remove every key in delete, in one operation."""
        ...

    @abstractmethod
    def delete_many(self, keys: Iterable[str]) -> None:
        """Remove every key in keys; missing keys are ignored."""
        ...


class MemoryStorage(KeyValueStorage):
    """In-process storage backed by a dict."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set_many(self, values: Mapping[str, str], delete: Iterable[str] = ()) -> None:
        with self._lock:
            for key in delete:
                self._data.pop(key, None)
            self._data.update(values)

    def delete_many(self, keys: Iterable[str]) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Return a copy of everything stored."""
        with self._lock:
            return dict(self._data)


class JsonFileStorage(KeyValueStorage):
    """
    Storage backed by a single JSON object on disk.

    Writes go to a temporary sibling file which then replaces the target,
    so a crash mid-write leaves the previous content intact.

    Args:
        path: Location of the JSON file. Parent directories are created on write.

    Example:
        storage = JsonFileStorage(Path(".jobtrack/auth/tokens.json"))
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        """Read the JSON payload; unreadable or malformed files count as empty."""
        if not self.path.exists():
            return {}

        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            _log.error("Failed to read token file %s: %s", self.path, exc)
            return {}

        if not isinstance(payload, dict):
            _log.error("Token file %s does not hold a JSON object", self.path)
            return {}

        return {str(k): str(v) for k, v in payload.items() if v is not None}

    def _write(self, payload: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(f"{self.path.name}.tmp")
        temp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        temp_path.replace(self.path)

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read().get(key)

    def set_many(self, values: Mapping[str, str], delete: Iterable[str] = ()) -> None:
        with self._lock:
            payload = self._read()
            for key in delete:
                payload.pop(key, None)
            payload.update(values)
            self._write(payload)

    def delete_many(self, keys: Iterable[str]) -> None:
        with self._lock:
            if not self.path.exists():
                return
            payload = self._read()
            for key in keys:
                payload.pop(key, None)
            if payload:
                self._write(payload)
            else:
                self.path.unlink()
