"""Storage adapters: one JSON object file on disk, or a plain in-memory dict."""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from threading import RLock
from typing import Any, Iterable, Mapping

from tab_snooze.ports.storage import ChangeListener, StoragePort

logger = logging.getLogger(__name__)

_MISSING = object()


class MemoryStore(StoragePort):
    """In-process key-value area used for session state and in tests."""

    __slots__ = ("_data", "_listeners", "_lock")

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(initial or {}))
        self._listeners: list[ChangeListener] = []
        self._lock = RLock()

    def get(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        with self._lock:
            if keys is None:
                return copy.deepcopy(self._data)
            return {key: copy.deepcopy(self._data[key]) for key in keys if key in self._data}

    def set(self, values: Mapping[str, Any]) -> None:
        with self._lock:
            staged = dict(self._data)
            changes: dict[str, tuple[Any, Any]] = {}
            for key, value in values.items():
                old = staged.get(key, _MISSING)
                new = copy.deepcopy(value)
                if old is not _MISSING and old == new:
                    continue
                changes[key] = (None if old is _MISSING else old, new)
                staged[key] = new
            if changes:
                self._commit(staged)
                self._data = staged
        self._emit(changes)

    def remove(self, keys: Iterable[str]) -> None:
        with self._lock:
            staged = dict(self._data)
            changes: dict[str, tuple[Any, Any]] = {}
            for key in keys:
                if key in staged:
                    changes[key] = (staged.pop(key), None)
            if changes:
                self._commit(staged)
                self._data = staged
        self._emit(changes)

    def add_change_listener(self, listener: ChangeListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def _commit(self, data: dict[str, Any]) -> None:
        """Persist ``data`` before it becomes visible; raising aborts the write."""

    def _emit(self, changes: dict[str, tuple[Any, Any]]) -> None:
        if not changes:
            return
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(copy.deepcopy(changes))


class JsonFileStore(MemoryStore):
    """Durable key-value area persisted to a single JSON object file.

    Writes go to a sibling temp file which then replaces the target, so a
    crash mid-write leaves the previous file intact. A missing, unreadable or
    non-object file loads as an empty store.
    """

    __slots__ = ("_path",)

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser().resolve()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(self._read_json_object(self._path))

    @property
    def path(self) -> Path:
        return self._path

    def _commit(self, data: dict[str, Any]) -> None:
        self._write_json_atomic(self._path, data)

    @staticmethod
    def _write_json_atomic(path: Path, payload: Any) -> None:
        serialized = json.dumps(payload, indent=2, sort_keys=True)
        temp_path = path.with_suffix(f"{path.suffix}.tmp")
        temp_path.write_text(serialized, encoding="utf-8")
        temp_path.replace(path)

    @staticmethod
    def _read_json_object(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable store file %s", path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring store file %s: top level is not an object", path)
            return {}
        return data
