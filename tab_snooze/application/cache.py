"""Read-through mirror of selected store keys, fed by the change stream."""

from __future__ import annotations

import copy
from threading import Lock
from typing import Any, Callable, Iterable

from tab_snooze.ports.storage import StorageChanges, StoragePort

MirrorListener = Callable[[dict[str, Any]], None]


class StoreMirror:
    """Keeps a private copy of ``keys`` for UI-facing readers.

    The copy is primed once from the store and afterwards updated only from
    change notifications, so readers never take the runtime lock.
    """

    __slots__ = ("_keys", "_values", "_listeners", "_lock")

    def __init__(self, store: StoragePort, keys: Iterable[str]) -> None:
        self._keys = frozenset(keys)
        self._values: dict[str, Any] = {}
        self._listeners: list[MirrorListener] = []
        self._lock = Lock()
        store.add_change_listener(self._on_changes)
        with self._lock:
            self._values = store.get(sorted(self._keys))

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return copy.deepcopy(self._values.get(key, default))

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._values)

    def add_listener(self, listener: MirrorListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def _on_changes(self, changes: StorageChanges) -> None:
        relevant = {key: new for key, (_, new) in changes.items() if key in self._keys}
        if not relevant:
            return
        with self._lock:
            for key, new in relevant.items():
                if new is None:
                    self._values.pop(key, None)
                else:
                    self._values[key] = copy.deepcopy(new)
            snapshot = copy.deepcopy(self._values)
            listeners = list(self._listeners)
        for listener in listeners:
            listener(snapshot)
