"""Key-value storage port shared by the durable store and session state."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Protocol

# {key: (old_value, new_value)}; a missing side is None.
StorageChanges = Mapping[str, tuple[Any, Any]]
ChangeListener = Callable[[StorageChanges], None]


class StoragePort(Protocol):
    """Port for a JSON-compatible key-value area."""

    def get(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        """Return the stored values for ``keys`` (all keys when None)."""

    def set(self, values: Mapping[str, Any]) -> None:
        """Write every key in ``values`` in one operation."""

    def remove(self, keys: Iterable[str]) -> None:
        """Delete ``keys``; unknown keys are ignored."""

    def add_change_listener(self, listener: ChangeListener) -> None:
        """Subscribe to the change stream emitted after each write."""
