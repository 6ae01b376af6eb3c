"""Terminal notification adapter using timer threads + stdout/bell."""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock, Timer
from typing import Sequence
from uuid import uuid4

from tab_snooze.ports.notifications import ButtonListener, ClosedListener, NotificationPort


class TerminalNotifier(NotificationPort):
    """Simple notification adapter for local terminal usage.

    Notifications stay active until ``click``/``close`` is called (for example
    from the HTTP service) or until the optional auto-close timeout fires,
    which reports a close that was not made by the user.
    """

    __slots__ = (
        "_enable_bell",
        "_timeout_seconds",
        "_active",
        "_timers",
        "_button_listeners",
        "_closed_listeners",
        "_lock",
    )

    def __init__(self, enable_bell: bool = False, timeout_seconds: float = 0) -> None:
        self._enable_bell = enable_bell
        self._timeout_seconds = timeout_seconds
        self._active: dict[str, tuple[str, str, tuple[str, ...]]] = {}
        self._timers: dict[str, Timer] = {}
        self._button_listeners: list[ButtonListener] = []
        self._closed_listeners: list[ClosedListener] = []
        self._lock = Lock()

    def create(
        self,
        title: str,
        message: str,
        buttons: Sequence[str] = (),
        notification_id: str | None = None,
    ) -> str:
        notification_id = notification_id or str(uuid4())
        with self._lock:
            self._active[notification_id] = (title, message, tuple(buttons))

        now = datetime.now(timezone.utc).isoformat(timespec="seconds")
        print(f"[{now}] [{notification_id}] {title}: {message}")
        for index, label in enumerate(buttons):
            print(f"    [{index}] {label}")
        if self._enable_bell:
            print("\a", end="")

        if self._timeout_seconds > 0:
            timer = Timer(self._timeout_seconds, self._expire, args=(notification_id,))
            timer.daemon = True
            with self._lock:
                self._timers[notification_id] = timer
            timer.start()
        return notification_id

    def get_all_active(self) -> list[str]:
        with self._lock:
            return list(self._active)

    def clear(self, notification_id: str) -> None:
        self._forget(notification_id)

    def add_button_listener(self, listener: ButtonListener) -> None:
        with self._lock:
            self._button_listeners.append(listener)

    def add_closed_listener(self, listener: ClosedListener) -> None:
        with self._lock:
            self._closed_listeners.append(listener)

    def click(self, notification_id: str, button_index: int) -> None:
        """Deliver a button press as if the user clicked it."""
        with self._lock:
            if notification_id not in self._active:
                raise KeyError(f"Unknown notification id: {notification_id}")
            listeners = list(self._button_listeners)
        for listener in listeners:
            listener(notification_id, button_index)

    def close(self, notification_id: str, *, by_user: bool = True) -> None:
        if not self._forget(notification_id):
            raise KeyError(f"Unknown notification id: {notification_id}")
        with self._lock:
            listeners = list(self._closed_listeners)
        for listener in listeners:
            listener(notification_id, by_user)

    def shutdown(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def _forget(self, notification_id: str) -> bool:
        with self._lock:
            known = self._active.pop(notification_id, None) is not None
            timer = self._timers.pop(notification_id, None)
        if timer is not None:
            timer.cancel()
        return known

    def _expire(self, notification_id: str) -> None:
        try:
            self.close(notification_id, by_user=False)
        except KeyError:
            return
