"""Notification port abstractions for snooze adapters."""

from __future__ import annotations

from typing import Callable, Protocol, Sequence

ButtonListener = Callable[[str, int], None]
ClosedListener = Callable[[str, bool], None]


class NotificationPort(Protocol):
    """Port for showing actionable notifications and receiving responses."""

    def create(
        self,
        title: str,
        message: str,
        buttons: Sequence[str] = (),
        notification_id: str | None = None,
    ) -> str:
        """Show a notification and return its id."""

    def get_all_active(self) -> list[str]:
        """Ids of notifications still visible to the user."""

    def clear(self, notification_id: str) -> None:
        """Dismiss a notification without reporting a user close."""

    def add_button_listener(self, listener: ButtonListener) -> None:
        """Subscribe to ``(notification_id, button_index)`` clicks."""

    def add_closed_listener(self, listener: ClosedListener) -> None:
        """Subscribe to ``(notification_id, by_user)`` closes."""
