"""Ports consumed by the snooze runtime."""

from tab_snooze.ports.notifications import NotificationPort
from tab_snooze.ports.storage import StoragePort
from tab_snooze.ports.tabs import OpenTarget, TabHostPort

__all__ = [
    "NotificationPort",
    "OpenTarget",
    "StoragePort",
    "TabHostPort",
]
