"""Host surfaces for the snooze runtime."""

from tab_snooze.service.host import SnoozeHost
from tab_snooze.service.http_service import SnoozeHttpService

__all__ = [
    "SnoozeHost",
    "SnoozeHttpService",
]
