"""Application use cases for the snooze runtime."""

from tab_snooze.application.cache import StoreMirror
from tab_snooze.application.check_wake import CheckWake
from tab_snooze.application.export_tabs import ExportTabs
from tab_snooze.application.import_tabs import ImportTabs
from tab_snooze.application.messages import MessageDispatcher
from tab_snooze.application.runtime import SnoozeRuntime
from tab_snooze.application.snooze_tab import SnoozeTab
from tab_snooze.application.wake_scheduler import PendingNotification, WakeScheduler, WakeState

__all__ = [
    "CheckWake",
    "ExportTabs",
    "ImportTabs",
    "MessageDispatcher",
    "PendingNotification",
    "SnoozeRuntime",
    "SnoozeTab",
    "StoreMirror",
    "WakeScheduler",
    "WakeState",
]
