"""Snooze open pages and bring them back at a chosen time."""

from tab_snooze.application.check_wake import CheckWake
from tab_snooze.application.export_tabs import ExportTabs
from tab_snooze.application.import_tabs import ImportTabs
from tab_snooze.application.messages import MessageDispatcher
from tab_snooze.application.runtime import SnoozeRuntime
from tab_snooze.application.snooze_tab import SnoozeTab
from tab_snooze.domain.settings import Settings

__all__ = [
    "CheckWake",
    "ExportTabs",
    "ImportTabs",
    "MessageDispatcher",
    "Settings",
    "SnoozeRuntime",
    "SnoozeTab",
]
