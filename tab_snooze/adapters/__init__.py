"""Infrastructure adapters for the snooze runtime."""

from tab_snooze.adapters.browser_tabs import BrowserTabHost
from tab_snooze.adapters.config import SnoozeConfig, load_snooze_config
from tab_snooze.adapters.json_store import JsonFileStore, MemoryStore
from tab_snooze.adapters.terminal_notifier import TerminalNotifier

__all__ = [
    "BrowserTabHost",
    "JsonFileStore",
    "MemoryStore",
    "SnoozeConfig",
    "TerminalNotifier",
    "load_snooze_config",
]
