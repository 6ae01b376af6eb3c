"""Host runtime that wires the snooze core to its stores and endpoint."""

from __future__ import annotations

import logging

from tab_snooze.adapters.browser_tabs import BrowserTabHost
from tab_snooze.adapters.config import SnoozeConfig
from tab_snooze.adapters.json_store import JsonFileStore
from tab_snooze.adapters.terminal_notifier import TerminalNotifier
from tab_snooze.application.cache import StoreMirror
from tab_snooze.application.runtime import SnoozeRuntime
from tab_snooze.ports.tabs import TabHostPort
from tab_snooze.service.http_service import SnoozeHttpService

logger = logging.getLogger(__name__)


class SnoozeHost:
    """Bootstraps stores, notifier, runtime and the request endpoint."""

    __slots__ = (
        "config",
        "store",
        "session",
        "notifier",
        "runtime",
        "mirror",
        "service",
    )

    def __init__(self, config: SnoozeConfig, *, tab_host: TabHostPort | None = None) -> None:
        self.config = config
        self.store = JsonFileStore(config.store_path)
        self.session = JsonFileStore(config.session_path)
        self.notifier = TerminalNotifier(timeout_seconds=config.notification_timeout_seconds)
        self.runtime = SnoozeRuntime(
            store=self.store,
            session=self.session,
            notifier=self.notifier,
            tab_host=tab_host or BrowserTabHost(),
            enable_timers=config.enable_timers,
            check_interval_seconds=config.check_interval_seconds,
            recovery_cooldown_seconds=config.recovery_cooldown_seconds,
        )
        self.mirror = StoreMirror(self.store, ("items", "settings"))
        self.mirror.add_listener(self._log_badge)
        self.service = SnoozeHttpService(
            runtime=self.runtime,
            host=config.host,
            port=config.port,
            mirror=self.mirror,
        )

    def boot(self) -> None:
        """Load/repair the store, surface any recovery notice, scan once."""
        try:
            self.runtime.start()
        except Exception:
            self.runtime.close()
            raise
        logger.info("Loaded %d snoozed item(s) from '%s'", len(self.mirror.get("items") or {}), self.config.data_dir)

    def start(self) -> None:
        self.boot()
        self.service.serve_forever()

    def stop(self) -> None:
        try:
            self.service.stop()
        finally:
            self.notifier.shutdown()
            self.runtime.close()

    @staticmethod
    def _log_badge(snapshot: dict) -> None:
        settings = snapshot.get("settings") or {}
        if settings.get("badge", "true") == "false":
            return
        count = len(snapshot.get("items") or {})
        logger.debug("Badge: %s", count or "")
