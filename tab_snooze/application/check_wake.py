"""Use case: run one wake check now."""

from __future__ import annotations

from tab_snooze.application.runtime import SnoozeRuntime
from tab_snooze.application.wake_scheduler import PendingNotification


class CheckWake:
    """Application use case for an on-demand scan of due items."""

    def __init__(self, runtime: SnoozeRuntime) -> None:
        self._runtime = runtime

    def execute(self) -> PendingNotification | None:
        return self._runtime.check_now()
