"""Use case: write the store to a versioned export file."""

from __future__ import annotations

import json
from pathlib import Path

from tab_snooze.application.runtime import SnoozeRuntime
from tab_snooze.errors import SnoozeInputError


class ExportTabs:
    """Application use case for exporting snoozed items."""

    def __init__(self, runtime: SnoozeRuntime) -> None:
        self._runtime = runtime

    def execute(self, path: str | Path) -> int:
        payload = self._runtime.export_tabs()
        if not payload["items"]:
            raise SnoozeInputError("No tabs to export.")
        Path(path).write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        return len(payload["items"])
