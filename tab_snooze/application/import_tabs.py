"""Use case: import an export file into the store."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from tab_snooze.application.runtime import SnoozeRuntime


class ImportTabs:
    """Application use case merging a JSON export into the current store."""

    def __init__(self, runtime: SnoozeRuntime) -> None:
        self._runtime = runtime

    def execute(self, path: str | Path) -> dict[str, Any]:
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            return {"success": False, "error": f"Could not read {path}: {exc}"}
        return self._runtime.import_tabs(data)
