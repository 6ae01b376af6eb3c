"""Port for the host that actually opens and closes page references."""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol


class OpenTarget(str, Enum):
    """Where a woken page should appear."""

    CURRENT_WINDOW = "current_window"
    NEW_WINDOW = "new_window"


class TabHostPort(Protocol):
    def open(self, url: str, target: OpenTarget) -> None:
        """Open ``url``; raises HostActionError on failure."""

    def close(self, ref: Any) -> None:
        """Close a previously snoozed page reference."""

    def query(self, **filters: Any) -> list[dict[str, Any]]:
        """Describe open pages matching ``filters``."""
