"""Tab host adapter backed by the system web browser."""

from __future__ import annotations

import itertools
import logging
import webbrowser
from threading import Lock
from typing import Any

from tab_snooze.errors import HostActionError
from tab_snooze.ports.tabs import OpenTarget, TabHostPort

logger = logging.getLogger(__name__)


class BrowserTabHost(TabHostPort):
    """Opens woken pages with :mod:`webbrowser` and remembers what it opened.

    The system browser offers no handle to close a page, so ``close`` only
    forgets the reference.
    """

    __slots__ = ("_opened", "_ids", "_lock")

    def __init__(self) -> None:
        self._opened: dict[int, dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self._lock = Lock()

    def open(self, url: str, target: OpenTarget) -> None:
        new = 2 if target is OpenTarget.CURRENT_WINDOW else 1
        try:
            launched = webbrowser.open(url, new=new)
        except webbrowser.Error as exc:
            raise HostActionError(f"Could not open {url}: {exc}") from exc
        if not launched:
            raise HostActionError(f"No browser accepted {url}")

        with self._lock:
            ref = next(self._ids)
            self._opened[ref] = {"id": ref, "url": url, "target": target.value}
        logger.debug("Opened %s in %s", url, target.value)

    def close(self, ref: Any) -> None:
        with self._lock:
            page = self._opened.pop(ref, None)
        if page is None:
            raise HostActionError(f"Unknown page reference: {ref!r}")

    def query(self, **filters: Any) -> list[dict[str, Any]]:
        with self._lock:
            pages = [dict(page) for page in self._opened.values()]
        return [
            page
            for page in pages
            if all(page.get(key) == value for key, value in filters.items())
        ]
