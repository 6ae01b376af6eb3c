"""Use case: snooze a page until a named interval or an explicit instant."""

from __future__ import annotations

from datetime import date, datetime

from tab_snooze.application.runtime import SnoozeRuntime
from tab_snooze.domain.item import SnoozedItem
from tab_snooze.domain.schedule import PICK_DATE, pick_date, resolve, to_epoch_ms
from tab_snooze.errors import SnoozeInputError


class SnoozeTab:
    """Application use case turning an interval choice into a stored item."""

    def __init__(self, runtime: SnoozeRuntime) -> None:
        self._runtime = runtime

    def execute(
        self,
        url: str,
        *,
        interval: str | None = None,
        at: datetime | date | None = None,
        title: str | None = None,
        group_id: str | None = None,
    ) -> SnoozedItem:
        if (interval is None) == (at is None):
            raise SnoozeInputError("Give exactly one of an interval or an explicit time")

        settings = self._runtime.get_settings()
        if interval is not None:
            if interval == PICK_DATE:
                raise SnoozeInputError("pick-date needs an explicit date")
            try:
                pop_time = resolve(interval, self._runtime.now(), settings)
            except ValueError as exc:
                raise SnoozeInputError(str(exc)) from exc
        elif isinstance(at, datetime):
            pop_time = to_epoch_ms(at if at.tzinfo is not None else at.astimezone())
        else:
            pop_time = pick_date(at, settings)

        tab = {"url": url}
        if title:
            tab["title"] = title
        return self._runtime.snooze(tab, pop_time, group_id)
