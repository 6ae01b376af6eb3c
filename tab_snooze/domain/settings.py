"""User preferences record with defaults merging and update checks."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_SETTINGS: dict[str, Any] = {
    "start-day": "9:00 AM",
    "end-day": "6:00 PM",
    "start-weekend": "10:00 AM",
    "week-begin": 1,
    "weekend-begin": 6,
    "later-today": 3,
    "someday": 3,
    "open-new-tab": "true",
    "badge": "true",
    "timezone": None,
}

_TIME_OF_DAY_RE = re.compile(r"^\s*(?P<hour>[0-9]{1,2}):(?P<minute>[0-9]{2})\s*(?P<meridian>[AaPp][Mm])\s*$")
_INT_RE = re.compile(r"-?[0-9]+")
_TIME_KEYS = ("start-day", "end-day", "start-weekend")
_WEEKDAY_KEYS = ("week-begin", "weekend-begin")
_OFFSET_KEYS = ("later-today", "someday")
_FLAG_KEYS = ("open-new-tab", "badge")


def parse_time_of_day(text: str) -> tuple[int, int]:
    """Parse ``"H:MM AM/PM"`` into a 24h ``(hour, minute)`` pair."""
    match = _TIME_OF_DAY_RE.match(text) if isinstance(text, str) else None
    if match is None:
        raise ValueError(f"Invalid time of day: {text!r}")

    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    meridian = match.group("meridian").upper()
    if not 1 <= hour <= 12 or not 0 <= minute <= 59:
        raise ValueError(f"Invalid time of day: {text!r}")

    if meridian == "AM" and hour == 12:
        hour = 0
    elif meridian == "PM" and hour < 12:
        hour += 12
    return hour, minute


def settings_update_errors(update: Mapping[str, Any]) -> list[str]:
    """Problems with a partial settings update; unknown keys are allowed."""
    errors: list[str] = []
    for key, value in update.items():
        if key in _TIME_KEYS:
            try:
                parse_time_of_day(value)
            except ValueError as exc:
                errors.append(f"{key}: {exc}")
        elif key in _WEEKDAY_KEYS:
            parsed = _as_int(value)
            if parsed is None or not 0 <= parsed <= 6:
                errors.append(f"{key} must be a weekday index between 0 and 6")
        elif key in _OFFSET_KEYS:
            parsed = _as_int(value)
            if parsed is None or parsed < 1:
                errors.append(f"{key} must be a positive integer")
        elif key in _FLAG_KEYS:
            if _as_flag(value) is None:
                errors.append(f"{key} must be 'true' or 'false'")
        elif key == "timezone":
            if value is not None and _zone(value) is None:
                errors.append(f"Unknown timezone: {value!r}")
    return errors


@dataclass(frozen=True, slots=True)
class Settings:
    """Typed view of the persisted ``settings`` record."""

    start_day: str = DEFAULT_SETTINGS["start-day"]
    end_day: str = DEFAULT_SETTINGS["end-day"]
    start_weekend: str = DEFAULT_SETTINGS["start-weekend"]
    week_begin: int = DEFAULT_SETTINGS["week-begin"]
    weekend_begin: int = DEFAULT_SETTINGS["weekend-begin"]
    later_today_hours: int = DEFAULT_SETTINGS["later-today"]
    someday_months: int = DEFAULT_SETTINGS["someday"]
    open_new_tab: bool = True
    badge: bool = True
    timezone: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def zone(self) -> ZoneInfo | None:
        if self.timezone is None:
            return None
        return _zone(self.timezone)

    @classmethod
    def from_mapping(cls, stored: Mapping[str, Any] | None) -> "Settings":
        """Merge ``stored`` over the defaults; unusable values fall back."""
        raw = dict(DEFAULT_SETTINGS)
        if isinstance(stored, Mapping):
            raw.update(stored)

        def _time(key: str) -> str:
            try:
                parse_time_of_day(raw[key])
            except ValueError:
                return DEFAULT_SETTINGS[key]
            return raw[key].strip()

        def _ranged(key: str, low: int, high: int) -> int:
            parsed = _as_int(raw[key])
            if parsed is None or not low <= parsed <= high:
                return DEFAULT_SETTINGS[key]
            return parsed

        def _flag(key: str) -> bool:
            parsed = _as_flag(raw[key])
            return parsed if parsed is not None else DEFAULT_SETTINGS[key] == "true"

        timezone = raw["timezone"]
        if timezone is not None and _zone(timezone) is None:
            timezone = None

        return cls(
            start_day=_time("start-day"),
            end_day=_time("end-day"),
            start_weekend=_time("start-weekend"),
            week_begin=_ranged("week-begin", 0, 6),
            weekend_begin=_ranged("weekend-begin", 0, 6),
            later_today_hours=_ranged("later-today", 1, 24 * 365),
            someday_months=_ranged("someday", 1, 12 * 100),
            open_new_tab=_flag("open-new-tab"),
            badge=_flag("badge"),
            timezone=timezone,
            extra={k: v for k, v in raw.items() if k not in DEFAULT_SETTINGS},
        )

    def to_mapping(self) -> dict[str, Any]:
        payload = dict(self.extra)
        payload.update(
            {
                "start-day": self.start_day,
                "end-day": self.end_day,
                "start-weekend": self.start_weekend,
                "week-begin": self.week_begin,
                "weekend-begin": self.weekend_begin,
                "later-today": self.later_today_hours,
                "someday": self.someday_months,
                "open-new-tab": "true" if self.open_new_tab else "false",
                "badge": "true" if self.badge else "false",
                "timezone": self.timezone,
            }
        )
        return payload


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        return int(value.strip())
    return None


def _as_flag(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized == "true":
            return True
        if normalized == "false":
            return False
    return None


def _zone(name: object) -> ZoneInfo | None:
    if not isinstance(name, str) or not name.strip():
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None
