"""Wake-time calculation: named intervals -> absolute epoch milliseconds."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta

from tab_snooze.domain.settings import Settings, parse_time_of_day

MS_PER_HOUR = 3_600_000

# A user still up before this hour thinks of "tomorrow" as the coming morning.
EARLY_MORNING_HOUR = 5

PICK_DATE = "pick-date"

INTERVALS: tuple[str, ...] = (
    "later-today",
    "this-evening",
    "tomorrow-evening",
    "2-days-evening",
    "tomorrow",
    "2-days-morning",
    "this-weekend",
    "next-week",
    "in-a-week",
    "in-a-month",
    "someday",
    PICK_DATE,
)


def days_to_next_day(current: int, target: int) -> int:
    """Days from weekday ``current`` to the next ``target`` (0 = Sunday).

    A target equal to today is a full week away.
    """
    for name, value in (("current", current), ("target", target)):
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 6:
            raise ValueError(f"{name} weekday must be an integer in [0, 6], got {value!r}")
    if target <= current:
        return 7 - current + target
    return target - current


def js_weekday(moment: datetime | date) -> int:
    """Weekday index with Sunday = 0, as stored in settings."""
    return (moment.weekday() + 1) % 7


def round_now(now: datetime) -> datetime:
    return now.replace(second=0, microsecond=0)


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp()) * 1000 + moment.microsecond // 1000


def add_months(moment: datetime, months: int) -> datetime:
    """Calendar-month addition, clamping to the target month's last day."""
    index = moment.month - 1 + months
    year = moment.year + index // 12
    month = index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def hours_from_now(now: datetime, hours: int) -> int:
    return to_epoch_ms(round_now(now)) + hours * MS_PER_HOUR


def localize(now: datetime, settings: Settings) -> datetime:
    """Express ``now`` in the configured zone (or keep its own zone)."""
    zone = settings.zone
    if zone is not None:
        return now.astimezone(zone)
    if now.tzinfo is None:
        return now.astimezone()
    return now


def _at(moment: datetime, time_of_day: str) -> datetime:
    hour, minute = parse_time_of_day(time_of_day)
    return moment.replace(hour=hour, minute=minute, second=0, microsecond=0)


def resolve(interval: str, now: datetime, settings: Settings) -> int | None:
    """Absolute wake instant (epoch ms) for ``interval``, or None for pick-date."""
    local = round_now(localize(now, settings))
    hour = local.hour

    if interval == "later-today":
        return hours_from_now(local, settings.later_today_hours)

    if interval == "this-evening":
        end_hour, _ = parse_time_of_day(settings.end_day)
        day = local + timedelta(days=1) if hour > end_hour else local
        return to_epoch_ms(_at(day, settings.end_day))

    if interval == "tomorrow-evening":
        day = local + timedelta(days=1) if hour > EARLY_MORNING_HOUR else local
        return to_epoch_ms(_at(day, settings.end_day))

    if interval == "2-days-evening":
        offset = 2 if hour > EARLY_MORNING_HOUR else 1
        return to_epoch_ms(_at(local + timedelta(days=offset), settings.end_day))

    if interval == "tomorrow":
        day = local + timedelta(days=1) if hour > EARLY_MORNING_HOUR else local
        return to_epoch_ms(_at(day, settings.start_day))

    if interval == "2-days-morning":
        offset = 2 if hour > EARLY_MORNING_HOUR else 1
        return to_epoch_ms(_at(local + timedelta(days=offset), settings.start_day))

    if interval == "this-weekend":
        offset = days_to_next_day(js_weekday(local), settings.weekend_begin)
        return to_epoch_ms(_at(local + timedelta(days=offset), settings.start_day))

    if interval == "next-week":
        offset = days_to_next_day(js_weekday(local), settings.week_begin)
        return to_epoch_ms(_at(local + timedelta(days=offset), settings.start_day))

    if interval == "in-a-week":
        return to_epoch_ms(_at(local + timedelta(days=7), settings.start_day))

    if interval == "in-a-month":
        return to_epoch_ms(_at(add_months(local, 1), settings.start_day))

    if interval == "someday":
        return to_epoch_ms(_at(add_months(local, settings.someday_months), settings.start_day))

    if interval == PICK_DATE:
        return None

    raise ValueError(f"Unknown snooze interval: {interval!r}")


def pick_date(day: date, settings: Settings) -> int:
    """Wake instant for an explicitly chosen calendar day, at start-day time."""
    hour, minute = parse_time_of_day(settings.start_day)
    zone = settings.zone
    if zone is not None:
        return to_epoch_ms(datetime.combine(day, time(hour, minute), tzinfo=zone))
    return to_epoch_ms(datetime.combine(day, time(hour, minute)).astimezone())
