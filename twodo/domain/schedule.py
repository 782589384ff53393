"""
Routine schedules and their expansion into calendar dates.

A schedule is one of three variants: DailySchedule, WeeklySchedule or
MonthlySchedule. ``expand`` turns a schedule and an inclusive date window
into the ordered list of dates on which an occurrence should exist. It is
pure: no I/O, no clock.

Weekdays use Sunday = 0 .. Saturday = 6.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Union

from .errors import InvalidSchedule

FREQUENCY_DAILY = "daily"
FREQUENCY_WEEKLY = "weekly"
FREQUENCY_MONTHLY = "monthly"

_TIME_RE = re.compile(r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$")


def weekday_index(day: date) -> int:
    """Weekday of ``day`` with Sunday = 0."""
    return day.isoweekday() % 7


@dataclass(frozen=True)
class DailySchedule:
    time: Optional[str] = None
    end_date: Optional[date] = None

    frequency = FREQUENCY_DAILY


@dataclass(frozen=True)
class WeeklySchedule:
    days_of_week: FrozenSet[int] = frozenset()
    time: Optional[str] = None
    end_date: Optional[date] = None

    frequency = FREQUENCY_WEEKLY

    def __post_init__(self) -> None:
        days = frozenset(self.days_of_week)
        if not days:
            raise InvalidSchedule("weekly schedule needs at least one day of week")
        bad = sorted(d for d in days if not isinstance(d, int) or not 0 <= d <= 6)
        if bad:
            raise InvalidSchedule(f"days of week must be 0-6, got {bad}")
        object.__setattr__(self, "days_of_week", days)


@dataclass(frozen=True)
class MonthlySchedule:
    day_of_month: int = 1
    time: Optional[str] = None
    end_date: Optional[date] = None

    frequency = FREQUENCY_MONTHLY

    def __post_init__(self) -> None:
        if not isinstance(self.day_of_month, int) or not 1 <= self.day_of_month <= 31:
            raise InvalidSchedule(
                f"day of month must be 1-31, got {self.day_of_month!r}"
            )


Schedule = Union[DailySchedule, WeeklySchedule, MonthlySchedule]


# --- Wire format ---


def parse_schedule(data: Any) -> Schedule:
    """Build a Schedule from its stored / wire dict form.

    Raises:
        InvalidSchedule: unknown frequency or inconsistent fields.
    """
    if not isinstance(data, dict):
        raise InvalidSchedule(f"schedule must be an object, got {type(data).__name__}")

    time = data.get("time")
    if time is not None and not (isinstance(time, str) and _TIME_RE.match(time)):
        raise InvalidSchedule(f"invalid time {time!r}, expected HH:MM")

    end_date = _parse_end_date(data.get("endDate"))
    frequency = data.get("frequency")

    if frequency == FREQUENCY_DAILY:
        return DailySchedule(time=time, end_date=end_date)
    if frequency == FREQUENCY_WEEKLY:
        days = data.get("daysOfWeek") or []
        if not isinstance(days, (list, tuple, set, frozenset)):
            raise InvalidSchedule("daysOfWeek must be a list")
        return WeeklySchedule(days_of_week=frozenset(days), time=time, end_date=end_date)
    if frequency == FREQUENCY_MONTHLY:
        if data.get("dayOfMonth") is None:
            raise InvalidSchedule("monthly schedule needs dayOfMonth")
        return MonthlySchedule(
            day_of_month=data["dayOfMonth"], time=time, end_date=end_date
        )

    raise InvalidSchedule(f"unknown frequency {frequency!r}")


def schedule_to_dict(schedule: Schedule) -> Dict[str, Any]:
    """Inverse of parse_schedule; omits unset optional fields."""
    data: Dict[str, Any] = {"frequency": schedule.frequency}
    if isinstance(schedule, WeeklySchedule):
        data["daysOfWeek"] = sorted(schedule.days_of_week)
    elif isinstance(schedule, MonthlySchedule):
        data["dayOfMonth"] = schedule.day_of_month
    if schedule.time is not None:
        data["time"] = schedule.time
    if schedule.end_date is not None:
        data["endDate"] = schedule.end_date.isoformat()
    return data


def _parse_end_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise InvalidSchedule(f"invalid endDate {value!r}") from e


# --- Expansion ---


_VARIANTS = (DailySchedule, WeeklySchedule, MonthlySchedule)


def _require_variant(schedule: Any) -> None:
    if not isinstance(schedule, _VARIANTS):
        raise InvalidSchedule(f"unsupported schedule type {type(schedule).__name__}")


def occurs_on(schedule: Schedule, day: date) -> bool:
    """Return True if ``schedule`` produces an occurrence on ``day``."""
    _require_variant(schedule)

    if schedule.end_date is not None and day > schedule.end_date:
        return False

    if isinstance(schedule, WeeklySchedule):
        return weekday_index(day) in schedule.days_of_week
    if isinstance(schedule, MonthlySchedule):
        # No clamping: day 31 never fires in a 30-day month
        return day.day == schedule.day_of_month
    return True


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    """Yield every calendar day from start_date to end_date inclusive."""
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def expand(schedule: Schedule, start_date: date, end_date: date) -> List[date]:
    """Dates in [start_date, end_date] on which the schedule occurs, ascending."""
    _require_variant(schedule)
    return [day for day in iter_days(start_date, end_date) if occurs_on(schedule, day)]


def missing_dates(expected: Iterable[date], existing: Iterable[date]) -> List[date]:
    """Expected dates without an existing occurrence, preserving order."""
    have = set(existing)
    return [day for day in expected if day not in have]
