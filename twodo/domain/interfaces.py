"""
Cross-cutting callback interfaces (Protocols).

Services depend on these Protocols rather than on concrete implementations;
the concrete adapter is wired at construction time with a default fallback.
"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of the current time and of "today" in the reference zone."""

    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    """Wall clock, with "today" taken in the configured reference zone."""

    def __init__(self, tz: Optional[tzinfo] = None) -> None:
        self._tz = tz or timezone.utc

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock frozen at a given instant; advanced manually."""

    def __init__(self, current: datetime) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)
