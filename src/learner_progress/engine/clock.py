"""Injectable clocks and calendar-day normalisation."""

from datetime import date, datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from learner_progress.errors import InvalidInput


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in an explicit timezone."""

    def __init__(self, timezone: str = "UTC"):
        self.tz = get_zone(timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock:
    """Clock frozen at a given moment, for tests and replays."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.moment = self.moment + timedelta(days=days, hours=hours)


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidInput(f"Unknown timezone: {name}")


def to_day(moment: datetime | date, timezone: str = "UTC") -> date:
    """Normalise a moment to the calendar day it falls on in ``timezone``.

    Naive datetimes are taken to already be local to ``timezone``.
    """
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            moment = moment.astimezone(get_zone(timezone))
        return moment.date()
    if isinstance(moment, date):
        return moment
    raise InvalidInput(f"Not a date: {moment!r}")


def days_between(earlier: date, later: date) -> int:
    return (later - earlier).days
