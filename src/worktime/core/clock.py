"""Time source and the pure time computations derived from it.

Production code uses ``SystemClock``. Tests substitute any object with a
``get_now()`` method returning a naive local datetime.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, Protocol

from worktime.models.command import ReportKind
from worktime.models.session import Session


class Clock(Protocol):
    """Source of the current local wall-clock time."""

    def get_now(self) -> datetime:
        ...


class SystemClock:
    """Local wall clock, truncated to whole seconds."""

    def get_now(self) -> datetime:
        return datetime.now().replace(microsecond=0)


def get_today(clock: Clock) -> date:
    return clock.get_now().date()


def week_start(day: date) -> date:
    """Monday on or before ``day``."""
    return day - timedelta(days=day.weekday())


def month_start(day: date) -> date:
    return day.replace(day=1)


def reference_date(kind: ReportKind, today: date) -> date:
    """Start of the report period containing ``today``."""
    if kind is ReportKind.DAY:
        return today
    if kind is ReportKind.WEEK:
        return week_start(today)
    if kind is ReportKind.MONTH:
        return month_start(today)
    raise AssertionError(f"Unhandled report kind: {kind!r}")


def aggregate_session_times(sessions: Iterable[Session], now: datetime) -> timedelta:
    """Sum the elapsed time of ``sessions``; running sessions count up to ``now``."""
    total = timedelta()
    for session in sessions:
        total += session.elapsed(now)
    return total


def whole_minutes(delta: timedelta) -> int:
    """Signed whole minutes in ``delta``, truncated toward zero."""
    return int(delta.total_seconds() / 60)


def format_hours(delta: timedelta) -> str:
    """Render a duration as hours with two decimals, e.g. ``6.00h``."""
    return f"{whole_minutes(delta) / 60.0:.2f}h"


def display_time(moment: datetime) -> str:
    return moment.strftime("%H:%M:%S")
