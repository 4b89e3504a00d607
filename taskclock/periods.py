from __future__ import annotations
import calendar
from datetime import datetime, date, time, timedelta
from typing import Optional, Protocol, Union


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Local wall clock, naive. No timezone conversion happens anywhere in the core."""

    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)


def to_midnight(d: Union[date, datetime]) -> datetime:
    if isinstance(d, datetime):
        d = d.date()
    return datetime.combine(d, time(0, 0))


def weekday_index(d: Union[date, datetime]) -> int:
    """0=Sun ... 6=Sat (Python's weekday() is 0=Mon)."""
    return (d.weekday() + 1) % 7


def add_months(d: datetime, months: int) -> datetime:
    """Add calendar months, clamping to the last day of the target month."""
    total = d.month - 1 + months
    year = d.year + total // 12
    month = total % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return d.replace(year=year, month=month, day=min(d.day, last))


def add_years(d: datetime, years: int) -> datetime:
    """Add calendar years; Feb 29 lands on Feb 28 in non-leap years."""
    year = d.year + years
    last = calendar.monthrange(year, d.month)[1]
    return d.replace(year=year, day=min(d.day, last))


def parse_hhmm(s: Optional[str]) -> Optional[time]:
    if not s:
        return None
    try:
        hh, mm = s.strip().split(":")
        return time(int(hh), int(mm))
    except (ValueError, AttributeError):
        return None


def instance_key(dt: datetime) -> str:
    """Canonical ISO form used as the idempotency marker for one reminder instance."""
    return dt.replace(microsecond=0).isoformat(timespec="seconds")


def elapsed_seconds(since: datetime, now: datetime) -> int:
    """Whole seconds between two instants; a clock that moved backwards yields 0."""
    seconds = int((now - since) // timedelta(seconds=1))
    return max(0, seconds)


def format_due(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M")


def format_countdown(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"
