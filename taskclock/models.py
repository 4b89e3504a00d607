from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, FrozenSet, Iterable


class RecurrenceType(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["RecurrenceType"]:
        """None for anything unrecognised, so callers can treat it as malformed."""
        if raw is None:
            return cls.NONE
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return None
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return None


class ReminderType(str, Enum):
    RELATIVE = "relative"
    ABSOLUTE = "absolute"


class OffsetUnit(str, Enum):
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "Priority":
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


class SessionType(str, Enum):
    WORK = "work"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"

    @property
    def label(self) -> str:
        return _SESSION_LABELS[self]


_SESSION_LABELS = {
    SessionType.WORK: "Work",
    SessionType.SHORT_BREAK: "Short Break",
    SessionType.LONG_BREAK: "Long Break",
}


def _normalize_weekdays(days: Iterable[int]) -> FrozenSet[int]:
    out = set()
    for d in days:
        try:
            i = int(d)
        except (TypeError, ValueError):
            continue
        if 0 <= i <= 6:
            out.add(i)
    return frozenset(out)


@dataclass(frozen=True)
class RecurrenceRule:
    type: RecurrenceType = RecurrenceType.NONE
    interval: int = 1
    # 0=Sun ... 6=Sat, weekly only
    days_of_week: FrozenSet[int] = frozenset()
    day_of_month: Optional[int] = None

    def __post_init__(self) -> None:
        days = _normalize_weekdays(self.days_of_week)
        if self.type != RecurrenceType.WEEKLY:
            days = frozenset()
        object.__setattr__(self, "days_of_week", days)

    @property
    def is_recurring(self) -> bool:
        return self.type != RecurrenceType.NONE


@dataclass(frozen=True)
class ReminderRule:
    enabled: bool = False
    type: ReminderType = ReminderType.RELATIVE
    offset_value: int = 1
    offset_unit: OffsetUnit = OffsetUnit.HOURS
    absolute_time: str = "09:00"  # HH:MM
    last_fired_key: Optional[str] = None  # ISO instant of the last fired reminder


@dataclass(frozen=True)
class Subtask:
    id: int
    text: str
    completed: bool = False


@dataclass(frozen=True)
class Task:
    id: int
    text: str
    due_date: Optional[datetime] = None
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    tags: List[str] = field(default_factory=list)
    recurrence: RecurrenceRule = field(default_factory=RecurrenceRule)
    reminder: ReminderRule = field(default_factory=ReminderRule)
    created_at: Optional[datetime] = None
    subtasks: List[Subtask] = field(default_factory=list)


@dataclass(frozen=True)
class TimerSettings:
    # durations in seconds
    work_duration: int = 25 * 60
    short_break_duration: int = 5 * 60
    long_break_duration: int = 15 * 60
    cycles_before_long_break: int = 4
    auto_start_breaks: bool = True
    auto_start_work: bool = True

    def __post_init__(self) -> None:
        for name in ("work_duration", "short_break_duration", "long_break_duration", "cycles_before_long_break"):
            object.__setattr__(self, name, max(1, int(getattr(self, name))))

    def duration_for(self, session_type: SessionType) -> int:
        if session_type == SessionType.SHORT_BREAK:
            return self.short_break_duration
        if session_type == SessionType.LONG_BREAK:
            return self.long_break_duration
        return self.work_duration

    def to_dict(self) -> dict:
        return {
            "work_duration": self.work_duration,
            "short_break_duration": self.short_break_duration,
            "long_break_duration": self.long_break_duration,
            "cycles_before_long_break": self.cycles_before_long_break,
            "auto_start_breaks": self.auto_start_breaks,
            "auto_start_work": self.auto_start_work,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TimerSettings":
        return cls(
            work_duration=int(data["work_duration"]),
            short_break_duration=int(data["short_break_duration"]),
            long_break_duration=int(data["long_break_duration"]),
            cycles_before_long_break=int(data["cycles_before_long_break"]),
            auto_start_breaks=bool(data.get("auto_start_breaks", True)),
            auto_start_work=bool(data.get("auto_start_work", True)),
        )


@dataclass(frozen=True)
class SessionState:
    remaining_seconds: int
    session_type: SessionType
    is_running: bool
    completed_work_cycles: int
    settings: TimerSettings
    last_observed_at: Optional[datetime] = None  # only while running

    @classmethod
    def initial(cls, settings: TimerSettings) -> "SessionState":
        return cls(
            remaining_seconds=settings.work_duration,
            session_type=SessionType.WORK,
            is_running=False,
            completed_work_cycles=0,
            settings=settings,
            last_observed_at=None,
        )

    def to_dict(self) -> dict:
        return {
            "remaining_seconds": self.remaining_seconds,
            "session_type": self.session_type.value,
            "is_running": self.is_running,
            "completed_work_cycles": self.completed_work_cycles,
            "settings": self.settings.to_dict(),
            "last_observed_at": self.last_observed_at.isoformat() if self.last_observed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionState":
        """Raises KeyError/ValueError/TypeError on incomplete or malformed records."""
        observed = data["last_observed_at"]
        observed_at = datetime.fromisoformat(observed) if observed else None
        if observed_at is not None and observed_at.tzinfo is not None:
            raise ValueError("session anchor must be naive local time")
        remaining = int(data["remaining_seconds"])
        cycles = int(data["completed_work_cycles"])
        if remaining < 0 or cycles < 0:
            raise ValueError("negative counter in persisted session state")
        return cls(
            remaining_seconds=remaining,
            session_type=SessionType(data["session_type"]),
            is_running=bool(data["is_running"]),
            completed_work_cycles=cycles,
            settings=TimerSettings.from_dict(data["settings"]),
            last_observed_at=observed_at,
        )


@dataclass(frozen=True)
class AppSettings:
    timer: TimerSettings
    reminder_check_seconds: int  # how often the reminder scheduler polls
