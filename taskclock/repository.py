from __future__ import annotations
import logging
import sqlite3
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from .models import (
    AppSettings, OffsetUnit, Priority, RecurrenceRule, RecurrenceType, ReminderRule,
    ReminderType, Subtask, Task, TimerSettings,
)
from .periods import SystemClock
from .recurrence import complete_task

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def put(self, key: str, value: str) -> None: ...


def _weekdays_from_csv(s: str) -> List[int]:
    if not s or not s.strip():
        return []
    out = []
    for x in s.split(","):
        try:
            out.append(int(x))
        except ValueError:
            continue
    return out


def _weekdays_to_csv(days) -> str:
    return ",".join(str(d) for d in sorted(set(days)))


def _tags_from_csv(s: str) -> List[str]:
    return [t.strip() for t in (s or "").split(",") if t.strip()]


def _parse_dt(s: Optional[str]) -> Optional[datetime]:
    if not s:
        return None
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        logger.warning("Unparsable stored datetime %r; treating as empty", s)
        return None


def _dt_to_str(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat(timespec="seconds") if dt else None


def _recurrence_from_row(r: sqlite3.Row) -> RecurrenceRule:
    rtype = RecurrenceType.parse(r["recurrence_type"])
    if rtype is None:
        # malformed rule: no recurrence
        return RecurrenceRule()
    return RecurrenceRule(
        type=rtype,
        interval=1 if r["recurrence_interval"] is None else int(r["recurrence_interval"]),
        days_of_week=frozenset(_weekdays_from_csv(r["recurrence_days"])),
        day_of_month=r["recurrence_day_of_month"],
    )


def _reminder_from_row(r: sqlite3.Row) -> ReminderRule:
    try:
        rtype = ReminderType(r["reminder_type"])
        unit = OffsetUnit(r["reminder_offset_unit"])
    except ValueError:
        # malformed rule: disabled, but keep the marker
        return ReminderRule(enabled=False, last_fired_key=r["last_reminder_key"])
    return ReminderRule(
        enabled=bool(r["reminder_enabled"]),
        type=rtype,
        offset_value=int(r["reminder_offset_value"]),
        offset_unit=unit,
        absolute_time=r["reminder_time"],
        last_fired_key=r["last_reminder_key"],
    )


def _subtask_from_row(r: sqlite3.Row) -> Subtask:
    return Subtask(id=r["id"], text=r["text"], completed=bool(r["completed"]))


def _task_from_row(r: sqlite3.Row, subtasks: Optional[List[Subtask]] = None) -> Task:
    return Task(
        id=r["id"],
        text=r["text"],
        due_date=_parse_dt(r["due_date"]),
        completed=bool(r["completed"]),
        priority=Priority.parse(r["priority"]),
        tags=_tags_from_csv(r["tags"]),
        recurrence=_recurrence_from_row(r),
        reminder=_reminder_from_row(r),
        created_at=_parse_dt(r["created_at"]),
        subtasks=subtasks or [],
    )


class Repository:
    def __init__(self, conn: sqlite3.Connection, clock=None):
        self.conn = conn
        self.clock = clock or SystemClock()

    # ---------- Settings ----------
    def get_settings(self) -> AppSettings:
        return AppSettings(
            timer=self.get_timer_settings(),
            reminder_check_seconds=max(1, self._get_int("reminder_check_seconds", 60)),
        )

    def get_timer_settings(self) -> TimerSettings:
        d = TimerSettings()
        return TimerSettings(
            work_duration=self._get_int("work_duration", d.work_duration),
            short_break_duration=self._get_int("short_break_duration", d.short_break_duration),
            long_break_duration=self._get_int("long_break_duration", d.long_break_duration),
            cycles_before_long_break=self._get_int("cycles_before_long_break", d.cycles_before_long_break),
            auto_start_breaks=self._get_int("auto_start_breaks", 1) == 1,
            auto_start_work=self._get_int("auto_start_work", 1) == 1,
        )

    def set_timer_settings(self, settings: TimerSettings) -> None:
        for key, value in settings.to_dict().items():
            if isinstance(value, bool):
                value = 1 if value else 0
            self._set_setting(key, str(value), commit=False)
        self.conn.commit()

    def _get_setting(self, key: str, default: str) -> str:
        row = self.conn.execute("SELECT value FROM settings WHERE key=?", (key,)).fetchone()
        return row["value"] if row else default

    def _get_int(self, key: str, default: int) -> int:
        raw = self._get_setting(key, str(default))
        try:
            return int(raw)
        except ValueError:
            logger.warning("Setting %s has unparsable value %r; using %s", key, raw, default)
            return default

    def _set_setting(self, key: str, value: str, commit: bool = True) -> None:
        self.conn.execute(
            "INSERT INTO settings(key,value) VALUES(?,?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
            (key, value),
        )
        if commit:
            self.conn.commit()

    # ---------- Tasks ----------
    def list_tasks(self) -> List[Task]:
        rows = self.conn.execute("SELECT * FROM tasks ORDER BY id ASC").fetchall()
        by_task: Dict[int, List[Subtask]] = {}
        for s in self.conn.execute("SELECT * FROM subtasks ORDER BY id ASC"):
            by_task.setdefault(s["task_id"], []).append(_subtask_from_row(s))
        return [_task_from_row(r, by_task.get(r["id"])) for r in rows]

    def get_task(self, task_id: int) -> Task:
        r = self.conn.execute("SELECT * FROM tasks WHERE id=?", (task_id,)).fetchone()
        if not r:
            raise KeyError(task_id)
        return _task_from_row(r, self._subtasks_of(task_id))

    def create_task(
        self,
        text: str,
        due_date: Optional[datetime] = None,
        priority: Priority = Priority.MEDIUM,
        tags: Optional[List[str]] = None,
        recurrence: Optional[RecurrenceRule] = None,
        reminder: Optional[ReminderRule] = None,
    ) -> int:
        if not text or not text.strip():
            raise ValueError("text is required")
        recurrence = recurrence or RecurrenceRule()
        reminder = reminder or ReminderRule()
        cur = self.conn.execute(
            """
            INSERT INTO tasks(
                text, due_date, completed, priority, tags, created_at,
                recurrence_type, recurrence_interval, recurrence_days, recurrence_day_of_month,
                reminder_enabled, reminder_type, reminder_offset_value, reminder_offset_unit,
                reminder_time, last_reminder_key
            )
            VALUES(?,?,0,?,?,?,?,?,?,?,?,?,?,?,?,NULL)
            """,
            (
                text.strip(),
                _dt_to_str(due_date),
                Priority(priority).value,
                ",".join(tags or []),
                _dt_to_str(self.clock.now()),
                RecurrenceType(recurrence.type).value,
                int(recurrence.interval),
                _weekdays_to_csv(recurrence.days_of_week),
                recurrence.day_of_month,
                1 if reminder.enabled else 0,
                ReminderType(reminder.type).value,
                int(reminder.offset_value),
                OffsetUnit(reminder.offset_unit).value,
                reminder.absolute_time,
            ),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def save_task(self, task: Task) -> None:
        self.conn.execute(
            """
            UPDATE tasks
            SET text=?, due_date=?, completed=?, priority=?, tags=?,
                recurrence_type=?, recurrence_interval=?, recurrence_days=?, recurrence_day_of_month=?,
                reminder_enabled=?, reminder_type=?, reminder_offset_value=?, reminder_offset_unit=?,
                reminder_time=?, last_reminder_key=?
            WHERE id=?
            """,
            (
                task.text,
                _dt_to_str(task.due_date),
                1 if task.completed else 0,
                Priority(task.priority).value,
                ",".join(task.tags),
                RecurrenceType(task.recurrence.type).value,
                int(task.recurrence.interval),
                _weekdays_to_csv(task.recurrence.days_of_week),
                task.recurrence.day_of_month,
                1 if task.reminder.enabled else 0,
                ReminderType(task.reminder.type).value,
                int(task.reminder.offset_value),
                OffsetUnit(task.reminder.offset_unit).value,
                task.reminder.absolute_time,
                task.reminder.last_fired_key,
                task.id,
            ),
        )
        self.conn.commit()

    def delete_task(self, task_id: int) -> None:
        self.conn.execute("DELETE FROM tasks WHERE id=?", (task_id,))
        self.conn.commit()

    # ---------- Completion ----------
    def complete_task(self, task_id: int) -> Task:
        """Mark done; recurring tasks are rewritten in place as their next occurrence."""
        task = self.get_task(task_id)
        updated = complete_task(task)
        if updated is not task:
            self.save_task(updated)
        return updated

    # ---------- Reminder markers ----------
    def set_reminder_marker(self, task_id: int, key: Optional[str]) -> None:
        self.conn.execute("UPDATE tasks SET last_reminder_key=? WHERE id=?", (key, task_id))
        self.conn.commit()

    # ---------- Subtasks ----------
    def _subtasks_of(self, task_id: int) -> List[Subtask]:
        rows = self.conn.execute("SELECT * FROM subtasks WHERE task_id=? ORDER BY id ASC", (task_id,)).fetchall()
        return [_subtask_from_row(r) for r in rows]

    def _get_subtask(self, subtask_id: int) -> Subtask:
        r = self.conn.execute("SELECT * FROM subtasks WHERE id=?", (subtask_id,)).fetchone()
        if not r:
            raise KeyError(subtask_id)
        return _subtask_from_row(r)

    def add_subtask(self, task_id: int, text: str) -> int:
        if not text or not text.strip():
            raise ValueError("text is required")
        self.get_task(task_id)
        cur = self.conn.execute(
            "INSERT INTO subtasks(task_id, text, completed) VALUES(?,?,0)",
            (task_id, text.strip()),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def toggle_subtask(self, subtask_id: int) -> Subtask:
        sub = self._get_subtask(subtask_id)
        self.conn.execute("UPDATE subtasks SET completed=? WHERE id=?", (0 if sub.completed else 1, subtask_id))
        self.conn.commit()
        return Subtask(id=sub.id, text=sub.text, completed=not sub.completed)

    def edit_subtask(self, subtask_id: int, text: str) -> None:
        if not text or not text.strip():
            raise ValueError("text is required")
        self._get_subtask(subtask_id)
        self.conn.execute("UPDATE subtasks SET text=? WHERE id=?", (text.strip(), subtask_id))
        self.conn.commit()

    def delete_subtask(self, subtask_id: int) -> None:
        self.conn.execute("DELETE FROM subtasks WHERE id=?", (subtask_id,))
        self.conn.commit()


class StateStore:
    """SQLite-backed key/value store for serialized timer state."""

    def __init__(self, conn: sqlite3.Connection, clock=None):
        self.conn = conn
        self.clock = clock or SystemClock()

    def get(self, key: str) -> Optional[str]:
        r = self.conn.execute("SELECT value FROM state WHERE key=?", (key,)).fetchone()
        return r["value"] if r else None

    def put(self, key: str, value: str) -> None:
        self.conn.execute(
            "INSERT INTO state(key,value,updated_at) VALUES(?,?,?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
            (key, value, _dt_to_str(self.clock.now())),
        )
        self.conn.commit()
