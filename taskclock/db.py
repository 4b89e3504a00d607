from __future__ import annotations
import logging
import sqlite3
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DB_NAME = "taskclock.sqlite3"

DEFAULT_SETTINGS = {
    "work_duration": str(25 * 60),
    "short_break_duration": str(5 * 60),
    "long_break_duration": str(15 * 60),
    "cycles_before_long_break": "4",
    "auto_start_breaks": "1",
    "auto_start_work": "1",
    "reminder_check_seconds": "60",
}


def data_dir(app_name: str = "TaskClock") -> Path:
    # Cross-platform local app data dir
    # macOS: ~/Library/Application Support/TaskClock
    # Windows: %APPDATA%\TaskClock
    # TASKCLOCK_DATA_DIR overrides all of them
    override = _get_env("TASKCLOCK_DATA_DIR", "")
    if override:
        d = Path(override)
    else:
        home = Path.home()
        if _is_macos():
            base = home / "Library" / "Application Support"
        elif _is_windows():
            base = Path(_get_env("APPDATA", str(home)))
        else:
            base = home / ".local" / "share"
        d = base / app_name
    d.mkdir(parents=True, exist_ok=True)
    return d


def db_path() -> Path:
    return data_dir() / DB_NAME


def connect(path: Optional[Path] = None) -> sqlite3.Connection:
    target = path or db_path()
    conn = sqlite3.connect(str(target))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON;")
    logger.debug("Opened database %s", target)
    return conn


def migrate(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            text TEXT NOT NULL,
            due_date TEXT, -- ISO local, nullable
            completed INTEGER NOT NULL DEFAULT 0,
            priority TEXT NOT NULL DEFAULT 'Medium',
            tags TEXT NOT NULL DEFAULT '', -- CSV
            created_at TEXT NOT NULL,

            recurrence_type TEXT NOT NULL DEFAULT 'none',
            recurrence_interval INTEGER NOT NULL DEFAULT 1,
            recurrence_days TEXT NOT NULL DEFAULT '', -- CSV "1,3,5", 0=Sun
            recurrence_day_of_month INTEGER,

            reminder_enabled INTEGER NOT NULL DEFAULT 0,
            reminder_type TEXT NOT NULL DEFAULT 'relative',
            reminder_offset_value INTEGER NOT NULL DEFAULT 1,
            reminder_offset_unit TEXT NOT NULL DEFAULT 'hours',
            reminder_time TEXT NOT NULL DEFAULT '09:00', -- HH:MM
            last_reminder_key TEXT
        );

        CREATE TABLE IF NOT EXISTS subtasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            text TEXT NOT NULL,
            completed INTEGER NOT NULL DEFAULT 0
        );

        CREATE TABLE IF NOT EXISTS state (
            key TEXT PRIMARY KEY, -- e.g. "pomodoro:global", "pomodoro:12"
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
    )

    # Defaults if missing
    for key, value in DEFAULT_SETTINGS.items():
        conn.execute("INSERT OR IGNORE INTO settings(key,value) VALUES(?,?)", (key, value))

    conn.commit()


def _is_windows() -> bool:
    import sys
    return sys.platform.startswith("win")


def _is_macos() -> bool:
    import sys
    return sys.platform == "darwin"


def _get_env(k: str, default: str) -> str:
    import os
    return os.environ.get(k, default)
