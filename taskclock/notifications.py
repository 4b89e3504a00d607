from __future__ import annotations
import logging
from typing import Optional, Protocol, Tuple

from PySide6.QtWidgets import QSystemTrayIcon

from .models import SessionType, Task
from .periods import format_due

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify(self, title: str, body: str) -> None: ...


class Notifier:
    def __init__(self, tray: QSystemTrayIcon):
        self.tray = tray

    def notify(self, title: str, body: str) -> None:
        # Delivery is best-effort: no tray messages means a silent no-op.
        if not QSystemTrayIcon.supportsMessages():
            logger.info("Notifications unavailable; dropped %r", title)
            return
        self.tray.showMessage(title, body, QSystemTrayIcon.MessageIcon.Information, 10_000)


def reminder_text(task: Task) -> Tuple[str, str]:
    due = format_due(task.due_date) if task.due_date else "no due date"
    return task.text, f"Due: {due}"


def session_text(session_type: SessionType, focused: Optional[Task], skipped: bool) -> Tuple[str, str]:
    title = f"Session {'Skipped' if skipped else 'Complete'}: {session_type.label}"
    if focused is not None:
        body = f"{'Skipped' if skipped else 'Finished'} focusing on: {focused.text}"
    else:
        body = "Time for the next phase!"
    return title, body
