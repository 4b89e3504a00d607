from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from PySide6.QtCore import QObject, Signal

from .models import Task
from .notifications import NotificationSink, reminder_text
from .periods import Clock, SystemClock
from .reminders import evaluate_reminder
from .repository import Repository
from .ticker import QtTicker, Ticker

logger = logging.getLogger(__name__)


@dataclass
class ReminderEvent:
    task: Task
    fired_at: datetime


class ReminderScheduler(QObject):
    reminder_due = Signal(object)  # ReminderEvent

    def __init__(
        self,
        repo: Repository,
        notifier: NotificationSink,
        clock: Optional[Clock] = None,
        ticker: Optional[Ticker] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.repo = repo
        self.notifier = notifier
        self.clock = clock or SystemClock()
        if ticker is None:
            period_s = repo.get_settings().reminder_check_seconds
            ticker = QtTicker(period_s * 1000, self)
        self.ticker = ticker

    def start(self) -> None:
        # check right away, then on every period
        self.tick()
        self.ticker.start(self.tick)

    def stop(self) -> None:
        self.ticker.stop()

    def __enter__(self) -> "ReminderScheduler":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    def tick(self) -> int:
        """Evaluate every open task once. Returns how many reminders fired."""
        now = self.clock.now()
        fired = 0
        for task in self.repo.list_tasks():
            if task.completed:
                continue

            try:
                decision = evaluate_reminder(now, task.due_date, task.reminder, task.reminder.last_fired_key)
                if not decision.should_fire:
                    continue
                self._fire(task, decision.instance_key, now)
            except Exception:
                logger.exception("Reminder check failed task_id=%s", task.id)
                continue
            fired += 1
        return fired

    def _fire(self, task: Task, key: str, now: datetime) -> None:
        title, body = reminder_text(task)
        try:
            self.notifier.notify(title, body)
        except Exception:
            # Still advance the marker: retrying a blocked notification every tick is worse.
            logger.warning("Notification failed task_id=%s", task.id, exc_info=True)

        self.repo.set_reminder_marker(task.id, key)
        logger.info("Reminder fired task_id=%s instance=%s", task.id, key)
        self.reminder_due.emit(ReminderEvent(task=task, fired_at=now))
