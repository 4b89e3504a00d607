from __future__ import annotations
import logging
import sys
import signal
from datetime import datetime
from typing import Optional

from PySide6.QtWidgets import QApplication, QSystemTrayIcon, QMenu, QInputDialog
from PySide6.QtGui import QAction, QCursor
from PySide6.QtCore import QTimer

from .db import connect, data_dir, migrate
from .logging_setup import setup_logging
from .models import (
    RecurrenceRule, RecurrenceType, ReminderRule, ReminderType, SessionType, Subtask, Task, TimerSettings,
)
from .notifications import Notifier, session_text
from .repository import Repository, StateStore
from .resources import tray_icon
from .scheduler import ReminderScheduler, ReminderEvent
from .session_timer import SessionTimer, should_auto_start, state_key
from .ui.panel import FocusPanel
from .ui.settings import TimerSettingsDialog

logger = logging.getLogger(__name__)


def ensure_default_task(repo: Repository) -> None:
    if repo.list_tasks():
        return

    # Example: weekly review every Friday, reminder at 09:00 on the day (disabled by default)
    today = datetime.combine(datetime.now().date(), datetime.min.time())
    repo.create_task(
        text="Weekly review",
        due_date=today,
        recurrence=RecurrenceRule(type=RecurrenceType.WEEKLY, interval=1, days_of_week=frozenset({5})),
        reminder=ReminderRule(enabled=False, type=ReminderType.ABSOLUTE, absolute_time="09:00"),
    )


class FocusHost:
    """Owns the active SessionTimer and its panel; one focus target at a time."""

    def __init__(self, repo: Repository, store: StateStore, notifier: Notifier):
        self.repo = repo
        self.store = store
        self.notifier = notifier
        self.timer: Optional[SessionTimer] = None
        self.panel: Optional[FocusPanel] = None
        self._restoring = False

    def open(self, focus: Optional[Task] = None) -> None:
        if self.timer is not None and self.timer.key == state_key(focus):
            _show(self.panel)
            return
        self.close()

        timer = SessionTimer(self.store, settings=self.repo.get_timer_settings(), focus=focus)
        timer.session_transition.connect(self._on_transition)
        timer.settings_changed.connect(self._on_settings_changed)
        self.timer = timer
        # a session that expired while closed is reported but stays paused
        self._restoring = True
        try:
            timer.restore()
        finally:
            self._restoring = False

        self.panel = FocusPanel(timer)
        _show(self.panel)

    def close(self) -> None:
        if self.panel is not None:
            self.panel.close()
            self.panel = None
        if self.timer is not None:
            self.timer.close()
            self.timer = None

    def focused_on(self, task_id: int) -> bool:
        return self.timer is not None and self.timer.focus is not None and self.timer.focus.id == task_id

    def edit_settings(self) -> None:
        if self.panel is not None:
            _show(self.panel)
            self.panel.edit_settings()
            return
        dlg = TimerSettingsDialog(self.repo.get_timer_settings())
        if dlg.exec():
            self.repo.set_timer_settings(dlg.settings())

    def _on_transition(self, ended: SessionType, focus: Optional[Task], skipped: bool) -> None:
        title, body = session_text(ended, focus, skipped)
        if not skipped:
            QApplication.beep()
        self.notifier.notify(title, body)
        timer = self.timer
        if timer is None or skipped or self._restoring:
            return
        if should_auto_start(timer.settings, timer.state.session_type):
            timer.start()

    def _on_settings_changed(self, settings: TimerSettings) -> None:
        self.repo.set_timer_settings(settings)


def mark_done(repo: Repository, focus: FocusHost, task_id: int) -> Task:
    """Complete a task from the tray; a recurring one moves to its next occurrence."""
    updated = repo.complete_task(task_id)
    if updated.completed and focus.focused_on(task_id):
        focus.close()
    return updated


def remove_task(repo: Repository, focus: FocusHost, task_id: int) -> None:
    if focus.focused_on(task_id):
        focus.close()
    repo.delete_task(task_id)


def main() -> int:
    setup_logging(log_dir=data_dir() / "logs")

    app = QApplication(sys.argv)
    app.setWindowIcon(tray_icon())
    app.setQuitOnLastWindowClosed(False)

    # Qt's event loop eats SIGINT unless we pump it. This makes Ctrl-C behave.
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    _sig_timer = QTimer()
    _sig_timer.start(250)
    _sig_timer.timeout.connect(lambda: None)

    conn = connect()
    migrate(conn)
    repo = Repository(conn)
    store = StateStore(conn)
    ensure_default_task(repo)

    tray = QSystemTrayIcon()
    tray.setIcon(tray_icon())
    tray.setToolTip("TaskClock")

    notifier = Notifier(tray)
    focus = FocusHost(repo, store, notifier)

    menu = QMenu()

    act_focus = QAction("Focus timer")
    act_focus.triggered.connect(lambda: focus.open(None))
    menu.addAction(act_focus)

    tasks_menu = menu.addMenu("Tasks")
    tasks_menu.aboutToShow.connect(lambda: _fill_tasks_menu(tasks_menu, repo, focus))

    act_settings = QAction("Timer settings")
    act_settings.triggered.connect(focus.edit_settings)
    menu.addAction(act_settings)

    menu.addSeparator()

    scheduler = ReminderScheduler(repo, notifier)
    scheduler.reminder_due.connect(_on_reminder)

    def quit_cleanly():
        scheduler.stop()
        focus.close()
        # Ensure tray icon disappears immediately; avoids some Qt shutdown warnings.
        tray.hide()
        app.quit()

    act_quit = QAction("Quit")
    act_quit.triggered.connect(quit_cleanly)
    menu.addAction(act_quit)

    tray.setContextMenu(menu)

    if sys.platform.startswith("win"):
        def _show_menu_on_left_click(reason: QSystemTrayIcon.ActivationReason):
            if reason == QSystemTrayIcon.ActivationReason.Trigger:
                cm = tray.contextMenu()
                if cm is not None:
                    cm.popup(QCursor.pos())

        tray.activated.connect(_show_menu_on_left_click)

    tray.show()
    scheduler.start()
    logger.info("TaskClock started")
    try:
        return app.exec()
    finally:
        conn.close()


def _fill_tasks_menu(menu: QMenu, repo: Repository, focus: FocusHost) -> None:
    menu.clear()
    tasks = [t for t in repo.list_tasks() if not t.completed]
    if not tasks:
        menu.addAction("No open tasks").setEnabled(False)
        return
    for t in tasks:
        _add_task_menu(menu.addMenu(t.text), repo, focus, t)


def _add_task_menu(menu: QMenu, repo: Repository, focus: FocusHost, task: Task) -> None:
    tid = task.id
    menu.addAction("Focus").triggered.connect(lambda _checked=False: focus.open(task))
    menu.addAction("Mark done").triggered.connect(lambda _checked=False: mark_done(repo, focus, tid))

    menu.addSeparator()
    for sub in task.subtasks:
        _add_subtask_menu(menu, repo, sub)
    menu.addAction("Add subtask…").triggered.connect(lambda _checked=False: _ask_subtask(repo, tid))

    menu.addSeparator()
    menu.addAction("Delete task").triggered.connect(lambda _checked=False: remove_task(repo, focus, tid))


def _add_subtask_menu(menu: QMenu, repo: Repository, sub: Subtask) -> None:
    sub_menu = menu.addMenu(("✓ " if sub.completed else "") + sub.text)
    act_done = sub_menu.addAction("Done")
    act_done.setCheckable(True)
    act_done.setChecked(sub.completed)
    act_done.triggered.connect(lambda _checked=False, sid=sub.id: repo.toggle_subtask(sid))
    sub_menu.addAction("Rename…").triggered.connect(lambda _checked=False: _ask_rename(repo, sub))
    sub_menu.addAction("Delete").triggered.connect(lambda _checked=False, sid=sub.id: repo.delete_subtask(sid))


def _ask_subtask(repo: Repository, task_id: int) -> None:
    text, ok = QInputDialog.getText(None, "Add subtask", "Subtask:")
    if ok and text.strip():
        repo.add_subtask(task_id, text)


def _ask_rename(repo: Repository, sub: Subtask) -> None:
    text, ok = QInputDialog.getText(None, "Rename subtask", "Subtask:", text=sub.text)
    if ok and text.strip():
        repo.edit_subtask(sub.id, text)


def _show(panel: Optional[FocusPanel]) -> None:
    if panel is None:
        return
    panel.show()
    panel.raise_()
    panel.activateWindow()


def _on_reminder(ev: ReminderEvent) -> None:
    logger.debug("Reminder delivered for task %s at %s", ev.task.id, ev.fired_at)


if __name__ == "__main__":
    sys.exit(main())
