from __future__ import annotations
from PySide6.QtCore import Qt
from PySide6.QtWidgets import QDialog, QVBoxLayout, QHBoxLayout, QLabel, QPushButton

from ..models import SessionState
from ..periods import format_countdown
from ..session_timer import SessionTimer
from .settings import TimerSettingsDialog


class FocusPanel(QDialog):
    def __init__(self, timer: SessionTimer, parent=None):
        super().__init__(parent)
        self.timer = timer
        self.setWindowTitle("Focus")
        self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)
        self.setMinimumWidth(320)
        self.setAttribute(Qt.WA_DeleteOnClose, False)

        self.layout = QVBoxLayout(self)

        self.header = QLabel()
        self.header.setAlignment(Qt.AlignCenter)
        self.layout.addWidget(self.header)

        if timer.focus is not None:
            focused = QLabel(f"Focusing on: {timer.focus.text}")
            focused.setAlignment(Qt.AlignCenter)
            self.layout.addWidget(focused)

        self.countdown = QLabel()
        self.countdown.setAlignment(Qt.AlignCenter)
        self.countdown.setStyleSheet("QLabel { font-size: 36px; }")
        self.layout.addWidget(self.countdown)

        row = QHBoxLayout()

        self.btn_toggle = QPushButton()
        self.btn_toggle.clicked.connect(timer.toggle)
        row.addWidget(self.btn_toggle)

        self.btn_reset = QPushButton("Reset")
        self.btn_reset.clicked.connect(lambda: timer.reset())
        row.addWidget(self.btn_reset)

        self.btn_skip = QPushButton("Skip")
        self.btn_skip.clicked.connect(timer.skip)
        row.addWidget(self.btn_skip)

        self.btn_settings = QPushButton("Settings…")
        self.btn_settings.clicked.connect(self.edit_settings)
        row.addWidget(self.btn_settings)

        self.layout.addLayout(row)

        self.footer = QLabel()
        self.footer.setStyleSheet("""
            QLabel {
                color: #888;
                font-size: 11px;
                padding-top: 6px;
            }
        """)
        self.footer.setAlignment(Qt.AlignCenter)
        self.layout.addWidget(self.footer)

        timer.state_changed.connect(self.refresh)
        self.refresh(timer.state)

    def refresh(self, state: SessionState) -> None:
        self.header.setText(state.session_type.label)
        self.countdown.setText(format_countdown(state.remaining_seconds))
        self.btn_toggle.setText("Pause" if state.is_running else "Start")
        self.footer.setText(f"Cycles completed: {state.completed_work_cycles}")

    def edit_settings(self) -> None:
        dlg = TimerSettingsDialog(self.timer.settings, parent=self)
        if dlg.exec():
            self.timer.update_settings(dlg.settings())
