from __future__ import annotations
from PySide6.QtWidgets import QDialog, QVBoxLayout, QLabel, QCheckBox, QHBoxLayout, QPushButton, QSpinBox

from ..models import TimerSettings


class TimerSettingsDialog(QDialog):
    def __init__(self, settings: TimerSettings, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Focus Timer Settings")
        self.setMinimumWidth(360)

        layout = QVBoxLayout(self)

        layout.addWidget(QLabel("Work duration (minutes)"))
        self.work = self._minutes_box(settings.work_duration)
        layout.addWidget(self.work)

        layout.addWidget(QLabel("Short break (minutes)"))
        self.short_break = self._minutes_box(settings.short_break_duration)
        layout.addWidget(self.short_break)

        layout.addWidget(QLabel("Long break (minutes)"))
        self.long_break = self._minutes_box(settings.long_break_duration)
        layout.addWidget(self.long_break)

        layout.addWidget(QLabel("Cycles before long break"))
        self.cycles = QSpinBox()
        self.cycles.setRange(1, 24)
        self.cycles.setValue(settings.cycles_before_long_break)
        layout.addWidget(self.cycles)

        self.auto_breaks = QCheckBox("Start breaks automatically")
        self.auto_breaks.setChecked(settings.auto_start_breaks)
        layout.addWidget(self.auto_breaks)

        self.auto_work = QCheckBox("Start work sessions automatically")
        self.auto_work.setChecked(settings.auto_start_work)
        layout.addWidget(self.auto_work)

        btns = QHBoxLayout()
        save = QPushButton("Save")
        save.clicked.connect(self.accept)
        btns.addWidget(save)

        cancel = QPushButton("Cancel")
        cancel.clicked.connect(self.reject)
        btns.addWidget(cancel)

        layout.addLayout(btns)

    @staticmethod
    def _minutes_box(seconds: int) -> QSpinBox:
        box = QSpinBox()
        box.setRange(1, 24 * 60)
        box.setValue(max(1, seconds // 60))
        return box

    def settings(self) -> TimerSettings:
        return TimerSettings(
            work_duration=int(self.work.value()) * 60,
            short_break_duration=int(self.short_break.value()) * 60,
            long_break_duration=int(self.long_break.value()) * 60,
            cycles_before_long_break=int(self.cycles.value()),
            auto_start_breaks=self.auto_breaks.isChecked(),
            auto_start_work=self.auto_work.isChecked(),
        )
