from __future__ import annotations
from typing import Callable, Optional, Protocol

from PySide6.QtCore import QObject, QTimer


class Ticker(Protocol):
    """Owned periodic timer handle. Components start it and must stop it on teardown."""

    def start(self, callback: Callable[[], None]) -> None: ...

    def stop(self) -> None: ...

    @property
    def is_active(self) -> bool: ...


class QtTicker(QObject):
    def __init__(self, interval_ms: int, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.timer = QTimer(self)
        self.timer.setInterval(interval_ms)
        self._callback: Optional[Callable[[], None]] = None
        self.timer.timeout.connect(self._fire)

    def start(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self.timer.start()

    def stop(self) -> None:
        self.timer.stop()
        self._callback = None

    @property
    def is_active(self) -> bool:
        return self.timer.isActive()

    def _fire(self) -> None:
        if self._callback is not None:
            self._callback()
