from __future__ import annotations
import sys
from pathlib import Path
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import QApplication, QStyle


def resource_path(*parts: str) -> Path:
    # Works in dev and in PyInstaller
    if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
        base = Path(sys._MEIPASS)  # type: ignore[attr-defined]
    else:
        base = Path(__file__).resolve().parent
    return base.joinpath(*parts)


def tray_icon() -> QIcon:
    p = resource_path("assets", "tray.png")
    if p.exists():
        return QIcon(str(p))
    # no bundled artwork: fall back to a platform clock-ish icon
    return QApplication.style().standardIcon(QStyle.StandardPixmap.SP_BrowserReload)
