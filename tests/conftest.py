from __future__ import annotations
from datetime import datetime

import pytest
from PySide6.QtCore import QCoreApplication

from taskclock.db import connect, migrate
from taskclock.repository import Repository, StateStore

from .fakes import FakeClock, FakeTicker, MemoryStore


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    # Signals and QTimer need an application object; no display required.
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 6, 3, 8, 0, 0))  # Monday


@pytest.fixture()
def ticker() -> FakeTicker:
    return FakeTicker()


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def conn(tmp_path):
    c = connect(tmp_path / "taskclock.sqlite3")
    migrate(c)
    yield c
    c.close()


@pytest.fixture()
def repo(conn, clock) -> Repository:
    return Repository(conn, clock=clock)


@pytest.fixture()
def state_store(conn, clock) -> StateStore:
    return StateStore(conn, clock=clock)
