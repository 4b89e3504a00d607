"""
Focus session timer.

State machine over Work / ShortBreak / LongBreak:

    Work       -> LongBreak   when (cycles + 1) % cycles_before_long_break == 0
    Work       -> ShortBreak  otherwise
    ShortBreak -> Work
    LongBreak  -> Work

Every mutation is persisted through a SessionStore so the timer can be closed
and reopened mid-session. On restore, a running session is caught up by the
wall-clock time that passed while it was closed; if that covers the rest of
the session, exactly one transition is applied and the timer is left paused.

Auto-continuation into the next session is the host's decision
(see should_auto_start); the state machine always stops at a transition.
"""

from __future__ import annotations
import json
import logging
from dataclasses import replace
from typing import Optional

from PySide6.QtCore import QObject, Signal

from .models import SessionState, SessionType, Task, TimerSettings
from .periods import Clock, SystemClock, elapsed_seconds
from .repository import SessionStore
from .ticker import QtTicker, Ticker

logger = logging.getLogger(__name__)

TICK_MS = 1_000
GLOBAL_FOCUS = "global"


def state_key(focus: Optional[Task]) -> str:
    return f"pomodoro:{focus.id if focus is not None else GLOBAL_FOCUS}"


def enter_session(state: SessionState, session_type: SessionType) -> SessionState:
    """Enter a session: full duration, paused, no wall-clock anchor."""
    return replace(
        state,
        session_type=session_type,
        remaining_seconds=state.settings.duration_for(session_type),
        is_running=False,
        last_observed_at=None,
    )


def expire_session(state: SessionState) -> SessionState:
    """The transition applied when a session runs out (or is skipped)."""
    if state.session_type == SessionType.WORK:
        cycles = state.completed_work_cycles + 1
        if cycles % state.settings.cycles_before_long_break == 0:
            nxt = SessionType.LONG_BREAK
        else:
            nxt = SessionType.SHORT_BREAK
        return enter_session(replace(state, completed_work_cycles=cycles), nxt)
    return enter_session(state, SessionType.WORK)


def should_auto_start(settings: TimerSettings, session_type: SessionType) -> bool:
    if session_type == SessionType.WORK:
        return settings.auto_start_work
    return settings.auto_start_breaks


class SessionTimer(QObject):
    session_transition = Signal(object, object, bool)  # ended SessionType, focused Task | None, skipped
    settings_changed = Signal(object)  # TimerSettings
    state_changed = Signal(object)  # SessionState

    def __init__(
        self,
        store: SessionStore,
        settings: Optional[TimerSettings] = None,
        focus: Optional[Task] = None,
        clock: Optional[Clock] = None,
        ticker: Optional[Ticker] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.store = store
        self.focus = focus
        self.key = state_key(focus)
        self.clock = clock or SystemClock()
        self.ticker = ticker if ticker is not None else QtTicker(TICK_MS, self)
        self._host_settings = settings
        self._state = SessionState.initial(settings or TimerSettings())

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def settings(self) -> TimerSettings:
        return self._state.settings

    # ---------- lifecycle ----------
    def restore(self) -> bool:
        """
        Load the persisted session for this focus target.

        Returns True if a session expired while the timer was closed, in which
        case the transition has been applied and reported.
        """
        state = self._load(self.store.get(self.key))
        if state is None:
            state = SessionState.initial(self._host_settings or TimerSettings())

        ended: Optional[SessionType] = None
        if state.is_running:
            now = self.clock.now()
            elapsed = elapsed_seconds(state.last_observed_at, now) if state.last_observed_at else 0
            if elapsed >= state.remaining_seconds:
                ended = state.session_type
                state = expire_session(state)
                logger.info(
                    "Session %s expired while closed (%ss elapsed); now %s, paused",
                    ended.value, elapsed, state.session_type.value,
                )
            else:
                state = replace(state, remaining_seconds=state.remaining_seconds - elapsed, last_observed_at=now)

        self._state = state
        if self._host_settings is not None and self._host_settings != state.settings:
            self._state = self._with_settings(self._host_settings)

        if self._state.is_running:
            self.ticker.start(self.tick)
        self._commit()

        if ended is not None:
            self.session_transition.emit(ended, self.focus, False)
        return ended is not None

    def close(self) -> None:
        """Release the ticker; a running session stays running in storage and is caught up on restore."""
        self.ticker.stop()
        self._persist()

    def __enter__(self) -> "SessionTimer":
        self.restore()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---------- operations ----------
    def start(self) -> None:
        if self._state.is_running:
            return
        self._state = replace(self._state, is_running=True, last_observed_at=self.clock.now())
        self.ticker.start(self.tick)
        self._commit()

    def pause(self) -> None:
        if not self._state.is_running:
            return
        self.ticker.stop()
        self._state = replace(self._state, is_running=False, last_observed_at=None)
        self._commit()

    def toggle(self) -> None:
        if self._state.is_running:
            self.pause()
        else:
            self.start()

    def reset(self, session_type: Optional[SessionType] = None) -> None:
        self.ticker.stop()
        self._state = enter_session(self._state, session_type or self._state.session_type)
        self._commit()

    def skip(self) -> None:
        self._finish(skipped=True)

    def tick(self) -> None:
        if not self._state.is_running:
            return
        remaining = self._state.remaining_seconds - 1
        if remaining <= 0:
            self._finish(skipped=False)
            return
        self._state = replace(self._state, remaining_seconds=remaining, last_observed_at=self.clock.now())
        self._commit()

    def update_settings(self, settings: TimerSettings) -> None:
        self._state = self._with_settings(settings)
        self._commit()
        self.settings_changed.emit(settings)

    # ---------- internals ----------
    def _with_settings(self, settings: TimerSettings) -> SessionState:
        state = replace(self._state, settings=settings)
        if not state.is_running:
            # a running countdown keeps its length; the new durations apply from the next session
            state = replace(state, remaining_seconds=settings.duration_for(state.session_type))
        return state

    def _finish(self, skipped: bool) -> None:
        ended = self._state.session_type
        self.ticker.stop()
        self._state = expire_session(self._state)
        logger.info(
            "Session %s %s -> %s (cycles=%s)",
            ended.value, "skipped" if skipped else "completed",
            self._state.session_type.value, self._state.completed_work_cycles,
        )
        self._commit()
        self.session_transition.emit(ended, self.focus, skipped)

    def _commit(self) -> None:
        self._persist()
        self.state_changed.emit(self._state)

    def _persist(self) -> None:
        try:
            self.store.put(self.key, json.dumps(self._state.to_dict()))
        except Exception:
            logger.exception("Persisting session state failed key=%s", self.key)

    def _load(self, raw: Optional[str]) -> Optional[SessionState]:
        if raw is None:
            return None
        try:
            return SessionState.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError, AttributeError, OverflowError):
            logger.warning("Discarding unreadable session state key=%s", self.key)
            return None
