from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .models import ReminderRule, ReminderType, OffsetUnit
from .periods import parse_hhmm, instance_key


_UNIT_DELTAS = {
    OffsetUnit.MINUTES: timedelta(minutes=1),
    OffsetUnit.HOURS: timedelta(hours=1),
    OffsetUnit.DAYS: timedelta(days=1),
}


@dataclass(frozen=True)
class ReminderDecision:
    should_fire: bool
    instance_key: Optional[str]  # None when no reminder instant can be computed


NO_REMINDER = ReminderDecision(should_fire=False, instance_key=None)


def reminder_instant(due_date: datetime, rule: ReminderRule) -> Optional[datetime]:
    """
    When the reminder for `due_date` should go off.

    relative: due date minus the offset.
    absolute: the due date's calendar day at HH:MM.
    A malformed rule (unknown type/unit, offset <= 0, bad HH:MM) gives None.
    """
    try:
        rtype = ReminderType(rule.type)
    except ValueError:
        return None

    if rtype == ReminderType.RELATIVE:
        try:
            unit = _UNIT_DELTAS[OffsetUnit(rule.offset_unit)]
            offset = int(rule.offset_value)
        except (KeyError, ValueError, TypeError):
            return None
        if offset <= 0:
            return None
        try:
            return due_date - unit * offset
        except OverflowError:
            return None

    at = parse_hhmm(rule.absolute_time)
    if at is None:
        return None
    return datetime.combine(due_date.date(), at)


def evaluate_reminder(
    now: datetime,
    due_date: Optional[datetime],
    rule: Optional[ReminderRule],
    last_fired_key: Optional[str],
    completed: bool = False,
) -> ReminderDecision:
    """
    Single source of truth for whether a task's reminder fires right now.

    Fires once per instance: the instance key is the reminder instant itself,
    so re-evaluating after a fire is a no-op, while moving the due date
    produces a new key and re-arms the reminder.
    """
    if completed or due_date is None or rule is None or not rule.enabled:
        return NO_REMINDER

    instant = reminder_instant(due_date, rule)
    if instant is None:
        return NO_REMINDER

    key = instance_key(instant)
    return ReminderDecision(should_fire=(instant <= now and key != last_fired_key), instance_key=key)
