from __future__ import annotations
import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional, Union

from .models import RecurrenceRule, RecurrenceType, Task
from .periods import add_months, add_years, to_midnight, weekday_index

logger = logging.getLogger(__name__)


def _valid_interval(rule: RecurrenceRule) -> Optional[int]:
    raw = 1 if rule.interval is None else rule.interval
    try:
        interval = int(raw)
    except (TypeError, ValueError):
        return None
    return interval if interval >= 1 else None


def _next_weekly(start: datetime, interval: int, days) -> Optional[datetime]:
    if not days:
        return start + timedelta(weeks=interval)

    base = start + timedelta(weeks=interval - 1)
    for offset in range(1, 8):
        candidate = base + timedelta(days=offset)
        if weekday_index(candidate) in days:
            return candidate

    # only reachable when days bypassed RecurrenceRule normalisation
    base += timedelta(weeks=1)
    for offset in range(7):
        candidate = base + timedelta(days=offset)
        if weekday_index(candidate) in days:
            return candidate
    return None


def next_due_date(anchor: Union[date, datetime, None], rule: Optional[RecurrenceRule]) -> Optional[datetime]:
    """
    Advance an anchor due date by one step of `rule`.

    Returns the next due date at local midnight, or None when the rule does not
    recur. Never raises: an unknown type, a non-positive interval or a missing
    anchor all mean "no recurrence".
    """
    if anchor is None or rule is None:
        return None

    rtype = RecurrenceType.parse(rule.type)
    if rtype is None or rtype == RecurrenceType.NONE:
        return None

    interval = _valid_interval(rule)
    if interval is None:
        logger.debug("Ignoring recurrence with invalid interval %r", rule.interval)
        return None

    start = to_midnight(anchor)

    try:
        if rtype == RecurrenceType.DAILY:
            return start + timedelta(days=interval)
        if rtype == RecurrenceType.WEEKLY:
            return _next_weekly(start, interval, rule.days_of_week)
        if rtype == RecurrenceType.MONTHLY:
            return add_months(start, interval)
        if rtype == RecurrenceType.YEARLY:
            return add_years(start, interval)
    except (OverflowError, ValueError):
        # past datetime.max: nothing to advance to
        logger.debug("Recurrence %s x%s from %s leaves the calendar", rtype.value, interval, start)
    return None


def complete_task(task: Task) -> Task:
    """
    Return the task as it looks after the user marks it done.

    A recurring task with a due date is not closed: it becomes its own next
    occurrence (new due date, completed=False). Anything else is simply marked
    completed. Completing an already completed task changes nothing.
    """
    if task.completed:
        return task

    if task.due_date is not None and task.recurrence.is_recurring:
        nxt = next_due_date(task.due_date, task.recurrence)
        if nxt is not None:
            logger.info("Task %s recurs: %s -> %s", task.id, task.due_date, nxt)
            return replace(task, due_date=nxt, completed=False)

    return replace(task, completed=True)
