from dataclasses import replace
from datetime import datetime, date

import pytest

from taskclock.models import RecurrenceRule, RecurrenceType, Task
from taskclock.recurrence import complete_task, next_due_date


def _dt(y, m, d, hh=0, mm=0):
    return datetime(y, m, d, hh, mm)


def _rule(kind, interval=1, days=()):
    return RecurrenceRule(type=kind, interval=interval, days_of_week=frozenset(days))


def test_none_and_missing_inputs_do_not_recur():
    assert next_due_date(_dt(2024, 6, 3), _rule(RecurrenceType.NONE)) is None
    assert next_due_date(None, _rule(RecurrenceType.DAILY)) is None
    assert next_due_date(_dt(2024, 6, 3), None) is None


def test_malformed_rules_yield_none():
    assert next_due_date(_dt(2024, 6, 3), RecurrenceRule(type="fortnightly")) is None
    assert next_due_date(_dt(2024, 6, 3), _rule(RecurrenceType.DAILY, interval=0)) is None
    assert next_due_date(_dt(2024, 6, 3), _rule(RecurrenceType.DAILY, interval=-2)) is None


def test_daily_normalizes_to_midnight():
    assert next_due_date(_dt(2024, 6, 3, 17, 30), _rule(RecurrenceType.DAILY)) == _dt(2024, 6, 4)
    assert next_due_date(date(2024, 6, 30), _rule(RecurrenceType.DAILY, interval=3)) == _dt(2024, 7, 3)


def test_weekly_without_days_adds_whole_weeks():
    assert next_due_date(_dt(2024, 6, 3), _rule(RecurrenceType.WEEKLY)) == _dt(2024, 6, 10)
    assert next_due_date(_dt(2024, 6, 3), _rule(RecurrenceType.WEEKLY, interval=2)) == _dt(2024, 6, 17)


def test_weekly_mon_wed_fri_from_monday_gives_wednesday():
    rule = _rule(RecurrenceType.WEEKLY, days=[1, 3, 5])
    assert next_due_date(_dt(2024, 6, 3), rule) == _dt(2024, 6, 5)
    assert next_due_date(_dt(2024, 6, 5), rule) == _dt(2024, 6, 7)
    # Friday wraps to next Monday
    assert next_due_date(_dt(2024, 6, 7), rule) == _dt(2024, 6, 10)


def test_weekly_same_single_day_moves_a_full_week():
    rule = _rule(RecurrenceType.WEEKLY, days=[1])
    assert next_due_date(_dt(2024, 6, 3), rule) == _dt(2024, 6, 10)


def test_weekly_interval_skips_weeks_before_scanning():
    rule = _rule(RecurrenceType.WEEKLY, interval=2, days=[3])
    # Monday 3rd -> advance one week to 10th, then next Wednesday after it
    assert next_due_date(_dt(2024, 6, 3), rule) == _dt(2024, 6, 12)


def test_weekly_invalid_days_are_dropped():
    rule = _rule(RecurrenceType.WEEKLY, days=[9, -1])
    assert rule.days_of_week == frozenset()
    assert next_due_date(_dt(2024, 6, 3), rule) == _dt(2024, 6, 10)


def test_days_of_week_only_kept_for_weekly():
    assert _rule(RecurrenceType.DAILY, days=[1, 2]).days_of_week == frozenset()


def test_monthly_clamps_to_last_day():
    rule = _rule(RecurrenceType.MONTHLY)
    assert next_due_date(_dt(2024, 1, 31), rule) == _dt(2024, 2, 29)
    assert next_due_date(_dt(2023, 1, 31), rule) == _dt(2023, 2, 28)
    assert next_due_date(_dt(2024, 5, 15), _rule(RecurrenceType.MONTHLY, interval=2)) == _dt(2024, 7, 15)


def test_yearly_leap_day_clamps():
    rule = _rule(RecurrenceType.YEARLY)
    assert next_due_date(_dt(2024, 2, 29), rule) == _dt(2025, 2, 28)
    assert next_due_date(_dt(2024, 6, 3), rule) == _dt(2025, 6, 3)


@pytest.mark.parametrize(
    "rule",
    [
        _rule(RecurrenceType.DAILY, interval=2),
        _rule(RecurrenceType.WEEKLY),
        _rule(RecurrenceType.WEEKLY, days=[0, 6]),
        _rule(RecurrenceType.WEEKLY, interval=3, days=[2, 4]),
        _rule(RecurrenceType.MONTHLY),
        _rule(RecurrenceType.YEARLY),
    ],
)
def test_repeated_application_strictly_increases(rule):
    current = _dt(2024, 1, 31)
    for _ in range(60):
        nxt = next_due_date(current, rule)
        assert nxt > current
        current = nxt


def test_complete_recurring_task_becomes_next_occurrence():
    task = Task(
        id=1,
        text="Water plants",
        due_date=_dt(2024, 6, 3),
        recurrence=_rule(RecurrenceType.WEEKLY, days=[1]),
    )
    done = complete_task(task)

    assert done.id == task.id
    assert done.completed is False
    assert done.due_date == _dt(2024, 6, 10)
    # original value untouched
    assert task.due_date == _dt(2024, 6, 3)


def test_complete_non_recurring_task_marks_completed():
    task = Task(id=2, text="Call bank", due_date=_dt(2024, 6, 3))
    assert complete_task(task).completed is True


def test_complete_recurring_without_due_date_marks_completed():
    task = Task(id=3, text="Someday", recurrence=_rule(RecurrenceType.DAILY))
    done = complete_task(task)
    assert done.completed is True
    assert done.due_date is None


def test_complete_already_completed_is_noop():
    task = replace(Task(id=4, text="x", due_date=_dt(2024, 6, 3)), completed=True)
    assert complete_task(task) is task


@pytest.mark.parametrize(
    "rule",
    [
        _rule(RecurrenceType.DAILY, interval=10**9),
        _rule(RecurrenceType.WEEKLY, interval=10**8, days=(1,)),
        _rule(RecurrenceType.MONTHLY, interval=10**6),
        _rule(RecurrenceType.YEARLY, interval=10000),
    ],
)
def test_step_past_the_calendar_yields_none(rule):
    assert next_due_date(_dt(2024, 6, 3), rule) is None


def test_complete_task_whose_next_step_overflows_is_closed():
    task = Task(id=1, text="Someday", due_date=_dt(2024, 6, 3), recurrence=_rule(RecurrenceType.YEARLY, interval=10000))
    done = complete_task(task)
    assert done.completed is True
    assert done.due_date == _dt(2024, 6, 3)
