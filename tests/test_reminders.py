from datetime import datetime

from taskclock.models import OffsetUnit, ReminderRule, ReminderType
from taskclock.reminders import evaluate_reminder, reminder_instant


DUE = datetime(2024, 6, 3, 12, 0)


def _relative(value=1, unit=OffsetUnit.HOURS, enabled=True):
    return ReminderRule(enabled=enabled, type=ReminderType.RELATIVE, offset_value=value, offset_unit=unit)


def _absolute(hhmm="09:00"):
    return ReminderRule(enabled=True, type=ReminderType.ABSOLUTE, absolute_time=hhmm)


def test_relative_instant_per_unit():
    assert reminder_instant(DUE, _relative(30, OffsetUnit.MINUTES)) == datetime(2024, 6, 3, 11, 30)
    assert reminder_instant(DUE, _relative(2, OffsetUnit.HOURS)) == datetime(2024, 6, 3, 10, 0)
    assert reminder_instant(DUE, _relative(1, OffsetUnit.DAYS)) == datetime(2024, 6, 2, 12, 0)


def test_absolute_instant_uses_due_calendar_day():
    assert reminder_instant(DUE, _absolute("07:45")) == datetime(2024, 6, 3, 7, 45)
    # can be after the due time on the same day
    assert reminder_instant(DUE, _absolute("18:00")) == datetime(2024, 6, 3, 18, 0)


def test_unrepresentable_relative_instant_is_none():
    assert reminder_instant(DUE, _relative(1_000_000, OffsetUnit.DAYS)) is None
    d = evaluate_reminder(DUE, DUE, _relative(1_000_000, OffsetUnit.DAYS), None)
    assert d.should_fire is False
    assert d.instance_key is None


def test_malformed_rules_have_no_instant():
    assert reminder_instant(DUE, _relative(0)) is None
    assert reminder_instant(DUE, _relative(-3)) is None
    assert reminder_instant(DUE, ReminderRule(enabled=True, type="sometimes")) is None
    assert reminder_instant(DUE, ReminderRule(enabled=True, offset_unit="weeks")) is None
    assert reminder_instant(DUE, _absolute("late")) is None


def test_not_yet_due_does_not_fire_but_reports_key():
    d = evaluate_reminder(datetime(2024, 6, 3, 10, 59), DUE, _relative(), None)
    assert d.should_fire is False
    assert d.instance_key == "2024-06-03T11:00:00"


def test_fires_at_reminder_instant():
    d = evaluate_reminder(datetime(2024, 6, 3, 11, 0), DUE, _relative(), None)
    assert d.should_fire is True
    assert d.instance_key == "2024-06-03T11:00:00"


def test_fires_exactly_once_per_instance():
    now = datetime(2024, 6, 3, 11, 5)
    first = evaluate_reminder(now, DUE, _relative(), None)
    assert first.should_fire is True

    second = evaluate_reminder(now, DUE, _relative(), first.instance_key)
    assert second.should_fire is False
    assert second.instance_key == first.instance_key


def test_moving_due_date_rearms():
    fired = evaluate_reminder(datetime(2024, 6, 3, 11, 5), DUE, _relative(), None)

    new_due = datetime(2024, 6, 10, 12, 0)
    before = evaluate_reminder(datetime(2024, 6, 4, 9, 0), new_due, _relative(), fired.instance_key)
    assert before.instance_key != fired.instance_key
    assert before.should_fire is False

    after = evaluate_reminder(datetime(2024, 6, 10, 11, 0), new_due, _relative(), fired.instance_key)
    assert after.should_fire is True


def test_never_fires_when_disabled_completed_or_undated():
    now = datetime(2024, 6, 4)
    assert evaluate_reminder(now, DUE, _relative(enabled=False), None).should_fire is False
    assert evaluate_reminder(now, DUE, _relative(), None, completed=True).should_fire is False
    assert evaluate_reminder(now, None, _relative(), None).should_fire is False
    assert evaluate_reminder(now, DUE, None, None).should_fire is False
    assert evaluate_reminder(now, DUE, _relative(0), None).instance_key is None
