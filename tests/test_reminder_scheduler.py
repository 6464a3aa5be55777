from datetime import datetime

from core.models import Anchor, DNDWindow, ReminderStatus, SmartReminder
from core.reminder_scheduler import nominal_trigger, schedule_reminders, shift_for_dnd


def _anchor(anchor_id="a-work", start_min=540, end_min=1020, days=range(7), title="Work"):
    return Anchor(id=anchor_id, title=title, days=frozenset(days), start_min=start_min, end_min=end_min)


def _reminder(reminder_id="sr-1", anchor_id="a-work", offset=-10, status=ReminderStatus.ACTIVE, **kwargs):
    return SmartReminder(
        id=reminder_id,
        anchor_id=anchor_id,
        offset_minutes=offset,
        message=f"message {reminder_id}",
        status=status,
        **kwargs,
    )


def _night_window(days=range(7)):
    return DNDWindow(id="dnd-night", days=frozenset(days), start_min=1380, end_min=420)


def test_trigger_before_overnight_window_end_is_shifted():
    """Anchor 09:00 with -600 lands at 23:00 the previous evening, inside quiet hours."""
    now = datetime(2026, 2, 10, 6, 0)
    anchor = _anchor(start_min=540)
    reminder = _reminder(offset=-600)

    trigger = nominal_trigger(anchor, reminder, now)
    assert trigger == datetime(2026, 2, 9, 23, 0)

    shifted, reason = shift_for_dnd(trigger, [_night_window()], now)
    assert shifted == datetime(2026, 2, 10, 7, 0)
    assert reason == "DND-shifted"


def test_paused_reminder_inside_quiet_hours_fires_at_window_end():
    now = datetime(2026, 2, 10, 6, 0)
    reminder = _reminder(
        status=ReminderStatus.PAUSED,
        snoozed_until=datetime(2026, 2, 9, 23, 0),
    )

    items = schedule_reminders([reminder], [_anchor()], [_night_window()], now)

    assert len(items) == 1
    assert items[0].trigger_time == datetime(2026, 2, 10, 7, 0)
    assert items[0].shifted_reason == "DND-shifted"


def test_late_evening_trigger_moves_to_next_morning():
    now = datetime(2026, 2, 10, 22, 0)
    anchor = _anchor(start_min=1350, end_min=1410)  # 22:30
    reminder = _reminder(offset=45)

    items = schedule_reminders([reminder], [anchor], [_night_window()], now)

    assert items[0].trigger_time == datetime(2026, 2, 11, 7, 0)
    assert items[0].shifted_reason == "DND-shifted"


def test_day_without_quiet_hours_is_not_shifted():
    now = datetime(2026, 2, 11, 8, 0)  # Wednesday
    window = _night_window(days=[0, 1, 2, 4, 5, 6])

    items = schedule_reminders([_reminder(offset=-10)], [_anchor()], [window], now)

    assert items[0].trigger_time == datetime(2026, 2, 11, 8, 50)
    assert items[0].shifted_reason is None


def test_global_pause_returns_nothing():
    now = datetime(2026, 2, 10, 8, 0)
    reminders = [_reminder()]

    assert schedule_reminders(reminders, [_anchor()], [], now, pause_until=datetime(2026, 2, 10, 9, 0)) == []

    items = schedule_reminders(reminders, [_anchor()], [], now, pause_until=datetime(2026, 2, 10, 7, 0))
    assert len(items) == 1


def test_missing_anchor_is_filtered_out():
    now = datetime(2026, 2, 10, 8, 0)
    reminders = [_reminder("sr-ok"), _reminder("sr-orphan", anchor_id="deleted")]

    items = schedule_reminders(reminders, [_anchor()], [], now)

    assert [item.reminder.id for item in items] == ["sr-ok"]


def test_terminal_and_past_active_reminders_are_hidden():
    now = datetime(2026, 2, 10, 12, 0)
    reminders = [
        _reminder("sr-past", offset=-10),
        _reminder("sr-done", offset=300, status=ReminderStatus.DONE),
        _reminder("sr-ignored", offset=300, status=ReminderStatus.IGNORED),
        _reminder("sr-future", offset=300),
    ]

    items = schedule_reminders(reminders, [_anchor()], [], now)

    assert [item.reminder.id for item in items] == ["sr-future"]


def test_snoozed_reminder_uses_snoozed_until_even_when_past():
    now = datetime(2026, 2, 10, 12, 0)
    reminder = _reminder(
        offset=-10,
        status=ReminderStatus.SNOOZED,
        snoozed_until=datetime(2026, 2, 10, 11, 30),
    )

    items = schedule_reminders([reminder], [_anchor()], [], now)

    assert items[0].trigger_time == datetime(2026, 2, 10, 11, 30)


def test_sorted_by_trigger_time_and_ties_keep_input_order():
    now = datetime(2026, 2, 10, 6, 0)
    reminders = [
        _reminder("sr-b", offset=-30),
        _reminder("sr-late", offset=60),
        _reminder("sr-a", offset=-30),
        _reminder("sr-early", offset=-120),
    ]

    items = schedule_reminders(reminders, [_anchor()], [], now)

    assert [item.reminder.id for item in items] == ["sr-early", "sr-b", "sr-a", "sr-late"]
    times = [item.trigger_time for item in items]
    assert times == sorted(times)


def test_input_is_not_mutated():
    now = datetime(2026, 2, 10, 6, 0)
    reminders = [_reminder("sr-2", offset=60), _reminder("sr-1", offset=-60)]
    before = list(reminders)

    schedule_reminders(reminders, [_anchor()], [_night_window()], now)

    assert reminders == before


def test_ten_hours_before_nine_oclock_anchor_lands_at_window_end():
    now = datetime(2026, 2, 10, 6, 0)
    anchor = _anchor(start_min=540, end_min=600)
    window = DNDWindow(id="dnd-night", days=frozenset(range(7)), start_min=1380, end_min=420)

    trigger = nominal_trigger(anchor, _reminder(offset=-600), now)
    shifted, reason = shift_for_dnd(trigger, [window], now)

    assert trigger == datetime(2026, 2, 9, 23, 0)
    assert (shifted.hour, shifted.minute) == (7, 0)
    assert shifted == datetime(2026, 2, 10, 7, 0)
    assert reason == "DND-shifted"
