from core.models import ContextTag, ReminderStatus
from core.onboarding import NO_REMINDER, build_onboarding_reminders, generate_defaults
from core.time_utils import window_contains_minute


def test_default_routine():
    anchors, windows = generate_defaults()
    by_title = {a.title: a for a in anchors}

    work = by_title["Work"]
    assert work.days == frozenset({1, 2, 3, 4, 5})
    assert (work.start_min, work.end_min) == (540, 1020)
    assert ContextTag.WORK in work.tags
    assert work.buffer_minutes.prep == 15

    weekend = by_title["Weekend Relaxation"]
    assert weekend.days == frozenset({6})
    assert (weekend.start_min, weekend.end_min) == (600, 720)

    assert len(windows) == 1
    assert windows[0].is_overnight
    assert windows[0].days == frozenset(range(7))
    assert window_contains_minute(windows[0].start_min, windows[0].end_min, 0)


def test_onboarding_reminders_skip_none_choice():
    anchors, _ = generate_defaults()

    reminders = build_onboarding_reminders(anchors, {"Work": -15, "Weekend Relaxation": NO_REMINDER})

    assert len(reminders) == 1
    assert reminders[0].id == "onboard-sr-onboard-work-week"
    assert reminders[0].offset_minutes == -15
    assert reminders[0].status == ReminderStatus.ACTIVE
