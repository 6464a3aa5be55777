"""
Onboarding defaults: the routine offered when a user skips setup.
"""
from typing import Dict, Iterable, List, Tuple

from core.models import (
    Anchor,
    BufferMinutes,
    ContextTag,
    DNDWindow,
    ReminderStatus,
    SmartReminder,
)

NO_REMINDER = 999  # "None" choice in the reminder step
ALL_DAYS = frozenset(range(7))
WORK_DAYS = frozenset({1, 2, 3, 4, 5})


def generate_defaults() -> Tuple[List[Anchor], List[DNDWindow]]:
    anchors = [
        Anchor(
            id="onboard-work-week",
            title="Work",
            days=WORK_DAYS,
            start_min=540,
            end_min=1020,
            tags=frozenset({ContextTag.WORK, ContextTag.HIGH_ENERGY}),
            buffer_minutes=BufferMinutes(prep=15),
        ),
        Anchor(
            id="onboard-weekend-relax",
            title="Weekend Relaxation",
            days=frozenset({6}),
            start_min=600,
            end_min=720,
            tags=frozenset({ContextTag.PERSONAL, ContextTag.RELAXED}),
        ),
    ]
    windows = [
        DNDWindow(id="dnd-default", days=ALL_DAYS, start_min=1380, end_min=420, enabled=True),
    ]
    return anchors, windows


def build_onboarding_reminders(
    anchors: Iterable[Anchor],
    offsets_by_title: Dict[str, int],
) -> List[SmartReminder]:
    reminders = []
    for anchor in anchors:
        offset = offsets_by_title.get(anchor.title)
        if offset is None or offset == NO_REMINDER:
            continue
        reminders.append(SmartReminder(
            id=f"onboard-sr-{anchor.id}",
            anchor_id=anchor.id,
            offset_minutes=offset,
            message=f"Reminder for {anchor.title}",
            why="Set up during onboarding.",
            status=ReminderStatus.ACTIVE,
        ))
    return reminders
