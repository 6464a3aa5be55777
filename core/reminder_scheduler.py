"""
Reminder Trigger Scheduler for Momentum.

Computes when each reminder should fire today, relative to its anchor,
and defers triggers that land inside the day's quiet-hours window.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from core.config_manager import config as default_config
from core.logger import get_logger
from core.models import (
    DEFERRED_STATUSES,
    SCHEDULABLE_STATUSES,
    Anchor,
    DNDWindow,
    ReminderStatus,
    SmartReminder,
    anchors_by_id,
)
from core.time_utils import at_minute, day_index, resolve_window, window_for_day

logger = get_logger("scheduler")


@dataclass(frozen=True)
class ScheduledReminder:
    reminder: SmartReminder
    anchor: Anchor
    trigger_time: datetime
    shifted_reason: Optional[str] = None


def nominal_trigger(anchor: Anchor, reminder: SmartReminder, now: datetime) -> datetime:
    """Anchor start on now's calendar day plus the reminder offset."""
    return at_minute(now.date(), anchor.start_min) + timedelta(minutes=reminder.offset_minutes)


def shift_for_dnd(
    trigger: datetime,
    windows: Iterable[DNDWindow],
    now: datetime,
    cfg=None,
) -> tuple:
    """
    Move ``trigger`` to the end of the quiet-hours window covering now's weekday.

    Returns (trigger, reason); reason is None when no shift happened.
    """
    cfg = cfg or default_config
    window = window_for_day(windows, day_index(now))
    if window is None:
        return trigger, None

    start, end = resolve_window(window, now)
    if start <= trigger < end:
        return end, cfg.DND_SHIFT_REASON
    return trigger, None


def schedule_reminders(
    reminders: Iterable[SmartReminder],
    anchors: Iterable[Anchor],
    dnd_windows: Iterable[DNDWindow],
    now: datetime,
    pause_until: Optional[datetime] = None,
    cfg=None,
) -> List[ScheduledReminder]:
    """
    获取今天待触发的提醒，按触发时间升序（同一时间保持输入顺序）。

    策略：
    1. 全局暂停期间直接返回空列表
    2. 锚点不存在的提醒被过滤（不是错误）
    3. 推迟/暂停的提醒以 snoozed_until 为准
    4. 已过去且未推迟的 Active 提醒不再展示
    5. 落在 DND 窗口内的触发时间平移到窗口结束
    """
    if pause_until is not None and now < pause_until:
        logger.info("Global pause active until %s, no reminders scheduled", pause_until.isoformat())
        return []

    windows = list(dnd_windows)
    lookup = anchors_by_id(anchors)
    scheduled: List[ScheduledReminder] = []

    for reminder in reminders:
        if reminder.status not in SCHEDULABLE_STATUSES:
            continue

        anchor = lookup.get(reminder.anchor_id)
        if anchor is None:
            logger.debug("Reminder %s references missing anchor %s", reminder.id, reminder.anchor_id)
            continue

        trigger = nominal_trigger(anchor, reminder, now)
        if reminder.status in DEFERRED_STATUSES and reminder.snoozed_until is not None:
            trigger = reminder.snoozed_until

        if trigger < now and reminder.status == ReminderStatus.ACTIVE:
            continue

        trigger, reason = shift_for_dnd(trigger, windows, now, cfg)
        if reason:
            logger.debug("Reminder %s shifted to %s (%s)", reminder.id, trigger.isoformat(), reason)

        scheduled.append(
            ScheduledReminder(
                reminder=reminder,
                anchor=anchor,
                trigger_time=trigger,
                shifted_reason=reason,
            )
        )

    # sorted() is stable: equal trigger times keep input order
    return sorted(scheduled, key=lambda item: item.trigger_time)
