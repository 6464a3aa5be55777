"""
Reminder Lifecycle State Machine.

Applies a user/system action to one reminder and returns the before/after
pair plus a change-history entry. Nothing is mutated in place; the caller
adopts ``after`` (or the updated collection) and keeps ``before`` for undo.

| action             | new status | side effects                                   |
|--------------------|------------|------------------------------------------------|
| done               | done       | +success, last_interaction                     |
| snooze(mins)       | snoozed    | snoozed_until=now+mins, +mins, +snoozed         |
| pause              | paused     | snoozed_until=tomorrow 09:00                   |
| ignore             | ignored    | +ignored, last_interaction                     |
| later              | snoozed    | now+3h capped before next DND, +snoozed         |
| toggle_lock        | unchanged  | is_locked flips, allow_exploration follows     |
| revert_exploration | unchanged  | offset restored when exploratory               |
"""
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from core.config_manager import config as default_config
from core.logger import get_logger
from core.models import (
    TERMINAL_STATUSES,
    DNDWindow,
    ReminderStatus,
    SmartReminder,
    SuccessState,
)
from core.time_utils import next_window_start

logger = get_logger("reminder_lifecycle")


class ReminderAction(str, Enum):
    DONE = "done"
    SNOOZE = "snooze"
    PAUSE = "pause"
    IGNORE = "ignore"
    LATER = "later"
    TOGGLE_LOCK = "toggle_lock"
    REVERT_EXPLORATION = "revert_exploration"


# toggle_lock 与 revert_exploration 不改变状态，终态下也允许
STATUS_ACTIONS = frozenset({
    ReminderAction.DONE,
    ReminderAction.SNOOZE,
    ReminderAction.PAUSE,
    ReminderAction.IGNORE,
    ReminderAction.LATER,
})


@dataclass(frozen=True)
class ChangeEntry:
    reminder_id: str
    action: ReminderAction
    message: str
    at: datetime


@dataclass(frozen=True)
class ReminderTransition:
    action: ReminderAction
    before: SmartReminder
    after: SmartReminder
    entry: Optional[ChangeEntry] = None

    @property
    def changed(self) -> bool:
        return self.before != self.after

    def apply(self, reminders: Iterable[SmartReminder]) -> List[SmartReminder]:
        return [self.after if r.id == self.before.id else r for r in reminders]

    def undo(self, reminders: Iterable[SmartReminder]) -> List[SmartReminder]:
        return [self.before if r.id == self.before.id else r for r in reminders]


def later_until(now: datetime, dnd_windows: Iterable[DNDWindow], cfg=None) -> datetime:
    """
    Target time for "later": three hours out, pulled back to shortly before
    the next quiet-hours start when that cap is earlier and still in the future.
    """
    cfg = cfg or default_config
    until = now + timedelta(minutes=cfg.LATER_SNOOZE_MINUTES)

    upcoming = next_window_start(dnd_windows, now)
    if upcoming is not None:
        cap = upcoming - timedelta(minutes=cfg.LATER_DND_MARGIN_MINUTES)
        if now < cap < until:
            until = cap

    if until <= now:
        until = now + timedelta(minutes=cfg.LATER_FALLBACK_MINUTES)
    return until


def pause_until(now: datetime, cfg=None) -> datetime:
    cfg = cfg or default_config
    tomorrow = (now + timedelta(days=1)).replace(minute=0, second=0, microsecond=0)
    return tomorrow.replace(hour=cfg.PAUSE_RESUME_HOUR)


def _mark(reminder: SmartReminder, status: ReminderStatus, state: SuccessState, now: datetime) -> SmartReminder:
    return replace(
        reminder,
        status=status,
        snoozed_until=None,
        success_history=reminder.success_history + (state,),
        last_interaction=now,
    )


def _apply(
    reminder: SmartReminder,
    action: ReminderAction,
    now: datetime,
    minutes: Optional[int],
    dnd_windows: Iterable[DNDWindow],
    cfg,
) -> Tuple[SmartReminder, str]:
    if action == ReminderAction.DONE:
        return _mark(reminder, ReminderStatus.DONE, SuccessState.SUCCESS, now), "Reminder complete"

    if action == ReminderAction.IGNORE:
        return _mark(reminder, ReminderStatus.IGNORED, SuccessState.IGNORED, now), "Reminder ignored"

    if action == ReminderAction.SNOOZE:
        if minutes is None or minutes <= 0:
            raise ValueError("snooze requires a positive number of minutes")
        updated = replace(
            reminder,
            status=ReminderStatus.SNOOZED,
            snoozed_until=now + timedelta(minutes=minutes),
            snooze_history=reminder.snooze_history + (minutes,),
            success_history=reminder.success_history + (SuccessState.SNOOZED,),
        )
        return updated, f"Snoozed for {minutes} minutes"

    if action == ReminderAction.PAUSE:
        until = pause_until(now, cfg)
        updated = replace(reminder, status=ReminderStatus.PAUSED, snoozed_until=until)
        return updated, f"Paused until {until.strftime('%a %H:%M')}"

    if action == ReminderAction.LATER:
        until = later_until(now, dnd_windows, cfg)
        updated = replace(
            reminder,
            status=ReminderStatus.SNOOZED,
            snoozed_until=until,
            success_history=reminder.success_history + (SuccessState.SNOOZED,),
        )
        return updated, f"Moved to later ({until.strftime('%H:%M')})"

    if action == ReminderAction.TOGGLE_LOCK:
        locked = not reminder.is_locked
        updated = replace(reminder, is_locked=locked, allow_exploration=not locked)
        return updated, "Reminder locked" if locked else "Reminder unlocked"

    if action == ReminderAction.REVERT_EXPLORATION:
        if not reminder.is_exploratory or reminder.original_offset_minutes is None:
            return reminder, ""
        updated = replace(
            reminder,
            offset_minutes=reminder.original_offset_minutes,
            is_exploratory=False,
            original_offset_minutes=None,
        )
        return updated, "Reverted to original time"

    raise ValueError(f"Unknown reminder action: {action}")


def apply_action(
    reminder: SmartReminder,
    action,
    now: datetime,
    minutes: Optional[int] = None,
    dnd_windows: Iterable[DNDWindow] = (),
    cfg=None,
) -> ReminderTransition:
    """
    Compute the reminder after ``action``.

    Status-changing actions on a done/ignored reminder are no-ops: the
    transition comes back with before == after and no entry.
    """
    cfg = cfg or default_config
    action = ReminderAction(action)

    if action in STATUS_ACTIONS and reminder.status in TERMINAL_STATUSES:
        logger.debug("Ignoring %s on terminal reminder %s", action.value, reminder.id)
        return ReminderTransition(action=action, before=reminder, after=reminder)

    after, message = _apply(reminder, action, now, minutes, dnd_windows, cfg)
    if after == reminder:
        return ReminderTransition(action=action, before=reminder, after=reminder)

    logger.info("Reminder %s: %s", reminder.id, action.value)
    entry = ChangeEntry(reminder_id=reminder.id, action=action, message=message, at=now)
    return ReminderTransition(action=action, before=reminder, after=after, entry=entry)


def apply_to_collection(
    reminders: Iterable[SmartReminder],
    reminder_id: str,
    action,
    now: datetime,
    minutes: Optional[int] = None,
    dnd_windows: Iterable[DNDWindow] = (),
    cfg=None,
) -> Optional[Tuple[List[SmartReminder], ReminderTransition]]:
    """Apply an action by id across a snapshot. Unknown ids return None."""
    reminder_list = list(reminders)
    target = next((r for r in reminder_list if r.id == reminder_id), None)
    if target is None:
        logger.warning("Action %s requested for unknown reminder %s", action, reminder_id)
        return None

    transition = apply_action(target, action, now, minutes=minutes, dnd_windows=dnd_windows, cfg=cfg)
    return transition.apply(reminder_list), transition
