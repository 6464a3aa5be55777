"""
Time arithmetic helpers: minute-of-day conversion, half-open interval overlap,
and resolving overnight quiet-hours windows against a reference "now".
"""
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Tuple

from core.config_manager import config as default_config
from core.models import MINUTES_PER_DAY, DNDWindow, TimeOfDay


def time_to_minutes(value: str) -> int:
    """"HH:MM" -> minute of day. Empty input maps to 0."""
    if not value:
        return 0
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    """Minute of day -> "HH:MM" (hours wrap at 24)."""
    h = (minutes // 60) % 24
    m = minutes % 60
    return f"{h:02d}:{m:02d}"


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval test; touching endpoints do not overlap."""
    return start_a < end_b and end_a > start_b


def day_index(moment) -> int:
    """0=Sunday .. 6=Saturday (Python's weekday() starts on Monday)."""
    return (moment.weekday() + 1) % 7


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def at_minute(day: date, minute: int) -> datetime:
    """Wall-clock datetime for a minute offset from the given day's midnight."""
    return datetime.combine(day, time()) + timedelta(minutes=minute)


def window_contains_minute(start_min: int, end_min: int, minute: int) -> bool:
    """
    Modular containment test for a window on the 24h clock.

    Depends only on the time of day, so t and t + 1440 always agree.
    """
    m = minute % MINUTES_PER_DAY
    if end_min < start_min:
        return m >= start_min or m < end_min
    return start_min <= m < end_min


def window_segments(window: DNDWindow) -> List[Tuple[int, int]]:
    """
    Half-open minute intervals the window occupies relative to one day's midnight.

    An overnight window yields the part that started the previous evening and
    the part that spills past this day's midnight.
    """
    if window.is_overnight:
        return [
            (window.start_min - MINUTES_PER_DAY, window.end_min),
            (window.start_min, window.end_min + MINUTES_PER_DAY),
        ]
    return [(window.start_min, window.end_min)]


def resolve_window(window: DNDWindow, now: datetime) -> Tuple[datetime, datetime]:
    """
    Absolute (start, end) of the window occurrence relevant to ``now``.

    Overnight windows: if now is before the window end, the occurrence started
    yesterday; otherwise it starts today and ends tomorrow.
    """
    today = now.date()
    if not window.is_overnight:
        return at_minute(today, window.start_min), at_minute(today, window.end_min)

    if minute_of_day(now) < window.end_min:
        start = at_minute(today - timedelta(days=1), window.start_min)
        end = at_minute(today, window.end_min)
    else:
        start = at_minute(today, window.start_min)
        end = at_minute(today + timedelta(days=1), window.end_min)
    return start, end


def window_contains(window: DNDWindow, now: datetime, moment: datetime) -> bool:
    start, end = resolve_window(window, now)
    return start <= moment < end


def window_for_day(windows: Iterable[DNDWindow], day: int) -> Optional[DNDWindow]:
    """First enabled window whose days include ``day``."""
    for window in windows:
        if window.enabled and day in window.days:
            return window
    return None


def next_window_start(windows: Iterable[DNDWindow], now: datetime) -> Optional[datetime]:
    """Earliest enabled window start strictly after now, searching one week ahead."""
    candidates = []
    for window in windows:
        if not window.enabled:
            continue
        for delta in range(8):
            day = now.date() + timedelta(days=delta)
            if day_index(day) not in window.days:
                continue
            start = at_minute(day, window.start_min)
            if start > now:
                candidates.append(start)
                break
    return min(candidates) if candidates else None


def get_time_of_day(moment: datetime, cfg=None) -> TimeOfDay:
    cfg = cfg or default_config
    hour = moment.hour
    for name, (start_hour, end_hour) in cfg.TIME_OF_DAY_BOUNDARIES.items():
        if start_hour <= hour < end_hour:
            return TimeOfDay(name)
    return TimeOfDay.EVENING  # 17:00 - 04:59
