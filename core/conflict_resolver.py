"""
Anchor Conflict Resolver.

Validates moving an anchor into a single day slot. A proposal either commits
(the anchor now recurs only on the target day) or stops at a conflict the caller
must resolve: shift after the blocker once, keep the overlap, or cancel.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from core.logger import get_logger
from core.models import MINUTES_PER_DAY, Anchor, DNDWindow
from core.time_utils import overlaps, window_for_day, window_segments

logger = get_logger("conflict_resolver")


class ConflictType(str, Enum):
    DND = "dnd"
    OVERLAP = "overlap"


class Resolution(str, Enum):
    SHIFT_AFTER_CONFLICT = "shift"
    KEEP_OVERLAP = "keep"
    CANCEL = "cancel"


@dataclass(frozen=True)
class DNDConflict:
    anchor_id: str
    target_day: int
    start_min: int
    end_min: int
    window_id: str
    blocking_end: int            # where the quiet-hours segment ends
    type: ConflictType = ConflictType.DND


@dataclass(frozen=True)
class OverlapConflict:
    anchor_id: str
    target_day: int
    start_min: int
    end_min: int
    overlapping_anchor_id: str
    blocking_end: int
    type: ConflictType = ConflictType.OVERLAP


MoveConflict = Union[DNDConflict, OverlapConflict]


@dataclass(frozen=True)
class MoveCommitted:
    anchor_id: str
    target_day: int
    start_min: int
    end_min: int
    previous: Anchor
    anchor: Anchor
    anchors: Tuple[Anchor, ...]

    def undo(self, anchors: Iterable[Anchor]) -> List[Anchor]:
        """Restore the pre-move anchor in a later snapshot."""
        return [self.previous if a.id == self.anchor_id else a for a in anchors]


MoveResult = Union[MoveCommitted, DNDConflict, OverlapConflict]


def anchor_interval(anchor: Anchor) -> Tuple[int, int]:
    return anchor.start_min, anchor.start_min + anchor.duration


def _find_anchor(anchors: Sequence[Anchor], anchor_id: str) -> Optional[Anchor]:
    for anchor in anchors:
        if anchor.id == anchor_id:
            return anchor
    return None


def _dnd_conflict(
    anchor: Anchor,
    target_day: int,
    start: int,
    end: int,
    dnd_windows: Sequence[DNDWindow],
) -> Optional[DNDConflict]:
    window = window_for_day(dnd_windows, target_day)
    if window is None:
        return None
    for seg_start, seg_end in window_segments(window):
        if overlaps(start, end, seg_start, seg_end):
            return DNDConflict(
                anchor_id=anchor.id,
                target_day=target_day,
                start_min=start,
                end_min=end,
                window_id=window.id,
                blocking_end=seg_end,
            )
    return None


def _overlap_conflict(
    anchor: Anchor,
    target_day: int,
    start: int,
    end: int,
    anchors: Sequence[Anchor],
) -> Optional[OverlapConflict]:
    for other in anchors:
        if other.id == anchor.id or target_day not in other.days:
            continue
        other_start, other_end = anchor_interval(other)
        if overlaps(start, end, other_start, other_end):
            return OverlapConflict(
                anchor_id=anchor.id,
                target_day=target_day,
                start_min=start,
                end_min=end,
                overlapping_anchor_id=other.id,
                blocking_end=other_end,
            )
    return None


def _commit(anchors: Sequence[Anchor], anchor: Anchor, target_day: int, start: int) -> MoveCommitted:
    end = start + anchor.duration
    # Moving one occurrence detaches it from the recurrence group.
    moved = replace(
        anchor,
        days=frozenset({target_day}),
        start_min=start,
        end_min=end % MINUTES_PER_DAY,
    )
    updated = tuple(moved if a.id == anchor.id else a for a in anchors)
    logger.info("Anchor %s committed to day %s at %s-%s", anchor.id, target_day, start, end)
    return MoveCommitted(
        anchor_id=anchor.id,
        target_day=target_day,
        start_min=start,
        end_min=end,
        previous=anchor,
        anchor=moved,
        anchors=updated,
    )


def propose_move(
    anchors: Iterable[Anchor],
    dnd_windows: Iterable[DNDWindow],
    anchor_id: str,
    target_day: int,
    new_start_min: Optional[int] = None,
) -> Optional[MoveResult]:
    """
    Propose moving ``anchor_id`` to ``target_day``.

    Returns None for an unknown anchor, a conflict (DND checked before other
    anchors), or MoveCommitted carrying the new anchor snapshot.
    """
    if not 0 <= target_day <= 6:
        raise ValueError(f"target_day must be 0..6, got {target_day}")

    anchor_list = list(anchors)
    windows = list(dnd_windows)
    anchor = _find_anchor(anchor_list, anchor_id)
    if anchor is None:
        logger.warning("Move requested for unknown anchor %s", anchor_id)
        return None

    start = anchor.start_min if new_start_min is None else new_start_min
    end = start + anchor.duration

    conflict = _dnd_conflict(anchor, target_day, start, end, windows)
    if conflict is None:
        conflict = _overlap_conflict(anchor, target_day, start, end, anchor_list)
    if conflict is not None:
        logger.info("Move of %s to day %s blocked: %s", anchor_id, target_day, conflict.type.value)
        return conflict

    return _commit(anchor_list, anchor, target_day, start)


def resolve_conflict(
    conflict: MoveConflict,
    resolution: Resolution,
    anchors: Iterable[Anchor],
    dnd_windows: Iterable[DNDWindow],
) -> Optional[MoveResult]:
    """
    Apply the caller's decision to a conflict.

    SHIFT_AFTER_CONFLICT re-proposes once at the blocker's end; a second
    conflict is returned as-is. KEEP_OVERLAP force-commits. CANCEL returns None.
    """
    resolution = Resolution(resolution)
    if resolution == Resolution.CANCEL:
        return None

    anchor_list = list(anchors)
    if resolution == Resolution.KEEP_OVERLAP:
        anchor = _find_anchor(anchor_list, conflict.anchor_id)
        if anchor is None:
            logger.warning("Conflict refers to unknown anchor %s", conflict.anchor_id)
            return None
        return _commit(anchor_list, anchor, conflict.target_day, conflict.start_min)

    new_start = conflict.blocking_end % MINUTES_PER_DAY
    return propose_move(anchor_list, dnd_windows, conflict.anchor_id, conflict.target_day, new_start)
