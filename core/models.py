"""
Core Data Models for Momentum.
Defines anchors, quiet-hours windows, smart reminders and completion records.

All entities are frozen dataclasses: engine functions return new instances
(dataclasses.replace) instead of mutating what the caller passed in.
Serialized form uses the camelCase keys of the stored snapshots.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from core.utils import format_iso_datetime, parse_iso_datetime

MINUTES_PER_DAY = 1440
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


class EnergyTag(str, Enum):
    CREATIVE = "Creative"
    TEDIOUS = "Tedious"
    ADMIN = "Admin"
    SOCIAL = "Social"
    ERRAND = "Errand"


class ContextTag(str, Enum):
    RUSHED = "rushed"
    RELAXED = "relaxed"
    HIGH_ENERGY = "high-energy"
    LOW_ENERGY = "low-energy"
    WORK = "work"
    SCHOOL = "school"
    PERSONAL = "personal"
    PREP = "prep"
    TRAVEL = "travel"
    RECOVERY = "recovery"


class ReminderStatus(str, Enum):
    ACTIVE = "active"
    SNOOZED = "snoozed"      # 已推迟，snoozed_until 生效
    DONE = "done"            # 本次已完成（终态）
    PAUSED = "paused"        # 暂停到次日，snoozed_until 生效
    IGNORED = "ignored"      # 本次已忽略（终态）


class SuccessState(str, Enum):
    SUCCESS = "success"
    SNOOZED = "snoozed"
    IGNORED = "ignored"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserDifficulty(float, Enum):
    """用户自评难度，作为耗时的除数。"""
    EASIER = 0.8
    TYPICAL = 1.0
    HARDER = 1.25


DEFERRED_STATUSES = frozenset({ReminderStatus.SNOOZED, ReminderStatus.PAUSED})
TERMINAL_STATUSES = frozenset({ReminderStatus.DONE, ReminderStatus.IGNORED})
SCHEDULABLE_STATUSES = frozenset(
    {ReminderStatus.ACTIVE, ReminderStatus.SNOOZED, ReminderStatus.PAUSED}
)


@dataclass(frozen=True)
class BufferMinutes:
    prep: Optional[int] = None
    recovery: Optional[int] = None


@dataclass(frozen=True)
class Anchor:
    """每周重复的时间块 (Work, Gym...)，提醒相对它的开始时间排程。"""
    id: str
    title: str
    days: FrozenSet[int]           # 0=Sun .. 6=Sat
    start_min: int                 # minutes since 00:00
    end_min: int
    tags: FrozenSet[ContextTag] = frozenset()
    buffer_minutes: Optional[BufferMinutes] = None

    @property
    def duration(self) -> int:
        """Length in minutes; an end stored before the start wraps past midnight."""
        if self.end_min >= self.start_min:
            return self.end_min - self.start_min
        return self.end_min + MINUTES_PER_DAY - self.start_min

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "days": sorted(self.days),
            "startMin": self.start_min,
            "endMin": self.end_min,
        }
        if self.tags:
            data["contextTags"] = sorted(t.value for t in self.tags)
        if self.buffer_minutes is not None:
            buffers = {}
            if self.buffer_minutes.prep is not None:
                buffers["prep"] = self.buffer_minutes.prep
            if self.buffer_minutes.recovery is not None:
                buffers["recovery"] = self.buffer_minutes.recovery
            data["bufferMinutes"] = buffers
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Anchor":
        buffers = data.get("bufferMinutes")
        return cls(
            id=data["id"],
            title=data["title"],
            days=frozenset(int(d) for d in data.get("days", [])),
            start_min=int(data["startMin"]),
            end_min=int(data["endMin"]),
            tags=frozenset(ContextTag(t) for t in data.get("contextTags", data.get("tags", []))),
            buffer_minutes=(
                BufferMinutes(prep=buffers.get("prep"), recovery=buffers.get("recovery"))
                if buffers else None
            ),
        )


@dataclass(frozen=True)
class DNDWindow:
    """Quiet hours. end_min < start_min encodes a window spanning midnight."""
    id: str
    days: FrozenSet[int]
    start_min: int
    end_min: int
    enabled: bool = True

    @property
    def is_overnight(self) -> bool:
        return self.end_min < self.start_min

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "days": sorted(self.days),
            "startMin": self.start_min,
            "endMin": self.end_min,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DNDWindow":
        return cls(
            id=data["id"],
            days=frozenset(int(d) for d in data.get("days", [])),
            start_min=int(data["startMin"]),
            end_min=int(data["endMin"]),
            enabled=bool(data.get("enabled", True)),
        )


@dataclass(frozen=True)
class SmartReminder:
    """
    Reminder attached to an anchor by id (lookup key, never an owning reference).

    snoozed_until is set iff status is SNOOZED or PAUSED.
    is_exploratory implies original_offset_minutes is present.
    """
    id: str
    anchor_id: str
    offset_minutes: int            # 负数 = 锚点开始前
    message: str
    status: ReminderStatus = ReminderStatus.ACTIVE
    why: str = ""
    is_locked: bool = False
    is_exploratory: bool = False
    snoozed_until: Optional[datetime] = None
    snooze_history: Tuple[int, ...] = ()
    success_history: Tuple[SuccessState, ...] = ()
    allow_exploration: bool = True
    original_offset_minutes: Optional[int] = None
    last_interaction: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "anchorId": self.anchor_id,
            "offsetMinutes": self.offset_minutes,
            "message": self.message,
            "why": self.why,
            "isLocked": self.is_locked,
            "isExploratory": self.is_exploratory,
            "status": self.status.value,
            "snoozedUntil": format_iso_datetime(self.snoozed_until),
            "snoozeHistory": list(self.snooze_history),
            "successHistory": [s.value for s in self.success_history],
            "allowExploration": self.allow_exploration,
        }
        if self.original_offset_minutes is not None:
            data["originalOffsetMinutes"] = self.original_offset_minutes
        if self.last_interaction is not None:
            data["lastInteraction"] = format_iso_datetime(self.last_interaction)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SmartReminder":
        original = data.get("originalOffsetMinutes")
        return cls(
            id=data["id"],
            anchor_id=data["anchorId"],
            offset_minutes=int(data.get("offsetMinutes", 0)),
            message=data.get("message", ""),
            status=ReminderStatus(data.get("status", ReminderStatus.ACTIVE.value)),
            why=data.get("why", ""),
            is_locked=bool(data.get("isLocked", False)),
            is_exploratory=bool(data.get("isExploratory", False)),
            snoozed_until=parse_iso_datetime(data.get("snoozedUntil")),
            snooze_history=tuple(int(m) for m in data.get("snoozeHistory", [])),
            success_history=tuple(SuccessState(s) for s in data.get("successHistory", [])),
            allow_exploration=bool(data.get("allowExploration", True)),
            original_offset_minutes=int(original) if original is not None else None,
            last_interaction=parse_iso_datetime(data.get("lastInteraction")),
        )


@dataclass(frozen=True)
class CompletionRecord:
    """完成记录。is_hyperfocus 在创建时确定，之后不再改变。"""
    id: str
    actual_duration_minutes: float
    estimated_duration_minutes: float
    energy_tag: EnergyTag
    completed_at: datetime
    sub_step_count: int
    day_of_week: int
    difficulty: float
    time_of_day: TimeOfDay
    is_hyperfocus: bool = False

    @property
    def adjusted_duration(self) -> float:
        return self.actual_duration_minutes / self.difficulty

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "actualDurationMinutes": self.actual_duration_minutes,
            "estimatedDurationMinutes": self.estimated_duration_minutes,
            "energyTag": self.energy_tag.value,
            "completedAt": format_iso_datetime(self.completed_at),
            "subStepCount": self.sub_step_count,
            "dayOfWeek": self.day_of_week,
            "difficulty": float(self.difficulty),
            "timeOfDay": self.time_of_day.value,
        }
        if self.is_hyperfocus:
            data["isHyperfocus"] = True
        return data


@dataclass(frozen=True)
class PersonalizedEstimate:
    p50: int
    p90: int
    confidence: ConfidenceLevel
    confidence_value: float
    confidence_reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "p50": self.p50,
            "p90": self.p90,
            "confidence": self.confidence.value,
            "confidenceValue": self.confidence_value,
            "confidenceReason": self.confidence_reason,
        }


@dataclass(frozen=True)
class TimeLearningSettings:
    is_enabled: bool = True
    sensitivity: float = 0.3

    def __post_init__(self):
        if not 0 < self.sensitivity < 1:
            raise ValueError(f"sensitivity must be inside (0, 1), got {self.sensitivity}")

    def to_dict(self) -> Dict[str, Any]:
        return {"isEnabled": self.is_enabled, "sensitivity": self.sensitivity}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TimeLearningSettings":
        data = data or {}
        return cls(
            is_enabled=bool(data.get("isEnabled", True)),
            sensitivity=float(data.get("sensitivity", 0.3)),
        )


def anchors_by_id(anchors: Iterable[Anchor]) -> Dict[str, Anchor]:
    return {a.id: a for a in anchors}
