"""
Completion history: append-only per-energy-tag records with a recency cap.

Records are created with their time-of-day bucket and hyperfocus flag fixed;
the history keeps at most MAX_RECORDS_PER_TAG per tag, dropping the oldest
by completed_at once the cap is exceeded.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import uuid4

from core.config_manager import config as default_config
from core.logger import get_logger
from core.models import CompletionRecord, EnergyTag, TimeLearningSettings, TimeOfDay
from core.time_utils import day_index, get_time_of_day
from core.utils import parse_iso_datetime

logger = get_logger("completion_history")


def is_hyperfocus(actual_minutes: float, estimated_minutes: float, cfg=None) -> bool:
    cfg = cfg or default_config
    if estimated_minutes <= 0:
        return False
    return actual_minutes / estimated_minutes > cfg.HYPERFOCUS_RATIO


def create_record(
    actual_duration_minutes: float,
    estimated_duration_minutes: float,
    energy_tag: EnergyTag,
    completed_at: datetime,
    sub_step_count: int,
    difficulty: float = 1.0,
    day_of_week: Optional[int] = None,
    record_id: Optional[str] = None,
    cfg=None,
) -> CompletionRecord:
    if sub_step_count < 0:
        raise ValueError("sub_step_count must be >= 0")
    if difficulty <= 0:
        raise ValueError("difficulty must be positive")

    return CompletionRecord(
        id=record_id or f"cr_{uuid4().hex[:12]}",
        actual_duration_minutes=actual_duration_minutes,
        estimated_duration_minutes=estimated_duration_minutes,
        energy_tag=EnergyTag(energy_tag),
        completed_at=completed_at,
        sub_step_count=sub_step_count,
        day_of_week=day_index(completed_at) if day_of_week is None else day_of_week,
        difficulty=float(difficulty),
        time_of_day=get_time_of_day(completed_at, cfg),
        is_hyperfocus=is_hyperfocus(actual_duration_minutes, estimated_duration_minutes, cfg),
    )


def record_from_dict(data: Dict[str, Any]) -> CompletionRecord:
    completed_at = parse_iso_datetime(data.get("completedAt"))
    if completed_at is None:
        raise ValueError(f"Completion record {data.get('id')} has no completedAt")

    # 旧记录没有 timeOfDay，按完成时间回填
    raw_time_of_day = data.get("timeOfDay")
    time_of_day = TimeOfDay(raw_time_of_day) if raw_time_of_day else get_time_of_day(completed_at)

    raw_day = data.get("dayOfWeek")
    return CompletionRecord(
        id=data["id"],
        actual_duration_minutes=float(data["actualDurationMinutes"]),
        estimated_duration_minutes=float(data.get("estimatedDurationMinutes", 0)),
        energy_tag=EnergyTag(data["energyTag"]),
        completed_at=completed_at,
        sub_step_count=int(data.get("subStepCount", 0)),
        day_of_week=int(raw_day) if raw_day is not None else day_index(completed_at),
        difficulty=float(data.get("difficulty", 1.0)),
        time_of_day=time_of_day,
        is_hyperfocus=bool(data.get("isHyperfocus", False)),
    )


class CompletionHistory:
    """
    Bounded, recency-ordered record store keyed by energy tag.

    Instances are treated as immutable: add_record returns a new history.
    """

    def __init__(
        self,
        records: Optional[Mapping[EnergyTag, Iterable[CompletionRecord]]] = None,
        capacity: Optional[int] = None,
    ):
        self.capacity = capacity if capacity is not None else default_config.MAX_RECORDS_PER_TAG
        self._records: Dict[EnergyTag, Tuple[CompletionRecord, ...]] = {tag: () for tag in EnergyTag}
        for tag, items in (records or {}).items():
            self._records[EnergyTag(tag)] = self._bounded(tuple(items))

    def _bounded(self, items: Tuple[CompletionRecord, ...]) -> Tuple[CompletionRecord, ...]:
        if len(items) <= self.capacity:
            return items
        newest = sorted(items, key=lambda r: r.completed_at)[-self.capacity:]
        logger.debug("Evicted %d old completion records", len(items) - len(newest))
        return tuple(newest)

    def records_for(self, tag: EnergyTag) -> List[CompletionRecord]:
        return list(self._records.get(EnergyTag(tag), ()))

    def all_records(self) -> List[CompletionRecord]:
        return [record for tag in EnergyTag for record in self._records[tag]]

    def add_record(self, record: CompletionRecord) -> "CompletionHistory":
        updated = dict(self._records)
        updated[record.energy_tag] = self._bounded(updated[record.energy_tag] + (record,))
        return CompletionHistory(updated, capacity=self.capacity)

    def reset(self) -> "CompletionHistory":
        return CompletionHistory(capacity=self.capacity)

    def __len__(self) -> int:
        return sum(len(items) for items in self._records.values())

    def __eq__(self, other) -> bool:
        if not isinstance(other, CompletionHistory):
            return NotImplemented
        return self._records == other._records

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {tag.value: [r.to_dict() for r in self._records[tag]] for tag in EnergyTag}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]], capacity: Optional[int] = None) -> "CompletionHistory":
        data = data or {}
        records = {}
        for tag in EnergyTag:
            records[tag] = [record_from_dict(item) for item in data.get(tag.value, [])]
        return cls(records, capacity=capacity)


def add_completion(
    history: CompletionHistory,
    record: CompletionRecord,
    settings: Optional[TimeLearningSettings] = None,
) -> CompletionHistory:
    """Record a completion unless time learning is switched off."""
    if settings is not None and not settings.is_enabled:
        logger.debug("Time learning disabled, completion %s not recorded", record.id)
        return history
    if record.is_hyperfocus:
        logger.info("Completion %s flagged as hyperfocus", record.id)
    return history.add_record(record)
