"""
Personalized Estimation Model.

Blends up to four cohorts of past completions into a p50/p90 duration
estimate with a confidence score:

- exact:       same energy tag, time of day and weekday
- weekly:      same energy tag and weekday
- energy:      same energy tag
- global_time: any tag, same time of day, across the whole history

Each cohort needs MIN_COHORT_RECORDS non-hyperfocus records to take part.
Returns None when the tag itself has too little data.
"""
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from core.completion_history import CompletionHistory
from core.config_manager import config as default_config
from core.logger import get_logger
from core.models import (
    DAY_NAMES,
    CompletionRecord,
    ConfidenceLevel,
    EnergyTag,
    PersonalizedEstimate,
    TimeOfDay,
)
from core.utils import round_half_up

logger = get_logger("estimation")

COHORT_ORDER = ("exact", "weekly", "energy", "global_time")


@dataclass(frozen=True)
class CohortEstimate:
    p50: float
    p90: float
    std_dev: float


@dataclass(frozen=True)
class EstimateContext:
    energy_tag: EnergyTag
    sub_step_count: int
    time_of_day: TimeOfDay
    day_of_week: int


def calculate_ewma(values: Sequence[float], alpha: float) -> float:
    """EWMA seeded with the first value."""
    if not values:
        return 0.0
    ewma = values[0]
    for value in values[1:]:
        ewma = alpha * value + (1 - alpha) * ewma
    return ewma


def calc_estimate(
    records: Sequence[CompletionRecord],
    target_sub_step_count: int,
    sensitivity: float,
    cfg=None,
) -> CohortEstimate:
    """
    p50 = 半数按子步骤复杂度推算 + 半数按近期表现 (EWMA)。
    p90 = p50 + 1.3 * stdDev (相对 p50 的离散程度)。
    """
    cfg = cfg or default_config
    if not records:
        return CohortEstimate(p50=0.0, p90=0.0, std_dev=0.0)

    adjusted = [r.adjusted_duration for r in records]
    total_sub_steps = sum(r.sub_step_count for r in records)
    per_sub_step = sum(adjusted) / total_sub_steps if total_sub_steps > 0 else 0.0
    complexity_estimate = per_sub_step * target_sub_step_count

    chronological = sorted(records, key=lambda r: r.completed_at)
    recent_estimate = calculate_ewma([r.adjusted_duration for r in chronological], sensitivity)

    p50 = 0.5 * complexity_estimate + 0.5 * recent_estimate
    variance = sum((d - p50) ** 2 for d in adjusted) / len(adjusted)
    std_dev = math.sqrt(variance)
    p90 = p50 + cfg.P90_STDDEV_FACTOR * std_dev
    return CohortEstimate(p50=p50, p90=p90, std_dev=std_dev)


def build_cohorts(history: CompletionHistory, context: EstimateContext) -> Dict[str, List[CompletionRecord]]:
    tag_records = [r for r in history.records_for(context.energy_tag) if not r.is_hyperfocus]
    everything = [r for r in history.all_records() if not r.is_hyperfocus]
    return {
        "exact": [
            r for r in tag_records
            if r.time_of_day == context.time_of_day and r.day_of_week == context.day_of_week
        ],
        "weekly": [r for r in tag_records if r.day_of_week == context.day_of_week],
        "energy": tag_records,
        "global_time": [r for r in everything if r.time_of_day == context.time_of_day],
    }


def _confidence_reason(cohort: str, count: int, context: EstimateContext) -> str:
    tag = EnergyTag(context.energy_tag).value
    time_of_day = TimeOfDay(context.time_of_day).value
    day_name = DAY_NAMES[context.day_of_week]
    if cohort == "exact":
        return f"Based on {count} similar tasks ({tag}, {time_of_day} on {day_name}s)."
    if cohort == "weekly":
        return f"Based on {count} similar '{tag}' tasks on {day_name}s."
    if cohort == "energy":
        return f"Based on {count} tasks with a '{tag}' tag."
    return f"Based on {count} tasks completed in the {time_of_day}."


def confidence_level(value: float, cfg=None) -> ConfidenceLevel:
    cfg = cfg or default_config
    if value < cfg.CONFIDENCE_LOW:
        return ConfidenceLevel.LOW
    if value < cfg.CONFIDENCE_MEDIUM:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.HIGH


def get_personalized_estimate(
    history: CompletionHistory,
    context: EstimateContext,
    sensitivity: Optional[float] = None,
    cfg=None,
) -> Optional[PersonalizedEstimate]:
    cfg = cfg or default_config
    if sensitivity is None:
        sensitivity = cfg.DEFAULT_SENSITIVITY
    if not 0 < sensitivity < 1:
        raise ValueError(f"sensitivity must be inside (0, 1), got {sensitivity}")

    cohorts = build_cohorts(history, context)
    if len(cohorts["energy"]) < cfg.MIN_COHORT_RECORDS:
        logger.debug(
            "Not enough %s records for an estimate (%d)",
            EnergyTag(context.energy_tag).value,
            len(cohorts["energy"]),
        )
        return None

    estimates: Dict[str, CohortEstimate] = {}
    for name in COHORT_ORDER:
        records = cohorts[name]
        if len(records) >= cfg.MIN_COHORT_RECORDS:
            estimates[name] = calc_estimate(records, context.sub_step_count, sensitivity, cfg)

    total_weight = 0.0
    weighted_p50 = 0.0
    weighted_p90 = 0.0
    for name, estimate in estimates.items():
        weight = cfg.COHORT_WEIGHTS[name]
        total_weight += weight
        weighted_p50 += estimate.p50 * weight
        weighted_p90 += estimate.p90 * weight

    if total_weight == 0:
        return None

    final_p50 = weighted_p50 / total_weight
    final_p90 = weighted_p90 / total_weight

    best = next(name for name in COHORT_ORDER if name in estimates)
    count = len(cohorts[best])
    std_dev = estimates[best].std_dev

    count_confidence = min(1.0, count / cfg.CONFIDENCE_FULL_SAMPLE)
    variance_penalty = 1 - min(1.0, std_dev / max(final_p50, 1))
    confidence_value = count_confidence * variance_penalty

    reason = _confidence_reason(best, count, context)
    reason += f" Confidence: {round_half_up(confidence_value * 100)}%"

    # p90 的下限基于已截断的 p50，保证取整后 p90 >= p50 + 5
    floored_p50 = max(cfg.MIN_ESTIMATE_MINUTES, final_p50)
    p50 = round_half_up(floored_p50)
    p90 = round_half_up(max(floored_p50 + cfg.P90_MIN_SPREAD, final_p90))

    logger.debug("Estimate for %s via %s cohort: p50=%s p90=%s", context.energy_tag, best, p50, p90)
    return PersonalizedEstimate(
        p50=p50,
        p90=p90,
        confidence=confidence_level(confidence_value, cfg),
        confidence_value=confidence_value,
        confidence_reason=reason,
    )
