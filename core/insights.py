"""
Trend Insight Generator.

Compares how fast each energy tag gets done across times of day and weekdays.
Ratio per record = (actual / difficulty) / estimated; lower is faster.
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from core.completion_history import CompletionHistory
from core.config_manager import config as default_config
from core.logger import get_logger
from core.models import DAY_NAMES, CompletionRecord, EnergyTag, TimeOfDay
from core.utils import round_half_up

logger = get_logger("insights")

TIME_OF_DAY = "time_of_day"
DAY_OF_WEEK = "day_of_week"


@dataclass(frozen=True)
class TrendInsight:
    energy_tag: EnergyTag
    dimension: str
    best_bucket: object
    worst_bucket: object
    best_ratio: float
    worst_ratio: float
    improvement: int
    message: str


def _performance_ratio(record: CompletionRecord) -> float:
    return record.adjusted_duration / record.estimated_duration_minutes


def _compare_buckets(
    records: List[CompletionRecord],
    bucket_of: Callable[[CompletionRecord], object],
    bucket_order: Sequence[object],
    min_bucket: int,
    cfg,
) -> Optional[tuple]:
    """
    Return (best, best_ratio, worst, worst_ratio, improvement) or None.

    Buckets are visited in ``bucket_order`` and the ratio sort is stable,
    so equal ratios resolve to the earlier bucket.
    """
    if len(records) < cfg.INSIGHT_MIN_TAG_RECORDS:
        return None

    buckets: Dict[object, List[float]] = defaultdict(list)
    for record in records:
        buckets[bucket_of(record)].append(_performance_ratio(record))

    averages = []
    for bucket in bucket_order:
        ratios = buckets.get(bucket, [])
        if len(ratios) >= min_bucket:
            averages.append((bucket, sum(ratios) / len(ratios)))
    if len(averages) < cfg.INSIGHT_MIN_BUCKETS:
        return None

    averages.sort(key=lambda item: item[1])
    best, best_ratio = averages[0]
    worst, worst_ratio = averages[-1]
    if worst_ratio <= best_ratio * cfg.INSIGHT_MIN_GAP:
        return None

    improvement = round_half_up((worst_ratio - best_ratio) / worst_ratio * 100)
    return best, best_ratio, worst, worst_ratio, improvement


def _eligible(history: CompletionHistory, tag: EnergyTag) -> List[CompletionRecord]:
    return [
        r for r in history.records_for(tag)
        if not r.is_hyperfocus and r.estimated_duration_minutes > 0
    ]


def analyze_time_of_day_performance(history: CompletionHistory, cfg=None) -> List[TrendInsight]:
    cfg = cfg or default_config
    insights = []
    for tag in EnergyTag:
        result = _compare_buckets(
            _eligible(history, tag),
            lambda r: TimeOfDay(r.time_of_day),
            list(TimeOfDay),
            cfg.INSIGHT_MIN_TIME_OF_DAY_BUCKET,
            cfg,
        )
        if result is None:
            continue
        best, best_ratio, worst, worst_ratio, improvement = result
        insights.append(TrendInsight(
            energy_tag=tag,
            dimension=TIME_OF_DAY,
            best_bucket=best,
            worst_bucket=worst,
            best_ratio=best_ratio,
            worst_ratio=worst_ratio,
            improvement=improvement,
            message=(
                f"You tend to complete {tag.value} tasks about {improvement}% faster "
                f"in the {best.value}."
            ),
        ))
    return insights


def analyze_day_of_week_performance(history: CompletionHistory, cfg=None) -> List[TrendInsight]:
    cfg = cfg or default_config
    insights = []
    for tag in EnergyTag:
        result = _compare_buckets(
            _eligible(history, tag),
            lambda r: r.day_of_week,
            range(len(DAY_NAMES)),
            cfg.INSIGHT_MIN_DAY_OF_WEEK_BUCKET,
            cfg,
        )
        if result is None:
            continue
        best, best_ratio, worst, worst_ratio, improvement = result
        insights.append(TrendInsight(
            energy_tag=tag,
            dimension=DAY_OF_WEEK,
            best_bucket=best,
            worst_bucket=worst,
            best_ratio=best_ratio,
            worst_ratio=worst_ratio,
            improvement=improvement,
            message=f"On {DAY_NAMES[best]}s, you're about {improvement}% faster with {tag.value} tasks.",
        ))
    return insights


def generate_insights(history: CompletionHistory, cfg=None) -> List[str]:
    insights = analyze_time_of_day_performance(history, cfg) + analyze_day_of_week_performance(history, cfg)
    logger.debug("Generated %d trend insights", len(insights))
    return [insight.message for insight in insights]
