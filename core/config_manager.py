"""
Configuration Manager for Momentum.

集中管理提醒调度与时长估计的常量参数。
所有经验值必须显式声明并可配置。

使用方式:
    from core.config_manager import config
    cap = config.MAX_RECORDS_PER_TAG
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import yaml

from core.exceptions import ConfigError


CONFIG_DIR = Path(__file__).parent.parent / "config"
RUNTIME_CONFIG_PATH = CONFIG_DIR / "runtime.yaml"


@dataclass
class SystemConfig:
    """
    系统运行时常量配置。

    所有值均为经验值，可根据用户实际情况调整。
    """

    # === 完成记录 ===

    # 每个精力标签保留的最大记录数
    # 超出时淘汰最旧的记录 (按 completed_at)
    MAX_RECORDS_PER_TAG: int = 100

    # 实际耗时 / 预估耗时 超过该倍数即视为 hyperfocus，不参与估计
    HYPERFOCUS_RATIO: float = 3.0

    # === 个性化估计 ===

    # 每个 cohort 至少需要的非 hyperfocus 记录数
    # 经验值依据：少于 5 条无法形成稳定的均值
    MIN_COHORT_RECORDS: int = 5

    # cohort 混合权重 (exact > weekly = energy > global_time)
    COHORT_WEIGHTS: Dict[str, float] = None

    # 置信度达到满分所需的样本数
    CONFIDENCE_FULL_SAMPLE: int = 30

    # 置信度标签阈值: < LOW 为 low, < MEDIUM 为 medium, 其余 high
    CONFIDENCE_LOW: float = 0.4
    CONFIDENCE_MEDIUM: float = 0.75

    # p90 = p50 + factor * stdDev
    P90_STDDEV_FACTOR: float = 1.3

    # 输出下限：最短 5 分钟估计，p90 至少比 p50 多 5 分钟
    MIN_ESTIMATE_MINUTES: int = 5
    P90_MIN_SPREAD: int = 5

    # EWMA 平滑系数 (sensitivity)
    # 调整建议：0.1 (稳) ~ 0.9 (跟随最近表现)
    DEFAULT_SENSITIVITY: float = 0.3

    # === 趋势洞察 ===

    # 单个精力标签少于该记录数时不做趋势分析
    INSIGHT_MIN_TAG_RECORDS: int = 5

    # 时段 bucket 最少记录数
    INSIGHT_MIN_TIME_OF_DAY_BUCKET: int = 3

    # 星期 bucket 最少记录数 (星期维度更稀疏，阈值更低)
    INSIGHT_MIN_DAY_OF_WEEK_BUCKET: int = 2

    # 至少需要几个合格 bucket 才能比较
    INSIGHT_MIN_BUCKETS: int = 2

    # worst 比 best 慢多少才值得提示
    INSIGHT_MIN_GAP: float = 1.10

    # === 提醒生命周期 ===

    # "later" 默认推迟时长 (分钟)
    LATER_SNOOZE_MINUTES: int = 180

    # "later" 在下一个 DND 开始前预留的分钟数
    LATER_DND_MARGIN_MINUTES: int = 15

    # "later" 计算结果不在未来时的兜底推迟 (分钟)
    LATER_FALLBACK_MINUTES: int = 60

    # "pause" 恢复时间：次日几点
    PAUSE_RESUME_HOUR: int = 9

    # DND 平移标记
    DND_SHIFT_REASON: str = "DND-shifted"

    # === 时段划分 ===
    # 小时区间 [start, end) -> 时段，其余归为 evening
    TIME_OF_DAY_BOUNDARIES: Dict[str, tuple] = None

    def __post_init__(self):
        if self.COHORT_WEIGHTS is None:
            self.COHORT_WEIGHTS = {
                "exact": 0.5,
                "weekly": 0.2,
                "energy": 0.2,
                "global_time": 0.1,
            }
        if self.TIME_OF_DAY_BOUNDARIES is None:
            self.TIME_OF_DAY_BOUNDARIES = {
                "morning": (5, 12),
                "afternoon": (12, 17),
            }


def _load_runtime_config(path: Optional[Path] = None) -> dict:
    """加载运行时配置覆盖（如果存在）。"""
    target = path or RUNTIME_CONFIG_PATH
    if not target.exists():
        return {}

    try:
        with open(target, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def _validate(cfg: SystemConfig) -> None:
    """运行时覆盖值的基本范围检查。"""
    if not 0 < cfg.DEFAULT_SENSITIVITY < 1:
        raise ConfigError(
            f"DEFAULT_SENSITIVITY must be inside (0, 1), got {cfg.DEFAULT_SENSITIVITY}",
            key="DEFAULT_SENSITIVITY",
        )
    for key in ("MAX_RECORDS_PER_TAG", "MIN_COHORT_RECORDS", "CONFIDENCE_FULL_SAMPLE"):
        if getattr(cfg, key) < 1:
            raise ConfigError(f"{key} must be at least 1", key=key)
    if set(cfg.COHORT_WEIGHTS) != {"exact", "weekly", "energy", "global_time"}:
        raise ConfigError("COHORT_WEIGHTS needs exact/weekly/energy/global_time", key="COHORT_WEIGHTS")


def get_config(path: Optional[Path] = None) -> SystemConfig:
    """
    获取系统配置实例。

    优先级：runtime.yaml > 默认值
    """
    base = SystemConfig()
    overrides = _load_runtime_config(path)

    for key, value in overrides.items():
        if hasattr(base, key):
            setattr(base, key, value)

    _validate(base)
    return base


# 全局配置实例（单例模式）
config = get_config()
