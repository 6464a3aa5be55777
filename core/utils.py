import json
import math
from datetime import datetime
from typing import Any, Dict, Optional


def round_half_up(value: float) -> int:
    """
    四舍五入到整数，.5 一律向上取整。

    内置 round() 是银行家舍入 (round(2.5) == 2)，会破坏
    "p90 >= p50 + 5" 这类整数不变量，所以估计与洞察统一走这里。
    """
    return int(math.floor(value + 0.5))


def parse_iso_datetime(value: Any) -> Optional[datetime]:
    """
    解析 ISO 时间字符串 (兼容结尾的 Z)。

    返回 naive datetime；已是 datetime 则原样返回，空值返回 None。
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt.replace(tzinfo=None)


def format_iso_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def parse_llm_json(content: str) -> Optional[Dict[str, Any]]:
    """
    解析 LLM 返回的 JSON 内容。

    LLM 经常将 JSON 包裹在 Markdown 代码块中，此函数自动处理这些情况。

    Args:
        content: LLM 返回的原始内容

    Returns:
        解析后的字典，解析失败返回 None

    示例:
        >>> parse_llm_json('```json\\n{"key": "value"}\\n```')
        {'key': 'value'}
    """
    if not content:
        return None

    # 尝试提取 Markdown 代码块中的 JSON
    if "```json" in content:
        content = content.split("```json")[1].split("```")[0]
    elif "```" in content:
        content = content.split("```")[1].split("```")[0]

    try:
        parsed = json.loads(content.strip())
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None
