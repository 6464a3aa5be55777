"""
JSON snapshot file used by the CLI.

The engine itself never touches storage; the CLI loads a whole snapshot,
hands plain collections to the core, and writes the new snapshot back only
once the core has returned it.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.completion_history import CompletionHistory
from core.exceptions import StateError
from core.logger import get_logger, log_corruption
from core.models import Anchor, DNDWindow, SmartReminder, TimeLearningSettings
from core.utils import format_iso_datetime, parse_iso_datetime

logger = get_logger("state_file")


@dataclass
class RhythmState:
    anchors: List[Anchor] = field(default_factory=list)
    reminders: List[SmartReminder] = field(default_factory=list)
    dnd_windows: List[DNDWindow] = field(default_factory=list)
    pause_until: Optional[datetime] = None
    settings: TimeLearningSettings = field(default_factory=TimeLearningSettings)
    history: CompletionHistory = field(default_factory=CompletionHistory)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scheduleEvents": [a.to_dict() for a in self.anchors],
            "smartReminders": [r.to_dict() for r in self.reminders],
            "dndWindows": [w.to_dict() for w in self.dnd_windows],
            "pauseUntil": format_iso_datetime(self.pause_until),
            "timeLearningSettings": self.settings.to_dict(),
            "completionHistory": self.history.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RhythmState":
        return cls(
            anchors=[Anchor.from_dict(d) for d in data.get("scheduleEvents", [])],
            reminders=[SmartReminder.from_dict(d) for d in data.get("smartReminders", [])],
            dnd_windows=[DNDWindow.from_dict(d) for d in data.get("dndWindows", [])],
            pause_until=parse_iso_datetime(data.get("pauseUntil")),
            settings=TimeLearningSettings.from_dict(data.get("timeLearningSettings")),
            history=CompletionHistory.from_dict(data.get("completionHistory")),
        )


def load_state(path: Path) -> RhythmState:
    """
    读取快照；文件不存在时返回空状态。

    Raises:
        StateError: 文件无法解码 (原文会写入 corruption_dump.log)
    """
    if not path.exists():
        return RhythmState()

    raw = path.read_text(encoding="utf-8")
    try:
        return RhythmState.from_dict(json.loads(raw))
    except (json.JSONDecodeError, KeyError, ValueError) as e:
        log_corruption(path, raw, str(e))
        raise StateError(f"Cannot read snapshot: {e}", path=str(path)) from e


def save_state(state: RhythmState, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(state.to_dict(), f, ensure_ascii=False, indent=2)
    tmp_path.replace(path)
    logger.info("Snapshot written to %s", path)
