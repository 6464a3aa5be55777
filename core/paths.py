"""
Where the CLI keeps its snapshot and logs.

The engine in core/ never reads these; only the caller resolves paths.
"""
import os
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).parent.parent
STATE_FILENAME = "rhythm_state.json"


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name, "").strip()
    return Path(raw).expanduser() if raw else None


def get_data_dir() -> Path:
    """MOMENTUM_DATA_DIR, else <project_root>/data."""
    return _env_path("MOMENTUM_DATA_DIR") or PROJECT_ROOT / "data"


def get_state_path() -> Path:
    """MOMENTUM_STATE_FILE wins over <data dir>/rhythm_state.json."""
    return _env_path("MOMENTUM_STATE_FILE") or get_data_dir() / STATE_FILENAME


def logs_dir_for(state_path: Path) -> Path:
    """Logs live next to the snapshot they describe."""
    return state_path.parent / "logs"


DATA_DIR = get_data_dir()
STATE_PATH = get_state_path()
