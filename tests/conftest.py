import logging
import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def _reset_momentum_logging():
    """CLI 测试会挂 handler 到 CliRunner 的临时流上，用完即清理。"""
    yield
    root = logging.getLogger("momentum")
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)
