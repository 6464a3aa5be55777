from datetime import datetime

import pytest

from core.config_manager import SystemConfig, get_config
from core.exceptions import ConfigError
from core.reminder_lifecycle import later_until


def test_defaults():
    cfg = SystemConfig()

    assert cfg.MAX_RECORDS_PER_TAG == 100
    assert sum(cfg.COHORT_WEIGHTS.values()) == pytest.approx(1.0)
    assert cfg.TIME_OF_DAY_BOUNDARIES["morning"] == (5, 12)


def test_runtime_yaml_overrides_known_keys(tmp_path):
    path = tmp_path / "runtime.yaml"
    path.write_text("LATER_SNOOZE_MINUTES: 90\nNOT_A_SETTING: 1\n", encoding="utf-8")

    cfg = get_config(path)

    assert cfg.LATER_SNOOZE_MINUTES == 90
    assert not hasattr(cfg, "NOT_A_SETTING")
    assert later_until(datetime(2026, 2, 10, 10, 0), [], cfg) == datetime(2026, 2, 10, 11, 30)


def test_broken_yaml_falls_back_to_defaults(tmp_path):
    path = tmp_path / "runtime.yaml"
    path.write_text("LATER_SNOOZE_MINUTES: [unclosed\n", encoding="utf-8")

    assert get_config(path).LATER_SNOOZE_MINUTES == 180
    assert get_config(tmp_path / "missing.yaml").LATER_SNOOZE_MINUTES == 180


def test_out_of_range_override_raises_config_error(tmp_path):
    path = tmp_path / "runtime.yaml"
    path.write_text("DEFAULT_SENSITIVITY: 1.5\n", encoding="utf-8")

    with pytest.raises(ConfigError) as exc_info:
        get_config(path)

    assert exc_info.value.key == "DEFAULT_SENSITIVITY"
    assert "DEFAULT_SENSITIVITY" in exc_info.value.get_user_message()
