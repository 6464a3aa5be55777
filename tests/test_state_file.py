import json
from datetime import datetime

import pytest

from cli.state_file import RhythmState, load_state, save_state
from core.completion_history import CompletionHistory, create_record
from core.exceptions import StateError
from core.logger import setup_logging
from core.models import EnergyTag, ReminderStatus, SmartReminder, TimeLearningSettings
from core.onboarding import generate_defaults


def test_missing_file_is_empty_state(tmp_path):
    state = load_state(tmp_path / "none.json")

    assert state.anchors == []
    assert state.pause_until is None
    assert len(state.history) == 0


def test_snapshot_survives_save_and_load(tmp_path):
    anchors, windows = generate_defaults()
    reminder = SmartReminder(
        id="sr-1",
        anchor_id=anchors[0].id,
        offset_minutes=-15,
        message="Pack laptop",
        status=ReminderStatus.SNOOZED,
        snoozed_until=datetime(2026, 2, 10, 8, 45),
        snooze_history=(15,),
    )
    history = CompletionHistory().add_record(
        create_record(30, 25, EnergyTag.ADMIN, datetime(2026, 2, 10, 9, 0), 2, record_id="cr-1")
    )
    state = RhythmState(
        anchors=anchors,
        reminders=[reminder],
        dnd_windows=windows,
        pause_until=datetime(2026, 2, 11, 9, 0),
        settings=TimeLearningSettings(is_enabled=False, sensitivity=0.5),
        history=history,
    )
    path = tmp_path / "nested" / "state.json"

    save_state(state, path)
    restored = load_state(path)

    assert restored == state
    assert not path.with_suffix(".json.tmp").exists()


def test_corrupt_snapshot_raises_state_error(tmp_path):
    setup_logging(logs_dir=tmp_path / "logs")
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StateError) as exc_info:
        load_state(path)

    assert exc_info.value.path == str(path)
    dump = (tmp_path / "logs" / "corruption_dump.log").read_text(encoding="utf-8")
    assert "{not json" in dump


def test_snapshot_with_invalid_sensitivity_is_rejected(tmp_path):
    setup_logging(logs_dir=tmp_path / "logs")
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"timeLearningSettings": {"isEnabled": True, "sensitivity": 1.0}}), encoding="utf-8")

    with pytest.raises(StateError) as exc_info:
        load_state(path)

    assert "sensitivity" in exc_info.value.message
