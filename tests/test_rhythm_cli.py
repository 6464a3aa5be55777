import json

from click.testing import CliRunner

from cli import rhythm_cmd
from cli.rhythm_cmd import rhythm
from cli.state_file import load_state
from core.models import ReminderStatus


def _run(state_path, *args):
    runner = CliRunner()
    return runner.invoke(rhythm, ["--state", str(state_path), *args])


def _add_work_reminder(state_path):
    candidate = json.dumps({"anchorTitle": "Work", "offsetMinutes": -15, "message": "Pack laptop"})
    return _run(state_path, "add-reminder", candidate)


def test_init_creates_default_routine(tmp_path):
    state_path = tmp_path / "state.json"

    result = _run(state_path, "init")

    assert result.exit_code == 0
    assert "已创建 2 个锚点, 1 个 DND 窗口" in result.output
    state = load_state(state_path)
    assert {a.title for a in state.anchors} == {"Work", "Weekend Relaxation"}


def test_add_reminder_then_list_due(tmp_path):
    state_path = tmp_path / "state.json"
    _run(state_path, "init")

    added = _add_work_reminder(state_path)
    due = _run(state_path, "due", "--now", "2026-02-10T08:00")

    assert added.exit_code == 0
    assert "🔔 08:45" in due.output
    assert "Pack laptop · Work" in due.output


def test_add_reminder_with_unknown_anchor_fails(tmp_path):
    state_path = tmp_path / "state.json"
    _run(state_path, "init")

    candidate = json.dumps({"anchorTitle": "Gym", "offsetMinutes": -15, "message": "Bag"})
    result = _run(state_path, "add-reminder", candidate)

    assert result.exit_code == 1
    assert 'Could not find an anchor named "Gym"' in result.output
    assert load_state(state_path).reminders == []


def test_snooze_action_is_saved(tmp_path):
    state_path = tmp_path / "state.json"
    _run(state_path, "init")
    _add_work_reminder(state_path)
    reminder_id = load_state(state_path).reminders[0].id

    result = _run(state_path, "act", reminder_id, "snooze", "--minutes", "15", "--now", "2026-02-10T08:45")

    assert result.exit_code == 0
    assert "Snoozed for 15 minutes" in result.output
    reminder = load_state(state_path).reminders[0]
    assert reminder.status == ReminderStatus.SNOOZED
    assert reminder.snooze_history == (15,)


def test_act_on_unknown_reminder(tmp_path):
    state_path = tmp_path / "state.json"
    _run(state_path, "init")

    result = _run(state_path, "act", "missing", "done")

    assert result.exit_code == 1
    assert "找不到提醒" in result.output


def test_move_reports_conflict_until_resolved(tmp_path):
    state_path = tmp_path / "state.json"
    _run(state_path, "init")

    blocked = _run(state_path, "move", "onboard-weekend-relax", "1")

    assert "冲突" in blocked.output
    assert "--resolve" in blocked.output
    assert load_state(state_path).anchors[1].days == frozenset({6})

    shifted = _run(state_path, "move", "onboard-weekend-relax", "1", "--resolve", "shift")

    assert shifted.exit_code == 0
    assert "Weekend Relaxation → Monday 17:00-19:00" in shifted.output
    moved = {a.id: a for a in load_state(state_path).anchors}["onboard-weekend-relax"]
    assert moved.days == frozenset({1})
    assert moved.start_min == 1020


def test_record_then_estimate(tmp_path):
    state_path = tmp_path / "state.json"
    for day in (6, 13, 20, 27):
        _run(
            state_path, "record", "--tag", "Creative", "--actual", "60", "--estimated", "60",
            "--substeps", "3", "--at", f"2026-01-{day:02d}T09:00",
        )

    too_few = _run(state_path, "estimate", "--tag", "Creative", "--substeps", "3", "--at", "2026-02-10T09:00")
    assert "数据不足" in too_few.output

    for day in (3, 10):
        _run(
            state_path, "record", "--tag", "Creative", "--actual", "60", "--estimated", "60",
            "--substeps", "3", "--at", f"2026-02-{day:02d}T09:00",
        )

    result = _run(state_path, "estimate", "--tag", "Creative", "--substeps", "3", "--at", "2026-02-10T09:00")

    assert result.exit_code == 0
    assert "p50 60 分钟 / p90 65 分钟 (low)" in result.output


def test_insights_without_data(tmp_path):
    result = _run(tmp_path / "state.json", "insights")

    assert result.exit_code == 0
    assert "数据不足" in result.output


def test_global_pause_silences_due(tmp_path):
    state_path = tmp_path / "state.json"
    _run(state_path, "init")
    _add_work_reminder(state_path)

    _run(state_path, "pause", "--until", "2026-02-10T12:00")
    paused = _run(state_path, "due", "--now", "2026-02-10T08:00")
    assert "暂停" in paused.output
    assert "🔔" not in paused.output

    _run(state_path, "pause", "--clear")
    resumed = _run(state_path, "due", "--now", "2026-02-10T08:00")
    assert "🔔 08:45" in resumed.output


def test_corrupt_state_exits_with_error(tmp_path):
    state_path = tmp_path / "state.json"
    state_path.write_text("{oops", encoding="utf-8")

    result = _run(state_path, "due")

    assert result.exit_code == 1
    assert "Cannot read snapshot" in result.output


def test_stored_sensitivity_outside_range_exits_cleanly(tmp_path):
    state_path = tmp_path / "state.json"
    for day in (6, 13, 20, 27):
        _run(
            state_path, "record", "--tag", "Creative", "--actual", "60", "--estimated", "60",
            "--substeps", "3", "--at", f"2026-01-{day:02d}T09:00",
        )
    data = json.loads(state_path.read_text(encoding="utf-8"))
    data["timeLearningSettings"]["sensitivity"] = 1.0
    state_path.write_text(json.dumps(data), encoding="utf-8")

    result = _run(state_path, "estimate", "--tag", "Creative", "--substeps", "3", "--at", "2026-02-10T09:00")

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "sensitivity must be inside (0, 1)" in result.output


def test_estimate_reports_value_error(tmp_path, monkeypatch):
    def _reject(*args, **kwargs):
        raise ValueError("sensitivity must be inside (0, 1), got 1.0")

    monkeypatch.setattr(rhythm_cmd, "get_personalized_estimate", _reject)

    result = _run(tmp_path / "state.json", "estimate", "--tag", "Creative", "--substeps", "3")

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "❌ sensitivity must be inside (0, 1), got 1.0" in result.output
