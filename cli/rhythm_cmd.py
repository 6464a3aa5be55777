"""
CLI 命令：rhythm
周节律（锚点 + 提醒）与个性化时长估计的命令行入口
"""
import click
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# 添加项目根目录到 sys.path，以便导入 core 模块
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root))

from cli.state_file import RhythmState, load_state, save_state
from core.completion_history import add_completion, create_record
from core.conflict_resolver import MoveCommitted, Resolution, propose_move, resolve_conflict
from core.estimation import EstimateContext, get_personalized_estimate
from core.exceptions import MomentumError
from core.insights import generate_insights
from core.logger import setup_logging
from core.models import DAY_NAMES, EnergyTag, UserDifficulty
from core.onboarding import generate_defaults
from core.paths import STATE_PATH, logs_dir_for
from core.reminder_lifecycle import ReminderAction, apply_to_collection
from core.reminder_parser import build_reminder, validate_candidate
from core.reminder_scheduler import schedule_reminders
from core.time_utils import day_index, get_time_of_day, minutes_to_time, time_to_minutes

DATETIME = click.DateTime(formats=["%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M"])


def _now(value: Optional[datetime]) -> datetime:
    return value or datetime.now()


def _describe_conflict(conflict) -> str:
    window = f"{minutes_to_time(conflict.start_min)}-{minutes_to_time(conflict.end_min)}"
    day = DAY_NAMES[conflict.target_day]
    if conflict.type.value == "dnd":
        return f"{window} on {day} falls inside quiet hours ({conflict.window_id})"
    return f"{window} on {day} overlaps anchor {conflict.overlapping_anchor_id}"


@click.group()
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=STATE_PATH,
    show_default=True,
    help="Snapshot file",
)
@click.pass_context
def rhythm(ctx, state_path: Path):
    """Weekly rhythm: anchors, smart reminders and time learning"""
    setup_logging(logs_dir=logs_dir_for(state_path))
    ctx.ensure_object(dict)
    ctx.obj["state_path"] = state_path
    try:
        ctx.obj["state"] = load_state(state_path)
    except MomentumError as e:
        click.echo(f"❌ {e.get_user_message()}", err=True)
        ctx.exit(1)


def _save(ctx, state: RhythmState) -> None:
    save_state(state, ctx.obj["state_path"])


@rhythm.command()
@click.option("--force", is_flag=True, help="Overwrite an existing routine")
@click.pass_context
def init(ctx, force: bool):
    """写入默认的周节律 (Work + Weekend + 23:00-07:00 DND)"""
    state: RhythmState = ctx.obj["state"]
    if state.anchors and not force:
        click.echo("ℹ️ 已有锚点，使用 --force 覆盖", err=True)
        return

    anchors, windows = generate_defaults()
    state.anchors = anchors
    state.dnd_windows = windows
    state.reminders = []
    _save(ctx, state)
    click.echo(f"✅ 已创建 {len(anchors)} 个锚点, {len(windows)} 个 DND 窗口")


@rhythm.command()
@click.option("--now", "now_value", type=DATETIME, default=None)
@click.pass_context
def due(ctx, now_value: Optional[datetime]):
    """列出今天待触发的提醒"""
    state: RhythmState = ctx.obj["state"]
    now = _now(now_value)
    if state.pause_until and now < state.pause_until:
        click.echo(f"🔕 提醒已暂停至 {state.pause_until.isoformat(timespec='minutes')}")
        return

    items = schedule_reminders(
        state.reminders, state.anchors, state.dnd_windows, now, pause_until=state.pause_until
    )
    if not items:
        click.echo("🌿 今天没有待触发的提醒")
        return

    for item in items:
        suffix = f" ({item.shifted_reason})" if item.shifted_reason else ""
        click.echo(
            f"🔔 {item.trigger_time.strftime('%H:%M')} [{item.reminder.id}] "
            f"{item.reminder.message} · {item.anchor.title}{suffix}"
        )


@rhythm.command()
@click.argument("reminder_id")
@click.argument("action", type=click.Choice([a.value for a in ReminderAction]))
@click.option("--minutes", type=int, default=None, help="Snooze length")
@click.option("--now", "now_value", type=DATETIME, default=None)
@click.pass_context
def act(ctx, reminder_id: str, action: str, minutes: Optional[int], now_value: Optional[datetime]):
    """对提醒执行动作 (done / snooze / pause / ignore / later / ...)"""
    state: RhythmState = ctx.obj["state"]
    try:
        result = apply_to_collection(
            state.reminders,
            reminder_id,
            action,
            _now(now_value),
            minutes=minutes,
            dnd_windows=state.dnd_windows,
        )
    except ValueError as e:
        click.echo(f"❌ {e}", err=True)
        ctx.exit(1)
        return

    if result is None:
        click.echo(f"❌ 找不到提醒: {reminder_id}", err=True)
        ctx.exit(1)
        return

    reminders, transition = result
    if not transition.changed:
        click.echo("ℹ️ 无变化")
        return

    state.reminders = reminders
    _save(ctx, state)
    click.echo(f"✅ {transition.entry.message}")


@rhythm.command()
@click.argument("anchor_id")
@click.argument("day", type=click.IntRange(0, 6))
@click.option("--start", default=None, help="New start time HH:MM")
@click.option(
    "--resolve",
    "resolution",
    type=click.Choice([r.value for r in Resolution]),
    default=None,
    help="How to resolve a conflict",
)
@click.pass_context
def move(ctx, anchor_id: str, day: int, start: Optional[str], resolution: Optional[str]):
    """把锚点移到某一天 (0=周日)"""
    state: RhythmState = ctx.obj["state"]
    start_min = time_to_minutes(start) if start else None

    result = propose_move(state.anchors, state.dnd_windows, anchor_id, day, start_min)
    if result is None:
        click.echo(f"❌ 找不到锚点: {anchor_id}", err=True)
        ctx.exit(1)
        return

    if not isinstance(result, MoveCommitted):
        click.echo(f"⚠️ 冲突: {_describe_conflict(result)}")
        if resolution is None:
            click.echo("💡 使用 --resolve shift|keep|cancel 处理")
            return
        result = resolve_conflict(result, Resolution(resolution), state.anchors, state.dnd_windows)
        if result is None:
            click.echo("操作取消")
            return
        if not isinstance(result, MoveCommitted):
            click.echo(f"⚠️ 仍有冲突: {_describe_conflict(result)}")
            return

    state.anchors = list(result.anchors)
    _save(ctx, state)
    click.echo(
        f"✅ {result.anchor.title} → {DAY_NAMES[day]} "
        f"{minutes_to_time(result.start_min)}-{minutes_to_time(result.end_min)}"
    )


@rhythm.command("add-reminder")
@click.argument("candidate_json")
@click.pass_context
def add_reminder(ctx, candidate_json: str):
    """从 AI 解析结果 (JSON) 创建提醒"""
    state: RhythmState = ctx.obj["state"]
    try:
        candidate = validate_candidate(candidate_json, state.anchors)
    except MomentumError as e:
        click.echo(f"❌ {e.get_user_message()}", err=True)
        ctx.exit(1)
        return

    reminder = build_reminder(candidate, state.anchors)
    state.reminders = state.reminders + [reminder]
    _save(ctx, state)
    click.echo(f"✅ 已添加提醒 {reminder.id}: {reminder.message}")


@rhythm.command()
@click.option("--tag", type=click.Choice([t.value for t in EnergyTag]), required=True)
@click.option("--actual", type=float, required=True, help="Actual minutes")
@click.option("--estimated", type=float, required=True, help="Estimated minutes")
@click.option("--substeps", type=click.IntRange(min=0), required=True)
@click.option(
    "--difficulty",
    type=click.Choice([str(d.value) for d in UserDifficulty]),
    default=str(UserDifficulty.TYPICAL.value),
)
@click.option("--at", "completed_at", type=DATETIME, default=None)
@click.pass_context
def record(ctx, tag, actual, estimated, substeps, difficulty, completed_at):
    """记录一次完成，用于学习时长"""
    state: RhythmState = ctx.obj["state"]
    entry = create_record(
        actual_duration_minutes=actual,
        estimated_duration_minutes=estimated,
        energy_tag=EnergyTag(tag),
        completed_at=_now(completed_at),
        sub_step_count=substeps,
        difficulty=float(difficulty),
    )
    history = add_completion(state.history, entry, state.settings)
    if history is state.history:
        click.echo("ℹ️ 时长学习已关闭，未记录")
        return

    state.history = history
    _save(ctx, state)
    flag = " (hyperfocus)" if entry.is_hyperfocus else ""
    click.echo(f"✅ 已记录 {tag} {actual:g} 分钟{flag}")


@rhythm.command()
@click.option("--tag", type=click.Choice([t.value for t in EnergyTag]), required=True)
@click.option("--substeps", type=click.IntRange(min=0), required=True)
@click.option("--at", "planned_at", type=DATETIME, default=None)
@click.pass_context
def estimate(ctx, tag: str, substeps: int, planned_at: Optional[datetime]):
    """给出个性化时长估计"""
    state: RhythmState = ctx.obj["state"]
    when = _now(planned_at)
    context = EstimateContext(
        energy_tag=EnergyTag(tag),
        sub_step_count=substeps,
        time_of_day=get_time_of_day(when),
        day_of_week=day_index(when),
    )
    try:
        result = get_personalized_estimate(state.history, context, state.settings.sensitivity)
    except ValueError as e:
        click.echo(f"❌ {e}", err=True)
        ctx.exit(1)
        return

    if result is None:
        click.echo("ℹ️ 数据不足，暂无个性化估计")
        return

    click.echo(f"⏱️ p50 {result.p50} 分钟 / p90 {result.p90} 分钟 ({result.confidence.value})")
    click.echo(f"   {result.confidence_reason}")


@rhythm.command()
@click.pass_context
def insights(ctx):
    """显示时段 / 星期表现趋势"""
    state: RhythmState = ctx.obj["state"]
    messages = generate_insights(state.history)
    if not messages:
        click.echo("ℹ️ 数据不足，暂无趋势")
        return
    for message in messages:
        click.echo(f"📊 {message}")


@rhythm.command()
@click.option("--until", "until", type=DATETIME, default=None)
@click.option("--clear", is_flag=True)
@click.pass_context
def pause(ctx, until: Optional[datetime], clear: bool):
    """全局静音所有提醒"""
    state: RhythmState = ctx.obj["state"]
    if clear:
        state.pause_until = None
        _save(ctx, state)
        click.echo("🔔 已恢复提醒")
        return
    if until is None:
        click.echo("❌ 需要 --until 或 --clear", err=True)
        ctx.exit(1)
        return

    state.pause_until = until
    _save(ctx, state)
    click.echo(f"🔕 提醒暂停至 {until.isoformat(timespec='minutes')}")


if __name__ == "__main__":
    rhythm()
