"""Session commands: log-session, checkin, history."""

import uuid
from datetime import datetime
from typing import Annotated, Optional

import typer

from ...core.exercises.registry import EXERCISE_REGISTRY
from ...core.intent import SESSION_INTENTS
from ...core.landmarks import normalize_muscle
from ...core.models import (
    PerformanceSignals,
    ReadinessSignal,
    SubjectiveReadiness,
    WearableReadiness,
    WorkoutHistoryEntry,
)
from ...core.readiness import compute_fatigue_score, fatigue_label
from ...io.history_store import TrainingStore
from ...io.serializers import (
    ValidationError,
    build_performed_exercises,
    parse_level_map,
    validate_date,
)
from .. import views
from ..app import DataDirOption, app, require_store


def _match_last_plan(store: TrainingStore, exercise_ids: list[str]) -> dict | None:
    """
    Return the last generated plan when the logged exercises come from it.

    A log counts as the plan's execution when every logged exercise was
    prescribed in the plan.  A plan whose workout_id is already in history
    has been logged once and is not matched again.
    """
    try:
        loaded = store.load_last_plan()
        logged_ids = {e.workout_id for e in store.load_history()}
    except ValidationError as e:
        views.print_warning(f"Ignoring last plan: {e}")
        return None
    if loaded is None:
        return None
    plan = loaded[0]
    workout_id = plan.get("workout_id")
    if workout_id and workout_id in logged_ids:
        return None
    prescribed = {
        e.get("exercise_id")
        for section in ("main_lifts", "accessories")
        for e in plan.get(section, [])
    }
    if exercise_ids and set(exercise_ids) <= prescribed:
        return plan
    return None


@app.command("log-session")
def log_session(
    sets: Annotated[
        list[str],
        typer.Option(
            "--set",
            "-s",
            help="Set as exercise_id:LOADxREPS@RPE, or exercise_id:N*LOADxREPS@RPE for N sets. Repeatable.",
        ),
    ],
    data_dir: DataDirOption = None,
    date: Annotated[
        Optional[str],
        typer.Option("--date", help="Session date YYYY-MM-DD (default: today)"),
    ] = None,
    intent: Annotated[
        Optional[str],
        typer.Option("--intent", "-i", help="Session intent when not logging a generated plan"),
    ] = None,
    partial: Annotated[
        bool,
        typer.Option("--partial", help="Session was cut short"),
    ] = False,
    pain: Annotated[
        Optional[str],
        typer.Option("--pain", help="Pain flags as part=LEVEL (0-3), e.g. shoulder=2"),
    ] = None,
) -> None:
    """
    Log a performed session and advance the training block.

    Example:
        mesocoach log-session -s tbar_row:5*120x8@8 -s face_pull:3*25x15@8
    """
    store = require_store(data_dir)

    try:
        session_date = validate_date(date) if date else datetime.now().strftime("%Y-%m-%d")
        exercises = build_performed_exercises(sets)
        pain_flags = parse_level_map(pain, 0, 3, "pain")
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if intent is not None and intent not in SESSION_INTENTS:
        views.print_error(f"Unknown intent '{intent}'. Valid: {', '.join(SESSION_INTENTS)}")
        raise typer.Exit(1)

    unknown = [e.exercise_id for e in exercises if e.exercise_id not in EXERCISE_REGISTRY]
    if unknown:
        views.print_error(f"Unknown exercise(s): {', '.join(unknown)}")
        raise typer.Exit(1)

    plan = _match_last_plan(store, [e.exercise_id for e in exercises])
    if plan is not None:
        entry = WorkoutHistoryEntry(
            date=session_date,
            status="partial" if partial else "completed",
            exercises=exercises,
            selection_mode="intent",
            intent=plan.get("intent"),
            workout_id=str(plan.get("workout_id") or uuid.uuid4().hex),
            pain_flags=pain_flags,
        )
    else:
        entry = WorkoutHistoryEntry(
            date=session_date,
            status="partial" if partial else "completed",
            exercises=exercises,
            selection_mode="manual",
            intent=intent,  # type: ignore[arg-type]
            workout_id=uuid.uuid4().hex,
            pain_flags=pain_flags,
        )

    try:
        transition = store.record_performed_session(entry)
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    total_sets = sum(len(e.sets) for e in exercises)
    views.print_success(
        f"Logged {entry.selection_mode} session on {session_date}: "
        f"{len(exercises)} exercises, {total_sets} sets"
    )
    if transition is None:
        return
    if transition.successor is not None:
        views.print_info(
            f"Block #{transition.block.block_number} completed. "
            f"Block #{transition.successor.block_number} starts next session."
        )
    elif transition.transitioned:
        views.print_info("Accumulation complete: next sessions are deload sessions.")


@app.command()
def checkin(
    data_dir: DataDirOption = None,
    readiness: Annotated[
        int,
        typer.Option("--readiness", "-r", min=1, max=5, help="Overall readiness 1 (exhausted) - 5 (great)"),
    ] = 3,
    motivation: Annotated[
        int,
        typer.Option("--motivation", "-m", min=1, max=5, help="Motivation 1-5"),
    ] = 3,
    soreness: Annotated[
        Optional[str],
        typer.Option("--soreness", help="Sore muscles as muscle=LEVEL (1-3), e.g. quads=2"),
    ] = None,
    pain: Annotated[
        Optional[str],
        typer.Option("--pain", help="Pain flags as part=LEVEL (0-3), e.g. shoulder=2"),
    ] = None,
    recovery: Annotated[
        Optional[float],
        typer.Option("--recovery", help="Wearable recovery 0-100"),
    ] = None,
    strain: Annotated[
        Optional[float],
        typer.Option("--strain", help="Wearable strain 0-21"),
    ] = None,
    hrv: Annotated[
        Optional[float],
        typer.Option("--hrv", help="Wearable HRV (ms)"),
    ] = None,
    sleep_quality: Annotated[
        Optional[float],
        typer.Option("--sleep-quality", help="Wearable sleep performance 0-100"),
    ] = None,
    sleep_hours: Annotated[
        Optional[float],
        typer.Option("--sleep-hours", help="Hours slept"),
    ] = None,
    rpe_deviation: Annotated[
        float,
        typer.Option("--rpe-deviation", help="Recent actual minus expected RPE"),
    ] = 0.0,
    stalls: Annotated[
        int,
        typer.Option("--stalls", help="Exercises currently stalled"),
    ] = 0,
) -> None:
    """
    Record a readiness check-in used to autoregulate the next session.

    Check-ins older than 48 hours are ignored by the generator.
    """
    store = require_store(data_dir)

    try:
        soreness_map = {
            normalize_muscle(k): v for k, v in parse_level_map(soreness, 1, 3, "soreness").items()
        }
        pain_map = parse_level_map(pain, 0, 3, "pain")
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    wearable_fields = (recovery, strain, hrv, sleep_quality)
    wearable = None
    if any(v is not None for v in wearable_fields):
        if any(v is None for v in wearable_fields):
            views.print_error("Wearable data needs --recovery, --strain, --hrv and --sleep-quality together")
            raise typer.Exit(1)
        wearable = WearableReadiness(
            recovery=recovery,  # type: ignore[arg-type]
            strain=strain,  # type: ignore[arg-type]
            hrv=hrv,  # type: ignore[arg-type]
            sleep_quality=sleep_quality,  # type: ignore[arg-type]
            sleep_hours=sleep_hours,
        )

    signal = ReadinessSignal(
        timestamp=datetime.now(),
        subjective=SubjectiveReadiness(
            readiness=readiness,
            motivation=motivation,
            soreness=soreness_map,
            pain_flags=pain_map,
        ),
        performance=PerformanceSignals(rpe_deviation=rpe_deviation, stall_count=stalls),
        wearable=wearable,
    )
    store.append_readiness(signal)

    fatigue = compute_fatigue_score(signal)
    views.print_success(
        f"Check-in saved. Fatigue score {fatigue.overall * 100:.0f}% ({fatigue_label(fatigue.overall)})"
    )


@app.command()
def history(
    data_dir: DataDirOption = None,
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-n", help="Show only the most recent N sessions"),
    ] = None,
) -> None:
    """
    Show logged sessions.
    """
    store = require_store(data_dir)
    try:
        entries = store.load_history()
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if limit is not None:
        entries = entries[-limit:]
    views.print_history(entries)
