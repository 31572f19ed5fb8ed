"""
Session generation: the single entry point that runs the whole engine.

    lifecycle week → volume context → selection objective → optimizer
    → progression per exercise → workout assembly → autoregulation

Everything the run needs is captured once in a GenerationContext and
treated as an immutable snapshot, so the result is deterministic for fixed
inputs (and a fixed ``now``).
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence, cast

from .autoregulation import AutoregulationResult, autoregulate
from .config import VOLUME_LANDMARKS
from .deload import DeloadDecision, decide_deload
from .engine.config_loader import (
    ModelConfig,
    load_model_config,
    resolve_autoregulation_policy,
    resolve_landmark_overrides,
    resolve_rep_range,
)
from .errors import MissingContextError, NoCompatibleExercisesError
from .exercises.base import Exercise
from .exposure import ExerciseExposure, build_exposure
from .intent import intent_pool
from .landmarks import lookup_landmark
from .lifecycle import CycleContextSnapshot, cycle_context, rir_target
from .models import (
    Constraints,
    Goals,
    Preferences,
    ReadinessSignal,
    TrainingBlock,
    UserProfile,
    WorkoutHistoryEntry,
    WorkoutPlan,
)
from .prescription import build_workout_plan
from .progression import (
    ProgressionDecision,
    ProgressionReceipt,
    SetSummary,
    build_receipt,
    decide_progression,
)
from .readiness import compute_fatigue_score, is_fresh, latest_signal
from .selection import build_selection_objective, map_selection_result, select_exercises
from .selection.types import SelectionOutput
from .volume import (
    DeloadReadiness,
    MuscleVolumeCompliance,
    assess_deload_readiness,
    count_weekly_volume,
    resolve_volume_window,
    volume_compliance,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationContext:
    """Immutable snapshot of everything one generation run reads."""

    profile: UserProfile | None
    goals: Goals | None
    constraints: Constraints | None
    preferences: Preferences = field(default_factory=Preferences)
    history: tuple[WorkoutHistoryEntry, ...] = ()
    block: TrainingBlock | None = None
    readiness: tuple[ReadinessSignal, ...] = ()
    library: dict[str, Exercise] | None = None
    config: ModelConfig | None = None


@dataclass
class GeneratedSession:
    plan: WorkoutPlan
    selection: SelectionOutput
    receipts: dict[str, ProgressionReceipt]
    deload: DeloadDecision
    cycle: CycleContextSnapshot
    autoregulation: AutoregulationResult
    volume_compliance: list[MuscleVolumeCompliance] = field(default_factory=list)
    deload_readiness: DeloadReadiness | None = None
    decisions: dict[str, ProgressionDecision] = field(default_factory=dict)


def _require_context(context: GenerationContext) -> tuple[UserProfile, Goals, Constraints]:
    missing = [
        name
        for name, value in (
            ("profile", context.profile),
            ("goals", context.goals),
            ("constraints", context.constraints),
        )
        if value is None
    ]
    if missing:
        raise MissingContextError(missing)
    return cast(UserProfile, context.profile), cast(Goals, context.goals), cast(Constraints, context.constraints)


def resolve_pain_flags(
    signal: ReadinessSignal | None,
    history: Sequence[WorkoutHistoryEntry],
    now: datetime,
) -> dict[str, int]:
    """Pain flags from a fresh readiness check-in, else from the latest logged session."""
    if signal is not None and is_fresh(signal, now) and signal.subjective.pain_flags:
        return dict(signal.subjective.pain_flags)
    performed = [e for e in history if e.is_performed]
    if not performed:
        return {}
    return dict(max(performed, key=lambda e: e.date).pain_flags)


def _receipt_for(
    exercise_id: str,
    decision: ProgressionDecision,
    plan: WorkoutPlan,
    autoreg: AutoregulationResult,
    as_of: str,
) -> ProgressionReceipt:
    entry = plan.find(exercise_id)
    top = entry.sets[0] if entry is not None and entry.sets else None
    today = SetSummary(
        reps=top.target_reps if top else None,
        load=top.target_load if top else None,
        rpe=top.target_rpe if top else None,
        date=as_of,
    )
    trigger = None
    extra: list[str] = []
    for mod in autoreg.modifications:
        if mod.exercise_id != exercise_id:
            continue
        if mod.type == "deload_trigger":
            trigger = "deload"
            extra.append("Autoregulation deload: sets and load reduced")
        elif mod.type == "intensity_scale":
            trigger = "readiness_scale"
            extra.append(f"Readiness scaled intensity ×{mod.scalar:g}")
        else:
            extra.append(f"Readiness cut {mod.sets_cut} sets")
    return build_receipt(decision, today, trigger=trigger, extra_trace=extra)


def generate_session(
    context: GenerationContext,
    intent: str,
    *,
    as_of: str | None = None,
    now: datetime | None = None,
    target_muscles: Sequence[str] = (),
    weight_overrides: dict[str, float] | None = None,
    policy_overrides: dict[str, Any] | None = None,
    template_context: bool = False,
    workout_id: str | None = None,
) -> GeneratedSession:
    """
    Generate one session.

    Args:
        context: Input snapshot (profile, goals and constraints are required)
        intent: push | pull | legs | upper | lower | full_body | body_part
        as_of: Session date (defaults to the date of *now*)
        now: Reference time for readiness staleness and SRA (defaults to now)
        target_muscles: Muscles for a body_part session

    Raises:
        MissingContextError: If profile, goals or constraints are absent
        NoCompatibleExercisesError: If no exercise passes the hard filters
    """
    profile, goals, constraints = _require_context(context)

    now = now or datetime.now()
    as_of = as_of or now.strftime("%Y-%m-%d")
    config = context.config if context.config is not None else load_model_config()
    if context.library is not None:
        library = dict(context.library)
    else:
        from .exercises.registry import EXERCISE_REGISTRY

        library = dict(EXERCISE_REGISTRY)
    history = tuple(context.history)
    block = context.block

    pool = intent_pool(library.values(), intent, target_muscles)
    if not pool:
        raise NoCompatibleExercisesError(intent)

    exposure: dict[str, ExerciseExposure] = build_exposure(history, library, as_of)
    window = resolve_volume_window(block, as_of)
    weekly = count_weekly_volume(history, library, window)
    signal = latest_signal(context.readiness)

    objective = build_selection_objective(
        pool=pool,
        library=library,
        intent=intent,
        profile=profile,
        goals=goals,
        constraints=constraints,
        preferences=context.preferences,
        history=history,
        weekly_volume=weekly,
        exposure=exposure,
        block=block,
        as_of=as_of,
        now=now,
        pain_flags=resolve_pain_flags(signal, history, now),
        target_muscles=target_muscles,
        weight_overrides=weight_overrides,
        template_context=template_context,
        config=config,
    )
    result = select_exercises(objective, pool, intent)
    selection = map_selection_result(result, objective)

    overrides = resolve_landmark_overrides(config)
    tracked = {
        m: lookup_landmark(m, overrides)
        for m in weekly.muscles()
        if m in VOLUME_LANDMARKS or m in overrides
    }
    readiness = assess_deload_readiness(
        {m: weekly.effective(m) for m in tracked}, tracked, block
    )
    fatigue = compute_fatigue_score(signal) if signal is not None and is_fresh(signal, now) else None
    deload = decide_deload(block, readiness, fatigue)

    decisions: dict[str, ProgressionDecision] = {}
    main_ids = set(selection.main_lift_ids)
    for exercise_id in selection.selected_exercise_ids:
        exercise = library[exercise_id]
        is_main = exercise_id in main_ids
        decisions[exercise_id] = decide_progression(
            exercise,
            is_main,
            resolve_rep_range(exercise, goals.primary, is_main),
            history,
            as_of,
            deload_active=deload.active,
            config=config,
        )

    is_deload = block is not None and block.state != "accumulating"
    policy = resolve_autoregulation_policy(policy_overrides, config)
    # With down-regulation disabled the autoregulation pass cannot deload, so assembly does.
    deload_in_plan = deload.in_plan or (deload.readiness_triggered and not policy.allow_down_regulation)
    plan = build_workout_plan(
        workout_id=workout_id or uuid.uuid4().hex,
        scheduled_date=as_of,
        intent=intent,
        selection=selection,
        library=library,
        decisions=decisions,
        profile=profile,
        goals=goals,
        rir_band=rir_target(block, config) if block is not None else None,
        is_deload=is_deload or deload.active,
        trim_accessories=deload_in_plan,
    )

    autoreg = autoregulate(plan, signal, now, policy, deload_in_plan=deload_in_plan)
    final_plan = autoreg.plan

    receipts = {
        exercise_id: _receipt_for(exercise_id, decisions[exercise_id], final_plan, autoreg, as_of)
        for exercise_id in selection.selected_exercise_ids
    }

    prescribed: dict[str, float] = {}
    for entry in final_plan.working_exercises():
        for muscle in entry.exercise.primary_muscles:
            prescribed[muscle] = prescribed.get(muscle, 0.0) + len(entry.sets)
    compliance = volume_compliance(
        weekly.direct,
        prescribed,
        objective.volume_context.weekly_target,
        objective.landmarks,
    )

    logger.info(
        "Generated %s session %s: %d exercises, deload=%s, autoregulation=%s",
        intent,
        final_plan.workout_id,
        len(selection.selected_exercise_ids),
        deload.mode,
        autoreg.action,
    )
    return GeneratedSession(
        plan=final_plan,
        selection=selection,
        receipts=receipts,
        deload=deload,
        cycle=cycle_context(block),
        autoregulation=autoreg,
        volume_compliance=compliance,
        deload_readiness=readiness,
        decisions=decisions,
    )
