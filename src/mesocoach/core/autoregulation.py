"""
Autoregulation: adjust an already-generated plan to today's readiness.

The pass never mutates its input.  A missing or stale signal leaves the plan
unchanged with a stated reason.  Running the pass on a plan it already
adjusted is a no-op, so repeating it with the same signal gives the same
plan.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Union

from .config import (
    DELOAD_INTENSITY_FACTOR,
    DELOAD_RPE_CAP,
    DELOAD_THRESHOLD,
    DELOAD_VOLUME_FACTOR,
    MAX_SETS_TO_DROP,
    MIN_SETS_PRESERVED,
    SCALE_DOWN_FACTOR,
    SCALE_DOWN_RPE_DELTA,
    SCALE_DOWN_THRESHOLD,
    SCALE_UP_FACTOR,
    SCALE_UP_RPE_DELTA,
    SCALE_UP_THRESHOLD,
)
from .metrics import round_to_step
from .models import AutoregulationPolicy, FatigueScore, ReadinessSignal, WorkoutExercise, WorkoutPlan
from .prescription import estimate_minutes
from .readiness import compute_fatigue_score, fatigue_label, format_age, is_fresh, signal_age

logger = logging.getLogger(__name__)

AutoregulationAction = Literal["deload", "scale_down", "reduce_volume", "scale_up", "maintain"]

DELOAD_NOTE_PREFIX = "[AUTO-DELOAD TRIGGERED]"


@dataclass(frozen=True)
class IntensityScale:
    exercise_id: str
    direction: Literal["up", "down"]
    scalar: float
    original_load: float | None
    adjusted_load: float | None
    original_rpe: float | None
    adjusted_rpe: float | None
    reason: str
    type: Literal["intensity_scale"] = "intensity_scale"


@dataclass(frozen=True)
class VolumeReduction:
    exercise_id: str
    original_sets: int
    adjusted_sets: int
    sets_cut: int
    reason: str
    type: Literal["volume_reduction"] = "volume_reduction"


@dataclass(frozen=True)
class DeloadTrigger:
    exercise_id: str
    original_sets: int
    adjusted_sets: int
    original_load: float | None
    adjusted_load: float | None
    adjusted_rpe: float
    reason: str
    type: Literal["deload_trigger"] = "deload_trigger"


Modification = Union[IntensityScale, VolumeReduction, DeloadTrigger]


@dataclass
class AutoregulationResult:
    plan: WorkoutPlan
    applied: bool
    action: AutoregulationAction
    rationale: str
    modifications: list[Modification] = field(default_factory=list)
    fatigue: FatigueScore | None = None
    signal_age_hours: float | None = None

    def modified_exercise_ids(self, kind: str | None = None) -> set[str]:
        return {m.exercise_id for m in self.modifications if kind is None or m.type == kind}


def choose_action(overall: float, policy: AutoregulationPolicy) -> AutoregulationAction:
    """Map a fatigue score to an action under *policy*."""
    if overall < SCALE_DOWN_THRESHOLD and not policy.allow_down_regulation:
        return "maintain"
    if overall < DELOAD_THRESHOLD:
        return "deload"
    if overall < SCALE_DOWN_THRESHOLD:
        return "reduce_volume" if policy.aggressiveness == "aggressive" else "scale_down"
    if overall > SCALE_UP_THRESHOLD and policy.allow_up_regulation:
        return "scale_up"
    return "maintain"


def _scale_exercise(
    entry: WorkoutExercise,
    factor: float,
    rpe_delta: float,
    reason: str,
) -> IntensityScale:
    top = entry.sets[0] if entry.sets else None
    original_load = top.target_load if top else None
    original_rpe = top.target_rpe if top else None
    for s in entry.sets:
        if s.target_load is not None:
            s.target_load = round_to_step(s.target_load * factor)
        if s.target_rpe is not None:
            s.target_rpe = min(10.0, max(1.0, s.target_rpe + rpe_delta))
    return IntensityScale(
        exercise_id=entry.exercise.exercise_id,
        direction="up" if factor > 1 else "down",
        scalar=factor,
        original_load=original_load,
        adjusted_load=top.target_load if top else None,
        original_rpe=original_rpe,
        adjusted_rpe=top.target_rpe if top else None,
        reason=reason,
    )


def _deload_exercise(entry: WorkoutExercise, reason: str) -> DeloadTrigger:
    original_sets = len(entry.sets)
    keep = max(1, int(original_sets * DELOAD_VOLUME_FACTOR + 0.5))
    original_load = entry.sets[0].target_load if entry.sets else None
    entry.sets = entry.sets[:keep]
    for s in entry.sets:
        if s.target_load is not None:
            s.target_load = round_to_step(s.target_load * DELOAD_INTENSITY_FACTOR)
        s.target_rpe = DELOAD_RPE_CAP
    entry.notes = f"{DELOAD_NOTE_PREFIX} {entry.notes}".strip()
    return DeloadTrigger(
        exercise_id=entry.exercise.exercise_id,
        original_sets=original_sets,
        adjusted_sets=keep,
        original_load=original_load,
        adjusted_load=entry.sets[0].target_load if entry.sets else None,
        adjusted_rpe=DELOAD_RPE_CAP,
        reason=reason,
    )


def _reduce_accessory(entry: WorkoutExercise, reason: str) -> VolumeReduction | None:
    original = len(entry.sets)
    cut = min(MAX_SETS_TO_DROP, original - MIN_SETS_PRESERVED)
    if cut <= 0:
        return None
    entry.sets = entry.sets[: original - cut]
    return VolumeReduction(
        exercise_id=entry.exercise.exercise_id,
        original_sets=original,
        adjusted_sets=original - cut,
        sets_cut=cut,
        reason=reason,
    )


_ACTION_TEXT: dict[str, str] = {
    "deload": "trigger deload (volume and intensity reduced)",
    "scale_down": "scale down intensity",
    "reduce_volume": "reduce accessory volume",
    "scale_up": "scale up intensity",
    "maintain": "maintain planned workout",
}


def autoregulate(
    plan: WorkoutPlan,
    signal: ReadinessSignal | None,
    now: datetime,
    policy: AutoregulationPolicy | None = None,
    deload_in_plan: bool = False,
) -> AutoregulationResult:
    """
    Apply readiness-based adjustments to *plan*.

    Args:
        plan: Generated plan (left untouched)
        signal: Latest readiness signal, or None
        now: Reference time for staleness
        policy: Autoregulation policy (defaults when None)
        deload_in_plan: The plan was already assembled as a deload session;
            a deload action then leaves it unchanged

    Returns:
        AutoregulationResult with the adjusted plan copy
    """
    policy = policy or AutoregulationPolicy()

    if signal is None:
        return AutoregulationResult(
            plan=plan,
            applied=False,
            action="maintain",
            rationale="No readiness signal available. Workout unchanged.",
        )

    age = signal_age(signal, now)
    age_hours = age.total_seconds() / 3600
    if not is_fresh(signal, now):
        logger.info("Readiness signal from %s is stale; skipping autoregulation", format_age(age))
        return AutoregulationResult(
            plan=plan,
            applied=False,
            action="maintain",
            rationale=f"Readiness signal is stale (signal from {format_age(age)}). Workout unchanged.",
            signal_age_hours=age_hours,
        )

    fatigue = compute_fatigue_score(signal)
    label = fatigue_label(fatigue.overall)
    header = f"Fatigue score {fatigue.overall * 100:.0f}% ({label})"

    if plan.autoregulated:
        return AutoregulationResult(
            plan=plan,
            applied=False,
            action="maintain",
            rationale=f"{header}. Plan already autoregulated; unchanged (signal from {format_age(age)}).",
            fatigue=fatigue,
            signal_age_hours=age_hours,
        )

    action = choose_action(fatigue.overall, policy)
    if action == "deload" and deload_in_plan:
        return AutoregulationResult(
            plan=plan,
            applied=False,
            action="maintain",
            rationale=f"{header}. Plan is already a deload session; unchanged (signal from {format_age(age)}).",
            fatigue=fatigue,
            signal_age_hours=age_hours,
        )
    if action == "maintain":
        return AutoregulationResult(
            plan=plan,
            applied=False,
            action=action,
            rationale=f"{header}. Action: {_ACTION_TEXT[action]} (signal from {format_age(age)}).",
            fatigue=fatigue,
            signal_age_hours=age_hours,
        )

    adjusted = copy.deepcopy(plan)
    reason = f"{header}: {_ACTION_TEXT[action]}"
    modifications: list[Modification] = []

    if action == "deload":
        for entry in adjusted.working_exercises():
            modifications.append(_deload_exercise(entry, reason))
        for entry in adjusted.warmup:
            for s in entry.sets:
                if s.target_load is not None:
                    s.target_load = round_to_step(s.target_load * DELOAD_INTENSITY_FACTOR)
    elif action == "reduce_volume":
        for entry in adjusted.accessories:
            mod = _reduce_accessory(entry, reason)
            if mod is not None:
                modifications.append(mod)
    else:
        factor, delta = (
            (SCALE_DOWN_FACTOR, SCALE_DOWN_RPE_DELTA)
            if action == "scale_down"
            else (SCALE_UP_FACTOR, SCALE_UP_RPE_DELTA)
        )
        for entry in adjusted.working_exercises():
            modifications.append(_scale_exercise(entry, factor, delta, reason))
        for entry in adjusted.warmup:
            for s in entry.sets:
                if s.target_load is not None:
                    s.target_load = round_to_step(s.target_load * factor)

    adjusted.autoregulated = True
    adjusted.estimated_minutes = estimate_minutes(adjusted)
    rationale = (
        f"{header}. Action: {_ACTION_TEXT[action]}. "
        f"{len(modifications)} exercises adjusted (signal from {format_age(age)})."
    )
    logger.info(rationale)
    return AutoregulationResult(
        plan=adjusted,
        applied=bool(modifications),
        action=action,
        rationale=rationale,
        modifications=modifications,
        fatigue=fatigue,
        signal_age_hours=age_hours,
    )
