"""
Workout assembly: turn a selection and per-exercise progression decisions
into ordered, loaded sets.
"""

import math

from .config import (
    BACK_OFF_MULTIPLIER,
    DELOAD_VOLUME_FRACTION,
    REST_SECONDS,
    WARMUP_RAMP,
    WARMUP_RAMP_BEGINNER,
    WORK_SECONDS_BASE,
    WORK_SECONDS_PER_REP,
    RirBand,
)
from .engine.config_loader import resolve_rep_range, resolve_target_rpe
from .exercises.base import Exercise
from .metrics import round_to_step
from .models import Goals, UserProfile, WorkoutExercise, WorkoutPlan, WorkoutSet
from .progression import ProgressionDecision
from .selection.types import SelectionOutput


def deload_set_count(sets: int) -> int:
    """45% of the planned sets, rounded half up, at least one."""
    return max(1, int(sets * DELOAD_VOLUME_FRACTION + 0.5))


def warmup_sets(top_load: float, training_age: str) -> list[WorkoutSet]:
    """Ramp-up sets before the first main lift; none for unloaded work."""
    if top_load <= 0:
        return []
    ramp = WARMUP_RAMP_BEGINNER if training_age == "beginner" else WARMUP_RAMP
    return [
        WorkoutSet(
            set_index=i,
            target_reps=reps,
            target_load=round_to_step(top_load * fraction),
            rest_seconds=REST_SECONDS["warmup"],
            role="warmup",
        )
        for i, (fraction, reps) in enumerate(ramp, start=1)
    ]


def working_sets(
    count: int,
    decision: ProgressionDecision,
    rep_range: tuple[int, int],
    target_rpe: float,
    is_main_lift: bool,
) -> list[WorkoutSet]:
    """
    Working sets for one exercise.

    Main lifts: one top set at the decided load, then back-off sets at 90%.
    Accessories: straight sets at the decided load.
    """
    role = "main" if is_main_lift else "accessory"
    sets: list[WorkoutSet] = []
    for i in range(1, count + 1):
        back_off = is_main_lift and i > 1 and decision.next_load > 0
        load = round_to_step(decision.next_load * BACK_OFF_MULTIPLIER) if back_off else decision.next_load
        sets.append(
            WorkoutSet(
                set_index=i,
                target_reps=decision.target_reps,
                target_rep_range=rep_range,
                target_rpe=target_rpe,
                target_load=load,
                rest_seconds=REST_SECONDS[role],
                role=role,
                is_back_off=back_off,
            )
        )
    return sets


def estimate_minutes(plan: WorkoutPlan) -> int:
    """(reps × 2 s + 10 s) of work plus rest for every set, rounded up to minutes."""
    seconds = 0
    for entry in [*plan.warmup, *plan.working_exercises()]:
        for s in entry.sets:
            seconds += s.target_reps * WORK_SECONDS_PER_REP + WORK_SECONDS_BASE + s.rest_seconds
    return math.ceil(seconds / 60)


def build_workout_plan(
    *,
    workout_id: str,
    scheduled_date: str,
    intent: str,
    selection: SelectionOutput,
    library: dict[str, Exercise],
    decisions: dict[str, ProgressionDecision],
    profile: UserProfile,
    goals: Goals,
    rir_band: RirBand | None,
    is_deload: bool = False,
    trim_accessories: bool = False,
) -> WorkoutPlan:
    """
    Assemble the WorkoutPlan.

    Args:
        rir_band: Block RIR band for the week (None without a block)
        is_deload: Caps target RPE at 6
        trim_accessories: Cut accessory sets to 45% (scheduled deload)
    """
    plan = WorkoutPlan(workout_id=workout_id, scheduled_date=scheduled_date, intent=intent)
    main_ids = set(selection.main_lift_ids)

    for order, exercise_id in enumerate(selection.selected_exercise_ids):
        exercise = library[exercise_id]
        decision = decisions[exercise_id]
        is_main = exercise_id in main_ids
        rep_range = resolve_rep_range(exercise, goals.primary, is_main)
        target_rpe = resolve_target_rpe(goals.primary, rir_band, is_deload)

        count = selection.per_exercise_set_targets[exercise_id]
        if trim_accessories and not is_main:
            count = deload_set_count(count)

        entry = WorkoutExercise(
            exercise=exercise,
            order_index=order,
            is_main_lift=is_main,
            role="main" if is_main else "accessory",
            sets=working_sets(count, decision, rep_range, target_rpe, is_main),
            notes=decision.decision_trace[-1] if decision.decision_trace else "",
        )
        (plan.main_lifts if is_main else plan.accessories).append(entry)

    if plan.main_lifts:
        first = plan.main_lifts[0]
        ramp = warmup_sets(first.sets[0].target_load or 0.0, profile.training_age)
        if ramp:
            plan.warmup.append(
                WorkoutExercise(
                    exercise=first.exercise,
                    order_index=0,
                    is_main_lift=True,
                    role="warmup",
                    sets=ramp,
                    notes="Ramp to the first working set",
                )
            )

    if is_deload:
        plan.notes = "Deload week: reduced volume, RPE capped at 6."
    plan.estimated_minutes = estimate_minutes(plan)
    return plan
