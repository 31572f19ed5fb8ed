"""
Selection objective builder.

Turns the trainee context, the block week and recent history into one
SelectionObjective: hard constraints, scoring weights and the volume,
rotation and recovery context the candidate scores are computed from.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Sequence

from ..config import (
    CONTINUITY_PREFERENCE_WEIGHT_CEILING,
    CONTINUITY_ROTATION_WEIGHT_FLOOR,
    CONTINUITY_SET_INCREMENT_PER_WEEK,
    MAX_DIRECT_SETS_PER_EXERCISE,
    MAX_EXERCISES,
    MAX_EXERCISES_TEMPLATE,
    MAX_MAIN_LIFTS,
    MIN_ACCESSORIES,
    MIN_EXERCISES,
    MIN_MAIN_LIFTS,
    PAIN_SEVERITY_THRESHOLD,
    VolumeLandmark,
)
from ..engine.config_loader import (
    ModelConfig,
    resolve_landmark_overrides,
    resolve_selection_weights,
)
from ..exercises.base import Exercise
from ..exposure import ExerciseExposure
from ..intent import intent_muscles
from ..landmarks import lookup_landmark, normalize_muscle
from ..lifecycle import current_week
from ..models import (
    Constraints,
    Goals,
    Preferences,
    TrainingBlock,
    UserProfile,
    WorkoutHistoryEntry,
)
from ..volume import WeeklyVolume, build_volume_context
from .types import SelectionConstraints, SelectionObjective, SelectionPreferences

logger = logging.getLogger(__name__)


@dataclass
class ContinuitySignal:
    """Exercises and set floors carried over from the last same-intent session."""

    source_workout_id: str | None = None
    source_date: str | None = None
    exercise_ids: list[str] = field(default_factory=list)
    min_sets: dict[str, int] = field(default_factory=dict)

    @property
    def exists(self) -> bool:
        return bool(self.exercise_ids)


def pain_conflicts(
    exercises: Iterable[Exercise],
    pain_flags: dict[str, int],
    injuries: Iterable[str] = (),
) -> set[str]:
    """
    Ids of exercises contraindicated by current pain or standing injuries.

    Pain flags count at severity ≥ 2.  Body parts are compared
    case-insensitively against each exercise's contraindication tags.
    """
    flagged = {
        normalize_muscle(part) for part, severity in pain_flags.items()
        if severity >= PAIN_SEVERITY_THRESHOLD
    }
    flagged.update(normalize_muscle(part) for part in injuries)
    if not flagged:
        return set()
    return {
        e.exercise_id
        for e in exercises
        if any(normalize_muscle(tag) in flagged for tag in e.contraindications)
    }


def demoted_main_lifts(exercises: Iterable[Exercise], goals: Goals) -> set[str]:
    """Bodyweight-only lifts with no weighted variant cannot anchor a strength session."""
    if not goals.is_strength_focused:
        return set()
    return {
        e.exercise_id
        for e in exercises
        if e.is_main_lift_eligible and e.is_bodyweight_only and not e.has_weighted_variant
    }


def find_continuity_source(
    history: Sequence[WorkoutHistoryEntry],
    intent: str,
    as_of: str,
) -> WorkoutHistoryEntry | None:
    """Most recent performed session with the same intent, on or before *as_of*."""
    latest: WorkoutHistoryEntry | None = None
    for entry in history:
        if not entry.is_performed or entry.intent != intent or entry.date > as_of:
            continue
        # Later entries win date ties: history is kept in logging order
        if latest is None or entry.date >= latest.date:
            latest = entry
    return latest


def build_continuity_signal(
    history: Sequence[WorkoutHistoryEntry],
    intent: str,
    as_of: str,
    week: int,
    is_deload: bool,
) -> ContinuitySignal:
    """
    Carry the last same-intent session forward.

    Each of its exercises becomes a favorite with a minimum set count equal
    to the sets performed last time, plus one set per elapsed accumulation
    week beyond week 1, capped at MAX_DIRECT_SETS_PER_EXERCISE.  Deload
    weeks carry the exercises but not the set floors.
    """
    source = find_continuity_source(history, intent, as_of)
    if source is None:
        return ContinuitySignal()

    increment = 0
    if not is_deload and week > 1:
        increment = (week - 1) * CONTINUITY_SET_INCREMENT_PER_WEEK

    signal = ContinuitySignal(source_workout_id=source.workout_id or None, source_date=source.date)
    for performed in source.exercises:
        if performed.exercise_id in signal.exercise_ids:
            continue
        signal.exercise_ids.append(performed.exercise_id)
        done = sum(1 for s in performed.sets if not s.skipped)
        if is_deload or done <= 0:
            continue
        signal.min_sets[performed.exercise_id] = min(MAX_DIRECT_SETS_PER_EXERCISE, done + increment)
    return signal


def shift_weights_for_continuity(weights: dict[str, float]) -> dict[str, float]:
    """
    Move weight from rotation novelty to user preference.

    Preference rises toward 0.35 and rotation novelty falls to no less than
    0.01; the total is unchanged.
    """
    shifted = dict(weights)
    rotation = shifted["rotation_novelty"]
    preference = shifted["user_preference"]
    transfer = min(
        rotation - CONTINUITY_ROTATION_WEIGHT_FLOOR,
        CONTINUITY_PREFERENCE_WEIGHT_CEILING - preference,
    )
    if transfer > 0:
        shifted["rotation_novelty"] = rotation - transfer
        shifted["user_preference"] = preference + transfer
    return shifted


def build_sra_context(
    muscles: Iterable[str],
    exposure: dict[str, ExerciseExposure],
    library: dict[str, Exercise],
    landmarks: dict[str, VolumeLandmark],
    now: datetime,
) -> dict[str, float]:
    """
    Recovery fraction per muscle: hours since it was last trained as a
    primary mover, over its SRA window, capped at 1.0.

    Muscles with no recorded exposure are omitted (scored as recovered).
    """
    last_trained: dict[str, str] = {}
    for item in exposure.values():
        exercise = library.get(item.exercise_id)
        if exercise is None:
            continue
        for muscle in exercise.primary_muscles:
            if item.last_used > last_trained.get(muscle, ""):
                last_trained[muscle] = item.last_used

    context: dict[str, float] = {}
    for muscle in muscles:
        if muscle not in last_trained:
            continue
        trained_at = datetime.strptime(last_trained[muscle], "%Y-%m-%d")
        hours = max(0.0, (now - trained_at).total_seconds() / 3600)
        window = landmarks[muscle].sra_hours if muscle in landmarks else 48
        context[muscle] = min(1.0, hours / window)
    return context


def build_selection_objective(
    *,
    pool: Sequence[Exercise],
    library: dict[str, Exercise],
    intent: str,
    profile: UserProfile,
    goals: Goals,
    constraints: Constraints,
    preferences: Preferences,
    history: Sequence[WorkoutHistoryEntry],
    weekly_volume: WeeklyVolume,
    exposure: dict[str, ExerciseExposure],
    block: TrainingBlock | None,
    as_of: str,
    now: datetime,
    pain_flags: dict[str, int] | None = None,
    target_muscles: Sequence[str] = (),
    weight_overrides: dict[str, float] | None = None,
    template_context: bool = False,
    config: ModelConfig | None = None,
) -> SelectionObjective:
    """
    Assemble the selection objective for one generation call.

    Args:
        pool: Intent-aligned exercises the optimizer may choose from
        library: Full exercise lookup (history may reference exercises
            outside the pool)
        weekly_volume: Sets already performed in the current block week
        as_of: Session date (YYYY-MM-DD)
        now: Generation time, used for SRA recovery fractions
        template_context: Raises the exercise ceiling from 6 to 8

    Returns:
        SelectionObjective ready for select_exercises()
    """
    week = current_week(block) if block is not None else 1
    is_deload = block is not None and block.state != "accumulating"

    muscles = [normalize_muscle(m) for m in intent_muscles(intent, target_muscles)]
    overrides = resolve_landmark_overrides(config)
    landmarks = {m: lookup_landmark(m, overrides) for m in muscles}
    volume_context = build_volume_context(
        weekly_volume,
        muscles,
        landmarks,
        week,
        is_deload,
        block.volume_ramp_step if block is not None else None,
    )

    continuity = build_continuity_signal(history, intent, as_of, week, is_deload)
    weights = resolve_selection_weights(weight_overrides, config)
    if continuity.exists:
        weights = shift_weights_for_continuity(weights)
        logger.debug(
            "Continuity from %s (%s): %s",
            continuity.source_workout_id,
            continuity.source_date,
            ", ".join(continuity.exercise_ids),
        )

    selection_constraints = SelectionConstraints(
        volume_floor=dict(volume_context.weekly_target),
        volume_ceiling={m: landmarks[m].mrv for m in muscles},
        pain_conflicts=pain_conflicts(pool, pain_flags or {}, profile.injuries),
        user_avoids=set(preferences.avoid_exercise_ids),
        available_equipment=set(constraints.available_equipment),
        min_exercises=MIN_EXERCISES,
        max_exercises=MAX_EXERCISES_TEMPLATE if template_context else MAX_EXERCISES,
        min_main_lifts=0 if intent == "body_part" else MIN_MAIN_LIFTS,
        max_main_lifts=MAX_MAIN_LIFTS,
        min_accessories=MIN_ACCESSORIES,
        demoted_from_main_lift=demoted_main_lifts(pool, goals),
        continuity_min_sets=dict(continuity.min_sets),
        time_budget_seconds=constraints.session_minutes * 60,
    )

    return SelectionObjective(
        constraints=selection_constraints,
        weights=weights,
        volume_context=volume_context,
        rotation_context=exposure,
        sra_context=build_sra_context(muscles, exposure, library, landmarks, now),
        preferences=SelectionPreferences(
            favorite_exercise_ids=set(preferences.favorite_exercise_ids) | set(continuity.exercise_ids),
            avoid_exercise_ids=set(preferences.avoid_exercise_ids),
        ),
        landmarks=landmarks,
        training_age=profile.training_age,
        continuity_source=continuity.source_workout_id,
        continuity_exercise_ids=set(continuity.exercise_ids),
    )
