"""
Selection optimizer: hard filters, candidate ordering, beam search and the
post-search stretch upgrade.
"""

import logging
from typing import Sequence

from ..errors import NoCompatibleExercisesError
from ..exercises.base import Exercise
from .beam_search import (
    BeamState,
    beam_search,
    build_result,
    enforce_min_exercises,
    enforce_structural_constraints,
    exceeds_ceiling,
    exceeds_time_budget,
    would_satisfy_structure,
)
from .candidate import build_candidate, merge_volume
from .rationale import overall_rationale
from .types import (
    RejectedCandidate,
    RejectionReason,
    SelectionCandidate,
    SelectionConstraints,
    SelectionObjective,
    SelectionResult,
)

logger = logging.getLogger(__name__)


def equipment_available(exercise: Exercise, available: set[str]) -> bool:
    """Every equipment tag must be available; bodyweight always is.  Empty set = unrestricted."""
    if not available:
        return True
    return all(tag == "bodyweight" or tag in available for tag in exercise.equipment)


def hard_filter_reason(exercise: Exercise, constraints: SelectionConstraints) -> RejectionReason | None:
    """First hard constraint the exercise violates, or None."""
    if exercise.exercise_id in constraints.pain_conflicts:
        return "pain_conflict"
    if exercise.exercise_id in constraints.user_avoids:
        return "user_avoided"
    if not equipment_available(exercise, constraints.available_equipment):
        return "equipment_unavailable"
    return None


def _candidate_order(candidate: SelectionCandidate) -> tuple:
    quality_tier = 0 if candidate.is_main_lift or candidate.scores["deficit_fill"] > 0 else 1
    return (
        quality_tier,
        0 if candidate.is_main_lift else 1,
        -candidate.exercise.length_position_score,
        -candidate.total_score,
        candidate.exercise_id,
    )


def seed_continuity(candidates: list[SelectionCandidate], objective: SelectionObjective) -> BeamState:
    """
    Start state holding the exercises carried over from the last session of
    the same intent, in candidate order.

    A carried-over exercise is left to the search when adding it would pass
    a volume ceiling or the time budget, or make the main-lift / accessory
    structure unreachable.
    """
    state = BeamState()
    for candidate in candidates:
        if candidate.exercise_id not in objective.continuity_exercise_ids:
            continue
        if len(state.selected) >= objective.constraints.max_exercises:
            break
        grown = state.extend(candidate)
        if exceeds_ceiling(grown.volume_filled, objective):
            continue
        if exceeds_time_budget(grown.seconds, objective):
            continue
        if not would_satisfy_structure(state, candidate, objective):
            continue
        state = grown
    if state.selected:
        logger.debug("Continuity seed: %s", ", ".join(c.exercise_id for c in state.selected))
    return state


def apply_stretch_upgrades(
    state: BeamState,
    candidates: list[SelectionCandidate],
    objective: SelectionObjective,
) -> tuple[BeamState, list[SelectionCandidate]]:
    """
    Swap selected isolation exercises for a same-pattern alternative that
    loads the muscle at a longer length.

    The alternative must share a movement pattern and a primary muscle, have
    a strictly higher lengthened-position score and at least the same SFR.
    Exercises carried over for continuity are never swapped.

    Returns:
        (new state, displaced candidates)
    """
    displaced: list[SelectionCandidate] = []
    selected = list(state.selected)

    for index, current in enumerate(list(selected)):
        ex = current.exercise
        if current.is_main_lift or ex.is_compound or ex.exercise_id in objective.continuity_exercise_ids:
            continue
        taken = {c.exercise_id for c in selected}
        alternatives = [
            alt
            for alt in candidates
            if alt.exercise_id not in taken
            and not alt.is_main_lift
            and set(alt.exercise.movement_patterns) & set(ex.movement_patterns)
            and set(alt.exercise.primary_muscles) & set(ex.primary_muscles)
            and alt.exercise.length_position_score > ex.length_position_score
            and alt.exercise.sfr_score >= ex.sfr_score
        ]
        if not alternatives:
            continue
        best = max(
            alternatives,
            key=lambda a: (a.exercise.length_position_score, a.total_score, a.exercise_id),
        )
        trial = [*selected[:index], best, *selected[index + 1:]]
        filled: dict[str, float] = {}
        for c in trial:
            filled = merge_volume(filled, c.volume_contribution)
        if exceeds_ceiling(filled, objective):
            continue
        logger.debug("Stretch upgrade: %s -> %s", ex.exercise_id, best.exercise_id)
        selected = trial
        displaced.append(current)

    if not displaced:
        return state, displaced
    rebuilt = BeamState()
    for c in selected:
        rebuilt = rebuilt.extend(c)
    return rebuilt, displaced


def select_exercises(
    objective: SelectionObjective,
    pool: Sequence[Exercise],
    intent: str = "",
) -> SelectionResult:
    """
    Choose the session's exercises and set counts.

    Raises:
        NoCompatibleExercisesError: If every exercise fails a hard constraint
    """
    hard_rejected: list[RejectedCandidate] = []
    eligible: list[Exercise] = []
    for exercise in pool:
        reason = hard_filter_reason(exercise, objective.constraints)
        if reason is None:
            eligible.append(exercise)
        else:
            hard_rejected.append(RejectedCandidate(exercise=exercise, reason=reason))

    if not eligible:
        raise NoCompatibleExercisesError(
            intent,
            {r.exercise.exercise_id: r.reason for r in hard_rejected},
        )

    candidates = sorted((build_candidate(e, objective) for e in eligible), key=_candidate_order)

    state, reasons = beam_search(candidates, objective, start=seed_continuity(candidates, objective))
    state = enforce_min_exercises(state, candidates, objective)
    state = enforce_structural_constraints(state, candidates, objective)
    state, displaced = apply_stretch_upgrades(state, candidates, objective)
    for candidate in displaced:
        reasons[candidate.exercise_id] = "dominated_by_better_option"

    result = build_result(state, candidates, objective, reasons, hard_rejected)
    result.rationale = overall_rationale(result, objective)
    if not result.constraints_satisfied:
        logger.info(
            "Selection for %s could not satisfy every constraint (%d exercises, deficit %s)",
            intent or "session",
            len(result.selected),
            result.volume_deficit,
        )
    return result
