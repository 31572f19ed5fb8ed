"""
Candidate construction and scoring.

Each of the seven sub-scores is a 0-1 value; the total is their weighted
sum under the objective's weights.
"""

import math
from typing import Iterable

from ..config import (
    DEFAULT_PROPOSED_SETS,
    INDIRECT_SET_MULTIPLIER,
    MAX_DIRECT_SETS_PER_EXERCISE,
    MAX_PROPOSED_SETS_BY_TRAINING_AGE,
    MIN_PROPOSED_SETS,
    REST_SECONDS,
    ROTATION_TARGET_CADENCE_WEEKS,
    SELECTION_REPS_ESTIMATE,
    WORK_SECONDS_BASE,
    WORK_SECONDS_PER_REP,
)
from ..exercises.base import Exercise
from .types import SelectionCandidate, SelectionObjective, VolumeContribution


def volume_contribution(exercise: Exercise, sets: int) -> dict[str, VolumeContribution]:
    """Direct sets for primary muscles, indirect sets for secondary muscles."""
    contribution: dict[str, VolumeContribution] = {}
    for muscle in exercise.primary_muscles:
        contribution.setdefault(muscle, VolumeContribution()).direct += sets
    for muscle in exercise.secondary_muscles:
        contribution.setdefault(muscle, VolumeContribution()).indirect += sets
    return contribution


def effective_sets(contribution: VolumeContribution) -> float:
    return contribution.direct + contribution.indirect * INDIRECT_SET_MULTIPLIER


def merge_volume(
    filled: dict[str, float],
    contribution: dict[str, VolumeContribution],
) -> dict[str, float]:
    """Return *filled* plus the effective sets of *contribution* (non-destructive)."""
    merged = dict(filled)
    for muscle, c in contribution.items():
        merged[muscle] = merged.get(muscle, 0.0) + effective_sets(c)
    return merged


def compute_proposed_sets(exercise: Exercise, objective: SelectionObjective) -> int:
    """
    Working sets to propose from the remaining deficit of the exercise's
    primary muscles.

    No deficit → 3 sets.  Otherwise half the largest deficit (rounded up),
    clamped to [2, training-age maximum].  Never above 12.
    """
    context = objective.volume_context
    max_deficit = max((context.deficit(m) for m in exercise.primary_muscles), default=0.0)
    if max_deficit <= 0:
        proposed = DEFAULT_PROPOSED_SETS
    else:
        ceiling = MAX_PROPOSED_SETS_BY_TRAINING_AGE.get(objective.training_age, 5)
        proposed = max(MIN_PROPOSED_SETS, min(ceiling, math.ceil(max_deficit / 2)))
    return min(MAX_DIRECT_SETS_PER_EXERCISE, proposed)


def estimate_working_seconds(sets: int, is_main_lift: bool) -> int:
    """Work plus rest for *sets* working sets at the role's assumed rep count."""
    role = "main" if is_main_lift else "accessory"
    per_set = SELECTION_REPS_ESTIMATE[role] * WORK_SECONDS_PER_REP + WORK_SECONDS_BASE + REST_SECONDS[role]
    return sets * per_set


# =============================================================================
# SUB-SCORES
# =============================================================================


def score_deficit_fill(
    contribution: dict[str, VolumeContribution],
    objective: SelectionObjective,
) -> float:
    """Share of the exercise's muscles' combined deficit this exercise would cover."""
    covered = 0.0
    total_deficit = 0.0
    for muscle, c in contribution.items():
        deficit = objective.volume_context.deficit(muscle)
        if deficit <= 0:
            continue
        total_deficit += deficit
        covered += min(effective_sets(c), deficit)
    return covered / total_deficit if total_deficit > 0 else 0.0


def score_rotation_novelty(exercise: Exercise, objective: SelectionObjective) -> float:
    """1.0 if never used, otherwise weeks since last use over a 3-week cadence."""
    exposure = objective.rotation_context.get(exercise.name)
    if exposure is None:
        return 1.0
    return min(1.0, exposure.weeks_ago / ROTATION_TARGET_CADENCE_WEEKS)


def score_sfr(exercise: Exercise) -> float:
    return exercise.sfr_score / 5


def score_lengthened(exercise: Exercise) -> float:
    return exercise.length_position_score / 5


def score_movement_novelty(exercise: Exercise, already_selected: Iterable[Exercise] = ()) -> float:
    """
    Fraction of the exercise's movement patterns not covered by
    *already_selected*.

    Candidates are scored once, before the search, against an empty
    selection, so every patterned exercise scores 1.0 and the
    movement_diversity weight acts as a flat bonus over pattern-less
    exercises (0.5).  Pattern overlap between picks is left to the
    deficit and ceiling terms.
    """
    if not exercise.movement_patterns:
        return 0.5
    covered = {p for e in already_selected for p in e.movement_patterns}
    if not covered:
        return 1.0
    novel = sum(1 for p in exercise.movement_patterns if p not in covered)
    return novel / len(exercise.movement_patterns)


def score_sra(exercise: Exercise, objective: SelectionObjective) -> float:
    if not exercise.primary_muscles:
        return 1.0
    values = [objective.sra_context.get(m, 1.0) for m in exercise.primary_muscles]
    return sum(values) / len(values)


def score_user_preference(exercise: Exercise, objective: SelectionObjective) -> float:
    prefs = objective.preferences
    if exercise.exercise_id in prefs.avoid_exercise_ids:
        return 0.0
    if exercise.exercise_id in prefs.favorite_exercise_ids:
        return 1.0
    return 0.5


def build_candidate(exercise: Exercise, objective: SelectionObjective) -> SelectionCandidate:
    """
    Score one hard-filter-passing exercise.

    Set count is the larger of the continuity floor and the deficit-based
    proposal.
    """
    floor = objective.constraints.continuity_min_sets.get(exercise.exercise_id, 0)
    sets = max(floor, compute_proposed_sets(exercise, objective))
    contribution = volume_contribution(exercise, sets)

    scores = {
        "deficit_fill": score_deficit_fill(contribution, objective),
        "rotation_novelty": score_rotation_novelty(exercise, objective),
        "lengthened_bias": score_lengthened(exercise),
        "sfr_efficiency": score_sfr(exercise),
        "movement_diversity": score_movement_novelty(exercise),
        "sra_readiness": score_sra(exercise, objective),
        "user_preference": score_user_preference(exercise, objective),
    }
    total = sum(objective.weights.get(name, 0.0) * value for name, value in scores.items())

    is_main_lift = (
        exercise.is_main_lift_eligible
        and exercise.exercise_id not in objective.constraints.demoted_from_main_lift
    )
    return SelectionCandidate(
        exercise=exercise,
        proposed_sets=sets,
        volume_contribution=contribution,
        scores=scores,
        total_score=total,
        is_main_lift=is_main_lift,
        estimated_seconds=estimate_working_seconds(sets, is_main_lift),
    )
