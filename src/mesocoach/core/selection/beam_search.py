"""
Beam search over exercise subsets.

Keeps the best BEAM_WIDTH partial selections, grows each by one candidate
per step and prunes back to the best.  The search is bounded by
BEAM_MAX_DEPTH and always terminates.  Greedy repair passes then enforce
the minimum exercise count and the main-lift / accessory structure; those
passes may go over the session time budget, which only bounds the search.
"""

from dataclasses import dataclass, field

from ..config import BEAM_MAX_DEPTH, BEAM_WIDTH
from .candidate import merge_volume
from .types import (
    RejectedCandidate,
    RejectionReason,
    SelectionCandidate,
    SelectionObjective,
    SelectionResult,
)


@dataclass
class BeamState:
    selected: list[SelectionCandidate] = field(default_factory=list)
    score: float = 0.0
    volume_filled: dict[str, float] = field(default_factory=dict)
    seconds: int = 0

    @property
    def main_lift_count(self) -> int:
        return sum(1 for c in self.selected if c.is_main_lift)

    @property
    def accessory_count(self) -> int:
        return sum(1 for c in self.selected if not c.is_main_lift)

    def ids(self) -> set[str]:
        return {c.exercise_id for c in self.selected}

    def extend(self, candidate: SelectionCandidate) -> "BeamState":
        return BeamState(
            selected=[*self.selected, candidate],
            score=self.score + candidate.total_score,
            volume_filled=merge_volume(self.volume_filled, candidate.volume_contribution),
            seconds=self.seconds + candidate.estimated_seconds,
        )


def exceeds_ceiling(volume_filled: dict[str, float], objective: SelectionObjective) -> bool:
    """True if weekly effective volume plus this session's would pass MRV for any muscle."""
    ceilings = objective.constraints.volume_ceiling
    actual = objective.volume_context.effective_actual
    return any(
        actual.get(muscle, 0.0) + sets > ceilings[muscle]
        for muscle, sets in volume_filled.items()
        if muscle in ceilings
    )


def exceeds_time_budget(seconds: int, objective: SelectionObjective) -> bool:
    budget = objective.constraints.time_budget_seconds
    return budget is not None and seconds > budget


def would_satisfy_structure(
    state: BeamState,
    candidate: SelectionCandidate,
    objective: SelectionObjective,
) -> bool:
    """
    Whether adding *candidate* keeps the main-lift / accessory structure
    reachable within the remaining exercise slots.
    """
    c = objective.constraints
    main = state.main_lift_count + (1 if candidate.is_main_lift else 0)
    accessories = state.accessory_count + (0 if candidate.is_main_lift else 1)
    if main > c.max_main_lifts:
        return False

    size = len(state.selected) + 1
    if size >= c.min_exercises:
        remaining = c.max_exercises - size
        needed = max(0, c.min_main_lifts - main) + max(0, c.min_accessories - accessories)
        if remaining < needed:
            return False
    return True


def _state_key(state: BeamState) -> tuple[float, tuple[str, ...]]:
    return (-state.score, tuple(sorted(state.ids())))


def beam_search(
    candidates: list[SelectionCandidate],
    objective: SelectionObjective,
    beam_width: int = BEAM_WIDTH,
    max_depth: int = BEAM_MAX_DEPTH,
    start: BeamState | None = None,
) -> tuple[BeamState, dict[str, RejectionReason]]:
    """
    Run the bounded search, growing every state from *start* (empty by default).

    Returns:
        (best state, {exercise_id: first rejection reason recorded})
    """
    max_exercises = objective.constraints.max_exercises
    beam = [start if start is not None else BeamState()]
    reasons: dict[str, RejectionReason] = {}

    for _ in range(max_depth):
        expansions: dict[frozenset[str], BeamState] = {}
        for state in beam:
            if len(state.selected) >= max_exercises:
                continue
            chosen = state.ids()
            for candidate in candidates:
                if candidate.exercise_id in chosen:
                    continue
                grown = state.extend(candidate)
                if exceeds_ceiling(grown.volume_filled, objective):
                    reasons.setdefault(candidate.exercise_id, "volume_ceiling_reached")
                    continue
                if exceeds_time_budget(grown.seconds, objective):
                    reasons.setdefault(candidate.exercise_id, "time_budget_exceeded")
                    continue
                if not would_satisfy_structure(state, candidate, objective):
                    reasons.setdefault(candidate.exercise_id, "structure_constraint_violated")
                    continue
                # Same subset reached in a different order
                expansions.setdefault(frozenset(grown.ids()), grown)

        if not expansions:
            break
        beam = sorted(expansions.values(), key=_state_key)[:beam_width]

    return min(beam, key=_state_key), reasons


def _best_unselected(
    state: BeamState,
    candidates: list[SelectionCandidate],
    objective: SelectionObjective,
    main_lift: bool | None = None,
) -> SelectionCandidate | None:
    chosen = state.ids()
    for candidate in candidates:  # sorted best-first
        if candidate.exercise_id in chosen:
            continue
        if main_lift is not None and candidate.is_main_lift != main_lift:
            continue
        if candidate.is_main_lift and state.main_lift_count >= objective.constraints.max_main_lifts:
            continue
        if exceeds_ceiling(merge_volume(state.volume_filled, candidate.volume_contribution), objective):
            continue
        return candidate
    return None


def enforce_min_exercises(
    state: BeamState,
    candidates: list[SelectionCandidate],
    objective: SelectionObjective,
) -> BeamState:
    """Greedily add the best remaining candidates until the minimum count is met."""
    while len(state.selected) < objective.constraints.min_exercises:
        candidate = _best_unselected(state, candidates, objective)
        if candidate is None:
            break
        state = state.extend(candidate)
    return state


def _rebuild(selected: list[SelectionCandidate]) -> BeamState:
    state = BeamState()
    for candidate in selected:
        state = state.extend(candidate)
    return state


def _try_swap_for_main_lift(
    state: BeamState,
    main: SelectionCandidate,
    objective: SelectionObjective,
) -> BeamState | None:
    """Drop the lowest-scoring accessories one at a time until *main* fits."""
    c = objective.constraints
    accessories = sorted(
        (x for x in state.selected if not x.is_main_lift),
        key=lambda x: x.total_score,
    )
    kept = list(state.selected)
    for accessory in accessories:
        kept.remove(accessory)
        trial = _rebuild(kept)
        if len(trial.selected) < c.max_exercises and not exceeds_ceiling(
            merge_volume(trial.volume_filled, main.volume_contribution), objective
        ):
            return trial.extend(main)
    return None


def enforce_structural_constraints(
    state: BeamState,
    candidates: list[SelectionCandidate],
    objective: SelectionObjective,
) -> BeamState:
    """Add main lifts, then accessories, until the structural minimums hold."""
    c = objective.constraints

    while state.main_lift_count < c.min_main_lifts:
        main = _best_unselected(state, candidates, objective, main_lift=True)
        if main is None:
            break
        if len(state.selected) < c.max_exercises:
            state = state.extend(main)
            continue
        swapped = _try_swap_for_main_lift(state, main, objective)
        if swapped is None:
            break
        state = swapped

    while state.accessory_count < c.min_accessories and len(state.selected) < c.max_exercises:
        accessory = _best_unselected(state, candidates, objective, main_lift=False)
        if accessory is None:
            break
        state = state.extend(accessory)

    return state


def structure_satisfied(state: BeamState, objective: SelectionObjective) -> bool:
    c = objective.constraints
    return (
        c.min_exercises <= len(state.selected) <= c.max_exercises
        and c.min_main_lifts <= state.main_lift_count <= c.max_main_lifts
        and state.accessory_count >= c.min_accessories
    )


def build_result(
    state: BeamState,
    candidates: list[SelectionCandidate],
    objective: SelectionObjective,
    reasons: dict[str, RejectionReason],
    hard_rejected: list[RejectedCandidate],
) -> SelectionResult:
    """Package the final state; unselected candidates keep their recorded reason."""
    chosen = state.ids()
    rejected = list(hard_rejected)
    for candidate in candidates:
        if candidate.exercise_id not in chosen:
            rejected.append(
                RejectedCandidate(
                    exercise=candidate.exercise,
                    reason=reasons.get(candidate.exercise_id, "dominated_by_better_option"),
                )
            )

    context = objective.volume_context
    deficit: dict[str, float] = {}
    for muscle, target in context.weekly_target.items():
        remaining = target - context.effective_actual.get(muscle, 0.0) - state.volume_filled.get(muscle, 0.0)
        if remaining > 0:
            deficit[muscle] = remaining

    c = objective.constraints
    floors_met = all(
        context.effective_actual.get(m, 0.0) + state.volume_filled.get(m, 0.0) >= target
        for m, target in c.volume_floor.items()
    )
    return SelectionResult(
        selected=list(state.selected),
        rejected=rejected,
        volume_filled=dict(state.volume_filled),
        volume_deficit=deficit,
        constraints_satisfied=(
            len(state.selected) >= c.min_exercises and floors_met and structure_satisfied(state, objective)
        ),
    )
