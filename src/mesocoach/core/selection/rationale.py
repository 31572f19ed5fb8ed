"""Human-readable selection rationale and the collaborator-facing SelectionOutput."""

from .candidate import effective_sets
from .types import (
    ExerciseRationale,
    MuscleVolumePlan,
    SelectionCandidate,
    SelectionObjective,
    SelectionOutput,
    SelectionResult,
    SelectionStep,
)

_COMPONENT_LABELS: dict[str, str] = {
    "deficit_fill": "volume deficit fill",
    "rotation_novelty": "rotation novelty",
    "lengthened_bias": "lengthened-position bias",
    "sfr_efficiency": "stimulus-to-fatigue efficiency",
    "movement_diversity": "movement diversity",
    "sra_readiness": "recovery readiness",
    "user_preference": "user preference",
}


def _fmt(value: float) -> str:
    return f"{value:g}" if value == int(value) else f"{value:.1f}"


def exercise_reason(candidate: SelectionCandidate, objective: SelectionObjective) -> str:
    """One line explaining why *candidate* scored the way it did."""
    s = candidate.scores
    ex = candidate.exercise
    parts: list[str] = []
    if s["deficit_fill"] > 0:
        parts.append(f"Fills volume gap ({s['deficit_fill'] * 100:.0f}% of deficit)")
    if s["rotation_novelty"] >= 1.0:
        parts.append("Haven't used this exercise recently")
    if ex.sfr_score >= 4:
        parts.append(f"High stimulus-to-fatigue ratio ({ex.sfr_score}/5)")
    if ex.length_position_score >= 4:
        parts.append(f"Loads muscle at long length (score {ex.length_position_score}/5)")
    if ex.exercise_id in objective.continuity_exercise_ids:
        parts.append("Carried over from the last session of this type")
    elif s["user_preference"] >= 1.0:
        parts.append("User marked as favorite")

    contributions = []
    for muscle, c in candidate.volume_contribution.items():
        if c.direct > 0:
            contributions.append(f"{_fmt(c.direct)} sets {muscle}")
        elif c.indirect > 0:
            contributions.append(f"{effective_sets(c):.1f} indirect {muscle}")
    if contributions:
        parts.append("Contributes: " + ", ".join(contributions))
    return "; ".join(parts)


def overall_rationale(result: SelectionResult, objective: SelectionObjective) -> str:
    """Summary line: exercise count and the three heaviest scoring priorities."""
    top = sorted(objective.weights.items(), key=lambda kv: kv[1], reverse=True)[:3]
    priorities = ", ".join(f"{_COMPONENT_LABELS[name]} ({weight * 100:.0f}%)" for name, weight in top)
    text = f"{len(result.selected)} exercises selected. Prioritizing: {priorities}."
    if result.volume_deficit:
        short = ", ".join(f"{m} {d:.1f}" for m, d in sorted(result.volume_deficit.items()))
        text += f" Remaining weekly deficit: {short}."
    return text


def _selection_step(
    candidate: SelectionCandidate,
    objective: SelectionObjective,
    anchor_id: str | None,
) -> SelectionStep:
    if candidate.exercise_id in objective.continuity_exercise_ids:
        return "pin"
    if candidate.exercise_id == anchor_id:
        return "anchor"
    return "main_pick" if candidate.is_main_lift else "accessory_pick"


def map_selection_result(result: SelectionResult, objective: SelectionObjective) -> SelectionOutput:
    """
    Convert an optimizer result into the collaborator-facing SelectionOutput.

    Main lifts are listed first, each group by descending score.  The
    highest-scoring main lift not carried over for continuity is the anchor.
    """
    ordered = sorted(result.selected, key=lambda c: (not c.is_main_lift, -c.total_score, c.exercise_id))
    mains = [c for c in ordered if c.is_main_lift]
    anchor = next((c.exercise_id for c in mains if c.exercise_id not in objective.continuity_exercise_ids), None)

    rationale = {
        c.exercise_id: ExerciseRationale(
            score=round(c.total_score, 4),
            components={k: round(v, 4) for k, v in c.scores.items()},
            hard_filter_pass=True,
            selected_step=_selection_step(c, objective, anchor),
            reason=exercise_reason(c, objective),
        )
        for c in ordered
    }

    context = objective.volume_context
    volume_plan: dict[str, MuscleVolumePlan] = {}
    for muscle, target in context.weekly_target.items():
        planned = context.effective_actual.get(muscle, 0.0) + result.volume_filled.get(muscle, 0.0)
        volume_plan[muscle] = MuscleVolumePlan(
            target=target,
            planned=round(planned, 2),
            delta=round(planned - target, 2),
        )

    return SelectionOutput(
        selected_exercise_ids=[c.exercise_id for c in ordered],
        main_lift_ids=[c.exercise_id for c in mains],
        accessory_ids=[c.exercise_id for c in ordered if not c.is_main_lift],
        per_exercise_set_targets={c.exercise_id: c.proposed_sets for c in ordered},
        rationale=rationale,
        volume_plan_by_muscle=volume_plan,
        rejected={r.exercise.exercise_id: r.reason for r in result.rejected},
        strategy=result.rationale,
        constraints_satisfied=result.constraints_satisfied,
    )
