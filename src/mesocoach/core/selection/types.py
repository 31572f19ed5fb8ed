"""
Types shared by the selection objective builder and the optimizer.

A SelectionObjective is built fresh for every generation call and is not
persisted.  Candidates live for one optimizer run.
"""

from dataclasses import dataclass, field
from typing import Literal

from ..config import VolumeLandmark
from ..exercises.base import Exercise
from ..exposure import ExerciseExposure
from ..volume import VolumeContext

RejectionReason = Literal[
    "pain_conflict",
    "user_avoided",
    "equipment_unavailable",
    "volume_ceiling_reached",
    "structure_constraint_violated",
    "time_budget_exceeded",
    "dominated_by_better_option",
]

SelectionStep = Literal["pin", "anchor", "main_pick", "accessory_pick"]

SCORE_COMPONENTS: tuple[str, ...] = (
    "deficit_fill",
    "rotation_novelty",
    "lengthened_bias",
    "sfr_efficiency",
    "movement_diversity",
    "sra_readiness",
    "user_preference",
)


@dataclass
class SelectionConstraints:
    """Hard constraints for one selection run."""

    volume_floor: dict[str, int] = field(default_factory=dict)  # weekly target
    volume_ceiling: dict[str, int] = field(default_factory=dict)  # MRV
    pain_conflicts: set[str] = field(default_factory=set)
    user_avoids: set[str] = field(default_factory=set)
    available_equipment: set[str] = field(default_factory=set)  # empty = unrestricted
    min_exercises: int = 3
    max_exercises: int = 6
    min_main_lifts: int = 1
    max_main_lifts: int = 3
    min_accessories: int = 2
    demoted_from_main_lift: set[str] = field(default_factory=set)
    continuity_min_sets: dict[str, int] = field(default_factory=dict)
    time_budget_seconds: int | None = None  # working-set time; None = unlimited

    def __post_init__(self) -> None:
        if self.min_exercises > self.max_exercises:
            raise ValueError("min_exercises cannot exceed max_exercises")
        if self.min_main_lifts > self.max_main_lifts:
            raise ValueError("min_main_lifts cannot exceed max_main_lifts")


@dataclass
class SelectionPreferences:
    favorite_exercise_ids: set[str] = field(default_factory=set)
    avoid_exercise_ids: set[str] = field(default_factory=set)


@dataclass
class SelectionObjective:
    constraints: SelectionConstraints
    weights: dict[str, float]
    volume_context: VolumeContext
    rotation_context: dict[str, ExerciseExposure]  # keyed by exercise name
    sra_context: dict[str, float]  # muscle -> recovery fraction 0-1
    preferences: SelectionPreferences
    landmarks: dict[str, VolumeLandmark]
    training_age: str = "intermediate"
    continuity_source: str | None = None  # workout_id of the carried-over session
    continuity_exercise_ids: set[str] = field(default_factory=set)


@dataclass
class VolumeContribution:
    direct: float = 0.0
    indirect: float = 0.0


@dataclass
class SelectionCandidate:
    exercise: Exercise
    proposed_sets: int
    volume_contribution: dict[str, VolumeContribution]
    scores: dict[str, float]
    total_score: float
    is_main_lift: bool
    estimated_seconds: int = 0

    @property
    def exercise_id(self) -> str:
        return self.exercise.exercise_id


@dataclass
class RejectedCandidate:
    exercise: Exercise
    reason: RejectionReason


@dataclass
class SelectionResult:
    selected: list[SelectionCandidate]
    rejected: list[RejectedCandidate]
    volume_filled: dict[str, float]  # effective sets this session
    volume_deficit: dict[str, float]  # remaining after this session, > 0 only
    constraints_satisfied: bool
    rationale: str = ""


@dataclass
class ExerciseRationale:
    score: float
    components: dict[str, float]
    hard_filter_pass: bool
    selected_step: SelectionStep
    reason: str


@dataclass
class MuscleVolumePlan:
    target: int
    planned: float
    delta: float


@dataclass
class SelectionOutput:
    """Selection as exposed to collaborators."""

    selected_exercise_ids: list[str]
    main_lift_ids: list[str]
    accessory_ids: list[str]
    per_exercise_set_targets: dict[str, int]
    rationale: dict[str, ExerciseRationale]
    volume_plan_by_muscle: dict[str, MuscleVolumePlan]
    rejected: dict[str, RejectionReason] = field(default_factory=dict)
    strategy: str = ""
    constraints_satisfied: bool = True
