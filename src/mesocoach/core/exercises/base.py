"""
Base type for exercise library entries.

Exercise carries everything the engine needs to score, select and load an
exercise: movement patterns, split tags, muscles by role, equipment, and
the quality scores (SFR, lengthened-position) used by the optimizer.
Muscle names are stored normalized (see core/landmarks.normalize_muscle).
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Exercise:
    """One exercise library entry."""

    # Identity
    exercise_id: str              # e.g. "barbell_row"
    name: str                     # e.g. "Barbell Row"

    # Classification
    movement_patterns: tuple[str, ...] = ()   # e.g. ("horizontal_pull",)
    split_tags: tuple[str, ...] = ()          # push | pull | legs | core | ...
    primary_muscles: tuple[str, ...] = ()
    secondary_muscles: tuple[str, ...] = ()
    equipment: tuple[str, ...] = ()
    stimulus_bias: tuple[str, ...] = ()       # mechanical | metabolic | stretch | stability

    # Role eligibility
    is_main_lift_eligible: bool = False
    is_compound: bool = False
    has_weighted_variant: bool = False        # bodyweight movement that can be loaded

    # Quality scores (1-5)
    sfr_score: int = 3
    length_position_score: int = 3
    fatigue_cost: int = 3

    rep_range: tuple[int, int] | None = None
    contraindications: tuple[str, ...] = ()   # body parts this exercise aggravates
    sra_hours: dict[str, int] = field(default_factory=dict, hash=False, compare=False)

    def __post_init__(self) -> None:
        if not self.exercise_id:
            raise ValueError("exercise_id must be non-empty")
        for name in ("sfr_score", "length_position_score", "fatigue_cost"):
            value = getattr(self, name)
            if not 1 <= value <= 5:
                raise ValueError(f"{name} must be between 1 and 5, got {value}")
        if self.rep_range is not None:
            low, high = self.rep_range
            if low < 1 or high < low:
                raise ValueError(f"Invalid rep_range {self.rep_range}")

    @property
    def is_bodyweight(self) -> bool:
        """True when any equipment tag is bodyweight."""
        return "bodyweight" in self.equipment

    @property
    def is_bodyweight_only(self) -> bool:
        return bool(self.equipment) and all(e == "bodyweight" for e in self.equipment)

    @property
    def muscles(self) -> tuple[str, ...]:
        return self.primary_muscles + self.secondary_muscles
