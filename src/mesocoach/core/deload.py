"""
Deload decision for a generation call.

scheduled  the training block is in its deload phase
reactive   accumulated volume (≥2 muscles near MRV in the block's final
           accumulation week) or a very low readiness score forces one early
none       otherwise

Scheduled and volume-triggered deloads are built into the plan at assembly.
A readiness-triggered deload (scope "both") is carried out by the
autoregulation pass instead, so the plan is cut exactly once.
"""

from dataclasses import dataclass
from typing import Literal

from .config import DELOAD_THRESHOLD, DELOAD_VOLUME_FACTOR, DELOAD_VOLUME_FRACTION
from .models import FatigueScore, TrainingBlock
from .volume import DeloadReadiness

DeloadMode = Literal["none", "scheduled", "reactive"]
DeloadScope = Literal["none", "volume", "intensity", "both"]

DELOAD_REDUCTION_PERCENT = round((1 - DELOAD_VOLUME_FRACTION) * 100)
READINESS_DELOAD_REDUCTION_PERCENT = round((1 - DELOAD_VOLUME_FACTOR) * 100)


@dataclass(frozen=True)
class DeloadDecision:
    mode: DeloadMode
    reasons: tuple[str, ...]
    reduction_percent: int
    scope: DeloadScope

    @property
    def active(self) -> bool:
        return self.mode != "none"

    @property
    def readiness_triggered(self) -> bool:
        return self.mode == "reactive" and self.scope == "both"

    @property
    def in_plan(self) -> bool:
        """True when plan assembly applies the cut (not the autoregulation pass)."""
        return self.active and not self.readiness_triggered


NO_DELOAD = DeloadDecision(mode="none", reasons=(), reduction_percent=0, scope="none")


def decide_deload(
    block: TrainingBlock | None,
    readiness: DeloadReadiness | None = None,
    fatigue: FatigueScore | None = None,
) -> DeloadDecision:
    """
    Scheduled deloads cut volume only.  A reactive deload cuts volume when
    triggered by accumulated volume, and intensity as well when triggered by
    readiness.
    """
    if block is not None and block.state != "accumulating":
        return DeloadDecision(
            mode="scheduled",
            reasons=(f"Block {block.block_number} is in its deload phase",),
            reduction_percent=DELOAD_REDUCTION_PERCENT,
            scope="volume",
        )

    reasons: list[str] = []
    volume_triggered = readiness is not None and readiness.urgent
    fatigue_triggered = fatigue is not None and fatigue.overall < DELOAD_THRESHOLD
    if volume_triggered:
        reasons.append(
            "Near MRV in the final accumulation week: " + ", ".join(readiness.muscles_near_mrv)  # type: ignore[union-attr]
        )
    if fatigue_triggered:
        reasons.append(f"Readiness score {fatigue.overall * 100:.0f}% is below the deload threshold")  # type: ignore[union-attr]

    if not reasons:
        return NO_DELOAD
    return DeloadDecision(
        mode="reactive",
        reasons=tuple(reasons),
        reduction_percent=READINESS_DELOAD_REDUCTION_PERCENT if fatigue_triggered else DELOAD_REDUCTION_PERCENT,
        scope="both" if fatigue_triggered else "volume",
    )
