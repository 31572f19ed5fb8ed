"""
Training-block lifecycle state machine.

A block moves one way through ACCUMULATING → DELOADING → COMPLETED as
performed sessions are recorded.  Completing a block creates its successor
in the same transition.  All functions here are pure: they return new
TrainingBlock values and never mutate their input, so a caller that
persists the returned LifecycleTransition as one write gets an atomic
counter/state/successor update.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Literal

from .config import (
    ACCUMULATION_SESSION_THRESHOLD,
    ACCUMULATION_WEEKS,
    DELOAD_SESSION_THRESHOLD,
    DELOAD_VOLUME_FRACTION,
    DELOAD_WEEK,
    VOLUME_RAMP_STEP,
    RirBand,
    VolumeLandmark,
)
from .engine.config_loader import ModelConfig, resolve_rir_band
from .models import ExerciseRole, TrainingBlock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LifecycleTransition:
    """Result of recording one performed session against a block."""

    block: TrainingBlock
    successor: TrainingBlock | None
    previous_state: str
    transitioned: bool  # state changed
    applied: bool  # False for the completed-block no-op


@dataclass(frozen=True)
class CycleContextSnapshot:
    """Where a generated session sits in the periodization cycle."""

    week_in_meso: int
    week_in_block: int
    phase: Literal["accumulation", "deload", "completed"]
    block_type: Literal["accumulation", "deload"]
    is_deload: bool
    source: Literal["computed", "fallback"]


def _new_block_id() -> str:
    return uuid.uuid4().hex


# =============================================================================
# WEEK / RIR / VOLUME DERIVATION
# =============================================================================


def current_week(block: TrainingBlock) -> int:
    """
    Lifecycle week of a block.

    floor(accumulation sessions / sessions per week) + 1, capped at 4 while
    accumulating.  Deloading and completed blocks always report week 5.
    """
    if block.state != "accumulating":
        return DELOAD_WEEK
    week = block.accumulation_sessions_completed // block.sessions_per_week + 1
    return min(ACCUMULATION_WEEKS, week)


def rir_target(block: TrainingBlock, config: ModelConfig | None = None) -> RirBand:
    """RIR band for the block's current week (4-6 whenever deloading or completed)."""
    return resolve_rir_band(current_week(block), block, config)


def weekly_volume_target(
    landmark: VolumeLandmark,
    week: int,
    is_deload: bool = False,
    ramp_step: int = VOLUME_RAMP_STEP,
) -> int:
    """
    Weekly set target for one muscle.

    week1 = mev, week2 = mev + step, week3 = mev + 2*step,
    week4 = min(mav, mrv); deload = round(week4 * 0.45).  Weeks 2-3 are
    clamped to [mev, week4] so the ramp never decreases and never exceeds MRV.
    """
    peak = min(landmark.mav, landmark.mrv)
    if is_deload or week >= DELOAD_WEEK:
        # round-half-up; Python's round() would send 4.5 to 4
        return int(peak * DELOAD_VOLUME_FRACTION + 0.5)
    if week >= ACCUMULATION_WEEKS:
        return peak
    ramped = landmark.mev + ramp_step * (max(1, week) - 1)
    return max(min(landmark.mev, peak), min(ramped, peak))


# =============================================================================
# TRANSITIONS
# =============================================================================


def create_successor(
    block: TrainingBlock,
    new_id: Callable[[], str] = _new_block_id,
    start_date: str | None = None,
) -> TrainingBlock:
    """
    Build the block that follows *block*.

    Counters are zeroed, numbering continues, and core-compound exercise
    roles are carried forward (re-marked as added in week 1).
    """
    carried = [
        ExerciseRole(
            exercise_id=role.exercise_id,
            intent=role.intent,
            role=role.role,
            added_in_week=1,
        )
        for role in block.roles
        if role.role == "core_compound"
    ]
    return TrainingBlock(
        block_id=new_id(),
        block_number=block.block_number + 1,
        start_week=block.start_week + block.duration_weeks,
        duration_weeks=block.duration_weeks,
        sessions_per_week=block.sessions_per_week,
        state="accumulating",
        accumulation_sessions_completed=0,
        deload_sessions_completed=0,
        rir_bands=dict(block.rir_bands),
        volume_ramp_step=block.volume_ramp_step,
        roles=carried,
        start_date=start_date,
    )


def record_performed_session(
    block: TrainingBlock,
    new_id: Callable[[], str] = _new_block_id,
    session_date: str | None = None,
) -> LifecycleTransition:
    """
    Advance a block by one performed session.

    ACCUMULATING: increment the accumulation counter; at 12 → DELOADING.
    DELOADING: increment the deload counter; at 3 → COMPLETED, with a
    successor block created in the same transition.
    COMPLETED: no-op (logged).
    """
    if block.state == "completed":
        logger.warning("Block %s is already completed; transition ignored", block.block_id)
        return LifecycleTransition(
            block=block,
            successor=None,
            previous_state=block.state,
            transitioned=False,
            applied=False,
        )

    if block.state == "accumulating":
        count = block.accumulation_sessions_completed + 1
        state = "deloading" if count >= ACCUMULATION_SESSION_THRESHOLD else "accumulating"
        updated = replace(block, accumulation_sessions_completed=count, state=state)
        if state != block.state:
            logger.info("Block %s entering deload after %d sessions", block.block_id, count)
        return LifecycleTransition(
            block=updated,
            successor=None,
            previous_state=block.state,
            transitioned=state != block.state,
            applied=True,
        )

    count = block.deload_sessions_completed + 1
    if count < DELOAD_SESSION_THRESHOLD:
        return LifecycleTransition(
            block=replace(block, deload_sessions_completed=count),
            successor=None,
            previous_state=block.state,
            transitioned=False,
            applied=True,
        )

    completed = replace(block, deload_sessions_completed=count, state="completed")
    successor = create_successor(completed, new_id=new_id, start_date=session_date)
    logger.info(
        "Block %s completed; successor %s (block %d) created",
        block.block_id,
        successor.block_id,
        successor.block_number,
    )
    return LifecycleTransition(
        block=completed,
        successor=successor,
        previous_state=block.state,
        transitioned=True,
        applied=True,
    )


def reset_block(block: TrainingBlock) -> TrainingBlock:
    """Explicit reset: back to ACCUMULATING with zeroed counters."""
    return replace(
        block,
        state="accumulating",
        accumulation_sessions_completed=0,
        deload_sessions_completed=0,
    )


# =============================================================================
# CYCLE CONTEXT
# =============================================================================


def cycle_context(block: TrainingBlock | None) -> CycleContextSnapshot:
    """
    Snapshot of the periodization position for explainability consumers.

    Without a block the snapshot is a week-1 accumulation fallback.
    """
    if block is None:
        return CycleContextSnapshot(
            week_in_meso=1,
            week_in_block=1,
            phase="accumulation",
            block_type="accumulation",
            is_deload=False,
            source="fallback",
        )

    week = current_week(block)
    is_deload = block.state != "accumulating"
    phase = {"accumulating": "accumulation", "deloading": "deload", "completed": "completed"}[
        block.state
    ]
    return CycleContextSnapshot(
        week_in_meso=block.start_week + week - 1,
        week_in_block=week,
        phase=phase,
        block_type="deload" if is_deload else "accumulation",
        is_deload=is_deload,
        source="computed",
    )
