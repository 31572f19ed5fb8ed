"""
Unit tests for the training-block lifecycle.

Covers the state machine (ACCUMULATING → DELOADING → COMPLETED with
successor creation), week derivation, RIR bands and the weekly volume ramp.
Expected values are hand-computed in comments.
"""

import logging

import pytest

from mesocoach.core.config import DEFAULT_RIR_BANDS, VOLUME_LANDMARKS, RirBand, VolumeLandmark
from mesocoach.core.lifecycle import (
    create_successor,
    current_week,
    cycle_context,
    record_performed_session,
    reset_block,
    rir_target,
    weekly_volume_target,
)
from mesocoach.core.models import ExerciseRole, TrainingBlock

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _block(
    state: str = "accumulating",
    acc: int = 0,
    deload: int = 0,
    per_week: int = 3,
    **kwargs,
) -> TrainingBlock:
    return TrainingBlock(
        block_id="b1",
        state=state,
        accumulation_sessions_completed=acc,
        deload_sessions_completed=deload,
        sessions_per_week=per_week,
        **kwargs,
    )


def _ids():
    counter = iter(range(100))
    return lambda: f"block-{next(counter)}"


# ---------------------------------------------------------------------------
# Week derivation
# ---------------------------------------------------------------------------


class TestCurrentWeek:
    @pytest.mark.parametrize(
        "acc, expected",
        [(0, 1), (2, 1), (3, 2), (5, 2), (6, 3), (9, 4), (11, 4)],
    )
    def test_floor_division_plus_one(self, acc, expected):
        assert current_week(_block(acc=acc)) == expected

    def test_capped_at_four_while_accumulating(self):
        # 30 // 3 + 1 = 11 → capped
        assert current_week(_block(acc=30)) == 4

    def test_deloading_and_completed_report_week_five(self):
        assert current_week(_block(state="deloading", acc=12)) == 5
        assert current_week(_block(state="completed", acc=12, deload=3)) == 5

    def test_sessions_per_week_respected(self):
        # 4 sessions/week: 7 // 4 + 1 = 2
        assert current_week(_block(acc=7, per_week=4)) == 2


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class TestTransitions:
    def test_accumulation_counter_increments(self):
        t = record_performed_session(_block(acc=4))
        assert t.block.accumulation_sessions_completed == 5
        assert t.block.state == "accumulating"
        assert not t.transitioned
        assert t.applied

    def test_twelfth_session_enters_deload(self):
        t = record_performed_session(_block(acc=11))
        assert t.block.state == "deloading"
        assert t.block.accumulation_sessions_completed == 12
        assert t.transitioned
        assert t.successor is None

    def test_input_block_not_mutated(self):
        original = _block(acc=11)
        record_performed_session(original)
        assert original.accumulation_sessions_completed == 11
        assert original.state == "accumulating"

    def test_deload_counter_increments(self):
        t = record_performed_session(_block(state="deloading", acc=12, deload=1))
        assert t.block.deload_sessions_completed == 2
        assert t.block.state == "deloading"
        assert t.successor is None

    def test_third_deload_session_completes_with_successor(self):
        roles = [
            ExerciseRole("tbar_row", "pull", "core_compound", added_in_week=2),
            ExerciseRole("face_pull", "pull", "accessory"),
        ]
        block = _block(state="deloading", acc=12, deload=2, roles=roles, block_number=3, start_week=11)
        t = record_performed_session(block, new_id=_ids(), session_date="2026-03-01")

        assert t.block.state == "completed"
        assert t.block.deload_sessions_completed == 3
        assert t.transitioned

        s = t.successor
        assert s is not None
        assert s.block_id == "block-0"
        assert s.block_number == 4
        assert s.start_week == 16  # 11 + 5
        assert s.state == "accumulating"
        assert s.accumulation_sessions_completed == 0
        assert s.deload_sessions_completed == 0
        assert s.start_date == "2026-03-01"
        # Only core compounds carry forward, re-marked as week 1
        assert [(r.exercise_id, r.added_in_week) for r in s.roles] == [("tbar_row", 1)]

    def test_completed_block_is_noop(self, caplog):
        block = _block(state="completed", acc=12, deload=3)
        with caplog.at_level(logging.WARNING, logger="mesocoach.core.lifecycle"):
            t = record_performed_session(block)
        assert not t.applied
        assert not t.transitioned
        assert t.block is block
        assert t.successor is None
        assert "already completed" in caplog.text

    def test_full_cycle_fifteen_sessions(self):
        block = _block()
        successor = None
        for _ in range(15):
            t = record_performed_session(block, new_id=_ids())
            block = t.block
            successor = t.successor or successor
        assert block.state == "completed"
        assert successor is not None and successor.block_number == 2

    def test_reset_block(self):
        reset = reset_block(_block(state="deloading", acc=12, deload=1))
        assert reset.state == "accumulating"
        assert reset.accumulation_sessions_completed == 0
        assert reset.deload_sessions_completed == 0
        assert reset.block_id == "b1"

    def test_create_successor_copies_overrides(self):
        block = _block(rir_bands={1: (4, 5)}, volume_ramp_step=1)
        s = create_successor(block, new_id=lambda: "next")
        assert s.rir_bands == {1: (4, 5)}
        assert s.volume_ramp_step == 1


# ---------------------------------------------------------------------------
# RIR
# ---------------------------------------------------------------------------


class TestRirTarget:
    def test_default_bands_by_week(self):
        # acc 0 → w1, 3 → w2, 6 → w3, 9 → w4
        for acc, week in ((0, 1), (3, 2), (6, 3), (9, 4)):
            assert rir_target(_block(acc=acc), {}) == DEFAULT_RIR_BANDS[week]

    def test_block_override_applies_in_accumulation(self):
        block = _block(acc=0, rir_bands={1: (4, 5)})
        assert rir_target(block, {}) == RirBand(4, 5)

    def test_user_yaml_override_below_block(self):
        config = {"rir_bands": {"week2": [1, 1]}}
        assert rir_target(_block(acc=3), config) == RirBand(1, 1)
        # block-level beats user YAML
        assert rir_target(_block(acc=3, rir_bands={2: (3, 3)}), config) == RirBand(3, 3)

    @pytest.mark.parametrize("state, acc, deload", [("deloading", 12, 0), ("completed", 12, 3)])
    def test_deload_band_ignores_overrides(self, state, acc, deload):
        block = _block(state=state, acc=acc, deload=deload, rir_bands={5: (0, 1), 4: (0, 1)})
        config = {"rir_bands": {"week5": [0, 0]}}
        assert rir_target(block, config) == RirBand(4, 6)


# ---------------------------------------------------------------------------
# Volume ramp
# ---------------------------------------------------------------------------


class TestWeeklyVolumeTarget:
    def test_ramp_for_chest(self):
        # chest: mev 10, mav 16, mrv 22
        lm = VOLUME_LANDMARKS["chest"]
        assert [weekly_volume_target(lm, w) for w in (1, 2, 3, 4)] == [10, 12, 14, 16]

    def test_deload_is_rounded_week4_times_045(self):
        # upper_back week4 = min(14, 22) = 14 → 14 * 0.45 = 6.3 → 6
        lm = VOLUME_LANDMARKS["upper_back"]
        assert weekly_volume_target(lm, 5) == 6
        assert weekly_volume_target(lm, 2, is_deload=True) == 6

    def test_deload_half_rounds_up(self):
        # week4 = 10 → 4.5 → 5 (not banker's 4)
        assert weekly_volume_target(VolumeLandmark(mev=4, mav=10, mrv=12), 5) == 5

    @pytest.mark.parametrize("muscle", sorted(VOLUME_LANDMARKS))
    def test_non_decreasing_and_within_mrv(self, muscle):
        lm = VOLUME_LANDMARKS[muscle]
        targets = [weekly_volume_target(lm, w) for w in (1, 2, 3, 4)]
        assert targets == sorted(targets)
        assert all(t <= lm.mrv for t in targets)

    def test_deload_exact_for_every_muscle(self):
        for lm in VOLUME_LANDMARKS.values():
            week4 = weekly_volume_target(lm, 4)
            assert weekly_volume_target(lm, 5) == int(week4 * 0.45 + 0.5)

    def test_narrow_landmark_clamped(self):
        # mev 8, mav 9: week3 naive 12 → clamped to week4 = 9
        lm = VolumeLandmark(mev=8, mav=9, mrv=20)
        assert [weekly_volume_target(lm, w) for w in (1, 2, 3, 4)] == [8, 9, 9, 9]

    def test_mrv_below_mav(self):
        lm = VolumeLandmark(mev=4, mav=20, mrv=8)
        targets = [weekly_volume_target(lm, w) for w in (1, 2, 3, 4)]
        assert targets == [4, 6, 8, 8]


# ---------------------------------------------------------------------------
# Cycle context
# ---------------------------------------------------------------------------


class TestCycleContext:
    def test_fallback_without_block(self):
        c = cycle_context(None)
        assert c.source == "fallback"
        assert c.week_in_block == 1
        assert c.phase == "accumulation"
        assert not c.is_deload

    def test_computed_from_block(self):
        c = cycle_context(_block(acc=6, start_week=6))
        assert c.source == "computed"
        assert c.week_in_block == 3
        assert c.week_in_meso == 8  # 6 + 3 - 1
        assert c.block_type == "accumulation"

    def test_deload_phase(self):
        c = cycle_context(_block(state="deloading", acc=12))
        assert c.phase == "deload"
        assert c.block_type == "deload"
        assert c.is_deload
        assert c.week_in_block == 5


class TestModelValidation:
    def test_negative_counter_rejected(self):
        with pytest.raises(ValueError):
            _block(acc=-1)

    def test_unknown_state_rejected(self):
        with pytest.raises(ValueError):
            _block(state="paused")
