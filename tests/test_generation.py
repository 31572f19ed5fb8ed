"""
Integration tests for session generation.

Each test runs the full pipeline through generate_session on a small pull
library: lifecycle week → volume → selection → progression → assembly →
autoregulation.  ``now`` and ``workout_id`` are fixed so runs are
reproducible.
"""

from datetime import datetime, timedelta

import pytest

from mesocoach.core.autoregulation import DELOAD_NOTE_PREFIX
from mesocoach.core.errors import MissingContextError, NoCompatibleExercisesError
from mesocoach.core.exercises.base import Exercise
from mesocoach.core.generator import GenerationContext, _require_context, generate_session, resolve_pain_flags
from mesocoach.core.models import (
    Constraints,
    Goals,
    PerformanceSignals,
    PerformedExercise,
    PerformedSet,
    ReadinessSignal,
    SubjectiveReadiness,
    TrainingBlock,
    UserProfile,
    WorkoutHistoryEntry,
)

NOW = datetime(2026, 3, 10, 9, 0)
AS_OF = "2026-03-10"


# ===========================================================================
# Library and builders
# ===========================================================================

def _ex(exercise_id, patterns, muscles, equipment, main=False, **kw):
    return Exercise(
        exercise_id=exercise_id,
        name=exercise_id.replace("_", " ").title(),
        movement_patterns=patterns,
        split_tags=("pull",),
        primary_muscles=muscles,
        equipment=equipment,
        is_main_lift_eligible=main,
        is_compound=main,
        **kw,
    )


PULL_LIBRARY = {
    e.exercise_id: e
    for e in (
        _ex("row", ("horizontal_pull",), ("upper_back", "lats"), ("barbell",), main=True, fatigue_cost=4),
        _ex("pulldown", ("vertical_pull",), ("lats",), ("cable",), main=True, sfr_score=4),
        _ex("face_pull", ("horizontal_pull",), ("rear_delts",), ("cable",), sfr_score=5, fatigue_cost=1),
        _ex("reverse_fly", ("rear_delt_fly",), ("rear_delts",), ("machine",), sfr_score=4, fatigue_cost=1),
        _ex("curl", ("elbow_flexion",), ("biceps",), ("cable",), fatigue_cost=1),
        _ex("incline_curl", ("elbow_flexion",), ("biceps",), ("dumbbell",), length_position_score=5, fatigue_cost=1),
    )
}


def _context(history=(), block=None, readiness=(), library=PULL_LIBRARY, **kw) -> GenerationContext:
    defaults = dict(profile=UserProfile(), goals=Goals(), constraints=Constraints())
    defaults.update(kw)
    return GenerationContext(
        history=tuple(history),
        block=block,
        readiness=tuple(readiness),
        library=library,
        config={},
        **defaults,
    )


def _week1_session(date="2026-03-06") -> WorkoutHistoryEntry:
    """Week-1 pull day: row 3×10 @ 60, face pull 3×15 @ 20."""
    return WorkoutHistoryEntry(
        date=date,
        status="completed",
        intent="pull",
        workout_id="w-week1",
        block_id="b1",
        block_week=1,
        exercises=[
            PerformedExercise("row", [PerformedSet(set_index=i, reps=10, load=60.0, rpe=7.5) for i in (1, 2, 3)]),
            PerformedExercise(
                "face_pull", [PerformedSet(set_index=i, reps=15, load=20.0, rpe=7.5) for i in (1, 2, 3)]
            ),
        ],
    )


def _signal(hours_ago=1.0, **kw) -> ReadinessSignal:
    perf = {k: kw.pop(k) for k in ("rpe_deviation", "stall_count") if k in kw}
    return ReadinessSignal(
        timestamp=NOW - timedelta(hours=hours_ago),
        subjective=SubjectiveReadiness(**kw),
        performance=PerformanceSignals(**perf),
    )


def _generate(context, intent="pull"):
    return generate_session(context, intent, as_of=AS_OF, now=NOW, workout_id="w-test")


# ===========================================================================
# Failure modes
# ===========================================================================

class TestFailFast:
    def test_missing_context_lists_parts(self):
        context = _context(profile=None, goals=None)
        with pytest.raises(MissingContextError) as exc:
            _generate(context)
        assert exc.value.missing == ["profile", "goals"]

    def test_complete_context_returns_parts(self):
        context = _context()
        assert _require_context(context) == (context.profile, context.goals, context.constraints)

    def test_missing_single_part(self):
        context = _context(constraints=None)
        with pytest.raises(MissingContextError) as exc:
            _require_context(context)
        assert exc.value.missing == ["constraints"]

    def test_no_exercises_for_intent(self):
        with pytest.raises(NoCompatibleExercisesError) as exc:
            _generate(_context(), intent="push")
        assert exc.value.intent == "push"

    def test_everything_filtered_out(self):
        constraints = Constraints(available_equipment=["kettlebell"])
        with pytest.raises(NoCompatibleExercisesError):
            _generate(_context(constraints=constraints))


# ===========================================================================
# Week 1 (no block, no history)
# ===========================================================================

class TestFirstSession:
    def test_plan_shape(self):
        session = _generate(_context())
        plan = session.plan
        assert plan.workout_id == "w-test"
        assert plan.scheduled_date == AS_OF
        assert plan.intent == "pull"
        assert 1 <= len(plan.main_lifts) <= 3
        assert len(plan.accessories) >= 2
        assert {e.exercise.exercise_id for e in plan.working_exercises()} == set(
            session.selection.selected_exercise_ids
        )
        assert plan.estimated_minutes > 0

    def test_fallback_cycle_and_no_deload(self):
        session = _generate(_context())
        assert session.cycle.source == "fallback"
        assert session.cycle.week_in_meso == 1
        assert not session.deload.active

    def test_every_exercise_has_a_receipt(self):
        session = _generate(_context())
        assert set(session.receipts) == set(session.selection.selected_exercise_ids)
        for receipt in session.receipts.values():
            assert receipt.trigger == "insufficient_data"
            assert receipt.last_performed is None

    def test_no_readiness_leaves_plan(self):
        session = _generate(_context())
        assert not session.autoregulation.applied
        assert not session.plan.autoregulated

    def test_compliance_covers_prescribed_muscles(self):
        session = _generate(_context())
        muscles = {c.muscle for c in session.volume_compliance}
        for entry in session.plan.working_exercises():
            assert set(entry.exercise.primary_muscles) <= muscles

    def test_deterministic(self):
        first = _generate(_context())
        second = _generate(_context())
        assert first.plan == second.plan
        assert first.selection == second.selection


# ===========================================================================
# Week 2 (block in progress, history present)
# ===========================================================================

class TestSecondWeek:
    BLOCK = TrainingBlock(block_id="b1", accumulation_sessions_completed=3)

    def test_cycle_position(self):
        session = _generate(_context(history=[_week1_session()], block=self.BLOCK))
        assert session.cycle.source == "computed"
        assert session.cycle.week_in_block == 2
        assert session.cycle.week_in_meso == 2

    def test_main_lift_rpe_follows_week_band(self):
        session = _generate(_context(history=[_week1_session()], block=self.BLOCK))
        # week 2 band 2-3 RIR → RPE 10 − 2.5
        for entry in session.plan.main_lifts:
            assert all(s.target_rpe == 7.5 for s in entry.sets)

    def test_history_drives_progression(self):
        session = _generate(_context(history=[_week1_session()], block=self.BLOCK))
        for exercise_id in {"row", "face_pull"} & set(session.selection.selected_exercise_ids):
            decision = session.decisions[exercise_id]
            assert decision.trigger != "insufficient_data"
            assert decision.source_date == "2026-03-06"
            assert session.receipts[exercise_id].last_performed is not None

    def test_continuity_pins_last_pull_exercises(self):
        session = _generate(_context(history=[_week1_session()], block=self.BLOCK))
        for exercise_id, rationale in session.selection.rationale.items():
            if rationale.selected_step == "pin":
                assert exercise_id in {"row", "face_pull"}

    def test_full_pull_session_carries_over_with_extra_set(self):
        # Week 1: five exercises, 3 sets each, reps below range top at RPE 7.5 (hold path)
        week1 = WorkoutHistoryEntry(
            date="2026-03-06",
            status="completed",
            intent="pull",
            workout_id="w-week1",
            block_id="b1",
            block_week=1,
            exercises=[
                PerformedExercise(exercise_id, [PerformedSet(set_index=i, reps=reps, load=load, rpe=7.5) for i in (1, 2, 3)])
                for exercise_id, reps, load in (
                    ("row", 8, 120.0),
                    ("pulldown", 8, 70.0),
                    ("face_pull", 12, 20.0),
                    ("reverse_fly", 12, 15.0),
                    ("curl", 12, 25.0),
                )
            ],
        )
        session = _generate(_context(history=[week1], block=self.BLOCK))
        selected = set(session.selection.selected_exercise_ids)
        assert {"row", "pulldown", "face_pull", "reverse_fly", "curl"} <= selected

        for exercise_id in week1.exercise_ids():
            entry = session.plan.find(exercise_id)
            assert len(entry.sets) >= 4, exercise_id
            assert session.selection.rationale[exercise_id].selected_step == "pin"

        assert session.decisions["row"].trigger == "hold"
        row = session.plan.find("row")
        assert row.sets[0].target_load == 120.0


# ===========================================================================
# Deloads and readiness
# ===========================================================================

class TestDeloadAndReadiness:
    def test_scheduled_deload_caps_rpe(self):
        block = TrainingBlock(block_id="b1", state="deloading", accumulation_sessions_completed=12)
        session = _generate(_context(history=[_week1_session()], block=block))
        assert session.deload.mode == "scheduled"
        assert session.deload.scope == "volume"
        assert session.cycle.is_deload
        for entry in session.plan.working_exercises():
            assert all(s.target_rpe == 6.0 for s in entry.sets)

    def test_wrecked_readiness_triggers_reactive_deload(self):
        signal = _signal(readiness=1, motivation=1, rpe_deviation=2.0, stall_count=3)
        session = _generate(_context(readiness=[signal]))
        assert session.deload.mode == "reactive"
        assert session.deload.scope == "both"
        assert session.autoregulation.action == "deload"
        assert session.plan.autoregulated
        assert all(e.notes.startswith(DELOAD_NOTE_PREFIX) for e in session.plan.main_lifts)

    def test_wrecked_readiness_cuts_sets_once(self):
        signal = _signal(readiness=1, motivation=1, rpe_deviation=2.0, stall_count=3)
        session = _generate(_context(readiness=[signal]))
        targets = session.selection.per_exercise_set_targets
        assert session.deload.reduction_percent == 50
        # Half the selected sets, rounded half up: 4 → 2, 3 → 2, 2 → 1
        for entry in session.plan.working_exercises():
            planned = targets[entry.exercise.exercise_id]
            assert len(entry.sets) == max(1, int(planned * 0.5 + 0.5))

    def test_readiness_deload_assembled_when_down_regulation_disabled(self):
        signal = _signal(readiness=1, motivation=1, rpe_deviation=2.0, stall_count=3)
        session = generate_session(
            _context(readiness=[signal]),
            "pull",
            as_of=AS_OF,
            now=NOW,
            workout_id="w-test",
            policy_overrides={"allow_down_regulation": False},
        )
        assert session.deload.scope == "both"
        assert session.autoregulation.action == "maintain"
        targets = session.selection.per_exercise_set_targets
        for entry in session.plan.accessories:
            assert len(entry.sets) == max(1, int(targets[entry.exercise.exercise_id] * 0.45 + 0.5))
        for entry in session.plan.working_exercises():
            assert all(s.target_rpe == 6.0 for s in entry.sets)

    def test_scheduled_deload_not_cut_again_by_readiness(self):
        block = TrainingBlock(block_id="b1", state="deloading", accumulation_sessions_completed=12)
        signal = _signal(readiness=1, motivation=1, rpe_deviation=2.0, stall_count=3)
        session = _generate(_context(history=[_week1_session()], block=block, readiness=[signal]))
        assert session.deload.mode == "scheduled"
        assert session.autoregulation.action == "maintain"
        assert not session.autoregulation.applied
        assert "already a deload" in session.autoregulation.rationale
        targets = session.selection.per_exercise_set_targets
        for entry in session.plan.accessories:
            # 45% of the selected sets, rounded half up
            assert len(entry.sets) == max(1, int(targets[entry.exercise.exercise_id] * 0.45 + 0.5))

    def test_stale_readiness_ignored(self):
        signal = _signal(hours_ago=72, readiness=1, motivation=1, rpe_deviation=2.0, stall_count=3)
        session = _generate(_context(readiness=[signal]))
        assert not session.deload.active
        assert not session.autoregulation.applied
        assert "stale" in session.autoregulation.rationale

    def test_pain_flag_excludes_contraindicated(self):
        library = dict(PULL_LIBRARY)
        library["face_pull"] = _ex(
            "face_pull", ("horizontal_pull",), ("rear_delts",), ("cable",), contraindications=("shoulder",)
        )
        signal = _signal(pain_flags={"shoulder": 2})
        session = _generate(_context(readiness=[signal], library=library))
        assert "face_pull" not in session.selection.selected_exercise_ids


class TestResolvePainFlags:
    def test_fresh_signal_wins(self):
        history = [_week1_session()]
        history[0].pain_flags = {"knee": 2}
        assert resolve_pain_flags(_signal(pain_flags={"shoulder": 3}), history, NOW) == {"shoulder": 3}

    def test_falls_back_to_last_session(self):
        history = [_week1_session()]
        history[0].pain_flags = {"knee": 2}
        stale = _signal(hours_ago=72, pain_flags={"shoulder": 3})
        assert resolve_pain_flags(stale, history, NOW) == {"knee": 2}

    def test_nothing_known(self):
        assert resolve_pain_flags(None, [], NOW) == {}
