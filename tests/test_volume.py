"""
Unit tests for weekly volume accounting, compliance and deload readiness.
"""

import pytest

from mesocoach.core.config import VOLUME_LANDMARKS, VolumeLandmark
from mesocoach.core.exercises.base import Exercise
from mesocoach.core.models import PerformedExercise, PerformedSet, TrainingBlock, WorkoutHistoryEntry
from mesocoach.core.volume import (
    COMPLIANCE_SEVERITY,
    VolumeWindow,
    WeeklyVolume,
    assess_deload_readiness,
    build_volume_context,
    classify_compliance,
    count_weekly_volume,
    resolve_volume_window,
    volume_compliance,
    week_to_date_compliance,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_ROW = Exercise(
    exercise_id="row",
    name="Row",
    primary_muscles=("upper_back",),
    secondary_muscles=("biceps",),
    equipment=("cable",),
)
_CURL = Exercise(exercise_id="curl", name="Curl", primary_muscles=("biceps",), equipment=("cable",))
_LIBRARY = {"row": _ROW, "curl": _CURL}


def _entry(
    date: str,
    sets: dict[str, int],
    status: str = "completed",
    block_id: str | None = "b1",
    block_week: int | None = 1,
    skipped: int = 0,
) -> WorkoutHistoryEntry:
    exercises = []
    for exercise_id, count in sets.items():
        performed = [PerformedSet(set_index=i + 1, reps=10, load=50.0) for i in range(count)]
        performed += [
            PerformedSet(set_index=count + i + 1, reps=0, skipped=True) for i in range(skipped)
        ]
        exercises.append(PerformedExercise(exercise_id, performed))
    return WorkoutHistoryEntry(
        date=date,
        status=status,
        exercises=exercises,
        block_id=block_id,
        block_week=block_week,
    )


# ---------------------------------------------------------------------------
# Windows and counting
# ---------------------------------------------------------------------------


class TestVolumeWindow:
    def test_block_window_uses_current_week(self):
        block = TrainingBlock(block_id="b1", accumulation_sessions_completed=4)
        window = resolve_volume_window(block, "2026-03-10")
        assert window == VolumeWindow(block_id="b1", week=2)

    def test_fallback_is_trailing_seven_days(self):
        window = resolve_volume_window(None, "2026-03-10")
        assert window.start_date == "2026-03-04"
        assert window.end_date == "2026-03-10"

    def test_block_window_membership(self):
        window = VolumeWindow(block_id="b1", week=2)
        assert window.contains(_entry("2026-03-01", {}, block_week=2))
        assert not window.contains(_entry("2026-03-01", {}, block_week=1))
        assert not window.contains(_entry("2026-03-01", {}, block_id="other", block_week=2))

    def test_date_window_membership(self):
        window = VolumeWindow(start_date="2026-03-04", end_date="2026-03-10")
        assert window.contains(_entry("2026-03-04", {}))
        assert window.contains(_entry("2026-03-10", {}))
        assert not window.contains(_entry("2026-03-03", {}))


class TestCountWeeklyVolume:
    def test_direct_and_indirect(self):
        history = [_entry("2026-03-02", {"row": 4, "curl": 3})]
        weekly = count_weekly_volume(history, _LIBRARY, VolumeWindow(block_id="b1", week=1))
        assert weekly.direct == {"upper_back": 4.0, "biceps": 3.0}
        assert weekly.indirect == {"biceps": 4.0}
        # 3 + 4 * 0.3
        assert weekly.effective("biceps") == pytest.approx(4.2)

    def test_skipped_sets_and_unperformed_entries_excluded(self):
        history = [
            _entry("2026-03-02", {"row": 2}, skipped=2),
            _entry("2026-03-03", {"row": 5}, status="skipped"),
            _entry("2026-03-04", {"row": 5}, status="planned"),
            _entry("2026-03-05", {"row": 1}, status="partial"),
        ]
        weekly = count_weekly_volume(history, _LIBRARY, VolumeWindow(block_id="b1", week=1))
        assert weekly.direct["upper_back"] == 3.0

    def test_entries_outside_window_ignored(self):
        history = [_entry("2026-03-02", {"row": 4}, block_week=1), _entry("2026-03-09", {"row": 6}, block_week=2)]
        weekly = count_weekly_volume(history, _LIBRARY, VolumeWindow(block_id="b1", week=2))
        assert weekly.direct["upper_back"] == 6.0

    def test_unknown_exercise_ignored(self):
        history = [_entry("2026-03-02", {"mystery": 4})]
        weekly = count_weekly_volume(history, _LIBRARY, VolumeWindow(block_id="b1", week=1))
        assert weekly.muscles() == set()


class TestVolumeContext:
    def test_targets_actuals_and_deficit(self):
        weekly = WeeklyVolume(direct={"upper_back": 4.0}, indirect={"upper_back": 10.0})
        context = build_volume_context(weekly, ["Upper Back"], VOLUME_LANDMARKS, week=2, is_deload=False)
        # upper_back mev 6 + 2 = 8
        assert context.weekly_target == {"upper_back": 8}
        assert context.weekly_actual["upper_back"] == 4.0
        assert context.effective_actual["upper_back"] == pytest.approx(7.0)
        assert context.deficit("upper_back") == pytest.approx(1.0)
        assert context.deficit("unknown") == 0.0


# ---------------------------------------------------------------------------
# Compliance
# ---------------------------------------------------------------------------


class TestClassifyCompliance:
    # mev 10, mav 16 → approaching-MAV threshold 13.6
    LM = VolumeLandmark(mev=10, mav=16, mrv=22)

    @pytest.mark.parametrize(
        "projected, target, expected",
        [
            (17, 12, "OVER_MAV"),
            (16, 12, "AT_MAV"),
            (14, 12, "APPROACHING_MAV"),
            (13, 12, "OVER_TARGET"),
            (12, 12, "ON_TARGET"),
            (10, 12, "APPROACHING_TARGET"),
            (9, 12, "UNDER_MEV"),
        ],
    )
    def test_each_status(self, projected, target, expected):
        assert classify_compliance(projected, target, self.LM) == expected


class TestVolumeCompliance:
    def test_logged_plus_prescribed_over_mav(self):
        # 14 logged + 3 prescribed = 17 > MAV 16
        rows = volume_compliance(
            prior_direct={"chest": 14.0},
            prescribed_direct={"chest": 3.0},
            weekly_targets={"chest": 14},
            landmarks=VOLUME_LANDMARKS,
        )
        assert len(rows) == 1
        row = rows[0]
        assert row.projected_total == 17.0
        assert row.status == "OVER_MAV"
        assert row.sets_logged_before_session == 14.0
        assert row.sets_prescribed_this_session == 3.0

    def test_sorted_by_severity_then_name(self):
        rows = volume_compliance(
            prior_direct={"chest": 20.0, "lats": 0.0, "biceps": 0.0},
            prescribed_direct={"lats": 2.0, "chest": 1.0, "biceps": 2.0, "triceps": 0.0},
            weekly_targets={"chest": 14, "lats": 10, "biceps": 10},
            landmarks=VOLUME_LANDMARKS,
        )
        assert [r.muscle for r in rows] == ["chest", "biceps", "lats"]
        assert rows[0].status == "OVER_MAV"
        indices = [COMPLIANCE_SEVERITY.index(r.status) for r in rows]
        assert indices == sorted(indices)

    def test_unprescribed_muscles_skipped(self):
        rows = volume_compliance({"chest": 8.0}, {"chest": 0.0}, {"chest": 10}, VOLUME_LANDMARKS)
        assert rows == []

    def test_week_to_date_covers_every_landmark(self):
        landmarks = {"chest": VOLUME_LANDMARKS["chest"], "lats": VOLUME_LANDMARKS["lats"]}
        weekly = WeeklyVolume(direct={"chest": 17.0})
        rows = week_to_date_compliance(weekly, landmarks, week=1, is_deload=False)
        assert [(r.muscle, r.status) for r in rows] == [("chest", "OVER_MAV"), ("lats", "UNDER_MEV")]
        assert all(r.sets_prescribed_this_session == 0.0 for r in rows)


# ---------------------------------------------------------------------------
# Deload readiness
# ---------------------------------------------------------------------------


class TestDeloadReadiness:
    def test_two_muscles_near_mrv_recommended(self):
        # chest mrv 22 → 18.7; lats mrv 24 → 20.4
        block = TrainingBlock(block_id="b1", accumulation_sessions_completed=3)
        result = assess_deload_readiness({"chest": 19.0, "lats": 21.0, "biceps": 2.0}, VOLUME_LANDMARKS, block)
        assert result.recommended
        assert result.muscles_near_mrv == ("chest", "lats")
        # week 2 of 5 → not final
        assert not result.urgent

    def test_urgent_in_final_accumulation_week(self):
        block = TrainingBlock(block_id="b1", accumulation_sessions_completed=9)
        result = assess_deload_readiness({"chest": 19.0, "lats": 21.0}, VOLUME_LANDMARKS, block)
        assert result.recommended and result.urgent

    def test_single_muscle_not_enough(self):
        block = TrainingBlock(block_id="b1", accumulation_sessions_completed=9)
        result = assess_deload_readiness({"chest": 22.0, "lats": 5.0}, VOLUME_LANDMARKS, block)
        assert not result.recommended
        assert not result.urgent

    def test_no_block_never_urgent(self):
        result = assess_deload_readiness({"chest": 22.0, "lats": 24.0}, VOLUME_LANDMARKS, None)
        assert result.recommended
        assert not result.urgent
