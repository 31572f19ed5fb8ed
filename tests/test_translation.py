"""
Tests for storage ↔ engine vocabulary translation and provenance-blob parsing.
"""

import pytest

from mesocoach.core.autoregulation import AutoregulationResult, DeloadTrigger, IntensityScale, VolumeReduction
from mesocoach.core.models import FatigueScore, WorkoutPlan
from mesocoach.core.selection.types import ExerciseRationale, SelectionOutput
from mesocoach.io.serializers import ValidationError
from mesocoach.io.translation import (
    ALL_TABLES,
    BLOCK_STATE,
    SELECTION_MODE,
    EnumTable,
    autoregulation_log_to_blob,
    block_from_storage,
    block_to_storage,
    parse_autoregulation_log,
    parse_selection_rationale,
    selection_rationale_to_blob,
    workout_from_storage,
    workout_to_storage,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _output() -> SelectionOutput:
    return SelectionOutput(
        selected_exercise_ids=["tbar_row", "face_pull"],
        main_lift_ids=["tbar_row"],
        accessory_ids=["face_pull"],
        per_exercise_set_targets={"tbar_row": 6, "face_pull": 3},
        rationale={
            "tbar_row": ExerciseRationale(
                score=0.61,
                components={"deficit_fill": 0.8, "user_preference": 1.0},
                hard_filter_pass=True,
                selected_step="pin",
                reason="Carried over from the last session of this type",
            ),
            "face_pull": ExerciseRationale(
                score=0.4,
                components={"deficit_fill": 0.5},
                hard_filter_pass=True,
                selected_step="accessory_pick",
                reason="High stimulus-to-fatigue ratio (5/5)",
            ),
        },
        volume_plan_by_muscle={},
        strategy="2 exercises selected.",
    )


def _autoreg_result() -> AutoregulationResult:
    return AutoregulationResult(
        plan=WorkoutPlan(workout_id="w1", scheduled_date="2026-03-10", intent="pull"),
        applied=True,
        action="scale_down",
        rationale="Fatigue score 45%",
        modifications=[
            IntensityScale("tbar_row", "down", 0.9, 120.0, 108.0, 8.0, 7.0, "tired"),
            VolumeReduction("face_pull", 4, 2, 2, "tired"),
            DeloadTrigger("curl", 3, 2, 20.0, 12.0, 6.0, "tired"),
        ],
        fatigue=FatigueScore(overall=0.45, per_muscle={}, weights={}, components={}),
        signal_age_hours=3.5,
    )


# ---------------------------------------------------------------------------
# Enum tables
# ---------------------------------------------------------------------------


class TestEnumTables:
    @pytest.mark.parametrize("table", ALL_TABLES, ids=lambda t: t.name)
    def test_every_engine_value_round_trips(self, table):
        for value in table.engine_values:
            stored = table.to_storage(value)
            assert stored == stored.upper()
            assert table.to_engine(stored) == value

    def test_unknown_engine_value(self):
        with pytest.raises(ValidationError, match="Unknown block state value"):
            BLOCK_STATE.to_storage("paused")

    @pytest.mark.parametrize("stored", ["accumulating", "PAUSED", "", None, 3])
    def test_unknown_stored_value(self, stored):
        with pytest.raises(ValidationError):
            BLOCK_STATE.to_engine(stored)

    def test_storage_values_must_be_unique(self):
        with pytest.raises(ValueError):
            EnumTable("broken", {"a": "X", "b": "X"})

    def test_selection_mode_values(self):
        assert SELECTION_MODE.to_storage("manual") == "MANUAL"
        assert SELECTION_MODE.to_engine("INTENT") == "intent"


class TestRecordTranslation:
    def test_workout_record(self):
        record = {"date": "2026-03-10", "status": "partial", "selection_mode": "intent", "intent": "pull"}
        stored = workout_to_storage(record)
        assert stored == {"date": "2026-03-10", "status": "PARTIAL", "selection_mode": "INTENT", "intent": "PULL"}
        assert workout_from_storage(stored) == record
        # input untouched
        assert record["status"] == "partial"

    def test_missing_intent_passes_through(self):
        stored = workout_to_storage({"status": "completed", "selection_mode": "manual", "intent": None})
        assert stored["intent"] is None

    def test_block_with_roles(self):
        record = {
            "block_id": "b1",
            "state": "deloading",
            "roles": [{"exercise_id": "tbar_row", "intent": "pull", "role": "core_compound"}],
        }
        stored = block_to_storage(record)
        assert stored["state"] == "DELOADING"
        assert stored["roles"][0] == {"exercise_id": "tbar_row", "intent": "PULL", "role": "CORE_COMPOUND"}
        assert block_from_storage(stored) == record

    def test_bad_stored_block_state(self):
        with pytest.raises(ValidationError):
            block_from_storage({"block_id": "b1", "state": "accumulating", "roles": []})


# ---------------------------------------------------------------------------
# Provenance blobs
# ---------------------------------------------------------------------------


class TestSelectionRationaleBlob:
    def test_round_trip(self):
        parsed = parse_selection_rationale(selection_rationale_to_blob(_output()))
        assert parsed.strategy == "2 exercises selected."
        assert parsed.exercises["tbar_row"].selected_step == "pin"
        assert parsed.exercises["face_pull"].components == {"deficit_fill": 0.5}

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda b: b.pop("strategy"),
            lambda b: b.update(exercises=[]),
            lambda b: b["exercises"]["tbar_row"].update(selected_step="lucky_pick"),
            lambda b: b["exercises"]["tbar_row"].update(score="high"),
            lambda b: b["exercises"]["tbar_row"].update(hard_filter_pass=1),
            lambda b: b["exercises"]["tbar_row"]["components"].update(deficit_fill=True),
            lambda b: b["exercises"]["tbar_row"].pop("reason"),
        ],
    )
    def test_malformed_rejected(self, mutate):
        blob = selection_rationale_to_blob(_output())
        mutate(blob)
        with pytest.raises(ValidationError):
            parse_selection_rationale(blob)

    def test_not_an_object(self):
        with pytest.raises(ValidationError, match="expected an object"):
            parse_selection_rationale(["pin"])


class TestAutoregulationLogBlob:
    def test_round_trip_tagged_variants(self):
        log = parse_autoregulation_log(autoregulation_log_to_blob(_autoreg_result()))
        assert log.applied is True
        assert log.action == "scale_down"
        assert log.fatigue_overall == 0.45
        assert log.signal_age_hours == 3.5
        assert [type(m) for m in log.modifications] == [IntensityScale, VolumeReduction, DeloadTrigger]
        assert log.modifications == _autoreg_result().modifications

    def test_unapplied_log(self):
        result = AutoregulationResult(
            plan=WorkoutPlan(workout_id="w1", scheduled_date="2026-03-10", intent="pull"),
            applied=False,
            action="maintain",
            rationale="No readiness signal available. Workout unchanged.",
        )
        log = parse_autoregulation_log(autoregulation_log_to_blob(result))
        assert log.modifications == []
        assert log.fatigue_overall is None

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda b: b.pop("applied"),
            lambda b: b.update(applied="yes"),
            lambda b: b.update(modifications={}),
            lambda b: b["modifications"][0].update(type="teleport"),
            lambda b: b["modifications"][0].update(direction="sideways"),
            lambda b: b["modifications"][1].update(sets_cut=True),
            lambda b: b["modifications"][1].update(sets_cut=1.5),
            lambda b: b["modifications"][2].pop("adjusted_rpe"),
            lambda b: b.update(fatigue_overall="0.4"),
        ],
    )
    def test_malformed_rejected(self, mutate):
        blob = autoregulation_log_to_blob(_autoreg_result())
        mutate(blob)
        with pytest.raises(ValidationError):
            parse_autoregulation_log(blob)
