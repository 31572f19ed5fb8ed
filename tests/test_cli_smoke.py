"""
Smoke tests for the mesocoach CLI.

Tests basic functionality:
- App runs without errors
- init creates the store and the first block
- Sessions are generated, logged and explained
- Check-ins, status and history render
"""

import json
from datetime import datetime

import pytest
from typer.testing import CliRunner

from mesocoach.cli.main import app


runner = CliRunner()


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Isolated data directory; MESOCOACH_HOME points there so no user model.yaml is read."""
    monkeypatch.setenv("MESOCOACH_HOME", str(tmp_path))
    return tmp_path


def _invoke(args, data_dir):
    return runner.invoke(app, [*args, "--data-dir", str(data_dir)])


def _init(data_dir, *extra):
    result = _invoke(["init", "--force", *extra], data_dir)
    assert result.exit_code == 0, result.output
    return result


def _history_lines(data_dir):
    text = (data_dir / "history.jsonl").read_text()
    return [json.loads(line) for line in text.splitlines() if line.strip()]


def _block(data_dir):
    return json.loads((data_dir / "block.json").read_text())["current"]


class TestCLISmoke:
    """Basic smoke tests for CLI commands."""

    def test_app_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "generate" in result.output

    def test_init_creates_store(self, data_dir):
        _init(data_dir, "--days-per-week", "4", "--equipment", "barbell,cable", "--goal", "strength")
        assert (data_dir / "history.jsonl").exists()
        profile = json.loads((data_dir / "profile.json").read_text())
        assert profile["constraints"]["days_per_week"] == 4
        assert profile["constraints"]["available_equipment"] == ["barbell", "cable"]
        assert profile["goals"]["primary"] == "strength"
        block = _block(data_dir)
        assert block["state"] == "ACCUMULATING"
        assert block["sessions_per_week"] == 4

    def test_init_rejects_bad_goal(self, data_dir):
        result = _invoke(["init", "--force", "--goal", "bulking"], data_dir)
        assert result.exit_code == 1

    def test_commands_require_init(self, data_dir):
        for args in (["generate", "pull"], ["status"], ["history"], ["checkin"]):
            result = _invoke(args, data_dir)
            assert result.exit_code == 1, args
            assert "mesocoach init" in result.output


class TestGenerate:
    def test_generate_json(self, data_dir):
        _init(data_dir)
        result = _invoke(["generate", "pull", "--json"], data_dir)
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["plan"]["intent"] == "pull"
        assert data["plan"]["main_lifts"]
        assert data["cycle"]["week_in_block"] == 1
        assert set(data["receipts"]) == set(data["selection"]["selected_exercise_ids"])
        assert (data_dir / "last_plan.json").exists()

    def test_generate_table_output(self, data_dir):
        _init(data_dir)
        result = _invoke(["generate", "legs"], data_dir)
        assert result.exit_code == 0, result.output

    def test_no_save(self, data_dir):
        _init(data_dir)
        result = _invoke(["generate", "push", "--no-save"], data_dir)
        assert result.exit_code == 0, result.output
        assert not (data_dir / "last_plan.json").exists()

    def test_unknown_intent(self, data_dir):
        _init(data_dir)
        result = _invoke(["generate", "arms"], data_dir)
        assert result.exit_code == 1
        assert "Unknown intent" in result.output

    def test_explain_last_plan(self, data_dir):
        _init(data_dir)
        result = _invoke(["explain"], data_dir)
        assert result.exit_code == 0
        assert "No plan generated yet" in result.output

        assert _invoke(["generate", "pull"], data_dir).exit_code == 0
        result = _invoke(["explain"], data_dir)
        assert result.exit_code == 0, result.output

    def test_substitutes(self, data_dir):
        _init(data_dir)
        result = _invoke(["substitutes", "barbell_row"], data_dir)
        assert result.exit_code == 0, result.output

    def test_substitutes_unknown_exercise(self, data_dir):
        _init(data_dir)
        result = _invoke(["substitutes", "jumping_jacks"], data_dir)
        assert result.exit_code == 1


class TestLogSession:
    def test_manual_log_advances_block(self, data_dir):
        _init(data_dir)
        result = _invoke(
            ["log-session", "-s", "barbell_row:3*60x10@8", "-s", "face_pull:20x15", "--intent", "pull"],
            data_dir,
        )
        assert result.exit_code == 0, result.output
        [entry] = _history_lines(data_dir)
        assert entry["status"] == "COMPLETED"
        assert entry["selection_mode"] == "MANUAL"
        assert entry["intent"] == "PULL"
        assert entry["block_id"] == _block(data_dir)["block_id"]
        assert entry["block_week"] == 1
        assert [len(e["sets"]) for e in entry["exercises"]] == [3, 1]
        assert _block(data_dir)["accumulation_sessions_completed"] == 1

    def test_log_generated_plan(self, data_dir):
        _init(data_dir)
        generated = _invoke(["generate", "pull", "--json"], data_dir)
        plan = json.loads(generated.output)["plan"]
        main_id = plan["main_lifts"][0]["exercise_id"]

        result = _invoke(["log-session", "-s", f"{main_id}:2*60x8@8", "--partial", "--pain", "shoulder=1"], data_dir)
        assert result.exit_code == 0, result.output
        [entry] = _history_lines(data_dir)
        assert entry["selection_mode"] == "INTENT"
        assert entry["workout_id"] == plan["workout_id"]
        assert entry["status"] == "PARTIAL"
        assert entry["pain_flags"] == {"shoulder": 1}

    def test_second_log_against_same_plan_keeps_both(self, data_dir):
        _init(data_dir)
        plan = json.loads(_invoke(["generate", "pull", "--json"], data_dir).output)["plan"]
        main_id = plan["main_lifts"][0]["exercise_id"]

        first = _invoke(["log-session", "-s", f"{main_id}:3*50x8@8", "--date", "2026-03-02"], data_dir)
        second = _invoke(["log-session", "-s", f"{main_id}:3*52x8@8", "--date", "2026-03-05"], data_dir)
        assert first.exit_code == 0, first.output
        assert second.exit_code == 0, second.output

        entries = _history_lines(data_dir)
        assert [e["date"] for e in entries] == ["2026-03-02", "2026-03-05"]
        assert entries[0]["workout_id"] == plan["workout_id"]
        assert entries[0]["selection_mode"] == "INTENT"
        assert entries[1]["workout_id"] != plan["workout_id"]
        assert entries[1]["selection_mode"] == "MANUAL"
        assert _block(data_dir)["accumulation_sessions_completed"] == 2

    def test_bad_set_format(self, data_dir):
        _init(data_dir)
        result = _invoke(["log-session", "-s", "barbell_row:60 for 10"], data_dir)
        assert result.exit_code == 1
        assert "Invalid set format" in result.output
        assert _history_lines(data_dir) == []

    def test_unknown_exercise(self, data_dir):
        _init(data_dir)
        result = _invoke(["log-session", "-s", "mystery_row:60x10"], data_dir)
        assert result.exit_code == 1
        assert "Unknown exercise" in result.output

    def test_history_lists_sessions(self, data_dir):
        _init(data_dir)
        _invoke(["log-session", "-s", "barbell_row:60x10", "--date", "2026-03-02"], data_dir)
        _invoke(["log-session", "-s", "barbell_row:62.5x10", "--date", "2026-03-05"], data_dir)
        result = _invoke(["history", "--limit", "1"], data_dir)
        assert result.exit_code == 0, result.output
        assert "2026-03-05" in result.output
        assert "2026-03-02" not in result.output

    def test_reset_block(self, data_dir):
        _init(data_dir)
        _invoke(["log-session", "-s", "barbell_row:60x10"], data_dir)
        result = _invoke(["reset-block", "--force"], data_dir)
        assert result.exit_code == 0, result.output
        assert _block(data_dir)["accumulation_sessions_completed"] == 0


class TestCheckinAndStatus:
    def test_checkin_saved(self, data_dir):
        _init(data_dir)
        result = _invoke(["checkin", "-r", "4", "-m", "5", "--soreness", "Quads=2", "--pain", "knee=1"], data_dir)
        assert result.exit_code == 0, result.output
        assert "Fatigue score" in result.output
        [line] = (data_dir / "readiness.jsonl").read_text().splitlines()
        record = json.loads(line)
        assert record["subjective"]["soreness"] == {"quads": 2}
        assert record["subjective"]["pain_flags"] == {"knee": 1}
        assert "wearable" not in record

    def test_partial_wearable_rejected(self, data_dir):
        _init(data_dir)
        result = _invoke(["checkin", "--recovery", "80"], data_dir)
        assert result.exit_code == 1
        assert not (data_dir / "readiness.jsonl").read_text().strip()

    def test_bad_soreness_level(self, data_dir):
        _init(data_dir)
        result = _invoke(["checkin", "--soreness", "quads=5"], data_dir)
        assert result.exit_code == 1

    def test_status_json(self, data_dir):
        _init(data_dir)
        today = datetime.now().strftime("%Y-%m-%d")
        _invoke(["log-session", "-s", "barbell_row:3*60x10@8", "--date", today], data_dir)
        result = _invoke(["status", "--json"], data_dir)
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["block"]["state"] == "accumulating"
        assert data["block"]["accumulation_sessions_completed"] == 1
        assert data["rir"] == {"min": 3, "max": 4}
        volume = {row["muscle"]: row for row in data["volume"]}
        assert volume["upper_back"]["sets_logged_before_session"] == 3

    def test_status_table(self, data_dir):
        _init(data_dir)
        result = _invoke(["status"], data_dir)
        assert result.exit_code == 0, result.output
