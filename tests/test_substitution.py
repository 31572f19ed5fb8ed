"""Tests for substitution ranking and the TTL cache behind the substitution pool."""

import pytest

from mesocoach.core.cache import TTLCache
from mesocoach.core.exercises.base import Exercise
from mesocoach.core.substitution import score_substitute, substitution_pool, suggest_substitutes

ROW = Exercise(
    exercise_id="row",
    name="Barbell Row",
    movement_patterns=("horizontal_pull",),
    split_tags=("pull",),
    primary_muscles=("upper_back", "lats"),
    equipment=("barbell",),
    stimulus_bias=("mechanical",),
    fatigue_cost=4,
)
CABLE_ROW = Exercise(
    exercise_id="cable_row",
    name="Seated Cable Row",
    movement_patterns=("horizontal_pull",),
    split_tags=("pull",),
    primary_muscles=("upper_back", "lats"),
    equipment=("cable",),
    stimulus_bias=("mechanical",),
    fatigue_cost=2,
)
DB_ROW = Exercise(
    exercise_id="db_row",
    name="Dumbbell Row",
    movement_patterns=("horizontal_pull",),
    split_tags=("pull",),
    primary_muscles=("lats",),
    equipment=("dumbbell",),
    fatigue_cost=3,
    contraindications=("lower_back",),
)
PULLDOWN = Exercise(
    exercise_id="pulldown",
    name="Lat Pulldown",
    movement_patterns=("vertical_pull",),
    split_tags=("pull",),
    primary_muscles=("lats",),
    equipment=("cable",),
    fatigue_cost=2,
)
CURL = Exercise(
    exercise_id="curl",
    name="Cable Curl",
    movement_patterns=("elbow_flexion",),
    split_tags=("pull",),
    primary_muscles=("biceps",),
    equipment=("cable",),
)
PRESS = Exercise(
    exercise_id="press",
    name="Bench Press",
    movement_patterns=("horizontal_push",),
    split_tags=("push",),
    primary_muscles=("chest",),
    equipment=("barbell",),
)

POOL = [ROW, CABLE_ROW, DB_ROW, PULLDOWN, CURL, PRESS]


class TestScoring:
    def test_score_components(self):
        # 1 pattern × 4 + 2 primary × 3 + 1 stimulus × 2 + (4 − 2)
        assert score_substitute(ROW, CABLE_ROW) == 14
        # 4 + 3 + 0 + 1
        assert score_substitute(ROW, DB_ROW) == 8
        # 0 + 3 + 0 + 2
        assert score_substitute(ROW, PULLDOWN) == 5


class TestSuggestSubstitutes:
    def test_ranked_and_filtered(self):
        result = suggest_substitutes(ROW, POOL)
        assert [s.exercise.exercise_id for s in result] == ["cable_row", "db_row", "pulldown"]
        assert result[0].shared_patterns == ("horizontal_pull",)
        assert result[0].shared_primary_muscles == ("lats", "upper_back")

    def test_unrelated_and_other_split_excluded(self):
        ids = {s.exercise.exercise_id for s in suggest_substitutes(ROW, POOL, top_n=10)}
        assert "curl" not in ids
        assert "press" not in ids
        assert "row" not in ids

    def test_pain_filter(self):
        ids = [s.exercise.exercise_id for s in suggest_substitutes(ROW, POOL, pain_flags={"lower_back": 2})]
        assert "db_row" not in ids

    def test_equipment_filter(self):
        ids = [s.exercise.exercise_id for s in suggest_substitutes(ROW, POOL, available_equipment=["dumbbell"])]
        assert ids == ["db_row"]

    def test_top_n(self):
        assert len(suggest_substitutes(ROW, POOL, top_n=1)) == 1


class TestTTLCache:
    def test_hit_within_ttl(self):
        cache: TTLCache[int] = TTLCache(ttl_seconds=300)
        cache.set("k", 1, now=0.0)
        assert cache.get("k", now=299.9) == 1

    def test_expires_at_ttl(self):
        cache: TTLCache[int] = TTLCache(ttl_seconds=300)
        cache.set("k", 1, now=0.0)
        assert cache.get("k", now=300.0) is None
        assert len(cache) == 0

    def test_get_or_load_calls_loader_once(self):
        calls = []

        def loader():
            calls.append(1)
            return [ROW]

        cache: TTLCache[list[Exercise]] = TTLCache()
        first = substitution_pool(cache, loader, now=10.0)
        second = substitution_pool(cache, loader, now=200.0)
        assert first is second
        assert len(calls) == 1

        substitution_pool(cache, loader, now=400.0)
        assert len(calls) == 2

    def test_clear(self):
        cache: TTLCache[int] = TTLCache()
        cache.set("k", 1, now=0.0)
        cache.clear()
        assert cache.get("k", now=1.0) is None

    def test_invalid_ttl(self):
        with pytest.raises(ValueError):
            TTLCache(ttl_seconds=0)
