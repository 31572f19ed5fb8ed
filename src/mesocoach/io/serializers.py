"""
JSON serialization for training data models.

Handles conversion between dataclasses and JSON-compatible dicts in the
engine vocabulary.  Storage-vocabulary enum values are applied on top of
these dicts by io/translation.py.
"""

import re
from dataclasses import asdict
from datetime import datetime
from typing import Any

from ..core.generator import GeneratedSession
from ..core.models import (
    Constraints,
    ExerciseRole,
    Goals,
    PerformanceSignals,
    PerformedExercise,
    PerformedSet,
    Preferences,
    ReadinessSignal,
    SubjectiveReadiness,
    TrainingBlock,
    UserProfile,
    WearableReadiness,
    WorkoutExercise,
    WorkoutHistoryEntry,
    WorkoutPlan,
    WorkoutSet,
)


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def validate_date(date_str: str) -> str:
    """
    Validate and normalize date string to ISO format.

    Args:
        date_str: Date string to validate

    Returns:
        Normalized YYYY-MM-DD string

    Raises:
        ValidationError: If date format is invalid
    """
    if not isinstance(date_str, str) or not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValidationError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")

    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError as e:
        raise ValidationError(f"Invalid date: {date_str}") from e

    return date_str


def validate_non_negative(value: int | float, name: str) -> int | float:
    """
    Validate that a value is non-negative.

    Raises:
        ValidationError: If value is negative
    """
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


def _build(cls, name: str, **kwargs):
    """Construct a model, reporting its __post_init__ ValueError as ValidationError."""
    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {name}: {e}") from e


# =============================================================================
# PROFILE
# =============================================================================


def profile_to_dict(
    profile: UserProfile,
    goals: Goals,
    constraints: Constraints,
    preferences: Preferences,
) -> dict[str, Any]:
    return {
        "profile": {
            "training_age": profile.training_age,
            "injuries": list(profile.injuries),
            "bodyweight_kg": profile.bodyweight_kg,
        },
        "goals": {"primary": goals.primary, "secondary": goals.secondary},
        "constraints": {
            "days_per_week": constraints.days_per_week,
            "session_minutes": constraints.session_minutes,
            "available_equipment": list(constraints.available_equipment),
            "split_type": constraints.split_type,
        },
        "preferences": {
            "favorite_exercise_ids": list(preferences.favorite_exercise_ids),
            "avoid_exercise_ids": list(preferences.avoid_exercise_ids),
        },
    }


def dict_to_profile(
    data: dict[str, Any],
) -> tuple[UserProfile | None, Goals | None, Constraints | None, Preferences]:
    """
    Convert a profile.json dict into its four parts.

    Missing sections come back as None (Preferences defaults to empty) so
    the generator can report exactly what is absent.

    Raises:
        ValidationError: If a present section is invalid
    """
    profile = goals = constraints = None
    if isinstance(data.get("profile"), dict):
        p = data["profile"]
        profile = _build(
            UserProfile,
            "profile",
            training_age=p.get("training_age", "intermediate"),
            injuries=list(p.get("injuries", [])),
            bodyweight_kg=p.get("bodyweight_kg"),
        )
    if isinstance(data.get("goals"), dict):
        g = data["goals"]
        goals = _build(Goals, "goals", primary=g.get("primary", "hypertrophy"), secondary=g.get("secondary", "none"))
    if isinstance(data.get("constraints"), dict):
        c = data["constraints"]
        constraints = _build(
            Constraints,
            "constraints",
            days_per_week=int(c.get("days_per_week", 3)),
            session_minutes=int(c.get("session_minutes", 60)),
            available_equipment=list(c.get("available_equipment", [])),
            split_type=c.get("split_type", "ppl"),
        )
    prefs = data.get("preferences") or {}
    preferences = Preferences(
        favorite_exercise_ids=list(prefs.get("favorite_exercise_ids", [])),
        avoid_exercise_ids=list(prefs.get("avoid_exercise_ids", [])),
    )
    return profile, goals, constraints, preferences


# =============================================================================
# HISTORY
# =============================================================================


def performed_set_to_dict(s: PerformedSet) -> dict[str, Any]:
    d: dict[str, Any] = {"set_index": s.set_index, "reps": s.reps, "load": s.load, "rpe": s.rpe}
    if s.skipped:
        d["skipped"] = True
    return d


def dict_to_performed_set(data: dict[str, Any]) -> PerformedSet:
    validate_non_negative(data.get("reps", 0), "reps")
    return _build(
        PerformedSet,
        "set",
        set_index=int(data["set_index"]),
        reps=int(data["reps"]),
        load=float(data["load"]) if data.get("load") is not None else None,
        rpe=float(data["rpe"]) if data.get("rpe") is not None else None,
        skipped=bool(data.get("skipped", False)),
    )


def workout_entry_to_dict(entry: WorkoutHistoryEntry) -> dict[str, Any]:
    d: dict[str, Any] = {
        "date": entry.date,
        "workout_id": entry.workout_id,
        "status": entry.status,
        "selection_mode": entry.selection_mode,
        "intent": entry.intent,
        "block_id": entry.block_id,
        "block_week": entry.block_week,
        "exercises": [
            {"exercise_id": e.exercise_id, "sets": [performed_set_to_dict(s) for s in e.sets]}
            for e in entry.exercises
        ],
    }
    if entry.pain_flags:
        d["pain_flags"] = dict(entry.pain_flags)
    return d


def dict_to_workout_entry(data: dict[str, Any]) -> WorkoutHistoryEntry:
    """
    Convert dict to WorkoutHistoryEntry.

    Raises:
        ValidationError: If data is invalid
    """
    try:
        exercises = [
            PerformedExercise(
                exercise_id=str(e["exercise_id"]),
                sets=[dict_to_performed_set(s) for s in e.get("sets", [])],
            )
            for e in data.get("exercises", [])
        ]
        return _build(
            WorkoutHistoryEntry,
            "workout",
            date=validate_date(data["date"]),
            status=data["status"],
            exercises=exercises,
            selection_mode=data.get("selection_mode", "intent"),
            intent=data.get("intent"),
            workout_id=str(data.get("workout_id", "")),
            block_id=data.get("block_id"),
            block_week=data.get("block_week"),
            pain_flags={str(k): int(v) for k, v in (data.get("pain_flags") or {}).items()},
        )
    except KeyError as e:
        raise ValidationError(f"Workout record missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid workout record: {e}") from e


# =============================================================================
# TRAINING BLOCK
# =============================================================================


def block_to_dict(block: TrainingBlock) -> dict[str, Any]:
    return {
        "block_id": block.block_id,
        "block_number": block.block_number,
        "start_week": block.start_week,
        "duration_weeks": block.duration_weeks,
        "sessions_per_week": block.sessions_per_week,
        "state": block.state,
        "accumulation_sessions_completed": block.accumulation_sessions_completed,
        "deload_sessions_completed": block.deload_sessions_completed,
        "rir_bands": {str(week): list(band) for week, band in block.rir_bands.items()},
        "volume_ramp_step": block.volume_ramp_step,
        "roles": [
            {"exercise_id": r.exercise_id, "intent": r.intent, "role": r.role, "added_in_week": r.added_in_week}
            for r in block.roles
        ],
        "start_date": block.start_date,
    }


def dict_to_block(data: dict[str, Any]) -> TrainingBlock:
    """
    Convert dict to TrainingBlock.

    Raises:
        ValidationError: If data is invalid
    """
    try:
        bands = {int(week): (int(band[0]), int(band[1])) for week, band in (data.get("rir_bands") or {}).items()}
        roles = [
            ExerciseRole(
                exercise_id=str(r["exercise_id"]),
                intent=r["intent"],
                role=r["role"],
                added_in_week=int(r.get("added_in_week", 1)),
            )
            for r in data.get("roles", [])
        ]
        return _build(
            TrainingBlock,
            "block",
            block_id=str(data["block_id"]),
            block_number=int(data.get("block_number", 1)),
            start_week=int(data.get("start_week", 1)),
            duration_weeks=int(data.get("duration_weeks", 5)),
            sessions_per_week=int(data.get("sessions_per_week", 3)),
            state=data.get("state", "accumulating"),
            accumulation_sessions_completed=int(data.get("accumulation_sessions_completed", 0)),
            deload_sessions_completed=int(data.get("deload_sessions_completed", 0)),
            rir_bands=bands,
            volume_ramp_step=data.get("volume_ramp_step"),
            roles=roles,
            start_date=data.get("start_date"),
        )
    except (KeyError, IndexError, TypeError) as e:
        raise ValidationError(f"Invalid block record: {e}") from e


# =============================================================================
# READINESS
# =============================================================================


def readiness_to_dict(signal: ReadinessSignal) -> dict[str, Any]:
    s, p, w = signal.subjective, signal.performance, signal.wearable
    d: dict[str, Any] = {
        "timestamp": signal.timestamp.isoformat(),
        "subjective": {
            "readiness": s.readiness,
            "motivation": s.motivation,
            "soreness": dict(s.soreness),
            "pain_flags": dict(s.pain_flags),
        },
        "performance": {
            "rpe_deviation": p.rpe_deviation,
            "stall_count": p.stall_count,
            "volume_compliance_rate": p.volume_compliance_rate,
        },
    }
    if w is not None:
        d["wearable"] = {
            "recovery": w.recovery,
            "strain": w.strain,
            "hrv": w.hrv,
            "sleep_quality": w.sleep_quality,
            "sleep_hours": w.sleep_hours,
        }
    return d


def dict_to_readiness(data: dict[str, Any]) -> ReadinessSignal:
    try:
        timestamp = datetime.fromisoformat(data["timestamp"])
        s = data.get("subjective") or {}
        p = data.get("performance") or {}
        subjective = _build(
            SubjectiveReadiness,
            "check-in",
            readiness=int(s.get("readiness", 3)),
            motivation=int(s.get("motivation", 3)),
            soreness={str(k): int(v) for k, v in (s.get("soreness") or {}).items()},
            pain_flags={str(k): int(v) for k, v in (s.get("pain_flags") or {}).items()},
        )
        performance = PerformanceSignals(
            rpe_deviation=float(p.get("rpe_deviation", 0.0)),
            stall_count=int(p.get("stall_count", 0)),
            volume_compliance_rate=float(p.get("volume_compliance_rate", 1.0)),
        )
        wearable = None
        if isinstance(data.get("wearable"), dict):
            w = data["wearable"]
            wearable = WearableReadiness(
                recovery=float(w["recovery"]),
                strain=float(w["strain"]),
                hrv=float(w["hrv"]),
                sleep_quality=float(w["sleep_quality"]),
                sleep_hours=float(w["sleep_hours"]) if w.get("sleep_hours") is not None else None,
            )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid readiness record: {e}") from e
    return ReadinessSignal(timestamp=timestamp, subjective=subjective, performance=performance, wearable=wearable)


# =============================================================================
# GENERATED PLAN (output only)
# =============================================================================


def _workout_set_to_dict(s: WorkoutSet) -> dict[str, Any]:
    return {
        "set_index": s.set_index,
        "target_reps": s.target_reps,
        "target_rep_range": list(s.target_rep_range) if s.target_rep_range else None,
        "target_rpe": s.target_rpe,
        "target_load": s.target_load,
        "rest_seconds": s.rest_seconds,
        "role": s.role,
        "is_back_off": s.is_back_off,
    }


def _workout_exercise_to_dict(e: WorkoutExercise) -> dict[str, Any]:
    return {
        "exercise_id": e.exercise.exercise_id,
        "name": e.exercise.name,
        "order_index": e.order_index,
        "is_main_lift": e.is_main_lift,
        "role": e.role,
        "sets": [_workout_set_to_dict(s) for s in e.sets],
        "notes": e.notes,
    }


def plan_to_dict(plan: WorkoutPlan) -> dict[str, Any]:
    return {
        "workout_id": plan.workout_id,
        "scheduled_date": plan.scheduled_date,
        "intent": plan.intent,
        "warmup": [_workout_exercise_to_dict(e) for e in plan.warmup],
        "main_lifts": [_workout_exercise_to_dict(e) for e in plan.main_lifts],
        "accessories": [_workout_exercise_to_dict(e) for e in plan.accessories],
        "estimated_minutes": plan.estimated_minutes,
        "notes": plan.notes,
        "autoregulated": plan.autoregulated,
    }


# =============================================================================
# CLI SET STRINGS
# =============================================================================

_SET_SPEC_RE = re.compile(
    r"^(?P<exercise>[a-z0-9_]+):(?:(?P<count>\d+)\*)?(?P<load>\d+(?:\.\d+)?)x(?P<reps>\d+)(?:@(?P<rpe>\d+(?:\.\d+)?))?$"
)


def parse_set_spec(spec: str) -> tuple[str, int, float, int, float | None]:
    """
    Parse one logged-set string.

    Format:
        exercise_id:LOADxREPS[@RPE]        e.g. "tbar_row:120x8@8"
        exercise_id:N*LOADxREPS[@RPE]      e.g. "tbar_row:5*120x8@8" (N sets)

    Returns:
        (exercise_id, set count, load, reps, rpe or None)

    Raises:
        ValidationError: If the format is invalid
    """
    match = _SET_SPEC_RE.match(spec.strip())
    if match is None:
        raise ValidationError(
            f"Invalid set format: '{spec}'.\n"
            "Use: exercise_id:LOADxREPS@RPE (e.g. tbar_row:120x8@8),\n"
            "     or exercise_id:N*LOADxREPS@RPE for N identical sets."
        )
    rpe = float(match.group("rpe")) if match.group("rpe") else None
    if rpe is not None and rpe > 10:
        raise ValidationError(f"RPE must be at most 10: {rpe}")
    count = int(match.group("count") or 1)
    if count < 1:
        raise ValidationError("Set count must be at least 1")
    return match.group("exercise"), count, float(match.group("load")), int(match.group("reps")), rpe


def build_performed_exercises(specs: list[str]) -> list[PerformedExercise]:
    """Group parsed set strings by exercise, numbering sets in the order given."""
    grouped: dict[str, PerformedExercise] = {}
    for spec in specs:
        exercise_id, count, load, reps, rpe = parse_set_spec(spec)
        performed = grouped.setdefault(exercise_id, PerformedExercise(exercise_id=exercise_id))
        for _ in range(count):
            performed.sets.append(
                PerformedSet(set_index=len(performed.sets) + 1, reps=reps, load=load, rpe=rpe)
            )
    return list(grouped.values())


def generated_session_to_dict(session: GeneratedSession) -> dict[str, Any]:
    """Full machine-readable view of a generation run (for --json output)."""
    autoreg = session.autoregulation
    return {
        "plan": plan_to_dict(session.plan),
        "selection": asdict(session.selection),
        "receipts": {k: asdict(r) for k, r in session.receipts.items()},
        "deload": asdict(session.deload),
        "cycle": asdict(session.cycle),
        "autoregulation": {
            "applied": autoreg.applied,
            "action": autoreg.action,
            "rationale": autoreg.rationale,
            "fatigue_overall": autoreg.fatigue.overall if autoreg.fatigue is not None else None,
            "signal_age_hours": autoreg.signal_age_hours,
            "modifications": [asdict(m) for m in autoreg.modifications],
        },
        "volume_compliance": [asdict(c) for c in session.volume_compliance],
        "deload_readiness": asdict(session.deload_readiness) if session.deload_readiness else None,
    }


def parse_level_map(raw: str | None, low: int, high: int, name: str) -> dict[str, int]:
    """
    Parse "chest=2, quads=1" into {"chest": 2, "quads": 1}.

    Raises:
        ValidationError: On a malformed pair or a level outside [low, high]
    """
    result: dict[str, int] = {}
    if not raw:
        return result
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        key, sep, value = part.partition("=")
        if not sep or not key.strip() or not value.strip().isdigit():
            raise ValidationError(f"Invalid {name} entry '{part}'. Use name=LEVEL (e.g. shoulder=2)")
        level = int(value)
        if not low <= level <= high:
            raise ValidationError(f"{name} level for {key.strip()} must be between {low} and {high}")
        result[key.strip().lower()] = level
    return result
