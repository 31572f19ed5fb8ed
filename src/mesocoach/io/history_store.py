"""
File-based storage for the trainee's training data.

One directory (``~/.mesocoach`` by default) holds:

    profile.json      profile, goals, constraints, preferences
    history.jsonl     one logged workout per line
    block.json        current training block plus archived ones
    readiness.jsonl   one readiness check-in per line
    last_plan.json    the most recent generated plan with its provenance

Stored enumerated values use the storage vocabulary (see translation.py).
Multi-file updates are written to temporary files first and swapped in with
os.replace so a crash never leaves the history and block out of step.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..core.engine.config_loader import get_user_dir
from ..core.lifecycle import LifecycleTransition, current_week, record_performed_session
from ..core.models import (
    Constraints,
    Goals,
    Preferences,
    ReadinessSignal,
    TrainingBlock,
    UserProfile,
    WorkoutHistoryEntry,
)
from .serializers import (
    ValidationError,
    block_to_dict,
    dict_to_block,
    dict_to_profile,
    dict_to_readiness,
    dict_to_workout_entry,
    profile_to_dict,
    readiness_to_dict,
    workout_entry_to_dict,
)
from .translation import (
    AutoregulationLog,
    SelectionRationale,
    block_from_storage,
    block_to_storage,
    parse_autoregulation_log,
    parse_selection_rationale,
    workout_from_storage,
    workout_to_storage,
)

logger = logging.getLogger(__name__)


def _write_atomic(path: Path, text: str) -> Path:
    """Write *text* to a temp file beside *path* and return the temp path."""
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(text)
    return Path(tmp)


class TrainingStore:
    """
    Manages a trainee's data directory.

    Readers return engine-vocabulary models; writers translate back to the
    storage vocabulary.  Any malformed record raises ValidationError naming
    the file (and line, for JSONL files).
    """

    def __init__(self, data_dir: str | Path):
        """
        Initialize the store.

        Args:
            data_dir: Directory holding the data files
        """
        self.data_dir = Path(data_dir)
        self.profile_path = self.data_dir / "profile.json"
        self.history_path = self.data_dir / "history.jsonl"
        self.block_path = self.data_dir / "block.json"
        self.readiness_path = self.data_dir / "readiness.jsonl"
        self.plan_path = self.data_dir / "last_plan.json"

    def exists(self) -> bool:
        """Check if the store has been initialized."""
        return self.history_path.exists()

    def init(self) -> None:
        """Create the directory and empty history/readiness files if missing."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for path in (self.history_path, self.readiness_path):
            if not path.exists():
                path.touch()

    def _require_init(self) -> None:
        if not self.exists():
            raise FileNotFoundError(
                f"History file not found: {self.history_path}. Run 'mesocoach init' first."
            )

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    def load_profile(
        self,
    ) -> tuple[UserProfile | None, Goals | None, Constraints | None, Preferences]:
        """
        Load profile.json.

        Returns:
            (profile, goals, constraints, preferences); missing parts are None

        Raises:
            ValidationError: If the file exists but is malformed
        """
        if not self.profile_path.exists():
            return None, None, None, Preferences()
        try:
            with open(self.profile_path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Error parsing {self.profile_path}: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"{self.profile_path}: expected a JSON object")
        return dict_to_profile(data)

    def save_profile(
        self,
        profile: UserProfile,
        goals: Goals,
        constraints: Constraints,
        preferences: Preferences,
    ) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        data = profile_to_dict(profile, goals, constraints, preferences)
        with open(self.profile_path, "w") as f:
            json.dump(data, f, indent=2)

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def load_history(self) -> list[WorkoutHistoryEntry]:
        """
        Load all logged workouts.

        Returns:
            Entries sorted by date

        Raises:
            FileNotFoundError: If the store is not initialized
            ValidationError: If any line is malformed
        """
        self._require_init()
        entries: list[WorkoutHistoryEntry] = []
        with open(self.history_path, "r") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                    if not isinstance(data, dict):
                        raise ValidationError("expected a JSON object")
                    entries.append(dict_to_workout_entry(workout_from_storage(data)))
                except (json.JSONDecodeError, ValidationError) as e:
                    raise ValidationError(
                        f"Error parsing line {line_num} in {self.history_path}: {e}"
                    ) from e
        entries.sort(key=lambda e: e.date)
        return entries

    def _history_text(self, entries: list[WorkoutHistoryEntry]) -> str:
        return "".join(
            json.dumps(workout_to_storage(workout_entry_to_dict(e))) + "\n" for e in entries
        )

    def append_workout(self, entry: WorkoutHistoryEntry) -> None:
        """
        Add a workout, keeping chronological order.

        An entry with the same workout_id as an existing one replaces it.
        """
        self._require_init()
        entries = self._merged_history(entry)
        tmp = _write_atomic(self.history_path, self._history_text(entries))
        os.replace(tmp, self.history_path)

    def _merged_history(self, entry: WorkoutHistoryEntry) -> list[WorkoutHistoryEntry]:
        entries = self.load_history()
        if entry.workout_id:
            entries = [e for e in entries if e.workout_id != entry.workout_id]
        entries.append(entry)
        entries.sort(key=lambda e: e.date)
        return entries

    def _find_workout(self, workout_id: str) -> WorkoutHistoryEntry | None:
        if not workout_id:
            return None
        for e in self.load_history():
            if e.workout_id == workout_id:
                return e
        return None

    def delete_workout_at(self, index: int) -> None:
        """
        Delete the workout at the given 0-based index in sorted history.

        Raises:
            IndexError: If index is out of range
        """
        entries = self.load_history()
        if index < 0 or index >= len(entries):
            raise IndexError(f"Workout index {index} out of range (0-{len(entries) - 1})")
        del entries[index]
        tmp = _write_atomic(self.history_path, self._history_text(entries))
        os.replace(tmp, self.history_path)

    # -------------------------------------------------------------------------
    # Training block
    # -------------------------------------------------------------------------

    def _load_block_file(self) -> dict[str, Any]:
        if not self.block_path.exists():
            return {"current": None, "archived": []}
        try:
            with open(self.block_path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Error parsing {self.block_path}: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"{self.block_path}: expected a JSON object")
        data.setdefault("current", None)
        data.setdefault("archived", [])
        return data

    def load_block(self) -> TrainingBlock | None:
        """
        Load the current training block.

        Raises:
            ValidationError: If the stored block is malformed
        """
        current = self._load_block_file()["current"]
        if current is None:
            return None
        try:
            return dict_to_block(block_from_storage(current))
        except ValidationError as e:
            raise ValidationError(f"Error parsing current block in {self.block_path}: {e}") from e

    def load_archived_blocks(self) -> list[TrainingBlock]:
        return [dict_to_block(block_from_storage(b)) for b in self._load_block_file()["archived"]]

    def _block_text(self, current: TrainingBlock, archived: list[dict[str, Any]]) -> str:
        data = {"current": block_to_storage(block_to_dict(current)), "archived": archived}
        return json.dumps(data, indent=2)

    def save_block(self, block: TrainingBlock) -> None:
        """Replace the current block (archived blocks are kept)."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        archived = self._load_block_file()["archived"]
        tmp = _write_atomic(self.block_path, self._block_text(block, archived))
        os.replace(tmp, self.block_path)

    def record_performed_session(self, entry: WorkoutHistoryEntry) -> LifecycleTransition | None:
        """
        Log a performed workout and advance the lifecycle in one step.

        The entry is stamped with the current block id and week before it is
        written.  History and block files are both staged before either is
        swapped in; if staging fails nothing changes on disk.

        Re-logging a workout_id that is already recorded as performed replaces
        that entry in place: it keeps its block stamp and the lifecycle does
        not advance a second time.

        Returns:
            The lifecycle transition, or None when no block exists
        """
        self._require_init()
        block = self.load_block()
        transition = None
        previous = self._find_workout(entry.workout_id)
        if previous is not None and previous.is_performed:
            if entry.block_id is None:
                entry.block_id = previous.block_id
                entry.block_week = previous.block_week
            logger.info("Workout %s already recorded, replacing it without a lifecycle step", entry.workout_id)
        elif block is not None and entry.is_performed:
            if entry.block_id is None:
                entry.block_id = block.block_id
                entry.block_week = current_week(block)
            transition = record_performed_session(block, session_date=entry.date)

        history_tmp = _write_atomic(self.history_path, self._history_text(self._merged_history(entry)))
        block_tmp = None
        try:
            if transition is not None and transition.applied:
                archived = self._load_block_file()["archived"]
                if transition.successor is not None:
                    archived = archived + [block_to_storage(block_to_dict(transition.block))]
                    current = transition.successor
                else:
                    current = transition.block
                block_tmp = _write_atomic(self.block_path, self._block_text(current, archived))
        except Exception:
            history_tmp.unlink(missing_ok=True)
            raise

        os.replace(history_tmp, self.history_path)
        if block_tmp is not None:
            os.replace(block_tmp, self.block_path)
        logger.debug("Recorded workout %s on %s", entry.workout_id, entry.date)
        return transition

    # -------------------------------------------------------------------------
    # Readiness
    # -------------------------------------------------------------------------

    def load_readiness(self) -> list[ReadinessSignal]:
        """
        Load readiness check-ins, oldest first.

        Raises:
            ValidationError: If any line is malformed
        """
        if not self.readiness_path.exists():
            return []
        signals: list[ReadinessSignal] = []
        with open(self.readiness_path, "r") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                    if not isinstance(data, dict):
                        raise ValidationError("expected a JSON object")
                    signals.append(dict_to_readiness(data))
                except (json.JSONDecodeError, ValidationError) as e:
                    raise ValidationError(
                        f"Error parsing line {line_num} in {self.readiness_path}: {e}"
                    ) from e
        signals.sort(key=lambda s: s.timestamp)
        return signals

    def append_readiness(self, signal: ReadinessSignal) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.readiness_path, "a") as f:
            f.write(json.dumps(readiness_to_dict(signal)) + "\n")

    # -------------------------------------------------------------------------
    # Last generated plan
    # -------------------------------------------------------------------------

    def save_last_plan(
        self,
        plan: dict[str, Any],
        selection_rationale: dict[str, Any],
        autoregulation_log: dict[str, Any],
    ) -> None:
        """Persist the latest generated plan with its provenance blobs."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        data = {
            "plan": plan,
            "selection_rationale": selection_rationale,
            "autoregulation_log": autoregulation_log,
        }
        tmp = _write_atomic(self.plan_path, json.dumps(data, indent=2))
        os.replace(tmp, self.plan_path)

    def load_last_plan(
        self,
    ) -> tuple[dict[str, Any], SelectionRationale, AutoregulationLog] | None:
        """
        Load the last generated plan.

        Returns:
            (plan dict, parsed selection rationale, parsed autoregulation log),
            or None if no plan was saved

        Raises:
            ValidationError: If the file or either blob is malformed
        """
        if not self.plan_path.exists():
            return None
        try:
            with open(self.plan_path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Error parsing {self.plan_path}: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("plan"), dict):
            raise ValidationError(f"{self.plan_path}: missing plan")
        return (
            data["plan"],
            parse_selection_rationale(data.get("selection_rationale")),
            parse_autoregulation_log(data.get("autoregulation_log")),
        )


def get_default_store() -> TrainingStore:
    """
    Get a TrainingStore for the default data directory.

    Returns:
        TrainingStore over MESOCOACH_HOME or ~/.mesocoach
    """
    return TrainingStore(get_user_dir())
