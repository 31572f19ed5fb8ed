"""Profile commands: init, reset-block."""

import uuid
from datetime import datetime
from typing import Annotated, Optional

import typer

from ...core.lifecycle import reset_block
from ...core.models import Constraints, Goals, Preferences, TrainingBlock, UserProfile
from ...io.serializers import ValidationError
from .. import views
from ..app import DataDirOption, app, get_store, split_list


@app.command()
def init(
    data_dir: DataDirOption = None,
    training_age: Annotated[
        str,
        typer.Option("--training-age", "-a", help="beginner | intermediate | advanced"),
    ] = "intermediate",
    goal: Annotated[
        str,
        typer.Option("--goal", "-g", help="hypertrophy | strength | fat_loss | athleticism | general_health"),
    ] = "hypertrophy",
    secondary_goal: Annotated[
        str,
        typer.Option("--secondary-goal", help="posture | conditioning | injury_prevention | strength | none"),
    ] = "none",
    days_per_week: Annotated[
        int,
        typer.Option("--days-per-week", help="Training days per week (1-7)"),
    ] = 3,
    session_minutes: Annotated[
        int,
        typer.Option("--session-minutes", help="Time available per session"),
    ] = 60,
    equipment: Annotated[
        Optional[str],
        typer.Option("--equipment", "-e", help="Comma-separated equipment (empty = full gym)"),
    ] = None,
    split: Annotated[
        str,
        typer.Option("--split", help="ppl | upper_lower | full_body | custom"),
    ] = "ppl",
    injuries: Annotated[
        Optional[str],
        typer.Option("--injuries", help="Comma-separated injured body parts (e.g. shoulder,knee)"),
    ] = None,
    avoid: Annotated[
        Optional[str],
        typer.Option("--avoid", help="Comma-separated exercise ids to never select"),
    ] = None,
    favorites: Annotated[
        Optional[str],
        typer.Option("--favorites", help="Comma-separated favorite exercise ids"),
    ] = None,
    bodyweight_kg: Annotated[
        Optional[float],
        typer.Option("--bodyweight-kg", "-w", help="Current bodyweight in kg"),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing profile without prompting"),
    ] = False,
) -> None:
    """
    Initialize profile, goals, constraints and the first training block.

    Existing history is kept; the training block is only created when none
    exists yet.
    """
    store = get_store(data_dir)

    if store.profile_path.exists() and not force:
        views.print_warning(f"Profile already exists: {store.profile_path}")
        if not typer.confirm("Overwrite profile?"):
            raise typer.Exit(0)

    try:
        profile = UserProfile(
            training_age=training_age,  # type: ignore[arg-type]
            injuries=split_list(injuries),
            bodyweight_kg=bodyweight_kg,
        )
        goals = Goals(primary=goal, secondary=secondary_goal)  # type: ignore[arg-type]
        constraints = Constraints(
            days_per_week=days_per_week,
            session_minutes=session_minutes,
            available_equipment=split_list(equipment),
            split_type=split,  # type: ignore[arg-type]
        )
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    preferences = Preferences(
        favorite_exercise_ids=split_list(favorites),
        avoid_exercise_ids=split_list(avoid),
    )

    store.init()
    store.save_profile(profile, goals, constraints, preferences)
    views.print_success(f"Saved profile to {store.profile_path}")

    try:
        block = store.load_block()
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if block is None:
        block = TrainingBlock(
            block_id=uuid.uuid4().hex,
            sessions_per_week=days_per_week,
            start_date=datetime.now().strftime("%Y-%m-%d"),
        )
        store.save_block(block)
        views.print_success(f"Started training block #{block.block_number}")


@app.command("reset-block")
def reset_block_cmd(
    data_dir: DataDirOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Reset without prompting"),
    ] = False,
) -> None:
    """
    Reset the current training block to week 1 (counters zeroed).
    """
    store = get_store(data_dir)
    try:
        block = store.load_block()
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if block is None:
        views.print_error("No training block. Run 'mesocoach init' first.")
        raise typer.Exit(1)

    if not force and not typer.confirm(f"Reset block #{block.block_number} to week 1?"):
        raise typer.Exit(0)

    store.save_block(reset_block(block))
    views.print_success(f"Block #{block.block_number} reset to week 1")
