"""Analysis commands: status, explain."""

import json
from dataclasses import asdict
from datetime import datetime
from typing import Annotated

import typer

from ...core.engine.config_loader import load_model_config, resolve_landmark_overrides
from ...core.exercises.registry import EXERCISE_REGISTRY
from ...core.landmarks import lookup_landmark, tracked_muscles
from ...core.lifecycle import current_week, cycle_context, rir_target
from ...core.volume import count_weekly_volume, resolve_volume_window, week_to_date_compliance
from ...io.serializers import ValidationError
from .. import views
from ..app import DataDirOption, app, load_context, require_store


@app.command()
def status(
    data_dir: DataDirOption = None,
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for machine processing"),
    ] = False,
) -> None:
    """
    Show block state, week, RIR target and this week's volume per muscle.
    """
    store = require_store(data_dir)
    context = load_context(store)
    block = context.block

    config = load_model_config()
    overrides = resolve_landmark_overrides(config)
    landmarks = {m: lookup_landmark(m, overrides) for m in tracked_muscles()}
    today = datetime.now().strftime("%Y-%m-%d")
    weekly = count_weekly_volume(context.history, EXERCISE_REGISTRY, resolve_volume_window(block, today))

    cycle = cycle_context(block)
    rir = rir_target(block, config) if block is not None else None
    rows = week_to_date_compliance(
        weekly,
        landmarks,
        current_week(block) if block is not None else 1,
        cycle.is_deload,
        block.volume_ramp_step if block is not None else None,
    )

    if json_out:
        print(json.dumps({
            "block": {
                "block_id": block.block_id,
                "block_number": block.block_number,
                "state": block.state,
                "accumulation_sessions_completed": block.accumulation_sessions_completed,
                "deload_sessions_completed": block.deload_sessions_completed,
            } if block is not None else None,
            "cycle": asdict(cycle),
            "rir": {"min": rir.min, "max": rir.max} if rir is not None else None,
            "volume": [asdict(r) for r in rows],
        }, indent=2))
        return

    views.console.print()
    views.console.print(views.format_status_display(block, cycle, rir))
    views.console.print()
    views.console.print(views.format_compliance_table(rows))
    views.console.print()


@app.command()
def explain(
    data_dir: DataDirOption = None,
) -> None:
    """
    Explain the last generated plan: why each exercise was chosen and what
    autoregulation changed.
    """
    store = require_store(data_dir)
    try:
        loaded = store.load_last_plan()
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if loaded is None:
        views.print_warning("No plan generated yet. Run 'mesocoach generate <intent>' first.")
        raise typer.Exit(0)

    plan, rationale, log = loaded
    views.print_explanation(plan, rationale, log)
