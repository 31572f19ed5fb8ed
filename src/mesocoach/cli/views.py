"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of generated sessions, history and
block status.
"""

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.config import RirBand
from ..core.deload import DeloadDecision
from ..core.lifecycle import CycleContextSnapshot
from ..core.models import TrainingBlock, WorkoutExercise, WorkoutHistoryEntry, WorkoutPlan
from ..core.progression import ProgressionReceipt
from ..core.selection.types import SelectionOutput
from ..core.substitution import SubstituteSuggestion
from ..core.volume import MuscleVolumeCompliance
from ..io.translation import AutoregulationLog, SelectionRationale

console = Console()

_STATUS_STYLE = {
    "OVER_MAV": "red",
    "AT_MAV": "yellow",
    "APPROACHING_MAV": "yellow",
    "ON_TARGET": "green",
    "OVER_TARGET": "green",
    "UNDER_MEV": "red",
}


def _fmt_load(load: float | None) -> str:
    if load is None:
        return "-"
    if load == 0:
        return "BW"
    return f"{load:g} kg"


def _fmt_sets(entry: WorkoutExercise) -> str:
    """Collapse identical consecutive sets: '1×8 @ 100 kg, 3×8 @ 90 kg'."""
    groups: list[tuple[int, int, float | None]] = []
    for s in entry.sets:
        if groups and groups[-1][1] == s.target_reps and groups[-1][2] == s.target_load:
            count, reps, load = groups[-1]
            groups[-1] = (count + 1, reps, load)
        else:
            groups.append((1, s.target_reps, s.target_load))
    return ", ".join(f"{n}×{reps} @ {_fmt_load(load)}" for n, reps, load in groups)


def format_plan_table(plan: WorkoutPlan) -> Table:
    """
    Create a Rich table for a generated plan.

    Args:
        plan: Plan to display

    Returns:
        Rich Table object
    """
    table = Table(title=f"{plan.intent.replace('_', ' ').title()} session  {plan.scheduled_date}")

    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Exercise", style="cyan")
    table.add_column("Role", style="magenta")
    table.add_column("Sets", justify="right")
    table.add_column("Prescription")
    table.add_column("RPE", justify="right")
    table.add_column("Rest", justify="right", style="dim")
    table.add_column("Notes", style="yellow")

    for entry in [*plan.warmup, *plan.working_exercises()]:
        top = entry.sets[0] if entry.sets else None
        table.add_row(
            str(entry.order_index) if entry.role != "warmup" else "",
            entry.exercise.name,
            entry.role,
            str(len(entry.sets)),
            _fmt_sets(entry),
            f"{top.target_rpe:g}" if top is not None and top.target_rpe is not None else "-",
            f"{top.rest_seconds}s" if top is not None else "-",
            escape(entry.notes),
        )

    return table


def format_rationale_table(selection: SelectionOutput) -> Table:
    table = Table(title="Why these exercises")
    table.add_column("Exercise", style="cyan")
    table.add_column("Step", style="magenta")
    table.add_column("Score", justify="right")
    table.add_column("Reason")
    for exercise_id in selection.selected_exercise_ids:
        r = selection.rationale[exercise_id]
        table.add_row(exercise_id, r.selected_step, f"{r.score:.2f}", r.reason)
    return table


def format_receipt_table(receipts: dict[str, ProgressionReceipt]) -> Table:
    table = Table(title="Progression")
    table.add_column("Exercise", style="cyan")
    table.add_column("Last", justify="right")
    table.add_column("Today", justify="right", style="bold")
    table.add_column("Δ load", justify="right")
    table.add_column("Trigger", style="magenta")
    table.add_column("Conf.", justify="right")
    for exercise_id, receipt in receipts.items():
        last = receipt.last_performed
        last_str = f"{last.reps}×{_fmt_load(last.load)}" if last is not None else "-"
        today = receipt.today
        delta = receipt.deltas.load
        table.add_row(
            exercise_id,
            last_str,
            f"{today.reps}×{_fmt_load(today.load)}",
            f"{delta:+g}" if delta is not None else "-",
            receipt.trigger,
            f"{receipt.confidence:.2f}",
        )
    return table


def format_compliance_table(rows: list[MuscleVolumeCompliance]) -> Table:
    table = Table(title="Weekly volume")
    table.add_column("Muscle", style="cyan")
    table.add_column("Logged", justify="right")
    table.add_column("Today", justify="right")
    table.add_column("Projected", justify="right", style="bold")
    table.add_column("Target", justify="right")
    table.add_column("MEV/MAV", justify="right", style="dim")
    table.add_column("Status")
    for row in rows:
        style = _STATUS_STYLE.get(row.status, "")
        table.add_row(
            row.muscle,
            f"{row.sets_logged_before_session:g}",
            f"{row.sets_prescribed_this_session:g}",
            f"{row.projected_total:g}",
            str(row.weekly_target),
            f"{row.mev}/{row.mav}",
            f"[{style}]{row.status}[/{style}]" if style else row.status,
        )
    return table


def format_cycle_line(cycle: CycleContextSnapshot, deload: DeloadDecision | None = None) -> str:
    line = (
        f"Week {cycle.week_in_block} of block (week {cycle.week_in_meso} overall), "
        f"phase: {cycle.phase}"
    )
    if cycle.source == "fallback":
        line += " (no training block)"
    if deload is not None and deload.active:
        line += f"\nDeload: {deload.mode}, -{deload.reduction_percent}% {deload.scope}"
        for reason in deload.reasons:
            line += f"\n  - {reason}"
    return line


def print_generated(
    plan: WorkoutPlan,
    selection: SelectionOutput,
    receipts: dict[str, ProgressionReceipt],
    cycle: CycleContextSnapshot,
    deload: DeloadDecision,
    autoregulation_rationale: str,
    compliance: list[MuscleVolumeCompliance],
) -> None:
    """Print a generated session with everything that explains it."""
    console.print()
    console.print(format_cycle_line(cycle, deload))
    console.print()
    console.print(format_plan_table(plan))
    console.print(f"[dim]Estimated duration: {plan.estimated_minutes} min[/dim]")
    console.print()
    console.print(format_rationale_table(selection))
    if selection.strategy:
        console.print(f"[dim]{selection.strategy}[/dim]")
    console.print()
    console.print(format_receipt_table(receipts))
    console.print()
    console.print(f"Readiness: {autoregulation_rationale}")
    if compliance:
        console.print()
        console.print(format_compliance_table(compliance))
    console.print()


def format_history_table(entries: list[WorkoutHistoryEntry]) -> Table:
    """
    Create a Rich table displaying logged workouts.

    Args:
        entries: Workouts to display

    Returns:
        Rich Table object
    """
    table = Table(title="Training History")

    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Date", style="cyan", no_wrap=True)
    table.add_column("Intent", style="magenta")
    table.add_column("Mode", style="dim")
    table.add_column("Status")
    table.add_column("Week", justify="right")
    table.add_column("Exercises")
    table.add_column("Sets", justify="right", style="bold")

    for i, entry in enumerate(entries, 1):
        sets = sum(1 for e in entry.exercises for s in e.sets if not s.skipped)
        table.add_row(
            str(i),
            entry.date,
            entry.intent or "-",
            entry.selection_mode,
            entry.status,
            str(entry.block_week) if entry.block_week is not None else "-",
            ", ".join(entry.exercise_ids()),
            str(sets),
        )

    return table


def print_history(entries: list[WorkoutHistoryEntry]) -> None:
    if not entries:
        console.print("[yellow]No sessions recorded yet.[/yellow]")
        return
    console.print(format_history_table(entries))


def format_status_display(
    block: TrainingBlock | None,
    cycle: CycleContextSnapshot,
    rir: RirBand | None,
) -> str:
    """
    Format block status as a text block.

    Args:
        block: Current training block, if any
        cycle: Cycle snapshot for the block
        rir: Current RIR band

    Returns:
        Formatted string
    """
    lines = ["Current block"]
    if block is None:
        lines.append("- No training block. Run 'mesocoach init' to start one.")
        return "\n".join(lines)
    lines.extend(
        [
            f"- Block: #{block.block_number} ({block.block_id[:8]})",
            f"- State: {block.state}",
            f"- Week: {cycle.week_in_block} (overall week {cycle.week_in_meso})",
            f"- Sessions: {block.accumulation_sessions_completed} accumulation, "
            f"{block.deload_sessions_completed} deload",
        ]
    )
    if rir is not None:
        lines.append(f"- Target RIR: {rir.min}-{rir.max}")
    return "\n".join(lines)


def print_substitutes(original: str, suggestions: list[SubstituteSuggestion]) -> None:
    if not suggestions:
        console.print(f"[yellow]No substitutes found for {original}.[/yellow]")
        return
    table = Table(title=f"Substitutes for {original}")
    table.add_column("Exercise", style="cyan")
    table.add_column("Score", justify="right", style="bold")
    table.add_column("Shared patterns")
    table.add_column("Shared muscles")
    for s in suggestions:
        table.add_row(
            f"{s.exercise.name} ({s.exercise.exercise_id})",
            f"{s.score:g}",
            ", ".join(s.shared_patterns) or "-",
            ", ".join(s.shared_primary_muscles) or "-",
        )
    console.print(table)


def print_explanation(
    plan: dict,
    rationale: SelectionRationale,
    log: AutoregulationLog,
) -> None:
    """Print the stored provenance of the last generated plan."""
    console.print()
    console.print(
        f"[bold]Last plan[/bold]: {plan.get('intent', '?')} on {plan.get('scheduled_date', '?')}"
    )
    console.print(f"[dim]{rationale.strategy}[/dim]")
    table = Table(title="Selection")
    table.add_column("Exercise", style="cyan")
    table.add_column("Step", style="magenta")
    table.add_column("Score", justify="right")
    table.add_column("Top components")
    table.add_column("Reason")
    for exercise_id, r in rationale.exercises.items():
        top = sorted(r.components.items(), key=lambda kv: -kv[1])[:2]
        table.add_row(
            exercise_id,
            r.selected_step,
            f"{r.score:.2f}",
            ", ".join(f"{k} {v:.2f}" for k, v in top),
            r.reason,
        )
    console.print(table)
    console.print()
    console.print(f"Autoregulation ({log.action}): {log.rationale}")
    for mod in log.modifications:
        console.print(f"  - {mod.exercise_id}: {mod.type.replace('_', ' ')}")
    console.print()


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")
