"""
Command-line interface for the schedule engine.

Usage:
    python -m schedule_engine generate input.json -o output.json --seed 42
    python -m schedule_engine validate input.json
    python -m schedule_engine view output.json --teacher t1
    python -m schedule_engine conflicts output.json
    python -m schedule_engine audit input.json output.json
    python -m schedule_engine sample school.json --size small
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from .data.generator import (
    generate_large_school,
    generate_medium_school,
    generate_small_school,
    get_generation_stats,
    save_generated_school,
)
from .data.loader import DataValidationError, load_school_data, validate_school_data
from .data.models import DAY_NAMES, GenerationInput, convert_keys_to_snake_case, day_name
from .engine import AllocationEngine, GenerationProgress, RunStatus
from .output.conflicts import detect_conflicts
from .output.schema import (
    EntitySchedule,
    GenerationOutput,
    create_generation_output,
)
from .settings import ScheduleGenerationSettings, load_settings_from_json

# Create Typer app
app = typer.Typer(
    name="schedule-engine",
    help="School schedule generator using greedy first-fit allocation.",
    add_completion=False,
)

# Rich console for pretty output
console = Console()

DAY_MAP = {name.lower(): i + 1 for i, name in enumerate(DAY_NAMES)}

SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "dim",
}

SAMPLE_SIZES = {
    "small": generate_small_school,
    "medium": generate_medium_school,
    "large": generate_large_school,
}


# =============================================================================
# Helper Functions
# =============================================================================

def configure_logging(verbose: bool) -> None:
    """Route library logging through rich; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


def load_input(input_path: Path) -> GenerationInput:
    """Load and validate input data."""
    if not input_path.exists():
        console.print(f"[red]Error:[/red] Input file not found: {input_path}")
        raise typer.Exit(code=1)

    try:
        return load_school_data(input_path)
    except DataValidationError as e:
        console.print(f"[red]Error loading input:[/red] {escape(str(e))}", highlight=False)
        raise typer.Exit(code=1)


def load_settings(settings_path: Optional[Path]) -> ScheduleGenerationSettings:
    """Load settings, or defaults when no path is given."""
    if settings_path is None:
        return ScheduleGenerationSettings()

    if not settings_path.exists():
        console.print(f"[red]Error:[/red] Settings file not found: {settings_path}")
        raise typer.Exit(code=1)

    try:
        return load_settings_from_json(settings_path)
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Invalid settings:[/red] {escape(str(e))}", highlight=False)
        raise typer.Exit(code=1)


def load_output(output_path: Path) -> GenerationOutput:
    """Load output JSON file."""
    if not output_path.exists():
        console.print(f"[red]Error:[/red] Output file not found: {output_path}")
        raise typer.Exit(code=1)

    try:
        with open(output_path, encoding="utf-8") as f:
            data = json.load(f)
        return GenerationOutput.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Error loading output:[/red] {escape(str(e))}", highlight=False)
        raise typer.Exit(code=1)


def print_summary(output: GenerationOutput) -> None:
    """Print run summary to console."""
    status_color = {
        "completed": "green",
        "cancelled": "yellow",
    }.get(output.status.value, "red")
    status_text = Text(output.status.value.upper(), style=f"bold {status_color}")

    console.print(Panel(
        status_text,
        title="Generation Status",
        subtitle=f"Finished in {output.solve_time_ms / 1000:.2f}s",
    ))

    if output.message:
        console.print(output.message, markup=False)

    stats = output.statistics
    table = Table(title="Summary", show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Sessions Requested", str(stats.total_schedules))
    table.add_row("Sessions Allocated", str(stats.successful_allocations))
    table.add_row("Conflicts", str(stats.conflicts))
    table.add_row("Satisfaction Rate", f"{stats.satisfaction_rate}%")
    table.add_row("Average Workload", f"{stats.average_workload:.2f}")
    table.add_row("Teacher Gaps", str(stats.teacher_gaps))
    table.add_row("Special Room Fallbacks", str(stats.special_room_fallbacks))
    table.add_row("Teachers", str(len(output.views.by_teacher)))
    table.add_row("Classes", str(len(output.views.by_class)))
    table.add_row("Rooms Used", str(len(output.views.by_room)))

    console.print(table)


def print_conflicts(conflicts: list, title: str = "Conflicts") -> None:
    """Print conflicts as a table, most severe first."""
    order = list(SEVERITY_STYLES)
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Severity")
    table.add_column("Type")
    table.add_column("Description")
    table.add_column("Resolved")

    for conflict in sorted(conflicts, key=lambda c: (order.index(c.severity.value), c.id)):
        style = SEVERITY_STYLES[conflict.severity.value]
        table.add_row(
            Text(conflict.severity.value, style=style),
            conflict.type.value,
            Text(conflict.description),
            "yes" if conflict.resolved else "no",
        )

    console.print(table)


# =============================================================================
# Commands
# =============================================================================

@app.command()
def generate(
    input_file: Path = typer.Argument(
        ...,
        help="Path to input JSON file with school data",
        exists=True,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Path to write output JSON file",
    ),
    settings_file: Optional[Path] = typer.Option(
        None,
        "--settings", "-s",
        help="Path to generation settings JSON file",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Shuffle seed for reproducible runs",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Exit with code 2 when any session stays unassigned",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable debug logging",
    ),
) -> None:
    """
    Generate a weekly schedule.

    Loads the input data, runs the allocation engine, and outputs the schedule.

    Example:
        python -m schedule_engine generate input.json -o output.json --seed 42
    """
    configure_logging(verbose)
    console.print(f"\n[bold]Loading input from:[/bold] {input_file}")

    input_data = load_input(input_file)
    settings = load_settings(settings_file)

    summary = input_data.summary()
    console.print(
        f"[green]Loaded:[/green] {summary['classes']} classes, {summary['teachers']} teachers, "
        f"{summary['classrooms']} classrooms, {summary['time_slots']} time slots"
    )

    console.print("\n[bold]Generating schedule...[/bold]")
    engine = AllocationEngine(settings)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Allocating sessions...", total=100)

        def on_progress(update: GenerationProgress) -> None:
            progress.update(task, completed=update.percent)

        result = engine.generate(input_data, seed=seed, progress=on_progress)

    generation_output = create_generation_output(result, input_data)

    console.print()
    print_summary(generation_output)

    if result.status == RunStatus.FAILED:
        console.print(f"\n[red]Generation failed:[/red] {escape(result.message)}", highlight=False)
        raise typer.Exit(code=1)

    if result.conflicts and verbose:
        console.print()
        print_conflicts(result.conflicts)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", encoding="utf-8") as f:
            f.write(generation_output.to_json())
        console.print(f"\n[green]Schedule saved to:[/green] {output}")

    console.print()

    if strict and result.conflicts:
        raise typer.Exit(code=2)


@app.command()
def validate(
    input_file: Path = typer.Argument(
        ...,
        help="Path to input JSON file to validate",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show detailed validation results",
    ),
) -> None:
    """
    Validate input data against the schema.

    Checks for:
    - Valid JSON structure
    - Schema compliance
    - Reference integrity (teacher IDs, subject IDs, etc.)
    - Capacity problems likely to leave sessions unassigned

    Example:
        python -m schedule_engine validate input.json
    """
    console.print(f"\n[bold]Validating:[/bold] {input_file}\n")

    if not input_file.exists():
        console.print(f"[red]Error:[/red] File not found: {input_file}")
        raise typer.Exit(code=1)

    # Step 1: JSON parsing
    console.print("[cyan]1. Checking JSON syntax...[/cyan]")
    try:
        with open(input_file, encoding="utf-8") as f:
            raw_data = json.load(f)
        console.print("   [green]JSON syntax is valid[/green]")
    except json.JSONDecodeError as e:
        console.print(f"   [red]Invalid JSON:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    # Step 2: Schema validation
    console.print("[cyan]2. Validating against schema...[/cyan]")
    try:
        input_data = GenerationInput.model_validate(convert_keys_to_snake_case(raw_data))
        console.print("   [green]Schema validation passed[/green]")
    except ValidationError as e:
        console.print("   [red]Schema validation failed:[/red]")
        for line in str(e).split("\n"):
            console.print(f"   {line}", markup=False)
        raise typer.Exit(code=1)

    # Step 3: Consistency
    console.print("[cyan]3. Checking references and capacity...[/cyan]")
    warnings = validate_school_data(input_data)

    if warnings:
        console.print("   [yellow]Warnings found:[/yellow]")
        for w in warnings:
            console.print(f"   - {w}", markup=False)
    else:
        console.print("   [green]No consistency issues[/green]")

    # Summary
    summary = input_data.summary()
    console.print("\n[bold]Summary:[/bold]")
    table = Table(show_header=False, box=None)
    table.add_column("Entity", style="cyan")
    table.add_column("Count", style="white")

    table.add_row("Teachers", str(summary["teachers"]))
    table.add_row("Classes", str(summary["classes"]))
    table.add_row("Subjects", str(summary["subjects"]))
    table.add_row("Classrooms", str(summary["classrooms"]))
    table.add_row("Time slots", str(summary["time_slots"]))
    table.add_row("Session requirements", str(summary["session_requirements"]))
    table.add_row("Sessions per week", str(summary["total_sessions_per_week"]))

    console.print(table)

    if verbose:
        console.print("\n[bold]Detailed breakdown:[/bold]")
        for day in sorted({s.day_of_week for s in input_data.get_schedulable_slots()}):
            console.print(f"  {day_name(day)}: {len(input_data.get_slots_by_day(day))} schedulable slots")
        console.print(f"  Active restrictions: {sum(1 for r in input_data.teacher_restrictions if r.is_active)}")

    console.print("\n[green]Validation complete.[/green]\n")


@app.command()
def view(
    output_file: Path = typer.Argument(
        ...,
        help="Path to output JSON file",
        exists=True,
    ),
    teacher: Optional[str] = typer.Option(
        None,
        "--teacher", "-T",
        help="Show schedule for specific teacher ID",
    ),
    class_id: Optional[str] = typer.Option(
        None,
        "--class", "-C",
        help="Show schedule for specific class ID",
    ),
    room: Optional[str] = typer.Option(
        None,
        "--room", "-R",
        help="Show schedule for specific classroom ID",
    ),
    day: Optional[str] = typer.Option(
        None,
        "--day", "-D",
        help="Show schedule for specific day (monday, tuesday, etc.)",
    ),
) -> None:
    """
    Display specific views of a generated schedule.

    Examples:
        python -m schedule_engine view output.json --teacher t1
        python -m schedule_engine view output.json --class c6a
        python -m schedule_engine view output.json --day monday
    """
    output = load_output(output_file)

    if teacher:
        _show_entity_view(output.views.by_teacher, teacher, "Teacher", show_class=True)
    elif class_id:
        _show_entity_view(output.views.by_class, class_id, "Class", show_teacher=True)
    elif room:
        _show_entity_view(output.views.by_room, room, "Room", show_teacher=True, show_class=True)
    elif day:
        _show_day_view(output, day)
    else:
        _show_overview(output)


def _show_entity_view(
    schedules: dict[str, EntitySchedule],
    entity_id: str,
    label: str,
    show_teacher: bool = False,
    show_class: bool = False,
) -> None:
    """Show schedule for one teacher, class or room."""
    schedule = schedules.get(entity_id)
    if not schedule:
        console.print(f"[red]Error:[/red] {label} '{entity_id}' not found")
        console.print(f"Available: {', '.join(sorted(schedules.keys()))}", markup=False)
        raise typer.Exit(code=1)

    console.print(Panel(
        f"[bold]{schedule.name}[/bold] ({schedule.id})",
        title=f"{label} Schedule",
    ))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Day", style="cyan")
    table.add_column("Time")
    table.add_column("Subject")
    if show_teacher:
        table.add_column("Teacher")
    if show_class:
        table.add_column("Class")
    table.add_column("Room")

    for day in sorted(schedule.by_day.keys()):
        for session in schedule.by_day[day]:
            row = [
                day_name(day),
                _time_range(session),
                session.subject_name or session.subject_id,
            ]
            if show_teacher:
                row.append(session.teacher_name or session.teacher_id)
            if show_class:
                row.append(session.class_name or session.class_id)
            row.append(session.classroom_name or session.classroom_id)
            table.add_row(*row)

    console.print(table)


def _show_day_view(output: GenerationOutput, day_label: str) -> None:
    """Show schedule for a specific day."""
    day_lower = day_label.lower()
    if day_lower not in DAY_MAP:
        console.print(f"[red]Error:[/red] Invalid day '{day_label}'")
        console.print(f"Valid days: {', '.join(DAY_MAP.keys())}")
        raise typer.Exit(code=1)

    day = DAY_MAP[day_lower]
    day_schedule = output.views.by_day.get(day)

    if not day_schedule:
        console.print(f"[yellow]No sessions scheduled for {day_name(day)}[/yellow]")
        return

    console.print(Panel(
        f"[bold]{day_schedule.day_name}[/bold]",
        title="Daily Schedule",
    ))

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Time")
    table.add_column("Subject")
    table.add_column("Teacher")
    table.add_column("Class")
    table.add_column("Room")

    for session in day_schedule.sessions:
        table.add_row(
            _time_range(session),
            session.subject_name or session.subject_id,
            session.teacher_name or session.teacher_id,
            session.class_name or session.class_id,
            session.classroom_name or session.classroom_id,
        )

    console.print(table)


def _show_overview(output: GenerationOutput) -> None:
    """Show overview of the schedule."""
    print_summary(output)

    console.print("\n[bold]Weekly Overview:[/bold]")

    start_times = sorted({s.start_time or s.time_slot_id for s in output.sessions})
    days = sorted(output.views.by_day.keys())

    if not start_times or not days:
        console.print("[yellow]No sessions scheduled[/yellow]")
        return

    table = Table(title="Sessions per Slot", show_header=True, header_style="bold cyan")
    table.add_column("Time", style="dim")
    for day in days:
        table.add_column(day_name(day)[:3], justify="center")

    for start in start_times:
        row = [start]
        for day in days:
            count = sum(
                1 for s in output.views.by_day[day].sessions
                if (s.start_time or s.time_slot_id) == start
            )
            row.append(str(count) if count else "-")
        table.add_row(*row)

    console.print(table)


def _time_range(session) -> str:
    if session.start_time and session.end_time:
        return f"{session.start_time}-{session.end_time}"
    return session.time_slot_label or session.time_slot_id


@app.command()
def conflicts(
    output_file: Path = typer.Argument(
        ...,
        help="Path to output JSON file",
        exists=True,
    ),
    severity: Optional[str] = typer.Option(
        None,
        "--severity",
        help="Only show conflicts of this severity (critical, high, medium, low)",
    ),
    unresolved: bool = typer.Option(
        False,
        "--unresolved",
        help="Hide resolved conflicts",
    ),
) -> None:
    """
    List the conflicts recorded in a generated schedule.

    Example:
        python -m schedule_engine conflicts output.json --severity high
    """
    output = load_output(output_file)

    if severity is not None and severity.lower() not in SEVERITY_STYLES:
        console.print(f"[red]Error:[/red] Invalid severity '{severity}'")
        console.print(f"Valid severities: {', '.join(SEVERITY_STYLES)}")
        raise typer.Exit(code=1)

    selected = output.to_conflicts()
    if severity is not None:
        selected = [c for c in selected if c.severity.value == severity.lower()]
    if unresolved:
        selected = [c for c in selected if not c.resolved]

    if not selected:
        console.print("[green]No conflicts.[/green]")
        return

    print_conflicts(selected)
    console.print(f"\n{len(selected)} conflict(s)")


@app.command()
def audit(
    input_file: Path = typer.Argument(
        ...,
        help="Path to input JSON file the schedule was generated from",
        exists=True,
    ),
    output_file: Path = typer.Argument(
        ...,
        help="Path to output JSON file to audit",
        exists=True,
    ),
    settings_file: Optional[Path] = typer.Option(
        None,
        "--settings", "-s",
        help="Settings JSON; enables the daily workload check",
    ),
) -> None:
    """
    Check a saved schedule against the hard constraints.

    Reports double bookings, undersized or wrong-type rooms, restriction
    violations and, with --settings, daily workload overruns. Exits with
    code 1 when anything is found.

    Example:
        python -m schedule_engine audit input.json output.json
    """
    input_data = load_input(input_file)
    output = load_output(output_file)
    settings = load_settings(settings_file) if settings_file else None

    found = detect_conflicts(output.to_sessions(), input_data, settings)

    if not found:
        console.print(f"[green]No violations in {len(output.sessions)} sessions.[/green]")
        return

    print_conflicts(found, title="Violations")
    console.print(f"\n[red]{len(found)} violation(s) found[/red]")
    raise typer.Exit(code=1)


@app.command()
def sample(
    output_file: Path = typer.Argument(
        ...,
        help="Path to write the generated school JSON",
    ),
    size: str = typer.Option(
        "small",
        "--size",
        help="School size: small, medium or large",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Random seed for reproducible data",
    ),
) -> None:
    """
    Write a randomly generated school to a JSON file.

    Example:
        python -m schedule_engine sample school.json --size medium --seed 7
    """
    factory = SAMPLE_SIZES.get(size.lower())
    if factory is None:
        console.print(f"[red]Error:[/red] Invalid size '{size}'")
        console.print(f"Valid sizes: {', '.join(SAMPLE_SIZES)}")
        raise typer.Exit(code=1)

    school = factory(seed=seed)
    save_generated_school(school, output_file)

    stats = get_generation_stats(school)
    table = Table(title="Generated School", show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    for key in ("teachers", "classes", "classrooms", "schedulable_slots", "total_sessions", "utilization_percent"):
        table.add_row(key.replace("_", " ").capitalize(), str(stats[key]))

    console.print(table)
    console.print(f"\n[green]School data saved to:[/green] {output_file}")


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
