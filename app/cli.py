"""
SprintPilot CLI - sprint metrics and task import from the command line.

Usage:
    sprintpilot --help                          Show all commands
    sprintpilot metrics tasks.xlsx              Print sprint KPIs for a file
    sprintpilot metrics tasks.csv --today 2026-03-01
    sprintpilot preview tasks.csv               Show how rows will be imported
    sprintpilot import tasks.csv --project p1   Save tasks to the database
"""

import asyncio
from datetime import date, datetime
from pathlib import Path

import typer

app = typer.Typer(
    name="sprintpilot",
    help="SprintPilot CLI - sprint metrics and task import",
    no_args_is_help=True,
)


# --- Printer helpers ---


def _print_success(message: str) -> None:
    """Print a success message."""
    typer.echo(f"  ✅ {message}")


def _print_warning(message: str) -> None:
    """Print a warning message."""
    typer.echo(f"  ⚠️ {message}")


def _print_error(message: str) -> None:
    """Print an error message to stderr."""
    typer.echo(f"❌ {message}", err=True)


def _load_tasks(path: Path):
    """Read and normalize a CSV/Excel file, exiting on unreadable input."""
    from app.config import get_config
    from app.core.errors import ImportParseError
    from app.ingest import normalize_rows, read_table

    try:
        rows = read_table(path.read_bytes(), path.name)
    except (OSError, ImportParseError) as e:
        _print_error(str(e))
        raise typer.Exit(1) from e

    return normalize_rows(rows, max_rows=get_config().importer.max_rows)


def _parse_today(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        _print_error(f"Invalid date '{value}', expected YYYY-MM-DD")
        raise typer.Exit(1) from e


@app.command()
def metrics(
    file: Path = typer.Argument(..., help="CSV or Excel file of tasks"),
    today: str | None = typer.Option(None, "--today", "-d", help="Project as of this date (YYYY-MM-DD)"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
):
    """Compute sprint KPIs (velocity, delay, risk) for a task file."""
    from app.config import get_config
    from app.core.logging import setup_logging
    from app.planning.metrics import compute_sprint_metrics

    setup_logging(cli=True)
    tasks = _load_tasks(file)
    result = compute_sprint_metrics(tasks, _parse_today(today), get_config().planning)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return

    typer.echo(f"\n📊 Sprint metrics as of {result.as_of.isoformat()}")
    typer.echo(
        f"  Tasks: {result.counts.total} "
        f"(todo {result.counts.todo}, in progress {result.counts.in_progress}, done {result.counts.done})"
    )
    typer.echo(
        f"  Velocity: {result.completed_velocity}/{result.total_velocity} "
        f"({result.velocity_percentage}%)"
    )
    typer.echo(f"  Predicted delay: {result.predicted_delay_days} days")
    typer.echo(f"  Bugs: {result.total_bugs}")
    typer.echo(f"  Average risk badge: {result.average_badge_risk}")

    if result.high_risk_tasks:
        _print_warning(f"{result.high_risk_tasks} high-risk task(s)")
    else:
        _print_success("No high-risk tasks")

    if result.modules:
        typer.echo("\n  Modules:")
        for name, stats in result.modules.items():
            typer.echo(f"    {name}: {stats.count} tasks, {stats.velocity} pts, {stats.bugs} bugs")


@app.command()
def preview(
    file: Path = typer.Argument(..., help="CSV or Excel file of tasks"),
):
    """Show how a file's rows will be normalized, without saving."""
    from app.core.logging import setup_logging

    setup_logging(cli=True)
    tasks = _load_tasks(file)

    typer.echo(f"\nPreview ({len(tasks)} tasks)")
    for i, task in enumerate(tasks, 1):
        typer.echo(
            f"  {i}. {task.name} | {task.module or '-'} | {task.due_date or 'no due date'} | "
            f"{task.velocity} pts | {task.bugs} bugs | {task.status}"
        )


@app.command("import")
def import_tasks(
    file: Path = typer.Argument(..., help="CSV or Excel file of tasks"),
    project: str = typer.Option(..., "--project", "-p", help="Project ID to import into"),
):
    """Normalize a task file and save it to a project."""
    from app.core.logging import setup_logging

    setup_logging(cli=True)
    tasks = _load_tasks(file)
    if not tasks:
        _print_warning("No tasks found in file")
        raise typer.Exit(0)

    async def _run() -> int:
        from app.core.database import AsyncSessionLocal
        from app.services.task_service import import_tasks as save_tasks

        async with AsyncSessionLocal() as db:
            created = await save_tasks(db, project, tasks)
            await db.commit()
            return len(created)

    count = asyncio.run(_run())
    _print_success(f"Imported {count} tasks into project {project}")


if __name__ == "__main__":
    app()
