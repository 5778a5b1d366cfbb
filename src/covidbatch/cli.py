"""Command-line interface for the covidbatch job."""

import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from covidbatch.batch.execution import JobExecution
    from covidbatch.config.settings import JobConfig

app = typer.Typer(
    name="covidbatch",
    help="Ingest the NYT COVID-19 county and state feeds into SQLite.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration YAML file. Defaults are used if omitted.",
        exists=True,
        dir_okay=False,
    ),
]


def _load(config: Path | None) -> "JobConfig":
    from covidbatch.config.loader import load_config

    try:
        return load_config(config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _steps_table(execution: "JobExecution") -> Table:
    table = Table(title=f"Job '{execution.job_name}' run {execution.run_id}: {execution.status.value}")
    table.add_column("Step", style="cyan")
    table.add_column("Status")
    table.add_column("Read", justify="right")
    table.add_column("Inserted", justify="right")
    table.add_column("Duplicates", justify="right")
    table.add_column("Chunks", justify="right")

    for step in execution.step_executions:
        style = "green" if step.status.value == "COMPLETED" else "red"
        table.add_row(
            step.step_name,
            f"[{style}]{step.status.value}[/{style}]",
            str(step.read_count),
            str(step.write_count),
            str(step.skip_count),
            str(step.commit_count),
        )
    for name in execution.skipped_steps:
        table.add_row(name, "[dim]SKIPPED (already completed)[/dim]", "", "", "", "")
    return table


@app.command()
def run(
    config: ConfigOption = None,
    run_id: Annotated[
        str | None,
        typer.Option(
            "--run-id",
            help="Run identifier. Defaults to the process start time; "
            "pass a failed run's id to restart it.",
        ),
    ] = None,
    chunk_size: Annotated[
        int | None,
        typer.Option("--chunk-size", min=1, help="Override batch.chunk_size."),
    ] = None,
) -> None:
    """Run the ingestion job: counties first, then states."""
    from covidbatch.batch.execution import new_run_id
    from covidbatch.errors import BatchError, JobFailedError
    from covidbatch.etl import run_etl
    from covidbatch.utils.logging import configure_logging

    run_id = run_id or new_run_id()
    job_config = _load(config)
    if chunk_size is not None:
        job_config = job_config.model_copy(
            update={"batch": job_config.batch.model_copy(update={"chunk_size": chunk_size})}
        )

    configure_logging(job_config.logging.level, json_output=job_config.logging.json_output)

    console.print(f"[blue]Running job '{job_config.job_name}' (run {run_id})[/blue]")
    console.print(f"[dim]Counties: {job_config.sources.by_county_url}[/dim]")
    console.print(f"[dim]States: {job_config.sources.by_state_url}[/dim]")
    console.print(f"[dim]Database: {job_config.database.path}[/dim]")

    try:
        execution = run_etl(job_config, run_id)
    except JobFailedError as e:
        console.print(_steps_table(e.execution))
        console.print(f"[red]{escape(str(e))}[/red]")
        cause = e.__cause__.__cause__ if e.__cause__ is not None else None
        if cause is not None:
            console.print(f"[red]Cause: {escape(str(cause))}[/red]")
        raise typer.Exit(code=1) from e
    except BatchError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    except sqlite3.Error as e:
        console.print(f"[red]Database error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    console.print(_steps_table(execution))
    console.print("[green]Job completed[/green]")


@app.command()
def runs(
    config: ConfigOption = None,
    run_id: Annotated[
        str | None,
        typer.Option("--run-id", help="Show the steps of one run."),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", min=1, help="Number of runs to list."),
    ] = 20,
) -> None:
    """List recorded job runs."""
    from covidbatch.persistence.database import Database
    from covidbatch.persistence.runs import RunRepository

    job_config = _load(config)
    if not job_config.database.path.exists():
        console.print(f"[yellow]No database at {job_config.database.path}[/yellow]")
        raise typer.Exit(code=1)

    repository = RunRepository(Database(job_config.database.path))
    try:
        repository.initialize()
    except sqlite3.Error as e:
        console.print(f"[red]Database error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    if run_id is not None:
        steps = repository.step_executions(job_config.job_name, run_id)
        if not steps:
            console.print(f"[yellow]No steps recorded for run {run_id}[/yellow]")
            raise typer.Exit(code=1)
        table = Table(title=f"Run {run_id}")
        table.add_column("Step", style="cyan")
        table.add_column("Status")
        table.add_column("Read", justify="right")
        table.add_column("Inserted", justify="right")
        table.add_column("Duplicates", justify="right")
        table.add_column("Chunks", justify="right")
        table.add_column("Message")
        for step in steps.values():
            table.add_row(
                step.step_name,
                step.status.value,
                str(step.read_count),
                str(step.write_count),
                str(step.skip_count),
                str(step.commit_count),
                escape(step.exit_message),
            )
        console.print(table)
        return

    records = repository.recent_jobs(limit)
    if not records:
        console.print("[dim]No runs recorded[/dim]")
        return

    table = Table(title="Recent runs")
    table.add_column("Job", style="cyan")
    table.add_column("Run id")
    table.add_column("Status")
    table.add_column("Started")
    table.add_column("Ended")
    for record in records:
        table.add_row(
            record.job_name,
            record.run_id,
            record.status.value,
            record.started_at.isoformat(timespec="seconds"),
            record.ended_at.isoformat(timespec="seconds") if record.ended_at else "",
        )
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from covidbatch import __version__

    console.print(f"covidbatch version {__version__}")


if __name__ == "__main__":
    app()
