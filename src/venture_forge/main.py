"""CLI entrypoint for venture-forge."""

import logging
from collections.abc import Callable
from pathlib import Path

import rich_click as click

from venture_forge import __version__
from venture_forge.errors import VentureForgeError
from venture_forge.orchestrator.controllers import (
    KeysStatusCommand,
    PipelineRunCommand,
    StartupCreateCommand,
    StartupListCommand,
    StartupShowCommand,
    TaskHistoryCommand,
    TaskListCommand,
    TaskRunCommand,
    VentureCliController,
)

click.rich_click.TEXT_MARKUP = "markdown"
CONTROLLER = VentureCliController()
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@click.group()
@click.version_option(version=__version__, prog_name="venture-forge")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity for orchestration and provider calls.",
)
def venture_forge(log_level: str) -> None:
    """Turn a startup idea into a full launch kit, one artifact at a time."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@venture_forge.group()
def startup() -> None:
    """Startup record commands."""


@startup.command("create")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--name", required=True, help="Working name of the startup.")
@click.option("--idea", required=True, help="Raw idea text the pipeline starts from.")
def startup_create(db_path: Path | None, name: str, idea: str) -> None:
    """Create a startup record."""

    _run(lambda: CONTROLLER.create_startup(StartupCreateCommand(db_path, name, idea)))


@startup.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=500),
    default=20,
    show_default=True,
    help="Max number of startups to print.",
)
def startup_list(db_path: Path | None, limit: int) -> None:
    """List startups of the current user, newest first."""

    _run(lambda: CONTROLLER.list_startups(StartupListCommand(db_path=db_path, limit=limit)))


@startup.command("show")
@click.argument("startup_id")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--field",
    default=None,
    help="Print the stored value of one artifact field, for example business_plan.",
)
def startup_show(startup_id: str, db_path: Path | None, field: str | None) -> None:
    """Show a startup record and its generated artifacts."""

    _run(
        lambda: CONTROLLER.show_startup(
            StartupShowCommand(db_path=db_path, startup_id=startup_id, field=field),
        ),
    )


@venture_forge.group()
def task() -> None:
    """Single task commands."""


@task.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--startup-id",
    default=None,
    help="Show done/ready/blocked state of every task for this startup.",
)
def task_list(db_path: Path | None, startup_id: str | None) -> None:
    """List registered tasks in pipeline order."""

    _run(lambda: CONTROLLER.list_tasks(TaskListCommand(db_path=db_path, startup_id=startup_id)))


@task.command("run")
@click.argument("startup_id")
@click.argument("task_id")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--force", is_flag=True, default=False, help="Regenerate even if already present.")
@click.option(
    "--timeout-seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Generation timeout. Defaults to VENTURE_FORGE_TASK_TIMEOUT_SECONDS.",
)
def task_run(
    startup_id: str,
    task_id: str,
    db_path: Path | None,
    force: bool,
    timeout_seconds: float | None,
) -> None:
    """Run one task for one startup."""

    _run(
        lambda: CONTROLLER.run_task(
            TaskRunCommand(
                db_path=db_path,
                startup_id=startup_id,
                task_id=task_id,
                force=force,
                timeout_seconds=timeout_seconds,
            ),
        ),
    )


@task.command("history")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--startup-id", default=None, help="Only runs of this startup.")
@click.option("--task-id", default=None, help="Only runs of this task.")
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=1000),
    default=50,
    show_default=True,
    help="Max number of runs to print.",
)
def task_history(
    db_path: Path | None,
    startup_id: str | None,
    task_id: str | None,
    limit: int,
) -> None:
    """Show the task run audit trail, newest first."""

    _run(
        lambda: CONTROLLER.task_history(
            TaskHistoryCommand(
                db_path=db_path,
                startup_id=startup_id,
                task_id=task_id,
                limit=limit,
            ),
        ),
    )


@venture_forge.group()
def pipeline() -> None:
    """Pipeline commands."""


@pipeline.command("run")
@click.argument("startup_id")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--force", is_flag=True, default=False, help="Regenerate present artifacts too.")
@click.option(
    "--only",
    "only",
    multiple=True,
    help="Restrict the run to this task id. Can be repeated.",
)
@click.option(
    "--prefect/--no-prefect",
    "use_prefect",
    default=False,
    show_default=True,
    help="Run the pipeline as a Prefect flow.",
)
def pipeline_run(
    startup_id: str,
    db_path: Path | None,
    force: bool,
    only: tuple[str, ...],
    use_prefect: bool,
) -> None:
    """Run every task in order, continuing past failures."""

    _run(
        lambda: CONTROLLER.run_pipeline(
            PipelineRunCommand(
                db_path=db_path,
                startup_id=startup_id,
                force=force,
                only=only,
                use_prefect=use_prefect,
            ),
        ),
    )


@venture_forge.group()
def keys() -> None:
    """Provider API key pool commands."""


@keys.command("status")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def keys_status(db_path: Path | None) -> None:
    """Show pool sizes and persisted rotation cursors."""

    _run(lambda: CONTROLLER.keys_status(KeysStatusCommand(db_path=db_path)))


def _run(action: Callable[[], list[str]]) -> None:
    try:
        lines = action()
    except (VentureForgeError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    venture_forge()
