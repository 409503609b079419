"""Controllers for startup, task, pipeline and key pool CLI commands."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from venture_forge.config import Settings
from venture_forge.orchestrator.artifacts import ArtifactField, decode_artifact
from venture_forge.orchestrator.models import (
    PipelineReport,
    StartupCreate,
    StartupView,
    TaskRunResult,
    TaskRunStatus,
)
from venture_forge.orchestrator.pipeline import PipelineRunner, lock_states
from venture_forge.orchestrator.prefect_flow import preload_flow
from venture_forge.orchestrator.registry import all_tasks_in_order
from venture_forge.orchestrator.repository import StartupRepository
from venture_forge.orchestrator.service import orchestrator_session
from venture_forge.providers.key_rotation import KeyRotationManager


@dataclass(slots=True)
class StartupCreateCommand:
    """CLI input for a new startup record."""

    db_path: Path | None
    name: str
    idea: str


@dataclass(slots=True)
class StartupListCommand:
    db_path: Path | None
    limit: int


@dataclass(slots=True)
class StartupShowCommand:
    """CLI input for record inspection, optionally dumping one artifact."""

    db_path: Path | None
    startup_id: str
    field: str | None = None


@dataclass(slots=True)
class TaskListCommand:
    """CLI input for the task catalog, optionally with per-startup state."""

    db_path: Path | None
    startup_id: str | None


@dataclass(slots=True)
class TaskRunCommand:
    db_path: Path | None
    startup_id: str
    task_id: str
    force: bool
    timeout_seconds: float | None


@dataclass(slots=True)
class TaskHistoryCommand:
    db_path: Path | None
    startup_id: str | None
    task_id: str | None
    limit: int


@dataclass(slots=True)
class PipelineRunCommand:
    """CLI input for a full or partial pipeline run."""

    db_path: Path | None
    startup_id: str
    force: bool
    only: tuple[str, ...]
    use_prefect: bool


@dataclass(slots=True)
class KeysStatusCommand:
    db_path: Path | None


class VentureCliController:
    """Coordinates record, task and pipeline CLI operations."""

    def create_startup(self, command: StartupCreateCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            startup = repository.create_startup(
                StartupCreate(name=command.name, idea=command.idea),
            )
        return [
            f"Startup created: startup_id={startup.startup_id} name={startup.name}",
            f"Next: venture-forge task run {startup.startup_id} brainstormIdea",
        ]

    def list_startups(self, command: StartupListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            startups = repository.list_startups(limit=command.limit)

        total = len(all_tasks_in_order())
        lines = [f"Startups: {len(startups)}"]
        for startup in startups:
            lines.append(
                f"  {startup.startup_id} name={startup.name} "
                f"artifacts={len(startup.artifacts)}/{total} "
                f"created_at={startup.created_at.isoformat()}",
            )
        return lines

    def show_startup(self, command: StartupShowCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            startup = repository.get_startup(command.startup_id)

        if command.field is not None:
            return _artifact_lines(startup, command.field)

        lines = [
            f"Startup: {startup.startup_id}",
            f"Name: {startup.name}",
            f"Idea: {startup.idea}",
            f"Updated: {startup.updated_at.isoformat()}",
            f"Artifacts: {len(startup.artifacts)}",
        ]
        for task in all_tasks_in_order():
            artifact = startup.artifacts.get(task.output.value)
            if artifact is None:
                continue
            lines.append(
                f"  {artifact.field} task={artifact.task_id} "
                f"updated_at={artifact.updated_at.isoformat()} "
                f"evaluation={artifact.evaluation_url or '-'}",
            )
        return lines

    def list_tasks(self, command: TaskListCommand) -> list[str]:
        tasks = all_tasks_in_order()
        if command.startup_id is None:
            lines = [f"Tasks: {len(tasks)}"]
            for position, task in enumerate(tasks, start=1):
                prerequisites = ", ".join(field.value for field in task.prerequisites) or "-"
                lines.append(
                    f"  {position:>2}. {task.task_id.value} phase={task.phase} "
                    f"output={task.output.value} requires={prerequisites}",
                )
            return lines

        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            startup = repository.get_startup(command.startup_id)

        present = startup.present_fields
        locks = {view.task_id: view for view in lock_states(present)}
        lines = [f"Tasks for {startup.name} ({startup.startup_id}):"]
        for position, task in enumerate(tasks, start=1):
            view = locks[task.task_id.value]
            missing = [field.value for field in task.prerequisites if field.value not in present]
            if view.done:
                state = "done"
            elif missing:
                state = f"blocked missing={','.join(missing)}"
            else:
                state = "ready"
            lock = " locked" if view.locked and not view.done else ""
            lines.append(f"  {position:>2}. {task.task_id.value} {state}{lock}")
        return lines

    def run_task(self, command: TaskRunCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        outcome = asyncio.run(_run_single_task(settings, command))
        if outcome.status is TaskRunStatus.SKIPPED:
            return [
                f"Task skipped: task_id={outcome.task_id} "
                f"{outcome.output_field} already present (use --force to regenerate)",
            ]
        return [
            f"Task succeeded: task_id={outcome.task_id} field={outcome.output_field}",
            f"Evaluation: {outcome.evaluation_url or '-'}",
        ]

    def task_history(self, command: TaskHistoryCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            events = repository.list_task_run_events(
                startup_id=command.startup_id,
                task_id=command.task_id,
                limit=command.limit,
            )

        lines = [f"Task runs: {len(events)}"]
        for event in events:
            line = (
                f"  {event.created_at.isoformat()} {event.startup_id} {event.task_id} "
                f"status={event.status.value} forced={'yes' if event.forced else 'no'} "
                f"duration_ms={event.duration_ms if event.duration_ms is not None else '-'}"
            )
            if event.reason:
                line += f" reason={event.reason}"
            lines.append(line)
        return lines

    def run_pipeline(self, command: PipelineRunCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        only = command.only or None
        if command.use_prefect:
            report = asyncio.run(
                preload_flow(
                    startup_id=command.startup_id,
                    settings=settings,
                    force=command.force,
                    only=only,
                ),
            )
        else:
            report = asyncio.run(_run_pipeline(settings, command.startup_id, command.force, only))
        return _pipeline_report_lines(report)

    def keys_status(self, command: KeysStatusCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            states = {
                state.service: state
                for state in KeyRotationManager(repository.engine).list_states()
            }

        lines = ["Key pools:"]
        for service in sorted({"gemini", "openai", "firecrawl", *states}):
            pool_size = len(settings.key_pool(service))
            state = states.get(service)
            if state is None:
                lines.append(f"  {service} keys={pool_size} index=0 rotations=0 (unused)")
                continue
            lines.append(
                f"  {service} keys={pool_size} index={state.key_index} "
                f"rotations={state.rotations} updated_at={state.updated_at.isoformat()}",
            )
        return lines


async def _run_single_task(settings: Settings, command: TaskRunCommand) -> TaskRunResult:
    async with orchestrator_session(settings) as orchestrator:
        return await orchestrator.run_task(
            command.startup_id,
            command.task_id,
            force=command.force,
            timeout_seconds=command.timeout_seconds,
        )


async def _run_pipeline(
    settings: Settings,
    startup_id: str,
    force: bool,
    only: tuple[str, ...] | None,
) -> PipelineReport:
    async with orchestrator_session(settings) as orchestrator:
        return await PipelineRunner(orchestrator).run(startup_id, force=force, only=only)


def _pipeline_report_lines(report: PipelineReport) -> list[str]:
    lines = [
        f"Pipeline for {report.startup_id}: "
        f"succeeded={report.count(TaskRunStatus.SUCCEEDED)} "
        f"skipped={report.count(TaskRunStatus.SKIPPED)} "
        f"failed={report.count(TaskRunStatus.FAILED)}",
    ]
    for step in report.steps:
        line = f"  {step.task_id} {step.status.value}"
        if step.reason:
            line += f" reason={step.reason}"
        lines.append(line)
    return lines


def _artifact_lines(startup: StartupView, field_name: str) -> list[str]:
    field = ArtifactField(field_name)
    artifact = startup.artifacts.get(field.value)
    if artifact is None:
        return [f"Artifact {field.value} is not generated yet"]
    value = decode_artifact(field, artifact.value)
    if isinstance(value, str):
        return value.splitlines()
    return json.dumps(value, ensure_ascii=False, indent=2).splitlines()


@contextmanager
def _repository(settings: Settings) -> Iterator[StartupRepository]:
    repository = StartupRepository(
        db_path=settings.db_path,
        user_id=settings.user_context.user_id,
        user_name=settings.user_context.user_name,
        sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()
