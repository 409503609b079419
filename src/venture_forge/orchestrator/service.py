"""Task orchestrator: run exactly one task for exactly one startup."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from venture_forge.config import Settings
from venture_forge.errors import (
    GenerationFailed,
    GenerationTimedOut,
    PrerequisitesNotMet,
    RecordNotFound,
)
from venture_forge.orchestrator.artifacts import ArtifactField, decode_artifact, encode_artifact
from venture_forge.orchestrator.evaluation import (
    Evaluator,
    NullEvaluator,
    build_evaluator,
    evaluate_best_effort,
)
from venture_forge.orchestrator.generation import GenerationInputs
from venture_forge.orchestrator.models import (
    ArtifactWrite,
    StartupView,
    TaskRunEventWrite,
    TaskRunResult,
    TaskRunStatus,
)
from venture_forge.orchestrator.registry import TaskDefinition, TaskId, lookup
from venture_forge.orchestrator.repository import StartupRepository
from venture_forge.providers.gateway import ProviderGateway, build_provider_gateway

logger = logging.getLogger(__name__)


class TaskOrchestrator:
    """Validates, generates, persists and scores one artifact.

    Steps run strictly in order: record fetch, registry lookup, idempotency
    check, prerequisite check, generation, single-field patch, best-effort
    evaluation. Nothing is written unless generation returned a complete result.
    """

    def __init__(
        self,
        *,
        repository: StartupRepository,
        gateway: ProviderGateway,
        evaluator: Evaluator | None = None,
        default_timeout_seconds: float | None = None,
    ) -> None:
        self.repository = repository
        self.gateway = gateway
        self.evaluator = evaluator or NullEvaluator()
        self.default_timeout_seconds = default_timeout_seconds

    async def run_task(
        self,
        startup_id: str,
        task_id: str | TaskId,
        *,
        force: bool = False,
        timeout_seconds: float | None = None,
    ) -> TaskRunResult:
        started = time.monotonic()
        record = await asyncio.to_thread(self.repository.get_startup, startup_id)
        task = lookup(task_id)
        output = task.output.value

        if not force and record.has(output):
            logger.info(
                "Skipping %s for startup %s: %s already present",
                task.task_id.value,
                startup_id,
                output,
            )
            await self._record_event(task, startup_id, TaskRunStatus.SKIPPED, force, started)
            return TaskRunResult(
                startup_id=startup_id,
                task_id=task.task_id.value,
                output_field=output,
                status=TaskRunStatus.SKIPPED,
                evaluation_url=record.artifacts[output].evaluation_url,
            )

        missing = [field.value for field in task.prerequisites if not record.has(field.value)]
        if missing:
            error = PrerequisitesNotMet(task.task_id.value, missing)
            await self._record_event(
                task,
                startup_id,
                TaskRunStatus.FAILED,
                force,
                started,
                reason=str(error),
            )
            raise error

        try:
            encoded, result = await self._generate(
                task,
                record,
                timeout_seconds=(
                    timeout_seconds if timeout_seconds is not None else self.default_timeout_seconds
                ),
            )
        except GenerationFailed as error:
            logger.warning(
                "Task %s failed for startup %s: %s",
                task.task_id.value,
                startup_id,
                error.reason,
            )
            await self._record_event(
                task,
                startup_id,
                TaskRunStatus.FAILED,
                force,
                started,
                reason=error.reason,
            )
            raise

        await asyncio.to_thread(
            self.repository.patch_artifacts,
            startup_id,
            [ArtifactWrite(field=output, task_id=task.task_id.value, value=encoded)],
        )
        logger.info("Task %s stored %s for startup %s", task.task_id.value, output, startup_id)

        evaluation_url = await evaluate_best_effort(self.evaluator, task.task_id.value, result)
        if evaluation_url:
            evaluation_url = await self._store_evaluation_url(
                startup_id,
                output,
                evaluation_url,
                written_value=encoded,
            )

        await self._record_event(task, startup_id, TaskRunStatus.SUCCEEDED, force, started)
        return TaskRunResult(
            startup_id=startup_id,
            task_id=task.task_id.value,
            output_field=output,
            status=TaskRunStatus.SUCCEEDED,
            result=result,
            evaluation_url=evaluation_url,
        )

    async def _generate(
        self,
        task: TaskDefinition,
        record: StartupView,
        *,
        timeout_seconds: float | None,
    ) -> tuple[str, Any]:
        """Run the routine under the timeout; every failure becomes ``GenerationFailed``."""

        deadline = asyncio.timeout(timeout_seconds)
        try:
            async with deadline:
                inputs = GenerationInputs(
                    startup_id=record.startup_id,
                    name=record.name,
                    idea=record.idea,
                    artifacts=_decode_prerequisites(task, record),
                )
                result = await task.routine(inputs, self.gateway)
            return encode_artifact(task.output, result), result
        except TimeoutError as error:
            if deadline.expired() and timeout_seconds is not None:
                raise GenerationTimedOut(task.task_id.value, timeout_seconds) from error
            raise GenerationFailed(task.task_id.value, _describe(error)) from error
        except Exception as error:
            raise GenerationFailed(task.task_id.value, _describe(error)) from error

    async def _store_evaluation_url(
        self,
        startup_id: str,
        field: str,
        url: str,
        *,
        written_value: str,
    ) -> str | None:
        try:
            stored = await asyncio.to_thread(
                self.repository.set_evaluation_url,
                startup_id,
                field,
                url,
                written_value=written_value,
            )
        except (SQLAlchemyError, RecordNotFound) as error:
            logger.warning(
                "Could not store evaluation URL for %s/%s: %s",
                startup_id,
                field,
                error,
            )
            return None
        return url if stored else None

    async def _record_event(  # noqa: PLR0913
        self,
        task: TaskDefinition,
        startup_id: str,
        status: TaskRunStatus,
        forced: bool,
        started: float,
        *,
        reason: str | None = None,
    ) -> None:
        payload = TaskRunEventWrite(
            startup_id=startup_id,
            task_id=task.task_id.value,
            status=status,
            forced=forced,
            reason=reason,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        try:
            await asyncio.to_thread(self.repository.add_task_run_event, payload)
        except SQLAlchemyError as error:
            logger.warning(
                "Could not record %s event for task %s: %s",
                status.value,
                task.task_id.value,
                error,
            )


def _decode_prerequisites(task: TaskDefinition, record: StartupView) -> dict[ArtifactField, Any]:
    return {
        field: decode_artifact(field, record.artifacts[field.value].value)
        for field in task.prerequisites
    }


def _describe(error: BaseException) -> str:
    message = str(error).strip()
    return message or type(error).__name__


@asynccontextmanager
async def orchestrator_session(settings: Settings) -> AsyncIterator[TaskOrchestrator]:
    """Open the record store, provider gateway and evaluator for one unit of work."""

    repository = StartupRepository(
        db_path=settings.db_path,
        user_id=settings.user_context.user_id,
        user_name=settings.user_context.user_name,
        sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    await asyncio.to_thread(repository.init_schema)
    gateway = build_provider_gateway(settings, engine=repository.engine)
    evaluator = build_evaluator(settings.evaluation)
    try:
        yield TaskOrchestrator(
            repository=repository,
            gateway=gateway,
            evaluator=evaluator,
            default_timeout_seconds=settings.pipeline.task_timeout_seconds,
        )
    finally:
        await evaluator.aclose()
        await gateway.aclose()
        repository.close()
