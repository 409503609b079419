"""Prefect wrapper around the pipeline runner.

Each registry task becomes one Prefect task run, so operators get per-step
state and timing in the Prefect UI. Failure isolation stays with
``PipelineRunner``: a failed step is reported, never raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from prefect import flow, task
from prefect.cache_policies import NO_CACHE

from venture_forge.config import Settings
from venture_forge.orchestrator.models import PipelineReport, PipelineStepResult
from venture_forge.orchestrator.pipeline import PipelineRunner, select_tasks
from venture_forge.orchestrator.service import orchestrator_session

logger = logging.getLogger(__name__)


@task(name="pipeline_step", cache_policy=NO_CACHE)
async def pipeline_step(
    runner: PipelineRunner,
    *,
    startup_id: str,
    task_id: str,
    force: bool,
) -> PipelineStepResult:
    report = await runner.run(startup_id, force=force, only=[task_id])
    return report.steps[0]


@flow(name="preload_flow", validate_parameters=False)
async def preload_flow(
    *,
    startup_id: str,
    settings: Settings,
    force: bool = False,
    only: Iterable[str] | None = None,
    on_progress: Callable[[str], None] | None = None,
) -> PipelineReport:
    """Generate every missing artifact of one startup in registry order."""

    emit = on_progress or (lambda _: None)
    report = PipelineReport(startup_id=startup_id)
    async with orchestrator_session(settings) as orchestrator:
        runner = PipelineRunner(orchestrator)
        for task_id in select_tasks(only):
            step = await pipeline_step(
                runner,
                startup_id=startup_id,
                task_id=task_id.value,
                force=force,
            )
            report.steps.append(step)
            emit(_describe_step(step))
    logger.info("Preload flow finished for %s with %d failure(s)", startup_id, len(report.failed))
    return report


def _describe_step(step: PipelineStepResult) -> str:
    line = f"[{step.task_id}] {step.status.value}"
    if step.reason:
        line += f": {step.reason}"
    return line
