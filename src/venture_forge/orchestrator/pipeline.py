"""Pipeline runner: walk the registry for one startup and keep going past failures."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

from venture_forge.orchestrator.models import (
    PipelineReport,
    PipelineStepResult,
    TaskLockView,
    TaskRunStatus,
)
from venture_forge.orchestrator.registry import TaskId, all_tasks_in_order, lookup
from venture_forge.orchestrator.service import TaskOrchestrator

logger = logging.getLogger(__name__)


class PipelineRunner:
    """Calls ``run_task`` for every task in declared order.

    A failed task is recorded in the report and the run moves on; later tasks
    that depend on it fail their own prerequisite check instead of being
    skipped silently. Cancellation stops the whole run.
    """

    def __init__(self, orchestrator: TaskOrchestrator) -> None:
        self.orchestrator = orchestrator

    async def run(
        self,
        startup_id: str,
        *,
        force: bool = False,
        only: Iterable[str] | None = None,
    ) -> PipelineReport:
        selected = select_tasks(only)
        report = PipelineReport(startup_id=startup_id)
        for task_id in selected:
            try:
                outcome = await self.orchestrator.run_task(startup_id, task_id, force=force)
            except Exception as error:  # noqa: BLE001
                logger.warning("Pipeline step %s failed: %s", task_id.value, error)
                report.steps.append(
                    PipelineStepResult(
                        task_id=task_id.value,
                        status=TaskRunStatus.FAILED,
                        reason=str(error) or type(error).__name__,
                    ),
                )
                continue
            report.steps.append(
                PipelineStepResult(
                    task_id=outcome.task_id,
                    status=outcome.status,
                    evaluation_url=outcome.evaluation_url,
                ),
            )

        logger.info(
            "Pipeline for %s finished: succeeded=%d skipped=%d failed=%d",
            startup_id,
            report.count(TaskRunStatus.SUCCEEDED),
            report.count(TaskRunStatus.SKIPPED),
            report.count(TaskRunStatus.FAILED),
        )
        return report


def lock_states(present_fields: Collection[str]) -> list[TaskLockView]:
    """Advisory linear gate: task N is locked while task N-1 has no output.

    This is UI sequencing only; the orchestrator's prerequisite check stays
    authoritative and may still reject an unlocked task.
    """

    views: list[TaskLockView] = []
    previous_output: str | None = None
    for task in all_tasks_in_order():
        output = task.output.value
        views.append(
            TaskLockView(
                task_id=task.task_id.value,
                title=task.title,
                output_field=output,
                done=output in present_fields,
                locked=previous_output is not None and previous_output not in present_fields,
            ),
        )
        previous_output = output
    return views


def is_task_locked(task_id: str | TaskId, present_fields: Collection[str]) -> bool:
    target = lookup(task_id).task_id
    for view in lock_states(present_fields):
        if view.task_id == target.value:
            return view.locked
    raise AssertionError(f"Registered task {target.value} missing from lock view")


def select_tasks(only: Iterable[str] | None) -> list[TaskId]:
    ordered = [task.task_id for task in all_tasks_in_order()]
    if only is None:
        return ordered
    wanted = {lookup(task_id).task_id for task_id in only}
    return [task_id for task_id in ordered if task_id in wanted]
