"""Domain models for startup records, task runs and pipeline reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class TaskRunStatus(str, Enum):
    """Outcome of one ``run_task`` call, as recorded in the audit trail."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True)
class StartupCreate:
    """Input payload for a new startup record."""

    name: str
    idea: str
    startup_id: str | None = None


@dataclass(slots=True)
class ArtifactView:
    """One present artifact field in its stored (serialized) form."""

    field: str
    task_id: str
    value: str
    evaluation_url: str | None
    updated_at: datetime


@dataclass(slots=True)
class StartupView:
    """Readable startup record with the artifact fields that are present."""

    startup_id: str
    user_id: str
    name: str
    idea: str
    created_at: datetime
    updated_at: datetime
    artifacts: dict[str, ArtifactView] = field(default_factory=dict)

    def has(self, field_name: str) -> bool:
        return field_name in self.artifacts

    @property
    def present_fields(self) -> frozenset[str]:
        return frozenset(self.artifacts)


@dataclass(slots=True)
class ArtifactWrite:
    """One field patch produced by a successful task."""

    field: str
    task_id: str
    value: str


@dataclass(slots=True)
class TaskRunEventWrite:
    """Audit entry for one ``run_task`` outcome."""

    startup_id: str
    task_id: str
    status: TaskRunStatus
    forced: bool = False
    reason: str | None = None
    duration_ms: int | None = None


@dataclass(slots=True)
class TaskRunEventView:
    """Audit trail entry for CLI history output."""

    event_id: int
    startup_id: str
    task_id: str
    status: TaskRunStatus
    forced: bool
    reason: str | None
    duration_ms: int | None
    created_at: datetime


@dataclass(slots=True)
class TaskRunResult:
    """What ``run_task`` returns to its caller."""

    startup_id: str
    task_id: str
    output_field: str
    status: TaskRunStatus
    result: Any = None
    evaluation_url: str | None = None


@dataclass(slots=True)
class PipelineStepResult:
    """Per-task line of a pipeline report."""

    task_id: str
    status: TaskRunStatus
    reason: str | None = None
    evaluation_url: str | None = None


@dataclass(slots=True)
class PipelineReport:
    """Ordered per-task outcomes of one pipeline run."""

    startup_id: str
    steps: list[PipelineStepResult] = field(default_factory=list)

    def count(self, status: TaskRunStatus) -> int:
        return sum(1 for step in self.steps if step.status is status)

    @property
    def failed(self) -> list[PipelineStepResult]:
        return [step for step in self.steps if step.status is TaskRunStatus.FAILED]


@dataclass(slots=True)
class TaskLockView:
    """Advisory linear lock state of one task for UI sequencing."""

    task_id: str
    title: str
    output_field: str
    done: bool
    locked: bool
