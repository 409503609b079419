"""Best-effort scoring of generated artifacts by an external evaluation service."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import httpx

from venture_forge.config import EvaluationSettings
from venture_forge.errors import ProviderRequestError
from venture_forge.providers.http import ProviderHttpClient

logger = logging.getLogger(__name__)


class Evaluator(Protocol):
    """Scores one persisted artifact and returns a run URL, or ``None`` when skipped."""

    async def evaluate(self, task_id: str, payload: Any) -> str | None:
        """Start an evaluation run for ``payload``."""

    async def aclose(self) -> None:
        """Release resources."""


class NullEvaluator:
    """Evaluator used when scoring is not configured."""

    async def evaluate(self, task_id: str, payload: Any) -> str | None:  # noqa: ARG002
        return None

    async def aclose(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class EvaluationTarget:
    """Project, testset and metrics one task is scored against."""

    project_id: str
    testset_id: str
    metric_ids: tuple[str, ...]


def load_evaluation_targets(path: Path) -> dict[str, EvaluationTarget]:
    """Read the per-task evaluation config.

    The file maps task ids to ``{"projectId", "testsetId", "metricIds"}``.
    Incomplete entries are dropped with a warning so the task is simply not scored.
    """

    raw = json.loads(path.read_text("utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Evaluation config must be a JSON object: {path}")
    targets: dict[str, EvaluationTarget] = {}
    for task_id, entry in raw.items():
        if not isinstance(entry, dict):
            logger.warning("Ignoring evaluation config for %s: not an object", task_id)
            continue
        project_id = str(entry.get("projectId") or "").strip()
        testset_id = str(entry.get("testsetId") or "").strip()
        metric_ids = tuple(str(item) for item in entry.get("metricIds") or () if str(item))
        if not (project_id and testset_id and metric_ids):
            logger.warning("Ignoring incomplete evaluation config for %s", task_id)
            continue
        targets[task_id] = EvaluationTarget(
            project_id=project_id,
            testset_id=testset_id,
            metric_ids=metric_ids,
        )
    return targets


class ScorecardEvaluator:
    """Starts a scorecard run for the artifact and returns its URL."""

    service = "scorecard"

    def __init__(
        self,
        *,
        api_key: str,
        targets: dict[str, EvaluationTarget],
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.targets = targets
        self._http = ProviderHttpClient(
            service=self.service,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            transport=transport,
        )

    async def evaluate(self, task_id: str, payload: Any) -> str | None:
        target = self.targets.get(task_id)
        if target is None:
            logger.debug("No evaluation target configured for %s", task_id)
            return None
        body = await self._http.post_json(
            f"projects/{target.project_id}/runs",
            payload={
                "testsetId": target.testset_id,
                "metricIds": list(target.metric_ids),
                "systemOutput": {"output": json.dumps(payload, ensure_ascii=False, indent=2)},
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        url = body.get("url")
        if not isinstance(url, str) or not url:
            raise ProviderRequestError(self.service, "evaluation run response has no url")
        logger.info("Evaluation run started for %s: %s", task_id, url)
        return url

    async def aclose(self) -> None:
        await self._http.aclose()


def build_evaluator(settings: EvaluationSettings) -> Evaluator:
    """Scorecard evaluator when both API key and config exist, otherwise a no-op."""

    if not settings.api_key:
        logger.info("Scorecard API key is not set; evaluation is skipped")
        return NullEvaluator()
    if settings.config_path is None or not settings.config_path.exists():
        logger.info("Scorecard config file is missing; evaluation is skipped")
        return NullEvaluator()
    return ScorecardEvaluator(
        api_key=settings.api_key,
        targets=load_evaluation_targets(settings.config_path),
        base_url=settings.base_url,
        timeout_seconds=settings.request_timeout_seconds,
    )


async def evaluate_best_effort(evaluator: Evaluator, task_id: str, payload: Any) -> str | None:
    """Run the evaluator; any failure is logged and reported as ``None``."""

    try:
        return await evaluator.evaluate(task_id, payload)
    except Exception as error:  # noqa: BLE001
        logger.warning("Evaluation for %s failed and was skipped: %s", task_id, error)
        return None
