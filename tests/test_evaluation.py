from __future__ import annotations

import asyncio
import json
from pathlib import Path

import allure
import httpx

from venture_forge.config import EvaluationSettings
from venture_forge.orchestrator.evaluation import (
    EvaluationTarget,
    NullEvaluator,
    ScorecardEvaluator,
    build_evaluator,
    evaluate_best_effort,
    load_evaluation_targets,
)

pytestmark = [
    allure.epic("Task Orchestration"),
    allure.feature("Best-effort Evaluation"),
]

TARGETS = {
    "brainstormIdea": EvaluationTarget(
        project_id="p1",
        testset_id="ts1",
        metric_ids=("m1", "m2"),
    ),
}


def test_load_targets_skips_incomplete_entries(tmp_path: Path) -> None:
    config = tmp_path / "scorecard.json"
    config.write_text(
        json.dumps(
            {
                "brainstormIdea": {"projectId": "p1", "testsetId": "ts1", "metricIds": ["m1"]},
                "pitchDeck": {"projectId": "p2", "metricIds": ["m1"]},
                "scorecard": "not an object",
            },
        ),
        encoding="utf-8",
    )

    targets = load_evaluation_targets(config)

    assert targets == {
        "brainstormIdea": EvaluationTarget(project_id="p1", testset_id="ts1", metric_ids=("m1",)),
    }


def test_scorecard_evaluator_starts_run_and_returns_url() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json={"id": "run-1", "url": "https://scores.test/runs/1"})

    evaluator = ScorecardEvaluator(
        api_key="sc-key",
        targets=TARGETS,
        base_url="https://scores.test/api/v2",
        timeout_seconds=5,
        transport=httpx.MockTransport(handler),
    )

    async def _go() -> str | None:
        try:
            return await evaluator.evaluate("brainstormIdea", {"refinedIdea": "x"})
        finally:
            await evaluator.aclose()

    assert asyncio.run(_go()) == "https://scores.test/runs/1"
    request = requests[0]
    assert request.url.path == "/api/v2/projects/p1/runs"
    assert request.headers["Authorization"] == "Bearer sc-key"
    body = json.loads(request.content)
    assert body["testsetId"] == "ts1"
    assert body["metricIds"] == ["m1", "m2"]
    assert json.loads(body["systemOutput"]["output"]) == {"refinedIdea": "x"}


def test_task_without_target_is_not_scored() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    evaluator = ScorecardEvaluator(
        api_key="sc-key",
        targets=TARGETS,
        base_url="https://scores.test/api/v2",
        timeout_seconds=5,
        transport=httpx.MockTransport(handler),
    )

    assert asyncio.run(evaluator.evaluate("pitchDeck", {})) is None


def test_best_effort_reports_failures_as_none() -> None:
    evaluator = ScorecardEvaluator(
        api_key="sc-key",
        targets=TARGETS,
        base_url="https://scores.test/api/v2",
        timeout_seconds=5,
        transport=httpx.MockTransport(lambda _: httpx.Response(500, text="boom")),
    )

    assert asyncio.run(evaluate_best_effort(evaluator, "brainstormIdea", {})) is None


def test_build_evaluator_without_key_or_config_is_a_no_op(tmp_path: Path) -> None:
    assert isinstance(build_evaluator(EvaluationSettings()), NullEvaluator)
    assert isinstance(
        build_evaluator(
            EvaluationSettings(api_key="sc-key", config_path=tmp_path / "missing.json"),
        ),
        NullEvaluator,
    )


def test_build_evaluator_with_key_and_config(tmp_path: Path) -> None:
    config = tmp_path / "scorecard.json"
    config.write_text(
        json.dumps({"pitchDeck": {"projectId": "p", "testsetId": "t", "metricIds": ["m"]}}),
        encoding="utf-8",
    )

    evaluator = build_evaluator(EvaluationSettings(api_key="sc-key", config_path=config))

    assert isinstance(evaluator, ScorecardEvaluator)
    assert set(evaluator.targets) == {"pitchDeck"}
    asyncio.run(evaluator.aclose())
