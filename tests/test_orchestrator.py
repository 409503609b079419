from __future__ import annotations

import asyncio
import json

import allure
import pytest
from conftest import BlockingTextGenerator, CountingTextGenerator, rate_limited

from venture_forge.errors import (
    AllKeysExhausted,
    ArtifactContractError,
    GenerationFailed,
    GenerationTimedOut,
    PrerequisitesNotMet,
    ProviderRequestError,
    RecordNotFound,
    UnknownTask,
)
from venture_forge.orchestrator.artifacts import ArtifactField
from venture_forge.orchestrator.models import TaskRunStatus
from venture_forge.orchestrator.repository import StartupRepository
from venture_forge.orchestrator.service import TaskOrchestrator

pytestmark = [
    allure.epic("Task Orchestration"),
    allure.feature("Run Task Contract"),
]

CORE_FOUR = ("brainstormIdea", "marketPulseCheck", "defineMissionVision", "generateNameIdentity")


class _RaisingEvaluator:
    async def evaluate(self, task_id, payload):
        raise RuntimeError("scorecard is down")

    async def aclose(self) -> None:
        return None


class _UrlEvaluator:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def evaluate(self, task_id, payload):
        self.calls.append(task_id)
        return f"https://scores.example.com/runs/{task_id}"

    async def aclose(self) -> None:
        return None


def _run_all(orchestrator: TaskOrchestrator, startup_id: str, task_ids) -> None:
    async def _go() -> None:
        for task_id in task_ids:
            await orchestrator.run_task(startup_id, task_id)

    asyncio.run(_go())


def test_second_run_is_skipped_without_generating_again(
    repository, startup, make_gateway
) -> None:
    generator = CountingTextGenerator()
    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway(generator))

    first = asyncio.run(orchestrator.run_task(startup.startup_id, "brainstormIdea"))
    stored = repository.get_startup(startup.startup_id).artifacts["brainstorm_result"]
    second = asyncio.run(orchestrator.run_task(startup.startup_id, "brainstormIdea"))

    assert first.status is TaskRunStatus.SUCCEEDED
    assert first.result["refinedIdea"] == "refinedIdea #1"
    assert second.status is TaskRunStatus.SKIPPED
    assert second.result is None
    assert generator.calls == 1
    after = repository.get_startup(startup.startup_id).artifacts["brainstorm_result"]
    assert after.value == stored.value
    assert after.updated_at == stored.updated_at


def test_business_plan_reports_every_missing_prerequisite(
    repository, startup, make_gateway
) -> None:
    generator = CountingTextGenerator()
    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway(generator))

    with pytest.raises(PrerequisitesNotMet) as excinfo:
        asyncio.run(orchestrator.run_task(startup.startup_id, "businessPlan"))

    assert excinfo.value.missing == (
        "brainstorm_result",
        "market_pulse",
        "mission_vision",
        "brand_identity",
    )
    assert "businessPlan" in str(excinfo.value)
    assert generator.calls == 0
    assert not repository.get_startup(startup.startup_id).has("business_plan")


def test_prerequisite_check_names_only_the_absent_fields(
    repository, startup, make_gateway
) -> None:
    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway())
    _run_all(orchestrator, startup.startup_id, ["brainstormIdea", "marketPulseCheck"])

    with pytest.raises(PrerequisitesNotMet) as excinfo:
        asyncio.run(orchestrator.run_task(startup.startup_id, "businessPlan"))

    assert excinfo.value.missing == ("mission_vision", "brand_identity")


def test_business_plan_succeeds_once_its_inputs_exist(repository, startup, make_gateway) -> None:
    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway())
    _run_all(orchestrator, startup.startup_id, CORE_FOUR)

    outcome = asyncio.run(orchestrator.run_task(startup.startup_id, "businessPlan"))

    assert outcome.status is TaskRunStatus.SUCCEEDED
    assert outcome.output_field == "business_plan"
    record = repository.get_startup(startup.startup_id)
    assert record.has("business_plan")
    stored = json.loads(record.artifacts["business_plan"].value)
    assert "executiveSummary" in stored
    assert record.artifacts["business_plan"].task_id == "businessPlan"


def test_force_regenerates_and_overwrites(repository, startup, make_gateway) -> None:
    generator = CountingTextGenerator()
    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway(generator))

    asyncio.run(orchestrator.run_task(startup.startup_id, "brainstormIdea"))
    forced = asyncio.run(orchestrator.run_task(startup.startup_id, "brainstormIdea", force=True))

    assert forced.status is TaskRunStatus.SUCCEEDED
    assert generator.calls == 2
    stored = json.loads(
        repository.get_startup(startup.startup_id).artifacts["brainstorm_result"].value,
    )
    assert stored["refinedIdea"] == "refinedIdea #2"


def test_routine_sees_only_declared_prerequisites(repository, startup, make_gateway) -> None:
    generator = CountingTextGenerator()
    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway(generator))
    _run_all(orchestrator, startup.startup_id, CORE_FOUR)

    asyncio.run(orchestrator.run_task(startup.startup_id, "defineMissionVision", force=True))

    prompt = generator.prompts[-1]
    assert "## brainstorm_result" in prompt
    assert "## market_pulse" in prompt
    assert "## brand_identity" not in prompt
    assert 'Startup name: "Tidewise"' in prompt


def test_unknown_task_is_rejected(repository, startup, make_gateway) -> None:
    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway())

    with pytest.raises(UnknownTask, match="launchRocket"):
        asyncio.run(orchestrator.run_task(startup.startup_id, "launchRocket"))


def test_missing_record_is_reported_before_task_lookup(repository, make_gateway) -> None:
    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway())

    with pytest.raises(RecordNotFound):
        asyncio.run(orchestrator.run_task("no-such-startup", "launchRocket"))


def test_records_of_other_users_read_as_missing(tmp_path, startup, repository) -> None:
    other = StartupRepository(repository.db_path, user_id="someone_else", user_name="Else")
    other.init_schema()
    try:
        with pytest.raises(RecordNotFound):
            other.get_startup(startup.startup_id)
        assert other.list_startups() == []
    finally:
        other.close()


def test_provider_failure_is_wrapped_and_nothing_is_written(
    repository, startup, make_gateway
) -> None:
    generator = CountingTextGenerator(
        fail_when=lambda _: ProviderRequestError("echo", "upstream exploded", status_code=500),
    )
    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway(generator))

    with pytest.raises(GenerationFailed) as excinfo:
        asyncio.run(orchestrator.run_task(startup.startup_id, "brainstormIdea"))

    assert isinstance(excinfo.value.__cause__, ProviderRequestError)
    assert "upstream exploded" in excinfo.value.reason
    assert generator.calls == 1
    assert not repository.get_startup(startup.startup_id).has("brainstorm_result")
    events = repository.list_task_run_events(startup_id=startup.startup_id)
    assert [event.status for event in events] == [TaskRunStatus.FAILED]


def test_exhausted_key_pool_surfaces_as_generation_failure(
    repository, startup, make_gateway
) -> None:
    generator = CountingTextGenerator(fail_when=lambda _: rate_limited())
    gateway = make_gateway(generator, keys=("k1", "k2"))
    orchestrator = TaskOrchestrator(repository=repository, gateway=gateway)

    with pytest.raises(GenerationFailed) as excinfo:
        asyncio.run(orchestrator.run_task(startup.startup_id, "marketPulseCheck"))

    assert isinstance(excinfo.value.__cause__, AllKeysExhausted)
    assert "rate-limited" in excinfo.value.reason
    assert generator.keys_used == ["k1", "k2"]


def test_malformed_completion_is_a_generation_failure(repository, startup, make_gateway) -> None:
    class _Prose(CountingTextGenerator):
        async def generate(self, *, api_key: str, prompt: str, json_mode: bool) -> str:
            return "Sure! Here is your brainstorm."

    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway(_Prose()))

    with pytest.raises(GenerationFailed) as excinfo:
        asyncio.run(orchestrator.run_task(startup.startup_id, "brainstormIdea"))

    assert isinstance(excinfo.value.__cause__, ArtifactContractError)


def test_result_missing_required_keys_is_not_persisted(repository, startup, make_gateway) -> None:
    class _Partial(CountingTextGenerator):
        async def generate(self, *, api_key: str, prompt: str, json_mode: bool) -> str:
            return json.dumps({"mission": "Feed the coast"})

    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway(_Partial()))
    _run_all(
        TaskOrchestrator(repository=repository, gateway=make_gateway()),
        startup.startup_id,
        ["brainstormIdea", "marketPulseCheck"],
    )

    with pytest.raises(GenerationFailed, match="vision"):
        asyncio.run(orchestrator.run_task(startup.startup_id, "defineMissionVision"))

    assert not repository.get_startup(startup.startup_id).has("mission_vision")


def test_generation_timeout_is_reported_distinctly(repository, startup, make_gateway) -> None:
    orchestrator = TaskOrchestrator(
        repository=repository,
        gateway=make_gateway(BlockingTextGenerator()),
    )

    with pytest.raises(GenerationTimedOut) as excinfo:
        asyncio.run(
            orchestrator.run_task(startup.startup_id, "brainstormIdea", timeout_seconds=0.05),
        )

    assert isinstance(excinfo.value, GenerationFailed)
    assert excinfo.value.timeout_seconds == 0.05
    assert not repository.get_startup(startup.startup_id).has("brainstorm_result")


def test_cancellation_propagates_and_writes_nothing(repository, startup, make_gateway) -> None:
    generator = BlockingTextGenerator()
    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway(generator))

    async def _go() -> None:
        running = asyncio.create_task(orchestrator.run_task(startup.startup_id, "brainstormIdea"))
        await generator.started.wait()
        running.cancel()
        await running

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(_go())

    assert not repository.get_startup(startup.startup_id).has("brainstorm_result")
    assert repository.list_task_run_events(startup_id=startup.startup_id) == []


def test_evaluation_failure_never_fails_the_task(repository, startup, make_gateway) -> None:
    orchestrator = TaskOrchestrator(
        repository=repository,
        gateway=make_gateway(),
        evaluator=_RaisingEvaluator(),
    )

    outcome = asyncio.run(orchestrator.run_task(startup.startup_id, "brainstormIdea"))

    assert outcome.status is TaskRunStatus.SUCCEEDED
    assert outcome.evaluation_url is None
    artifact = repository.get_startup(startup.startup_id).artifacts["brainstorm_result"]
    assert artifact.evaluation_url is None


def test_evaluation_url_is_stored_next_to_the_artifact(repository, startup, make_gateway) -> None:
    evaluator = _UrlEvaluator()
    orchestrator = TaskOrchestrator(
        repository=repository,
        gateway=make_gateway(),
        evaluator=evaluator,
    )

    outcome = asyncio.run(orchestrator.run_task(startup.startup_id, "brainstormIdea"))

    assert evaluator.calls == ["brainstormIdea"]
    assert outcome.evaluation_url == "https://scores.example.com/runs/brainstormIdea"
    artifact = repository.get_startup(startup.startup_id).artifacts["brainstorm_result"]
    assert artifact.evaluation_url == outcome.evaluation_url


def test_slow_evaluation_of_replaced_artifact_is_not_stored(
    repository, startup, make_gateway
) -> None:
    class _GatedEvaluator:
        def __init__(self) -> None:
            self.started = asyncio.Event()
            self.release = asyncio.Event()

        async def evaluate(self, task_id, payload):
            self.started.set()
            await self.release.wait()
            return "https://eval/run-A"

        async def aclose(self) -> None:
            return None

    class _FixedEvaluator:
        async def evaluate(self, task_id, payload):
            return "https://eval/run-B"

        async def aclose(self) -> None:
            return None

    generator = CountingTextGenerator()
    gated = _GatedEvaluator()
    slow = TaskOrchestrator(
        repository=repository,
        gateway=make_gateway(generator),
        evaluator=gated,
    )
    fast = TaskOrchestrator(
        repository=repository,
        gateway=make_gateway(generator),
        evaluator=_FixedEvaluator(),
    )

    async def _go():
        first = asyncio.create_task(
            slow.run_task(startup.startup_id, "brainstormIdea", force=True),
        )
        await gated.started.wait()
        second = await fast.run_task(startup.startup_id, "brainstormIdea", force=True)
        gated.release.set()
        return await first, second

    first, second = asyncio.run(_go())

    assert first.status is TaskRunStatus.SUCCEEDED
    assert first.evaluation_url is None
    assert second.evaluation_url == "https://eval/run-B"
    artifact = repository.get_startup(startup.startup_id).artifacts["brainstorm_result"]
    assert json.loads(artifact.value)["refinedIdea"] == "refinedIdea #2"
    assert artifact.evaluation_url == "https://eval/run-B"


def test_forced_overwrite_clears_previous_evaluation_url(
    repository, startup, make_gateway
) -> None:
    asyncio.run(
        TaskOrchestrator(
            repository=repository,
            gateway=make_gateway(),
            evaluator=_UrlEvaluator(),
        ).run_task(startup.startup_id, "brainstormIdea"),
    )

    asyncio.run(
        TaskOrchestrator(repository=repository, gateway=make_gateway()).run_task(
            startup.startup_id,
            "brainstormIdea",
            force=True,
        ),
    )

    artifact = repository.get_startup(startup.startup_id).artifacts["brainstorm_result"]
    assert artifact.evaluation_url is None


def test_api_endpoints_are_stored_as_text(repository, startup, make_gateway) -> None:
    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway())
    _run_all(
        orchestrator,
        startup.startup_id,
        [
            *CORE_FOUR,
            "generateCustomerPersonas",
            "userFlowDiagrams",
            "generateTechStack",
            "generateDatabaseSchema",
        ],
    )

    outcome = asyncio.run(orchestrator.run_task(startup.startup_id, "generateAPIEndpoints"))

    assert isinstance(outcome.result, str)
    assert outcome.result.startswith("# Endpoints")
    stored = repository.get_startup(startup.startup_id).artifacts[
        ArtifactField.API_ENDPOINTS.value
    ]
    assert json.loads(stored.value) == outcome.result


def test_audit_trail_records_each_outcome(repository, startup, make_gateway) -> None:
    orchestrator = TaskOrchestrator(repository=repository, gateway=make_gateway())
    asyncio.run(orchestrator.run_task(startup.startup_id, "brainstormIdea"))
    asyncio.run(orchestrator.run_task(startup.startup_id, "brainstormIdea"))
    with pytest.raises(PrerequisitesNotMet):
        asyncio.run(orchestrator.run_task(startup.startup_id, "pitchDeck"))

    events = repository.list_task_run_events(startup_id=startup.startup_id)

    assert [(event.task_id, event.status) for event in events] == [
        ("pitchDeck", TaskRunStatus.FAILED),
        ("brainstormIdea", TaskRunStatus.SKIPPED),
        ("brainstormIdea", TaskRunStatus.SUCCEEDED),
    ]
    assert "missing prerequisites" in (events[0].reason or "")
