"""Generation routines: one async callable per artifact field.

A routine receives only the decoded prerequisite artifacts of its task and the
provider gateway. It either returns a complete, schema-valid result or raises;
it never touches the record store.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from venture_forge.errors import ArtifactContractError
from venture_forge.orchestrator.artifacts import ArtifactField, schema_for
from venture_forge.orchestrator.prompts import (
    build_investor_match_prompt,
    build_investor_queries_prompt,
    build_market_summary_prompt,
    build_task_prompt,
)
from venture_forge.providers.base import SearchHit
from venture_forge.providers.gateway import ProviderGateway

logger = logging.getLogger(__name__)

MARKET_RESEARCH_ANGLES = ("market landscape", "competitors", "key trends")
MAX_INVESTOR_QUERIES = 3


@dataclass(slots=True)
class GenerationInputs:
    """What a routine may read: identity fields and its prerequisite artifacts."""

    startup_id: str
    name: str
    idea: str
    artifacts: dict[ArtifactField, Any] = field(default_factory=dict)


GenerationRoutine = Callable[[GenerationInputs, ProviderGateway], Awaitable[Any]]


def json_routine(output: ArtifactField) -> GenerationRoutine:
    """Single JSON completion validated against the output schema."""

    async def routine(inputs: GenerationInputs, gateway: ProviderGateway) -> Any:
        payload = await gateway.complete_json(
            build_task_prompt(
                output,
                name=inputs.name,
                idea=inputs.idea,
                artifacts=inputs.artifacts,
            ),
        )
        schema_for(output).validate(payload)
        return payload

    routine.__name__ = f"generate_{output.value}"
    routine.__qualname__ = routine.__name__
    return routine


async def generate_api_endpoints(inputs: GenerationInputs, gateway: ProviderGateway) -> str:
    text = await gateway.complete_text(
        build_task_prompt(
            ArtifactField.API_ENDPOINTS,
            name=inputs.name,
            idea=inputs.idea,
            artifacts=inputs.artifacts,
        ),
    )
    document = text.strip()
    schema_for(ArtifactField.API_ENDPOINTS).validate(document)
    return document


async def research_market(inputs: GenerationInputs, gateway: ProviderGateway) -> dict[str, Any]:
    """Search the market from three angles, then summarize the pages.

    Hits that come back without page content are scraped before summarizing.
    """

    subject = refined_idea(inputs)
    hits: list[SearchHit] = []
    for angle in MARKET_RESEARCH_ANGLES:
        hits.extend(await gateway.search(f"{subject} {angle}"))
    sources = [
        hit if hit.markdown.strip() else await gateway.scrape(hit.url)
        for hit in _unique_by_url(hits)
    ]
    if not sources:
        raise ArtifactContractError("Market research found no sources to summarize")
    logger.info("Summarizing %d market source(s) for startup %s", len(sources), inputs.startup_id)

    payload = await gateway.complete_json(
        build_market_summary_prompt(name=inputs.name, idea=subject, hits=sources),
    )
    payload["competitors"] = string_list(payload.get("competitors"))
    payload["trends"] = string_list(payload.get("trends"))
    schema_for(ArtifactField.MARKET_RESEARCH).validate(payload)
    return payload


async def match_investors(inputs: GenerationInputs, gateway: ProviderGateway) -> dict[str, Any]:
    """Ask for investor search queries, search them, then rank the matches."""

    query_payload = await gateway.complete_json(
        build_investor_queries_prompt(
            name=inputs.name,
            idea=inputs.idea,
            artifacts=inputs.artifacts,
        ),
    )
    queries = string_list(query_payload.get("queries"))[:MAX_INVESTOR_QUERIES]
    if not queries:
        raise ArtifactContractError("Investor search produced no queries")

    hits: list[SearchHit] = []
    for query in queries:
        hits.extend(await gateway.search(query))
    sources = _unique_by_url(hits)
    logger.info(
        "Matching investors from %d source(s) for startup %s",
        len(sources),
        inputs.startup_id,
    )

    payload = await gateway.complete_json(
        build_investor_match_prompt(
            name=inputs.name,
            idea=inputs.idea,
            artifacts=inputs.artifacts,
            hits=sources,
        ),
    )
    schema_for(ArtifactField.INVESTOR_MATCHING).validate(payload)
    return payload


def refined_idea(inputs: GenerationInputs) -> str:
    brainstorm = inputs.artifacts.get(ArtifactField.BRAINSTORM_RESULT)
    if isinstance(brainstorm, dict):
        refined = brainstorm.get("refinedIdea")
        if isinstance(refined, str) and refined.strip():
            return refined.strip()
    return inputs.idea


def string_list(value: Any) -> list[str]:
    """Coerce a model-provided list-ish value into a list of non-empty strings."""

    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    raise ArtifactContractError(f"Expected a list of strings, got {type(value).__name__}")


def _unique_by_url(hits: list[SearchHit]) -> list[SearchHit]:
    seen: set[str] = set()
    unique: list[SearchHit] = []
    for hit in hits:
        if hit.url in seen:
            continue
        seen.add(hit.url)
        unique.append(hit)
    return unique
