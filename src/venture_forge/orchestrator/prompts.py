"""Prompt assembly for generation routines."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from venture_forge.orchestrator.artifacts import ArtifactField, ArtifactKind, schema_for
from venture_forge.providers.base import SearchHit

MAX_SOURCE_CHARS = 4_000

TASK_INSTRUCTIONS: dict[ArtifactField, str] = {
    ArtifactField.BRAINSTORM_RESULT: (
        "Act as a startup consultant. Refine the raw idea into one sentence and list its top "
        "features, unexplored angles, open concerns and competitive advantages."
    ),
    ArtifactField.MARKET_PULSE: (
        "Act as a market analyst. Score market demand, competition level and growth potential "
        "from 0 to 100, list related search keywords and summarize the pulse in one sentence."
    ),
    ArtifactField.MISSION_VISION: (
        "Act as a brand strategist. Write a mission statement and a vision statement."
    ),
    ArtifactField.BRAND_IDENTITY: (
        "Act as a branding expert. Propose five business names and one slogan."
    ),
    ArtifactField.SCORECARD: (
        "Act as a venture capital analyst. Score market size, feasibility and innovation from "
        "0 to 100 with a justification each, then a weighted overall score."
    ),
    ArtifactField.BUSINESS_PLAN: "Act as a business consultant. Write a complete business plan.",
    ArtifactField.PITCH_DECK: "Act as a pitch expert. Write a pitch script and the slide outline.",
    ArtifactField.COMPETITOR_MATRIX: (
        "Build a competitor matrix with key features, target audience, strengths and "
        "weaknesses for every competitor named in the market research."
    ),
    ArtifactField.CUSTOMER_PERSONAS: "Describe three distinct customer personas.",
    ArtifactField.INTERVIEW_SCRIPTS: (
        "Write a customer discovery interview script for every persona."
    ),
    ArtifactField.CUSTOMER_VALIDATION: (
        "Simulate the interviews with every persona and report positive feedback, critical "
        "concerns and unanswered questions."
    ),
    ArtifactField.MENTOR_FEEDBACK: (
        "Act as an experienced startup mentor. Give strengths, weaknesses and suggestions."
    ),
    ArtifactField.USER_FLOW: "Design the core user flow as a graph of nodes and edges.",
    ArtifactField.WIREFRAME: "Produce a low-fidelity HTML wireframe of the main screen.",
    ArtifactField.WEBSITE_PROTOTYPE: "Produce a single-page HTML landing page prototype.",
    ArtifactField.TECH_STACK: "Recommend a technology stack grouped by category.",
    ArtifactField.DATABASE_SCHEMA: "Design the database schema as a graph of tables and relations.",
    ArtifactField.API_ENDPOINTS: "Document the REST API endpoints of the product in markdown.",
    ArtifactField.DEVELOPMENT_ROADMAP: "Plan a phased development roadmap with epics and tasks.",
    ArtifactField.COST_ESTIMATE: "Estimate monthly cloud costs per service and growth stage.",
    ArtifactField.PRICING_STRATEGY: "Propose pricing models with tiers and a recommended tier.",
    ArtifactField.MARKETING_COPY: (
        "Write taglines, social media posts, ad copy and a launch email campaign."
    ),
    ArtifactField.WAITLIST_PAGE: "Produce a pre-launch waitlist page as a single HTML document.",
    ArtifactField.PRODUCT_HUNT_KIT: "Prepare a Product Hunt launch kit.",
    ArtifactField.PRESS_RELEASE: "Draft a launch press release.",
    ArtifactField.GROWTH_METRICS: "Identify the key growth metrics the team should track.",
    ArtifactField.AB_TEST_IDEAS: "Brainstorm A/B test ideas with hypotheses and two variations.",
    ArtifactField.SEO_STRATEGY: "Design an SEO strategy with keyword clusters and content pillars.",
    ArtifactField.PROCESS_AUTOMATION: (
        "Map the core business processes and their automation potential."
    ),
    ArtifactField.JOB_DESCRIPTIONS: "Draft job descriptions for the first key hires.",
    ArtifactField.DUE_DILIGENCE_CHECKLIST: (
        "Build an investor due diligence checklist grouped by category."
    ),
    ArtifactField.PITCH_COACH_ANALYSIS: (
        "Act as a pitch coach. Score the pitch from 0 to 100 and give categorized feedback."
    ),
}


def build_task_prompt(
    output: ArtifactField,
    *,
    name: str,
    idea: str,
    artifacts: Mapping[ArtifactField, Any],
) -> str:
    """Prompt for a routine that needs nothing beyond the record itself."""

    return _assemble(
        TASK_INSTRUCTIONS[output],
        name=name,
        idea=idea,
        context=_render_artifacts(artifacts),
        output=output,
    )


def build_market_summary_prompt(*, name: str, idea: str, hits: Sequence[SearchHit]) -> str:
    return _assemble(
        "Act as a market analyst. Synthesize the scraped pages into a market summary, the "
        "main competitors and the emerging trends. Use only the provided sources.",
        name=name,
        idea=idea,
        context=_render_hits(hits),
        output=ArtifactField.MARKET_RESEARCH,
    )


def build_investor_queries_prompt(
    *,
    name: str,
    idea: str,
    artifacts: Mapping[ArtifactField, Any],
) -> str:
    return _assemble(
        "Write three web search queries that would find venture capital firms or angel "
        "investors relevant to this startup's industry, stage and model.",
        name=name,
        idea=idea,
        context=_render_artifacts(artifacts),
        required_keys=("queries",),
    )


def build_investor_match_prompt(
    *,
    name: str,
    idea: str,
    artifacts: Mapping[ArtifactField, Any],
    hits: Sequence[SearchHit],
) -> str:
    context = _render_artifacts(artifacts) + "\n\n" + _render_hits(hits)
    return _assemble(
        "Act as a venture capital analyst. From the scraped investor pages pick the three to "
        "five best matches and explain each match with its source URL.",
        name=name,
        idea=idea,
        context=context,
        output=ArtifactField.INVESTOR_MATCHING,
    )


def _assemble(
    instruction: str,
    *,
    name: str,
    idea: str,
    context: str,
    output: ArtifactField | None = None,
    required_keys: tuple[str, ...] = (),
) -> str:
    lines = [
        instruction,
        "",
        f'Startup name: "{name}"',
        f"Original idea: {idea}",
    ]
    if context:
        lines.extend(["", "Context:", context])
    lines.append("")
    if output is not None and schema_for(output).kind is ArtifactKind.TEXT:
        lines.append("Respond with a markdown document only.")
        return "\n".join(lines)
    keys = required_keys or (schema_for(output).required_keys if output is not None else ())
    lines.append("Respond with a single valid JSON object.")
    if keys:
        lines.append(f"Required JSON keys: {', '.join(keys)}")
    return "\n".join(lines)


def _render_artifacts(artifacts: Mapping[ArtifactField, Any]) -> str:
    sections = []
    for field, value in artifacts.items():
        body = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, indent=2)
        sections.append(f"## {field.value}\n{body}")
    return "\n\n".join(sections)


def _render_hits(hits: Sequence[SearchHit]) -> str:
    return "\n\n".join(
        f"--- Source: {hit.title} ({hit.url}) ---\n{hit.markdown[:MAX_SOURCE_CHARS]}"
        for hit in hits
    )
