"""Artifact fields of a startup record and the shape each one must have.

The orchestrator moves artifacts around as opaque serialized text. The schemas
here are what generation routines and tests use to check that a result has its
top-level keys before it is persisted.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from venture_forge.errors import ArtifactContractError


class ArtifactField(str, Enum):
    """Named artifact slots on a startup record."""

    BRAINSTORM_RESULT = "brainstorm_result"
    MARKET_PULSE = "market_pulse"
    MISSION_VISION = "mission_vision"
    BRAND_IDENTITY = "brand_identity"
    SCORECARD = "scorecard"
    BUSINESS_PLAN = "business_plan"
    PITCH_DECK = "pitch_deck"
    MARKET_RESEARCH = "market_research"
    COMPETITOR_MATRIX = "competitor_matrix"
    CUSTOMER_PERSONAS = "customer_personas"
    INTERVIEW_SCRIPTS = "interview_scripts"
    CUSTOMER_VALIDATION = "customer_validation"
    MENTOR_FEEDBACK = "mentor_feedback"
    USER_FLOW = "user_flow"
    WIREFRAME = "wireframe"
    WEBSITE_PROTOTYPE = "website_prototype"
    TECH_STACK = "tech_stack"
    DATABASE_SCHEMA = "database_schema"
    API_ENDPOINTS = "api_endpoints"
    DEVELOPMENT_ROADMAP = "development_roadmap"
    COST_ESTIMATE = "cost_estimate"
    PRICING_STRATEGY = "pricing_strategy"
    MARKETING_COPY = "marketing_copy"
    WAITLIST_PAGE = "waitlist_page"
    PRODUCT_HUNT_KIT = "product_hunt_kit"
    PRESS_RELEASE = "press_release"
    GROWTH_METRICS = "growth_metrics"
    AB_TEST_IDEAS = "ab_test_ideas"
    SEO_STRATEGY = "seo_strategy"
    PROCESS_AUTOMATION = "process_automation"
    JOB_DESCRIPTIONS = "job_descriptions"
    INVESTOR_MATCHING = "investor_matching"
    DUE_DILIGENCE_CHECKLIST = "due_diligence_checklist"
    PITCH_COACH_ANALYSIS = "pitch_coach_analysis"


class ArtifactKind(str, Enum):
    JSON = "json"
    TEXT = "text"


@dataclass(frozen=True, slots=True)
class ArtifactSchema:
    """Top-level contract of one artifact field."""

    field: ArtifactField
    kind: ArtifactKind
    required_keys: tuple[str, ...] = ()

    def validate(self, value: Any) -> None:
        if self.kind is ArtifactKind.TEXT:
            if not isinstance(value, str) or not value.strip():
                raise ArtifactContractError(
                    f"Artifact {self.field.value} must be a non-empty text document",
                )
            return
        if not isinstance(value, dict):
            raise ArtifactContractError(
                f"Artifact {self.field.value} must be a JSON object, got {type(value).__name__}",
            )
        missing = [key for key in self.required_keys if key not in value]
        if missing:
            raise ArtifactContractError(
                f"Artifact {self.field.value} is missing required keys: {', '.join(missing)}",
            )


def _json(field: ArtifactField, *keys: str) -> ArtifactSchema:
    return ArtifactSchema(field=field, kind=ArtifactKind.JSON, required_keys=keys)


ARTIFACT_SCHEMAS: dict[ArtifactField, ArtifactSchema] = {
    schema.field: schema
    for schema in (
        _json(
            ArtifactField.BRAINSTORM_RESULT,
            "refinedIdea",
            "keyFeatures",
            "potentialAngles",
            "initialConcerns",
            "competitiveAdvantage",
        ),
        _json(
            ArtifactField.MARKET_PULSE,
            "marketDemand",
            "competitionLevel",
            "growthPotential",
            "relatedKeywords",
            "summary",
        ),
        _json(ArtifactField.MISSION_VISION, "mission", "vision"),
        _json(ArtifactField.BRAND_IDENTITY, "names", "slogan"),
        _json(ArtifactField.SCORECARD, "marketSize", "feasibility", "innovation", "overallScore"),
        _json(
            ArtifactField.BUSINESS_PLAN,
            "executiveSummary",
            "companyDescription",
            "productsAndServices",
            "marketAnalysis",
            "marketingAndSalesStrategy",
            "organizationAndManagement",
            "financialProjections",
        ),
        _json(ArtifactField.PITCH_DECK, "script", "slides"),
        _json(ArtifactField.MARKET_RESEARCH, "summary", "competitors", "trends"),
        _json(ArtifactField.COMPETITOR_MATRIX, "matrix"),
        _json(ArtifactField.CUSTOMER_PERSONAS, "personas"),
        _json(ArtifactField.INTERVIEW_SCRIPTS, "scripts"),
        _json(ArtifactField.CUSTOMER_VALIDATION, "simulations"),
        _json(ArtifactField.MENTOR_FEEDBACK, "strengths", "weaknesses", "suggestions"),
        _json(ArtifactField.USER_FLOW, "nodes", "edges"),
        _json(ArtifactField.WIREFRAME, "code"),
        _json(ArtifactField.WEBSITE_PROTOTYPE, "code"),
        _json(ArtifactField.TECH_STACK, "stack"),
        _json(ArtifactField.DATABASE_SCHEMA, "nodes", "edges"),
        ArtifactSchema(field=ArtifactField.API_ENDPOINTS, kind=ArtifactKind.TEXT),
        _json(ArtifactField.DEVELOPMENT_ROADMAP, "roadmap"),
        _json(ArtifactField.COST_ESTIMATE, "costs", "summary"),
        _json(ArtifactField.PRICING_STRATEGY, "models"),
        _json(
            ArtifactField.MARKETING_COPY,
            "taglines",
            "socialMediaPosts",
            "adCopy",
            "emailCampaign",
        ),
        _json(ArtifactField.WAITLIST_PAGE, "code"),
        _json(
            ArtifactField.PRODUCT_HUNT_KIT,
            "taglines",
            "makersComment",
            "tweetSequence",
            "visualAssetIdeas",
            "announcementEmail",
            "linkedinPost",
            "thankYouTweet",
        ),
        _json(
            ArtifactField.PRESS_RELEASE,
            "headline",
            "dateline",
            "introduction",
            "body",
            "quote",
            "aboutUs",
            "contactEmail",
        ),
        _json(ArtifactField.GROWTH_METRICS, "title", "introduction", "metrics"),
        _json(ArtifactField.AB_TEST_IDEAS, "tests"),
        _json(ArtifactField.SEO_STRATEGY, "keywordClusters", "contentPillars"),
        _json(ArtifactField.PROCESS_AUTOMATION, "processes"),
        _json(ArtifactField.JOB_DESCRIPTIONS, "jobs"),
        _json(ArtifactField.INVESTOR_MATCHING, "investors"),
        _json(ArtifactField.DUE_DILIGENCE_CHECKLIST, "categories"),
        _json(ArtifactField.PITCH_COACH_ANALYSIS, "overallScore", "feedback"),
    )
}


def schema_for(field: ArtifactField) -> ArtifactSchema:
    return ARTIFACT_SCHEMAS[field]


def encode_artifact(field: ArtifactField, value: Any) -> str:
    """Validate a generated result and serialize it for storage."""

    schema_for(field).validate(value)
    return json.dumps(value, ensure_ascii=False)


def decode_artifact(field: ArtifactField, raw: str) -> Any:
    """Parse a stored artifact and check it still matches its schema."""

    try:
        value = json.loads(raw)
    except json.JSONDecodeError as error:
        raise ArtifactContractError(
            f"Stored artifact {field.value} is not valid JSON: {error}",
        ) from error
    schema_for(field).validate(value)
    return value
