"""Static catalog of pipeline tasks in their declared order."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from venture_forge.errors import UnknownTask
from venture_forge.orchestrator.artifacts import ArtifactField as F
from venture_forge.orchestrator.generation import (
    GenerationRoutine,
    generate_api_endpoints,
    json_routine,
    match_investors,
    research_market,
)


class TaskId(str, Enum):
    """Opaque task identifiers shared with the driving UI."""

    BRAINSTORM_IDEA = "brainstormIdea"
    MARKET_PULSE_CHECK = "marketPulseCheck"
    DEFINE_MISSION_VISION = "defineMissionVision"
    GENERATE_NAME_IDENTITY = "generateNameIdentity"
    SCORECARD = "scorecard"
    BUSINESS_PLAN = "businessPlan"
    PITCH_DECK = "pitchDeck"
    MARKET_RESEARCH = "marketResearch"
    COMPETITOR_MATRIX = "competitorMatrix"
    GENERATE_CUSTOMER_PERSONAS = "generateCustomerPersonas"
    GENERATE_INTERVIEW_SCRIPTS = "generateInterviewScripts"
    VALIDATE_PROBLEM = "validateProblem"
    AI_MENTOR = "aiMentor"
    USER_FLOW_DIAGRAMS = "userFlowDiagrams"
    AI_WIREFRAMING = "aiWireframing"
    WEBSITE = "website"
    GENERATE_TECH_STACK = "generateTechStack"
    GENERATE_DATABASE_SCHEMA = "generateDatabaseSchema"
    GENERATE_API_ENDPOINTS = "generateAPIEndpoints"
    GENERATE_DEVELOPMENT_ROADMAP = "generateDevelopmentRoadmap"
    ESTIMATE_COSTS = "estimateCosts"
    PRICING_STRATEGY = "pricingStrategy"
    MARKETING_COPY = "marketingCopy"
    PRE_LAUNCH_WAITLIST = "preLaunchWaitlist"
    PRODUCT_HUNT_KIT = "productHuntKit"
    PRESS_RELEASE = "pressRelease"
    GROWTH_METRICS = "growthMetrics"
    AB_TEST_IDEAS = "abTestIdeas"
    SEO_STRATEGY = "seoStrategy"
    PROCESS_AUTOMATION = "processAutomation"
    DRAFT_JOB_DESCRIPTIONS = "draftJobDescriptions"
    INVESTOR_MATCHING = "investorMatching"
    DUE_DILIGENCE_CHECKLIST = "dueDiligenceChecklist"
    AI_PITCH_COACH = "aiPitchCoach"


@dataclass(frozen=True, slots=True)
class TaskDefinition:
    """One pipeline step: what it needs, what it writes, how it generates."""

    task_id: TaskId
    title: str
    phase: str
    prerequisites: tuple[F, ...]
    output: F
    routine: GenerationRoutine


def _task(
    task_id: TaskId,
    title: str,
    phase: str,
    output: F,
    *prerequisites: F,
    routine: GenerationRoutine | None = None,
) -> TaskDefinition:
    return TaskDefinition(
        task_id=task_id,
        title=title,
        phase=phase,
        prerequisites=prerequisites,
        output=output,
        routine=routine or json_routine(output),
    )


_CORE_FOUR = (F.BRAINSTORM_RESULT, F.MARKET_PULSE, F.MISSION_VISION, F.BRAND_IDENTITY)

TASK_REGISTRY: tuple[TaskDefinition, ...] = (
    _task(TaskId.BRAINSTORM_IDEA, "Brainstorm idea", "ideation", F.BRAINSTORM_RESULT),
    _task(TaskId.MARKET_PULSE_CHECK, "Market pulse check", "ideation", F.MARKET_PULSE),
    _task(
        TaskId.DEFINE_MISSION_VISION,
        "Mission and vision",
        "ideation",
        F.MISSION_VISION,
        F.BRAINSTORM_RESULT,
        F.MARKET_PULSE,
    ),
    _task(
        TaskId.GENERATE_NAME_IDENTITY,
        "Name and brand identity",
        "ideation",
        F.BRAND_IDENTITY,
        F.BRAINSTORM_RESULT,
        F.MISSION_VISION,
    ),
    _task(TaskId.SCORECARD, "Venture scorecard", "ideation", F.SCORECARD, *_CORE_FOUR),
    _task(TaskId.BUSINESS_PLAN, "Business plan", "ideation", F.BUSINESS_PLAN, *_CORE_FOUR),
    _task(
        TaskId.PITCH_DECK,
        "Pitch deck",
        "ideation",
        F.PITCH_DECK,
        F.BRAINSTORM_RESULT,
        F.MISSION_VISION,
        F.BRAND_IDENTITY,
        F.BUSINESS_PLAN,
    ),
    _task(
        TaskId.MARKET_RESEARCH,
        "Deep-dive market research",
        "market",
        F.MARKET_RESEARCH,
        F.BRAINSTORM_RESULT,
        routine=research_market,
    ),
    _task(
        TaskId.COMPETITOR_MATRIX,
        "Competitor matrix",
        "market",
        F.COMPETITOR_MATRIX,
        F.MARKET_RESEARCH,
    ),
    _task(
        TaskId.GENERATE_CUSTOMER_PERSONAS,
        "Customer personas",
        "customers",
        F.CUSTOMER_PERSONAS,
        *_CORE_FOUR,
    ),
    _task(
        TaskId.GENERATE_INTERVIEW_SCRIPTS,
        "Interview scripts",
        "customers",
        F.INTERVIEW_SCRIPTS,
        F.BRAINSTORM_RESULT,
        F.CUSTOMER_PERSONAS,
    ),
    _task(
        TaskId.VALIDATE_PROBLEM,
        "Customer validation",
        "customers",
        F.CUSTOMER_VALIDATION,
        F.CUSTOMER_PERSONAS,
        F.INTERVIEW_SCRIPTS,
    ),
    _task(
        TaskId.AI_MENTOR,
        "Mentor feedback",
        "customers",
        F.MENTOR_FEEDBACK,
        F.BUSINESS_PLAN,
        F.MARKET_RESEARCH,
        F.CUSTOMER_VALIDATION,
    ),
    _task(
        TaskId.USER_FLOW_DIAGRAMS,
        "User flow diagram",
        "product",
        F.USER_FLOW,
        F.BRAINSTORM_RESULT,
        F.CUSTOMER_PERSONAS,
    ),
    _task(
        TaskId.AI_WIREFRAMING,
        "Wireframe",
        "product",
        F.WIREFRAME,
        F.BRAND_IDENTITY,
        F.USER_FLOW,
    ),
    _task(
        TaskId.WEBSITE,
        "Website prototype",
        "product",
        F.WEBSITE_PROTOTYPE,
        F.MISSION_VISION,
        F.BRAND_IDENTITY,
        F.WIREFRAME,
    ),
    _task(
        TaskId.GENERATE_TECH_STACK,
        "Tech stack",
        "product",
        F.TECH_STACK,
        F.BRAINSTORM_RESULT,
        F.USER_FLOW,
    ),
    _task(
        TaskId.GENERATE_DATABASE_SCHEMA,
        "Database schema",
        "product",
        F.DATABASE_SCHEMA,
        F.USER_FLOW,
        F.TECH_STACK,
    ),
    _task(
        TaskId.GENERATE_API_ENDPOINTS,
        "API endpoints",
        "product",
        F.API_ENDPOINTS,
        F.USER_FLOW,
        F.DATABASE_SCHEMA,
        routine=generate_api_endpoints,
    ),
    _task(
        TaskId.GENERATE_DEVELOPMENT_ROADMAP,
        "Development roadmap",
        "product",
        F.DEVELOPMENT_ROADMAP,
        F.TECH_STACK,
        F.API_ENDPOINTS,
    ),
    _task(
        TaskId.ESTIMATE_COSTS,
        "Cloud cost estimate",
        "product",
        F.COST_ESTIMATE,
        F.TECH_STACK,
        F.DATABASE_SCHEMA,
    ),
    _task(
        TaskId.PRICING_STRATEGY,
        "Pricing strategy",
        "go_to_market",
        F.PRICING_STRATEGY,
        F.BUSINESS_PLAN,
        F.COMPETITOR_MATRIX,
        F.CUSTOMER_PERSONAS,
    ),
    _task(
        TaskId.MARKETING_COPY,
        "Marketing copy",
        "go_to_market",
        F.MARKETING_COPY,
        F.BRAND_IDENTITY,
        F.CUSTOMER_PERSONAS,
        F.PRICING_STRATEGY,
    ),
    _task(
        TaskId.PRE_LAUNCH_WAITLIST,
        "Pre-launch waitlist page",
        "go_to_market",
        F.WAITLIST_PAGE,
        F.BRAND_IDENTITY,
        F.MARKETING_COPY,
    ),
    _task(
        TaskId.PRODUCT_HUNT_KIT,
        "Product Hunt launch kit",
        "go_to_market",
        F.PRODUCT_HUNT_KIT,
        F.BRAND_IDENTITY,
        F.MARKETING_COPY,
    ),
    _task(
        TaskId.PRESS_RELEASE,
        "Press release",
        "go_to_market",
        F.PRESS_RELEASE,
        F.MISSION_VISION,
        F.BRAND_IDENTITY,
        F.MARKETING_COPY,
    ),
    _task(
        TaskId.GROWTH_METRICS,
        "Growth metrics",
        "go_to_market",
        F.GROWTH_METRICS,
        F.BUSINESS_PLAN,
        F.PRICING_STRATEGY,
    ),
    _task(
        TaskId.AB_TEST_IDEAS,
        "A/B test ideas",
        "go_to_market",
        F.AB_TEST_IDEAS,
        F.PRICING_STRATEGY,
        F.MARKETING_COPY,
    ),
    _task(
        TaskId.SEO_STRATEGY,
        "SEO strategy",
        "go_to_market",
        F.SEO_STRATEGY,
        F.BRAND_IDENTITY,
        F.CUSTOMER_PERSONAS,
        F.MARKETING_COPY,
    ),
    _task(
        TaskId.PROCESS_AUTOMATION,
        "Process automation map",
        "operations",
        F.PROCESS_AUTOMATION,
        F.BUSINESS_PLAN,
        F.TECH_STACK,
    ),
    _task(
        TaskId.DRAFT_JOB_DESCRIPTIONS,
        "Job descriptions",
        "operations",
        F.JOB_DESCRIPTIONS,
        F.BUSINESS_PLAN,
        F.TECH_STACK,
    ),
    _task(
        TaskId.INVESTOR_MATCHING,
        "Investor matching",
        "funding",
        F.INVESTOR_MATCHING,
        F.BUSINESS_PLAN,
        routine=match_investors,
    ),
    _task(
        TaskId.DUE_DILIGENCE_CHECKLIST,
        "Due diligence checklist",
        "funding",
        F.DUE_DILIGENCE_CHECKLIST,
        F.BUSINESS_PLAN,
        F.PITCH_DECK,
        F.COST_ESTIMATE,
    ),
    _task(
        TaskId.AI_PITCH_COACH,
        "Pitch coach analysis",
        "funding",
        F.PITCH_COACH_ANALYSIS,
        F.PITCH_DECK,
    ),
)

_BY_ID: dict[TaskId, TaskDefinition] = {task.task_id: task for task in TASK_REGISTRY}


def lookup(task_id: str | TaskId) -> TaskDefinition:
    """Return the definition for ``task_id`` or raise ``UnknownTask``."""

    try:
        key = TaskId(task_id)
    except ValueError:
        raise UnknownTask(str(task_id)) from None
    return _BY_ID[key]


def all_tasks_in_order() -> tuple[TaskDefinition, ...]:
    return TASK_REGISTRY


def validate_registry(tasks: tuple[TaskDefinition, ...]) -> None:
    """Check ids and outputs are unique and every prerequisite is produced earlier."""

    seen_ids: set[TaskId] = set()
    produced: set[F] = set()
    for task in tasks:
        if task.task_id in seen_ids:
            raise ValueError(f"Duplicate task id in registry: {task.task_id.value}")
        if task.output in produced:
            raise ValueError(f"Artifact {task.output.value} is produced by more than one task")
        unknown = [field.value for field in task.prerequisites if field not in produced]
        if unknown:
            raise ValueError(
                f"Task {task.task_id.value} depends on artifacts no earlier task produces: "
                f"{', '.join(unknown)}",
            )
        seen_ids.add(task.task_id)
        produced.add(task.output)


validate_registry(TASK_REGISTRY)
