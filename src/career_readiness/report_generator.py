"""
report_generator.py — Narrative generation for the career report
=================================================================
Turns aggregated scores (never raw responses) into the prose half of a
Report: a list of insights and a 90-day growth plan.

Tiers (highest available wins, chosen by ``build_generator``):
  1. OpenAIReportGenerator  Azure OpenAI JSON-mode completion via the
     async ``openai`` client.  Active when credentials are real and
     FORCE_MOCK_MODE is false.
  2. MockReportGenerator    rule-based narrative from strengths, gaps and
     archetype.  No network, no credentials.

``build_fallback_narrative`` is not a tier: it is the deterministic text
the pipeline substitutes after every attempt has failed.
"""

from __future__ import annotations

import json
import logging
import textwrap
from typing import Optional, Protocol

from openai import AsyncAzureOpenAI
from pydantic import BaseModel, Field

from career_readiness.config import AzureOpenAIConfig, Settings, get_settings
from career_readiness.models import GeneratedNarrative

logger = logging.getLogger(__name__)


class GenerationRequest(BaseModel):
    """What the generation service is allowed to see about a session."""
    session_id:       str
    dimension_scores: dict[str, float]
    overall_score:    float
    archetype:        str
    inferred_level:   str = ""
    strengths:        list[str] = Field(default_factory=list)
    gaps:             list[str] = Field(default_factory=list)


class ReportGenerator(Protocol):
    name: str

    async def generate(self, request: GenerationRequest) -> GeneratedNarrative: ...


# ─── Shared narrative fragments ──────────────────────────────────────────────

_GAP_ACTIONS: dict[str, list[str]] = {
    "visibility": [
        "Write and share one post about a recent win or lesson learned.",
        "Schedule a 1:1 with your skip-level to share what you're working on.",
    ],
    "narrative": [
        "Open your next update with the business outcome before the details.",
        "Rewrite one recent project summary as a three-sentence story of problem, bet and result.",
    ],
    "influence": [
        "Identify one stakeholder you need to influence and set up a relationship-building coffee chat.",
        "Practise a two-minute executive summary of your current project.",
    ],
    "strategy": [
        "Block two hours to write a one-page strategy doc for your area.",
        "Study one competitor's strategy and document what they're betting on.",
    ],
    "executive_presence": [
        "Prepare a two-minute opening statement for your next exec meeting and rehearse it out loud.",
        "Note three specific behaviours of the most respected leader in your org and try one each week.",
    ],
    "ambiguity": [
        "Commit to one decision this month with incomplete data, with a checkpoint to revisit it.",
        "Write down the assumptions behind your current plan and share them with your team.",
    ],
    "conflict_management": [
        "Pick one unresolved tension with a colleague and start a direct conversation about it.",
        "In your next disagreement, say 'I see it differently, and here's why' instead of staying quiet.",
    ],
    "execution": [
        "Agree on one measurable outcome for each project you own and track it weekly.",
        "Cut or delegate one low-impact commitment to protect focus time.",
    ],
}

_DEFAULT_ACTIONS = ["Document your top three wins from the past quarter with measurable impact."]

_CLOSING_ACTION = "Reach out to two people at your target level for informational conversations."

_ARCHETYPE_INSIGHTS: dict[str, str] = {
    "Invisible Expert":               "Your delivery is strong; the next step is making that impact visible to decision-makers.",
    "Execution Hero":                 "Reliable execution has become your ceiling. Shift time from doing to shaping direction.",
    "Strategic Thinker Without Voice": "Your strategic instincts are sound; influence is what turns them into decisions.",
    "Over-Deliverer":                 "Polishing is costing you pace. Telling the story of your work matters as much as the work.",
    "Certainty Seeker":               "Senior roles reward creating clarity. Practise committing before the picture is complete.",
    "Conflict Avoider":               "Productive disagreement is a leadership skill. Engaging tension will widen your scope.",
    "Background Player":              "The skills are there; presence in senior rooms is the unlock.",
}


def _label(dimension: str) -> str:
    return dimension.replace("_", " ")


def _growth_plan(gaps: list[str], limit: int = 5) -> list[str]:
    actions: list[str] = []
    for gap in gaps:
        actions.extend(_GAP_ACTIONS.get(gap, []))
    if not actions:
        actions = list(_DEFAULT_ACTIONS)
    actions.append(_CLOSING_ACTION)
    return actions[:limit]


def build_fallback_narrative(archetype: str, dimension_scores: dict[str, float], gaps: list[str]) -> GeneratedNarrative:
    """Deterministic narrative from scores alone, keyed by archetype."""
    insights = [
        _ARCHETYPE_INSIGHTS.get(
            archetype,
            f"Your profile points to the '{archetype}' archetype; build on it deliberately.",
        )
    ]
    if gaps:
        weakest = gaps[0]
        insights.append(
            f"Your lowest-scoring area is {_label(weakest)} "
            f"({dimension_scores.get(weakest, 0.0):.0f}/100); start your plan there."
        )
    return GeneratedNarrative(insights=insights, growth_plan=_growth_plan(gaps))


# ─── Tier 2: rule-based mock ─────────────────────────────────────────────────

class MockReportGenerator:
    """Rule-based narrative used when no live credentials are configured."""

    name = "mock"

    async def generate(self, request: GenerationRequest) -> GeneratedNarrative:
        scores = request.dimension_scores
        insights = [
            f"Your overall readiness score is {request.overall_score:.0f}/100, "
            f"which places you in the '{request.archetype}' profile."
        ]
        if request.inferred_level:
            insights.append(f"Your answers read like someone operating at {request.inferred_level} level today.")
        for dim in request.strengths:
            insights.append(f"{_label(dim).capitalize()} is a strength ({scores.get(dim, 0.0):.0f}/100).")
        if request.gaps:
            insights.append(
                "Your biggest growth areas are "
                + ", ".join(_label(g) for g in request.gaps)
                + "."
            )
        return GeneratedNarrative(insights=insights, growth_plan=_growth_plan(request.gaps))


# ─── Tier 1: Azure OpenAI ────────────────────────────────────────────────────

_SYSTEM_PROMPT = textwrap.dedent("""
    You are a career coach writing a short readiness report for a professional
    who has just completed a leadership assessment.

    You receive dimension scores (0-100), an overall score, an archetype, the
    inferred current level, and the strongest and weakest dimensions.
    Return ONLY a JSON object:

    {
      "insights":    ["3 to 5 short, specific observations"],
      "growth_plan": ["3 to 5 concrete actions for the next 90 days"]
    }

    Be direct and encouraging.  Do not invent facts about the person.
""").strip()


class OpenAIReportGenerator:
    """Azure OpenAI JSON-mode completion over aggregated scores."""

    name = "azure_openai"

    def __init__(self, config: AzureOpenAIConfig, client: Optional[AsyncAzureOpenAI] = None) -> None:
        self._cfg = config
        self._client = client or AsyncAzureOpenAI(
            azure_endpoint=config.endpoint,
            api_key=config.api_key,
            api_version=config.api_version,
        )

    def _build_user_message(self, request: GenerationRequest) -> str:
        scores = "\n".join(f"  {dim}: {score:.0f}" for dim, score in request.dimension_scores.items())
        return textwrap.dedent(f"""
            Overall score: {request.overall_score:.0f}
            Archetype: {request.archetype}
            Current level (inferred): {request.inferred_level or "Unknown"}
            Strengths: {", ".join(request.strengths) or "None"}
            Gaps: {", ".join(request.gaps) or "None"}
            Dimension scores:
        """).strip() + "\n" + scores

    async def generate(self, request: GenerationRequest) -> GeneratedNarrative:
        response = await self._client.chat.completions.create(
            model=self._cfg.deployment,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user",   "content": self._build_user_message(request)},
            ],
            temperature=0.4,
            max_tokens=1200,
        )
        raw_json = response.choices[0].message.content or "{}"
        return GeneratedNarrative.model_validate(json.loads(raw_json))


def build_generator(settings: Optional[Settings] = None) -> ReportGenerator:
    """Pick the highest available tier for the current settings."""
    settings = settings or get_settings()
    if settings.live_mode:
        logger.info("Report generation: Azure OpenAI (%s)", settings.openai.deployment)
        return OpenAIReportGenerator(settings.openai)
    logger.info("Report generation: mock tier")
    return MockReportGenerator()
