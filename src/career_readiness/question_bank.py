"""
question_bank.py — Built-in assessment configuration
=====================================================
Declarative data for the default assessment: dimensions, modules,
questions, option weights, the email-gate checkpoint and the archetype
policy.  The same structure can be supplied as a JSON file (see
``load_assessment_config``) so product can change the bank without a
code change.

Layout
------
  4 modules × 3 questions = 12 questions
  Gate checkpoint after module index 1 (6 questions answered)
  8 dimensions, each reachable from at least three questions
  Level hints on iv_02, iv_03 and er_01; score floors decide otherwise
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from career_readiness.models import AssessmentConfig

logger = logging.getLogger(__name__)


# ─── Dimensions (declaration order breaks score ties) ────────────────────────

_DIMENSIONS: list[dict[str, Any]] = [
    {"id": "strategy",            "label": "Strategic Thinking",  "weight": 1.2},
    {"id": "influence",           "label": "Influence",           "weight": 1.2},
    {"id": "executive_presence",  "label": "Executive Presence",  "weight": 1.2},
    {"id": "narrative",           "label": "Narrative",           "weight": 1.0},
    {"id": "visibility",          "label": "Visibility",          "weight": 1.0},
    {"id": "ambiguity",           "label": "Navigating Ambiguity", "weight": 1.0},
    {"id": "conflict_management", "label": "Conflict Management", "weight": 1.0},
    {"id": "execution",           "label": "Execution",           "weight": 0.9},
]


def _opt(value: str, label: str, level_hint: Optional[str] = None, **weights: float) -> dict[str, Any]:
    opt: dict[str, Any] = {"value": value, "label": label, "dimension_weights": weights}
    if level_hint:
        opt["level_hint"] = level_hint
    return opt


# ─── Modules ─────────────────────────────────────────────────────────────────

_MODULES: list[dict[str, Any]] = [
    {
        "id": "strategic_foundations",
        "name": "Strategic Foundations",
        "description": "How you set direction and make decisions when the path is unclear.",
        "questions": [
            {
                "id": "sf_01",
                "prompt": "Your team is handed a vague mandate to 'grow engagement'. What do you do first?",
                "options": [
                    _opt("a", "Wait for leadership to clarify the goal", execution=1),
                    _opt("b", "Start shipping quick experiments immediately", execution=3, ambiguity=1),
                    _opt("c", "Frame two or three hypotheses and align on one metric", strategy=3, ambiguity=2),
                    _opt("d", "Write a short strategy memo and socialise it with peers", strategy=2, influence=1, narrative=2),
                ],
            },
            {
                "id": "sf_02",
                "prompt": "When priorities conflict, how do you usually decide?",
                "options": [
                    _opt("a", "Whoever escalates loudest gets priority", conflict_management=0),
                    _opt("b", "I work longer hours to fit everything in", execution=2),
                    _opt("c", "I rank by impact and explain the trade-offs openly", strategy=3, conflict_management=2),
                    _opt("d", "I ask my manager to decide", ambiguity=0, execution=1),
                ],
            },
            {
                "id": "sf_03",
                "prompt": "How often do you connect your work to company-level goals when presenting it?",
                "options": [
                    _opt("a", "Rarely; the work speaks for itself", execution=2),
                    _opt("b", "Sometimes, when asked", narrative=1, strategy=1),
                    _opt("c", "Usually, I open with the business outcome", narrative=3, strategy=2),
                    _opt("d", "Always, and I tailor it for each audience", narrative=3, strategy=2, executive_presence=2),
                ],
            },
        ],
    },
    {
        "id": "influence_visibility",
        "name": "Influence & Visibility",
        "description": "How your work and ideas travel beyond your immediate team.",
        "questions": [
            {
                "id": "iv_01",
                "prompt": "A senior leader disagrees with your recommendation in a meeting. You:",
                "options": [
                    _opt("a", "Drop the point to keep the peace", conflict_management=0),
                    _opt("b", "Defend it harder with more detail", execution=1, conflict_management=1),
                    _opt("c", "Acknowledge the concern and propose a small test", influence=3, conflict_management=3),
                    _opt("d", "Follow up one-on-one with data afterwards", influence=2, executive_presence=1),
                ],
            },
            {
                "id": "iv_02",
                "prompt": "Who outside your team knows what you shipped last quarter?",
                "options": [
                    _opt("a", "Probably nobody", "PM", execution=2),
                    _opt("b", "My manager", "Senior", visibility=1),
                    _opt("c", "My skip-level and partner teams", "Principal", visibility=3, influence=1),
                    _opt("d", "Leadership, via a regular written update I send", "Director", visibility=3, narrative=2),
                ],
            },
            {
                "id": "iv_03",
                "prompt": "You need another team to change their roadmap for your project. You:",
                "options": [
                    _opt("a", "File a ticket and wait", "PM", execution=1),
                    _opt("b", "Escalate to your manager", "Senior", influence=1),
                    _opt("c", "Learn their goals and show how the change helps them", "Principal", influence=3, strategy=1),
                    _opt("d", "Build a coalition of stakeholders before asking", "GPM", influence=3, visibility=1, executive_presence=1),
                ],
            },
        ],
    },
    {
        "id": "leading_through_ambiguity",
        "name": "Leading Through Ambiguity",
        "description": "How you operate when plans change and information is incomplete.",
        "questions": [
            {
                "id": "la_01",
                "prompt": "A launch date slips because of an unexpected dependency. You:",
                "options": [
                    _opt("a", "Keep quiet until you have a new plan", execution=1),
                    _opt("b", "Tell stakeholders immediately with options and a recommendation", ambiguity=3, executive_presence=2),
                    _opt("c", "Push the team to recover the date at all costs", execution=3),
                    _opt("d", "Ask leadership what they want to do", ambiguity=1),
                ],
            },
            {
                "id": "la_02",
                "prompt": "How comfortable are you committing to a direction with 60% of the information?",
                "options": [
                    _opt("a", "Not at all; I need more data", ambiguity=0, execution=1),
                    _opt("b", "Uneasy, but I will if someone senior agrees", ambiguity=1),
                    _opt("c", "Comfortable, with clear checkpoints to revisit", ambiguity=3, strategy=2),
                    _opt("d", "Very; speed matters more than certainty", ambiguity=2, execution=2),
                ],
            },
            {
                "id": "la_03",
                "prompt": "Two senior stakeholders give you contradictory direction. You:",
                "options": [
                    _opt("a", "Try to satisfy both", execution=1),
                    _opt("b", "Pick the more senior person's view", influence=1),
                    _opt("c", "Bring them together to resolve the conflict explicitly", conflict_management=3, executive_presence=2),
                    _opt("d", "Write up the trade-off and ask for a decision by a date", conflict_management=2, narrative=2, ambiguity=1),
                ],
            },
        ],
    },
    {
        "id": "executive_readiness",
        "name": "Executive Readiness",
        "description": "How you show up in rooms where decisions are made.",
        "questions": [
            {
                "id": "er_01",
                "prompt": "You get five minutes with the VP. How do you use them?",
                "options": [
                    _opt("a", "Walk through a detailed status update", "Senior", execution=2),
                    _opt("b", "Ask for feedback on your performance", "PM", visibility=1),
                    _opt("c", "Lead with one decision you need and why it matters", "Director", executive_presence=3, narrative=2),
                    _opt("d", "Share a point of view on where the market is heading", "Principal", executive_presence=2, strategy=2, visibility=1),
                ],
            },
            {
                "id": "er_02",
                "prompt": "Which feedback have you heard most often?",
                "options": [
                    _opt("a", "'Great at getting things done'", execution=3),
                    _opt("b", "'We need to hear more from you'", execution=1, visibility=0),
                    _opt("c", "'You bring clarity to messy problems'", strategy=2, ambiguity=2, narrative=1),
                    _opt("d", "'People listen when you speak'", executive_presence=3, influence=2),
                ],
            },
            {
                "id": "er_03",
                "prompt": "Which of these have you done in the last six months? (select all that apply)",
                "multi_select": True,
                "options": [
                    _opt("a", "Presented to an executive audience", executive_presence=2, visibility=1),
                    _opt("b", "Resolved a cross-team disagreement", conflict_management=2, influence=1),
                    _opt("c", "Published a written strategy or vision", strategy=1, narrative=2),
                    _opt("d", "Delivered a project ahead of schedule", execution=2),
                ],
            },
        ],
    },
]


# ─── Archetype policy ────────────────────────────────────────────────────────

_ARCHETYPE_POLICY: dict[str, Any] = {
    "rules": [
        {
            "name": "Invisible Expert",
            "description": "You deliver consistently, but decision-makers rarely see the impact.",
            "conditions": [
                {"dimension": "execution", "min": 70},
                {"dimension": "visibility", "max": 50},
            ],
        },
        {
            "name": "Execution Hero",
            "description": "Everyone relies on you to get things done, which keeps you cast as a doer rather than a strategist.",
            "conditions": [
                {"dimension": "execution", "min": 70},
                {"dimension": "strategy", "max": 50},
            ],
        },
        {
            "name": "Strategic Thinker Without Voice",
            "description": "You see the right path, but your insights rarely change what the room decides.",
            "conditions": [
                {"dimension": "strategy", "min": 60},
                {"dimension": "influence", "max": 50},
            ],
        },
        {
            "name": "Over-Deliverer",
            "description": "High standards keep you polishing while peers who tell their story move ahead.",
            "min_overall": 60,
            "conditions": [{"dimension": "narrative", "max": 45}],
        },
        {
            "name": "Certainty Seeker",
            "description": "You thrive with a clear map and stall when you have to draw one yourself.",
            "min_overall": 50,
            "conditions": [{"dimension": "ambiguity", "max": 40}],
        },
        {
            "name": "Conflict Avoider",
            "description": "Keeping the peace means others set the agenda on the hardest questions.",
            "min_overall": 55,
            "conditions": [{"dimension": "conflict_management", "max": 45}],
        },
        {
            "name": "Background Player",
            "description": "The skills are there, but in senior rooms you blend into the background.",
            "min_overall": 55,
            "conditions": [{"dimension": "executive_presence", "max": 45}],
        },
    ],
    "dimension_archetypes": {
        "strategy":            "Visionary Strategist",
        "influence":           "Natural Influencer",
        "executive_presence":  "Room Commander",
        "narrative":           "Compelling Storyteller",
        "visibility":          "Visible Leader",
        "ambiguity":           "Ambiguity Navigator",
        "conflict_management": "Constructive Challenger",
        "execution":           "Reliable Operator",
    },
    "default": "Emerging Leader",
}


# ─── Level policy ────────────────────────────────────────────────────────────

# Overall score carries two decimals, so 85.01 means "strictly above 85".
_LEVEL_POLICY: dict[str, Any] = {
    "rules": [
        {"level": "Director",  "min_overall": 85.01,
         "minimums": {"narrative": 75, "influence": 75, "executive_presence": 70}},
        {"level": "GPM",       "min_overall": 75,
         "minimums": {"influence": 70, "conflict_management": 65}},
        {"level": "Principal", "min_overall": 60,
         "minimums": {"strategy": 65, "influence": 60}},
        {"level": "Senior",    "min_overall": 45},
    ],
    "default": "PM",
    "hint_min_count": 2,
}


DEFAULT_CONFIG: dict[str, Any] = {
    "dimensions": _DIMENSIONS,
    "modules": _MODULES,
    "gate_after_module": 1,
    "archetype_policy": _ARCHETYPE_POLICY,
    "level_policy": _LEVEL_POLICY,
}


def load_assessment_config(path: Optional[str | Path] = None) -> AssessmentConfig:
    """
    Return the validated assessment configuration.

    *path* points at a JSON file with the same shape as ``DEFAULT_CONFIG``;
    when omitted (or empty) the built-in bank is used.
    """
    if not path:
        return AssessmentConfig.model_validate(DEFAULT_CONFIG)
    source = Path(path)
    data = json.loads(source.read_text(encoding="utf-8"))
    config = AssessmentConfig.model_validate(data)
    logger.info(
        "Loaded assessment configuration from %s (%d modules, %d questions)",
        source, config.module_count, config.total_questions,
    )
    return config
