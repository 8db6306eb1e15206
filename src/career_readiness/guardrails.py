"""
guardrails.py – Input validation and output checks
===================================================
Validates everything a visitor submits before it touches session state,
and everything the generation service returns before it reaches a report.

Guardrail levels
----------------
BLOCK   – Hard-stop: the action is rejected, nothing is persisted.
WARN    – Soft-stop: the action proceeds; the warning is recorded in the run trace.

Guards implemented
------------------
Answer guards (before the Response Store records an answer):
  G-01  At least one option selected
  G-02  Every selected value is an option of the question
  G-03  Single-select questions accept exactly one value

Email guards (Email Gate submit):
  G-04  Email is not empty
  G-05  Email has a local@domain.tld shape with no whitespace

Generated narrative guards (after the generation service returns):
  G-06  Insights and growth plan are both non-empty
  G-07  No harmful keywords in generated text                [heuristic]
  G-09  Growth plan stays within MAX_PLAN_STEPS items         [warn]

Report guards (before a Report is published):
  G-08  Every dimension score lies in [0, 100]
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable


# ─── Enums & data models ─────────────────────────────────────────────────────

class GuardrailLevel(str, Enum):
    BLOCK = "BLOCK"
    WARN  = "WARN"


@dataclass
class GuardrailViolation:
    code:    str
    level:   GuardrailLevel
    message: str
    field:   str = ""   # which field triggered the violation


@dataclass
class GuardrailResult:
    passed:     bool
    violations: list[GuardrailViolation] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return any(v.level == GuardrailLevel.BLOCK for v in self.violations)

    @property
    def warnings(self) -> list[GuardrailViolation]:
        return [v for v in self.violations if v.level == GuardrailLevel.WARN]

    @property
    def first_message(self) -> str:
        """Message of the first blocking violation, or "" when nothing blocks."""
        return next((v.message for v in self.violations if v.level == GuardrailLevel.BLOCK), "")

    def summary(self) -> str:
        if not self.violations:
            return "✅ All guardrails passed."
        lines = [f"{'🚫' if v.level == GuardrailLevel.BLOCK else '⚠️'} [{v.code}] {v.message}" for v in self.violations]
        return "\n".join(lines)


def _result(violations: list[GuardrailViolation]) -> GuardrailResult:
    return GuardrailResult(
        passed=not any(v.level == GuardrailLevel.BLOCK for v in violations),
        violations=violations,
    )


# ─── Constant sets ────────────────────────────────────────────────────────────

MAX_PLAN_STEPS = 7

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_HARMFUL_PATTERN = re.compile(
    r"\b(fuck|shit|bitch|cunt|asshole|bastard"
    r"|kill\s+yourself|suicide|self.harm"
    r"|bomb|terrorist|weapon|explosive"
    r"|malware|ransomware|phishing)\b",
    re.IGNORECASE,
)

# Fixed, human-readable text for every failure class surfaced to the visitor.
USER_MESSAGES: dict[str, str] = {
    "empty_answer":     "Please choose an answer before continuing.",
    "unknown_option":   "That answer isn't available for this question. Please choose again.",
    "single_select":    "Please choose just one answer for this question.",
    "empty_email":      "Please enter your email",
    "invalid_email":    "Please enter a valid email",
    "saving":           "Saving your progress…",
    "unsaved":          "We couldn't save your latest answers. We'll keep trying while you continue.",
    "report_fallback":  "Your report is ready. Some personalised insights are still being prepared.",
}


# ─── Guard classes ────────────────────────────────────────────────────────────

class AnswerGuardrails:
    """G-01 – G-03: Validates a submitted selection for one question."""

    def check(self, question, selected_values: Iterable[str]) -> GuardrailResult:
        violations: list[GuardrailViolation] = []
        selected = set(selected_values)

        # G-01 Non-empty selection
        if not selected:
            violations.append(GuardrailViolation(
                code="G-01", level=GuardrailLevel.BLOCK,
                field=question.id,
                message=USER_MESSAGES["empty_answer"],
            ))
            return _result(violations)

        # G-02 Known options only
        unknown = selected - set(question.option_values())
        if unknown:
            violations.append(GuardrailViolation(
                code="G-02", level=GuardrailLevel.BLOCK,
                field=question.id,
                message=USER_MESSAGES["unknown_option"],
            ))

        # G-03 Single-select cardinality
        if not question.multi_select and len(selected) > 1:
            violations.append(GuardrailViolation(
                code="G-03", level=GuardrailLevel.BLOCK,
                field=question.id,
                message=USER_MESSAGES["single_select"],
            ))

        return _result(violations)


class EmailGuardrails:
    """G-04 – G-05: Validates the email captured at the gate checkpoint."""

    def check(self, email: str) -> GuardrailResult:
        violations: list[GuardrailViolation] = []
        raw = email or ""

        # G-04 Non-empty
        if not raw.strip():
            violations.append(GuardrailViolation(
                code="G-04", level=GuardrailLevel.BLOCK,
                field="email",
                message=USER_MESSAGES["empty_email"],
            ))
            return _result(violations)

        # G-05 Shape, checked on the raw input so surrounding whitespace fails
        if not EMAIL_PATTERN.fullmatch(raw):
            violations.append(GuardrailViolation(
                code="G-05", level=GuardrailLevel.BLOCK,
                field="email",
                message=USER_MESSAGES["invalid_email"],
            ))

        return _result(violations)


class NarrativeGuardrails:
    """G-06 – G-07, G-09: Validates the generation service output."""

    def check(self, narrative) -> GuardrailResult:
        violations: list[GuardrailViolation] = []

        # G-06 Completeness
        if not [s for s in narrative.insights if s.strip()]:
            violations.append(GuardrailViolation(
                code="G-06", level=GuardrailLevel.BLOCK,
                field="insights",
                message="Generation service returned no insights.",
            ))
        if not [s for s in narrative.growth_plan if s.strip()]:
            violations.append(GuardrailViolation(
                code="G-06", level=GuardrailLevel.BLOCK,
                field="growth_plan",
                message="Generation service returned an empty growth plan.",
            ))

        # G-07 Harmful content
        for field_name, lines in (("insights", narrative.insights), ("growth_plan", narrative.growth_plan)):
            if any(_HARMFUL_PATTERN.search(line) for line in lines):
                violations.append(GuardrailViolation(
                    code="G-07", level=GuardrailLevel.BLOCK,
                    field=field_name,
                    message=f"Potentially harmful content detected in generated {field_name}.",
                ))

        # G-09 Plan length
        if len(narrative.growth_plan) > MAX_PLAN_STEPS:
            violations.append(GuardrailViolation(
                code="G-09", level=GuardrailLevel.WARN,
                field="growth_plan",
                message=f"Growth plan has {len(narrative.growth_plan)} steps; expected at most {MAX_PLAN_STEPS}.",
            ))

        return _result(violations)


class ReportGuardrails:
    """G-08: Validates computed scores before a Report is published."""

    def check(self, dimension_scores: dict[str, float]) -> GuardrailResult:
        violations: list[GuardrailViolation] = []
        for dim, score in dimension_scores.items():
            if not 0.0 <= score <= 100.0:
                violations.append(GuardrailViolation(
                    code="G-08", level=GuardrailLevel.BLOCK,
                    field=dim,
                    message=f"Dimension score {dim}={score} outside [0, 100].",
                ))
        return _result(violations)


# ─── Convenience façade ───────────────────────────────────────────────────────

class GuardrailsPipeline:
    """
    Single entry-point that runs the guardrails for a given flow stage.

    Usage::

        gp = GuardrailsPipeline()
        gp.check_answer(question, {"b"})
        gp.check_email("a@b.co")
        gp.check_narrative(narrative)
        gp.check_scores(scores)
    """

    def __init__(self):
        self.answer_guard    = AnswerGuardrails()
        self.email_guard     = EmailGuardrails()
        self.narrative_guard = NarrativeGuardrails()
        self.report_guard    = ReportGuardrails()

    def check_answer(self, question, selected_values: Iterable[str]) -> GuardrailResult:
        return self.answer_guard.check(question, selected_values)

    def check_email(self, email: str) -> GuardrailResult:
        return self.email_guard.check(email)

    def check_narrative(self, narrative) -> GuardrailResult:
        return self.narrative_guard.check(narrative)

    def check_scores(self, dimension_scores: dict[str, float]) -> GuardrailResult:
        return self.report_guard.check(dimension_scores)
