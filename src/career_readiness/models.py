"""
Data models for the Career Readiness assessment core.

Static configuration (dimensions, modules, questions, options and the
archetype policy) is a declarative, JSON-serialisable structure loaded once
per session.  Session and report models are persisted as JSON blobs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Both position indices take this value once traversal has left the question grid.
TERMINAL_INDEX = -1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── Enumerations ────────────────────────────────────────────────────────────

class FlowStage(str, Enum):
    """Where the visitor currently is in the assessment flow."""
    MODULE_INTRO        = "module_intro"
    IN_QUESTION         = "in_question"
    MODULE_COMPLETE     = "module_complete"
    AWAITING_EMAIL_GATE = "awaiting_email_gate"
    GENERATING          = "generating"
    COMPLETE            = "complete"


class SaveStatus(str, Enum):
    """Autosave indicator shown next to the progress bar."""
    IDLE    = "idle"      # nothing written yet
    SAVING  = "saving"    # write (or retry) outstanding
    SAVED   = "saved"     # last write succeeded
    UNSAVED = "unsaved"   # retries exhausted; in-memory session is authoritative


class ReportSource(str, Enum):
    GENERATED = "generated"   # narrative came from the generation service
    FALLBACK  = "fallback"    # synthesised from scores after terminal failure


# ─── Static configuration ────────────────────────────────────────────────────

class AnswerOption(BaseModel):
    """One selectable answer and the dimension weights it contributes."""
    model_config = ConfigDict(frozen=True)

    value:             str
    label:             str
    dimension_weights: dict[str, float] = Field(default_factory=dict)
    level_hint:        Optional[str] = None   # career level this answer suggests


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    id:           str
    prompt:       str
    options:      list[AnswerOption]
    multi_select: bool = False
    help_text:    str = ""

    def option_values(self) -> list[str]:
        return [o.value for o in self.options]

    def option(self, value: str) -> Optional[AnswerOption]:
        return next((o for o in self.options if o.value == value), None)


class Module(BaseModel):
    """A named, ordered group of questions sharing a theme."""
    model_config = ConfigDict(frozen=True)

    id:          str
    name:        str
    description: str
    questions:   list[Question]


class DimensionSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    id:     str
    label:  str
    weight: float = 1.0   # share of the overall score


class DimensionCondition(BaseModel):
    """Strict bounds on one dimension score: ``min < score < max``."""
    model_config = ConfigDict(frozen=True)

    dimension: str
    min:       Optional[float] = None
    max:       Optional[float] = None

    def holds(self, scores: dict[str, float]) -> bool:
        score = scores.get(self.dimension, 0.0)
        if self.min is not None and not score > self.min:
            return False
        if self.max is not None and not score < self.max:
            return False
        return True


class ArchetypeRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    name:        str
    description: str = ""
    min_overall: Optional[float] = None
    conditions:  list[DimensionCondition] = Field(default_factory=list)

    def matches(self, scores: dict[str, float], overall: float) -> bool:
        if self.min_overall is not None and not overall > self.min_overall:
            return False
        return all(c.holds(scores) for c in self.conditions)


class ArchetypePolicy(BaseModel):
    """
    Ordered rules, first match wins.  When no rule matches the archetype is
    looked up from the top-scoring dimension.
    """
    model_config = ConfigDict(frozen=True)

    rules:                list[ArchetypeRule] = Field(default_factory=list)
    dimension_archetypes: dict[str, str] = Field(default_factory=dict)
    default:              str = "Emerging Leader"


class LevelRule(BaseModel):
    """Inclusive score floors; a missing dimension counts as ``LevelPolicy.missing_score``."""
    model_config = ConfigDict(frozen=True)

    level:       str
    min_overall: float = 0.0
    minimums:    dict[str, float] = Field(default_factory=dict)

    def matches(self, scores: dict[str, float], overall: float, missing_score: float) -> bool:
        if overall < self.min_overall:
            return False
        return all(scores.get(dim, missing_score) >= floor for dim, floor in self.minimums.items())


class LevelPolicy(BaseModel):
    """
    Ordered rules for inferring the visitor's current level, first match
    wins.  A ``level_hint`` chosen in at least ``hint_min_count`` answers
    overrides the rules.
    """
    model_config = ConfigDict(frozen=True)

    rules:          list[LevelRule] = Field(default_factory=list)
    default:        str = "PM"
    hint_min_count: int = 2
    missing_score:  float = 50.0


class AssessmentConfig(BaseModel):
    """Complete static configuration for one assessment."""
    model_config = ConfigDict(frozen=True)

    dimensions:        list[DimensionSpec]
    modules:           list[Module]
    gate_after_module: Optional[int] = None
    archetype_policy:  ArchetypePolicy = Field(default_factory=ArchetypePolicy)
    level_policy:      LevelPolicy = Field(default_factory=LevelPolicy)
    stage_labels:      list[str] = Field(default_factory=lambda: [
        "Analyzing your responses...",
        "Calculating skill dimensions...",
        "Generating insights...",
        "Building your 90-day plan...",
    ])

    @model_validator(mode="after")
    def _check_consistency(self) -> "AssessmentConfig":
        if not self.modules:
            raise ValueError("Assessment configuration must contain at least one module.")
        if not self.stage_labels:
            raise ValueError("At least one report stage label is required.")
        dimension_ids = {d.id for d in self.dimensions}
        seen: set[str] = set()
        for module in self.modules:
            if not module.questions:
                raise ValueError(f"Module '{module.id}' has no questions.")
            for question in module.questions:
                if question.id in seen:
                    raise ValueError(f"Duplicate question id '{question.id}'.")
                seen.add(question.id)
                if not question.options:
                    raise ValueError(f"Question '{question.id}' has no options.")
                for option in question.options:
                    unknown = set(option.dimension_weights) - dimension_ids
                    if unknown:
                        raise ValueError(
                            f"Option '{option.value}' of '{question.id}' weights "
                            f"undeclared dimensions: {sorted(unknown)}"
                        )
        if self.gate_after_module is not None and not (
            0 <= self.gate_after_module < len(self.modules)
        ):
            raise ValueError(
                f"gate_after_module={self.gate_after_module} is outside the "
                f"{len(self.modules)} configured modules."
            )
        return self

    # ── Derived helpers ──────────────────────────────────────────────────────

    @property
    def module_count(self) -> int:
        return len(self.modules)

    @property
    def total_questions(self) -> int:
        return sum(len(m.questions) for m in self.modules)

    def dimension_ids(self) -> list[str]:
        return [d.id for d in self.dimensions]

    def question_at(self, module_index: int, question_index: int) -> Question:
        return self.modules[module_index].questions[question_index]

    def flat_position(self, module_index: int, question_index: int) -> int:
        """Zero-based position of a question across all modules."""
        return sum(len(m.questions) for m in self.modules[:module_index]) + question_index

    def all_question_ids(self) -> list[str]:
        return [q.id for m in self.modules for q in m.questions]


# ─── Session state ───────────────────────────────────────────────────────────

class Response(BaseModel):
    """The answer for one question; re-answering replaces it."""
    question_id:     str
    selected_values: frozenset[str]
    answered_at:     datetime = Field(default_factory=utcnow)


class AssessmentSession(BaseModel):
    """One visitor's in-progress or completed assessment attempt."""
    session_id:             str
    email:                  Optional[str] = None
    responses:              dict[str, Response] = Field(default_factory=dict)
    current_module_index:   int = 0
    current_question_index: int = 0
    stage:                  FlowStage = FlowStage.MODULE_INTRO
    furthest_position:      int = -1          # highest flat position reached
    email_captured_at:      Optional[datetime] = None
    completed_at:           Optional[datetime] = None
    last_saved_at:          Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return (self.current_module_index, self.current_question_index) == (TERMINAL_INDEX, TERMINAL_INDEX)

    def answered_count(self) -> int:
        return len(self.responses)


# ─── Report ──────────────────────────────────────────────────────────────────

class GeneratedNarrative(BaseModel):
    """Structured result returned by the report generation service."""
    insights:    list[str]
    growth_plan: list[str]


class Report(BaseModel):
    """Derived once per completed session; superseded, never patched."""
    model_config = ConfigDict(frozen=True)

    session_id:            str
    dimension_scores:      dict[str, float]
    overall_score:         float
    archetype:             str
    archetype_description: str = ""
    inferred_level:        str = ""
    strengths:             list[str] = Field(default_factory=list)
    gaps:                  list[str] = Field(default_factory=list)
    market_readiness:      str = ""
    insights:              list[str]
    growth_plan:           list[str]
    source:                ReportSource = ReportSource.GENERATED
    generated_at:          datetime = Field(default_factory=utcnow)
