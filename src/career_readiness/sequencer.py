"""
sequencer.py — Module Sequencer
================================
Deterministic traversal of the module/question configuration and progress
accounting for one session.

States
------
  ModuleIntro(m) ──begin_module──▶ InQuestion(m, 0)
  InQuestion(m, q) ──answer──▶ InQuestion(m, q+1) | ModuleComplete(m)
  ModuleComplete(m) ──proceed──▶ AwaitingEmailGate | ModuleIntro(m+1) | Generating
  AwaitingEmailGate ──release_gate──▶ ModuleIntro(m+1) | Generating
  Generating ──complete──▶ Complete

``back()`` steps to the previous question, crossing module boundaries, and
is available from InQuestion, ModuleIntro(m>0), ModuleComplete and
AwaitingEmailGate.

The state is derived from the session on every read; every transition is
written through the Response Store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from career_readiness.email_gate import should_gate
from career_readiness.guardrails import GuardrailResult, GuardrailsPipeline
from career_readiness.models import TERMINAL_INDEX, AssessmentConfig, FlowStage
from career_readiness.response_store import ResponseStore

logger = logging.getLogger(__name__)


class SequencerError(RuntimeError):
    """An action was invoked from a state that does not allow it."""


@dataclass(frozen=True)
class SequencerState:
    stage:          FlowStage
    module_index:   Optional[int] = None
    question_index: Optional[int] = None

    @classmethod
    def module_intro(cls, m: int) -> "SequencerState":
        return cls(FlowStage.MODULE_INTRO, m)

    @classmethod
    def in_question(cls, m: int, q: int) -> "SequencerState":
        return cls(FlowStage.IN_QUESTION, m, q)

    @classmethod
    def module_complete(cls, m: int) -> "SequencerState":
        return cls(FlowStage.MODULE_COMPLETE, m)

    @classmethod
    def awaiting_email_gate(cls, m: int) -> "SequencerState":
        return cls(FlowStage.AWAITING_EMAIL_GATE, m)

    @classmethod
    def generating(cls) -> "SequencerState":
        return cls(FlowStage.GENERATING)

    @classmethod
    def complete(cls) -> "SequencerState":
        return cls(FlowStage.COMPLETE)


@dataclass
class AnswerAccepted:
    state:    SequencerState
    accepted: bool = True


@dataclass
class AnswerRejected:
    """Local validation failure: no transition, nothing persisted."""
    message:    str
    guardrails: GuardrailResult = field(default_factory=lambda: GuardrailResult(passed=False))
    accepted:   bool = False


AnswerResult = Union[AnswerAccepted, AnswerRejected]


class ModuleSequencer:
    def __init__(
        self,
        config: AssessmentConfig,
        store: ResponseStore,
        guardrails: Optional[GuardrailsPipeline] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._guardrails = guardrails or GuardrailsPipeline()
        self._check_position()

    @classmethod
    def resume(cls, config: AssessmentConfig, store: ResponseStore) -> "ModuleSequencer":
        """Rebuild the sequencer from the session held by *store*."""
        sequencer = cls(config, store)
        logger.info("Sequencer resumed at %s", sequencer.state)
        return sequencer

    # ─── State ───────────────────────────────────────────────────────────────

    @property
    def state(self) -> SequencerState:
        s = self._store.session
        stage = s.stage
        if stage == FlowStage.IN_QUESTION:
            return SequencerState.in_question(s.current_module_index, s.current_question_index)
        if stage in (FlowStage.MODULE_INTRO, FlowStage.MODULE_COMPLETE, FlowStage.AWAITING_EMAIL_GATE):
            return SequencerState(stage, s.current_module_index)
        return SequencerState(stage)

    def progress(self) -> int:
        """Percentage of questions answered; 100 only when every question is."""
        total = self._config.total_questions
        answered = sum(1 for qid in self._config.all_question_ids() if qid in self._store.session.responses)
        pct = (answered * 200 + total) // (2 * total)   # round half up
        if answered < total:
            pct = min(pct, 99)
        return pct

    def current_question(self):
        st = self.state
        if st.stage != FlowStage.IN_QUESTION:
            return None
        return self._config.question_at(st.module_index, st.question_index)

    # ─── Transitions ─────────────────────────────────────────────────────────

    def begin_module(self) -> SequencerState:
        st = self._require(FlowStage.MODULE_INTRO)
        return self._move(FlowStage.IN_QUESTION, st.module_index, 0)

    def submit_answer(self, selected_values: Iterable[str]) -> AnswerResult:
        st = self._require(FlowStage.IN_QUESTION)
        question = self._config.question_at(st.module_index, st.question_index)
        values = list(selected_values)

        check = self._guardrails.check_answer(question, values)
        if check.blocked:
            return AnswerRejected(message=check.first_message, guardrails=check)

        self._store.record_answer(question.id, values)
        if self._all_answered():
            self._store.mark_completed()

        m, q = st.module_index, st.question_index
        if q + 1 < len(self._config.modules[m].questions):
            return AnswerAccepted(self._move(FlowStage.IN_QUESTION, m, q + 1))
        return AnswerAccepted(self._move(FlowStage.MODULE_COMPLETE, m, q))

    def proceed(self) -> SequencerState:
        st = self._require(FlowStage.MODULE_COMPLETE)
        m = st.module_index
        if m == self._config.gate_after_module and should_gate(self._config, self._store.session):
            logger.info("Email gate reached after module %d", m)
            return self._move(FlowStage.AWAITING_EMAIL_GATE, m, self._last_question(m))
        return self._advance_past(m)

    def release_gate(self) -> SequencerState:
        st = self._require(FlowStage.AWAITING_EMAIL_GATE)
        if not self._store.session.email:
            raise SequencerError("release_gate() requires a captured email.")
        return self._advance_past(st.module_index)

    def complete(self) -> SequencerState:
        self._require(FlowStage.GENERATING)
        return self._move(FlowStage.COMPLETE, TERMINAL_INDEX, TERMINAL_INDEX)

    def back(self) -> bool:
        """Step to the previous question. Returns False when there is none."""
        st = self.state
        if st.stage == FlowStage.IN_QUESTION:
            target = self._previous(st.module_index, st.question_index)
        elif st.stage == FlowStage.MODULE_INTRO:
            target = self._previous(st.module_index, 0)
        elif st.stage in (FlowStage.MODULE_COMPLETE, FlowStage.AWAITING_EMAIL_GATE):
            target = (st.module_index, self._last_question(st.module_index))
        else:
            target = None

        # Backward navigation only revisits positions already reached.
        if target is None or self._config.flat_position(*target) > self._store.session.furthest_position:
            return False
        self._move(FlowStage.IN_QUESTION, *target)
        return True

    # ─── Internals ───────────────────────────────────────────────────────────

    def _require(self, stage: FlowStage) -> SequencerState:
        st = self.state
        if st.stage != stage:
            raise SequencerError(f"Expected stage {stage.value}, sequencer is at {st.stage.value}.")
        return st

    def _advance_past(self, m: int) -> SequencerState:
        if m + 1 < self._config.module_count:
            return self._move(FlowStage.MODULE_INTRO, m + 1, 0)
        return self._move(FlowStage.GENERATING, TERMINAL_INDEX, TERMINAL_INDEX)

    def _previous(self, m: int, q: int) -> Optional[tuple[int, int]]:
        if q > 0:
            return m, q - 1
        if m > 0:
            return m - 1, self._last_question(m - 1)
        return None

    def _last_question(self, m: int) -> int:
        return len(self._config.modules[m].questions) - 1

    def _all_answered(self) -> bool:
        responses = self._store.session.responses
        return all(qid in responses for qid in self._config.all_question_ids())

    def _move(self, stage: FlowStage, m: int, q: int) -> SequencerState:
        furthest = None
        if stage in (FlowStage.GENERATING, FlowStage.COMPLETE):
            if (m, q) != (TERMINAL_INDEX, TERMINAL_INDEX):
                raise SequencerError(f"{stage.value} must use the terminal position.")
        else:
            self._check_bounds(m, q)
            if stage == FlowStage.IN_QUESTION:
                furthest = self._config.flat_position(m, q)
        self._store.set_position(stage, m, q, furthest)
        logger.debug("Sequencer → %s (%d, %d)", stage.value, m, q)
        return self.state

    def _check_bounds(self, m: int, q: int) -> None:
        if not 0 <= m < self._config.module_count:
            raise SequencerError(f"Module index {m} outside configuration.")
        if not 0 <= q < len(self._config.modules[m].questions):
            raise SequencerError(f"Question index {q} outside module {m}.")

    def _check_position(self) -> None:
        s = self._store.session
        if s.stage in (FlowStage.GENERATING, FlowStage.COMPLETE):
            if not s.is_terminal:
                raise SequencerError(f"Session {s.session_id} is {s.stage.value} but not at the terminal position.")
            return
        self._check_bounds(s.current_module_index, s.current_question_index)
