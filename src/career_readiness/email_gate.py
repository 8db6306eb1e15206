"""
email_gate.py — One-time email checkpoint
==========================================
Turns an anonymous session into an identified lead before the rest of the
assessment is revealed.

  should_gate(config, session)  pure check used by the sequencer
  EmailGateController.submit()  validate → record → flush → release → lead

Once ``session.email`` is set the gate never fires again for that session,
whatever navigation happens afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

from career_readiness.guardrails import GuardrailResult, GuardrailsPipeline
from career_readiness.models import AssessmentConfig, AssessmentSession, FlowStage

if TYPE_CHECKING:
    from career_readiness.response_store import ResponseStore
    from career_readiness.sequencer import ModuleSequencer

logger = logging.getLogger(__name__)

# (email, source_tag) → None; failures are logged, never raised to the visitor.
LeadRecorder = Callable[[str, str], None]

NEWSLETTER_SUFFIX = "-newsletter"


def should_gate(config: AssessmentConfig, session: AssessmentSession) -> bool:
    """
    True iff a checkpoint is configured, every question of the checkpoint
    module has a Response and no email has been captured yet.
    """
    if config.gate_after_module is None or session.email:
        return False
    checkpoint = config.modules[config.gate_after_module]
    return all(q.id in session.responses for q in checkpoint.questions)


@dataclass
class GateResult:
    accepted:   bool
    message:    str = ""
    source_tag: str = ""
    guardrails: GuardrailResult = field(default_factory=lambda: GuardrailResult(passed=True))


class EmailGateController:
    def __init__(
        self,
        config: AssessmentConfig,
        store: "ResponseStore",
        sequencer: "ModuleSequencer",
        lead_recorder: Optional[LeadRecorder] = None,
        source_tag: str = "assessment",
        guardrails: Optional[GuardrailsPipeline] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._sequencer = sequencer
        self._lead_recorder = lead_recorder
        self._source_tag = source_tag
        self._guardrails = guardrails or GuardrailsPipeline()

    def should_gate(self) -> bool:
        return should_gate(self._config, self._store.session)

    async def submit(self, email: str, subscribe_newsletter: bool = True) -> GateResult:
        """
        Validate and record *email*.

        A rejected address leaves the session untouched and returns the
        message to show inline.  An accepted one is flushed, the sequencer
        leaves ``AwaitingEmailGate`` and the lead recorder is called.
        """
        check = self._guardrails.check_email(email)
        if check.blocked:
            return GateResult(accepted=False, message=check.first_message, guardrails=check)

        session = self._store.session
        if session.email:
            # The gate can still be open if the session was saved between the
            # email write and the position write.
            logger.info("Session %s already captured an email; ignoring resubmit", session.session_id)
            self._release()
            return GateResult(accepted=True, guardrails=check)

        self._store.record_email(email)
        if not await self._store.flush():
            logger.warning("Email for session %s recorded in memory only", session.session_id)

        self._release()

        source = self._source_tag + (NEWSLETTER_SUFFIX if subscribe_newsletter else "")
        await self._record_lead(email, source)
        return GateResult(accepted=True, source_tag=source, guardrails=check)

    def _release(self) -> None:
        if self._sequencer.state.stage == FlowStage.AWAITING_EMAIL_GATE:
            self._sequencer.release_gate()

    async def _record_lead(self, email: str, source: str) -> None:
        if self._lead_recorder is None:
            return
        try:
            await asyncio.to_thread(self._lead_recorder, email, source)
        except Exception as exc:
            logger.error("Lead recording failed for %s (%s): %s", email, source, exc)
        else:
            logger.info("Lead recorded (%s)", source)
