"""
flow.py — Single owner of one assessment session
=================================================
Wires the Response Store, Module Sequencer, Email Gate Controller and
Report Pipeline together and exposes the actions a front end needs.

Usage::

    flow = await AssessmentFlow.open("session-123")
    flow.begin_module()
    flow.answer({"c"})
    ...
    await flow.proceed()
    await flow.submit_email("me@example.com")
    report = await flow.finish(on_stage=print)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from career_readiness.config import Settings, get_settings
from career_readiness.database import AssessmentDatabase
from career_readiness.email_gate import EmailGateController, GateResult, LeadRecorder
from career_readiness.models import AssessmentConfig, FlowStage, Question, Report, SaveStatus
from career_readiness.question_bank import load_assessment_config
from career_readiness.report_generator import ReportGenerator, build_generator
from career_readiness.report_pipeline import ReportPipeline
from career_readiness.response_store import ResponseStore, StatusListener
from career_readiness.sequencer import AnswerResult, ModuleSequencer, SequencerError, SequencerState
from career_readiness.staged_progress import StagedProgress, StageListener

logger = logging.getLogger(__name__)


class AssessmentFlow:
    def __init__(
        self,
        config: AssessmentConfig,
        store: ResponseStore,
        pipeline: ReportPipeline,
        lead_recorder: Optional[LeadRecorder] = None,
        source_tag: str = "assessment",
    ) -> None:
        self.config = config
        self.store = store
        self.pipeline = pipeline
        self.sequencer = ModuleSequencer.resume(config, store)
        self.gate = EmailGateController(config, store, self.sequencer, lead_recorder, source_tag)
        self.report: Optional[Report] = pipeline.reports.get(store.session.session_id)
        self._progress: Optional[StagedProgress] = None
        self._exited = False

    @classmethod
    async def open(
        cls,
        session_id: str,
        settings: Optional[Settings] = None,
        config: Optional[AssessmentConfig] = None,
        database: Optional[AssessmentDatabase] = None,
        generator: Optional[ReportGenerator] = None,
        on_status: Optional[StatusListener] = None,
    ) -> "AssessmentFlow":
        """Load (or start) *session_id* with collaborators built from settings."""
        settings = settings or get_settings()
        config = config or load_assessment_config(settings.app.config_path)
        database = database or AssessmentDatabase(settings.app.db_path)
        store = await ResponseStore.load(session_id, database, settings.autosave, on_status)
        pipeline = ReportPipeline(config, generator or build_generator(settings), settings.report, database)
        if store.session.stage == FlowStage.COMPLETE:
            stored = await asyncio.to_thread(database.load_report, session_id)
            if stored is not None:
                pipeline.reports[session_id] = stored
        return cls(
            config, store, pipeline,
            lead_recorder=database.save_lead,
            source_tag=settings.app.lead_source_tag,
        )

    # ─── Read-only views ─────────────────────────────────────────────────────

    @property
    def state(self) -> SequencerState:
        return self.sequencer.state

    @property
    def save_status(self) -> SaveStatus:
        return self.store.status

    @property
    def should_gate(self) -> bool:
        return self.gate.should_gate()

    def progress(self) -> int:
        return self.sequencer.progress()

    def current_question(self) -> Optional[Question]:
        return self.sequencer.current_question()

    # ─── Actions ─────────────────────────────────────────────────────────────

    def begin_module(self) -> SequencerState:
        return self.sequencer.begin_module()

    def answer(self, selected_values: Iterable[str]) -> AnswerResult:
        return self.sequencer.submit_answer(selected_values)

    def back(self) -> bool:
        return self.sequencer.back()

    async def proceed(self) -> SequencerState:
        state = self.sequencer.proceed()
        if state.stage in (FlowStage.AWAITING_EMAIL_GATE, FlowStage.GENERATING):
            await self.store.flush()
        return state

    async def submit_email(self, email: str, subscribe_newsletter: bool = True) -> GateResult:
        return await self.gate.submit(email, subscribe_newsletter)

    async def finish(self, on_stage: Optional[StageListener] = None) -> Optional[Report]:
        """
        Generate the report behind the staged progress sequence, then move
        to Complete.  Returns None when the flow was exited meanwhile.
        """
        if self.state.stage != FlowStage.GENERATING:
            raise SequencerError(f"finish() called at {self.state.stage.value}.")
        await self.store.flush()

        self._progress = self.pipeline.new_progress(on_stage)
        report = await self.pipeline.run_with_progress(self.store.session, progress=self._progress)
        if self._exited:
            logger.info("Session %s exited during generation; report discarded", self.store.session.session_id)
            return None

        self.report = report
        self.sequencer.complete()
        await self.store.flush()
        return report

    async def exit(self) -> None:
        """Stop staged timers and make a best-effort final save."""
        self._exited = True
        if self._progress is not None:
            self._progress.cancel()
        await self.store.close()
