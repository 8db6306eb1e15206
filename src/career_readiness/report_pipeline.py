"""
report_pipeline.py — From a completed session to a Report
==========================================================
  generate(session)
    1. Recompute dimension scores from the current responses.
    2. Derive overall score, archetype, inferred level, strengths/gaps and
       market readiness.
    3. Ask the generator for a narrative, bounded by a timeout.  An error,
       a timeout or a narrative that fails the output guardrails counts as
       a failed attempt; ``max_attempts`` covers the first call plus retries.
    4. After the last failed attempt synthesise a fallback narrative from
       the scores alone and log the failure.
    5. Replace any earlier report for the session, in memory and on disk.

  run_with_progress(session, on_stage)
    Runs ``generate`` alongside a StagedProgress sequence and returns once
    both the stage sequence has been shown and the report exists.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Optional

from career_readiness.agent_trace import AttemptStep, RunTrace
from career_readiness.config import ReportConfig
from career_readiness.guardrails import GuardrailsPipeline
from career_readiness.models import (
    AssessmentConfig,
    AssessmentSession,
    GeneratedNarrative,
    Report,
    ReportSource,
)
from career_readiness.report_generator import (
    GenerationRequest,
    ReportGenerator,
    build_fallback_narrative,
)
from career_readiness.scoring import (
    compute_dimension_scores,
    infer_level,
    level_hints,
    market_readiness,
    max_attainable_weights,
    overall_score,
    select_archetype,
    strengths_and_gaps,
)
from career_readiness.staged_progress import StagedProgress, StageListener

if TYPE_CHECKING:
    from career_readiness.database import AssessmentDatabase

logger = logging.getLogger(__name__)


class ReportPipeline:
    def __init__(
        self,
        config: AssessmentConfig,
        generator: ReportGenerator,
        report_config: ReportConfig,
        database: Optional["AssessmentDatabase"] = None,
        guardrails: Optional[GuardrailsPipeline] = None,
    ) -> None:
        self._config = config
        self._generator = generator
        self._report_cfg = report_config
        self._database = database
        self._guardrails = guardrails or GuardrailsPipeline()
        self._maxima = max_attainable_weights(config)
        self.reports: dict[str, Report] = {}
        self.traces: dict[str, RunTrace] = {}

    # ─── Generation ──────────────────────────────────────────────────────────

    async def generate(self, session: AssessmentSession) -> Report:
        if session.completed_at is None:
            raise ValueError(f"Session {session.session_id} is not complete; cannot build a report.")

        dims = self._config.dimension_ids()
        scores = compute_dimension_scores(self._config, session.responses, self._maxima)
        score_check = self._guardrails.check_scores(scores)
        if score_check.blocked:
            raise ValueError(score_check.summary())

        overall = overall_score(self._config, scores)
        archetype = select_archetype(self._config.archetype_policy, scores, overall, dims)
        strengths, gaps = strengths_and_gaps(scores, dims)
        level = infer_level(
            self._config.level_policy, scores, overall,
            level_hints(self._config, session.responses),
        )

        request = GenerationRequest(
            session_id=session.session_id,
            dimension_scores=scores,
            overall_score=overall,
            archetype=archetype.name,
            inferred_level=level,
            strengths=strengths,
            gaps=gaps,
        )
        trace = RunTrace.start(session.session_id, getattr(self._generator, "name", "custom"))
        narrative = await self._attempt(request, trace)

        source = ReportSource.GENERATED
        if narrative is None:
            logger.error(
                "Report generation failed for session %s after %d attempts; using fallback",
                session.session_id, trace.attempts,
            )
            narrative = build_fallback_narrative(archetype.name, scores, gaps)
            source = ReportSource.FALLBACK
        trace.finish(source.value)

        report = Report(
            session_id=session.session_id,
            dimension_scores=scores,
            overall_score=overall,
            archetype=archetype.name,
            archetype_description=archetype.description,
            inferred_level=level,
            strengths=strengths,
            gaps=gaps,
            market_readiness=market_readiness(overall),
            insights=narrative.insights,
            growth_plan=narrative.growth_plan,
            source=source,
        )
        self.reports[session.session_id] = report
        self.traces[session.session_id] = trace
        await self._persist(report, trace)
        logger.info(
            "Report for session %s: %s (%s, overall %.1f) in %.0f ms",
            session.session_id, report.archetype, source.value, overall, trace.total_ms,
        )
        return report

    async def _attempt(self, request: GenerationRequest, trace: RunTrace) -> Optional[GeneratedNarrative]:
        attempts = max(1, self._report_cfg.max_attempts)
        for attempt in range(1, attempts + 1):
            start = trace.elapsed_ms()
            t0 = time.perf_counter()
            status, error, narrative = "success", "", None
            warnings: list[str] = []
            try:
                narrative = await asyncio.wait_for(
                    self._generator.generate(request),
                    timeout=self._report_cfg.timeout_seconds,
                )
            except asyncio.TimeoutError:
                status, error = "timeout", f"no response within {self._report_cfg.timeout_seconds}s"
            except Exception as exc:
                status, error = "error", f"{type(exc).__name__}: {exc}"
            else:
                check = self._guardrails.check_narrative(narrative)
                warnings = [v.message for v in check.warnings]
                if check.blocked:
                    status, error = "rejected", check.summary()
                    narrative = None

            trace.append(AttemptStep(
                attempt=attempt,
                start_ms=round(start, 1),
                duration_ms=round((time.perf_counter() - t0) * 1000, 1),
                status=status,
                error=error,
                warnings=warnings,
            ))
            if narrative is not None:
                return narrative
            logger.warning(
                "Generation attempt %d/%d for session %s failed: %s",
                attempt, attempts, request.session_id, error,
            )
        return None

    async def _persist(self, report: Report, trace: RunTrace) -> None:
        if self._database is None:
            return
        try:
            await asyncio.to_thread(self._database.save_report, report, trace.to_json())
        except Exception as exc:
            logger.error("Could not store report for session %s: %s", report.session_id, exc)

    # ─── Staged progress join ────────────────────────────────────────────────

    def new_progress(self, on_stage: Optional[StageListener] = None) -> StagedProgress:
        return StagedProgress(
            labels=self._config.stage_labels,
            interval=self._report_cfg.stage_interval_seconds,
            accelerated_interval=self._report_cfg.accelerated_interval_seconds,
            final_pause=self._report_cfg.final_pause_seconds,
            on_stage=on_stage,
        )

    async def run_with_progress(
        self,
        session: AssessmentSession,
        on_stage: Optional[StageListener] = None,
        progress: Optional[StagedProgress] = None,
    ) -> Report:
        """
        Join the staged sequence with the real generation.

        Cancelling *progress* stops the stage sequence only; the generation
        call still runs to completion and its report is returned.
        """
        progress = progress or self.new_progress(on_stage)
        generation = asyncio.ensure_future(self.generate(session))
        generation.add_done_callback(lambda _: progress.result_ready())
        progress.start()
        try:
            await progress.wait()
            return await asyncio.shield(generation)
        except asyncio.CancelledError:
            progress.cancel()
            raise
