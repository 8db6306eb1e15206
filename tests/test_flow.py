"""
End-to-end: AssessmentFlow over SQLite with the mock generator.
"""
import asyncio
from dataclasses import replace

import pytest

from factories import SlowGenerator, StaticGenerator, fast_autosave, fast_report, make_config, table_rows

from career_readiness.config import get_settings
from career_readiness.flow import AssessmentFlow
from career_readiness.models import FlowStage, ReportSource, SaveStatus
from career_readiness.sequencer import SequencerError, SequencerState


def _settings(tmp_path, report=None):
    base = get_settings()
    return replace(
        base,
        autosave=fast_autosave(),
        report=report or fast_report(interval=0.005, timeout=0.5),
        app=replace(base.app, force_mock_mode=True, db_path=str(tmp_path / "flow.db"),
                    config_path="", lead_source_tag="assessment"),
    )


async def _open(tmp_path, config, session_id="flow-1", generator=None, on_status=None, report=None):
    return await AssessmentFlow.open(
        session_id,
        settings=_settings(tmp_path, report),
        config=config,
        generator=generator or StaticGenerator(),
        on_status=on_status,
    )


async def _answer_all(flow, value="a"):
    while flow.state.stage not in (FlowStage.GENERATING, FlowStage.AWAITING_EMAIL_GATE):
        stage = flow.state.stage
        if stage == FlowStage.MODULE_INTRO:
            flow.begin_module()
        elif stage == FlowStage.IN_QUESTION:
            assert flow.answer({value}).accepted
        else:
            await flow.proceed()


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_two_modules_complete_with_report(self, tmp_path):
        flow = await _open(tmp_path, make_config())
        await _answer_all(flow)
        assert flow.state == SequencerState.generating()
        assert flow.progress() == 100
        assert flow.store.session.completed_at is not None

        report = await flow.finish()
        assert report is not None and report.dimension_scores
        assert flow.state == SequencerState.complete()
        assert flow.report is report
        assert flow.save_status == SaveStatus.SAVED

    @pytest.mark.asyncio
    async def test_gate_inside_flow(self, tmp_path):
        flow = await _open(tmp_path, make_config(gate_after_module=0))
        await _answer_all(flow)
        assert flow.state.stage == FlowStage.AWAITING_EMAIL_GATE
        assert flow.should_gate

        rejected = await flow.submit_email("nope")
        assert not rejected.accepted
        accepted = await flow.submit_email("visitor@example.com", subscribe_newsletter=False)
        assert accepted.accepted
        assert flow.state == SequencerState.module_intro(1)
        assert not flow.should_gate

        leads = table_rows(tmp_path / "flow.db", "leads")
        assert len(leads) == 1
        assert leads[0]["source"] == "assessment"

        await _answer_all(flow)
        assert (await flow.finish()).source == ReportSource.GENERATED

    @pytest.mark.asyncio
    async def test_timeouts_still_complete(self, tmp_path):
        flow = await _open(
            tmp_path, make_config(),
            generator=SlowGenerator(delay=5.0),
            report=fast_report(interval=0.005, timeout=0.01),
        )
        await _answer_all(flow, "b")
        report = await flow.finish()
        assert report.source == ReportSource.FALLBACK
        assert report.archetype == "Beta Lead"
        assert flow.state == SequencerState.complete()

    @pytest.mark.asyncio
    async def test_finish_requires_generating(self, tmp_path):
        flow = await _open(tmp_path, make_config())
        with pytest.raises(SequencerError):
            await flow.finish()


class TestResumeAndExit:
    @pytest.mark.asyncio
    async def test_resume_after_exit(self, tmp_path):
        config = make_config()
        flow = await _open(tmp_path, config)
        flow.begin_module()
        flow.answer({"b"})
        await flow.exit()

        resumed = await _open(tmp_path, config)
        assert resumed.state == SequencerState.in_question(0, 1)
        assert resumed.store.session.responses["m0q0"].selected_values == frozenset({"b"})
        assert resumed.progress() == 25

    @pytest.mark.asyncio
    async def test_resume_completed_session_loads_report(self, tmp_path):
        config = make_config()
        flow = await _open(tmp_path, config)
        await _answer_all(flow)
        report = await flow.finish()
        await flow.exit()

        resumed = await _open(tmp_path, config)
        assert resumed.state == SequencerState.complete()
        assert resumed.report.archetype == report.archetype

    @pytest.mark.asyncio
    async def test_exit_during_generation_discards_report(self, tmp_path):
        flow = await _open(tmp_path, make_config(), generator=SlowGenerator(delay=0.05))
        await _answer_all(flow)
        task = asyncio.ensure_future(flow.finish())
        await asyncio.sleep(0.01)
        await flow.exit()
        assert await task is None
        assert flow.report is None
        assert flow.state == SequencerState.generating()
