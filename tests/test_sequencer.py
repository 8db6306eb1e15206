"""
Module Sequencer: transitions, back navigation, progress accounting.
"""
import pytest

from factories import make_config, make_store, walk_to_end

from career_readiness.models import FlowStage, TERMINAL_INDEX
from career_readiness.sequencer import (
    AnswerRejected,
    ModuleSequencer,
    SequencerError,
    SequencerState,
)


class TestForwardTraversal:
    def test_initial_state(self, sequencer):
        assert sequencer.state == SequencerState.module_intro(0)
        assert sequencer.progress() == 0

    def test_begin_module(self, sequencer):
        assert sequencer.begin_module() == SequencerState.in_question(0, 0)
        assert sequencer.current_question().id == "m0q0"

    def test_answer_advances_within_module(self, sequencer):
        sequencer.begin_module()
        result = sequencer.submit_answer({"a"})
        assert result.accepted
        assert result.state == SequencerState.in_question(0, 1)

    def test_last_answer_completes_module(self, sequencer):
        sequencer.begin_module()
        sequencer.submit_answer({"a"})
        result = sequencer.submit_answer({"b"})
        assert result.state == SequencerState.module_complete(0)

    def test_proceed_to_next_module(self, sequencer):
        sequencer.begin_module()
        sequencer.submit_answer({"a"})
        sequencer.submit_answer({"a"})
        assert sequencer.proceed() == SequencerState.module_intro(1)

    def test_proceed_after_last_module_generates(self, sequencer, store):
        walk_to_end(sequencer)
        assert sequencer.state == SequencerState.generating()
        assert store.session.current_module_index == TERMINAL_INDEX
        assert store.session.current_question_index == TERMINAL_INDEX

    def test_complete(self, sequencer, store):
        walk_to_end(sequencer)
        assert sequencer.complete() == SequencerState.complete()
        assert store.session.stage == FlowStage.COMPLETE

    def test_furthest_position_tracks_reach(self, sequencer, store):
        sequencer.begin_module()
        sequencer.submit_answer({"a"})
        assert store.session.furthest_position == 1


class TestAnswerValidation:
    def test_empty_selection_rejected_without_side_effects(self, sequencer, store, repo):
        sequencer.begin_module()
        result = sequencer.submit_answer(set())
        assert isinstance(result, AnswerRejected)
        assert result.message == "Please choose an answer before continuing."
        assert sequencer.state == SequencerState.in_question(0, 0)
        assert store.session.responses == {}
        assert repo.puts == 0

    def test_unknown_option_rejected(self, sequencer):
        sequencer.begin_module()
        assert not sequencer.submit_answer({"zz"}).accepted

    def test_multi_select_accepts_several(self):
        config = make_config(multi_select_last=True)
        store = make_store()
        seq = ModuleSequencer(config, store)
        seq.begin_module()
        seq.submit_answer({"a"})
        seq.submit_answer({"a"})
        seq.proceed()
        seq.begin_module()
        seq.submit_answer({"a"})
        assert seq.submit_answer({"a", "b"}).accepted
        assert store.session.responses["m1q1"].selected_values == frozenset({"a", "b"})


class TestIllegalActions:
    def test_answer_from_intro_raises(self, sequencer):
        with pytest.raises(SequencerError):
            sequencer.submit_answer({"a"})

    def test_proceed_from_question_raises(self, sequencer):
        sequencer.begin_module()
        with pytest.raises(SequencerError):
            sequencer.proceed()

    def test_release_gate_without_email_raises(self, gated_config):
        store = make_store()
        seq = ModuleSequencer(gated_config, store)
        seq.begin_module()
        seq.submit_answer({"a"})
        seq.submit_answer({"a"})
        assert seq.proceed().stage == FlowStage.AWAITING_EMAIL_GATE
        with pytest.raises(SequencerError):
            seq.release_gate()

    def test_resume_rejects_out_of_bounds_position(self, small_config, store):
        store.session.current_module_index = 7
        with pytest.raises(SequencerError):
            ModuleSequencer.resume(small_config, store)

    def test_resume_rejects_generating_off_terminal_position(self, small_config, store):
        store.session.stage = FlowStage.GENERATING
        store.session.current_module_index = 1
        with pytest.raises(SequencerError):
            ModuleSequencer.resume(small_config, store)


class TestBackNavigation:
    def test_back_within_module(self, sequencer):
        sequencer.begin_module()
        sequencer.submit_answer({"a"})
        assert sequencer.back()
        assert sequencer.state == SequencerState.in_question(0, 0)

    def test_back_at_first_question_is_noop(self, sequencer):
        sequencer.begin_module()
        assert not sequencer.back()
        assert sequencer.state == SequencerState.in_question(0, 0)

    def test_back_from_first_intro_is_noop(self, sequencer):
        assert not sequencer.back()

    def test_back_across_module_boundary(self, sequencer):
        sequencer.begin_module()
        sequencer.submit_answer({"a"})
        sequencer.submit_answer({"a"})
        sequencer.proceed()
        sequencer.begin_module()
        assert sequencer.back()
        assert sequencer.state == SequencerState.in_question(0, 1)

    def test_back_from_intro_of_second_module(self, sequencer):
        sequencer.begin_module()
        sequencer.submit_answer({"a"})
        sequencer.submit_answer({"a"})
        sequencer.proceed()
        assert sequencer.back()
        assert sequencer.state == SequencerState.in_question(0, 1)

    def test_back_from_module_complete(self, sequencer):
        sequencer.begin_module()
        sequencer.submit_answer({"a"})
        sequencer.submit_answer({"a"})
        assert sequencer.back()
        assert sequencer.state == SequencerState.in_question(0, 1)

    def test_back_never_touches_completed_at(self, sequencer, store):
        walk_to_end(sequencer)
        stamp = store.session.completed_at
        assert stamp is not None
        assert not sequencer.back()   # generating: nowhere to go
        assert store.session.completed_at == stamp

    def test_back_stays_within_reached_positions(self, small_config, store):
        store.session.current_module_index = 1   # intro of module 1, nothing reached yet
        seq = ModuleSequencer.resume(small_config, store)
        assert store.session.furthest_position == -1
        assert not seq.back()
        assert seq.state == SequencerState.module_intro(1)

    def test_reanswer_after_back(self, sequencer, store):
        """Answer q1, go back before q2, re-answer q1 differently."""
        sequencer.begin_module()
        sequencer.submit_answer({"a"})
        sequencer.back()
        sequencer.submit_answer({"b"})
        assert len(store.session.responses) == 1
        assert store.session.responses["m0q0"].selected_values == frozenset({"b"})
        assert sequencer.state == SequencerState.in_question(0, 1)


class TestProgress:
    def test_progress_monotonic_forward(self, sequencer):
        seen = [sequencer.progress()]
        sequencer.begin_module()
        while sequencer.state.stage != FlowStage.GENERATING:
            st = sequencer.state.stage
            if st == FlowStage.IN_QUESTION:
                sequencer.submit_answer({"c"})
            elif st == FlowStage.MODULE_COMPLETE:
                sequencer.proceed()
            else:
                sequencer.begin_module()
            seen.append(sequencer.progress())
        assert seen == sorted(seen)
        assert seen[-1] == 100

    def test_progress_values(self, sequencer):
        sequencer.begin_module()
        sequencer.submit_answer({"a"})
        assert sequencer.progress() == 25
        sequencer.submit_answer({"a"})
        assert sequencer.progress() == 50

    def test_progress_unaffected_by_revisit(self, sequencer):
        sequencer.begin_module()
        sequencer.submit_answer({"a"})
        sequencer.back()
        assert sequencer.progress() == 25
        sequencer.submit_answer({"b"})
        assert sequencer.progress() == 25

    def test_100_iff_completed(self, sequencer, store):
        walk_to_end(sequencer)
        assert store.session.completed_at is not None
        assert sequencer.progress() == 100

    def test_never_100_while_unanswered(self):
        """199 of 200 answered rounds to 100 but must report 99."""
        config = make_config(modules=1, questions=200)
        store = make_store()
        seq = ModuleSequencer(config, store)
        seq.begin_module()
        for _ in range(199):
            seq.submit_answer({"a"})
        assert store.session.completed_at is None
        assert seq.progress() == 99
        seq.submit_answer({"a"})
        assert seq.progress() == 100

    def test_rounds_half_up(self):
        config = make_config(modules=1, questions=8)
        store = make_store()
        seq = ModuleSequencer(config, store)
        seq.begin_module()
        seq.submit_answer({"a"})   # 12.5 %
        assert seq.progress() == 13


class TestResume:
    def test_resume_restores_state(self, small_config, store):
        seq = ModuleSequencer(small_config, store)
        seq.begin_module()
        seq.submit_answer({"a"})
        resumed = ModuleSequencer.resume(small_config, store)
        assert resumed.state == SequencerState.in_question(0, 1)
        assert resumed.progress() == 25
