"""
Tests for configuration models and the built-in question bank.
"""
import json

import pytest
from pydantic import ValidationError

from factories import make_config

from career_readiness.models import (
    AssessmentConfig,
    AssessmentSession,
    DimensionCondition,
    FlowStage,
    LevelRule,
    Response,
    TERMINAL_INDEX,
)
from career_readiness.question_bank import DEFAULT_CONFIG, load_assessment_config


class TestAssessmentConfigValidation:
    def _data(self):
        return json.loads(make_config().model_dump_json())

    def test_valid_config_loads(self):
        cfg = make_config()
        assert cfg.module_count == 2
        assert cfg.total_questions == 4
        assert cfg.dimension_ids() == ["alpha", "beta"]

    def test_rejects_empty_modules(self):
        data = self._data()
        data["modules"] = []
        with pytest.raises(ValidationError):
            AssessmentConfig.model_validate(data)

    def test_rejects_module_without_questions(self):
        data = self._data()
        data["modules"][1]["questions"] = []
        with pytest.raises(ValidationError):
            AssessmentConfig.model_validate(data)

    def test_rejects_duplicate_question_ids(self):
        data = self._data()
        data["modules"][1]["questions"][0]["id"] = "m0q0"
        with pytest.raises(ValidationError):
            AssessmentConfig.model_validate(data)

    def test_rejects_undeclared_dimension(self):
        data = self._data()
        data["modules"][0]["questions"][0]["options"][0]["dimension_weights"] = {"gamma": 1}
        with pytest.raises(ValidationError):
            AssessmentConfig.model_validate(data)

    def test_rejects_gate_outside_modules(self):
        data = self._data()
        data["gate_after_module"] = 2
        with pytest.raises(ValidationError):
            AssessmentConfig.model_validate(data)

    def test_flat_position(self):
        cfg = make_config(modules=3, questions=2)
        assert cfg.flat_position(0, 0) == 0
        assert cfg.flat_position(1, 1) == 3
        assert cfg.flat_position(2, 0) == 4


class TestDimensionCondition:
    def test_bounds_are_strict(self):
        cond = DimensionCondition(dimension="x", min=70)
        assert not cond.holds({"x": 70})
        assert cond.holds({"x": 70.01})

    def test_missing_score_counts_as_zero(self):
        assert DimensionCondition(dimension="x", max=50).holds({})


class TestSessionModel:
    def test_fresh_session_starts_at_first_intro(self):
        s = AssessmentSession(session_id="s")
        assert s.stage == FlowStage.MODULE_INTRO
        assert (s.current_module_index, s.current_question_index) == (0, 0)
        assert s.furthest_position == -1
        assert not s.is_terminal

    def test_json_round_trip_keeps_frozenset(self):
        s = AssessmentSession(session_id="s")
        s.responses["q"] = Response(question_id="q", selected_values=frozenset({"a", "b"}))
        restored = AssessmentSession.model_validate_json(s.model_dump_json())
        assert restored.responses["q"].selected_values == frozenset({"a", "b"})

    def test_terminal_sentinel(self):
        s = AssessmentSession(session_id="s", current_module_index=TERMINAL_INDEX,
                              current_question_index=TERMINAL_INDEX)
        assert s.is_terminal

    def test_half_terminal_position_is_not_terminal(self):
        s = AssessmentSession(session_id="s", current_module_index=TERMINAL_INDEX, current_question_index=0)
        assert not s.is_terminal


class TestQuestionBank:
    def test_default_bank_is_valid(self, default_config):
        assert default_config.module_count == 4
        assert default_config.total_questions == 12
        assert default_config.gate_after_module == 1

    def test_every_dimension_is_reachable(self, default_config):
        reachable = {
            dim
            for m in default_config.modules
            for q in m.questions
            for o in q.options
            for dim, w in o.dimension_weights.items()
            if w > 0
        }
        assert reachable == set(default_config.dimension_ids())

    def test_stage_labels_default(self, default_config):
        assert default_config.stage_labels[0] == "Analyzing your responses..."
        assert len(default_config.stage_labels) == 4

    def test_load_from_json_file(self, tmp_path):
        path = tmp_path / "bank.json"
        data = dict(DEFAULT_CONFIG)
        data["gate_after_module"] = None
        path.write_text(json.dumps(data), encoding="utf-8")
        cfg = load_assessment_config(path)
        assert cfg.gate_after_module is None
        assert cfg.total_questions == 12

    def test_empty_path_uses_builtin(self):
        assert load_assessment_config("").total_questions == 12

    def test_level_hints_and_policy(self, default_config):
        hinted = [o.level_hint for m in default_config.modules for q in m.questions for o in q.options if o.level_hint]
        assert len(hinted) == 12
        assert [r.level for r in default_config.level_policy.rules] == ["Director", "GPM", "Principal", "Senior"]
        assert default_config.level_policy.default == "PM"


class TestLevelRule:
    def test_floors_are_inclusive(self):
        rule = LevelRule(level="Principal", min_overall=60, minimums={"strategy": 65})
        assert rule.matches({"strategy": 65.0}, 60.0, missing_score=50.0)
        assert not rule.matches({"strategy": 64.99}, 60.0, missing_score=50.0)
        assert not rule.matches({"strategy": 90.0}, 59.99, missing_score=50.0)

    def test_missing_dimension_uses_missing_score(self):
        rule = LevelRule(level="GPM", minimums={"leadership": 50})
        assert rule.matches({}, 80.0, missing_score=50.0)
        assert not rule.matches({}, 80.0, missing_score=40.0)
