"""
Shared pytest fixtures for the Career Readiness test suite.
All fixtures use mock mode and millisecond timings — no Azure credentials
and no real waiting required.
Factory helpers live in tests/factories.py so they can be imported
directly by test modules as well as being used here.
"""
import sys
import os

_tests_dir = os.path.dirname(__file__)
_src_dir   = os.path.join(_tests_dir, "..", "src")
for _p in (_tests_dir, _src_dir):
    if _p not in sys.path:
        sys.path.insert(0, _p)

# Force mock mode — never call Azure during tests
os.environ["FORCE_MOCK_MODE"] = "true"
os.environ.setdefault("AZURE_OPENAI_ENDPOINT", "<placeholder>")
os.environ.setdefault("AZURE_OPENAI_API_KEY",  "<placeholder>")


import pytest

from factories import InMemoryRepository, make_config, make_store

from career_readiness.database import AssessmentDatabase
from career_readiness.question_bank import load_assessment_config
from career_readiness.sequencer import ModuleSequencer


# ─── pytest fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def small_config():
    """2 modules × 2 questions, no gate."""
    return make_config()


@pytest.fixture
def gated_config():
    """2 modules × 2 questions, gate after the first module."""
    return make_config(gate_after_module=0)


@pytest.fixture
def default_config():
    return load_assessment_config()


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def store(repo):
    return make_store(repository=repo)


@pytest.fixture
def sequencer(small_config, store):
    return ModuleSequencer(small_config, store)


@pytest.fixture
def db(tmp_path):
    return AssessmentDatabase(tmp_path / "assessment.db")
