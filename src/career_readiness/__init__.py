"""
career_readiness — Career Readiness assessment core
====================================================
Assessment sequencing, autosave, email gating and report generation for a
multi-module career-readiness questionnaire.

Module map
----------
  models.py             Pydantic models: configuration, session, report, enums.
  config.py             Settings loaded from .env; live vs mock generation.
  question_bank.py      Built-in declarative question bank + JSON loader.
  guardrails.py         Answer / email / narrative / score guardrails.
  database.py           SQLite persistence (sessions, leads, reports).
  response_store.py     Debounced autosave with bounded retry.
  sequencer.py          Module/question state machine + progress.
  email_gate.py         One-time email checkpoint and lead recording.
  scoring.py            Dimension scores, overall score, archetype.
  report_generator.py   Azure OpenAI / mock narrative tiers + fallback text.
  staged_progress.py    Cancellable staged "generating" sequence.
  report_pipeline.py    Scoring → generation (timeout, retry) → Report.
  agent_trace.py        AttemptStep / RunTrace audit log per generation run.
  flow.py               AssessmentFlow: single owner of one session.

Flow order
----------
  ModuleIntro → questions → ModuleComplete
  ** Email gate after the checkpoint module **
  → remaining modules → Generating (staged progress ∥ generation) → Complete
"""
__version__ = "0.1.0"
