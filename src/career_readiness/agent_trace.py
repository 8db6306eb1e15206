"""
agent_trace.py — Audit log for report generation runs
======================================================
Every call to the generation service emits an AttemptStep record.  The
report pipeline collects them into a RunTrace, which is stored next to the
report (``reports.trace_json``) so operators can see why a session ended up
with a fallback report.

Data model
----------
  AttemptStep    One generation attempt: timing, outcome, error text, warnings.
  RunTrace       Full trace for one ``generate`` call; ordered list of steps.

Key fields
----------
  AttemptStep.status       "success" | "timeout" | "error" | "rejected"
  AttemptStep.duration_ms  Wall-clock milliseconds for that attempt
  RunTrace.mode            generator name: "mock" | "azure_openai" | ...
  RunTrace.outcome         "generated" | "fallback"
  RunTrace.total_ms        End-to-end wall time of the run
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import asdict, dataclass, field
from career_readiness.models import utcnow


@dataclass
class AttemptStep:
    """One attempt against the generation service."""
    attempt:     int
    start_ms:    float          # relative to run start
    duration_ms: float
    status:      str            # "success" | "timeout" | "error" | "rejected"
    error:       str = ""
    warnings:    list[str] = field(default_factory=list)   # WARN-level guardrail messages


@dataclass
class RunTrace:
    """Full trace for a single report generation run."""
    run_id:     str
    session_id: str
    timestamp:  str
    mode:       str
    outcome:    str = ""
    total_ms:   float = 0.0
    steps:      list[AttemptStep] = field(default_factory=list)

    @classmethod
    def start(cls, session_id: str, mode: str) -> "RunTrace":
        return cls(
            run_id=uuid.uuid4().hex[:12],
            session_id=session_id,
            timestamp=utcnow().isoformat(timespec="seconds"),
            mode=mode,
        )

    def __post_init__(self) -> None:
        self._t0 = time.perf_counter()

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._t0) * 1000

    def append(self, step: AttemptStep) -> None:
        self.steps.append(step)

    def finish(self, outcome: str) -> None:
        self.outcome = outcome
        self.total_ms = round(self.elapsed_ms(), 1)

    @property
    def attempts(self) -> int:
        return len(self.steps)

    def to_json(self) -> str:
        return json.dumps(asdict(self))
