"""
career_readiness/database.py — SQLite persistence layer
=======================================================
Stores assessment sessions, captured leads and generated reports so that
returning visitors can resume where they left off and operators can review
every session.

Design decisions
----------------
- **JSON blob per session**: the whole ``AssessmentSession`` is stored as
  one TEXT column keyed by ``session_id``.  Every write fully replaces the
  row, so retrying the same write is safe.
- **Last write wins, by timestamp**: ``put_session`` ignores a write whose
  ``last_saved_at`` is older than the stored one, so a slow retry can never
  clobber newer progress.
- **WAL journal mode**: readers (admin export) do not block the autosave
  writer.
- **check_same_thread=False**: the Response Store runs blocking calls via
  ``asyncio.to_thread``; each call opens its own short-lived connection.

Tables
------
  sessions   session_id PK, email, stage, session_json, last_saved_at, updated_at
  leads      email PK, source, created_at, updated_at
  reports    session_id PK, report_json, trace_json, source, created_at

Public API
----------
  AssessmentDatabase(db_path)
    init_db()                         create tables if they don't exist
    get_session(session_id)           → AssessmentSession | None
    put_session(session)              → bool (False when the write is stale)
    get / put                         aliases satisfying SessionRepository
    save_lead(email, source)          upsert by email
    save_report(report, trace_json)   upsert by session_id (replaces prior report)
    load_report(session_id)           → Report | None
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from career_readiness.models import AssessmentSession, Report

logger = logging.getLogger(__name__)


class AssessmentDatabase:
    """File-backed store used by the Response Store, the gate and the report pipeline."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Return a connection with row_factory set."""
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def init_db(self) -> None:
        """Create tables if they don't exist."""
        conn = self._get_conn()
        conn.executescript("""
        CREATE TABLE IF NOT EXISTS sessions (
            session_id    TEXT PRIMARY KEY,
            email         TEXT,
            stage         TEXT NOT NULL,
            session_json  TEXT NOT NULL,
            last_saved_at TEXT,
            updated_at    TEXT DEFAULT (datetime('now'))
        );
        CREATE TABLE IF NOT EXISTS leads (
            email      TEXT PRIMARY KEY,
            source     TEXT NOT NULL,
            created_at TEXT DEFAULT (datetime('now')),
            updated_at TEXT DEFAULT (datetime('now'))
        );
        CREATE TABLE IF NOT EXISTS reports (
            session_id  TEXT PRIMARY KEY,
            report_json TEXT NOT NULL,
            trace_json  TEXT,
            source      TEXT NOT NULL,
            created_at  TEXT DEFAULT (datetime('now'))
        );
        """)
        conn.commit()
        conn.close()

    # ─── Sessions ────────────────────────────────────────────────────────────

    def get_session(self, session_id: str) -> Optional[AssessmentSession]:
        """Fetch a persisted session. Returns None when it was never saved."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT session_json FROM sessions WHERE session_id = ?", (session_id,)
        ).fetchone()
        conn.close()
        if row is None:
            return None
        return AssessmentSession.model_validate_json(row["session_json"])

    def put_session(self, session: AssessmentSession) -> bool:
        """
        Replace the stored session.

        Returns False (and leaves the row untouched) when the stored copy has
        a newer ``last_saved_at`` than the incoming one.
        """
        incoming = session.last_saved_at
        conn = self._get_conn()
        try:
            with conn:
                # Take the write lock before reading so compare and replace are atomic.
                conn.execute("BEGIN IMMEDIATE")
                row = conn.execute(
                    "SELECT last_saved_at FROM sessions WHERE session_id = ?",
                    (session.session_id,),
                ).fetchone()
                if row is not None and row["last_saved_at"] and incoming is not None:
                    stored = datetime.fromisoformat(row["last_saved_at"])
                    if incoming < stored:
                        logger.warning(
                            "Ignoring stale write for session %s (%s < %s)",
                            session.session_id, incoming.isoformat(), stored.isoformat(),
                        )
                        return False
                conn.execute(
                    """
                    INSERT INTO sessions (session_id, email, stage, session_json, last_saved_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, datetime('now'))
                    ON CONFLICT(session_id) DO UPDATE SET
                        email         = excluded.email,
                        stage         = excluded.stage,
                        session_json  = excluded.session_json,
                        last_saved_at = excluded.last_saved_at,
                        updated_at    = excluded.updated_at
                    """,
                    (
                        session.session_id,
                        session.email,
                        session.stage.value,
                        session.model_dump_json(),
                        incoming.isoformat() if incoming else None,
                    ),
                )
        finally:
            conn.close()
        return True

    # SessionRepository protocol used by the Response Store
    get = get_session
    put = put_session

    # ─── Leads ───────────────────────────────────────────────────────────────

    def save_lead(self, email: str, source: str) -> None:
        """Record a captured email; repeated captures update the source tag."""
        conn = self._get_conn()
        conn.execute(
            """
            INSERT INTO leads (email, source) VALUES (?, ?)
            ON CONFLICT(email) DO UPDATE SET
                source = excluded.source,
                updated_at = datetime('now')
            """,
            (email.strip().lower(), source),
        )
        conn.commit()
        conn.close()

    # ─── Reports ─────────────────────────────────────────────────────────────

    def save_report(self, report: Report, trace_json: str = "") -> None:
        """Persist a report, replacing any earlier report for the same session."""
        conn = self._get_conn()
        conn.execute(
            """
            INSERT INTO reports (session_id, report_json, trace_json, source, created_at)
            VALUES (?, ?, ?, ?, datetime('now'))
            ON CONFLICT(session_id) DO UPDATE SET
                report_json = excluded.report_json,
                trace_json  = excluded.trace_json,
                source      = excluded.source,
                created_at  = excluded.created_at
            """,
            (report.session_id, report.model_dump_json(), trace_json or None, report.source.value),
        )
        conn.commit()
        conn.close()

    def load_report(self, session_id: str) -> Optional[Report]:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT report_json FROM reports WHERE session_id = ?", (session_id,)
        ).fetchone()
        conn.close()
        if row is None:
            return None
        return Report.model_validate_json(row["report_json"])
