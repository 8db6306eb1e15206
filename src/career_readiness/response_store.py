"""
response_store.py — Autosave for an assessment session
=======================================================
The Response Store is the single writer of ``AssessmentSession`` state.
Mutations are applied to the in-memory session synchronously, so callers
see the change immediately, and persisted in the background:

  record_answer / set_position   → debounced write (reset on every call)
  record_email / mark_completed  → caller decides when to ``flush()``
  flush()                        → immediate write, cancels a debounce that
                                   has not started writing yet
  close()                        → cancel debounce + best-effort final write

Write policy
------------
- Each write stamps a strictly increasing ``last_saved_at`` and fully
  replaces the stored row; the repository drops older stamps.
- Writes are serialised by an ``asyncio.Lock``; the blocking repository
  call runs in a worker thread.
- A failed write is retried ``max_attempts`` times, waiting
  ``backoff_seconds * 2**attempt`` between attempts.  Status is
  ``saving`` while attempts remain and ``unsaved`` once they are exhausted;
  any later successful write reports ``saved`` again.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Protocol

from career_readiness.config import AutosaveConfig
from career_readiness.models import (
    AssessmentSession,
    FlowStage,
    Response,
    SaveStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

StatusListener = Callable[[SaveStatus], None]


class SessionRepository(Protocol):
    """Remote session persistence: GET / PUT keyed by session_id."""

    def get(self, session_id: str) -> Optional[AssessmentSession]: ...

    def put(self, session: AssessmentSession) -> bool: ...


class ResponseStore:
    """Owns writes for one session; see module docstring for the policy."""

    def __init__(
        self,
        session: AssessmentSession,
        repository: SessionRepository,
        autosave: AutosaveConfig,
        on_status: Optional[StatusListener] = None,
    ) -> None:
        self.session = session
        self._repository = repository
        self._autosave = autosave
        self._on_status = on_status
        self._status = SaveStatus.IDLE
        self._lock = asyncio.Lock()
        self._pending: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._last_stamp: Optional[datetime] = session.last_saved_at

    @classmethod
    async def load(
        cls,
        session_id: str,
        repository: SessionRepository,
        autosave: AutosaveConfig,
        on_status: Optional[StatusListener] = None,
    ) -> "ResponseStore":
        """
        Return a store for *session_id*.

        The last persisted session is used when one exists; otherwise a fresh
        session positioned at the first module intro.
        """
        session = await asyncio.to_thread(repository.get, session_id)
        if session is None:
            logger.info("No stored session %s; starting fresh", session_id)
            session = AssessmentSession(session_id=session_id)
        else:
            logger.info(
                "Resumed session %s at %s (%d answers)",
                session_id, session.stage.value, session.answered_count(),
            )
        return cls(session, repository, autosave, on_status)

    # ─── Status ──────────────────────────────────────────────────────────────

    @property
    def status(self) -> SaveStatus:
        return self._status

    def _set_status(self, status: SaveStatus) -> None:
        if status == self._status:
            return
        self._status = status
        if self._on_status is not None:
            self._on_status(status)

    # ─── Mutations ───────────────────────────────────────────────────────────

    def record_answer(self, question_id: str, selected_values: Iterable[str]) -> Response:
        """Store (or replace) the answer for *question_id* and schedule a write."""
        response = Response(question_id=question_id, selected_values=frozenset(selected_values))
        self.session.responses[question_id] = response
        self._schedule()
        return response

    def set_position(
        self,
        stage: FlowStage,
        module_index: int,
        question_index: int,
        furthest_position: Optional[int] = None,
    ) -> None:
        self.session.stage = stage
        self.session.current_module_index = module_index
        self.session.current_question_index = question_index
        if furthest_position is not None:
            self.session.furthest_position = max(self.session.furthest_position, furthest_position)
        self._schedule()

    def record_email(self, email: str) -> None:
        self.session.email = email
        if self.session.email_captured_at is None:
            self.session.email_captured_at = utcnow()

    def mark_completed(self) -> None:
        if self.session.completed_at is None:
            self.session.completed_at = utcnow()

    # ─── Writes ──────────────────────────────────────────────────────────────

    def _schedule(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the change is picked up by the next flush().
            return
        self._cancel_pending()
        self._pending = loop.create_task(self._debounced_write())

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _debounced_write(self) -> None:
        await asyncio.sleep(self._autosave.debounce_seconds)
        # Only the debounce is cancellable. A started write keeps the lock
        # until its repository call returns, so writes never overlap.
        self._in_flight = asyncio.ensure_future(self._write())
        await asyncio.shield(self._in_flight)

    def _next_stamp(self) -> datetime:
        stamp = utcnow()
        if self._last_stamp is not None and stamp <= self._last_stamp:
            stamp = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = stamp
        return stamp

    async def _write(self) -> bool:
        async with self._lock:
            snapshot = self.session.model_copy(deep=True)
            snapshot.last_saved_at = self._next_stamp()
            self._set_status(SaveStatus.SAVING)

            attempts = max(1, self._autosave.max_attempts)
            for attempt in range(attempts):
                try:
                    stored = await asyncio.to_thread(self._repository.put, snapshot)
                except Exception as exc:
                    logger.warning(
                        "Autosave attempt %d/%d failed for session %s: %s",
                        attempt + 1, attempts, snapshot.session_id, exc,
                    )
                    if attempt + 1 < attempts:
                        await asyncio.sleep(self._autosave.backoff_seconds * 2 ** attempt)
                    continue

                if stored:
                    self.session.last_saved_at = snapshot.last_saved_at
                else:
                    logger.info("Session %s already holds a newer copy", snapshot.session_id)
                self._set_status(SaveStatus.SAVED)
                return True

            logger.error(
                "Autosave gave up for session %s after %d attempts; keeping in-memory state",
                snapshot.session_id, attempts,
            )
            self._set_status(SaveStatus.UNSAVED)
            return False

    async def flush(self) -> bool:
        """Write the current session now. Returns False when every attempt failed."""
        self._cancel_pending()
        return await self._write()

    async def drain(self) -> None:
        """Wait for a scheduled or in-flight debounced write, if any, to finish."""
        tasks = {t for t in (self._pending, self._in_flight) if t is not None and not t.done()}
        if tasks:
            await asyncio.wait(tasks)

    async def close(self) -> None:
        """Cancel the pending debounce and make a best-effort final write."""
        self._cancel_pending()
        if not await self._write():
            logger.warning("Final flush for session %s did not persist", self.session.session_id)
