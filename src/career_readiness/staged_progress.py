"""
Staged "generating your report" feedback, decoupled from the real call.

Labels advance on a fixed cadence whether or not the generation service has
answered.  Once ``result_ready()`` is signalled the remaining labels are
shown at the accelerated cadence; the last label is held until the result
is available, then a short final pause completes the sequence.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageUpdate:
    index:   int
    label:   str
    total:   int
    holding: bool = False   # last stage shown, real result still outstanding


StageListener = Callable[[StageUpdate], None]


class StagedProgress:
    def __init__(
        self,
        labels: Sequence[str],
        interval: float,
        accelerated_interval: float,
        final_pause: float,
        on_stage: Optional[StageListener] = None,
    ) -> None:
        if not labels:
            raise ValueError("StagedProgress needs at least one stage label.")
        self.labels = list(labels)
        self.interval = interval
        self.accelerated_interval = accelerated_interval
        self.final_pause = final_pause
        self._on_stage = on_stage
        self._ready = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.current_index = -1
        self.holding = False
        self.shown: list[StageUpdate] = []

    # ─── Control ─────────────────────────────────────────────────────────────

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    def result_ready(self) -> None:
        self._ready.set()

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Return once the sequence has finished or was cancelled."""
        if self._task is None:
            return
        await asyncio.wait({self._task})

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task is not None and self._task.cancelled()

    # ─── Sequence ────────────────────────────────────────────────────────────

    def _emit(self, index: int, holding: bool = False) -> None:
        self.current_index = index
        self.holding = holding
        update = StageUpdate(index, self.labels[index], len(self.labels), holding)
        self.shown.append(update)
        if self._on_stage is not None:
            self._on_stage(update)

    async def _run(self) -> None:
        last = len(self.labels) - 1
        for index in range(last):
            self._emit(index)
            if self._ready.is_set():
                await asyncio.sleep(self.accelerated_interval)
                continue
            try:
                await asyncio.wait_for(self._ready.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                continue
            # Result landed mid-stage: keep this label visible briefly.
            await asyncio.sleep(self.accelerated_interval)

        if self._ready.is_set():
            self._emit(last)
        else:
            self._emit(last, holding=True)
            logger.debug("Holding final stage until the report is ready")
            await self._ready.wait()
            self._emit(last)
        await asyncio.sleep(self.final_pause)
