"""Fixed-period evaluation timer."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

_logger = logging.getLogger(__name__)


class EvaluationTimer:
    """Run *callback* every *period* seconds on the event loop.

    Tick ``k`` is due at ``start + k * period``.  A late tick runs as soon
    as possible and does not push later deadlines back, so a stalled loop
    never silently skips liveness checks.
    """

    def __init__(self, callback: Callable[[], object], period: float) -> None:
        if period <= 0:
            raise ValueError("period must be positive")
        self._callback = callback
        self._period = period
        self._task: asyncio.Task[None] | None = None
        self._ticks = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def ticks(self) -> int:
        return self._ticks

    def start(self) -> None:
        if self.is_running:
            _logger.warning("Evaluation timer already running")
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="tanklink-evaluation-timer")
        _logger.info("Evaluation timer started (period: %.1fs)", self._period)

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        _logger.info("Evaluation timer stopped")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_due = loop.time() + self._period
        while True:
            delay = next_due - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            else:
                # Yield so a backlog of overdue ticks cannot starve the loop.
                await asyncio.sleep(0)
            next_due += self._period
            self._ticks += 1
            try:
                self._callback()
            except Exception:
                _logger.error("Evaluation tick failed", exc_info=True)
