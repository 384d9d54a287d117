"""Restartable periodic tick that drives reading generation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

LOGGER = logging.getLogger(__name__)

MAX_CONSECUTIVE_FAILURES = 10
"""After this many failed ticks in a row, back off before the next one."""

FAILURE_BACKOFF_FACTOR = 5
"""Backoff is this many tick periods."""


class ReadingTicker:
    """Calls *on_tick* every ``interval_ms`` on the running event loop.

    At most one tick task exists at a time: :meth:`restart` cancels the
    current task before starting the next, so an interval change never
    leaves a stale timer ticking alongside the new one.
    """

    def __init__(self, on_tick: Callable[[], None], interval_ms: int) -> None:
        self._on_tick = on_tick
        self._interval_ms = int(interval_ms)
        self._task: asyncio.Task[None] | None = None
        self.tick_count = 0

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(self._interval_ms), name="reading-ticker")

    def restart(self, interval_ms: int) -> None:
        """Cancel the current timer and start a new one with *interval_ms*."""
        if self._task is not None:
            self._task.cancel()
        self._interval_ms = int(interval_ms)
        self._task = asyncio.create_task(self._run(self._interval_ms), name="reading-ticker")
        LOGGER.info("Reading ticker restarted at %d ms", self._interval_ms)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _run(self, interval_ms: int) -> None:
        interval = interval_ms / 1000.0
        consecutive_failures = 0
        while True:
            await asyncio.sleep(interval)
            try:
                self._on_tick()
                self.tick_count += 1
                consecutive_failures = 0
            except Exception:
                consecutive_failures += 1
                if consecutive_failures >= MAX_CONSECUTIVE_FAILURES:
                    LOGGER.error(
                        "Reading tick failed %d consecutive times; backing off.",
                        consecutive_failures,
                        exc_info=True,
                    )
                    await asyncio.sleep(interval * FAILURE_BACKOFF_FACTOR)
                else:
                    LOGGER.warning("Reading tick failed; will retry.", exc_info=True)
