"""
Per-question countdown timer.

Runs as a background asyncio task that decrements once per tick and fires a
single expiry callback when it reaches zero. The timer only signals; it never
touches session state. ``remaining`` is for display and must not gate
correctness; the expiry callback is authoritative.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from loguru import logger

from .clock import Clock, SystemClock


class QuestionTimer:
    """Cancellable countdown with tick and expiry callbacks."""

    def __init__(
        self,
        clock: Clock | None = None,
        on_expire: Callable[[], None] | None = None,
        on_tick: Callable[[int], None] | None = None,
        tick_seconds: float = 1.0,
    ):
        self.clock = clock or SystemClock()
        self.on_expire = on_expire
        self.on_tick = on_tick
        self.tick_seconds = tick_seconds

        self._remaining = 0
        self._duration = 0
        self._generation = 0
        self._task: asyncio.Task | None = None

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def duration(self) -> int:
        """Duration passed to the most recent ``start``."""
        return self._duration

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, duration_seconds: int) -> None:
        """
        (Re)start the countdown.

        Starting while running replaces the previous countdown; its expiry
        will never fire. Must be called from inside a running event loop.
        """
        if duration_seconds < 0:
            raise ValueError(f"Timer duration must be >= 0, got {duration_seconds}")

        self.cancel()
        self._generation += 1
        self._duration = int(duration_seconds)
        self._remaining = int(duration_seconds)
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._generation), name=f"question-timer-{self._generation}"
        )
        logger.debug(f"Timer started: {duration_seconds}s (generation {self._generation})")

    def cancel(self) -> None:
        """Stop the countdown. No-op when idle; no expiry fires afterwards."""
        # Bumping the generation invalidates a tick already past its await.
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug("Timer cancelled")
        self._task = None

    async def _run(self, generation: int) -> None:
        while self._remaining > 0:
            await self.clock.sleep(self.tick_seconds)
            if generation != self._generation:
                return
            self._remaining -= 1
            if self.on_tick is not None:
                self.on_tick(self._remaining)

        if generation != self._generation:
            return
        # Expiry is one-shot for this generation
        self._generation += 1
        self._task = None
        logger.debug("Timer expired")
        if self.on_expire is not None:
            self.on_expire()
