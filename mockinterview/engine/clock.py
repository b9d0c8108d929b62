"""
Clock sources for the interview engine.

The timer and the state machine never call ``time`` or ``datetime`` directly;
they go through a Clock so tests and simulations can drive virtual time.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Wall-clock timestamps, monotonic readings and awaitable sleeps."""

    def now(self) -> datetime: ...

    def monotonic(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Real time, backed by asyncio."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class ManualClock:
    """
    Virtual clock advanced explicitly.

    ``sleep`` parks the caller until ``advance`` moves virtual time past its
    deadline. Sleepers wake in deadline order, and the event loop is given a
    chance to run between wake-ups so chained sleeps (one per timer tick)
    resolve within a single ``advance`` call.

    Usage:
        clock = ManualClock()
        timer = QuestionTimer(clock=clock, on_expire=...)
        timer.start(20)
        await clock.advance(20)
    """

    def __init__(self, start: datetime | None = None):
        self._start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._elapsed = 0.0
        self._sleepers: list[tuple[float, asyncio.Future]] = []

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)

    def monotonic(self) -> float:
        return self._elapsed

    @property
    def pending_sleepers(self) -> int:
        return sum(1 for _, fut in self._sleepers if not fut.done())

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append((self._elapsed + seconds, future))
        await future

    async def advance(self, seconds: float) -> None:
        """Move virtual time forward, waking every sleeper whose deadline passes."""
        target = self._elapsed + seconds
        # Let freshly created tasks reach their first sleep
        await settle()
        while True:
            self._sleepers = [(d, f) for d, f in self._sleepers if not f.done()]
            due = [d for d, _ in self._sleepers if d <= target]
            if not due:
                break
            self._elapsed = max(self._elapsed, min(due))
            for deadline, future in self._sleepers:
                if deadline <= self._elapsed and not future.done():
                    future.set_result(None)
            await settle()
        self._elapsed = target
        await settle()


async def settle(rounds: int = 20) -> None:
    """Yield to the event loop until ready callbacks have had a chance to run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
