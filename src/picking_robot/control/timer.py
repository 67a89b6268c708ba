"""
Move timer - completion deadline plus countdown ticker for the active move.

The pair is always started and cancelled together. Each start or cancel
bumps the generation; callbacks carry the generation they were scheduled
under so the owner can drop any that were already queued when the pair
was replaced.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from picking_robot.config import TICK_SECONDS

logger = logging.getLogger(__name__)

TimerCallback = Callable[[int], None]


class MoveTimer:
    """
    Usage:
        timer = MoveTimer()
        generation = timer.start(3, on_tick, on_complete)
        ...
        timer.cancel()

    Args:
        tick_interval: Seconds per countdown step (1.0 in production)
        call_later: Scheduling primitive with asyncio's call_later signature.
            Defaults to the running event loop.
    """

    def __init__(self, tick_interval: float = TICK_SECONDS, call_later=None):
        self.tick_interval = tick_interval
        self._call_later = call_later
        self._generation = 0
        self._deadline = None
        self._ticker = None
        self._on_tick: Optional[TimerCallback] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_active(self) -> bool:
        return self._deadline is not None

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def start(self, seconds: int, on_tick: TimerCallback, on_complete: TimerCallback) -> int:
        """
        Cancel any running pair and schedule a new one.

        Args:
            seconds: Countdown length in ticks
            on_tick: Called with the generation once per tick
            on_complete: Called with the generation once, after seconds ticks

        Returns:
            Generation of the new pair
        """
        self.cancel()
        generation = self._generation
        self._on_tick = on_tick
        self._deadline = self._schedule(
            max(0, seconds) * self.tick_interval, self._fire_complete, generation, on_complete
        )
        self._ticker = self._schedule(self.tick_interval, self._fire_tick, generation)
        logger.debug(f"Timer gen {generation}: {seconds} ticks")
        return generation

    def cancel(self):
        """Cancel both callbacks. Already-queued callbacks become stale."""
        if self._deadline is not None:
            self._deadline.cancel()
            self._deadline = None
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        self._on_tick = None
        self._generation += 1

    def _schedule(self, delay: float, callback, *args):
        call_later = self._call_later or asyncio.get_running_loop().call_later
        return call_later(delay, callback, *args)

    def _fire_tick(self, generation: int):
        if generation != self._generation or self._on_tick is None:
            return
        on_tick = self._on_tick
        # Reschedule first so the callback may cancel the pair
        self._ticker = self._schedule(self.tick_interval, self._fire_tick, generation)
        on_tick(generation)

    def _fire_complete(self, generation: int, on_complete: TimerCallback):
        if generation != self._generation:
            return
        self._deadline = None
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        self._on_tick = None
        on_complete(generation)
