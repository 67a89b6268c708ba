"""
Detection monitor - obstacle signal into the engine.

The subscription only exists while the engine is running or paused for
detection. A user pause drops it, so a clearing signal can never resume
playback the user stopped.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum, auto
from typing import Any, Callable, Optional

from picking_robot.control.state import EngineStatus, ExecutionSnapshot

logger = logging.getLogger(__name__)

MONITORED_STATUSES = (EngineStatus.RUNNING, EngineStatus.PAUSED_DETECTION)


class DetectionReading(Enum):
    """Parsed detection payload."""

    DETECTED = auto()
    CLEAR = auto()
    MALFORMED = auto()

    @property
    def detected(self) -> bool:
        return self is DetectionReading.DETECTED


def _coerce(value: Any) -> DetectionReading:
    if isinstance(value, bool):
        return DetectionReading.DETECTED if value else DetectionReading.CLEAR
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return DetectionReading.MALFORMED
    else:
        return DetectionReading.MALFORMED

    if number == 1:
        return DetectionReading.DETECTED
    if number == 0:
        return DetectionReading.CLEAR
    return DetectionReading.MALFORMED


def parse_detection(payload: Any) -> DetectionReading:
    """
    Interpret a raw detection value.

    Accepts a bare number (1 = detected, 0 = clear) or an object with a
    status field holding one. An absent field reads as clear. Anything
    else is MALFORMED.
    """
    if payload is None:
        return DetectionReading.CLEAR
    if isinstance(payload, dict):
        if "status" not in payload:
            return DetectionReading.MALFORMED
        return _coerce(payload["status"])
    return _coerce(payload)


class DetectionMonitor:
    """
    Follows engine snapshots and feeds detection changes back to it.

    Usage:
        monitor = DetectionMonitor(feed, engine.on_detection)
        engine.add_listener(monitor.follow)

    Args:
        feed: Object whose subscribe() is an async iterator of raw payloads
        on_detection: Called with True (obstacle) or False (clear)
    """

    def __init__(self, feed, on_detection: Callable[[bool], None]):
        self._feed = feed
        self._on_detection = on_detection
        self._task: Optional[asyncio.Task] = None
        self._malformed_count = 0

    @property
    def is_active(self) -> bool:
        return self._task is not None

    @property
    def malformed_count(self) -> int:
        return self._malformed_count

    def follow(self, snapshot: ExecutionSnapshot):
        """Engine listener: subscribe only in monitored states."""
        self.set_active(snapshot.status in MONITORED_STATUSES)

    def set_active(self, active: bool):
        if active and self._task is None:
            self._task = asyncio.ensure_future(self._consume())
            self._task.add_done_callback(self._forget)
            logger.info("Detection monitor subscribed")
        elif not active and self._task is not None:
            self._task.cancel()
            self._task = None
            logger.info("Detection monitor unsubscribed")

    def _forget(self, task: asyncio.Task):
        if self._task is task:
            self._task = None

    async def close(self):
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def handle(self, payload: Any):
        """Parse one payload and forward it to the engine."""
        reading = parse_detection(payload)
        if reading is DetectionReading.MALFORMED:
            self._malformed_count += 1
            logger.warning(f"Malformed detection payload {payload!r}, treating as clear")
        else:
            logger.debug(f"Detection: {reading.name}")
        self._on_detection(reading.detected)

    async def _consume(self):
        try:
            async for payload in self._feed.subscribe():
                self.handle(payload)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Detection monitor error: {e}", exc_info=True)
