"""
Remote command channel - ordered, fire-and-forget writes to one node.

Callers submit field updates and move on immediately. A single writer
task sends them in submission order; the outcome of each write is only
logged, never reported back.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from picking_robot.errors import RemoteChannelError

logger = logging.getLogger(__name__)


class RemoteChannel:
    """
    Write queue in front of FirebaseClient.update for one node.

    Usage:
        channel = RemoteChannel(client, "Picking_Robot")
        channel.start()
        channel.submit({"Movements": "F", "duration": 3})
        ...
        await channel.close()
    """

    def __init__(self, client, node: str):
        self._client = client
        self._node = node
        self._queue: asyncio.Queue[Optional[dict]] = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._failures = 0

    @property
    def node(self) -> str:
        return self._node

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def failures(self) -> int:
        """Number of writes that failed since start."""
        return self._failures

    def submit(self, fields: dict):
        """Queue an update; never blocks and never raises."""
        self._queue.put_nowait(dict(fields))
        logger.debug(f"Queued {self._node} <- {fields}")

    def start(self):
        """Start the writer task (needs a running loop)."""
        if self._task is None:
            self._task = asyncio.ensure_future(self._writer())

    async def close(self):
        """Send everything already queued, then stop the writer."""
        if self._task is None:
            return
        self._queue.put_nowait(None)
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _writer(self):
        while True:
            fields = await self._queue.get()
            if fields is None:
                break
            try:
                await self._client.update(self._node, fields)
            except RemoteChannelError as e:
                self._failures += 1
                logger.warning(f"Remote write {fields} failed: {e}")
            except Exception as e:
                self._failures += 1
                logger.error(f"Remote write {fields} failed unexpectedly: {e}", exc_info=True)
