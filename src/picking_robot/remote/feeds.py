"""
Detection feed - raw obstacle signal from the remote store.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator

from picking_robot.errors import RemoteChannelError

logger = logging.getLogger(__name__)


class DetectionFeed:
    """
    Streams the raw detection field, re-opening the stream when it drops.

    Yields whatever is stored at the field (a number, {status: number},
    or anything else a writer put there). Interpretation is left to
    control.detection.parse_detection.
    """

    def __init__(self, client, path: str, retry_delay: float = 2.0):
        self._client = client
        self._path = path
        self._retry_delay = retry_delay

    @property
    def path(self) -> str:
        return self._path

    async def subscribe(self) -> AsyncIterator[Any]:
        while True:
            try:
                async for value in self._client.listen(self._path):
                    yield value
            except RemoteChannelError as e:
                logger.warning(f"Detection stream interrupted: {e}")
            await asyncio.sleep(self._retry_delay)
