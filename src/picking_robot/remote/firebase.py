"""
Firebase Realtime Database client over the REST API.

Handles:
- One-shot reads (GET <db>/<path>.json)
- Partial writes (PATCH <db>/<path>.json)
- Live subscriptions via the text/event-stream streaming API
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Optional

import aiohttp

from picking_robot.config import REMOTE_TIMEOUT
from picking_robot.errors import RemoteChannelError

logger = logging.getLogger(__name__)


def _split(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def _put(node: Any, parts: list[str], value: Any) -> Any:
    if not parts:
        return value
    node = dict(node) if isinstance(node, dict) else {}
    head, rest = parts[0], parts[1:]
    child = _put(node.get(head), rest, value)
    if child is None:
        node.pop(head, None)
    else:
        node[head] = child
    # The database never stores empty objects
    return node or None


def apply_event(snapshot: Any, path: str, data: Any, merge: bool = False) -> Any:
    """
    Apply one streaming event to a local copy of the node.

    Args:
        snapshot: Current local value of the subscribed node
        path: Event path relative to the subscribed node ("/" = node itself)
        data: Event payload
        merge: True for "patch" events (update children), False for "put"

    Returns:
        The new local value
    """
    parts = _split(path)
    if not merge:
        return _put(snapshot, parts, data)
    if not isinstance(data, dict):
        return snapshot
    for key, value in data.items():
        snapshot = _put(snapshot, parts + _split(key), value)
    return snapshot


class FirebaseClient:
    """
    Minimal async client for one Realtime Database instance.

    Usage:
        async with aiohttp.ClientSession() as session:
            client = FirebaseClient(session, "https://<db>.firebaseio.com")
            routes = await client.get("routes6")
            await client.update("Picking_Robot", {"Movements": "S"})
            async for value in client.listen("Picking_Robot/detection"):
                ...
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        database_url: str,
        auth_token: str = "",
        timeout: float = REMOTE_TIMEOUT,
    ):
        self._session = session
        self._base = database_url.rstrip("/")
        self._auth_token = auth_token
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        # Streams stay open indefinitely; only bound the connect phase
        self._stream_timeout = aiohttp.ClientTimeout(total=None, sock_connect=timeout)

    def url(self, path: str) -> str:
        return f"{self._base}/{'/'.join(_split(path))}.json"

    def _query(self) -> dict:
        return {"auth": self._auth_token} if self._auth_token else {}

    async def get(self, path: str) -> Any:
        """Read the value at path (None if absent)."""
        try:
            async with self._session.get(
                self.url(path), params=self._query(), timeout=self._timeout
            ) as resp:
                resp.raise_for_status()
                return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteChannelError(f"GET {path} failed: {e}") from e

    async def update(self, path: str, fields: dict) -> None:
        """Write only the given children of path."""
        try:
            async with self._session.patch(
                self.url(path), params=self._query(), json=fields, timeout=self._timeout
            ) as resp:
                resp.raise_for_status()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteChannelError(f"PATCH {path} failed: {e}") from e

    async def listen(self, path: str) -> AsyncIterator[Any]:
        """
        Yield the full value of path now and after every change.

        Ends by raising RemoteChannelError when the connection drops or
        the server cancels the subscription.
        """
        snapshot: Any = None
        event: Optional[str] = None
        data_lines: list[str] = []

        try:
            async with self._session.get(
                self.url(path),
                params=self._query(),
                headers={"Accept": "text/event-stream"},
                timeout=self._stream_timeout,
            ) as resp:
                resp.raise_for_status()
                logger.debug(f"Streaming {path}")

                async for raw in resp.content:
                    line = raw.decode("utf-8", errors="replace").rstrip("\r\n")

                    if line.startswith("event:"):
                        event = line[6:].strip()
                        continue
                    if line.startswith("data:"):
                        data_lines.append(line[5:].strip())
                        continue
                    if line or event is None:
                        continue

                    # Blank line terminates an event
                    name, payload = event, "\n".join(data_lines)
                    event, data_lines = None, []

                    if name in ("put", "patch"):
                        try:
                            message = json.loads(payload)
                        except json.JSONDecodeError:
                            message = None
                        if not isinstance(message, dict):
                            logger.warning(f"Unparseable {name} event on {path}: {payload!r}")
                            continue
                        snapshot = apply_event(
                            snapshot,
                            message.get("path", "/"),
                            message.get("data"),
                            merge=(name == "patch"),
                        )
                        yield snapshot
                    elif name in ("cancel", "auth_revoked"):
                        raise RemoteChannelError(f"Stream {path} ended by server: {name}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteChannelError(f"Stream {path} failed: {e}") from e

        raise RemoteChannelError(f"Stream {path} closed")
