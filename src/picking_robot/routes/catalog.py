"""
Route catalog - cached routes from the remote store.

The engine needs a synchronous lookup when play is requested, so the
catalog keeps the latest parsed snapshot in memory and refreshes it
either once (refresh) or continuously (watch).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from picking_robot.errors import RemoteChannelError, RouteFormatError
from picking_robot.routes.models import Move, Route, ordered_records, parse_move

logger = logging.getLogger(__name__)


def parse_route(route_id: str, data: Any) -> Route:
    """
    Build a Route from its stored record.

    Unparseable moves are skipped with a warning, so a route made only
    of bad records comes back empty (and is rejected at play time).
    """
    if not isinstance(data, dict):
        raise RouteFormatError(f"route {route_id} is not an object")

    moves: list[Move] = []
    for move_id, record in ordered_records(data.get("moves")):
        try:
            moves.append(parse_move(record))
        except RouteFormatError as e:
            logger.warning(f"Route {route_id}: skipping move {move_id}: {e}")

    name = data.get("name") or route_id
    return Route(id=route_id, name=str(name), moves=tuple(moves))


class RouteCatalog:
    """
    In-memory route cache.

    Usage:
        catalog = RouteCatalog(client, "routes6")
        await catalog.refresh()
        route = catalog.get("-NxAbc123")
    """

    def __init__(self, client=None, path: str = "routes6", retry_delay: float = 2.0):
        self._client = client
        self._path = path
        self._retry_delay = retry_delay
        self._routes: dict[str, Route] = {}

    def __len__(self) -> int:
        return len(self._routes)

    def get(self, route_id: str) -> Optional[Route]:
        return self._routes.get(route_id)

    def routes(self) -> list[Route]:
        return list(self._routes.values())

    def load(self, snapshot: Any):
        """Replace the cache with routes parsed from a store snapshot."""
        routes: dict[str, Route] = {}
        if isinstance(snapshot, dict):
            for route_id, data in snapshot.items():
                try:
                    routes[route_id] = parse_route(route_id, data)
                except RouteFormatError as e:
                    logger.warning(f"Skipping route: {e}")
        elif snapshot is not None:
            logger.warning(f"Unexpected routes snapshot: {type(snapshot).__name__}")
        self._routes = routes
        logger.debug(f"Route catalog holds {len(routes)} routes")

    async def refresh(self):
        """Fetch the catalogue once."""
        snapshot = await self._client.get(self._path)
        self.load(snapshot)
        logger.info(f"Loaded {len(self._routes)} routes from {self._path}")

    async def watch(self):
        """Follow the catalogue until cancelled, reloading on every change."""
        while True:
            try:
                async for snapshot in self._client.listen(self._path):
                    self.load(snapshot)
            except RemoteChannelError as e:
                logger.warning(f"Route stream interrupted: {e}")
            await asyncio.sleep(self._retry_delay)
