"""Tests for route parsing and the route catalog."""

from __future__ import annotations

import asyncio

import pytest

from picking_robot.errors import RemoteChannelError, RouteFormatError
from picking_robot.routes import ActionMove, MovementMove, RouteCatalog, parse_move, parse_route


def test_parse_movement_record() -> None:
    move = parse_move({"direction": "Forward", "duration": 3})
    assert move == MovementMove("forward", 3)
    assert move.code == "F"


def test_parse_action_record_defaults_duration() -> None:
    assert parse_move({"type": "action", "action": "pick"}) == ActionMove("pick", 10)
    assert parse_move({"type": "action", "action": "place", "duration": 4}).code == "P0"


@pytest.mark.parametrize(
    "record",
    [
        {"direction": "up", "duration": 1},
        {"direction": "left"},
        {"direction": "left", "duration": -2},
        {"direction": "left", "duration": "soon"},
        {"type": "action", "action": "throw", "duration": 1},
        "forward",
    ],
)
def test_parse_rejects_bad_records(record) -> None:
    with pytest.raises(RouteFormatError):
        parse_move(record)


def test_moves_follow_move_id_order() -> None:
    route = parse_route(
        "r1",
        {
            "name": "Dock run",
            "moves": {
                "-Nb": {"type": "action", "action": "pick", "duration": 10},
                "-Na": {"direction": "forward", "duration": 3},
                "-Nc": {"direction": "backward", "duration": 3},
            },
        },
    )
    assert route.name == "Dock run"
    assert [m.label for m in route.moves] == ["forward", "pick", "backward"]


def test_numeric_move_ids_sort_numerically() -> None:
    route = parse_route(
        "r1",
        {"moves": {"10": {"direction": "left", "duration": 1}, "2": {"direction": "right", "duration": 1}}},
    )
    assert [m.label for m in route.moves] == ["right", "left"]
    assert route.name == "r1"


def test_array_moves_skip_holes() -> None:
    route = parse_route(
        "r1",
        {"name": "x", "moves": [None, {"direction": "left", "duration": 1}, {"direction": "right", "duration": 2}]},
    )
    assert route.moves == (MovementMove("left", 1), MovementMove("right", 2))


def test_bad_moves_are_skipped() -> None:
    route = parse_route(
        "r1",
        {"name": "x", "moves": {"a": {"direction": "sideways", "duration": 1}, "b": {"direction": "left", "duration": 1}}},
    )
    assert route.moves == (MovementMove("left", 1),)


def test_route_without_moves_is_not_playable() -> None:
    route = parse_route("r1", {"name": "Fresh"})
    assert not route.is_playable
    assert len(route) == 0


def test_catalog_load_and_lookup() -> None:
    catalog = RouteCatalog()
    catalog.load({
        "r1": {"name": "One", "moves": {"a": {"direction": "forward", "duration": 1}}},
        "r2": "not a route",
    })

    assert len(catalog) == 1
    assert catalog.get("r1").name == "One"
    assert catalog.get("r2") is None
    assert [r.id for r in catalog.routes()] == ["r1"]


def test_catalog_load_empty_store() -> None:
    catalog = RouteCatalog()
    catalog.load({"r1": {"name": "One"}})
    catalog.load(None)
    assert catalog.routes() == []


class _Client:
    def __init__(self, snapshots) -> None:
        self.snapshots = snapshots
        self.paths: list[str] = []

    async def get(self, path: str):
        self.paths.append(path)
        return self.snapshots[0]

    async def listen(self, path: str):
        self.paths.append(path)
        for snapshot in self.snapshots:
            yield snapshot
        raise RemoteChannelError("closed")


def test_catalog_refresh_reads_configured_path() -> None:
    client = _Client([{"r1": {"name": "One", "moves": [{"direction": "left", "duration": 2}]}}])
    catalog = RouteCatalog(client, "routes6")

    asyncio.run(catalog.refresh())

    assert client.paths == ["routes6"]
    assert catalog.get("r1").moves == (MovementMove("left", 2),)


def test_catalog_watch_reloads_on_change() -> None:
    client = _Client([
        {"r1": {"name": "One"}},
        {"r1": {"name": "One"}, "r2": {"name": "Two"}},
    ])
    catalog = RouteCatalog(client, "routes6", retry_delay=60)

    async def scenario() -> None:
        task = asyncio.ensure_future(catalog.watch())
        for _ in range(5):
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert sorted(r.id for r in catalog.routes()) == ["r1", "r2"]
