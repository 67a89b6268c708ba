from __future__ import annotations

import pytest

from picking_robot.control import CommandDispatcher, ExecutionEngine, MoveTimer
from picking_robot.errors import SerialChannelError
from picking_robot.routes import ActionMove, MovementMove, Route, RouteCatalog


class FakeHandle:
    def __init__(self, when: float, seq: int, callback, args) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def run(self) -> None:
        self.callback(*self.args)


class FakeClock:
    """Deterministic stand-in for loop.call_later; ties fire in scheduling order."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self.handles: list[FakeHandle] = []

    def call_later(self, delay: float, callback, *args) -> FakeHandle:
        handle = FakeHandle(self.now + delay, self._seq, callback, args)
        self._seq += 1
        self.handles.append(handle)
        return handle

    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.handles if not h.cancelled and h.when <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self.handles.remove(handle)
            self.now = max(self.now, handle.when)
            handle.run()
        self.now = target


class RecordingRemote:
    def __init__(self) -> None:
        self.writes: list[dict] = []

    def submit(self, fields: dict) -> None:
        self.writes.append(dict(fields))

    def stripped(self) -> list[dict]:
        """Writes without their timestamps."""
        return [{k: v for k, v in w.items() if k != "timestamp"} for w in self.writes]


class RecordingSerial:
    def __init__(self) -> None:
        self.sent: list[str] = []

    def send(self, command: str) -> None:
        self.sent.append(command)


class BrokenSerial:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error or RuntimeError("device unplugged")
        self.attempts = 0

    def send(self, command: str) -> None:
        self.attempts += 1
        raise self.error


class DisconnectedSerial(BrokenSerial):
    def __init__(self) -> None:
        super().__init__(SerialChannelError("Not connected"))


def make_route(route_id: str = "r1", *moves, name: str = "Test route") -> Route:
    return Route(id=route_id, name=name, moves=tuple(moves))


def make_catalog(*routes: Route) -> RouteCatalog:
    catalog = RouteCatalog()
    catalog._routes = {route.id: route for route in routes}
    return catalog


class Harness:
    def __init__(self, *routes: Route, serial=None) -> None:
        self.clock = FakeClock()
        self.remote = RecordingRemote()
        self.serial = serial if serial is not None else RecordingSerial()
        self.dispatcher = CommandDispatcher(self.remote, self.serial)
        self.timer = MoveTimer(tick_interval=1.0, call_later=self.clock.call_later)
        self.catalog = make_catalog(*routes)
        self.engine = ExecutionEngine(self.dispatcher, self.catalog, self.timer)
        self.snapshots: list = []
        self.engine.add_listener(self.snapshots.append)


@pytest.fixture
def forward_pick_route() -> Route:
    return make_route(
        "r1",
        MovementMove("forward", 3),
        ActionMove("pick", 10),
        name="Warehouse loop",
    )


@pytest.fixture
def harness(forward_pick_route: Route) -> Harness:
    return Harness(
        forward_pick_route,
        make_route("empty", name="Empty"),
        make_route("long", MovementMove("forward", 10), MovementMove("left", 4)),
    )
