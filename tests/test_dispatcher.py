"""Unit tests for the command dispatcher."""

from __future__ import annotations

import re

from conftest import BrokenSerial, RecordingRemote, RecordingSerial
from picking_robot.control import CommandDispatcher
from picking_robot.control.dispatcher import timestamp
from picking_robot.routes import ActionMove, MovementMove


def _dispatcher(serial=None) -> tuple[CommandDispatcher, RecordingRemote]:
    remote = RecordingRemote()
    return CommandDispatcher(remote, serial), remote


def test_movement_codes_and_duration() -> None:
    serial = RecordingSerial()
    dispatcher, remote = _dispatcher(serial)

    for direction in ("forward", "backward", "left", "right"):
        dispatcher.activate(MovementMove(direction, 4), 2)

    assert [w["Movements"] for w in remote.writes] == ["F", "B", "L", "R"]
    assert all(w["duration"] == 2 for w in remote.writes)
    assert serial.sent == ["F", "B", "L", "R"]


def test_action_sends_stop_then_marker() -> None:
    serial = RecordingSerial()
    dispatcher, remote = _dispatcher(serial)

    dispatcher.activate(ActionMove("pick"), 10)
    dispatcher.activate(ActionMove("place"), 10)

    assert remote.stripped() == [
        {"Movements": "S", "picking": "P1"},
        {"Movements": "S", "picking": "P0"},
    ]
    assert serial.sent == ["S", "P1", "S", "P0"]


def test_finish_action_clears_marker_on_remote_only() -> None:
    serial = RecordingSerial()
    dispatcher, remote = _dispatcher(serial)

    dispatcher.finish_action()

    assert remote.stripped() == [{"picking": "0"}]
    assert serial.sent == []


def test_stop_with_and_without_clearing() -> None:
    serial = RecordingSerial()
    dispatcher, remote = _dispatcher(serial)

    dispatcher.stop()
    dispatcher.stop(clear=True)

    assert remote.stripped() == [
        {"Movements": "S"},
        {"Movements": "S", "duration": 0, "picking": "0"},
    ]
    assert serial.sent == ["S", "S"]


def test_serial_failure_is_contained() -> None:
    serial = BrokenSerial()
    dispatcher, remote = _dispatcher(serial)

    dispatcher.activate(ActionMove("pick"), 10)
    dispatcher.stop()

    # Both action legs are still attempted
    assert serial.attempts == 3
    assert len(remote.writes) == 2


def test_without_serial_link() -> None:
    dispatcher, remote = _dispatcher(None)
    dispatcher.activate(MovementMove("left", 1), 1)
    assert remote.stripped() == [{"Movements": "L", "duration": 1}]


def test_every_write_carries_fresh_timestamp() -> None:
    dispatcher, remote = _dispatcher()
    dispatcher.activate(MovementMove("forward", 1), 1)
    dispatcher.finish_action()
    dispatcher.stop()

    for write in remote.writes:
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", write["timestamp"])


def test_timestamp_format() -> None:
    assert timestamp().endswith("Z")
