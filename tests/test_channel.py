"""Tests for the ordered remote write queue and the detection feed."""

from __future__ import annotations

import asyncio

from picking_robot.errors import RemoteChannelError
from picking_robot.remote import DetectionFeed, RemoteChannel


class SlowClient:
    """Records updates; the first one is slow, some may fail."""

    def __init__(self, fail_on: tuple = ()) -> None:
        self.updates: list[tuple[str, dict]] = []
        self.fail_on = fail_on

    async def update(self, path: str, fields: dict) -> None:
        if not self.updates:
            await asyncio.sleep(0.01)
        self.updates.append((path, fields))
        if fields.get("Movements") in self.fail_on:
            raise RemoteChannelError("permission denied")


def test_writes_arrive_in_submission_order() -> None:
    client = SlowClient()

    async def scenario() -> None:
        channel = RemoteChannel(client, "Picking_Robot")
        channel.start()
        for code in ("F", "S", "L", "S"):
            channel.submit({"Movements": code})
        assert channel.pending == 4
        await channel.close()

    asyncio.run(scenario())
    assert [f["Movements"] for _, f in client.updates] == ["F", "S", "L", "S"]
    assert {node for node, _ in client.updates} == {"Picking_Robot"}


def test_failed_write_does_not_stop_the_queue() -> None:
    client = SlowClient(fail_on=("S",))
    channel_ref: list[RemoteChannel] = []

    async def scenario() -> None:
        channel = RemoteChannel(client, "Picking_Robot")
        channel_ref.append(channel)
        channel.start()
        channel.submit({"Movements": "S"})
        channel.submit({"Movements": "F"})
        await channel.close()

    asyncio.run(scenario())
    assert [f["Movements"] for _, f in client.updates] == ["S", "F"]
    assert channel_ref[0].failures == 1


def test_submit_copies_fields() -> None:
    client = SlowClient()

    async def scenario() -> None:
        channel = RemoteChannel(client, "Picking_Robot")
        channel.start()
        fields = {"Movements": "F"}
        channel.submit(fields)
        fields["Movements"] = "B"
        await channel.close()

    asyncio.run(scenario())
    assert client.updates == [("Picking_Robot", {"Movements": "F"})]


def test_close_without_start_is_a_no_op() -> None:
    asyncio.run(RemoteChannel(SlowClient(), "Picking_Robot").close())


class FlakyClient:
    """Each listen() yields one batch, then drops the stream."""

    def __init__(self, batches: list[list]) -> None:
        self.batches = batches
        self.paths: list[str] = []

    async def listen(self, path: str):
        self.paths.append(path)
        batch = self.batches.pop(0) if self.batches else []
        for value in batch:
            yield value
        raise RemoteChannelError("Stream closed")


def test_detection_feed_reconnects_after_drop() -> None:
    client = FlakyClient([[{"status": 0}, {"status": 1}], [0]])
    feed = DetectionFeed(client, "Picking_Robot/detection", retry_delay=0)
    received: list = []

    async def scenario() -> None:
        async for value in feed.subscribe():
            received.append(value)
            if len(received) == 3:
                break

    asyncio.run(scenario())
    assert received == [{"status": 0}, {"status": 1}, 0]
    assert client.paths == ["Picking_Robot/detection"] * 2
    assert feed.path == "Picking_Robot/detection"


class ClosedSessionClient:
    """Fails with a non-remote error first, then recovers."""

    def __init__(self) -> None:
        self.updates: list[dict] = []

    async def update(self, path: str, fields: dict) -> None:
        if not self.updates and fields.get("Movements") == "F":
            self.updates.append({})
            raise RuntimeError("Session is closed")
        self.updates.append(fields)


def test_unexpected_write_error_keeps_writer_alive() -> None:
    client = ClosedSessionClient()
    channel_ref: list[RemoteChannel] = []

    async def scenario() -> None:
        channel = RemoteChannel(client, "Picking_Robot")
        channel_ref.append(channel)
        channel.start()
        channel.submit({"Movements": "F"})
        channel.submit({"Movements": "S"})
        await channel.close()

    asyncio.run(scenario())
    assert client.updates[1:] == [{"Movements": "S"}]
    assert channel_ref[0].failures == 1
