"""Tests for the in-process and stdio event channels."""

from __future__ import annotations

import asyncio
import json

from toolrc.bridge.channel import EventBus, EventChannel, StdioEventChannel


class _BufferWriter:
    def __init__(self) -> None:
        self.buffer = bytearray()

    def write(self, data: bytes) -> None:
        self.buffer.extend(data)

    async def drain(self) -> None:
        return None

    def lines(self) -> list[dict]:
        return [json.loads(line) for line in self.buffer.decode().splitlines()]


class TestEventBus:
    async def test_delivers_to_sync_and_async_handlers(self) -> None:
        bus = EventBus()
        seen: list[tuple[str, object]] = []

        async def async_handler(payload: object) -> None:
            seen.append(("async", payload))

        bus.on("ping", lambda payload: seen.append(("sync", payload)))
        bus.on("ping", async_handler)

        await bus.emit("ping", {"n": 1})

        assert sorted(seen) == [("async", {"n": 1}), ("sync", {"n": 1})]

    async def test_unsubscribe(self) -> None:
        bus = EventBus()
        seen: list[object] = []
        unsubscribe = bus.on("ping", seen.append)

        unsubscribe()
        unsubscribe()
        await bus.emit("ping", 1)

        assert seen == []
        assert bus.listeners("ping") == 0

    async def test_emit_without_listeners(self) -> None:
        await EventBus().emit("nobody", None)

    async def test_failing_handler_does_not_affect_others(self) -> None:
        bus = EventBus()
        seen: list[object] = []

        def boom(_: object) -> None:
            raise RuntimeError("listener broke")

        bus.on("ping", boom)
        bus.on("ping", seen.append)

        await bus.emit("ping", "x")

        assert seen == ["x"]

    def test_satisfies_protocol(self) -> None:
        assert isinstance(EventBus(), EventChannel)


class TestStdioEventChannel:
    async def test_emit_writes_json_line(self) -> None:
        writer = _BufferWriter()
        channel = StdioEventChannel(asyncio.StreamReader(), writer)

        await channel.emit("eval-tool-response", {"requestId": "r1", "success": True, "tool": 1})

        assert writer.lines() == [
            {"event": "eval-tool-response", "data": {"requestId": "r1", "success": True, "tool": 1}}
        ]

    async def test_run_dispatches_until_eof(self) -> None:
        reader = asyncio.StreamReader()
        channel = StdioEventChannel(reader, _BufferWriter())
        seen: list[object] = []
        channel.on("eval-tool-request", seen.append)

        reader.feed_data(b'{"event": "eval-tool-request", "data": {"requestId": "a"}}\n')
        reader.feed_data(b"\n")
        reader.feed_data(b"not json\n")
        reader.feed_data(b'{"data": "no event name"}\n')
        reader.feed_data(b'{"event": "other", "data": 1}\n')
        reader.feed_data(b'{"event": "eval-tool-request", "data": {"requestId": "b"}}\n')
        reader.feed_eof()

        await channel.run()

        assert seen == [{"requestId": "a"}, {"requestId": "b"}]

    async def test_oversized_line_is_skipped(self) -> None:
        reader = asyncio.StreamReader(limit=64)
        channel = StdioEventChannel(reader, _BufferWriter())
        seen: list[object] = []
        channel.on("eval-tool-request", seen.append)

        big = json.dumps({"event": "eval-tool-request", "data": {"requestId": "a", "code": "x" * 200}})
        reader.feed_data(big.encode() + b"\n")
        reader.feed_data(b'{"event": "eval-tool-request", "data": {"requestId": "b"}}\n')
        reader.feed_eof()

        await channel.run()

        assert seen == [{"requestId": "b"}]

    async def test_concurrent_emits_do_not_interleave(self) -> None:
        writer = _BufferWriter()
        channel = StdioEventChannel(asyncio.StreamReader(), writer)

        await asyncio.gather(*(channel.emit("e", {"i": i, "pad": "x" * 1000}) for i in range(10)))

        assert sorted(line["data"]["i"] for line in writer.lines()) == list(range(10))
