"""Event channels connecting the host to the external process.

Two implementations of :class:`EventChannel`:

* :class:`EventBus`: in-process pub/sub, used when the caller lives in the
  same interpreter (and in tests).
* :class:`StdioEventChannel`: newline-delimited JSON envelopes
  ``{"event": name, "data": payload}`` over a stream pair, used by
  ``toolrc serve`` so a separate backend process can drive the bridge.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import sys
from collections import defaultdict
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Awaitable[None] | None]

_STREAM_LIMIT = 16 * 1024 * 1024


@runtime_checkable
class EventChannel(Protocol):
    """Named-event channel with fire-and-forget emit semantics."""

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        """Subscribe *handler* to *event*; returns an unsubscribe callback."""
        ...

    async def emit(self, event: str, payload: Any) -> None:
        """Deliver *payload* to whoever listens for *event*."""
        ...


class EventBus:
    """In-process event channel.

    ``emit`` runs every handler registered for the event concurrently and
    waits for them.  Handler failures are logged, never raised to the emitter.
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[str, list[EventHandler]] = defaultdict(list)

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        self._handlers[event].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def listeners(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    async def emit(self, event: str, payload: Any) -> None:
        handlers = list(self._handlers.get(event, []))
        if not handlers:
            logger.debug("no listeners for %s", event)
            return
        await asyncio.gather(*(self._invoke(event, handler, payload) for handler in handlers))

    @staticmethod
    async def _invoke(event: str, handler: EventHandler, payload: Any) -> None:
        try:
            outcome = handler(payload)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("listener for %s failed", event)


class StdioEventChannel:
    """Event channel over a line-oriented stream pair.

    *reader* is an :class:`asyncio.StreamReader`; *writer* needs ``write()``
    and an awaitable ``drain()`` (an :class:`asyncio.StreamWriter`).
    Inbound events are only dispatched while :meth:`run` is running.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: Any) -> None:
        self._reader = reader
        self._writer = writer
        self._local = EventBus()
        self._write_lock = asyncio.Lock()

    @classmethod
    async def from_stdio(cls) -> StdioEventChannel:
        """Wrap the process's own stdin/stdout."""
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader(limit=_STREAM_LIMIT)
        await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
        transport, protocol = await loop.connect_write_pipe(asyncio.streams.FlowControlMixin, sys.stdout)
        writer = asyncio.StreamWriter(transport, protocol, None, loop)
        return cls(reader, writer)

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        return self._local.on(event, handler)

    async def emit(self, event: str, payload: Any) -> None:
        line = json.dumps({"event": event, "data": payload}) + "\n"
        async with self._write_lock:
            self._writer.write(line.encode())
            await self._writer.drain()

    async def run(self) -> None:
        """Dispatch inbound events until EOF, then wait for their handlers."""
        in_flight: set[asyncio.Task[None]] = set()
        while True:
            try:
                line = await self._reader.readline()
            except ValueError as exc:
                logger.warning("skipping oversized event line: %s", exc)
                continue
            if not line:
                break
            if not line.strip():
                continue
            try:
                envelope = json.loads(line)
                event = envelope["event"]
                payload = envelope.get("data")
            except (ValueError, KeyError, TypeError, AttributeError) as exc:
                logger.warning("skipping malformed event line: %s", exc)
                continue
            task = asyncio.create_task(self._local.emit(str(event), payload))
            in_flight.add(task)
            task.add_done_callback(in_flight.discard)
        if in_flight:
            await asyncio.gather(*in_flight)
        logger.debug("event stream closed")
