"""Per-connection outbound delivery.

Events are never written to a socket from request handling. They are
queued on the connection's outbox and a dedicated writer task drains it,
so a dead peer shows up as a closed connection and a ``dropped`` count
instead of an exception in unrelated code.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Protocol

from pywms._constants import OUTBOX_MAXSIZE
from pywms.models.events import WmsEvent

_logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Structural interface the engine and registry deliver to.

    ``Connection`` is the production implementation; tests pass recording
    doubles.
    """

    peer: str
    adapter_id: str | None

    @property
    def is_open(self) -> bool: ...

    def send(self, event: WmsEvent) -> bool: ...


def encode_event(event: WmsEvent) -> bytes:
    """One compact JSON object followed by the frame terminator."""
    return (json.dumps(event.to_wire(), separators=(",", ":")) + "\n").encode("utf-8")


class Connection:
    """An adapter connection with a bounded send queue."""

    def __init__(self, writer: asyncio.StreamWriter, *, maxsize: int = OUTBOX_MAXSIZE) -> None:
        self._writer = writer
        self.peer = str(writer.get_extra_info("peername"))
        self.adapter_id: str | None = None
        self._outbox: asyncio.Queue[bytes | None] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.sent = 0
        self.dropped = 0
        self._writer_task = asyncio.get_running_loop().create_task(
            self._drain_outbox(),
            name=f"pywms-writer-{self.peer}",
        )

    def __repr__(self) -> str:
        return f"Connection(peer={self.peer!r}, adapter_id={self.adapter_id!r})"

    @property
    def is_open(self) -> bool:
        return not self._closed and not self._writer.is_closing()

    def send(self, event: WmsEvent) -> bool:
        """Queue *event* for delivery. Returns ``False`` if it was dropped."""
        if not self.is_open:
            self.dropped += 1
            _logger.debug("Dropping %s for closed connection %s", event.type, self.peer)
            return False
        try:
            self._outbox.put_nowait(encode_event(event))
        except asyncio.QueueFull:
            self.dropped += 1
            _logger.warning("Outbox full for %s, dropping %s", self.peer, event.type)
            return False
        return True

    async def _drain_outbox(self) -> None:
        while True:
            line = await self._outbox.get()
            if line is None:
                return
            try:
                self._writer.write(line)
                await self._writer.drain()
            except (ConnectionError, OSError) as exc:
                self._closed = True
                self.dropped += 1 + self._outbox.qsize()
                _logger.warning("Write to %s failed: %s", self.peer, exc)
                return
            self.sent += 1

    async def close(self) -> None:
        """Flush queued events, then close the transport."""
        self._closed = True
        try:
            self._outbox.put_nowait(None)
        except asyncio.QueueFull:
            self._writer_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._writer_task
        self._writer.close()
        with contextlib.suppress(ConnectionError, OSError):
            await self._writer.wait_closed()
