"""Asyncio TCP server speaking the JSON-lines adapter protocol."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pywms._constants import READ_CHUNK_SIZE
from pywms._framing import LineFramer
from pywms.connection import Connection
from pywms.engine import WmsEngine
from pywms.exceptions import WmsDecodeError, WmsError
from pywms.models.events import ErrorEvent

_logger = logging.getLogger(__name__)


class WmsServer:
    """Accepts adapter connections and feeds their frames to an engine.

    Usage::

        async with WmsServer(engine) as server:
            await server.serve_forever()
    """

    def __init__(self, engine: WmsEngine, *, host: str | None = None, port: int | None = None) -> None:
        self._engine = engine
        self._host = host if host is not None else engine.config.host
        self._port = port if port is not None else engine.config.tcp_port
        self._server: asyncio.Server | None = None
        self._connections: set[Connection] = set()
        self._client_tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> WmsServer:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        if self._server is not None:
            return
        self._server = await asyncio.start_server(self._handle_client, self._host, self._port)
        _logger.info("TCP server listening on %s:%s (JSON lines)", self._host, self.port)

    async def serve_forever(self) -> None:
        server = self._require_server()
        await server.serve_forever()

    async def close(self) -> None:
        """Stop accepting, close live connections and cancel pending timers."""
        server = self._server
        self._server = None
        if server is not None:
            server.close()
        for task in list(self._client_tasks):
            task.cancel()
        if self._client_tasks:
            await asyncio.gather(*list(self._client_tasks), return_exceptions=True)
        if server is not None:
            # Returns only once every client transport is closed.
            await server.wait_closed()
        await self._engine.aclose()
        _logger.info("TCP server stopped")

    @property
    def port(self) -> int:
        """Bound port (resolves ``0`` to the port the OS picked)."""
        server = self._require_server()
        return int(server.sockets[0].getsockname()[1])

    @property
    def engine(self) -> WmsEngine:
        return self._engine

    @property
    def connections(self) -> frozenset[Connection]:
        return frozenset(self._connections)

    def _require_server(self) -> asyncio.Server:
        if self._server is None:
            raise WmsError("Server not started. Use 'async with WmsServer(...) as server:'")
        return self._server

    # ------------------------------------------------------------------
    # Per-connection loop
    # ------------------------------------------------------------------

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._client_tasks.add(task)
        connection = Connection(writer)
        self._connections.add(connection)
        framer = LineFramer(max_frame_bytes=self._engine.config.max_frame_bytes)
        _logger.info("New connection from %s", connection.peer)

        try:
            while True:
                data = await reader.read(READ_CHUNK_SIZE)
                if not data:
                    break
                try:
                    for line in framer.feed(data):
                        self._engine.handle_line(connection, line)
                except WmsDecodeError as exc:
                    _logger.warning("Discarding oversized frame from %s: %s", connection.peer, exc.details)
                    connection.send(ErrorEvent.from_exception(exc))
        except (ConnectionError, OSError) as exc:
            _logger.warning("Socket error from %s: %s", connection.peer, exc)
        finally:
            _logger.info(
                "Connection closed: %s (adapter %s)",
                connection.peer,
                connection.adapter_id or "unknown",
            )
            self._engine.connection_lost(connection)
            self._connections.discard(connection)
            await connection.close()
            if task is not None:
                self._client_tasks.discard(task)
