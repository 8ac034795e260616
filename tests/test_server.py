"""End-to-end tests over a real TCP socket."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any

import pytest
import pytest_asyncio

from pywms.config import WmsConfig
from pywms.engine import WmsEngine
from pywms.server import WmsServer

_TIMEOUT = 2.0


class _Client:
    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.reader = reader
        self.writer = writer

    async def send(self, message: dict[str, Any] | str) -> None:
        line = message if isinstance(message, str) else json.dumps(message)
        self.writer.write((line + "\n").encode())
        await self.writer.drain()

    async def recv(self) -> dict[str, Any]:
        line = await asyncio.wait_for(self.reader.readline(), _TIMEOUT)
        assert line, "connection closed"
        return json.loads(line)

    async def close(self) -> None:
        self.writer.close()
        await self.writer.wait_closed()


@pytest_asyncio.fixture
async def server(fast_config: WmsConfig) -> AsyncIterator[WmsServer]:
    engine = WmsEngine(fast_config)
    async with WmsServer(engine, host="127.0.0.1", port=0) as srv:
        yield srv


async def _connect(server: WmsServer) -> _Client:
    reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
    return _Client(reader, writer)


async def _wait_for(predicate: Any) -> None:
    for _ in range(200):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not met")


@pytest.mark.asyncio
async def test_lifecycle_over_tcp(server: WmsServer) -> None:
    client = await _connect(server)

    await client.send({"type": "register_adapter", "adapterId": "shop-1"})
    assert (await client.recv())["type"] == "register_ack"

    await client.send({"type": "receive_package", "orderId": "o1"})
    ack = await client.recv()
    assert ack["type"] == "ack"
    assert (await client.recv())["type"] == "package_received"
    assert (await client.recv())["type"] == "package_ready"

    await client.send({"type": "load_package", "packageId": ack["packageId"], "vehicleId": "v9"})
    loaded = await client.recv()
    assert loaded["type"] == "package_loaded"
    assert loaded["vehicleId"] == "v9"
    await client.close()


@pytest.mark.asyncio
async def test_malformed_lines_keep_connection_open(server: WmsServer) -> None:
    client = await _connect(server)

    await client.send("this is not json")
    assert await client.recv() == {"type": "error", "message": "invalid_json", "code": "decode_error"}

    await client.send("[1, 2, 3]")
    assert (await client.recv())["message"] == "invalid_json"

    await client.send({"type": "register_adapter"})
    assert (await client.recv())["type"] == "register_ack"
    await client.close()


@pytest.mark.asyncio
async def test_deeply_nested_line_keeps_connection_open(server: WmsServer) -> None:
    client = await _connect(server)

    await client.send("[" * 20000)
    error = await client.recv()
    assert error["message"] == "invalid_json"
    assert error["code"] == "decode_error"

    await client.send({"type": "register_adapter", "adapterId": "a1"})
    assert (await client.recv())["type"] == "register_ack"
    await client.close()


@pytest.mark.asyncio
async def test_frames_split_across_writes(server: WmsServer) -> None:
    client = await _connect(server)
    payload = json.dumps({"type": "register_adapter", "adapterId": "split"}).encode() + b"\n"

    for part in (payload[:5], payload[5:17], payload[17:]):
        client.writer.write(part)
        await client.writer.drain()
        await asyncio.sleep(0.01)

    assert (await client.recv())["adapterId"] == "split"
    await client.close()


@pytest.mark.asyncio
async def test_oversized_frame_is_discarded() -> None:
    engine = WmsEngine(WmsConfig(max_frame_bytes=64))
    async with WmsServer(engine, host="127.0.0.1", port=0) as srv:
        client = await _connect(srv)

        client.writer.write(b"x" * 200)
        await client.writer.drain()
        error = await client.recv()
        assert error["message"] == "frame_too_large"
        assert error["details"]["limit"] == 64

        # Tail of the oversized line is dropped, not parsed as a frame.
        await client.send(json.dumps({"type": "register_adapter", "adapterId": "tail"}))
        await client.send({"type": "register_adapter", "adapterId": "after"})
        assert (await client.recv())["adapterId"] == "after"
        assert "tail" not in srv.engine.registry
        await client.close()


@pytest.mark.asyncio
async def test_disconnect_unregisters_adapter(server: WmsServer) -> None:
    engine = server.engine
    client = await _connect(server)
    await client.send({"type": "register_adapter", "adapterId": "gone"})
    await client.recv()
    assert "gone" in engine.registry

    await client.close()

    await _wait_for(lambda: "gone" not in engine.registry)
    await _wait_for(lambda: not server.connections)


@pytest.mark.asyncio
async def test_second_registration_takes_over_identity(server: WmsServer) -> None:
    engine = server.engine
    first = await _connect(server)
    second = await _connect(server)

    await first.send({"type": "register_adapter", "adapterId": "dup"})
    await first.recv()
    await second.send({"type": "register_adapter", "adapterId": "dup"})
    await second.recv()

    await first.send({"type": "receive_package", "orderId": "o1"})
    package_id = (await first.recv())["packageId"]
    engine.advance_package(package_id, "loaded")

    assert (await second.recv())["type"] == "package_loaded"
    await first.close()
    await _wait_for(lambda: len(server.connections) == 1)
    record = engine.registry.get("dup")
    assert record is not None
    assert record.connection.is_open
    await second.close()


@pytest.mark.asyncio
async def test_reregister_on_same_connection(server: WmsServer) -> None:
    engine = server.engine
    client = await _connect(server)

    await client.send({"type": "register_adapter", "adapterId": "one"})
    await client.recv()
    await client.send({"type": "register_adapter", "adapterId": "two"})
    await client.recv()

    assert engine.registry.adapter_ids() == ["two"]
    await client.close()


@pytest.mark.asyncio
async def test_close_cancels_pending_timers() -> None:
    engine = WmsEngine(WmsConfig(receive_delay=5.0))
    async with WmsServer(engine, host="127.0.0.1", port=0) as srv:
        client = await _connect(srv)
        await client.send({"type": "receive_package", "orderId": "o1"})
        await client.recv()
        assert engine.scheduler.pending == 1
        await client.close()

    assert engine.scheduler.pending == 0
    assert len(engine.store) == 1
