from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pywms.models.events import ErrorEvent
from pywms.registry import AdapterRegistry

SinkFactory = Callable[..., Any]


def _event() -> ErrorEvent:
    return ErrorEvent(message="boom", package_id="pkg-1")


def test_register_with_explicit_id(make_sink: SinkFactory) -> None:
    registry = AdapterRegistry()
    sink = make_sink()

    record = registry.register(sink, "adapter-1", ["receive", "scan"])

    assert record.adapter_id == "adapter-1"
    assert record.capabilities == frozenset({"receive", "scan"})
    assert sink.adapter_id == "adapter-1"
    assert "adapter-1" in registry


def test_register_generates_id(make_sink: SinkFactory) -> None:
    registry = AdapterRegistry()
    sink = make_sink()

    record = registry.register(sink)

    assert record.adapter_id.startswith("adapter-")
    assert registry.adapter_ids() == [record.adapter_id]


def test_reregister_on_same_connection_replaces_identity(make_sink: SinkFactory) -> None:
    registry = AdapterRegistry()
    sink = make_sink()

    registry.register(sink, "a1")
    registry.register(sink, "a2")

    assert registry.adapter_ids() == ["a2"]
    assert sink.adapter_id == "a2"


def test_identity_moves_to_newer_connection(make_sink: SinkFactory) -> None:
    registry = AdapterRegistry()
    old, new = make_sink(), make_sink()
    registry.register(old, "a1")

    registry.register(new, "a1")
    registry.send("a1", _event())

    assert registry.get("a1").connection is new  # type: ignore[union-attr]
    assert old.adapter_id is None
    assert old.events == []
    assert new.types() == ["error"]


def test_unregister_only_removes_own_mapping(make_sink: SinkFactory) -> None:
    registry = AdapterRegistry()
    old, new = make_sink(), make_sink()
    registry.register(old, "a1")
    old_id = old.adapter_id
    registry.register(new, "a1")

    # The stale connection closing must not evict the live one.
    old.adapter_id = old_id
    assert registry.unregister(old) is None
    assert "a1" in registry

    assert registry.unregister(new) == "a1"
    assert len(registry) == 0


def test_send_to_unknown_adapter_is_noop() -> None:
    assert AdapterRegistry().send("ghost", _event()) is False


def test_broadcast_skips_closed_and_excluded(make_sink: SinkFactory) -> None:
    registry = AdapterRegistry()
    a, b, c = make_sink(), make_sink(), make_sink()
    registry.register(a, "a")
    registry.register(b, "b")
    registry.register(c, "c")
    c.open = False

    delivered = registry.broadcast(_event(), exclude=a)

    assert delivered == 1
    assert a.events == []
    assert b.types() == ["error"]
    assert c.events == []
