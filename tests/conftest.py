from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from pywms.config import WmsConfig
from pywms.models.events import WmsEvent


@dataclass
class RecordingSink:
    """In-memory stand-in for a TCP connection."""

    peer: str = "test:0"
    adapter_id: str | None = None
    open: bool = True
    events: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.open

    def send(self, event: WmsEvent) -> bool:
        if not self.open:
            return False
        self.events.append(event.to_wire())
        return True

    def types(self) -> list[str]:
        return [e["type"] for e in self.events]

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e["type"] == event_type]


@pytest.fixture
def make_sink() -> Callable[..., RecordingSink]:
    counter = iter(range(1, 10_000))

    def _make(**kwargs: Any) -> RecordingSink:
        kwargs.setdefault("peer", f"127.0.0.1:{50000 + next(counter)}")
        return RecordingSink(**kwargs)

    return _make


@pytest.fixture
def fast_config() -> WmsConfig:
    return WmsConfig(receive_delay=0.01, ready_delay=0.01, load_delay=0.01)
