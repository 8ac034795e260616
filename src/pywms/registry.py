"""Adapter registry.

Maps adapter identities to the connection that currently holds them.
Registration is last-writer-wins: a later ``register_adapter`` with the
same identity on another connection takes over the identity.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from pywms._ids import make_adapter_id
from pywms.connection import EventSink
from pywms.models.events import WmsEvent

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AdapterRecord:
    adapter_id: str
    connection: EventSink
    capabilities: frozenset[str] = frozenset()
    registered_at: float = field(default_factory=time.time)


class AdapterRegistry:
    """Live adapter identities and best-effort delivery to them."""

    def __init__(self) -> None:
        self._adapters: dict[str, AdapterRecord] = {}

    def __len__(self) -> int:
        return len(self._adapters)

    def __contains__(self, adapter_id: object) -> bool:
        return adapter_id in self._adapters

    def get(self, adapter_id: str) -> AdapterRecord | None:
        return self._adapters.get(adapter_id)

    def adapter_ids(self) -> list[str]:
        return list(self._adapters)

    def register(
        self,
        connection: EventSink,
        adapter_id: str | None = None,
        capabilities: list[str] | None = None,
    ) -> AdapterRecord:
        """Bind *adapter_id* (generated when absent) to *connection*."""
        resolved = adapter_id or make_adapter_id()

        # One identity per connection: drop whatever this connection held before.
        previous = connection.adapter_id
        if previous is not None and previous != resolved:
            current = self._adapters.get(previous)
            if current is not None and current.connection is connection:
                del self._adapters[previous]

        replaced = self._adapters.get(resolved)
        if replaced is not None and replaced.connection is not connection:
            _logger.info("Adapter %s moved from %s to %s", resolved, replaced.connection.peer, connection.peer)
            if replaced.connection.adapter_id == resolved:
                replaced.connection.adapter_id = None

        record = AdapterRecord(
            adapter_id=resolved,
            connection=connection,
            capabilities=frozenset(capabilities or ()),
        )
        self._adapters[resolved] = record
        connection.adapter_id = resolved
        _logger.info("Adapter registered: %s capabilities=%s", resolved, sorted(record.capabilities))
        return record

    def unregister(self, connection: EventSink) -> str | None:
        """Remove the identity held by *connection*, if it still holds one."""
        adapter_id = connection.adapter_id
        if adapter_id is None:
            return None
        record = self._adapters.get(adapter_id)
        if record is None or record.connection is not connection:
            return None
        del self._adapters[adapter_id]
        _logger.info("Adapter unregistered: %s", adapter_id)
        return adapter_id

    def send(self, adapter_id: str, event: WmsEvent) -> bool:
        """Deliver to one adapter; a no-op for unknown identities."""
        record = self._adapters.get(adapter_id)
        if record is None:
            _logger.debug("No adapter %s for %s", adapter_id, event.type)
            return False
        return record.connection.send(event)

    def broadcast(self, event: WmsEvent, *, exclude: EventSink | None = None) -> int:
        """Deliver to every registered adapter. Returns the number queued."""
        delivered = 0
        for record in list(self._adapters.values()):
            if record.connection is exclude:
                continue
            if record.connection.send(event):
                delivered += 1
        return delivered
