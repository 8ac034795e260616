"""Package entity tracked by the engine."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pywms.models._base import WmsTimestamp


class PackageStatus(enum.StrEnum):
    """Lifecycle status of a package.

    ``received -> ready_for_loading -> loaded`` is the nominal path,
    ``scanned`` is a checkpoint side-branch and ``error`` is terminal.
    """

    RECEIVED = "received"
    READY_FOR_LOADING = "ready_for_loading"
    SCANNED = "scanned"
    LOADED = "loaded"
    ERROR = "error"


class Package(BaseModel):
    """Authoritative, mutable state of one package.

    Only the state store mutates instances. The payload fields (``items``,
    ``pickup``, ``delivery``, ``contact``, ``meta``) are opaque and passed
    through untouched.
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    package_id: str
    order_id: str
    client_order_ref: str | None = None
    items: list[Any] = Field(default_factory=list)
    pickup: Any = None
    delivery: Any = None
    contact: Any = None
    status: PackageStatus = PackageStatus.RECEIVED
    assigned_vehicle: str | None = None
    timestamps: dict[PackageStatus, WmsTimestamp] = Field(default_factory=dict)
    meta: dict[str, Any] = Field(default_factory=dict)
    generation: int = 0
    """Bumped by manual overrides; timers scheduled under an older value are stale."""

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready copy for the admin surface."""
        return self.model_dump(mode="json", by_alias=True)
