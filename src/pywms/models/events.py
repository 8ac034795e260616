"""Outbound events sent to adapters.

Every event carries a ``type`` discriminator and is rendered with
:meth:`~pywms.models._base.WmsBaseModel.to_wire`.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from pywms.exceptions import WmsError
from pywms.models._base import WmsBaseModel, WmsTimestamp, utcnow
from pywms.models.package import Package, PackageStatus


class WmsEvent(WmsBaseModel):
    """Base for outbound events."""

    type: str


class RegisterAck(WmsEvent):
    type: Literal["register_ack"] = "register_ack"
    adapter_id: str
    status: str = "ok"
    timestamp: WmsTimestamp = Field(default_factory=utcnow)


class Ack(WmsEvent):
    type: Literal["ack"] = "ack"
    message_id: str
    status: PackageStatus
    package_id: str
    order_id: str


class PackageReceived(WmsEvent):
    type: Literal["package_received"] = "package_received"
    package_id: str
    order_id: str
    status: PackageStatus = PackageStatus.RECEIVED
    timestamp: WmsTimestamp


class PackageReady(WmsEvent):
    type: Literal["package_ready"] = "package_ready"
    package_id: str
    order_id: str
    status: PackageStatus = PackageStatus.READY_FOR_LOADING
    timestamp: WmsTimestamp


class PackageScanned(WmsEvent):
    type: Literal["package_scanned"] = "package_scanned"
    package_id: str
    order_id: str
    scan_point: str
    timestamp: WmsTimestamp


class PackageLoaded(WmsEvent):
    type: Literal["package_loaded"] = "package_loaded"
    package_id: str
    order_id: str
    vehicle_id: str
    status: PackageStatus = PackageStatus.LOADED
    timestamp: WmsTimestamp


class ErrorEvent(WmsEvent):
    type: Literal["error"] = "error"
    message: str
    code: str | None = None
    package_id: str | None = None
    order_id: str | None = None
    details: dict[str, Any] | None = None

    @classmethod
    def from_exception(cls, exc: WmsError) -> ErrorEvent:
        return cls(
            message=exc.message,
            code=exc.code,
            package_id=exc.package_id,
            order_id=exc.order_id,
            details=exc.details,
        )


def status_event(package: Package, status: PackageStatus) -> WmsEvent:
    """Event announcing that *package* entered *status*.

    Used when a status is forced from outside the normal command flow,
    e.g. by the admin surface.
    """
    timestamp = package.timestamps.get(status) or utcnow()
    if status == PackageStatus.RECEIVED:
        return PackageReceived(package_id=package.package_id, order_id=package.order_id, timestamp=timestamp)
    if status == PackageStatus.READY_FOR_LOADING:
        return PackageReady(package_id=package.package_id, order_id=package.order_id, timestamp=timestamp)
    if status == PackageStatus.SCANNED:
        return PackageScanned(
            package_id=package.package_id,
            order_id=package.order_id,
            scan_point="admin",
            timestamp=timestamp,
        )
    if status == PackageStatus.LOADED:
        return PackageLoaded(
            package_id=package.package_id,
            order_id=package.order_id,
            vehicle_id=package.assigned_vehicle or "unassigned",
            timestamp=timestamp,
        )
    return ErrorEvent(
        message="forced_error",
        code="injected_failure",
        package_id=package.package_id,
        order_id=package.order_id,
    )
