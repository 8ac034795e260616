"""Wire and entity models for pywms."""

from pywms.models._base import WmsBaseModel, WmsTimestamp, format_timestamp, utcnow
from pywms.models.commands import (
    COMMAND_MODELS,
    CommandType,
    LoadPackage,
    ReceivePackage,
    RegisterAdapter,
    ScanPackage,
    SimulateError,
    WmsCommand,
)
from pywms.models.events import (
    Ack,
    ErrorEvent,
    PackageLoaded,
    PackageReady,
    PackageReceived,
    PackageScanned,
    RegisterAck,
    WmsEvent,
    status_event,
)
from pywms.models.package import Package, PackageStatus

__all__ = [
    "Ack",
    "COMMAND_MODELS",
    "CommandType",
    "ErrorEvent",
    "LoadPackage",
    "Package",
    "PackageLoaded",
    "PackageReady",
    "PackageReceived",
    "PackageScanned",
    "PackageStatus",
    "ReceivePackage",
    "RegisterAck",
    "RegisterAdapter",
    "ScanPackage",
    "SimulateError",
    "WmsBaseModel",
    "WmsCommand",
    "WmsEvent",
    "WmsTimestamp",
    "format_timestamp",
    "status_event",
    "utcnow",
]
