"""Tests for wire model parsing and rendering with WmsBaseModel."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from pywms.exceptions import WmsUnknownTypeError, WmsValidationError
from pywms.models._base import format_timestamp
from pywms.models.commands import LoadPackage, ReceivePackage, RegisterAdapter, ScanPackage
from pywms.models.events import Ack, ErrorEvent, PackageLoaded, PackageScanned, status_event
from pywms.models.package import Package, PackageStatus

# ------------------------------------------------------------------
# Timestamps
# ------------------------------------------------------------------


class TestTimestamps:
    def test_millisecond_precision_with_z(self) -> None:
        value = datetime(2026, 1, 1, 12, 0, 0, 123456, tzinfo=UTC)
        assert format_timestamp(value) == "2026-01-01T12:00:00.123Z"

    def test_other_offsets_converted_to_utc(self) -> None:
        value = datetime(2026, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(value) == "2026-01-01T12:00:00.000Z"

    def test_event_renders_timestamp_string(self) -> None:
        event = PackageLoaded(
            package_id="pkg-1",
            order_id="o1",
            vehicle_id="v9",
            timestamp=datetime(2026, 3, 4, 5, 6, 7, tzinfo=UTC),
        )
        assert event.to_wire() == {
            "type": "package_loaded",
            "packageId": "pkg-1",
            "orderId": "o1",
            "vehicleId": "v9",
            "status": "loaded",
            "timestamp": "2026-03-04T05:06:07.000Z",
        }


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


class TestCommands:
    def test_camel_case_fields(self) -> None:
        command = ReceivePackage.parse(
            {
                "type": "receive_package",
                "orderId": "o1",
                "clientOrderRef": "ref-1",
                "items": [{"sku": "A", "qty": 2}],
                "callbackMeta": {"hook": "x"},
                "unexpected": True,
            }
        )
        assert isinstance(command, ReceivePackage)
        assert command.order_id == "o1"
        assert command.client_order_ref == "ref-1"
        assert command.items == [{"sku": "A", "qty": 2}]
        assert command.callback_meta == {"hook": "x"}
        assert command.raw["unexpected"] is True

    def test_numeric_identifiers_coerced(self) -> None:
        command = LoadPackage.parse({"type": "load_package", "packageId": 42, "vehicleId": 7})
        assert isinstance(command, LoadPackage)
        assert command.package_id == "42"
        assert command.vehicle_id == "7"

    @pytest.mark.parametrize("order_id", [None, "", "   "])
    def test_blank_required_field_is_missing(self, order_id: str | None) -> None:
        message = {"type": "receive_package", "clientOrderRef": "ref-1"}
        if order_id is not None:
            message["orderId"] = order_id
        with pytest.raises(WmsValidationError) as exc_info:
            ReceivePackage.parse(message)
        assert exc_info.value.message == "missing_orderId"
        assert exc_info.value.details is not None
        assert exc_info.value.details["field"] == "orderId"

    def test_wrong_shape_is_invalid(self) -> None:
        with pytest.raises(WmsValidationError) as exc_info:
            ScanPackage.parse({"type": "scan_package", "packageId": "pkg-1", "scanPoint": ["dock"]})
        assert exc_info.value.message == "invalid_scanPoint"
        assert exc_info.value.package_id == "pkg-1"

    def test_register_defaults(self) -> None:
        command = RegisterAdapter.parse({"type": "register_adapter"})
        assert isinstance(command, RegisterAdapter)
        assert command.adapter_id is None
        assert command.capabilities == []


# ------------------------------------------------------------------
# Events
# ------------------------------------------------------------------


class TestEvents:
    def test_optional_fields_omitted(self) -> None:
        assert ErrorEvent(message="package_not_found").to_wire() == {
            "type": "error",
            "message": "package_not_found",
        }

    def test_error_event_from_exception(self) -> None:
        event = ErrorEvent.from_exception(WmsUnknownTypeError("teleport"))
        assert event.to_wire() == {
            "type": "error",
            "message": "unknown_type",
            "code": "unknown_type",
            "details": {"received": "teleport"},
        }

    def test_ack_shape(self) -> None:
        wire = Ack(message_id="m-1", status=PackageStatus.RECEIVED, package_id="pkg-1", order_id="o1").to_wire()
        assert wire == {
            "type": "ack",
            "messageId": "m-1",
            "status": "received",
            "packageId": "pkg-1",
            "orderId": "o1",
        }

    def test_scanned_event_has_no_status(self) -> None:
        event = PackageScanned(
            package_id="pkg-1",
            order_id="o1",
            scan_point="dock-3",
            timestamp=datetime(2026, 1, 1, tzinfo=UTC),
        )
        assert "status" not in event.to_wire()

    def test_status_event_for_forced_load_without_vehicle(self) -> None:
        package = Package(package_id="pkg-1", order_id="o1", status=PackageStatus.LOADED)
        event = status_event(package, PackageStatus.LOADED)
        assert event.type == "package_loaded"
        assert event.to_wire()["vehicleId"] == "unassigned"


# ------------------------------------------------------------------
# Package
# ------------------------------------------------------------------


class TestPackage:
    def test_snapshot_is_camel_case_json(self) -> None:
        package = Package(
            package_id="pkg-1",
            order_id="o1",
            timestamps={PackageStatus.RECEIVED: datetime(2026, 1, 1, tzinfo=UTC)},
        )
        snapshot = package.snapshot()
        assert snapshot["packageId"] == "pkg-1"
        assert snapshot["assignedVehicle"] is None
        assert snapshot["timestamps"] == {"received": "2026-01-01T00:00:00.000Z"}
