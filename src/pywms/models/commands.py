"""Inbound adapter commands."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field, ValidationError

from pywms.exceptions import WmsValidationError
from pywms.models._base import WmsBaseModel


class CommandType(enum.StrEnum):
    """``type`` discriminator values accepted from adapters."""

    REGISTER_ADAPTER = "register_adapter"
    RECEIVE_PACKAGE = "receive_package"
    SCAN_PACKAGE = "scan_package"
    LOAD_PACKAGE = "load_package"
    SIMULATE_ERROR = "simulate_error"


class WmsCommand(WmsBaseModel):
    """Base for inbound commands."""

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
    """Decoded frame as received."""

    @classmethod
    def parse(cls, message: dict[str, Any]) -> WmsCommand:
        """Validate a decoded frame, mapping pydantic errors to the wire taxonomy.

        The first offending field decides the message: ``missing_<field>``
        for absent/blank values, ``invalid_<field>`` otherwise.

        Raises
        ------
        WmsValidationError
            If a required field is missing or a field has the wrong shape.
        """
        try:
            return cls.model_validate({**message, "raw": message})
        except ValidationError as exc:
            error = exc.errors()[0]
            loc = error.get("loc") or ("message",)
            field = str(loc[0])
            prefix = "missing" if error.get("type") == "missing" else "invalid"
            raise WmsValidationError(
                f"{prefix}_{field}",
                order_id=_str_or_none(message.get("orderId")),
                package_id=_str_or_none(message.get("packageId")),
                details={"field": field, "reason": error.get("msg", "")},
            ) from exc


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


class RegisterAdapter(WmsCommand):
    adapter_id: str | None = None
    capabilities: list[str] = Field(default_factory=list)


class ReceivePackage(WmsCommand):
    order_id: str
    client_order_ref: str | None = None
    items: list[Any] = Field(default_factory=list)
    pickup: Any = None
    delivery: Any = None
    contact: Any = None
    callback_meta: dict[str, Any] = Field(default_factory=dict)


class ScanPackage(WmsCommand):
    package_id: str
    scan_point: str | None = None


class LoadPackage(WmsCommand):
    package_id: str
    vehicle_id: str | None = None


class SimulateError(WmsCommand):
    package_id: str | None = None
    """Absent and unknown ids are both answered with ``package_not_found``."""
    error: str | None = None


COMMAND_MODELS: dict[CommandType, type[WmsCommand]] = {
    CommandType.REGISTER_ADAPTER: RegisterAdapter,
    CommandType.RECEIVE_PACKAGE: ReceivePackage,
    CommandType.SCAN_PACKAGE: ScanPackage,
    CommandType.LOAD_PACKAGE: LoadPackage,
    CommandType.SIMULATE_ERROR: SimulateError,
}
