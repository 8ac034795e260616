"""Custom exception hierarchy for pywms.

Engine-level errors map one-to-one onto the ``error`` events sent back to
adapters: the exception carries the wire ``code`` and ``message`` plus the
optional package/order correlation fields.
"""

from __future__ import annotations

from typing import Any


class WmsError(Exception):
    """Base exception for all pywms errors."""

    code: str = "error"

    def __init__(
        self,
        message: str,
        *,
        package_id: str | None = None,
        order_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.package_id = package_id
        self.order_id = order_id
        self.details = details
        super().__init__(message)


class WmsConfigError(WmsError):
    """Invalid or missing configuration."""

    code = "config_error"


class WmsDecodeError(WmsError):
    """An inbound frame could not be decoded (``invalid_json``, ``missing_type``)."""

    code = "decode_error"


class WmsValidationError(WmsError):
    """A command is missing a required field or carries an invalid one."""

    code = "validation_error"


class WmsNotFoundError(WmsError):
    """Unknown package or adapter reference."""

    code = "not_found"


class WmsUnknownTypeError(WmsError):
    """Unrecognized command type."""

    code = "unknown_type"

    def __init__(self, received: str) -> None:
        self.received = received
        super().__init__("unknown_type", details={"received": received})


class WmsInjectedFailure(WmsError):
    """Deliberately simulated fault.

    Indistinguishable on the wire from a genuine failure except for the
    message text and the ``injected_failure`` code.
    """

    code = "injected_failure"


class WmsTransitionError(WmsError):
    """A lifecycle trigger is not allowed from the package's current status."""

    code = "invalid_transition"
