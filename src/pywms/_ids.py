"""Identity generation for packages, adapters, messages and vehicles."""

from __future__ import annotations

import secrets

from pywms._constants import (
    ADAPTER_ID_PREFIX,
    MESSAGE_ID_PREFIX,
    PACKAGE_ID_PREFIX,
    VEHICLE_ID_PREFIX,
)


def short_id() -> str:
    """Eight uppercase hex characters."""
    return secrets.token_hex(4).upper()


def make_package_id() -> str:
    return PACKAGE_ID_PREFIX + short_id()


def make_adapter_id() -> str:
    return ADAPTER_ID_PREFIX + short_id()


def make_message_id() -> str:
    return MESSAGE_ID_PREFIX + short_id()


def make_vehicle_id() -> str:
    return VEHICLE_ID_PREFIX + short_id()
