"""Base model and timestamp type for the wire protocol.

Every inbound command and outbound event inherits from
:class:`WmsBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase wire keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``null`` and blank
  string values so they count as absent (``{"orderId": ""}`` is reported
  as a missing ``orderId``, like an omitted key).
* :meth:`WmsBaseModel.to_wire` which renders the camelCase JSON object.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, PlainSerializer, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """Render *value* as ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


WmsTimestamp = Annotated[datetime, PlainSerializer(format_timestamp, return_type=str, when_used="json")]
"""Datetime that serializes the way JavaScript's ``toISOString`` does."""


class WmsBaseModel(BaseModel):
    """Base for wire-level models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            cleaned[key] = value
        return cleaned

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready camelCase dict, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
