"""Base model shared by wildfeed records.

JSON produced by the upstream service and stored in snapshots uses
camelCase keys; every model inherits :class:`WildfeedModel` so that
``alias_generator=to_camel`` maps them to snake_case fields.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Coordinates = tuple[float, float]
"""``(latitude, longitude)`` in degrees."""

BoundingBox = tuple[Coordinates, Coordinates]
"""``((north, west), (south, east))``."""


def ensure_utc(value: Any) -> Any:
    """Treat naive datetimes as UTC."""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]
"""Timezone-aware datetime; naive input is interpreted as UTC."""


class WildfeedModel(BaseModel):
    """Frozen camelCase-aliased base model."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump with wire (camelCase) keys and JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)
