"""Feed metadata persisted next to cached events.

Each adapter stores the selection parameters its cached data was fetched
with. The variants form a tagged union on ``kind``; snapshots written
before the tag existed are resolved by their field shape.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import AliasChoices, Discriminator, Field, Tag

from wildfeed.models._base import BoundingBox, UtcDatetime, WildfeedModel


class BoundsMetadata(WildfeedModel):
    """Spatial selection used by area-based feeds."""

    kind: Literal["bounds"] = "bounds"
    bounds: BoundingBox


class MetarMetadata(WildfeedModel):
    """Reference station selection used by the weather-report feed."""

    kind: Literal["metar"] = "metar"
    airport_icao: str
    entity_start: UtcDatetime = Field(
        validation_alias=AliasChoices("entityStart", "wildfireStart", "entity_start"),
    )


def _metadata_kind(value: Any) -> str | None:
    if isinstance(value, dict):
        kind = value.get("kind")
        if kind is not None:
            return str(kind)
        if "airportIcao" in value or "airport_icao" in value:
            return "metar"
        if "bounds" in value:
            return "bounds"
        return None
    return getattr(value, "kind", None)


FeedMetadata = Annotated[
    Annotated[BoundsMetadata, Tag("bounds")] | Annotated[MetarMetadata, Tag("metar")],
    Discriminator(_metadata_kind),
]
