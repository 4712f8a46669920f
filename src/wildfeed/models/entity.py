"""Entity (wildfire incident) configuration."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, field_validator

from wildfeed.models._base import BoundingBox, Coordinates, UtcDatetime, WildfeedModel


class EntityConfig(WildfeedModel):
    """Configuration of one monitored entity.

    Parameters
    ----------
    id : str
        Stable identifier, also used in snapshot file names.
    name : str
        Human readable name.
    bounding_box : BoundingBox
        ``((north, west), (south, east))`` area of interest.
    position : Coordinates
        Map centre.
    zoom : float
        Map zoom level.
    start : datetime
        Beginning of the active period.
    end : datetime or None
        End of the active period; ``None`` while the incident is live.
    timezone : str
        IANA time zone of the incident.
    metar_airport : str
        ICAO code of the reference weather station.
    data_sources : list[str]
        Enabled feed identifiers, in declaration order.
    """

    id: str
    name: str
    bounding_box: BoundingBox
    position: Coordinates
    zoom: float
    start: UtcDatetime
    end: UtcDatetime | None = None
    timezone: str
    metar_airport: str
    data_sources: list[str] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        entity_id = value.strip()
        if not entity_id:
            raise ValueError("id must be non-empty")
        return entity_id

    def desired_interval(self, now: datetime) -> tuple[datetime, datetime]:
        """Return ``(start, end or now)``."""
        return self.start, self.end if self.end is not None else now
