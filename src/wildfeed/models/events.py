"""Timestamped events produced by feeds.

Every event carries an integer ``timestamp`` (unix seconds) and an
``event`` tag used as the union discriminator.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field, TypeAdapter

from wildfeed.models._base import Coordinates, WildfeedModel


class Wind(WildfeedModel):
    """Surface wind group of a METAR report."""

    direction: int | Literal["VRB"] = 0
    speed: int = 0
    gusting: int | None = None
    variable: bool = False


class MetarEvent(WildfeedModel):
    event: Literal["metar"] = "metar"
    timestamp: int
    type: str = "metar"
    icao_id: str
    raw: str
    wind: Wind = Field(default_factory=Wind)
    temperature: int
    dew_point: int
    qnh: int


class FireEvent(WildfeedModel):
    """Satellite hotspot detection."""

    event: Literal["fire"] = "fire"
    timestamp: int
    position: Coordinates
    instrument: str
    satellite: str
    brightness: float | None = None


class FlightPingEvent(WildfeedModel):
    event: Literal["flightPing"] = "flightPing"
    timestamp: int
    callsign: str | None = None
    icao24: str
    position: Coordinates
    altitude: float | None = None
    altitude_geometric: float | None = None
    velocity: float | None = None
    vertical_speed: float | None = None
    heading: float | None = None
    squawk: str | None = None


class Place(WildfeedModel):
    name: str
    position: Coordinates


class AnnouncementEvent(WildfeedModel):
    """Official alert or evacuation order extracted from a social-media post."""

    event: Literal["announcement"] = "announcement"
    timestamp: int
    tweet_url: str
    type: Literal["alert", "evacuate"]
    from_: list[Place] = Field(default_factory=list, alias="from")
    to: list[Place] = Field(default_factory=list)


Event = Annotated[
    MetarEvent | FireEvent | FlightPingEvent | AnnouncementEvent,
    Field(discriminator="event"),
]
"""Any feed event, discriminated on its ``event`` tag."""

EVENT_LIST_ADAPTER: TypeAdapter[list[Event]] = TypeAdapter(list[Event])


def dump_events(events: list[Event]) -> list[dict[str, object]]:
    """Serialize events with their wire keys."""
    return EVENT_LIST_ADAPTER.dump_python(events, mode="json", by_alias=True)
