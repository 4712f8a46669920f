"""Data models for wildfeed."""

from wildfeed.models._base import BoundingBox, Coordinates, UtcDatetime, WildfeedModel
from wildfeed.models.entity import EntityConfig
from wildfeed.models.events import (
    EVENT_LIST_ADAPTER,
    AnnouncementEvent,
    Event,
    FireEvent,
    FlightPingEvent,
    MetarEvent,
    Place,
    Wind,
    dump_events,
)
from wildfeed.models.metadata import BoundsMetadata, FeedMetadata, MetarMetadata
from wildfeed.models.snapshot import CoveredInterval, Snapshot

__all__ = [
    "EVENT_LIST_ADAPTER",
    "AnnouncementEvent",
    "BoundingBox",
    "BoundsMetadata",
    "Coordinates",
    "CoveredInterval",
    "EntityConfig",
    "Event",
    "FeedMetadata",
    "FireEvent",
    "FlightPingEvent",
    "MetarEvent",
    "MetarMetadata",
    "Place",
    "Snapshot",
    "UtcDatetime",
    "Wind",
    "WildfeedModel",
    "dump_events",
]
