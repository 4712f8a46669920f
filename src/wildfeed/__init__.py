"""wildfeed - incremental windowed event cache for monitored wildfires."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wildfeed")
except PackageNotFoundError:
    __version__ = "0+local"
from wildfeed.cache import CachedRead, SnapshotStore, UpdateOutcome, WindowedCache
from wildfeed.config import WildfeedConfig
from wildfeed.exceptions import (
    ConfigurationInvalidError,
    EntityNotFoundError,
    FetchFailedError,
    InvalidFeedSelectionError,
    ParseFailedError,
    PersistenceFailedError,
    SnapshotCorruptError,
    WildfeedError,
)
from wildfeed.feeds import FEED_ADAPTERS, FeedAdapter, FeedContext
from wildfeed.merge import merge_all, merge_descending
from wildfeed.models import CoveredInterval, EntityConfig, Event, Snapshot
from wildfeed.registry import EntityRegistry
from wildfeed.scheduler import QueryResult, Scheduler, parse_time

__all__ = [
    "__version__",
    "FEED_ADAPTERS",
    "CachedRead",
    "ConfigurationInvalidError",
    "CoveredInterval",
    "EntityConfig",
    "EntityNotFoundError",
    "EntityRegistry",
    "Event",
    "FeedAdapter",
    "FeedContext",
    "FetchFailedError",
    "InvalidFeedSelectionError",
    "ParseFailedError",
    "PersistenceFailedError",
    "QueryResult",
    "Scheduler",
    "Snapshot",
    "SnapshotCorruptError",
    "SnapshotStore",
    "UpdateOutcome",
    "WildfeedConfig",
    "WildfeedError",
    "WindowedCache",
    "merge_all",
    "merge_descending",
    "parse_time",
]
