"""Windowed cache layer.

One :class:`WindowedCache` per (entity, feed) owns that feed's cached
events and the interval they cover; :class:`SnapshotStore` persists it.
"""

from wildfeed.cache.store import SnapshotStore
from wildfeed.cache.window import (
    DEFAULT_COVERAGE_TOLERANCE,
    CachedRead,
    UpdateOutcome,
    WindowedCache,
    most_recent_first,
)

__all__ = [
    "DEFAULT_COVERAGE_TOLERANCE",
    "CachedRead",
    "SnapshotStore",
    "UpdateOutcome",
    "WindowedCache",
    "most_recent_first",
]
