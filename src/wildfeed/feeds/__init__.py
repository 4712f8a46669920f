"""Feed adapters.

:data:`FEED_ADAPTERS` maps the feed identifiers used in entity
configurations to adapter classes.
"""

from __future__ import annotations

from collections.abc import Callable

from wildfeed.exceptions import ConfigurationInvalidError
from wildfeed.feeds.base import FeedAdapter, FeedContext, bounds_differ, iter_days
from wildfeed.feeds.fires import FiresFeed
from wildfeed.feeds.metars import MetarsFeed
from wildfeed.models.entity import EntityConfig

AdapterFactory = Callable[[EntityConfig, FeedContext], FeedAdapter]

FEED_ADAPTERS: dict[str, AdapterFactory] = {
    MetarsFeed.name: MetarsFeed,
    FiresFeed.name: FiresFeed,
}

#: Feeds whose events are modelled but whose adapters live outside this package.
EXTERNAL_FEEDS: frozenset[str] = frozenset({"flightPings", "announcements"})


def build_adapter(
    feed_id: str,
    entity: EntityConfig,
    context: FeedContext,
    adapters: dict[str, AdapterFactory] | None = None,
) -> FeedAdapter:
    """Instantiate the adapter registered for *feed_id*.

    Raises
    ------
    ConfigurationInvalidError
        No adapter is registered under *feed_id*.
    """
    registry = FEED_ADAPTERS if adapters is None else adapters
    factory = registry.get(feed_id)
    if factory is None:
        reason = "is not implemented" if feed_id in EXTERNAL_FEEDS else "is unknown"
        raise ConfigurationInvalidError(
            f'Data source "{feed_id}" is configured but {reason} for entity {entity.id}',
            source=feed_id,
        )
    return factory(entity, context)


__all__ = [
    "EXTERNAL_FEEDS",
    "FEED_ADAPTERS",
    "AdapterFactory",
    "FeedAdapter",
    "FeedContext",
    "FiresFeed",
    "MetarsFeed",
    "bounds_differ",
    "build_adapter",
    "iter_days",
]
