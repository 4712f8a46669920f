"""Entity registry: entity id -> feed id -> windowed cache."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from wildfeed.cache.window import WindowedCache
from wildfeed.exceptions import ConfigurationInvalidError, SnapshotCorruptError
from wildfeed.models.entity import EntityConfig

_logger = logging.getLogger(__name__)

CacheFactory = Callable[[EntityConfig, str], WindowedCache]
"""Builds the cache for ``(entity, feed_id)``; may raise configuration or snapshot errors."""


class EntityRegistry:
    """Windowed caches per entity, reconciled against configuration snapshots.

    Caches are created the first time an (entity, feed) pair appears in a
    configuration. Caches whose feed or entity disappears are kept dormant
    (their snapshot stays on disk) and become active again if the feed is
    re-enabled.
    """

    def __init__(self, factory: CacheFactory) -> None:
        self._factory = factory
        self._entities: dict[str, dict[str, WindowedCache]] = {}
        self._rejected: set[tuple[str, str]] = set()

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def reconcile(self, entities: Mapping[str, EntityConfig]) -> None:
        """Create caches for feeds seen for the first time in *entities*.

        Feeds that cannot be built (unknown adapter, corrupt snapshot) are
        logged once and left out; other feeds are unaffected.
        """
        for entity_id, entity in entities.items():
            caches = self._entities.setdefault(entity_id, {})
            for feed_id in entity.data_sources:
                if feed_id in caches or (entity_id, feed_id) in self._rejected:
                    continue
                try:
                    caches[feed_id] = self._factory(entity, feed_id)
                except ConfigurationInvalidError as exc:
                    self._rejected.add((entity_id, feed_id))
                    _logger.warning("%s", exc)
                except SnapshotCorruptError as exc:
                    self._rejected.add((entity_id, feed_id))
                    _logger.error("Cannot initialize %s-%s: %s", entity_id, feed_id, exc)
                else:
                    _logger.debug("Created cache %s-%s", entity_id, feed_id)

    def caches(self, entity_id: str) -> dict[str, WindowedCache]:
        """Every cache ever built for *entity_id*, dormant ones included."""
        return dict(self._entities.get(entity_id, {}))

    def active_caches(self, entity: EntityConfig) -> dict[str, WindowedCache]:
        """Caches of the feeds *entity* currently enables, in declaration order."""
        caches = self._entities.get(entity.id, {})
        return {feed_id: caches[feed_id] for feed_id in entity.data_sources if feed_id in caches}
