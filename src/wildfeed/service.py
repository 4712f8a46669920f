"""Wiring of config, snapshot store, adapters, registry and scheduler."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from functools import partial
from pathlib import Path

import aiohttp

from wildfeed.cache.store import SnapshotStore
from wildfeed.cache.window import WindowedCache, utcnow
from wildfeed.config import WildfeedConfig
from wildfeed.feeds import AdapterFactory, FeedContext, build_adapter
from wildfeed.loader import load_entity_configs
from wildfeed.models.entity import EntityConfig
from wildfeed.registry import CacheFactory, EntityRegistry
from wildfeed.scheduler import Scheduler

_logger = logging.getLogger(__name__)


def make_cache_factory(
    store: SnapshotStore,
    context: FeedContext,
    *,
    tolerance: float,
    adapters: dict[str, AdapterFactory] | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> CacheFactory:
    """Return a factory building a loaded :class:`WindowedCache` per (entity, feed)."""

    def factory(entity: EntityConfig, feed_id: str) -> WindowedCache:
        adapter = build_adapter(feed_id, entity, context, adapters)
        return WindowedCache(entity.id, feed_id, adapter, store, tolerance=tolerance, clock=clock)

    return factory


def build_scheduler(
    config: WildfeedConfig,
    http: aiohttp.ClientSession,
    *,
    adapters: dict[str, AdapterFactory] | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> Scheduler:
    """Assemble a scheduler from *config*, sharing *http* between adapters."""
    data_dir = Path(config.data_dir)
    if not data_dir.exists():
        data_dir.mkdir(parents=True, exist_ok=True)
        _logger.info("Created data directory: %s", data_dir)

    store = SnapshotStore(data_dir)
    context = FeedContext(http=http, config=config)
    registry = EntityRegistry(
        make_cache_factory(store, context, tolerance=config.coverage_tolerance, adapters=adapters, clock=clock),
    )
    return Scheduler(
        registry,
        partial(load_entity_configs, config.entity_config_dir),
        refresh_interval=config.refresh_interval,
        clock=clock,
    )
