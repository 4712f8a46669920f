"""Periodic refresh ticks and the on-demand query path."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from wildfeed.cache.window import UpdateOutcome, WindowedCache, utcnow
from wildfeed.exceptions import EntityNotFoundError, FetchFailedError, InvalidFeedSelectionError
from wildfeed.merge import merge_all
from wildfeed.models.entity import EntityConfig
from wildfeed.models.events import Event, dump_events
from wildfeed.models.snapshot import CoveredInterval
from wildfeed.registry import EntityRegistry

_logger = logging.getLogger(__name__)

ConfigSource = Callable[[], Mapping[str, EntityConfig]]

DEFAULT_REFRESH_INTERVAL: float = 60.0

_DIGITS_RE = re.compile(r"^\d+$")


def parse_time(value: str | None, default: datetime) -> datetime:
    """Parse a query time given as unix seconds or ISO-8601.

    Naive ISO values are taken as UTC. Absent or unparseable values fall
    back to *default*.
    """
    if not value:
        return default
    text = value.strip()
    if _DIGITS_RE.match(text):
        try:
            return datetime.fromtimestamp(int(text), tz=UTC)
        except (OverflowError, OSError, ValueError):
            return default
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return default
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Merged events of an entity plus per-feed coverage."""

    events: list[Event]
    recency: dict[str, CoveredInterval] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "events": dump_events(self.events),
            "recency": {feed_id: interval.to_json_dict() for feed_id, interval in self.recency.items()},
        }


class Scheduler:
    """Drives refresh ticks over the registry and answers queries.

    Parameters
    ----------
    registry : EntityRegistry
        Caches to refresh and read.
    config_source : callable
        Returns the current entity configurations; called on every tick.
    refresh_interval : float
        Seconds between the start of two ticks. Ticks are not serialized:
        a slow tick may still run when the next one starts, and the
        per-feed guard in :class:`WindowedCache` prevents double fetches.
    clock : callable
        Current UTC time.
    """

    def __init__(
        self,
        registry: EntityRegistry,
        config_source: ConfigSource,
        *,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._registry = registry
        self._config_source = config_source
        self._refresh_interval = refresh_interval
        self._clock = clock
        self._entities: dict[str, EntityConfig] = {}
        self._tick_tasks: set[asyncio.Task[Any]] = set()
        self._stopped = asyncio.Event()

    def now(self) -> datetime:
        return self._clock()

    @property
    def registry(self) -> EntityRegistry:
        return self._registry

    @property
    def entities(self) -> dict[str, EntityConfig]:
        """Entity configurations seen by the latest tick."""
        return dict(self._entities)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def reload(self) -> dict[str, EntityConfig]:
        """Reload configurations and reconcile the registry."""
        self._entities = dict(self._config_source())
        self._registry.reconcile(self._entities)
        return self.entities

    async def tick(self) -> dict[tuple[str, str], UpdateOutcome | BaseException]:
        """Run one refresh over every enabled feed of every entity.

        Feed updates run concurrently. A failing feed is logged and
        reported in the result; it never interrupts the others.
        """
        entities = self.reload()

        jobs: list[tuple[EntityConfig, str, WindowedCache]] = [
            (entity, feed_id, cache)
            for entity in entities.values()
            for feed_id, cache in self._registry.active_caches(entity).items()
        ]
        results = await asyncio.gather(
            *(cache.update(entity) for entity, _feed_id, cache in jobs),
            return_exceptions=True,
        )

        outcomes: dict[tuple[str, str], UpdateOutcome | BaseException] = {}
        for (entity, feed_id, _cache), result in zip(jobs, results, strict=True):
            outcomes[(entity.id, feed_id)] = result
            if isinstance(result, FetchFailedError):
                _logger.error("Update of %s-%s failed, retrying next tick: %s", entity.id, feed_id, result)
            elif isinstance(result, BaseException):
                _logger.error(
                    "Update of %s-%s failed unexpectedly",
                    entity.id,
                    feed_id,
                    exc_info=(type(result), result, result.__traceback__),
                )
        return outcomes

    def _on_tick_done(self, task: asyncio.Task[Any]) -> None:
        self._tick_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Refresh tick failed", exc_info=(type(exc), exc, exc.__traceback__))

    def start_tick(self) -> asyncio.Task[Any]:
        """Launch a tick in the background."""
        task = asyncio.create_task(self.tick())
        self._tick_tasks.add(task)
        task.add_done_callback(self._on_tick_done)
        return task

    async def run(self) -> None:
        """Tick now, then every ``refresh_interval`` seconds until :meth:`stop`."""
        self._stopped.clear()
        while not self._stopped.is_set():
            self.start_tick()
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self._refresh_interval)
            except TimeoutError:
                continue

    async def stop(self) -> None:
        """Stop the periodic loop and wait for running ticks to finish."""
        self._stopped.set()
        if self._tick_tasks:
            await asyncio.gather(*self._tick_tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def query(
        self,
        entity_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        only: Iterable[str] | None = None,
    ) -> QueryResult:
        """Merged events of *entity_id* between *start* and *end*.

        Parameters
        ----------
        start, end : datetime or None
            Defaults to the entity start and now.
        only : iterable of str or None
            Restrict to these feeds.

        Raises
        ------
        EntityNotFoundError
            The entity is not configured.
        InvalidFeedSelectionError
            *only* names feeds that are not enabled for the entity,
            or an empty name.
        """
        entity = self._entities.get(entity_id)
        if entity is None or entity_id not in self._registry:
            raise EntityNotFoundError(entity_id)

        caches = self._registry.active_caches(entity)
        selected: list[str] | None = None
        if only is not None:
            selected = [name.strip() for name in only]
            invalid = [name for name in selected if name not in caches]
            if invalid:
                raise InvalidFeedSelectionError(invalid)

        query_from = start if start is not None else entity.start
        query_to = end if end is not None else self._clock()

        per_feed: list[list[Event]] = []
        recency: dict[str, CoveredInterval] = {}
        for feed_id, cache in caches.items():
            if selected is not None and feed_id not in selected:
                continue
            read = cache.get_data(query_from, query_to)
            _logger.debug("Got %d events from %s", len(read.events), feed_id)
            per_feed.append(read.events)
            recency[feed_id] = cache.current_coverage()

        return QueryResult(events=merge_all(per_feed), recency=recency)
