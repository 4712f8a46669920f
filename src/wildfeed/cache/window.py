"""Incremental windowed cache for one (entity, feed) pair.

The cache remembers which time range it holds complete data for and,
on each :meth:`WindowedCache.update`, fetches only when the entity's
desired range is not yet covered. A change in the feed's selection
parameters (reported by the adapter) turns the next fetch into a full
replace instead of a merge.

Only :meth:`WindowedCache.update` mutates the cache, and it rebinds the
event list and covered interval only after a fetch succeeded, so readers
always see a consistent pre- or post-update state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, MutableMapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from wildfeed.cache.store import SnapshotStore
from wildfeed.exceptions import FetchFailedError, PersistenceFailedError, SnapshotCorruptError
from wildfeed.models.entity import EntityConfig
from wildfeed.models.events import Event
from wildfeed.models.snapshot import CoveredInterval, Snapshot

if TYPE_CHECKING:
    from wildfeed.feeds.base import FeedAdapter

_logger = logging.getLogger(__name__)

DEFAULT_COVERAGE_TOLERANCE: float = 1.0
"""Seconds of slack when comparing desired and covered intervals."""


def utcnow() -> datetime:
    """Current time in UTC; the default clock of caches and the scheduler."""
    return datetime.now(UTC)


def most_recent_first(events: Iterable[Event]) -> list[Event]:
    """Stable sort by descending timestamp."""
    return sorted(events, key=lambda event: event.timestamp, reverse=True)


class UpdateOutcome(StrEnum):
    FETCHED = "fetched"
    ALREADY_SATISFIED = "already_satisfied"
    SKIPPED_CONCURRENT = "skipped_concurrent"


@dataclass(frozen=True, slots=True)
class CachedRead:
    """Result of :meth:`WindowedCache.get_data`.

    ``fetch_in_progress`` is set when an update was running at read
    time, i.e. the events may be about to change.
    """

    events: list[Event]
    fetch_in_progress: bool = False


class _FeedLogAdapter(logging.LoggerAdapter):  # type: ignore[type-arg]
    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['feed_key']}] {msg}", kwargs  # type: ignore[index]


class WindowedCache:
    """Cached events of one feed for one entity.

    Parameters
    ----------
    entity_id, feed_id : str
        Key of this cache; also the snapshot key.
    adapter : FeedAdapter
        Feed implementation used to fetch and to judge cache validity.
    store : SnapshotStore
        Snapshot persistence.
    tolerance : float
        Seconds of slack when checking whether the desired interval is
        already covered.
    clock : callable
        Returns the current UTC time; "now" for live entities.

    Raises
    ------
    SnapshotCorruptError
        A snapshot exists for this key but cannot be loaded.
    """

    def __init__(
        self,
        entity_id: str,
        feed_id: str,
        adapter: FeedAdapter,
        store: SnapshotStore,
        *,
        tolerance: float = DEFAULT_COVERAGE_TOLERANCE,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._entity_id = entity_id
        self._feed_id = feed_id
        self._adapter = adapter
        self._store = store
        self._tolerance = tolerance
        self._clock = clock
        self._log = _FeedLogAdapter(_logger, {"feed_key": f"{entity_id}-{feed_id}"})

        self._events: list[Event] = []
        self._coverage = CoveredInterval()
        self._fetch_in_progress = False
        # Set once the adapter was reinitialized; cleared by the replace fetch.
        self._replace_pending = False

        self._load()

    @property
    def entity_id(self) -> str:
        return self._entity_id

    @property
    def feed_id(self) -> str:
        return self._feed_id

    @property
    def adapter(self) -> FeedAdapter:
        return self._adapter

    @property
    def fetch_in_progress(self) -> bool:
        return self._fetch_in_progress

    @property
    def events(self) -> list[Event]:
        return list(self._events)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        snapshot = self._store.load(self._entity_id, self._feed_id)
        if snapshot is None:
            self._log.debug("No snapshot at %s", self._store.path_for(self._entity_id, self._feed_id))
            return

        if snapshot.meta is not None:
            try:
                self._adapter.restore_state(snapshot.meta)
            except (TypeError, ValueError) as exc:
                path = self._store.path_for(self._entity_id, self._feed_id)
                raise SnapshotCorruptError(f"Unusable metadata in {path}: {exc}", path=str(path)) from exc

        self._events = most_recent_first(snapshot.data)
        self._coverage = snapshot.period
        self._log.info("Loaded %d events covering %s to %s", len(self._events), self._coverage.from_, self._coverage.to)

    def snapshot(self) -> Snapshot:
        return Snapshot(
            period=self._coverage,
            data=self._events,
            meta=self._adapter.describe_state(),
        )

    def _persist(self) -> None:
        try:
            path = self._store.save(self._entity_id, self._feed_id, self.snapshot())
        except PersistenceFailedError as exc:
            self._log.error("%s", exc)
            return
        self._log.info("Data saved to %s", path)

    # ------------------------------------------------------------------
    # Update / read
    # ------------------------------------------------------------------

    async def update(self, entity: EntityConfig) -> UpdateOutcome:
        """Bring the cache up to date with *entity*'s desired interval.

        Returns
        -------
        UpdateOutcome
            ``SKIPPED_CONCURRENT`` when another update is in flight,
            ``ALREADY_SATISFIED`` when no fetch was needed, ``FETCHED``
            after a successful fetch.

        Raises
        ------
        FetchFailedError
            The adapter failed; the cached state is unchanged.
        """
        if self._fetch_in_progress:
            self._log.warning("Fetch in progress, skipping update")
            return UpdateOutcome.SKIPPED_CONCURRENT

        if self._adapter.needs_full_refetch(entity):
            self._log.info("Full fetch needed")
            self._adapter.reinitialize(entity)
            self._replace_pending = True

        replace = self._replace_pending
        previous = CoveredInterval() if replace else self._coverage
        desired_from, desired_to = entity.desired_interval(self._clock())

        if not replace and previous.covers(desired_from, desired_to, self._tolerance):
            self._log.debug("Already have the data for the requested period")
            return UpdateOutcome.ALREADY_SATISFIED

        fetch_from, fetch_to = previous.span(desired_from, desired_to)
        self._log.info(
            "Previous data period %s to %s, fetching %s to %s",
            previous.from_,
            previous.to,
            fetch_from,
            fetch_to,
        )

        self._fetch_in_progress = True
        try:
            try:
                fetched = await self._adapter.fetch_interval(fetch_from, fetch_to)
            except Exception as exc:
                self._log.error("Error fetching interval: %s", exc)
                if isinstance(exc, FetchFailedError):
                    raise
                raise FetchFailedError(f"{type(exc).__name__}: {exc}", feed=self._feed_id) from exc

            lo, hi = fetch_from.timestamp(), fetch_to.timestamp()
            new_events = [event for event in fetched if lo <= event.timestamp <= hi]
            if len(new_events) != len(fetched):
                self._log.debug("Dropped %d events outside the fetched range", len(fetched) - len(new_events))

            if replace:
                events = most_recent_first(new_events)
            else:
                events = most_recent_first([*self._events, *new_events])

            self._events = events
            self._coverage = previous.union(desired_from, desired_to)
            self._replace_pending = False
            self._log.info("Fetched %d events, now have %d events", len(new_events), len(events))

            self._persist()
            return UpdateOutcome.FETCHED
        finally:
            self._fetch_in_progress = False

    def get_data(self, start: datetime, end: datetime) -> CachedRead:
        """Cached events with ``start <= timestamp <= end``, newest first."""
        events = self._events
        in_flight = self._fetch_in_progress
        if in_flight:
            self._log.warning("Fetch in progress, returning existing data")

        lo, hi = start.timestamp(), end.timestamp()
        selected = [event for event in events if lo <= event.timestamp <= hi]
        self._log.debug("Returning %d of %d events", len(selected), len(events))
        return CachedRead(events=selected, fetch_in_progress=in_flight)

    def current_coverage(self) -> CoveredInterval:
        return self._coverage
