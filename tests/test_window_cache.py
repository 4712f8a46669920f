from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from fakes import AREA_A, AREA_B, FakeFeed, at, fire, make_entity, ts

from wildfeed.cache.store import SnapshotStore
from wildfeed.cache.window import UpdateOutcome, WindowedCache
from wildfeed.exceptions import FetchFailedError, PersistenceFailedError, SnapshotCorruptError
from wildfeed.models.metadata import BoundsMetadata


def _cache(tmp_path: Path, feed: FakeFeed, **kwargs: object) -> WindowedCache:
    return WindowedCache("attica-2024", "fake", feed, SnapshotStore(tmp_path), **kwargs)  # type: ignore[arg-type]


def _timestamps(cache: WindowedCache) -> list[int]:
    return [event.timestamp for event in cache.events]


@pytest.mark.asyncio
async def test_merge_update_extends_coverage_and_keeps_old_events(tmp_path: Path) -> None:
    entity = make_entity(start=at(0), end=at(10))
    feed = FakeFeed(
        entity,
        batches=[
            [fire(ts(4)), fire(ts(1)), fire(ts(9))],
            [fire(ts(12)), fire(ts(18))],
        ],
    )
    cache = _cache(tmp_path, feed)

    assert await cache.update(entity) == UpdateOutcome.FETCHED
    assert cache.current_coverage().from_ == at(0)
    assert cache.current_coverage().to == at(10)

    outcome = await cache.update(make_entity(start=at(5), end=at(20)))

    assert outcome == UpdateOutcome.FETCHED
    assert feed.calls[-1] == (at(0), at(20))
    coverage = cache.current_coverage()
    assert (coverage.from_, coverage.to) == (at(0), at(20))
    assert _timestamps(cache) == [ts(18), ts(12), ts(9), ts(4), ts(1)]


@pytest.mark.asyncio
async def test_second_update_with_same_config_does_not_fetch(tmp_path: Path) -> None:
    entity = make_entity()
    feed = FakeFeed(entity, batches=[[fire(ts(2))]])
    cache = _cache(tmp_path, feed)

    assert await cache.update(entity) == UpdateOutcome.FETCHED
    assert await cache.update(entity) == UpdateOutcome.ALREADY_SATISFIED
    assert len(feed.calls) == 1


@pytest.mark.asyncio
async def test_live_entity_uses_tolerance_against_now(tmp_path: Path) -> None:
    now = [at(10)]
    entity = make_entity(end=None)
    feed = FakeFeed(entity)
    cache = _cache(tmp_path, feed, clock=lambda: now[0])

    await cache.update(entity)
    now[0] = at(10) + timedelta(milliseconds=500)
    assert await cache.update(entity) == UpdateOutcome.ALREADY_SATISFIED

    now[0] = at(10) + timedelta(seconds=30)
    assert await cache.update(entity) == UpdateOutcome.FETCHED
    assert cache.current_coverage().to == now[0]
    assert len(feed.calls) == 2


@pytest.mark.asyncio
async def test_concurrent_update_is_skipped_and_reads_stay_available(tmp_path: Path) -> None:
    entity = make_entity()
    feed = FakeFeed(entity, batches=[[fire(ts(3))], [fire(ts(5))]])
    cache = _cache(tmp_path, feed)
    await cache.update(make_entity(end=at(4)))

    feed.gate = asyncio.Event()
    first = asyncio.create_task(cache.update(entity))
    await asyncio.sleep(0)
    assert cache.fetch_in_progress

    before = (cache.events, cache.current_coverage())
    assert await cache.update(entity) == UpdateOutcome.SKIPPED_CONCURRENT
    assert len(feed.calls) == 2
    assert (cache.events, cache.current_coverage()) == before

    read = cache.get_data(at(0), at(10))
    assert read.fetch_in_progress
    assert [event.timestamp for event in read.events] == [ts(3)]

    feed.gate.set()
    assert await first == UpdateOutcome.FETCHED
    assert not cache.fetch_in_progress
    assert _timestamps(cache) == [ts(5), ts(3)]


@pytest.mark.asyncio
async def test_failed_fetch_leaves_state_untouched(tmp_path: Path) -> None:
    feed = FakeFeed(make_entity(), batches=[[fire(ts(1))], FetchFailedError("upstream down", feed="fake")])
    cache = _cache(tmp_path, feed)
    await cache.update(make_entity(end=at(5)))
    saved = (tmp_path / "attica-2024-fake.json").read_text()
    before = (cache.events, cache.current_coverage())

    with pytest.raises(FetchFailedError):
        await cache.update(make_entity(end=at(10)))

    assert (cache.events, cache.current_coverage()) == before
    assert not cache.fetch_in_progress
    assert (tmp_path / "attica-2024-fake.json").read_text() == saved


@pytest.mark.asyncio
async def test_full_refetch_replaces_events_and_resets_coverage(tmp_path: Path) -> None:
    feed = FakeFeed(
        make_entity(),
        batches=[
            [fire(ts(1)), fire(ts(2)), fire(ts(3))],
            [fire(ts(7)), fire(ts(6))],
        ],
    )
    cache = _cache(tmp_path, feed)
    await cache.update(make_entity(bounding_box=AREA_A, start=at(0), end=at(10)))

    moved = make_entity(bounding_box=AREA_B, start=at(5), end=at(10))
    assert await cache.update(moved) == UpdateOutcome.FETCHED

    assert feed.reinitialized[-1] is moved
    assert feed.calls[-1] == (at(5), at(10))
    assert _timestamps(cache) == [ts(7), ts(6)]
    coverage = cache.current_coverage()
    assert (coverage.from_, coverage.to) == (at(5), at(10))
    assert cache.snapshot().meta == BoundsMetadata(bounds=AREA_B)


@pytest.mark.asyncio
async def test_replace_stays_pending_after_failed_fetch(tmp_path: Path) -> None:
    feed = FakeFeed(
        make_entity(),
        batches=[
            [fire(ts(1)), fire(ts(2))],
            FetchFailedError("timeout"),
            [fire(ts(8))],
        ],
    )
    cache = _cache(tmp_path, feed)
    await cache.update(make_entity())
    moved = make_entity(bounding_box=AREA_B)

    with pytest.raises(FetchFailedError):
        await cache.update(moved)
    assert _timestamps(cache) == [ts(2), ts(1)]

    # The adapter already adopted the new area, yet the next fetch must still replace.
    assert not feed.needs_full_refetch(moved)
    assert await cache.update(moved) == UpdateOutcome.FETCHED
    assert _timestamps(cache) == [ts(8)]


@pytest.mark.asyncio
async def test_coverage_only_grows_across_merge_updates(tmp_path: Path) -> None:
    entity = make_entity()
    cache = _cache(tmp_path, FakeFeed(entity))
    windows = [(3, 6), (4, 5), (1, 4), (5, 12), (0, 2), (2, 15)]

    previous: tuple[datetime, datetime] | None = None
    for start, end in windows:
        await cache.update(make_entity(start=at(start), end=at(end)))
        coverage = cache.current_coverage()
        assert coverage.from_ is not None and coverage.to is not None
        if previous is not None:
            assert coverage.from_ <= previous[0]
            assert coverage.to >= previous[1]
        previous = (coverage.from_, coverage.to)

    assert previous == (at(0), at(15))


@pytest.mark.asyncio
async def test_events_outside_fetched_range_are_dropped(tmp_path: Path) -> None:
    entity = make_entity(start=at(2), end=at(4))
    cache = _cache(tmp_path, FakeFeed(entity, batches=[[fire(ts(1)), fire(ts(3)), fire(ts(5))]]))

    await cache.update(entity)

    assert _timestamps(cache) == [ts(3)]


@pytest.mark.asyncio
async def test_get_data_is_inclusive_and_descending(tmp_path: Path) -> None:
    entity = make_entity()
    cache = _cache(tmp_path, FakeFeed(entity, batches=[[fire(ts(h)) for h in (1, 3, 5, 7, 9)]]))
    await cache.update(entity)

    read = cache.get_data(at(3), at(7))

    assert [event.timestamp for event in read.events] == [ts(7), ts(5), ts(3)]
    assert not read.fetch_in_progress


@pytest.mark.asyncio
async def test_snapshot_round_trip(tmp_path: Path) -> None:
    entity = make_entity(bounding_box=AREA_B)
    cache = _cache(tmp_path, FakeFeed(entity, batches=[[fire(ts(2)), fire(ts(8), "MODIS"), fire(ts(2), "N21")]]))
    await cache.update(entity)

    # The reloaded adapter starts from another area and must adopt the persisted one.
    reloaded_feed = FakeFeed(make_entity(bounding_box=AREA_A))
    reloaded = _cache(tmp_path, reloaded_feed)

    assert reloaded.events == cache.events
    assert reloaded.current_coverage() == cache.current_coverage()
    assert reloaded.snapshot() == cache.snapshot()
    assert reloaded_feed.bounds == AREA_B
    assert await reloaded.update(entity) == UpdateOutcome.ALREADY_SATISFIED


@pytest.mark.asyncio
async def test_persistence_failure_is_logged_and_memory_stays_authoritative(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    entity = make_entity()
    cache = _cache(tmp_path, FakeFeed(entity, batches=[[fire(ts(4))]]))

    def failing_save(*_args: object, **_kwargs: object) -> Path:
        raise PersistenceFailedError("disk full", path="x")

    monkeypatch.setattr(SnapshotStore, "save", failing_save)

    with caplog.at_level(logging.ERROR, logger="wildfeed.cache.window"):
        assert await cache.update(entity) == UpdateOutcome.FETCHED

    assert _timestamps(cache) == [ts(4)]
    assert "disk full" in caplog.text
    assert "[attica-2024-fake]" in caplog.text


def test_missing_snapshot_starts_empty(tmp_path: Path) -> None:
    cache = _cache(tmp_path, FakeFeed(make_entity()))

    assert cache.events == []
    assert cache.current_coverage().is_empty


def test_corrupt_snapshot_fails_construction(tmp_path: Path) -> None:
    (tmp_path / "attica-2024-fake.json").write_text("{not json")

    with pytest.raises(SnapshotCorruptError):
        _cache(tmp_path, FakeFeed(make_entity()))


def test_snapshot_with_foreign_metadata_fails_construction(tmp_path: Path) -> None:
    (tmp_path / "attica-2024-fake.json").write_text(
        '{"period": {"from": null, "to": null}, "data": [],'
        ' "meta": {"kind": "metar", "airportIcao": "LGAV", "entityStart": "2024-08-11T00:00:00Z"}}'
    )

    with pytest.raises(SnapshotCorruptError):
        _cache(tmp_path, FakeFeed(make_entity()))


@pytest.mark.asyncio
async def test_unexpected_adapter_error_is_wrapped(tmp_path: Path) -> None:
    feed = FakeFeed(make_entity(), batches=[KeyError("latitude")])
    cache = _cache(tmp_path, feed)

    with pytest.raises(FetchFailedError) as exc_info:
        await cache.update(make_entity())

    assert exc_info.value.feed == "fake"
    assert isinstance(exc_info.value.__cause__, KeyError)
    assert cache.current_coverage().is_empty
    assert not cache.fetch_in_progress
