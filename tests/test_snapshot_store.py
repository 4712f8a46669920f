from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest
from fakes import AREA_A, at, fire, ts

from wildfeed.cache.store import SnapshotStore
from wildfeed.exceptions import PersistenceFailedError, SnapshotCorruptError
from wildfeed.models.events import AnnouncementEvent, FireEvent, MetarEvent, Wind
from wildfeed.models.metadata import BoundsMetadata, MetarMetadata
from wildfeed.models.snapshot import CoveredInterval, Snapshot


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    store = SnapshotStore(tmp_path / "data")
    snapshot = Snapshot(
        period=CoveredInterval(from_=at(0), to=at(10)),
        data=[
            MetarEvent(
                timestamp=ts(6),
                icao_id="LGAV",
                raw="LGAV 110600Z VRB03KT CAVOK 24/14 Q1011",
                wind=Wind(direction="VRB", speed=3, variable=True),
                temperature=24,
                dew_point=14,
                qnh=1011,
            ),
            fire(ts(5)),
        ],
        meta=BoundsMetadata(bounds=AREA_A),
    )

    path = store.save("attica-2024", "fires", snapshot)

    assert path == tmp_path / "data" / "attica-2024-fires.json"
    assert store.load("attica-2024", "fires") == snapshot
    assert not path.with_name(f"{path.name}.tmp").exists()


def test_wire_format_uses_period_data_meta(tmp_path: Path) -> None:
    store = SnapshotStore(tmp_path)
    store.save("x", "fires", Snapshot(data=[fire(ts(1))], meta=BoundsMetadata(bounds=AREA_A)))

    written = json.loads((tmp_path / "x-fires.json").read_text())

    assert written["period"] == {"from": None, "to": None}
    assert written["data"][0]["event"] == "fire"
    assert written["meta"]["kind"] == "bounds"


def test_load_missing_returns_none(tmp_path: Path) -> None:
    assert SnapshotStore(tmp_path).load("nope", "fires") is None


def test_load_invalid_snapshot_raises(tmp_path: Path) -> None:
    (tmp_path / "x-fires.json").write_text(json.dumps({"period": {"from": "yesterday"}, "data": []}))

    with pytest.raises(SnapshotCorruptError) as exc_info:
        SnapshotStore(tmp_path).load("x", "fires")
    assert exc_info.value.path.endswith("x-fires.json")


def test_load_snapshot_with_invalid_utf8_raises(tmp_path: Path) -> None:
    (tmp_path / "x-fires.json").write_bytes(b'{"period": "\xff\xfe"}')

    with pytest.raises(SnapshotCorruptError) as exc_info:
        SnapshotStore(tmp_path).load("x", "fires")
    assert exc_info.value.path.endswith("x-fires.json")


def test_save_failure_raises_persistence_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(PersistenceFailedError):
        SnapshotStore(blocker).save("x", "fires", Snapshot())


def test_loads_snapshots_without_metadata_tag(tmp_path: Path) -> None:
    (tmp_path / "legacy-fires.json").write_text(
        json.dumps(
            {
                "period": {"from": "2024-08-11T00:00:00.000Z", "to": "2024-08-12T06:30:00.000Z"},
                "data": [
                    {
                        "event": "fire",
                        "position": [38.1, 23.9],
                        "timestamp": 1723370400,
                        "instrument": "VIIRS",
                        "satellite": "N20",
                        "brightness": 341.2,
                    },
                    {
                        "event": "announcement",
                        "tweetUrl": "https://x.com/112Greece/status/1",
                        "type": "evacuate",
                        "timestamp": 1723360000,
                        "from": [{"name": "Varnavas", "position": [38.22, 23.92]}],
                        "to": [{"name": "Marathon", "position": [38.15, 23.96]}],
                    },
                ],
                "meta": {"bounds": [[38.3, 23.5], [37.9, 24.1]]},
            }
        )
    )
    (tmp_path / "legacy-metars.json").write_text(
        json.dumps(
            {
                "period": {"from": "2024-08-11T00:00:00.000Z", "to": "2024-08-12T06:30:00.000Z"},
                "data": [],
                "meta": {"airportIcao": "LGAV", "wildfireStart": "2024-08-11T00:00:00.000Z"},
            }
        )
    )
    store = SnapshotStore(tmp_path)

    fires = store.load("legacy", "fires")
    metars = store.load("legacy", "metars")

    assert fires is not None and metars is not None
    assert fires.period.from_ == datetime(2024, 8, 11, tzinfo=UTC)
    assert isinstance(fires.data[0], FireEvent)
    announcement = fires.data[1]
    assert isinstance(announcement, AnnouncementEvent)
    assert announcement.from_[0].name == "Varnavas"
    assert fires.meta == BoundsMetadata(bounds=((38.3, 23.5), (37.9, 24.1)))
    assert metars.meta == MetarMetadata(airport_icao="LGAV", entity_start=datetime(2024, 8, 11, tzinfo=UTC))
