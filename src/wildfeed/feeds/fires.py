"""Satellite hotspot detections from the NASA FIRMS area API.

Endpoint:
  - GET https://firms.modaps.eosdis.nasa.gov/api/area/csv/<key>/<source>/<area>/1/<date>
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import UTC, datetime
from typing import Any

from wildfeed.exceptions import FetchFailedError, ParseFailedError
from wildfeed.feeds.base import FeedAdapter, bounds_differ, iter_days
from wildfeed.models._base import BoundingBox
from wildfeed.models.entity import EntityConfig
from wildfeed.models.events import Event, FireEvent
from wildfeed.models.metadata import BoundsMetadata, FeedMetadata

_logger = logging.getLogger(__name__)

FIRMS_AREA_URL = "https://firms.modaps.eosdis.nasa.gov/api/area/csv"

FIRMS_SOURCES: tuple[str, ...] = ("VIIRS_NOAA20_NRT", "VIIRS_NOAA21_NRT", "MODIS_NRT")

REQUIRED_COLUMNS: tuple[str, ...] = ("latitude", "longitude", "acq_date", "acq_time", "satellite", "instrument")


def _safe_float(value: Any) -> float | None:
    """Convert a value to float, returning None on failure."""
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (ValueError, TypeError):
        return None
    if result != result:  # NaN
        return None
    return result


def area_coordinates(bounds: BoundingBox) -> str:
    """FIRMS area string ``west,south,east,north``."""
    (north, west), (south, east) = bounds
    return f"{west},{south},{east},{north}"


def _parse_row(row: dict[str, str]) -> FireEvent:
    latitude = _safe_float(row.get("latitude"))
    longitude = _safe_float(row.get("longitude"))
    if latitude is None or longitude is None:
        raise ParseFailedError("Missing coordinates", record=str(row))

    acq_time = (row.get("acq_time") or "").strip().zfill(4)
    try:
        acquired = datetime.strptime(f"{(row.get('acq_date') or '').strip()} {acq_time}", "%Y-%m-%d %H%M")
    except ValueError as exc:
        raise ParseFailedError(f"Invalid acquisition time: {exc}", record=str(row)) from exc

    return FireEvent(
        timestamp=int(acquired.replace(tzinfo=UTC).timestamp()),
        position=(latitude, longitude),
        instrument=row.get("instrument") or "",
        satellite=row.get("satellite") or "",
        brightness=_safe_float(row.get("brightness")),
    )


def parse_firms_csv(text: str, *, start: datetime, end: datetime, log_prefix: str = "") -> list[FireEvent]:
    """Parse a FIRMS CSV body, keeping detections within ``[start, end]``.

    An empty body or a header without rows means no detections.

    Raises
    ------
    FetchFailedError
        The body is not a FIRMS CSV (e.g. an error message instead of a header).
    """
    body = text.strip()
    if not body:
        return []

    reader = csv.DictReader(io.StringIO(body))
    headers = [name.strip() for name in reader.fieldnames or []]
    reader.fieldnames = headers
    missing = [column for column in REQUIRED_COLUMNS if column not in headers]
    if missing:
        raise FetchFailedError(f"Missing required columns: {', '.join(missing)} in {body[:200]!r}")
    if "brightness" not in headers:
        _logger.warning("%s Brightness column is missing, fires will have no brightness", log_prefix)

    lo, hi = start.timestamp(), end.timestamp()
    fires: list[FireEvent] = []
    for row in reader:
        try:
            fire = _parse_row(row)
        except ParseFailedError as exc:
            _logger.warning("%s Skipping FIRMS row: %s", log_prefix, exc)
            continue
        if lo <= fire.timestamp <= hi:
            fires.append(fire)
    return fires


class FiresFeed(FeedAdapter):
    """Hotspots inside the entity's bounding box, from every FIRMS source."""

    name = "fires"

    def reinitialize(self, entity: EntityConfig) -> None:
        self._bounds = entity.bounding_box

    def needs_full_refetch(self, entity: EntityConfig) -> bool:
        return bounds_differ(self._bounds, entity.bounding_box)

    def describe_state(self) -> FeedMetadata:
        return BoundsMetadata(bounds=self._bounds)

    def restore_state(self, metadata: FeedMetadata) -> None:
        if not isinstance(metadata, BoundsMetadata):
            raise TypeError(f"Expected bounds metadata, got {metadata.kind!r}")
        self._bounds = metadata.bounds

    @property
    def _secrets(self) -> tuple[str | None, ...]:
        return (self._context.config.firms_api_key,)

    async def fetch_interval(self, start: datetime, end: datetime) -> list[Event]:
        config = self._context.config
        map_key = self._require_key(config.firms_api_key, "FIRMS map key")
        area = area_coordinates(self._bounds)
        prefix = self._log_prefix()
        _logger.info("%s Fetching fires from %s to %s", prefix, start.isoformat(), end.isoformat())

        fires: list[Event] = []
        first = True
        for day in iter_days(start, end):
            for source in FIRMS_SOURCES:
                if not first:
                    await self._pause(config.firms_request_delay)
                first = False

                url = f"{FIRMS_AREA_URL}/{map_key}/{source}/{area}/1/{day.isoformat()}"
                _logger.debug("%s Fetching fires for %s from %s", prefix, day, source)
                text = await self._get_text(url)
                try:
                    day_fires = parse_firms_csv(text, start=start, end=end, log_prefix=prefix)
                except FetchFailedError as exc:
                    raise FetchFailedError(f"{source} {day}: {exc}", feed=self.name) from exc
                fires.extend(day_fires)
                _logger.info("%s Fetched %d fires for %s from %s", prefix, len(day_fires), day, source)

        return fires
