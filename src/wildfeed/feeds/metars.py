"""Weather reports (METAR) from the metar-taf.com archive.

Endpoint:
  - GET https://api.metar-taf.com/metar-archive (one UTC day per request)
"""

from __future__ import annotations

import json
import logging
import re
from datetime import UTC, datetime
from typing import Any

from wildfeed.exceptions import FetchFailedError, ParseFailedError
from wildfeed.feeds.base import FeedAdapter, describe_params, iter_days
from wildfeed.models.entity import EntityConfig
from wildfeed.models.events import Event, MetarEvent, Wind
from wildfeed.models.metadata import FeedMetadata, MetarMetadata

_logger = logging.getLogger(__name__)

METAR_ARCHIVE_URL = "https://api.metar-taf.com/metar-archive"
METAR_API_VERSION = "2.3"

_TIME_RE = re.compile(r"^(?P<day>\d{2})(?P<hour>\d{2})(?P<minute>\d{2})Z?$")
_WIND_RE = re.compile(r"^(?P<direction>\d{3}|VRB)(?P<speed>\d{2,3})(?:G(?P<gust>\d{2,3}))?KT$")
_TEMP_DEW_RE = re.compile(r"^(?P<temp>M?\d{1,2})/(?P<dew>M?\d{1,2})$")
_QNH_RE = re.compile(r"^Q(?P<qnh>\d{4})$")


def _metar_int(value: str) -> int:
    """Parse a METAR temperature, where a leading ``M`` means minus."""
    if value.startswith("M"):
        return -int(value[1:])
    return int(value)


def resolve_report_time(day: int, hour: int, minute: int, reference: datetime) -> datetime:
    """Resolve a ``DDHHMM`` report time against *reference*.

    Reports only carry the day of month, so the year and month come from
    *reference* (the entity start). Times before the reference belong to
    the following month.
    """
    reference = reference.astimezone(UTC)
    year, month = reference.year, reference.month
    try:
        resolved = datetime(year, month, day, hour, minute, tzinfo=UTC)
        if resolved < reference:
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)
            resolved = datetime(year, month, day, hour, minute, tzinfo=UTC)
    except ValueError as exc:
        raise ParseFailedError(f"Invalid report time {day:02d}{hour:02d}{minute:02d}Z: {exc}") from exc
    return resolved


def parse_metar(raw: str, reference: datetime) -> MetarEvent:
    """Parse one raw METAR report.

    Raises
    ------
    ParseFailedError
        The report is too short, has no valid time group, or lacks
        temperature, dew point or QNH.
    """
    parts = raw.split()
    if len(parts) < 5:
        raise ParseFailedError("Report too short", record=raw)

    icao_id = parts[0]
    time_match = _TIME_RE.match(parts[1])
    if time_match is None:
        raise ParseFailedError(f"Invalid time group {parts[1]!r}", record=raw)
    observed = resolve_report_time(
        int(time_match["day"]),
        int(time_match["hour"]),
        int(time_match["minute"]),
        reference,
    )

    wind_index = 2
    if parts[wind_index] == "AUTO":
        wind_index += 1

    wind = Wind()
    wind_match = _WIND_RE.match(parts[wind_index]) if wind_index < len(parts) else None
    if wind_match is not None:
        variable = wind_match["direction"] == "VRB"
        gust = wind_match["gust"]
        wind = Wind(
            direction="VRB" if variable else int(wind_match["direction"]),
            speed=int(wind_match["speed"]),
            gusting=int(gust) if gust else None,
            variable=variable,
        )

    temperature: int | None = None
    dew_point: int | None = None
    qnh: int | None = None
    for part in parts[2:]:
        if temperature is None and (temp_match := _TEMP_DEW_RE.match(part)):
            temperature = _metar_int(temp_match["temp"])
            dew_point = _metar_int(temp_match["dew"])
        elif qnh is None and (qnh_match := _QNH_RE.match(part)):
            qnh = int(qnh_match["qnh"])

    if temperature is None or dew_point is None or qnh is None:
        raise ParseFailedError("Missing temperature, dew point or QNH", record=raw)

    return MetarEvent(
        timestamp=int(observed.timestamp()),
        icao_id=icao_id,
        raw=raw,
        wind=wind,
        temperature=temperature,
        dew_point=dew_point,
        qnh=qnh,
    )


class MetarsFeed(FeedAdapter):
    """METAR reports of the entity's reference airport."""

    name = "metars"

    def reinitialize(self, entity: EntityConfig) -> None:
        self._airport_icao = entity.metar_airport
        self._entity_start = entity.start

    def needs_full_refetch(self, entity: EntityConfig) -> bool:
        return self._airport_icao != entity.metar_airport

    def describe_state(self) -> FeedMetadata:
        return MetarMetadata(airport_icao=self._airport_icao, entity_start=self._entity_start)

    def restore_state(self, metadata: FeedMetadata) -> None:
        if not isinstance(metadata, MetarMetadata):
            raise TypeError(f"Expected metar metadata, got {metadata.kind!r}")
        self._airport_icao = metadata.airport_icao
        self._entity_start = metadata.entity_start

    @property
    def _secrets(self) -> tuple[str | None, ...]:
        return (self._context.config.metar_api_key,)

    async def _fetch_reports(self, params: dict[str, str]) -> list[Any]:
        text = await self._get_text(METAR_ARCHIVE_URL, params=params)
        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FetchFailedError(f"Invalid JSON from METAR archive: {text[:200]}", feed=self.name) from exc
        reports = body.get("metars") if isinstance(body, dict) else None
        if not isinstance(reports, list):
            raise FetchFailedError(f"Missing 'metars' field in METAR archive response: {text[:200]}", feed=self.name)
        return reports

    async def fetch_interval(self, start: datetime, end: datetime) -> list[Event]:
        config = self._context.config
        api_key = self._require_key(config.metar_api_key, "METAR API key")
        prefix = self._log_prefix()

        events: list[Event] = []
        for index, day in enumerate(iter_days(start, end)):
            if index:
                await self._pause(config.metar_request_delay)

            params = {
                "api_key": api_key,
                "v": METAR_API_VERSION,
                "locale": "en-US",
                "id": self._airport_icao,
                "date": day.isoformat(),
            }
            _logger.debug("%s Fetching metars for %s: %s", prefix, day, describe_params(params))
            reports = await self._fetch_reports(params)

            for report in reports:
                raw = report.get("raw") if isinstance(report, dict) else None
                if not isinstance(raw, str):
                    _logger.warning("%s Failed to parse METAR: %r", prefix, report)
                    continue
                raw = raw.removeprefix("METAR ").strip()
                try:
                    events.append(parse_metar(raw, self._entity_start))
                except ParseFailedError as exc:
                    _logger.warning("%s Failed to parse METAR %r: %s", prefix, raw, exc)

            _logger.info("%s Fetched %d metars for %s", prefix, len(reports), day)

        return events
