"""Feed adapter capability and shared HTTP plumbing."""

from __future__ import annotations

import asyncio
import logging
import sys
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Any, ClassVar

import aiohttp

from wildfeed._redact import redact_for_log, redact_secrets
from wildfeed.config import WildfeedConfig
from wildfeed.exceptions import FetchFailedError
from wildfeed.models._base import BoundingBox
from wildfeed.models.entity import EntityConfig
from wildfeed.models.events import Event
from wildfeed.models.metadata import FeedMetadata

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FeedContext:
    """Process-wide resources shared by every adapter."""

    http: aiohttp.ClientSession
    config: WildfeedConfig


class FeedAdapter(ABC):
    """One upstream source of events for one entity.

    Subclasses hold the selection parameters (area, station, ...) their
    fetches depend on. The windowed cache asks :meth:`needs_full_refetch`
    before each update; when it returns ``True`` the cache calls
    :meth:`reinitialize` and replaces its data with the next fetch.
    """

    name: ClassVar[str]

    def __init__(self, entity: EntityConfig, context: FeedContext) -> None:
        self._entity_id = entity.id
        self._context = context
        self.reinitialize(entity)

    @abstractmethod
    async def fetch_interval(self, start: datetime, end: datetime) -> list[Event]:
        """Fetch all known events within ``[start, end]``.

        Raises
        ------
        FetchFailedError
            The upstream service could not be queried.
        """

    @abstractmethod
    def needs_full_refetch(self, entity: EntityConfig) -> bool:
        """Whether *entity* invalidates the parameters cached data was fetched with."""

    @abstractmethod
    def reinitialize(self, entity: EntityConfig) -> None:
        """Adopt the selection parameters of *entity*."""

    @abstractmethod
    def describe_state(self) -> FeedMetadata:
        """Selection parameters to persist next to cached events."""

    @abstractmethod
    def restore_state(self, metadata: FeedMetadata) -> None:
        """Restore parameters persisted by :meth:`describe_state`.

        Raises ``TypeError`` when *metadata* belongs to another feed kind.
        """

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def _log_prefix(self) -> str:
        return f"[{self._entity_id}-{self.name}]"

    @property
    def _secrets(self) -> tuple[str | None, ...]:
        return ()

    async def _get_text(self, url: str, *, params: Mapping[str, str] | None = None) -> str:
        """GET *url* and return the body, mapping failures to :class:`FetchFailedError`."""
        safe_url = redact_secrets(url, self._secrets)
        try:
            async with self._context.http.get(url, params=params) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise FetchFailedError(
                        f"HTTP {resp.status} from {safe_url}: {text[:200]}",
                        feed=self.name,
                        status_code=resp.status,
                    )
        except FetchFailedError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise FetchFailedError(
                f"Request to {safe_url} failed: {redact_secrets(str(exc), self._secrets)}",
                feed=self.name,
            ) from exc
        return text

    async def _pause(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)

    def _require_key(self, key: str | None, setting: str) -> str:
        if not key:
            raise FetchFailedError(f"{setting} is not configured", feed=self.name)
        return key

    def __repr__(self) -> str:
        return f"{type(self).__name__}(entity_id={self._entity_id!r})"


def iter_days(start: datetime, end: datetime) -> Iterator[date]:
    """UTC calendar days touched by ``[start, end]``, in order."""
    day = start.astimezone(UTC).date()
    last = end.astimezone(UTC).date()
    while day <= last:
        yield day
        day += timedelta(days=1)


def bounds_differ(a: BoundingBox, b: BoundingBox, tolerance: float = sys.float_info.epsilon) -> bool:
    """Whether any corner coordinate moved by more than *tolerance*."""
    return any(
        abs(coord_a - coord_b) > tolerance
        for corner_a, corner_b in zip(a, b, strict=True)
        for coord_a, coord_b in zip(corner_a, corner_b, strict=True)
    )


def describe_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Query parameters with secrets masked, for DEBUG logs."""
    redacted: dict[str, Any] = redact_for_log(dict(params))
    return redacted
