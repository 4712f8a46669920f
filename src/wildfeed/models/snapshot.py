"""Covered interval and persisted snapshot models."""

from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import Field

from wildfeed.models._base import UtcDatetime, WildfeedModel
from wildfeed.models.events import Event
from wildfeed.models.metadata import FeedMetadata


class CoveredInterval(WildfeedModel):
    """Time range for which a feed's cache is complete.

    Both bounds are ``None`` while nothing has been cached.
    """

    from_: UtcDatetime | None = Field(default=None, alias="from")
    to: UtcDatetime | None = None

    @property
    def is_empty(self) -> bool:
        return self.from_ is None or self.to is None

    def covers(self, start: datetime, end: datetime, tolerance: float = 0.0) -> bool:
        """Whether ``[start, end]`` lies within this interval, give or take *tolerance* seconds."""
        if self.from_ is None or self.to is None:
            return False
        slack = timedelta(seconds=tolerance)
        return start >= self.from_ - slack and end <= self.to + slack

    def span(self, start: datetime, end: datetime) -> tuple[datetime, datetime]:
        """Smallest range containing both this interval and ``[start, end]``."""
        if self.from_ is None or self.to is None:
            return start, end
        return min(self.from_, start), max(self.to, end)

    def union(self, start: datetime, end: datetime) -> CoveredInterval:
        new_from, new_to = self.span(start, end)
        return CoveredInterval(from_=new_from, to=new_to)


class Snapshot(WildfeedModel):
    """On-disk representation of one windowed cache."""

    period: CoveredInterval = Field(default_factory=CoveredInterval)
    data: list[Event] = Field(default_factory=list)
    meta: FeedMetadata | None = None
