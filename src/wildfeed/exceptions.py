"""Custom exception hierarchy for wildfeed."""

from __future__ import annotations

from collections.abc import Sequence


class WildfeedError(Exception):
    """Base exception for all wildfeed errors."""


class ConfigurationInvalidError(WildfeedError):
    """Malformed or missing entity/feed configuration."""

    def __init__(self, message: str, *, source: str = "") -> None:
        self.source = source
        super().__init__(message)


class FetchFailedError(WildfeedError):
    """An upstream feed call failed (network, non-200, unusable body)."""

    def __init__(
        self,
        message: str,
        *,
        feed: str = "",
        status_code: int | None = None,
    ) -> None:
        self.feed = feed
        self.status_code = status_code
        super().__init__(message)


class ParseFailedError(WildfeedError):
    """A single upstream record could not be interpreted.

    Adapters drop the offending record and keep processing the batch.
    """

    def __init__(self, message: str, *, record: str = "") -> None:
        self.record = record
        super().__init__(message)


class PersistenceFailedError(WildfeedError):
    """A cache snapshot could not be written."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class SnapshotCorruptError(WildfeedError):
    """A persisted snapshot exists but cannot be read back."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class EntityNotFoundError(WildfeedError):
    """Query for an entity id that is not tracked."""

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"Entity not found: {entity_id}")


class InvalidFeedSelectionError(WildfeedError):
    """Query restricted to feeds that are not enabled for the entity."""

    def __init__(self, invalid: Sequence[str]) -> None:
        self.invalid = list(invalid)
        super().__init__(f"Invalid data source(s): {', '.join(self.invalid)}")
