"""JSON snapshot persistence, one file per (entity, feed)."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from wildfeed.exceptions import PersistenceFailedError, SnapshotCorruptError
from wildfeed.models.snapshot import Snapshot

_logger = logging.getLogger(__name__)


class SnapshotStore:
    """Reads and writes cache snapshots below *data_dir*.

    Writes go through a temporary sibling file and ``os.replace`` so a
    snapshot on disk is always either the previous or the new version.
    """

    def __init__(self, data_dir: str | os.PathLike[str]) -> None:
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, entity_id: str, feed_id: str) -> Path:
        return self._data_dir / f"{entity_id}-{feed_id}.json"

    def load(self, entity_id: str, feed_id: str) -> Snapshot | None:
        """Return the stored snapshot, or ``None`` if the feed was never persisted.

        Raises
        ------
        SnapshotCorruptError
            The file exists but cannot be read or validated.
        """
        path = self.path_for(entity_id, feed_id)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise SnapshotCorruptError(f"Cannot read snapshot {path}: {exc}", path=str(path)) from exc

        try:
            return Snapshot.model_validate_json(raw)
        except ValidationError as exc:
            raise SnapshotCorruptError(f"Invalid snapshot {path}: {exc}", path=str(path)) from exc

    def save(self, entity_id: str, feed_id: str, snapshot: Snapshot) -> Path:
        """Write *snapshot* and return its path.

        Raises
        ------
        PersistenceFailedError
            The snapshot could not be written.
        """
        path = self.path_for(entity_id, feed_id)
        tmp_path = path.with_name(f"{path.name}.tmp")
        payload = snapshot.model_dump_json(by_alias=True, indent=2)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            raise PersistenceFailedError(f"Error saving data to {path}: {exc}", path=str(path)) from exc
        _logger.debug("Snapshot saved to %s", path)
        return path
