"""Entity configuration loading.

Entities are described by one JSON file each in a configuration
directory. Invalid files are logged and skipped so that one broken
entity never hides the others.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from wildfeed.exceptions import ConfigurationInvalidError
from wildfeed.models.entity import EntityConfig

_logger = logging.getLogger(__name__)


def parse_entity_config(text: str | bytes, *, source: str = "") -> EntityConfig:
    """Validate one entity configuration document.

    Raises
    ------
    ConfigurationInvalidError
        The document is not valid UTF-8 JSON or misses required fields.
    """
    try:
        return EntityConfig.model_validate_json(text)
    except ValidationError as exc:
        raise ConfigurationInvalidError(f"Invalid entity config in {source or '<string>'}: {exc}", source=source) from exc


def load_entity_configs(directory: str | os.PathLike[str]) -> dict[str, EntityConfig]:
    """Load every ``*.json`` entity configuration in *directory*.

    Returns a mapping of entity id to configuration, in file name order.
    A missing directory yields an empty mapping.
    """
    config_dir = Path(directory)
    try:
        files = sorted(path for path in config_dir.iterdir() if path.suffix == ".json")
    except OSError as exc:
        _logger.error("Error reading entity configs directory %s: %s", config_dir, exc)
        return {}

    entities: dict[str, EntityConfig] = {}
    for path in files:
        try:
            entity = parse_entity_config(path.read_bytes(), source=path.name)
        except OSError as exc:
            _logger.error("Error reading file %s: %s", path.name, exc)
            continue
        except ConfigurationInvalidError as exc:
            _logger.error("%s", exc)
            continue

        if entity.id in entities:
            _logger.warning("Duplicate entity id %s in %s, replacing earlier definition", entity.id, path.name)
        entities[entity.id] = entity

    _logger.info("Loaded %d valid entity configs: %s", len(entities), ", ".join(entities))
    return entities
