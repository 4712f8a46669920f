"""Service configuration for wildfeed."""

from __future__ import annotations

import dataclasses
import os
from typing import Any


@dataclasses.dataclass(frozen=True)
class WildfeedConfig:
    """Service configuration.

    Parameters
    ----------
    data_dir : str
        Directory holding one JSON snapshot per (entity, feed).
    entity_config_dir : str
        Directory of entity configuration files (``*.json``).
    host : str
        Interface the HTTP query endpoint binds to.
    port : int
        Port of the HTTP query endpoint.
    refresh_interval : float
        Seconds between scheduler ticks.
    coverage_tolerance : float
        Slack in seconds when deciding whether the covered interval
        already satisfies the desired one.
    metar_api_key : str or None
        API key for the METAR archive.
    metar_request_delay : float
        Pause between successive METAR archive requests.
    firms_api_key : str or None
        Map key for the FIRMS hotspot archive.
    firms_request_delay : float
        Pause between successive FIRMS requests.
    http_timeout : float
        Total timeout for a single upstream HTTP request.
    """

    data_dir: str = "./data"
    entity_config_dir: str = "./wildfire-configs"
    host: str = "0.0.0.0"
    port: int = 3000
    refresh_interval: float = 60.0
    coverage_tolerance: float = 1.0
    metar_api_key: str | None = None
    metar_request_delay: float = 2.0
    firms_api_key: str | None = None
    firms_request_delay: float = 1.0
    http_timeout: float = 60.0

    @classmethod
    def from_env(cls, **overrides: Any) -> WildfeedConfig:
        """Create configuration from ``WILDFEED_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "WILDFEED_DATA_DIR": "data_dir",
            "WILDFEED_ENTITY_CONFIG_DIR": "entity_config_dir",
            "WILDFEED_HOST": "host",
            "WILDFEED_METAR_API_KEY": "metar_api_key",
            "WILDFEED_FIRMS_API_KEY": "firms_api_key",
        }
        _ENV_FLOAT_MAP = {
            "WILDFEED_REFRESH_INTERVAL": "refresh_interval",
            "WILDFEED_COVERAGE_TOLERANCE": "coverage_tolerance",
            "WILDFEED_METAR_REQUEST_DELAY": "metar_request_delay",
            "WILDFEED_FIRMS_REQUEST_DELAY": "firms_request_delay",
            "WILDFEED_HTTP_TIMEOUT": "http_timeout",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = float(val)

        port_env = env.get("WILDFEED_PORT")
        if port_env is not None and "port" not in overrides:
            config_kwargs["port"] = int(port_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
