# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""
Client Configuration Service - single source of truth for runtime settings.

Settings are resolved in three layers, later layers winning:

1. Defaults declared on :class:`ClientConfig`
2. An optional JSON file (``UMBRA_CONFIG_FILE`` or the ``config_file`` argument)
3. ``UMBRA_*`` environment variables
"""

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from services.exceptions import ConfigLoadError

logger = logging.getLogger('umbra.config_service')

DEFAULT_POKEAPI_BASE_URL = "https://pokeapi.co/api/v2/"


@dataclass(frozen=True)
class ClientConfig:
    """Immutable client configuration."""

    supabase_url: str = ""
    supabase_key: str = ""
    pokeapi_base_url: str = DEFAULT_POKEAPI_BASE_URL
    cache_ttl_seconds: float = 600.0
    pokedex_limit: int = 1025
    pokeapi_batch_size: int = 40
    request_timeout_seconds: float = 10.0
    max_concurrent_requests: int = 10
    refresh_delay_seconds: float = 0.3
    message_display_seconds: float = 3.0
    timezone: str = "Europe/Berlin"
    debug_mode: bool = False

    @property
    def has_remote_store(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


# Environment variable -> config field
ENV_OVERRIDES: Dict[str, str] = {
    'UMBRA_SUPABASE_URL': 'supabase_url',
    'UMBRA_SUPABASE_KEY': 'supabase_key',
    'UMBRA_POKEAPI_URL': 'pokeapi_base_url',
    'UMBRA_CACHE_TTL_SECONDS': 'cache_ttl_seconds',
    'UMBRA_POKEDEX_LIMIT': 'pokedex_limit',
    'UMBRA_POKEAPI_BATCH_SIZE': 'pokeapi_batch_size',
    'UMBRA_REQUEST_TIMEOUT': 'request_timeout_seconds',
    'UMBRA_MAX_CONCURRENT_REQUESTS': 'max_concurrent_requests',
    'UMBRA_REFRESH_DELAY_SECONDS': 'refresh_delay_seconds',
    'UMBRA_MESSAGE_DISPLAY_SECONDS': 'message_display_seconds',
    'UMBRA_TIMEZONE': 'timezone',
    'UMBRA_DEBUG_MODE': 'debug_mode',
}

_FIELD_TYPES = {f.name: f.type for f in fields(ClientConfig)}
_DEFAULTS = ClientConfig()


def _coerce(name: str, raw: Any) -> Any:
    """Convert *raw* to the declared type of field *name*.

    Invalid values fall back to the default with a warning.
    """
    field_type = _FIELD_TYPES[name]
    default = getattr(_DEFAULTS, name)
    try:
        if field_type in ('bool', bool):
            if isinstance(raw, bool):
                return raw
            return str(raw).strip().lower() in ('1', 'true', 'yes', 'on')
        if field_type in ('int', int):
            value = int(raw)
        elif field_type in ('float', float):
            value = float(raw)
        else:
            return str(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid value %r for %s, using default %r", raw, name, default)
        return default

    if value < 0:
        logger.warning("Negative value %r for %s, using default %r", raw, name, default)
        return default
    return value


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigLoadError(
            f"Could not read config file {path}: {e}",
            error_code="CONFIG_FILE_INVALID",
            details={'path': str(path)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigLoadError(
            f"Config file {path} must contain a JSON object",
            error_code="CONFIG_FILE_INVALID",
            details={'path': str(path)},
        )
    return data


def load_config(
    env: Optional[Mapping[str, str]] = None,
    config_file: Optional[Union[str, Path]] = None,
) -> ClientConfig:
    """Load the client configuration.

    Args:
        env: Mapping used instead of ``os.environ`` (handy for tests)
        config_file: Optional JSON file; defaults to ``UMBRA_CONFIG_FILE``

    Raises:
        ConfigLoadError: if the config file exists but is not a JSON object
    """
    source_env = os.environ if env is None else env
    overrides: Dict[str, Any] = {}

    file_path = config_file or source_env.get('UMBRA_CONFIG_FILE')
    if file_path:
        for key, value in _read_config_file(Path(file_path)).items():
            if key in _FIELD_TYPES:
                overrides[key] = _coerce(key, value)
            else:
                logger.debug("Ignoring unknown config key %s", key)

    for env_key, field_name in ENV_OVERRIDES.items():
        if env_key in source_env:
            overrides[field_name] = _coerce(field_name, source_env[env_key])

    config = replace(_DEFAULTS, **overrides)
    logger.debug(
        "Configuration loaded (remote store: %s, cache TTL: %ss)",
        config.has_remote_store, config.cache_ttl_seconds
    )
    return config
