# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #

import json
from pathlib import Path

import pytest

from services.config.config_service import DEFAULT_POKEAPI_BASE_URL, load_config
from services.exceptions import ConfigLoadError


def test_defaults_without_file_or_env():
    config = load_config(env={})

    assert config.pokeapi_base_url == DEFAULT_POKEAPI_BASE_URL
    assert config.cache_ttl_seconds == 600.0
    assert config.has_remote_store is False


def test_env_overrides_file(tmp_path: Path):
    config_file = tmp_path / "umbra.json"
    config_file.write_text(json.dumps({"pokedex_limit": 151, "timezone": "UTC", "unknown": 1}), encoding="utf-8")

    config = load_config(env={"UMBRA_TIMEZONE": "Asia/Tokyo", "UMBRA_DEBUG_MODE": "yes"}, config_file=config_file)

    assert config.pokedex_limit == 151
    assert config.timezone == "Asia/Tokyo"
    assert config.debug_mode is True


def test_config_file_from_env(tmp_path: Path):
    config_file = tmp_path / "umbra.json"
    config_file.write_text(json.dumps({"supabase_url": "https://db", "supabase_key": "k"}), encoding="utf-8")

    config = load_config(env={"UMBRA_CONFIG_FILE": str(config_file)})

    assert config.has_remote_store is True


@pytest.mark.parametrize("raw", ["fast", "-5"])
def test_invalid_numbers_fall_back_to_default(raw):
    config = load_config(env={"UMBRA_CACHE_TTL_SECONDS": raw})

    assert config.cache_ttl_seconds == 600.0


def test_missing_file_uses_defaults(tmp_path: Path):
    config = load_config(env={}, config_file=tmp_path / "absent.json")

    assert config.pokedex_limit == 1025


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_broken_file_raises(tmp_path: Path, content):
    config_file = tmp_path / "umbra.json"
    config_file.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigLoadError) as exc_info:
        load_config(env={}, config_file=config_file)

    assert exc_info.value.error_code == "CONFIG_FILE_INVALID"
