# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Composition root: builds every service once and wires the shared state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import pytz

from services.cache.pokemon_cache import PokemonCache
from services.config.config_service import ClientConfig, load_config
from services.datastore.base import DataStore
from services.datastore.pokeapi_client import PokeApiClient
from services.datastore.supabase_store import SupabaseDataStore
from services.exceptions import ConfigLoadError
from services.infrastructure.event_manager import EventManager
from services.inventory.inventory_service import InventoryService
from services.missions.mission_service import MissionService
from services.pokedex.pokedex_service import PokedexService
from services.profile.profile_service import ProfileService
from services.session.guest_session import GuestSession
from services.shop.shop_service import ShopService
from services.teams.team_service import TeamService
from services.theme.theme_service import ThemeService
from utils.logging_utils import set_debug_mode, set_log_timezone, setup_all_loggers


def initialize_logging(config: Optional[ClientConfig] = None, level: Optional[int] = None) -> logging.Logger:
    """Configure the ``umbra`` logger tree from the client configuration."""

    if config is not None:
        set_debug_mode(config.debug_mode)
        set_log_timezone(config.timezone)
    if level is None:
        level = logging.DEBUG if config is not None and config.debug_mode else logging.INFO
    return setup_all_loggers(level)


def resolve_timezone(
    config: Optional[ClientConfig],
    *,
    default: str = "Europe/Berlin",
    logger: Optional[logging.Logger] = None,
) -> pytz.BaseTzInfo:
    """Resolve the configured timezone, falling back to UTC when it is unknown."""

    active_logger = logger or logging.getLogger("umbra.bootstrap")
    timezone_str = config.timezone if config is not None else default

    try:
        tz = pytz.timezone(timezone_str)
        active_logger.info("Using timezone '%s'", timezone_str)
        return tz
    except pytz.exceptions.UnknownTimeZoneError:
        active_logger.warning(
            "Unknown timezone '%s'. Falling back to UTC for this session.", timezone_str
        )

    return pytz.timezone("UTC")


@dataclass(frozen=True)
class UmbraServices:
    """Aggregated services sharing one event bus, cache and guest flag."""

    config: ClientConfig
    data_store: DataStore
    event_manager: EventManager
    cache: PokemonCache
    guest_session: GuestSession
    pokedex: PokedexService
    missions: MissionService
    profile: ProfileService
    shop: ShopService
    inventory: InventoryService
    theme: ThemeService
    teams: TeamService

    def start(self) -> None:
        """Subscribe every service to the bus; must run inside the event loop."""
        self.profile.start()
        self.pokedex.start()
        self.missions.start()
        self.theme.start()

    async def close(self) -> None:
        await self.missions.aclose()
        await self.theme.aclose()
        await self.profile.aclose()
        await self.pokedex.close()
        await self.event_manager.aclose()
        await self.data_store.close()


def build_data_store(config: ClientConfig, access_token: Optional[str] = None) -> DataStore:
    if not config.has_remote_store:
        raise ConfigLoadError(
            "No remote store configured; set UMBRA_SUPABASE_URL and UMBRA_SUPABASE_KEY",
            error_code="REMOTE_STORE_MISSING",
        )
    pokeapi = PokeApiClient(
        base_url=config.pokeapi_base_url,
        timeout_seconds=config.request_timeout_seconds,
        max_concurrent_requests=config.max_concurrent_requests,
        batch_size=config.pokeapi_batch_size,
    )
    return SupabaseDataStore(
        config.supabase_url,
        config.supabase_key,
        access_token=access_token,
        timeout_seconds=config.request_timeout_seconds,
        pokeapi=pokeapi,
    )


def build_services(
    config: Optional[ClientConfig] = None,
    data_store: Optional[DataStore] = None,
    access_token: Optional[str] = None,
) -> UmbraServices:
    """Construct the service graph; nothing is started yet."""

    config = config or load_config()
    data_store = data_store or build_data_store(config, access_token)

    event_manager = EventManager()
    cache = PokemonCache(ttl_seconds=config.cache_ttl_seconds)
    guest_session = GuestSession()
    inventory = InventoryService(data_store, event_manager)

    return UmbraServices(
        config=config,
        data_store=data_store,
        event_manager=event_manager,
        cache=cache,
        guest_session=guest_session,
        pokedex=PokedexService(data_store, cache, event_manager, guest_session, limit=config.pokedex_limit),
        missions=MissionService(
            data_store,
            event_manager,
            refresh_delay_seconds=config.refresh_delay_seconds,
            message_display_seconds=config.message_display_seconds,
        ),
        profile=ProfileService(data_store, event_manager),
        shop=ShopService(data_store, event_manager),
        inventory=inventory,
        theme=ThemeService(data_store, event_manager, inventory),
        teams=TeamService(data_store, event_manager),
    )
