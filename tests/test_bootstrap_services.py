# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #

import logging

import pytest

from conftest import USER_ID
from services.bootstrap import build_data_store, build_services, resolve_timezone
from services.config.config_service import ClientConfig
from services.datastore.supabase_store import SupabaseDataStore
from services.exceptions import ConfigLoadError


def test_resolve_timezone_falls_back_to_utc():
    logger = logging.getLogger("umbra.bootstrap.test")

    tz = resolve_timezone(ClientConfig(timezone="Invalid/Zone"), logger=logger)

    assert tz.zone == "UTC"


def test_resolve_timezone_uses_config():
    assert resolve_timezone(ClientConfig(timezone="Asia/Tokyo")).zone == "Asia/Tokyo"


def test_build_data_store_requires_remote_settings():
    with pytest.raises(ConfigLoadError) as exc_info:
        build_data_store(ClientConfig())

    assert exc_info.value.error_code == "REMOTE_STORE_MISSING"


def test_build_data_store_applies_config():
    config = ClientConfig(supabase_url="https://db.example.com", supabase_key="k", pokeapi_batch_size=5)

    store = build_data_store(config, access_token="token")

    assert isinstance(store, SupabaseDataStore)
    assert store.access_token == "token"
    assert store.pokeapi.batch_size == 5


def test_services_share_one_bus_and_cache(fake_store):
    services = build_services(ClientConfig(cache_ttl_seconds=30), data_store=fake_store)

    assert services.pokedex.cache is services.cache
    assert services.cache.ttl_seconds == 30
    assert services.missions.event_manager is services.event_manager
    assert services.theme.inventory_service is services.inventory


@pytest.mark.asyncio
async def test_purchase_reaches_profile_and_missions(fake_store):
    """End to end over the shared bus: a purchase updates gold and resyncs missions."""
    services = build_services(
        ClientConfig(refresh_delay_seconds=0, message_display_seconds=0), data_store=fake_store
    )
    services.start()
    await services.profile.load_profile(USER_ID)
    await services.missions.load_missions(USER_ID)
    syncs_before = fake_store.calls.count("sync_mission_counters")

    item = next(item for item in fake_store.shop_items if item.name == "Ocean Theme")
    result = await services.shop.purchase_item(USER_ID, item, services.profile.gold)
    for subscription in services.missions._subscriptions + services.profile._subscriptions:
        await subscription.drain()

    assert result.success is True
    assert services.profile.gold == 350
    assert fake_store.calls.count("sync_mission_counters") > syncs_before
    await services.close()


@pytest.mark.asyncio
async def test_close_leaves_no_pending_tasks(fake_store):
    """Closing the service graph waits for every event pump and timer."""
    services = build_services(
        ClientConfig(refresh_delay_seconds=0, message_display_seconds=60), data_store=fake_store
    )
    services.start()
    await services.missions.load_missions(USER_ID)
    await services.missions.claim_reward(USER_ID, 1)
    subscriptions = (
        services.missions._subscriptions + services.profile._subscriptions
        + services.pokedex._subscriptions + [services.theme._subscription]
    )
    message_task = services.missions._message_task

    await services.close()

    assert message_task is not None and message_task.done()
    assert all(subscription._task.done() for subscription in subscriptions)
    assert all(not subscription.active for subscription in subscriptions)


def test_cli_reports_missing_remote_store(monkeypatch):
    import run

    for name in ("UMBRA_SUPABASE_URL", "UMBRA_SUPABASE_KEY", "UMBRA_CONFIG_FILE"):
        monkeypatch.delenv(name, raising=False)

    assert run.main(["--user-id", USER_ID]) == 2
