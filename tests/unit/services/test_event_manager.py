# -*- coding: utf-8 -*-
"""
Unit tests for the EventManager bus.

Tests topic fan-out, derived event chains, replay and subscriber isolation.
"""

import asyncio

import pytest

from services.infrastructure import events
from services.infrastructure.event_manager import EventManager, EventTopic
from utils.observability import metrics


def _drain_nowait(subscription):
    received = []
    while subscription.pending:
        received.append(subscription.get_nowait())
    return received


class TestDerivedChains:
    """Tests for the notify_* fan-out."""

    def test_shop_purchase_chain_order(self, event_manager):
        """Purchase emits ItemPurchased, ProgressUpdated, then GoldChanged(-price)."""
        event_manager.notify_shop_purchase("theme", 150)

        recent = event_manager.get_event_stats()["recent_events"]

        assert [(e["topic"], e["type"]) for e in recent] == [
            ("shop_purchase", "ItemPurchased"),
            ("mission_progress", "MissionProgressUpdated"),
            ("profile", "GoldChanged"),
        ]

    def test_free_purchase_has_no_gold_event(self, event_manager):
        profile = event_manager.profile.subscribe()

        event_manager.notify_shop_purchase("skin", 0)

        assert profile.pending == 0

    def test_gold_change_is_negative_price(self, event_manager):
        profile = event_manager.profile.subscribe()

        event_manager.notify_shop_purchase("badge", 300)

        assert _drain_nowait(profile) == [events.GoldChanged(-300)]

    def test_living_dex_added_also_signals_progress(self, event_manager):
        living_dex = event_manager.living_dex.subscribe()
        progress = event_manager.mission_progress.subscribe()

        event_manager.notify_living_dex_added(25, ("Electric",))

        assert _drain_nowait(living_dex) == [events.LivingDexAdded(25, ("Electric",))]
        assert _drain_nowait(progress) == [events.MissionProgressUpdated()]

    def test_removals_do_not_signal_progress(self, event_manager):
        progress = event_manager.mission_progress.subscribe()

        event_manager.notify_living_dex_removed(25)
        event_manager.notify_favorite_removed(25)
        event_manager.notify_team_deleted()

        assert progress.pending == 0

    def test_team_and_favorite_signal_progress(self, event_manager):
        progress = event_manager.mission_progress.subscribe()

        event_manager.notify_team_created()
        event_manager.notify_favorite_changed(4)

        assert _drain_nowait(progress) == [events.MissionProgressUpdated(), events.MissionProgressUpdated()]

    def test_mission_claimed_emits_single_event(self, event_manager):
        """The positive gold change is the caller's job."""
        progress = event_manager.mission_progress.subscribe()
        profile = event_manager.profile.subscribe()

        event_manager.notify_mission_claimed(1, 100, 50)

        assert _drain_nowait(progress) == [events.MissionClaimed(1, 100, 50)]
        assert profile.pending == 0


class TestTopicSemantics:
    """Tests for ordering, replay and unsubscribe."""

    def test_per_subscriber_order_is_publish_order(self):
        topic = EventTopic("numbers")
        subscription = topic.subscribe()

        for value in range(5):
            topic.publish(value)

        assert _drain_nowait(subscription) == [0, 1, 2, 3, 4]

    def test_plain_topic_drops_events_without_subscribers(self, event_manager):
        event_manager.notify_team_created()
        late = event_manager.team.subscribe()

        assert late.pending == 0

    def test_inventory_replays_last_event_to_late_subscriber(self, event_manager):
        event_manager.notify_skin_equipped("standard_male1")
        event_manager.notify_theme_equipped("Ocean Theme", ("#0077BE", "#00A8E8"))

        late = event_manager.inventory.subscribe()

        assert _drain_nowait(late) == [events.ThemeEquipped("Ocean Theme", ("#0077BE", "#00A8E8"))]

    def test_unsubscribe_stops_delivery_and_is_idempotent(self, event_manager):
        subscription = event_manager.favorite.subscribe()

        subscription.unsubscribe()
        subscription.unsubscribe()
        delivered = event_manager.favorite.publish(events.FavoriteChanged(1))

        assert delivered == 0
        assert subscription.pending == 0
        assert event_manager.favorite.subscriber_count == 0

    def test_publish_returns_delivery_count(self, event_manager):
        event_manager.refresh_all.subscribe()
        event_manager.refresh_all.subscribe()

        assert event_manager.refresh_all.publish(events.FullRefreshRequested()) == 2


class TestCallbackSubscribers:
    """Tests for pump-driven callback subscriptions."""

    @pytest.mark.asyncio
    async def test_callback_receives_events(self, event_manager):
        received = []
        subscription = event_manager.living_dex.subscribe(received.append)

        event_manager.notify_living_dex_added(1)
        event_manager.notify_living_dex_removed(1)
        await subscription.drain()

        assert received == [events.LivingDexAdded(1), events.LivingDexRemoved(1)]
        event_manager.close()

    @pytest.mark.asyncio
    async def test_async_callback_is_awaited(self, event_manager):
        received = []

        async def handler(event):
            await asyncio.sleep(0)
            received.append(event)

        subscription = event_manager.profile.subscribe(handler)
        event_manager.notify_gold_changed(10)
        await subscription.drain()

        assert received == [events.GoldChanged(10)]
        event_manager.close()

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_affect_others(self, event_manager):
        """A raising callback is logged; it keeps receiving and others are unaffected."""
        calls = []
        healthy = []

        def broken(event):
            calls.append(event)
            raise RuntimeError("subscriber bug")

        broken_sub = event_manager.team.subscribe(broken)
        healthy_sub = event_manager.team.subscribe(healthy.append)

        event_manager.notify_team_created()
        event_manager.notify_team_deleted()
        await broken_sub.drain()
        await healthy_sub.drain()

        assert len(calls) == 2
        assert healthy == [events.TeamCreated(), events.TeamDeleted()]
        event_manager.close()

    @pytest.mark.asyncio
    async def test_close_unsubscribes_everyone(self, event_manager):
        event_manager.inventory.subscribe(lambda event: None)
        event_manager.profile.subscribe(lambda event: None)

        event_manager.close()
        await asyncio.sleep(0)

        stats = event_manager.get_event_stats()
        assert all(count == 0 for count in stats["subscribers"].values())

    @pytest.mark.asyncio
    async def test_aclose_waits_for_pumps_to_stop(self, event_manager):
        started = asyncio.Event()

        async def slow(event):
            started.set()
            await asyncio.sleep(10)

        busy = event_manager.team.subscribe(slow)
        idle = event_manager.profile.subscribe(lambda event: None)
        event_manager.notify_team_deleted()
        await started.wait()

        await event_manager.aclose()

        assert busy._task.done() and busy._task.cancelled()
        assert idle._task.done()
        assert busy.active is False and idle.active is False

    @pytest.mark.asyncio
    async def test_subscription_aclose_after_unsubscribe(self, event_manager):
        subscription = event_manager.favorite.subscribe(lambda event: None)
        subscription.unsubscribe()

        await subscription.aclose()

        assert subscription._task.done()


class TestMonitoring:
    """Tests for history and metrics."""

    def test_publications_are_counted(self, event_manager):
        event_manager.notify_living_dex_added(1)
        event_manager.notify_living_dex_added(2)

        counters = metrics.get_stats()["counters"]

        assert counters["events.living_dex.published"] == 2
        assert counters["events.mission_progress.published"] == 2

    def test_history_is_bounded(self):
        manager = EventManager(max_history=3)
        for pokemon_id in range(5):
            manager.notify_living_dex_removed(pokemon_id)

        stats = manager.get_event_stats()

        assert stats["event_history_count"] == 3
