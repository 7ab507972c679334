#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #

"""
Event Manager - multi-topic publish/subscribe hub for cross-feature state changes.

Every topic is an independent broadcast channel with its own subscriber
list.  Publishing never blocks and never sees a subscriber failure: each
subscriber owns an ``asyncio.Queue`` that the publisher only appends to, and
the subscriber drains it at its own pace (FIFO per topic).  The inventory
topic additionally keeps the most recent event and replays it to late
subscribers.
"""

import asyncio
import inspect
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable, Deque, Dict, Generic, List, Optional, TypeVar

from services.infrastructure import events
from utils.observability import metrics

logger = logging.getLogger("umbra.infrastructure.event_manager")

E = TypeVar("E")


@dataclass(frozen=True)
class EventRecord:
    """History entry kept for debugging."""
    topic: str
    event: Any
    timestamp: datetime


class Subscription(Generic[E]):
    """One subscriber's view of a topic.

    Without a callback the owner reads events with :meth:`get` or
    ``async for``.  With a callback a pump task on the running loop awaits
    the queue and invokes the callback for every event in order.
    """

    def __init__(self, topic: "EventTopic[E]", callback: Optional[Callable[[E], Any]] = None):
        self._topic = topic
        self._callback = callback
        self._queue: "asyncio.Queue[E]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self.active = True

    @property
    def topic_name(self) -> str:
        return self._topic.name

    @property
    def pending(self) -> int:
        """Number of delivered events not yet consumed."""
        return self._queue.qsize()

    def deliver(self, event: E) -> bool:
        if not self.active:
            return False
        self._queue.put_nowait(event)
        return True

    async def get(self) -> E:
        event = await self._queue.get()
        self._queue.task_done()
        return event

    def get_nowait(self) -> E:
        """Return the next queued event; raises ``asyncio.QueueEmpty`` when none."""
        event = self._queue.get_nowait()
        self._queue.task_done()
        return event

    def __aiter__(self):
        return self

    async def __anext__(self) -> E:
        if not self.active and self._queue.empty():
            raise StopAsyncIteration
        return await self.get()

    def start(self) -> None:
        """Start the callback pump on the running event loop."""
        if self._callback is None or self._task is not None:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._pump(), name=f"umbra-events-{self._topic.name}")

    async def _pump(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                result = self._callback(event)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    "Error in subscriber of topic %s handling %s: %s",
                    self._topic.name, type(event).__name__, e, exc_info=True
                )
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every delivered event has been handled by the callback."""
        await self._queue.join()

    def unsubscribe(self) -> None:
        """Detach from the topic and stop the pump (idempotent)."""
        if not self.active:
            return
        self.active = False
        self._topic._remove(self)
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def aclose(self) -> None:
        """Unsubscribe and wait for the pump to finish cancelling."""
        self.unsubscribe()
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass


class EventTopic(Generic[E]):
    """A named broadcast channel carrying one family of events."""

    def __init__(
        self,
        name: str,
        replay: bool = False,
        on_publish: Optional[Callable[[str, Any], None]] = None,
    ):
        self.name = name
        self.replay = replay
        self._on_publish = on_publish
        self._subscribers: List[Subscription[E]] = []
        self._last_event: Optional[E] = None
        self._lock = RLock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def last_event(self) -> Optional[E]:
        """Most recent event retained for replay (always None on plain topics)."""
        return self._last_event

    def publish(self, event: E) -> int:
        """Enqueue *event* for every current subscriber and return the delivery count.

        Does not wait for subscribers.  With no subscribers the event is
        dropped, except for the replay slot of a replaying topic.
        """
        with self._lock:
            if self.replay:
                self._last_event = event
            subscribers = list(self._subscribers)
            delivered = sum(1 for subscription in subscribers if subscription.deliver(event))

        if self._on_publish is not None:
            self._on_publish(self.name, event)

        logger.debug("Event emitted: %s on %s (%d subscribers)", type(event).__name__, self.name, delivered)
        return delivered

    def subscribe(self, callback: Optional[Callable[[E], Any]] = None) -> Subscription[E]:
        """Attach a new subscriber.

        A replaying topic hands the retained event to the new subscriber
        first.  A callback subscription must be created on a running loop.
        """
        subscription: Subscription[E] = Subscription(self, callback)
        with self._lock:
            self._subscribers.append(subscription)
            if self.replay and self._last_event is not None:
                subscription.deliver(self._last_event)

        subscription.start()
        logger.debug("Registered subscriber for topic: %s", self.name)
        return subscription

    def _remove(self, subscription: Subscription[E]) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    def close(self) -> None:
        for subscription in list(self._subscribers):
            subscription.unsubscribe()
        with self._lock:
            self._last_event = None

    async def aclose(self) -> None:
        subscriptions = list(self._subscribers)
        self.close()
        for subscription in subscriptions:
            await subscription.aclose()


class EventManager:
    """
    Process-wide event hub - enables decoupled feature communication.

    Services publish domain changes through the ``notify_*`` helpers, which
    enqueue the complete fan-out of one action before returning, and
    subscribe to the individual topics they care about.
    """

    def __init__(self, max_history: int = 100):
        self.logger = logger.getChild(self.__class__.__name__)
        self._event_history: Deque[EventRecord] = deque(maxlen=max_history)

        self.living_dex: EventTopic[events.LivingDexEvent] = self._topic("living_dex")
        self.favorite: EventTopic[events.FavoriteEvent] = self._topic("favorite")
        self.mission_progress: EventTopic[events.MissionProgressEvent] = self._topic("mission_progress")
        self.team: EventTopic[events.TeamEvent] = self._topic("team")
        self.shop_purchase: EventTopic[events.ShopPurchaseEvent] = self._topic("shop_purchase")
        self.profile: EventTopic[events.ProfileEvent] = self._topic("profile")
        self.inventory: EventTopic[events.InventoryEvent] = self._topic("inventory", replay=True)
        self.refresh_all: EventTopic[events.RefreshEvent] = self._topic("refresh_all")

        self.logger.info("Event Manager initialized with %d topics", len(self.topics))

    def _topic(self, name: str, replay: bool = False) -> EventTopic:
        return EventTopic(name, replay=replay, on_publish=self._record)

    @property
    def topics(self) -> Dict[str, EventTopic]:
        return {
            topic.name: topic
            for topic in (
                self.living_dex, self.favorite, self.mission_progress, self.team,
                self.shop_purchase, self.profile, self.inventory, self.refresh_all,
            )
        }

    def _record(self, topic: str, event: Any) -> None:
        self._event_history.append(
            EventRecord(topic=topic, event=event, timestamp=datetime.now(timezone.utc))
        )
        metrics.increment(f"events.{topic}.published")

    # ------------------------------------------------------------------
    # Collection / favorites
    # ------------------------------------------------------------------
    def notify_living_dex_added(self, pokemon_id: int, pokemon_types=()) -> None:
        self.living_dex.publish(events.LivingDexAdded(pokemon_id, tuple(pokemon_types)))
        self.mission_progress.publish(events.MissionProgressUpdated())

    def notify_living_dex_removed(self, pokemon_id: int) -> None:
        self.living_dex.publish(events.LivingDexRemoved(pokemon_id))

    def notify_favorite_changed(self, pokemon_id: int) -> None:
        self.favorite.publish(events.FavoriteChanged(pokemon_id))
        self.mission_progress.publish(events.MissionProgressUpdated())

    def notify_favorite_removed(self, pokemon_id: int) -> None:
        self.favorite.publish(events.FavoriteRemoved(pokemon_id))

    # ------------------------------------------------------------------
    # Missions / teams / shop
    # ------------------------------------------------------------------
    def notify_mission_progress_updated(self) -> None:
        self.mission_progress.publish(events.MissionProgressUpdated())

    def notify_mission_claimed(self, mission_id: int, gold_reward: int, xp_reward: int) -> None:
        # The caller emits the positive gold change separately.
        self.mission_progress.publish(events.MissionClaimed(mission_id, gold_reward, xp_reward))

    def notify_team_created(self) -> None:
        self.team.publish(events.TeamCreated())
        self.mission_progress.publish(events.MissionProgressUpdated())

    def notify_team_deleted(self) -> None:
        self.team.publish(events.TeamDeleted())

    def notify_shop_purchase(self, category: str, gold_spent: int = 0) -> None:
        self.shop_purchase.publish(events.ItemPurchased(category))
        self.mission_progress.publish(events.MissionProgressUpdated())
        if gold_spent > 0:
            self.profile.publish(events.GoldChanged(-gold_spent))

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------
    def notify_gold_changed(self, amount: int) -> None:
        self.profile.publish(events.GoldChanged(amount))

    def notify_profile_updated(self, new_gold: Optional[int] = None, new_level: Optional[int] = None) -> None:
        self.profile.publish(events.ProfileUpdated(new_gold=new_gold, new_level=new_level))

    def notify_level_up(self, new_level: int, new_title: Optional[str] = None) -> None:
        self.profile.publish(events.LevelUp(new_level, new_title))

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------
    def notify_skin_equipped(self, skin_name: str) -> None:
        self.inventory.publish(events.SkinEquipped(skin_name))

    def notify_badge_equipped(self, badge_name: str) -> None:
        self.inventory.publish(events.BadgeEquipped(badge_name))

    def notify_theme_equipped(self, theme_name: str, theme_colors=()) -> None:
        self.inventory.publish(events.ThemeEquipped(theme_name, tuple(theme_colors)))

    def notify_name_color_equipped(self, color_name: str, colors=()) -> None:
        self.inventory.publish(events.NameColorEquipped(color_name, tuple(colors)))

    def notify_title_equipped(self, title_name: str) -> None:
        self.inventory.publish(events.TitleEquipped(title_name))

    def notify_inventory_refresh_needed(self) -> None:
        self.inventory.publish(events.InventoryRefreshNeeded())

    def request_full_refresh(self) -> None:
        self.refresh_all.publish(events.FullRefreshRequested())

    # ------------------------------------------------------------------
    # Monitoring / teardown
    # ------------------------------------------------------------------
    def get_event_stats(self) -> Dict[str, Any]:
        """Get event system statistics for monitoring."""
        history = list(self._event_history)
        return {
            'subscribers': {
                name: topic.subscriber_count for name, topic in self.topics.items()
            },
            'event_history_count': len(history),
            'recent_events': [
                {
                    'topic': record.topic,
                    'type': type(record.event).__name__,
                    'timestamp': record.timestamp.isoformat()
                }
                for record in history[-10:]
            ]
        }

    def close(self) -> None:
        """Unsubscribe every subscriber of every topic."""
        for topic in self.topics.values():
            topic.close()
        self.logger.debug("Event Manager closed")

    async def aclose(self) -> None:
        """Like :meth:`close`, but also waits for every callback pump to stop."""
        for topic in self.topics.values():
            await topic.aclose()
        self.logger.debug("Event Manager closed")
