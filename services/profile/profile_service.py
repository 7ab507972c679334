# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Keeps the signed-in user's profile (gold, xp, level) current."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional

from services.datastore.base import DataStore
from services.exceptions import DataStoreError
from services.infrastructure import events
from services.infrastructure.event_manager import EventManager, Subscription
from services.infrastructure.observable import ObservableValue
from services.profile.models import UserProfile

logger = logging.getLogger("umbra.profile.profile_service")


class ProfileService:
    """Profile holder that follows gold/level changes published on the bus."""

    def __init__(self, data_store: DataStore, event_manager: EventManager):
        self.data_store = data_store
        self.event_manager = event_manager
        self.profile: ObservableValue[Optional[UserProfile]] = ObservableValue(None, name="profile")
        self._subscriptions: List[Subscription] = []

    async def load_profile(self, user_id: str) -> Optional[UserProfile]:
        """Fetch the profile; on failure the last known profile is kept."""
        try:
            profile = await self.data_store.fetch_user_profile(user_id)
        except DataStoreError as e:
            logger.warning("Could not load profile for %s: %s", user_id, e)
            return self.profile.value
        self.profile.set(profile)
        return profile

    @property
    def gold(self) -> int:
        profile = self.profile.value
        return profile.gold if profile is not None else 0

    def apply_event(self, event: events.ProfileEvent) -> None:
        profile = self.profile.value
        if profile is None:
            return

        if isinstance(event, events.GoldChanged):
            updated = replace(profile, gold=max(0, profile.gold + event.amount))
        elif isinstance(event, events.ProfileUpdated):
            updated = replace(
                profile,
                gold=event.new_gold if event.new_gold is not None else profile.gold,
                level=event.new_level if event.new_level is not None else profile.level,
            )
        elif isinstance(event, events.LevelUp):
            updated = replace(
                profile,
                level=event.new_level,
                equipped_title=event.new_title or profile.equipped_title,
            )
        else:
            return

        if updated != profile:
            self.profile.set(updated)
            logger.debug("Profile updated from %s: gold=%d level=%d", type(event).__name__, updated.gold, updated.level)

    def start(self) -> None:
        self._subscriptions.append(self.event_manager.profile.subscribe(self.apply_event))

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

    async def aclose(self) -> None:
        subscriptions = list(self._subscriptions)
        self.close()
        for subscription in subscriptions:
            await subscription.aclose()
