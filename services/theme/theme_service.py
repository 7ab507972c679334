# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Live app theme and name gradient, following inventory equips."""

from __future__ import annotations

import logging
from typing import List, Optional

from services.datastore.base import DataStore
from services.exceptions import DataStoreError, InventoryServiceError
from services.infrastructure import events
from services.infrastructure.event_manager import EventManager, Subscription
from services.infrastructure.observable import ObservableValue
from services.inventory.inventory_service import InventoryService
from services.theme.color_resolver import (
    DEFAULT_DISPLAY_COLOR,
    DEFAULT_THEME_SENTINELS,
    get_display_colors,
    needs_name_lookup,
    parse_colors,
)

logger = logging.getLogger("umbra.theme.theme_service")


class ThemeService:
    """Holds ``theme_colors`` (None means the built-in palette) and ``name_colors``."""

    def __init__(self, data_store: DataStore, event_manager: EventManager, inventory_service: InventoryService):
        self.data_store = data_store
        self.event_manager = event_manager
        self.inventory_service = inventory_service
        self.theme_colors: ObservableValue[Optional[List[str]]] = ObservableValue(None, name="theme_colors")
        self.name_colors: ObservableValue[List[str]] = ObservableValue(
            [DEFAULT_DISPLAY_COLOR, DEFAULT_DISPLAY_COLOR], name="name_colors"
        )
        self._user_id: Optional[str] = None
        self._subscription: Optional[Subscription] = None

    def _reset(self) -> None:
        self.theme_colors.set(None)
        self.name_colors.set([DEFAULT_DISPLAY_COLOR, DEFAULT_DISPLAY_COLOR])

    async def load_initial_theme(self, user_id: Optional[str] = None) -> None:
        if user_id is not None:
            self._user_id = user_id
        if self._user_id is None:
            self._reset()
            return

        try:
            profile = await self.data_store.fetch_user_profile(self._user_id)
        except DataStoreError as e:
            logger.warning("Could not load theme, using defaults: %s", e)
            self._reset()
            return
        if profile is None:
            self._reset()
            return

        if needs_name_lookup(profile.equipped_theme):
            await self.apply_theme_by_name(profile.equipped_theme)
        else:
            self.theme_colors.set(parse_colors(profile.equipped_theme))
        self.name_colors.set(get_display_colors(profile.get_name_colors()))

    async def reload_theme_from_profile(self) -> None:
        if self._user_id is None:
            return
        try:
            profile = await self.data_store.fetch_user_profile(self._user_id)
        except DataStoreError as e:
            logger.warning("Theme reload failed, keeping current theme: %s", e)
            return
        if profile is not None:
            self.theme_colors.set(parse_colors(profile.equipped_theme))

    async def apply_theme_by_name(self, theme_name: str) -> None:
        if theme_name in DEFAULT_THEME_SENTINELS:
            self.theme_colors.set(None)
            return
        try:
            item = await self.inventory_service.get_item_details(theme_name)
        except (InventoryServiceError, DataStoreError) as e:
            logger.info("Theme %r lookup failed (%s), reloading from profile", theme_name, e)
            await self.reload_theme_from_profile()
            return
        if item.colors:
            self.theme_colors.set(list(item.colors))
        else:
            await self.reload_theme_from_profile()

    async def _on_inventory(self, event: events.InventoryEvent) -> None:
        if isinstance(event, events.ThemeEquipped):
            if event.theme_colors:
                self.theme_colors.set(list(event.theme_colors))
            else:
                await self.apply_theme_by_name(event.theme_name)
        elif isinstance(event, events.NameColorEquipped):
            self.name_colors.set(get_display_colors(event.colors))
        elif isinstance(event, events.InventoryRefreshNeeded):
            await self.load_initial_theme()

    def start(self) -> None:
        self._subscription = self.event_manager.inventory.subscribe(self._on_inventory)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def aclose(self) -> None:
        subscription = self._subscription
        self.close()
        if subscription is not None:
            await subscription.aclose()
