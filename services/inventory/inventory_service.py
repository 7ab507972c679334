# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Equipping owned cosmetics onto the profile."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence

from services.datastore.base import DataStore
from services.exceptions import DataStoreError, InvalidEquipCategoryError, ItemNotFoundError
from services.infrastructure.event_manager import EventManager
from services.shop.models import ShopItem
from services.theme.color_resolver import DEFAULT_DISPLAY_COLOR
from utils.observability import metrics

logger = logging.getLogger("umbra.inventory.inventory_service")

# category -> profile column
EQUIP_CATEGORIES: Dict[str, str] = {
    "skin": "equipped_skin",
    "theme": "equipped_theme",
    "badge": "equipped_badge",
    "name_color": "equipped_name_color",
    "title": "equipped_title",
}

# Identifiers written at signup that don't match any shop item name
STARTER_ALIASES: Dict[str, str] = {
    "theme_default": "Classic Purple",
    "start_badget": "Starter Badge",
    "name_color_default": "Trainer White",
}


@dataclass(frozen=True)
class EquipResult:
    success: bool
    item_name: str
    category: str
    stored_value: object = None
    message: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None


def matches_item(item: ShopItem, name: str) -> bool:
    """Flexible match of a stored inventory identifier against a shop item."""
    return (
        item.name == name
        or item.asset_name == name
        or STARTER_ALIASES.get(name) == item.name
        or item.asset_url == f"{name}.png"
    )


def find_item(items: Iterable[ShopItem], name: str) -> Optional[ShopItem]:
    return next((item for item in items if matches_item(item, name)), None)


class InventoryService:
    def __init__(self, data_store: DataStore, event_manager: EventManager):
        self.data_store = data_store
        self.event_manager = event_manager

    async def get_item_details(self, item_name: str) -> ShopItem:
        """Look up a shop item by name, asset name or starter alias.

        Raises:
            ItemNotFoundError: nothing in the catalog matches *item_name*.
            DataStoreError: the catalog could not be fetched.
        """
        items = await self.data_store.fetch_shop_items()
        item = find_item(items, item_name)
        if item is None:
            raise ItemNotFoundError(f"Item not found: {item_name}", error_code="ITEM_NOT_FOUND")
        return item

    async def find_item_by_colors(self, category: str, colors: Sequence[str]) -> Optional[ShopItem]:
        """Identify the equipped theme/name color from its stored palette."""
        wanted = sorted(set(colors))
        items = await self.data_store.fetch_shop_items()
        for item in items:
            if item.type != category or not item.colors:
                continue
            if sorted(set(item.colors)) == wanted:
                return item
        return None

    async def _lookup(self, item_name: str) -> Optional[ShopItem]:
        try:
            return await self.get_item_details(item_name)
        except ItemNotFoundError:
            logger.debug("No catalog entry for %r, storing the name as is", item_name)
            return None

    @staticmethod
    def _stored_value(category: str, item_name: str, item: Optional[ShopItem]) -> object:
        if category in ("skin", "badge"):
            return item.asset_name if item and item.asset_name else item_name
        if category == "theme":
            if item and item.colors:
                return json.dumps(list(item.colors), separators=(",", ":"))
            return "theme_default"
        if category == "name_color":
            if item and item.colors:
                return list(item.colors)
            return [DEFAULT_DISPLAY_COLOR]
        return item_name

    def _publish(self, category: str, item_name: str, item: Optional[ShopItem], stored_value: object) -> None:
        if category == "skin":
            self.event_manager.notify_skin_equipped(stored_value)
        elif category == "badge":
            self.event_manager.notify_badge_equipped(stored_value)
        elif category == "theme":
            self.event_manager.notify_theme_equipped(item_name, tuple(item.colors or ()) if item else ())
        elif category == "name_color":
            self.event_manager.notify_name_color_equipped(item_name, tuple(stored_value))
        else:
            self.event_manager.notify_title_equipped(item_name)

    async def equip_item(self, user_id: str, item_name: str, category: str) -> EquipResult:
        try:
            if category not in EQUIP_CATEGORIES:
                raise InvalidEquipCategoryError("Invalid category", error_code="INVALID_CATEGORY",
                                                details={"category": category})
            item = None if category == "title" else await self._lookup(item_name)
            stored_value = self._stored_value(category, item_name, item)
            await self.data_store.update_equipped_item(user_id, EQUIP_CATEGORIES[category], stored_value)
        except InvalidEquipCategoryError as e:
            logger.warning("Rejected equip of %r: unknown category %r", item_name, category)
            return EquipResult(False, item_name, category, error_message=e.message, error_code=e.error_code)
        except DataStoreError as e:
            metrics.increment("inventory.equip.failed")
            logger.error("Failed to equip %s (%s): %s", item_name, category, e)
            return EquipResult(
                False, item_name, category,
                error_message=f"Failed to equip item: {e.message}", error_code="NETWORK",
            )

        metrics.increment(f"inventory.equip.{category}")
        self._publish(category, item_name, item, stored_value)
        return EquipResult(True, item_name, category, stored_value=stored_value, message="Item equipped successfully!")

    async def equip_title(self, user_id: str, title_name: str) -> EquipResult:
        return await self.equip_item(user_id, title_name, "title")
