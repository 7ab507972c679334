# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Shop catalog and the all-or-nothing purchase flow."""

from __future__ import annotations

import logging
import time
from typing import List

from services.datastore.base import DataStore
from services.exceptions import (
    DataStoreError,
    InsufficientGoldError,
    ItemAlreadyOwnedError,
    PurchaseRollbackError,
)
from services.infrastructure.event_manager import EventManager
from services.shop.models import PurchaseResult, ShopItem
from utils.observability import get_structured_logger, metrics, tracing

logger = logging.getLogger("umbra.shop.shop_service")
structured_logger = get_structured_logger(__name__, service_name="ShopService")


class ShopService:
    """Sells cosmetic items for gold.

    A purchase either spends the gold, stores the item and publishes the
    purchase events, or leaves the user exactly as before.  When the
    inventory write fails after the gold was spent the gold is refunded.
    """

    def __init__(self, data_store: DataStore, event_manager: EventManager):
        self.data_store = data_store
        self.event_manager = event_manager

    async def get_available_items(self) -> List[ShopItem]:
        items = await self.data_store.fetch_shop_items()
        available = [
            item for item in items
            if item.is_available and item.price > 0 and not item.is_starter_item
        ]
        available.sort(key=lambda item: item.sort_order)
        return available

    async def _check_purchase(self, user_id: str, item: ShopItem, current_gold: int) -> None:
        if current_gold < item.price:
            raise InsufficientGoldError(
                "Insufficient gold",
                error_code="INSUFFICIENT_GOLD",
                details={"price": item.price, "gold": current_gold},
            )
        if await self.data_store.user_owns_item(user_id, item.name, item.type):
            raise ItemAlreadyOwnedError("Item already owned", error_code="ALREADY_OWNED", details={"item": item.name})

    async def _store_item(self, user_id: str, item: ShopItem) -> None:
        try:
            await self.data_store.insert_inventory_item(user_id, item.name, item.type)
        except DataStoreError as insert_error:
            logger.error("Inventory insert failed, rolling back gold: %s", insert_error)
            try:
                await self.data_store.add_gold(user_id, item.price)
            except DataStoreError as rollback_error:
                metrics.increment("shop.purchases.rollback_failed")
                logger.critical(
                    "Rollback failed! User %s lost %d gold: %s", user_id, item.price, rollback_error
                )
            else:
                metrics.increment("shop.purchases.rolled_back")
            raise PurchaseRollbackError(
                "Purchase failed. Gold refunded.",
                error_code="PURCHASE_FAILED",
                details={"item": item.name, "cause": str(insert_error)},
            ) from insert_error

    async def purchase_item(self, user_id: str, item: ShopItem, current_gold: int) -> PurchaseResult:
        start_time = time.time()
        metrics.increment("shop.purchases.attempts")

        with tracing.trace("shop.purchase", attributes={"item": item.name, "price": item.price}) as span:
            try:
                await self._check_purchase(user_id, item, current_gold)
                await self.data_store.spend_gold(user_id, item.price)
                await self._store_item(user_id, item)
            except (InsufficientGoldError, ItemAlreadyOwnedError, PurchaseRollbackError) as e:
                metrics.increment(f"shop.purchases.{e.error_code.lower()}")
                logger.info("Purchase of %s rejected: %s", item.name, e.message)
                return PurchaseResult(success=False, item=item, error_message=e.message, error_code=e.error_code)
            except DataStoreError as e:
                metrics.increment("shop.purchases.failed")
                if "insufficient gold" in e.message.lower():
                    return PurchaseResult(
                        success=False, item=item, error_message="Not enough gold!", error_code="INSUFFICIENT_GOLD"
                    )
                logger.error("Purchase of %s failed: %s", item.name, e, exc_info=True)
                return PurchaseResult(
                    success=False, item=item, error_message=f"Purchase failed: {e.message}", error_code="NETWORK"
                )

            duration_ms = (time.time() - start_time) * 1000
            if span:
                span.set_attribute("duration_ms", duration_ms)

        new_gold = current_gold - item.price
        metrics.increment("shop.purchases.total")
        metrics.histogram("shop.purchase.price", item.price)
        structured_logger.info("item_purchased", extra={
            "item": item.name,
            "category": item.type,
            "price": item.price,
            "new_gold": new_gold,
            "duration_ms": duration_ms,
        })

        self.event_manager.notify_shop_purchase(item.type, item.price)
        return PurchaseResult(success=True, item=item, new_gold=new_gold, message="Item purchased successfully!")
