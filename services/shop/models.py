# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Data models used by the shop and inventory services."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

# Items granted at signup; never sold in the shop
STARTER_ITEM_NAMES = frozenset({"Classic Purple", "Starter Badge", "Trainer White", "Rookie"})
STANDARD_ITEM_PREFIX = "standard "


def _parse_color_list(raw: Any) -> Optional[Tuple[str, ...]]:
    if raw is None:
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if isinstance(raw, (list, tuple)):
        return tuple(str(color) for color in raw if color is not None)
    return None


@dataclass(frozen=True)
class ShopItem:
    """Catalog entry of the shop (``shop_items`` table)."""

    id: int
    name: str
    type: str
    price: int = 0
    description: str = ""
    rarity: str = "common"
    asset_url: Optional[str] = None
    colors: Optional[Tuple[str, ...]] = None
    is_available: bool = True
    sort_order: int = 0

    @property
    def asset_name(self) -> Optional[str]:
        """Asset file name without the ``.png`` suffix."""
        if self.asset_url is None:
            return None
        if self.asset_url.endswith(".png"):
            return self.asset_url[: -len(".png")]
        return self.asset_url

    @property
    def is_starter_item(self) -> bool:
        return self.name.lower().startswith(STANDARD_ITEM_PREFIX) or self.name in STARTER_ITEM_NAMES

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ShopItem":
        return cls(
            id=int(row.get("id") or 0),
            name=str(row.get("name") or ""),
            type=str(row.get("type") or ""),
            price=int(row.get("price") or 0),
            description=str(row.get("description") or ""),
            rarity=str(row.get("rarity") or "common"),
            asset_url=row.get("asset_url"),
            colors=_parse_color_list(row.get("colors")),
            is_available=bool(row.get("is_available", True)),
            sort_order=int(row.get("sort_order") or 0),
        )


@dataclass(frozen=True)
class PurchaseResult:
    """Result object returned by :meth:`ShopService.purchase_item`."""

    success: bool
    item: Optional[ShopItem] = None
    new_gold: Optional[int] = None
    message: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
