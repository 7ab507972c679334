# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Domain event variants, one small frozen dataclass per event shape.

Each topic of the :class:`~services.infrastructure.event_manager.EventManager`
carries exactly one of the ``Union`` aliases declared at the bottom of this
module, so consumers can match on the concrete class.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union


# Collection ("living dex") topic
@dataclass(frozen=True)
class LivingDexAdded:
    pokemon_id: int
    pokemon_types: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LivingDexRemoved:
    pokemon_id: int


# Favorite topic
@dataclass(frozen=True)
class FavoriteChanged:
    pokemon_id: int


@dataclass(frozen=True)
class FavoriteRemoved:
    pokemon_id: int


# Mission progress topic
@dataclass(frozen=True)
class MissionProgressUpdated:
    """Something that may move a mission counter has happened."""


@dataclass(frozen=True)
class MissionClaimed:
    mission_id: int
    gold_reward: int
    xp_reward: int


# Team topic
@dataclass(frozen=True)
class TeamCreated:
    pass


@dataclass(frozen=True)
class TeamDeleted:
    pass


# Shop topic
@dataclass(frozen=True)
class ItemPurchased:
    category: str


# Profile topic
@dataclass(frozen=True)
class ProfileUpdated:
    new_gold: Optional[int] = None
    new_level: Optional[int] = None


@dataclass(frozen=True)
class GoldChanged:
    amount: int


@dataclass(frozen=True)
class LevelUp:
    new_level: int
    new_title: Optional[str] = None


# Inventory (equip) topic
@dataclass(frozen=True)
class SkinEquipped:
    skin_name: str


@dataclass(frozen=True)
class BadgeEquipped:
    badge_name: str


@dataclass(frozen=True)
class ThemeEquipped:
    theme_name: str
    theme_colors: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class NameColorEquipped:
    color_name: str
    colors: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TitleEquipped:
    title_name: str


@dataclass(frozen=True)
class InventoryRefreshNeeded:
    pass


# Full refresh topic
@dataclass(frozen=True)
class FullRefreshRequested:
    pass


LivingDexEvent = Union[LivingDexAdded, LivingDexRemoved]
FavoriteEvent = Union[FavoriteChanged, FavoriteRemoved]
MissionProgressEvent = Union[MissionProgressUpdated, MissionClaimed]
TeamEvent = Union[TeamCreated, TeamDeleted]
ShopPurchaseEvent = ItemPurchased
ProfileEvent = Union[ProfileUpdated, GoldChanged, LevelUp]
InventoryEvent = Union[
    SkinEquipped,
    BadgeEquipped,
    ThemeEquipped,
    NameColorEquipped,
    TitleEquipped,
    InventoryRefreshNeeded,
]
RefreshEvent = FullRefreshRequested
