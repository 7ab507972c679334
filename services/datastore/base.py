# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Remote data-store contract.

Every user-scoped operation takes the user id explicitly; obtaining it
(authentication) is not the store's concern.  Implementations raise the
:mod:`services.exceptions` data-store errors; empty results are returned as
empty sequences, never as errors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Set

from services.missions.models import ClaimResult, Mission, MissionProgress
from services.pokedex.models import Pokemon
from services.profile.models import UserProfile
from services.shop.models import ShopItem


class DataStore(ABC):
    """Operations the client services need from the remote store."""

    # Roster and collection -------------------------------------------------
    @abstractmethod
    async def fetch_all_pokemon(self, limit: int) -> List[Pokemon]: ...

    @abstractmethod
    async def fetch_caught_ids(self, user_id: str) -> Set[int]: ...

    @abstractmethod
    async def fetch_favorite_ids(self, user_id: str) -> Set[int]: ...

    @abstractmethod
    async def add_to_living_dex(self, user_id: str, pokedex_id: int) -> None: ...

    @abstractmethod
    async def remove_from_living_dex(self, user_id: str, pokedex_id: int) -> None: ...

    @abstractmethod
    async def add_favorite(self, user_id: str, pokedex_id: int) -> None: ...

    @abstractmethod
    async def remove_favorite(self, user_id: str, pokedex_id: int) -> None: ...

    # Missions --------------------------------------------------------------
    @abstractmethod
    async def fetch_missions_catalog(self) -> List[Mission]: ...

    @abstractmethod
    async def fetch_user_mission_progress(self, user_id: str) -> List[MissionProgress]: ...

    @abstractmethod
    async def claim_mission_reward(self, user_id: str, mission_id: int) -> ClaimResult:
        """Atomically flip an eligible mission from active to completed.

        Must be a single server-side compare-and-swap: of any number of
        concurrent calls for the same mission at most one succeeds, the
        others raise :class:`~services.exceptions.ClaimAlreadyClaimedError`.
        """

    @abstractmethod
    async def sync_mission_counters(self, user_id: str) -> None: ...

    @abstractmethod
    async def ensure_root_missions_initialized(self, user_id: str) -> None: ...

    @abstractmethod
    async def update_type_progress(self, user_id: str, pokemon_types: Sequence[str]) -> None: ...

    # Profile ---------------------------------------------------------------
    @abstractmethod
    async def fetch_user_profile(self, user_id: str) -> Optional[UserProfile]: ...

    @abstractmethod
    async def update_equipped_item(self, user_id: str, column: str, value: object) -> None: ...

    # Shop / inventory ------------------------------------------------------
    @abstractmethod
    async def fetch_shop_items(self) -> List[ShopItem]: ...

    @abstractmethod
    async def user_owns_item(self, user_id: str, item_name: str, category: str) -> bool: ...

    @abstractmethod
    async def spend_gold(self, user_id: str, amount: int) -> None: ...

    @abstractmethod
    async def add_gold(self, user_id: str, amount: int) -> None: ...

    @abstractmethod
    async def insert_inventory_item(self, user_id: str, item_name: str, category: str) -> None: ...

    # Teams -----------------------------------------------------------------
    @abstractmethod
    async def create_team(self, user_id: str, name: str, region: str, gradient_colors: Sequence[str]) -> None: ...

    @abstractmethod
    async def delete_team(self, team_id: str) -> None: ...

    async def close(self) -> None:
        """Release network resources (no-op by default)."""
