# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core - Pytest Configuration & Fixtures                              #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""
Global pytest configuration and fixtures for all test suites.
"""

import asyncio
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set

import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Test environment setup
os.environ["TESTING"] = "true"

from services.datastore.base import DataStore  # noqa: E402
from services.exceptions import (  # noqa: E402
    ClaimAlreadyClaimedError,
    ClaimNotEligibleError,
    RemoteNetworkError,
    RemoteResponseError,
)
from services.infrastructure.event_manager import EventManager  # noqa: E402
from services.missions.models import ClaimResult, Mission, MissionProgress, MissionStatus  # noqa: E402
from services.pokedex.models import Pokemon  # noqa: E402
from services.profile.models import UserProfile  # noqa: E402
from services.shop.models import ShopItem  # noqa: E402
from utils.observability import metrics  # noqa: E402

USER_ID = "user-1"

# requirement_type -> counter used by the fake sync
_COUNTERS = {
    "catch_count": lambda store: len(store.caught),
    "favorite_count": lambda store: len(store.favorites),
    "team_count": lambda store: len(store.teams),
    "purchase_count": lambda store: len(store.inventory),
}


class FakeDataStore(DataStore):
    """In-memory data store.

    ``claim_mission_reward`` is an ``asyncio.Lock``-guarded compare-and-swap
    so concurrent claims behave like the server-side transaction.  Any method
    can be made to fail through ``failures[method_name] = exception``.
    """

    def __init__(self):
        self.roster: List[Pokemon] = []
        self.caught: Set[int] = set()
        self.favorites: Set[int] = set()
        self.missions: List[Mission] = []
        self.progress: Dict[int, MissionProgress] = {}
        self.profile: Optional[UserProfile] = UserProfile(id=USER_ID, username="ash", gold=500, xp=0, level=1)
        self.shop_items: List[ShopItem] = []
        self.inventory: Set[tuple] = set()
        self.teams: List[dict] = []
        self.type_updates: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.calls: List[str] = []
        self.claim_delay = 0.0
        self.fetch_delay = 0.0
        self._claim_lock = asyncio.Lock()

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        failure = self.failures.get(name)
        if failure is not None:
            raise failure

    # Roster ----------------------------------------------------------------
    async def fetch_all_pokemon(self, limit: int) -> List[Pokemon]:
        self._enter("fetch_all_pokemon")
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        return [pokemon for pokemon in self.roster if pokemon.id <= limit]

    async def fetch_caught_ids(self, user_id: str) -> Set[int]:
        self._enter("fetch_caught_ids")
        return set(self.caught)

    async def fetch_favorite_ids(self, user_id: str) -> Set[int]:
        self._enter("fetch_favorite_ids")
        return set(self.favorites)

    async def add_to_living_dex(self, user_id: str, pokedex_id: int) -> None:
        self._enter("add_to_living_dex")
        self.caught.add(pokedex_id)

    async def remove_from_living_dex(self, user_id: str, pokedex_id: int) -> None:
        self._enter("remove_from_living_dex")
        self.caught.discard(pokedex_id)

    async def add_favorite(self, user_id: str, pokedex_id: int) -> None:
        self._enter("add_favorite")
        self.favorites.add(pokedex_id)

    async def remove_favorite(self, user_id: str, pokedex_id: int) -> None:
        self._enter("remove_favorite")
        self.favorites.discard(pokedex_id)

    # Missions --------------------------------------------------------------
    async def fetch_missions_catalog(self) -> List[Mission]:
        self._enter("fetch_missions_catalog")
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        return list(self.missions)

    async def fetch_user_mission_progress(self, user_id: str) -> List[MissionProgress]:
        self._enter("fetch_user_mission_progress")
        return list(self.progress.values())

    async def claim_mission_reward(self, user_id: str, mission_id: int) -> ClaimResult:
        self._enter("claim_mission_reward")
        async with self._claim_lock:
            if self.claim_delay:
                await asyncio.sleep(self.claim_delay)
            mission = next((m for m in self.missions if m.id == mission_id), None)
            row = self.progress.get(mission_id)
            if mission is None:
                raise ClaimNotEligibleError("Mission not found", error_code="NOT_ELIGIBLE")
            if row is not None and row.status is MissionStatus.COMPLETED:
                raise ClaimAlreadyClaimedError("Mission already claimed", error_code="ALREADY_CLAIMED")
            if row is None or row.status is not MissionStatus.ACTIVE or row.current_value < mission.requirement_value:
                raise ClaimNotEligibleError("Mission not completed", error_code="NOT_ELIGIBLE")

            self.progress[mission_id] = replace(row, status=MissionStatus.COMPLETED)
            if self.profile is not None:
                self.profile = replace(
                    self.profile,
                    gold=self.profile.gold + mission.gold_reward,
                    xp=self.profile.xp + mission.xp_reward,
                )
            next_mission = next((m for m in self.missions if m.prerequisite_mission_id == mission_id), None)
            if next_mission is not None and next_mission.id not in self.progress:
                self.progress[next_mission.id] = MissionProgress(next_mission.id, 0, MissionStatus.ACTIVE)
            return ClaimResult(
                gold_reward=mission.gold_reward,
                xp_reward=mission.xp_reward,
                next_mission_id=next_mission.id if next_mission else None,
            )

    async def sync_mission_counters(self, user_id: str) -> None:
        self._enter("sync_mission_counters")
        for mission in self.missions:
            row = self.progress.get(mission.id)
            counter = _COUNTERS.get(mission.requirement_type)
            if row is not None and row.status is MissionStatus.ACTIVE and counter is not None:
                self.progress[mission.id] = replace(row, current_value=counter(self))

    async def ensure_root_missions_initialized(self, user_id: str) -> None:
        self._enter("ensure_root_missions_initialized")
        for mission in self.missions:
            if mission.is_root and mission.id not in self.progress:
                self.progress[mission.id] = MissionProgress(mission.id, 0, MissionStatus.ACTIVE)

    async def update_type_progress(self, user_id: str, pokemon_types: Sequence[str]) -> None:
        self._enter("update_type_progress")
        self.type_updates.append(tuple(pokemon_types))

    # Profile ---------------------------------------------------------------
    async def fetch_user_profile(self, user_id: str) -> Optional[UserProfile]:
        self._enter("fetch_user_profile")
        return self.profile

    async def update_equipped_item(self, user_id: str, column: str, value: object) -> None:
        self._enter("update_equipped_item")
        self.profile = replace(self.profile, **{column: value})

    # Shop / inventory ------------------------------------------------------
    async def fetch_shop_items(self) -> List[ShopItem]:
        self._enter("fetch_shop_items")
        return list(self.shop_items)

    async def user_owns_item(self, user_id: str, item_name: str, category: str) -> bool:
        self._enter("user_owns_item")
        return (item_name, category) in self.inventory

    async def spend_gold(self, user_id: str, amount: int) -> None:
        self._enter("spend_gold")
        if self.profile.gold < amount:
            raise RemoteResponseError("Insufficient gold", error_code="REMOTE_REJECTED")
        self.profile = replace(self.profile, gold=self.profile.gold - amount)

    async def add_gold(self, user_id: str, amount: int) -> None:
        self._enter("add_gold")
        self.profile = replace(self.profile, gold=self.profile.gold + amount)

    async def insert_inventory_item(self, user_id: str, item_name: str, category: str) -> None:
        self._enter("insert_inventory_item")
        self.inventory.add((item_name, category))

    # Teams -----------------------------------------------------------------
    async def create_team(self, user_id: str, name: str, region: str, gradient_colors: Sequence[str]) -> None:
        self._enter("create_team")
        self.teams.append({"id": str(len(self.teams) + 1), "name": name, "region": region,
                           "gradient_colors": list(gradient_colors)})

    async def delete_team(self, team_id: str) -> None:
        self._enter("delete_team")
        self.teams = [team for team in self.teams if team["id"] != team_id]


def make_pokemon(pokemon_id: int, name: Optional[str] = None, types=("Normal",), **kwargs) -> Pokemon:
    return Pokemon(id=pokemon_id, name=name or f"pokemon-{pokemon_id}", types=tuple(types), **kwargs)


@pytest.fixture
def network_error():
    return RemoteNetworkError("connection reset", error_code="NETWORK")


@pytest.fixture
def sample_roster() -> List[Pokemon]:
    """A handful of roster entries across two generations."""
    return [
        make_pokemon(1, "Bulbasaur", ("Grass", "Poison")),
        make_pokemon(4, "Charmander", ("Fire",)),
        make_pokemon(7, "Squirtle", ("Water",)),
        make_pokemon(25, "Pikachu", ("Electric",)),
        make_pokemon(152, "Chikorita", ("Grass",)),
    ]


@pytest.fixture
def mission_catalog() -> List[Mission]:
    """Two short chains plus a standalone mission."""
    return [
        Mission(id=1, title="First Steps", category="collection", requirement_type="catch_count",
                requirement_value=2, gold_reward=100, xp_reward=50, sort_order=1),
        Mission(id=2, title="Growing Dex", category="collection", requirement_type="catch_count",
                requirement_value=4, gold_reward=200, xp_reward=80, prerequisite_mission_id=1, sort_order=2),
        Mission(id=3, title="A Favorite", category="social", requirement_type="favorite_count",
                requirement_value=1, gold_reward=50, xp_reward=20, sort_order=3),
        Mission(id=4, title="Team Builder", category="teams", requirement_type="team_count",
                requirement_value=1, gold_reward=75, xp_reward=30, prerequisite_mission_id=3, sort_order=4),
    ]


@pytest.fixture
def fake_store(sample_roster, mission_catalog) -> FakeDataStore:
    store = FakeDataStore()
    store.roster = list(sample_roster)
    store.missions = list(mission_catalog)
    store.shop_items = [
        ShopItem(id=1, name="Ocean Theme", type="theme", price=150, asset_url="theme_ocean.png",
                 colors=("#0077BE", "#00A8E8"), sort_order=2),
        ShopItem(id=2, name="Gold Badge", type="badge", price=300, asset_url="gold_badge.png", sort_order=1),
        ShopItem(id=3, name="Fire Name", type="name_color", price=100, colors=("#FF4500", "#FFD700"), sort_order=3),
        ShopItem(id=4, name="Classic Purple", type="theme", price=0, asset_url="theme_default.png"),
        ShopItem(id=5, name="Standard Male 1", type="skin", price=0, asset_url="standard_male1.png"),
        ShopItem(id=6, name="Trainer White", type="name_color", price=0, colors=("#FFFFFF",)),
        ShopItem(id=7, name="Retired Skin", type="skin", price=80, is_available=False),
        ShopItem(id=8, name="Ninja Skin", type="skin", price=250, asset_url="ninja_skin.png", sort_order=0),
    ]
    return store


@pytest.fixture
def event_manager():
    """Fresh bus per test; async tests close it before their loop ends."""
    return EventManager()


@pytest.fixture(autouse=True)
def reset_metrics():
    """Metrics are process-wide; start every test from zero."""
    metrics.reset()
    yield
    metrics.reset()


async def settle(*subscriptions, rounds: int = 3) -> None:
    """Wait until the given subscriptions have handled everything queued so far."""
    for _ in range(rounds):
        for subscription in subscriptions:
            await subscription.drain()
        await asyncio.sleep(0)
