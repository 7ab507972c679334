# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Supabase (PostgREST over HTTPS) implementation of :class:`DataStore`.

Tables are addressed as ``/rest/v1/<table>`` with PostgREST filter syntax
(``column=eq.value``) and server functions as ``/rest/v1/rpc/<function>``.
The mission claim is delegated entirely to the ``claim_mission_reward_v2``
function, which performs the active -> completed transition atomically.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

import aiohttp

from services.datastore.base import DataStore
from services.datastore.pokeapi_client import PokeApiClient
from services.exceptions import (
    ClaimAlreadyClaimedError,
    ClaimNotEligibleError,
    RemoteNetworkError,
    RemoteResponseError,
)
from services.missions.models import ClaimResult, Mission, MissionProgress
from services.pokedex.models import Pokemon
from services.profile.models import UserProfile
from services.shop.models import ShopItem

logger = logging.getLogger("umbra.datastore.supabase")

_ALREADY_CLAIMED_MARKERS = ("already",)
_NOT_ELIGIBLE_MARKERS = ("not eligible", "not active", "locked", "not completed", "prerequisite")


def classify_claim_error(error: RemoteResponseError, mission_id: int) -> Exception:
    """Map a rejected claim RPC onto the typed claim errors."""

    text = error.message.lower()
    details = {"mission_id": mission_id, **error.details}
    if any(marker in text for marker in _ALREADY_CLAIMED_MARKERS):
        return ClaimAlreadyClaimedError(error.message, error_code="ALREADY_CLAIMED", details=details)
    if any(marker in text for marker in _NOT_ELIGIBLE_MARKERS):
        return ClaimNotEligibleError(error.message, error_code="NOT_ELIGIBLE", details=details)
    return error


class SupabaseDataStore(DataStore):
    """Talks to the Supabase REST API with a shared :class:`aiohttp.ClientSession`."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout_seconds: float = 10.0,
        pokeapi: Optional[PokeApiClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.pokeapi = pokeapi or PokeApiClient(timeout_seconds=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------
    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, str]] = None,
        payload: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        url = f"{self.base_url}/rest/v1/{path}"
        try:
            async with self._get_session().request(
                method, url, params=params, json=payload, headers=self._headers(prefer)
            ) as response:
                if response.status >= 500:
                    raise RemoteNetworkError(
                        f"{method} {path} failed with HTTP {response.status}",
                        error_code="NETWORK",
                        details={"status": response.status, "path": path},
                    )
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None
                if response.status >= 400:
                    message = body.get("message") if isinstance(body, dict) else None
                    raise RemoteResponseError(
                        message or f"{method} {path} rejected with HTTP {response.status}",
                        error_code="REMOTE_REJECTED",
                        details={"status": response.status, "path": path},
                    )
                return body
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteNetworkError(
                f"{method} {path} failed: {e}", error_code="NETWORK", details={"path": path}
            ) from e

    async def _select(self, table: str, columns: str = "*", **filters: Any) -> List[Dict[str, Any]]:
        params = {"select": columns}
        order = filters.pop("order", None)
        if order:
            params["order"] = order
        params.update({column: f"eq.{value}" for column, value in filters.items()})
        rows = await self._request("GET", table, params=params)
        return list(rows or [])

    async def _rpc(self, function: str, **parameters: Any) -> Any:
        return await self._request("POST", f"rpc/{function}", payload=parameters)

    # ------------------------------------------------------------------
    # Roster and collection
    # ------------------------------------------------------------------
    async def fetch_all_pokemon(self, limit: int) -> List[Pokemon]:
        return await self.pokeapi.fetch_all_pokemon(limit)

    async def fetch_caught_ids(self, user_id: str) -> Set[int]:
        rows = await self._select("user_pokemons", "pokedex_id", user_id=user_id)
        return {int(row["pokedex_id"]) for row in rows if row.get("pokedex_id") is not None}

    async def fetch_favorite_ids(self, user_id: str) -> Set[int]:
        rows = await self._select("favorites", "pokedex_id", user_id=user_id)
        return {int(row["pokedex_id"]) for row in rows if row.get("pokedex_id") is not None}

    async def add_to_living_dex(self, user_id: str, pokedex_id: int) -> None:
        await self._request(
            "POST", "user_pokemons",
            payload={"user_id": user_id, "pokedex_id": pokedex_id},
            prefer="return=minimal",
        )

    async def remove_from_living_dex(self, user_id: str, pokedex_id: int) -> None:
        await self._request(
            "DELETE", "user_pokemons",
            params={"user_id": f"eq.{user_id}", "pokedex_id": f"eq.{pokedex_id}"},
        )

    async def add_favorite(self, user_id: str, pokedex_id: int) -> None:
        await self._request(
            "POST", "favorites",
            payload={"user_id": user_id, "pokedex_id": pokedex_id},
            prefer="resolution=ignore-duplicates,return=minimal",
        )
        # The most recent favorite becomes the equipped pet
        await self.update_equipped_item(user_id, "equipped_pokemon_id", pokedex_id)

    async def remove_favorite(self, user_id: str, pokedex_id: int) -> None:
        await self._request(
            "DELETE", "favorites",
            params={"user_id": f"eq.{user_id}", "pokedex_id": f"eq.{pokedex_id}"},
        )

    # ------------------------------------------------------------------
    # Missions
    # ------------------------------------------------------------------
    async def fetch_missions_catalog(self) -> List[Mission]:
        rows = await self._select("missions", order="sort_order.asc")
        missions = [Mission.from_row(row) for row in rows]
        missions.sort(key=lambda mission: mission.sort_order)
        return missions

    async def fetch_user_mission_progress(self, user_id: str) -> List[MissionProgress]:
        rows = await self._select("missions_progress", user_id=user_id)
        return [MissionProgress.from_row(row) for row in rows]

    async def claim_mission_reward(self, user_id: str, mission_id: int) -> ClaimResult:
        try:
            payload = await self._rpc("claim_mission_reward_v2", p_user_id=user_id, p_mission_id=mission_id)
        except RemoteResponseError as e:
            raise classify_claim_error(e, mission_id) from e

        if isinstance(payload, list):
            payload = payload[0] if payload else {}
        if not isinstance(payload, dict):
            raise RemoteResponseError(
                f"Unexpected claim response for mission {mission_id}",
                error_code="REMOTE_REJECTED",
                details={"mission_id": mission_id},
            )
        if payload.get("success") is False or payload.get("error"):
            raise classify_claim_error(
                RemoteResponseError(str(payload.get("error") or payload.get("message") or "Claim rejected")),
                mission_id,
            )
        return ClaimResult.from_payload(payload)

    async def sync_mission_counters(self, user_id: str) -> None:
        await self._rpc("sync_user_stats_and_missions", p_user_id=user_id)

    async def ensure_root_missions_initialized(self, user_id: str) -> None:
        await self._rpc("sync_user_missions", p_user_id=user_id)

    async def update_type_progress(self, user_id: str, pokemon_types: Sequence[str]) -> None:
        if not pokemon_types:
            return
        await self._rpc(
            "update_type_progress",
            p_user_id=user_id,
            p_pokemon_types=[pokemon_type.lower() for pokemon_type in pokemon_types],
        )

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------
    async def fetch_user_profile(self, user_id: str) -> Optional[UserProfile]:
        rows = await self._select("profiles", id=user_id)
        return UserProfile.from_row(rows[0]) if rows else None

    async def update_equipped_item(self, user_id: str, column: str, value: object) -> None:
        await self._request(
            "PATCH", "profiles",
            params={"id": f"eq.{user_id}"},
            payload={column: value},
            prefer="return=minimal",
        )

    # ------------------------------------------------------------------
    # Shop / inventory
    # ------------------------------------------------------------------
    async def fetch_shop_items(self) -> List[ShopItem]:
        rows = await self._select("shop_items")
        return [ShopItem.from_row(row) for row in rows]

    async def user_owns_item(self, user_id: str, item_name: str, category: str) -> bool:
        rows = await self._select("inventory", "id", user_id=user_id, item_id=item_name, category=category)
        return bool(rows)

    async def spend_gold(self, user_id: str, amount: int) -> None:
        await self._rpc("spend_gold", p_user_id=user_id, p_amount=amount)

    async def add_gold(self, user_id: str, amount: int) -> None:
        await self._rpc("add_gold", p_user_id=user_id, p_amount=amount)

    async def insert_inventory_item(self, user_id: str, item_name: str, category: str) -> None:
        await self._request(
            "POST", "inventory",
            payload={"user_id": user_id, "item_id": item_name, "category": category},
            prefer="return=minimal",
        )

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------
    async def create_team(self, user_id: str, name: str, region: str, gradient_colors: Sequence[str]) -> None:
        await self._request(
            "POST", "teams",
            payload={
                "user_id": user_id,
                "name": name,
                "region": region,
                "gradient_colors": list(gradient_colors),
            },
            prefer="return=minimal",
        )

    async def delete_team(self, team_id: str) -> None:
        await self._request("DELETE", "teams", params={"id": f"eq.{team_id}"})

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
