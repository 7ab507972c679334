# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Async PokéAPI client used to build the national roster."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

import aiohttp

from services.exceptions import RemoteNetworkError, RemoteResponseError
from services.pokedex.models import Pokemon
from utils.observability import metrics

logger = logging.getLogger("umbra.datastore.pokeapi")

DEFAULT_BASE_URL = "https://pokeapi.co/api/v2/"


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:] if value else value


def pokemon_from_payload(payload: Mapping[str, Any]) -> Pokemon:
    """Build a :class:`Pokemon` from a ``/pokemon/{id}`` response."""

    sprites = payload.get("sprites") or {}
    artwork = ((sprites.get("other") or {}).get("official-artwork") or {}).get("front_default")
    image_url = artwork or sprites.get("front_default") or ""

    types = tuple(
        _capitalize(str(entry["type"]["name"]))
        for entry in sorted(payload.get("types") or [], key=lambda t: t.get("slot", 0))
        if entry.get("type") and entry["type"].get("name")
    )

    return Pokemon(
        id=int(payload["id"]),
        name=str(payload.get("name") or ""),
        types=types,
        image_url=image_url,
        # Decimetres / hectograms to metres / kilograms
        height=(payload.get("height") or 0) / 10.0,
        weight=(payload.get("weight") or 0) / 10.0,
    )


class PokeApiClient:
    """Fetches roster entries concurrently, in batches, with bounded parallelism."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10.0,
        max_concurrent_requests: int = 10,
        batch_size: int = 40,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.max_concurrent_requests = max(1, max_concurrent_requests)
        self.batch_size = max(1, batch_size)

    async def _fetch_pokemon_detail(self, session: aiohttp.ClientSession, pokedex_id: int) -> Dict[str, Any]:
        url = f"{self.base_url}pokemon/{pokedex_id}"
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise RemoteResponseError(
                        f"PokéAPI returned HTTP {response.status} for #{pokedex_id}",
                        error_code="POKEAPI_HTTP_ERROR",
                        details={"status": response.status, "pokedex_id": pokedex_id},
                    )
                return await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteNetworkError(
                f"PokéAPI request for #{pokedex_id} failed: {e}",
                error_code="POKEAPI_NETWORK_ERROR",
                details={"pokedex_id": pokedex_id},
            ) from e

    async def _fetch_one(
        self,
        session: aiohttp.ClientSession,
        semaphore: asyncio.Semaphore,
        pokedex_id: int,
    ) -> Optional[Pokemon]:
        async with semaphore:
            try:
                payload = await self._fetch_pokemon_detail(session, pokedex_id)
                return pokemon_from_payload(payload)
            except (RemoteNetworkError, RemoteResponseError, KeyError, TypeError, ValueError) as e:
                metrics.increment("pokeapi.detail.failed")
                logger.warning("Failed to load Pokemon #%d: %s", pokedex_id, e)
                return None

    async def fetch_all_pokemon(self, limit: int = 1025) -> List[Pokemon]:
        """Fetch ``#1..#limit``; entries that fail to load are skipped.

        Raises:
            RemoteNetworkError: when not a single entry could be loaded
        """
        semaphore = asyncio.Semaphore(self.max_concurrent_requests)
        roster: List[Pokemon] = []

        with metrics.timer("pokeapi.roster"):
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                for batch_start in range(1, limit + 1, self.batch_size):
                    batch_end = min(batch_start + self.batch_size - 1, limit)
                    results = await asyncio.gather(
                        *(self._fetch_one(session, semaphore, pokedex_id)
                          for pokedex_id in range(batch_start, batch_end + 1))
                    )
                    roster.extend(entry for entry in results if entry is not None)
                    logger.debug("Loaded roster batch #%d-#%d", batch_start, batch_end)

        if limit > 0 and not roster:
            raise RemoteNetworkError("Failed to load the Pokémon roster", error_code="POKEAPI_UNAVAILABLE")

        roster.sort(key=lambda entry: entry.id)
        logger.info("Loaded %d/%d Pokemon from PokéAPI", len(roster), limit)
        return roster
