# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Pokédex loading with the stale-while-revalidate read policy.

* valid cache          -> served as is
* stale cache          -> served immediately, one background refresh started
* empty cache or guest -> awaited refresh

A failed refresh never touches the cache; the caller still gets whatever
data is available together with the error.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Set, Tuple

from services.cache.pokemon_cache import PokemonCache
from services.datastore.base import DataStore
from services.exceptions import DataStoreError
from services.infrastructure import events
from services.infrastructure.event_manager import EventManager, Subscription
from services.pokedex.models import Pokemon
from services.session.guest_session import GuestSession
from utils.observability import metrics

logger = logging.getLogger("umbra.pokedex.pokedex_service")


@dataclass(frozen=True)
class PokedexLoadResult:
    success: bool
    pokemon: Tuple[Pokemon, ...] = ()
    from_cache: bool = False
    is_stale: bool = False
    refresh_scheduled: bool = False
    error_message: Optional[str] = None
    error_code: Optional[str] = None


@dataclass(frozen=True)
class PokedexActionResult:
    success: bool
    pokemon_id: int
    error_message: Optional[str] = None
    error_code: Optional[str] = None


class PokedexService:
    """Roster reads through the shared cache plus collection/favorite actions."""

    def __init__(
        self,
        data_store: DataStore,
        cache: PokemonCache,
        event_manager: EventManager,
        guest_session: GuestSession,
        limit: int = 1025,
    ):
        self.data_store = data_store
        self.cache = cache
        self.event_manager = event_manager
        self.guest_session = guest_session
        self.limit = limit
        self._user_id: Optional[str] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._refresh_key: Optional[str] = None
        self._refresh_generation = 0
        self._superseded: Set[asyncio.Task] = set()
        self._subscriptions: List[Subscription] = []
        self._unwatch_guest = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def _is_guest(self, user_id: Optional[str]) -> bool:
        return user_id is None or self.guest_session.is_guest()

    async def load_pokedex(self, user_id: Optional[str]) -> PokedexLoadResult:
        self._user_id = user_id
        guest = self._is_guest(user_id)

        # Guests never see cached user flags
        if not guest and self.cache.is_cache_valid():
            metrics.increment("pokedex.cache.hit")
            return PokedexLoadResult(success=True, pokemon=self.cache.entities, from_cache=True)

        if not guest and self.cache.has_data():
            metrics.increment("pokedex.cache.stale")
            self._schedule_refresh(user_id)
            return PokedexLoadResult(
                success=True,
                pokemon=self.cache.entities,
                from_cache=True,
                is_stale=True,
                refresh_scheduled=True,
            )

        metrics.increment("pokedex.cache.miss")
        return await self.refresh(user_id)

    def _schedule_refresh(self, user_id: Optional[str]) -> asyncio.Task:
        """Start a refresh unless one for the same user is already in flight.

        A refresh running for another user (or for a signed-in user when a
        guest asks) is left to finish, but it no longer owns the cache and
        its result is never written.
        """
        key = None if self._is_guest(user_id) else user_id
        task = self._refresh_task
        generation = self.cache.generation
        if task is None or task.done() or self._refresh_key != key or self._refresh_generation != generation:
            if task is not None and not task.done():
                self._superseded.add(task)
                task.add_done_callback(self._superseded.discard)
            self._refresh_key = key
            self._refresh_generation = generation
            self._refresh_task = asyncio.get_running_loop().create_task(self._refresh(key))
        return self._refresh_task

    async def refresh(self, user_id: Optional[str]) -> PokedexLoadResult:
        return await asyncio.shield(self._schedule_refresh(user_id))

    def _owns_cache(self, generation: int) -> bool:
        return self.cache.generation == generation and self._refresh_task is asyncio.current_task()

    async def _refresh(self, user_id: Optional[str]) -> PokedexLoadResult:
        guest = self._is_guest(user_id)
        generation = self.cache.generation
        self.cache.set_loading(True)
        try:
            with metrics.timer("pokedex.refresh"):
                roster = await self.data_store.fetch_all_pokemon(self.limit)
                caught: Set[int] = set()
                favorites: Set[int] = set()
                if not guest:
                    caught, favorites = await asyncio.gather(
                        self.data_store.fetch_caught_ids(user_id),
                        self.data_store.fetch_favorite_ids(user_id),
                    )
        except DataStoreError as e:
            metrics.increment("pokedex.refresh.failed")
            logger.warning("Pokedex refresh failed: %s", e)
            return PokedexLoadResult(
                success=False,
                pokemon=self.cache.entities,
                from_cache=self.cache.has_data(),
                is_stale=self.cache.has_data(),
                error_message=f"Failed to load Pokémon: {e.message}",
                error_code=e.error_code,
            )
        finally:
            if self._refresh_task is asyncio.current_task():
                self.cache.set_loading(False)

        entries = tuple(
            replace(pokemon, is_caught=pokemon.id in caught, is_favorite=pokemon.id in favorites)
            for pokemon in roster
        )
        if not self._owns_cache(generation):
            # Cleared or superseded while fetching: the flags belong to another session.
            metrics.increment("pokedex.refresh.discarded")
            logger.debug("Discarding Pokedex refresh superseded during fetch")
            return PokedexLoadResult(success=True, pokemon=entries)

        self.cache.update_cache(entries)
        metrics.gauge("pokedex.cache.size", len(self.cache.entities))
        return PokedexLoadResult(success=True, pokemon=self.cache.entities)

    # ------------------------------------------------------------------
    # Collection / favorites
    # ------------------------------------------------------------------
    def _guest_rejection(self, pokemon_id: int) -> PokedexActionResult:
        return PokedexActionResult(
            success=False,
            pokemon_id=pokemon_id,
            error_message="Create an account to save your progress",
            error_code="GUEST_MODE",
        )

    async def add_to_living_dex(self, user_id: str, pokemon_id: int) -> PokedexActionResult:
        if self._is_guest(user_id):
            return self._guest_rejection(pokemon_id)
        try:
            await self.data_store.add_to_living_dex(user_id, pokemon_id)
        except DataStoreError as e:
            logger.error("add_to_living_dex failed for #%d: %s", pokemon_id, e)
            return PokedexActionResult(False, pokemon_id, f"Failed to add Pokémon: {e.message}", e.error_code)

        self.cache.update_caught_state(pokemon_id, True)
        pokemon = self.cache.get_pokemon(pokemon_id)
        self.event_manager.notify_living_dex_added(pokemon_id, pokemon.types if pokemon else ())
        return PokedexActionResult(True, pokemon_id)

    async def remove_from_living_dex(self, user_id: str, pokemon_id: int) -> PokedexActionResult:
        if self._is_guest(user_id):
            return self._guest_rejection(pokemon_id)
        try:
            await self.data_store.remove_from_living_dex(user_id, pokemon_id)
        except DataStoreError as e:
            logger.error("remove_from_living_dex failed for #%d: %s", pokemon_id, e)
            return PokedexActionResult(False, pokemon_id, f"Failed to remove Pokémon: {e.message}", e.error_code)

        self.cache.update_caught_state(pokemon_id, False)
        self.event_manager.notify_living_dex_removed(pokemon_id)
        return PokedexActionResult(True, pokemon_id)

    async def toggle_favorite(self, user_id: str, pokemon_id: int) -> PokedexActionResult:
        if self._is_guest(user_id):
            return self._guest_rejection(pokemon_id)
        pokemon = self.cache.get_pokemon(pokemon_id)
        if pokemon is None:
            return PokedexActionResult(False, pokemon_id, f"Unknown Pokémon #{pokemon_id}", "NOT_FOUND")

        try:
            if pokemon.is_favorite:
                await self.data_store.remove_favorite(user_id, pokemon_id)
            else:
                await self.data_store.add_favorite(user_id, pokemon_id)
        except DataStoreError as e:
            logger.error("toggle_favorite failed for #%d: %s", pokemon_id, e)
            return PokedexActionResult(False, pokemon_id, f"Failed to update favorite: {e.message}", e.error_code)

        if pokemon.is_favorite:
            self.cache.update_favorite_state(pokemon_id, False)
            self.event_manager.notify_favorite_removed(pokemon_id)
        else:
            self.cache.update_favorite_state(pokemon_id, True)
            self.event_manager.notify_favorite_changed(pokemon_id)
        return PokedexActionResult(True, pokemon_id)

    # ------------------------------------------------------------------
    # Event reactions
    # ------------------------------------------------------------------
    def _on_living_dex(self, event: events.LivingDexEvent) -> None:
        if isinstance(event, events.LivingDexAdded):
            self.cache.update_caught_state(event.pokemon_id, True)
        elif isinstance(event, events.LivingDexRemoved):
            self.cache.update_caught_state(event.pokemon_id, False)

    def _on_favorite(self, event: events.FavoriteEvent) -> None:
        if isinstance(event, events.FavoriteChanged):
            self.cache.update_favorite_state(event.pokemon_id, True)
        elif isinstance(event, events.FavoriteRemoved):
            self.cache.update_favorite_state(event.pokemon_id, False)

    async def _on_refresh_all(self, event: events.RefreshEvent) -> None:
        logger.info("Full refresh requested, reloading Pokedex")
        self.cache.clear()
        await self.load_pokedex(self._user_id)

    def _on_guest_mode(self, is_guest: bool) -> None:
        if not is_guest:
            return
        self.cache.clear()
        try:
            self._schedule_refresh(None)
        except RuntimeError:
            logger.debug("Guest mode entered outside the event loop, reload deferred to next load")

    def start(self) -> None:
        self._subscriptions = [
            self.event_manager.living_dex.subscribe(self._on_living_dex),
            self.event_manager.favorite.subscribe(self._on_favorite),
            self.event_manager.refresh_all.subscribe(self._on_refresh_all),
        ]
        self._unwatch_guest = self.guest_session.is_guest_mode.watch(self._on_guest_mode)

    async def close(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            await subscription.aclose()
        if self._unwatch_guest is not None:
            self._unwatch_guest()
            self._unwatch_guest = None
        pending = [task for task in (self._refresh_task, *self._superseded) if task is not None and not task.done()]
        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                pass
