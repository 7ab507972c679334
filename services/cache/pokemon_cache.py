# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Shared in-memory cache for the Pokédex roster.

Every view works from the same immutable snapshot.  Writers replace the
snapshot under a single lock (copy-on-write); readers just take the current
tuple reference, so they never see a half-applied update and never wait for
a writer.

The cache keeps two separate predicates:

* :meth:`PokemonCache.is_cache_valid` - non-empty and younger than the TTL
* :meth:`PokemonCache.has_data` - non-empty, regardless of age

Consumers serve ``has_data`` content immediately and refresh in the
background when ``is_cache_valid`` is False (stale-while-revalidate).
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from threading import RLock
from typing import AbstractSet, Callable, Iterable, Optional, Tuple

from services.infrastructure.observable import ObservableValue
from services.pokedex.models import Pokemon

logger = logging.getLogger("umbra.cache.pokemon_cache")

CACHE_VALIDITY_SECONDS = 10 * 60


class PokemonCache:
    """Process-wide roster cache with a time-to-live and explicit invalidation."""

    def __init__(self, ttl_seconds: float = CACHE_VALIDITY_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = RLock()
        self._last_loaded_at: Optional[float] = None
        self._generation = 0

        self.pokemon_list: ObservableValue[Tuple[Pokemon, ...]] = ObservableValue((), name="pokemon_list")
        self.is_loading: ObservableValue[bool] = ObservableValue(False, name="is_loading")
        self.is_initialized: ObservableValue[bool] = ObservableValue(False, name="is_initialized")

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------
    @property
    def entities(self) -> Tuple[Pokemon, ...]:
        return self.pokemon_list.value

    @property
    def generation(self) -> int:
        """Bumped on every clear; lets in-flight loads detect a reset."""
        return self._generation

    @property
    def last_loaded_at(self) -> Optional[float]:
        return self._last_loaded_at

    def is_cache_valid(self) -> bool:
        loaded_at = self._last_loaded_at
        if not self.pokemon_list.value or loaded_at is None:
            return False
        return self._clock() - loaded_at < self.ttl_seconds

    def has_data(self) -> bool:
        return bool(self.pokemon_list.value)

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------
    def update_cache(self, pokemon: Iterable[Pokemon]) -> None:
        """Replace the whole roster and stamp the load time."""

        snapshot = tuple(pokemon)
        with self._lock:
            self._last_loaded_at = self._clock()
            self.pokemon_list.set(snapshot)
            self.is_initialized.set(True)
        logger.debug("Pokemon cache updated with %d entries", len(snapshot))

    def _replace_where(self, transform: Callable[[Pokemon], Pokemon]) -> bool:
        with self._lock:
            current = self.pokemon_list.value
            changed = False
            updated = []
            for entry in current:
                new_entry = transform(entry)
                if new_entry is not entry:
                    changed = True
                updated.append(new_entry)
            if changed:
                self.pokemon_list.set(tuple(updated))
            return changed

    def update_caught_state(self, pokemon_id: int, is_caught: bool) -> bool:
        """Copy-on-write update of one entry; unknown ids are ignored."""

        def transform(entry: Pokemon) -> Pokemon:
            if entry.id == pokemon_id and entry.is_caught != is_caught:
                return replace(entry, is_caught=is_caught)
            return entry

        return self._replace_where(transform)

    def update_favorite_state(self, pokemon_id: int, is_favorite: bool) -> bool:
        """Copy-on-write update of one entry; unknown ids are ignored."""

        def transform(entry: Pokemon) -> Pokemon:
            if entry.id == pokemon_id and entry.is_favorite != is_favorite:
                return replace(entry, is_favorite=is_favorite)
            return entry

        return self._replace_where(transform)

    def update_states(self, caught_ids: AbstractSet[int], favorite_ids: AbstractSet[int]) -> bool:
        """Recompute both flags of every entry from set membership."""

        caught = frozenset(caught_ids)
        favorites = frozenset(favorite_ids)

        def transform(entry: Pokemon) -> Pokemon:
            is_caught = entry.id in caught
            is_favorite = entry.id in favorites
            if entry.is_caught == is_caught and entry.is_favorite == is_favorite:
                return entry
            return replace(entry, is_caught=is_caught, is_favorite=is_favorite)

        return self._replace_where(transform)

    def set_loading(self, loading: bool) -> None:
        self.is_loading.set(bool(loading))

    def invalidate(self) -> None:
        """Force the next validity check to fail while keeping the data servable."""

        with self._lock:
            self._last_loaded_at = None
        logger.debug("Pokemon cache invalidated")

    def clear(self) -> None:
        """Full reset, used on logout, account switch and guest mode."""

        with self._lock:
            self._generation += 1
            self._last_loaded_at = None
            self.pokemon_list.set(())
            self.is_initialized.set(False)
        logger.debug("Pokemon cache cleared")

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------
    def get_pokemon(self, pokemon_id: int) -> Optional[Pokemon]:
        for entry in self.pokemon_list.value:
            if entry.id == pokemon_id:
                return entry
        return None

    def get_pokemon_range(self, start_id: int, end_id: int) -> Tuple[Pokemon, ...]:
        """Entries whose id lies in ``[start_id, end_id]``, in stored order."""

        return tuple(entry for entry in self.pokemon_list.value if start_id <= entry.id <= end_id)
