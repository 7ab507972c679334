# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Search, filter and sort helpers for roster views."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from services.pokedex.models import Pokemon


class SortOrder(str, Enum):
    NUMBER = "number"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"
    TYPE = "type"


@dataclass(frozen=True)
class PokedexFilter:
    search_text: str = ""
    selected_type: Optional[str] = None
    selected_generation: Optional[int] = None
    sort_order: SortOrder = SortOrder.NUMBER
    only_favorites: bool = False
    only_caught: bool = False


def formatted_id(pokemon: Pokemon) -> str:
    return f"#{pokemon.id:03d}"


def _matches_search(pokemon: Pokemon, text: str) -> bool:
    return (
        text.lower() in pokemon.name.lower()
        or str(pokemon.id) == text
        or text in formatted_id(pokemon)
    )


def apply_filters(roster: Iterable[Pokemon], state: PokedexFilter) -> Tuple[Pokemon, ...]:
    filtered = list(roster)

    text = state.search_text.strip()
    if text:
        filtered = [pokemon for pokemon in filtered if _matches_search(pokemon, text)]

    if state.selected_type:
        wanted = state.selected_type.lower()
        filtered = [pokemon for pokemon in filtered if any(t.lower() == wanted for t in pokemon.types)]

    if state.selected_generation is not None:
        filtered = [pokemon for pokemon in filtered if pokemon.generation == state.selected_generation]

    if state.only_favorites:
        filtered = [pokemon for pokemon in filtered if pokemon.is_favorite]

    if state.only_caught:
        filtered = [pokemon for pokemon in filtered if pokemon.is_caught]

    if state.sort_order is SortOrder.NAME_ASC:
        filtered.sort(key=lambda pokemon: pokemon.name)
    elif state.sort_order is SortOrder.NAME_DESC:
        filtered.sort(key=lambda pokemon: pokemon.name, reverse=True)
    elif state.sort_order is SortOrder.TYPE:
        filtered.sort(key=lambda pokemon: pokemon.types[0] if pokemon.types else "")
    else:
        filtered.sort(key=lambda pokemon: pokemon.id)

    return tuple(filtered)
