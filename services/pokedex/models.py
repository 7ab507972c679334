# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Data models for the Pokédex roster."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

# (generation, first id, last id) inclusive
GENERATION_RANGES: Tuple[Tuple[int, int, int], ...] = (
    (1, 1, 151),
    (2, 152, 251),
    (3, 252, 386),
    (4, 387, 493),
    (5, 494, 649),
    (6, 650, 721),
    (7, 722, 809),
    (8, 810, 905),
    (9, 906, 1025),
)


@dataclass(frozen=True)
class Pokemon:
    """Immutable roster entry with the user's collected/favorite flags."""

    id: int
    name: str
    types: Tuple[str, ...] = ()
    image_url: str = ""
    height: float = 0.0
    weight: float = 0.0
    is_caught: bool = False
    is_favorite: bool = False

    @property
    def generation(self) -> Optional[int]:
        return generation_for_pokedex_id(self.id)


def generation_for_pokedex_id(pokedex_id: int) -> Optional[int]:
    """Return the generation a national Pokédex number belongs to, or None."""
    for generation, first_id, last_id in GENERATION_RANGES:
        if first_id <= pokedex_id <= last_id:
            return generation
    return None
