# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""
Cache Services - shared Pokemon entity cache
"""

from .pokemon_cache import CACHE_VALIDITY_SECONDS, PokemonCache

__all__ = ['CACHE_VALIDITY_SECONDS', 'PokemonCache']
