# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""User profile model (``profiles`` table)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

logger = logging.getLogger("umbra.profile.models")

DEFAULT_NAME_COLOR = "#FFFFFF"


@dataclass(frozen=True)
class UserProfile:
    id: str
    username: str = ""
    gold: int = 0
    xp: int = 0
    level: int = 1
    xp_for_next_level: int = 60
    equipped_pokemon_id: Optional[int] = None
    equipped_skin: str = "standard_male1"
    equipped_theme: str = "theme_default"
    equipped_badge: str = "start_badget"
    equipped_title: str = "Rookie"
    # Raw JSONB value: list of colors, a single string, or None
    equipped_name_color: Any = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "UserProfile":
        equipped_pokemon = row.get("equipped_pokemon_id")
        return cls(
            id=str(row.get("id") or ""),
            username=str(row.get("username") or ""),
            gold=int(row.get("gold") or 0),
            xp=int(row.get("xp") or 0),
            level=int(row.get("level") or 1),
            xp_for_next_level=int(row.get("xp_for_next_level") or 60),
            equipped_pokemon_id=int(equipped_pokemon) if equipped_pokemon is not None else None,
            equipped_skin=row.get("equipped_skin") or "standard_male1",
            equipped_theme=row.get("equipped_theme") or "theme_default",
            equipped_badge=row.get("equipped_badge") or "start_badget",
            equipped_title=row.get("equipped_title") or "Rookie",
            equipped_name_color=row.get("equipped_name_color"),
        )

    def get_name_colors(self) -> List[str]:
        """Name colors as hex strings, always at least two entries."""

        raw = self.equipped_name_color
        if isinstance(raw, str) and raw.startswith("["):
            try:
                raw = json.loads(raw)
            except ValueError:
                logger.debug("Unparseable name color %r, using default", raw)
                raw = None

        if raw is None:
            colors = [DEFAULT_NAME_COLOR]
        elif isinstance(raw, (list, tuple)):
            colors = [str(color) for color in raw if color is not None] or [DEFAULT_NAME_COLOR]
        elif isinstance(raw, str) and raw:
            colors = [raw]
        else:
            colors = [DEFAULT_NAME_COLOR]

        if len(colors) < 2:
            return [colors[0], colors[0]]
        return colors
