# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Parsing of the loosely typed color specs stored on the profile.

A stored spec is either empty, a sentinel name meaning "built-in default",
a JSON-array-shaped string of ``#RRGGBB`` tokens, or a bare theme name.
None of the helpers here raise; malformed input resolves to the default.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

logger = logging.getLogger("umbra.theme.color_resolver")

DEFAULT_THEME_SENTINELS = frozenset({"theme_default", "Classic Purple"})
DEFAULT_DISPLAY_COLOR = "#FFFFFF"


def _split_color_tokens(spec: str) -> List[str]:
    body = spec.strip()
    if body.startswith("["):
        body = body[1:]
    if body.endswith("]"):
        body = body[:-1]
    body = body.replace('"', "").replace("'", "")
    tokens = (token.strip() for token in body.split(","))
    return [token for token in tokens if token.startswith("#")]


def is_default_spec(spec: Optional[str]) -> bool:
    """True for specs that mean "use the built-in default palette"."""

    if spec is None:
        return True
    stripped = spec.strip()
    return not stripped or stripped == "[]" or stripped in DEFAULT_THEME_SENTINELS


def parse_colors(spec: Optional[str]) -> Optional[List[str]]:
    """Parse a stored theme spec into at least two colors, or None for "default".

    >>> parse_colors('["#AA0000","#00BB00"]')
    ['#AA0000', '#00BB00']
    >>> parse_colors("theme_default") is None
    True
    """
    try:
        if is_default_spec(spec):
            return None
        stripped = spec.strip()
        if not stripped.startswith("["):
            # Bare theme name; resolving it is the caller's job.
            return None
        colors = _split_color_tokens(stripped)
        return colors if len(colors) >= 2 else None
    except (AttributeError, TypeError, ValueError) as e:
        logger.debug("Unparseable color spec %r: %s", spec, e)
        return None


def needs_name_lookup(spec: Optional[str]) -> bool:
    """True when *spec* is a bare theme name the caller should look up."""

    if is_default_spec(spec) or not isinstance(spec, str):
        return False
    return not spec.strip().startswith("[")


def get_display_colors(raw: Union[Optional[str], Sequence[str]]) -> List[str]:
    """Return a palette with at least two entries, ready for a two-stop gradient.

    *raw* may be a color sequence or a stored spec string.  No colors yields
    white, a single color is duplicated, longer palettes pass through.
    """
    if raw is None:
        colors: List[str] = []
    elif isinstance(raw, str):
        try:
            colors = _split_color_tokens(raw)
        except (AttributeError, TypeError, ValueError):
            colors = []
    else:
        colors = [str(color) for color in raw if color]

    if not colors:
        colors = [DEFAULT_DISPLAY_COLOR]
    if len(colors) == 1:
        return [colors[0], colors[0]]
    return list(colors)
