# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Team creation and deletion; both feed the mission counters."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from services.datastore.base import DataStore
from services.exceptions import DataStoreError
from services.infrastructure.event_manager import EventManager

logger = logging.getLogger("umbra.teams.team_service")

MAX_TEAM_NAME_LENGTH = 50

TEAM_GRADIENTS: Tuple[Tuple[str, str], ...] = (
    ("#667eea", "#764ba2"),
    ("#f093fb", "#f5576c"),
    ("#4facfe", "#00f2fe"),
    ("#43e97b", "#38f9d7"),
    ("#fa709a", "#fee140"),
    ("#30cfd0", "#330867"),
    ("#a8edea", "#fed6e3"),
    ("#ff9a9e", "#fecfef"),
    ("#fbc2eb", "#a6c1ee"),
    ("#fdcbf1", "#e6dee9"),
    ("#a1c4fd", "#c2e9fb"),
    ("#ffecd2", "#fcb69f"),
    ("#ff6e7f", "#bfe9ff"),
    ("#e0c3fc", "#8ec5fc"),
)


@dataclass(frozen=True)
class TeamResult:
    success: bool
    error_message: Optional[str] = None
    error_code: Optional[str] = None


def random_gradient(rng: random.Random = random) -> Tuple[str, str]:
    return rng.choice(TEAM_GRADIENTS)


class TeamService:
    def __init__(self, data_store: DataStore, event_manager: EventManager):
        self.data_store = data_store
        self.event_manager = event_manager

    async def create_team(
        self,
        user_id: str,
        name: str,
        region: str,
        gradient_colors: Optional[Sequence[str]] = None,
    ) -> TeamResult:
        if not name or not name.strip() or len(name) > MAX_TEAM_NAME_LENGTH:
            return TeamResult(
                False,
                error_message=f"Team name must be between 1 and {MAX_TEAM_NAME_LENGTH} characters",
                error_code="INVALID_NAME",
            )

        colors = list(gradient_colors) if gradient_colors else list(random_gradient())
        try:
            await self.data_store.create_team(user_id, name, region, colors)
        except DataStoreError as e:
            logger.error("Failed to create team %r: %s", name, e)
            return TeamResult(False, error_message=f"Failed to create team: {e.message}", error_code="NETWORK")

        logger.info("Team %r created in %s", name, region)
        self.event_manager.notify_team_created()
        return TeamResult(True)

    async def delete_team(self, team_id: str) -> TeamResult:
        try:
            await self.data_store.delete_team(team_id)
        except DataStoreError as e:
            logger.error("Failed to delete team %s: %s", team_id, e)
            return TeamResult(False, error_message=f"Failed to delete team: {e.message}", error_code="NETWORK")

        self.event_manager.notify_team_deleted()
        return TeamResult(True)
