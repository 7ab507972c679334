# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Data models used by the mission engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

logger = logging.getLogger("umbra.missions.models")


class MissionStatus(str, Enum):
    """Effective mission status.

    Only ``ACTIVE`` and ``COMPLETED`` are ever persisted; ``LOCKED`` is
    always derived from the prerequisite chain.
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    LOCKED = "locked"


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Mission:
    """Immutable catalog record."""

    id: int
    title: str
    description: str = ""
    category: str = ""
    rarity: str = "common"
    requirement_type: str = ""
    requirement_value: int = 0
    gold_reward: int = 0
    xp_reward: int = 0
    prerequisite_mission_id: Optional[int] = None
    sort_order: int = 0

    @property
    def is_root(self) -> bool:
        return self.prerequisite_mission_id is None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Mission":
        return cls(
            id=_as_int(row.get("id")),
            title=str(row.get("title") or ""),
            description=str(row.get("description") or ""),
            category=str(row.get("category") or ""),
            rarity=str(row.get("rarity") or "common"),
            requirement_type=str(row.get("requirement_type") or ""),
            requirement_value=max(0, _as_int(row.get("requirement_value"))),
            gold_reward=_as_int(row.get("gold_reward")),
            xp_reward=_as_int(row.get("xp_reward")),
            prerequisite_mission_id=_as_optional_int(row.get("prerequisite_mission_id")),
            sort_order=_as_int(row.get("sort_order")),
        )


@dataclass(frozen=True)
class MissionProgress:
    """Per-user progress row as last written by the remote store.

    ``status`` is None when the stored value is missing, unknown, or the
    legacy ``locked`` marker; such a row never decides the status on its own.
    """

    mission_id: int
    current_value: int = 0
    status: Optional[MissionStatus] = MissionStatus.ACTIVE

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MissionProgress":
        raw_status = str(row.get("status") or "").strip().lower()
        if raw_status == MissionStatus.COMPLETED.value:
            status: Optional[MissionStatus] = MissionStatus.COMPLETED
        elif raw_status == MissionStatus.ACTIVE.value:
            status = MissionStatus.ACTIVE
        else:
            if raw_status and raw_status != MissionStatus.LOCKED.value:
                logger.debug("Unknown progress status %r for mission %s", raw_status, row.get("mission_id"))
            status = None
        return cls(
            mission_id=_as_int(row.get("mission_id")),
            current_value=max(0, _as_int(row.get("current_value"))),
            status=status,
        )


@dataclass(frozen=True)
class MissionWithProgress:
    """Derived projection recomputed on every reconciliation pass."""

    mission: Mission
    progress: Optional[MissionProgress]
    status: MissionStatus
    progress_percentage: float
    is_completed: bool
    is_locked: bool
    can_claim: bool

    @property
    def current_value(self) -> int:
        return self.progress.current_value if self.progress is not None else 0


@dataclass(frozen=True)
class ClaimResult:
    """Reward granted by the remote claim transition."""

    gold_reward: int
    xp_reward: int
    next_mission_id: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ClaimResult":
        return cls(
            gold_reward=_as_int(payload.get("gold_reward")),
            xp_reward=_as_int(payload.get("xp_reward")),
            next_mission_id=_as_optional_int(payload.get("next_mission_id")),
        )
