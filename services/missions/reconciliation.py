# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Pure mission reconciliation.

Derives the effective per-mission state from the catalog and the user's
progress rows.  Nothing here performs I/O or raises on bad input: the
callers are expected to have synced the progress counters beforehand.

Status precedence (first match wins):

1. progress row says ``completed``      -> completed
2. progress row says ``active``         -> active
3. mission has no prerequisite (root)   -> active
4. prerequisite has a completed row     -> active (self-healing)
5. otherwise                            -> locked
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from services.missions.models import (
    Mission,
    MissionProgress,
    MissionStatus,
    MissionWithProgress,
)


def _index_progress(progress: Iterable[MissionProgress]) -> Dict[int, MissionProgress]:
    # Last row wins on duplicates.
    return {row.mission_id: row for row in progress}


def derive_status(
    mission: Mission,
    progress: Optional[MissionProgress],
    completed_ids: Set[int],
) -> MissionStatus:
    if progress is not None and progress.status is MissionStatus.COMPLETED:
        return MissionStatus.COMPLETED
    if progress is not None and progress.status is MissionStatus.ACTIVE:
        return MissionStatus.ACTIVE
    if mission.prerequisite_mission_id is None:
        return MissionStatus.ACTIVE
    if mission.prerequisite_mission_id in completed_ids:
        return MissionStatus.ACTIVE
    return MissionStatus.LOCKED


def progress_percentage(mission: Mission, progress: Optional[MissionProgress]) -> float:
    if mission.requirement_value <= 0:
        return 1.0
    current = progress.current_value if progress is not None else 0
    return min(1.0, max(0.0, current / mission.requirement_value))


def reconcile(
    missions: Sequence[Mission],
    progress: Iterable[MissionProgress],
) -> Tuple[MissionWithProgress, ...]:
    """Project every catalog mission onto the user's progress, in catalog order."""

    rows = list(progress)
    by_mission = _index_progress(rows)
    # Any completed row counts, even one shadowed by a later duplicate.
    completed_ids = {row.mission_id for row in rows if row.status is MissionStatus.COMPLETED}

    results: List[MissionWithProgress] = []
    for mission in missions:
        row = by_mission.get(mission.id)
        status = derive_status(mission, row, completed_ids)
        current_value = row.current_value if row is not None else 0
        results.append(
            MissionWithProgress(
                mission=mission,
                progress=row,
                status=status,
                progress_percentage=progress_percentage(mission, row),
                is_completed=status is MissionStatus.COMPLETED,
                is_locked=status is MissionStatus.LOCKED,
                # Integer comparison, independent of the rounded percentage.
                can_claim=status is MissionStatus.ACTIVE and current_value >= mission.requirement_value,
            )
        )
    return tuple(results)


def partition_missions(
    reconciled: Iterable[MissionWithProgress],
) -> Tuple[Tuple[MissionWithProgress, ...], Tuple[MissionWithProgress, ...], Tuple[MissionWithProgress, ...]]:
    """Split into ``(active, completed, locked)``; every mission lands in exactly one bucket."""

    active: List[MissionWithProgress] = []
    completed: List[MissionWithProgress] = []
    locked: List[MissionWithProgress] = []
    for entry in reconciled:
        if entry.is_completed:
            completed.append(entry)
        elif entry.is_locked:
            locked.append(entry)
        else:
            active.append(entry)
    return tuple(active), tuple(completed), tuple(locked)


def filter_by_category(
    reconciled: Iterable[MissionWithProgress],
    category: Optional[str],
) -> Tuple[MissionWithProgress, ...]:
    if category is None:
        return tuple(reconciled)
    return tuple(entry for entry in reconciled if entry.mission.category == category)


def find_prerequisite_cycles(missions: Iterable[Mission]) -> List[Tuple[int, ...]]:
    """Return every prerequisite cycle as a tuple of mission ids.

    Each mission has at most one prerequisite, so a walk along the
    references either terminates or loops.
    """

    prerequisite_of = {mission.id: mission.prerequisite_mission_id for mission in missions}
    cycles: List[Tuple[int, ...]] = []
    finished: Set[int] = set()

    for start in prerequisite_of:
        if start in finished:
            continue
        path: List[int] = []
        position: Dict[int, int] = {}
        current: Optional[int] = start
        while current is not None and current in prerequisite_of and current not in finished:
            if current in position:
                cycles.append(tuple(path[position[current]:]))
                break
            position[current] = len(path)
            path.append(current)
            current = prerequisite_of[current]
        finished.update(path)

    return cycles
