# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Mission board orchestration: sync, reconcile, publish, claim.

Every load cycle runs ``sync -> reconcile -> publish`` in that order.  Loads
can be triggered manually and by event fan-out in quick succession, so each
one takes a sequence stamp and its result is only published while the
stamp is still the most recent one issued.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import List, Optional, Set, Tuple

from services.datastore.base import DataStore
from services.exceptions import (
    ClaimAlreadyClaimedError,
    ClaimNotEligibleError,
    DataStoreError,
    MissionCatalogError,
)
from services.infrastructure import events
from services.infrastructure.event_manager import EventManager, Subscription
from services.infrastructure.observable import ObservableValue
from services.missions.models import ClaimResult, MissionWithProgress
from services.missions.reconciliation import (
    filter_by_category,
    find_prerequisite_cycles,
    partition_missions,
    reconcile,
)
from services.profile.models import UserProfile
from utils.logging_utils import get_module_logger
from utils.observability import get_structured_logger, metrics, tracing

logger = get_module_logger("missions.mission_service")
structured_logger = get_structured_logger(__name__, service_name="MissionService")

MissionTuple = Tuple[MissionWithProgress, ...]


@dataclass(frozen=True)
class MissionBoardState:
    """Everything the mission screen renders."""

    active: MissionTuple = ()
    completed: MissionTuple = ()
    locked: MissionTuple = ()
    all_missions: MissionTuple = ()
    is_loading: bool = False
    error: Optional[str] = None
    success_message: Optional[str] = None
    selected_category: Optional[str] = None
    claiming_mission_id: Optional[int] = None
    user_gold: int = 0
    user_xp: int = 0
    user_level: int = 1
    last_claimed_reward: Optional[ClaimResult] = None
    prerequisite_cycles: Tuple[Tuple[int, ...], ...] = ()
    version: int = 0


@dataclass(frozen=True)
class MissionClaimResult:
    """Result object returned by :meth:`MissionService.claim_reward`."""

    success: bool
    mission_id: int
    reward: Optional[ClaimResult] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None


@dataclass(frozen=True)
class _BoardSnapshot:
    reconciled: MissionTuple
    profile: Optional[UserProfile]
    cycles: Tuple[Tuple[int, ...], ...]


class MissionService:
    """Mission board for one signed-in user."""

    def __init__(
        self,
        data_store: DataStore,
        event_manager: EventManager,
        refresh_delay_seconds: float = 0.3,
        message_display_seconds: Optional[float] = 3.0,
    ):
        self.data_store = data_store
        self.event_manager = event_manager
        self.refresh_delay_seconds = refresh_delay_seconds
        self.message_display_seconds = message_display_seconds

        self.state: ObservableValue[MissionBoardState] = ObservableValue(MissionBoardState(), name="mission_board")
        self._user_id: Optional[str] = None
        self._sequence = 0
        self._claims_in_flight: Set[int] = set()
        self._known_cycles: Tuple[Tuple[int, ...], ...] = ()
        self._message_task: Optional[asyncio.Task] = None
        self._subscriptions: List[Subscription] = []

        logger.info("Mission Service initialized")

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------
    @property
    def current_user_id(self) -> Optional[str]:
        return self._user_id

    def _update(self, **changes) -> MissionBoardState:
        new_state = replace(self.state.value, **changes)
        self.state.set(new_state)
        return new_state

    def _next_stamp(self) -> int:
        self._sequence += 1
        return self._sequence

    def _is_latest(self, stamp: int) -> bool:
        return stamp == self._sequence

    def _partitioned(self, reconciled: MissionTuple, category: Optional[str]) -> dict:
        active, completed, locked = partition_missions(filter_by_category(reconciled, category))
        return {"active": active, "completed": completed, "locked": locked}

    # ------------------------------------------------------------------
    # Sync collaborators
    # ------------------------------------------------------------------
    async def sync_all_missions(self, user_id: str) -> bool:
        """Ask the store to recompute counters; failures are logged, not raised."""
        try:
            await self.data_store.sync_mission_counters(user_id)
            return True
        except DataStoreError as e:
            metrics.increment("missions.sync.failed")
            logger.warning("Mission counter sync failed for %s: %s", user_id, e)
            return False

    async def ensure_root_missions_initialized(self, user_id: str) -> bool:
        try:
            await self.data_store.ensure_root_missions_initialized(user_id)
            return True
        except DataStoreError as e:
            logger.warning("Root mission initialization failed for %s: %s", user_id, e)
            return False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def _check_catalog(self, cycles: List[Tuple[int, ...]]) -> Tuple[Tuple[int, ...], ...]:
        found = tuple(cycles)
        if found and found != self._known_cycles:
            error = MissionCatalogError(
                "Mission prerequisites form a cycle; affected missions stay locked",
                error_code="PREREQUISITE_CYCLE",
                details={"cycles": [list(cycle) for cycle in found]},
            )
            metrics.increment("missions.catalog.cycles", value=len(found))
            logger.error("Mission catalog configuration error: %s", error.to_dict())
        self._known_cycles = found
        return found

    async def _fetch_profile(self, user_id: str):
        # Gold and level keep their last values when only the profile is unavailable.
        try:
            return await self.data_store.fetch_user_profile(user_id)
        except DataStoreError as e:
            metrics.increment("missions.profile.failed")
            logger.warning("Profile fetch failed for %s, keeping last gold/level: %s", user_id, e)
            return None

    async def _fetch_board(self, user_id: str, sync: bool, ensure_roots: bool) -> _BoardSnapshot:
        if sync:
            await self.sync_all_missions(user_id)
        if ensure_roots:
            await self.ensure_root_missions_initialized(user_id)

        profile, catalog, progress = await asyncio.gather(
            self._fetch_profile(user_id),
            self.data_store.fetch_missions_catalog(),
            self.data_store.fetch_user_mission_progress(user_id),
        )

        cycles = self._check_catalog(find_prerequisite_cycles(catalog))
        with metrics.timer("missions.reconcile"):
            reconciled = reconcile(catalog, progress)
        metrics.increment("missions.reconcile.runs")
        return _BoardSnapshot(reconciled=reconciled, profile=profile, cycles=cycles)

    def _apply_board(self, stamp: int, snapshot: _BoardSnapshot) -> bool:
        if not self._is_latest(stamp):
            metrics.increment("missions.board.stale_dropped")
            logger.debug("Dropping stale mission board #%d (latest #%d)", stamp, self._sequence)
            return False

        current = self.state.value
        profile = snapshot.profile
        self._update(
            all_missions=snapshot.reconciled,
            is_loading=False,
            user_gold=profile.gold if profile else current.user_gold,
            user_xp=profile.xp if profile else current.user_xp,
            user_level=profile.level if profile else current.user_level,
            prerequisite_cycles=snapshot.cycles,
            version=stamp,
            **self._partitioned(snapshot.reconciled, current.selected_category),
        )
        return True

    async def load_missions(self, user_id: str) -> MissionBoardState:
        """Full load with loading indicator: sync, initialize roots, fetch, reconcile."""

        self._user_id = user_id
        stamp = self._next_stamp()
        self._update(is_loading=True, error=None)

        try:
            snapshot = await self._fetch_board(user_id, sync=True, ensure_roots=True)
        except DataStoreError as e:
            metrics.increment("missions.load.failed")
            logger.error("Error loading missions for %s: %s", user_id, e, exc_info=True)
            if self._is_latest(stamp):
                # Last known board stays in place
                self._update(is_loading=False, error=e.message)
                self._schedule_message_clear()
            return self.state.value

        self._apply_board(stamp, snapshot)
        return self.state.value

    async def refresh_quietly(self, user_id: Optional[str] = None, sync: bool = False) -> bool:
        """Refresh without loading indicator; failures keep the last board."""

        user_id = user_id or self._user_id
        if user_id is None:
            return False
        stamp = self._next_stamp()
        try:
            snapshot = await self._fetch_board(user_id, sync=sync, ensure_roots=False)
        except DataStoreError as e:
            logger.warning("Error refreshing missions quietly: %s", e)
            if self._is_latest(stamp) and self.state.value.is_loading:
                self._update(is_loading=False)
            return False
        return self._apply_board(stamp, snapshot)

    # ------------------------------------------------------------------
    # Claiming
    # ------------------------------------------------------------------
    def _finish_claim(self, mission_id: int) -> None:
        self._claims_in_flight.discard(mission_id)
        if self.state.value.claiming_mission_id == mission_id:
            self._update(claiming_mission_id=next(iter(self._claims_in_flight), None))

    async def claim_reward(self, user_id: str, mission_id: int) -> MissionClaimResult:
        """Claim a mission reward through the store's atomic transition.

        The ``claiming_mission_id`` marker only guards against repeated
        taps in this process; the store decides who wins a real race.
        """
        if mission_id in self._claims_in_flight:
            metrics.increment("missions.claims.rejected_in_flight")
            return MissionClaimResult(
                success=False,
                mission_id=mission_id,
                error_message="Claim already in progress",
                error_code="CLAIM_IN_PROGRESS",
            )

        start_time = time.time()
        self._claims_in_flight.add(mission_id)
        self._update(claiming_mission_id=mission_id)
        metrics.increment("missions.claims.attempts")

        with tracing.trace("missions.claim", attributes={"mission_id": mission_id}) as span:
            try:
                reward = await self.data_store.claim_mission_reward(user_id, mission_id)
            except ClaimAlreadyClaimedError as e:
                result = MissionClaimResult(False, mission_id, error_message="Reward already claimed", error_code="ALREADY_CLAIMED")
                metrics.increment("missions.claims.already_claimed")
                logger.info("Mission %d was already claimed: %s", mission_id, e)
            except ClaimNotEligibleError as e:
                result = MissionClaimResult(False, mission_id, error_message=e.message, error_code="NOT_ELIGIBLE")
                metrics.increment("missions.claims.not_eligible")
                logger.info("Mission %d is not claimable: %s", mission_id, e)
            except DataStoreError as e:
                result = MissionClaimResult(
                    False, mission_id, error_message=f"Could not claim reward: {e.message}", error_code="NETWORK"
                )
                metrics.increment("missions.claims.failed")
                logger.error("Claim of mission %d failed: %s", mission_id, e, exc_info=True)
            else:
                result = MissionClaimResult(True, mission_id, reward=reward)
            finally:
                self._finish_claim(mission_id)

            duration_ms = (time.time() - start_time) * 1000
            if span:
                span.set_attribute("success", result.success)
                span.set_attribute("duration_ms", duration_ms)

        if not result.success:
            self._update(error=result.error_message)
            self._schedule_message_clear()
            return result

        metrics.increment("missions.claims.total")
        metrics.histogram("missions.claim.gold", reward.gold_reward)
        structured_logger.info("mission_claimed", extra={
            "mission_id": mission_id,
            "gold_reward": reward.gold_reward,
            "xp_reward": reward.xp_reward,
            "next_mission_id": reward.next_mission_id,
            "duration_ms": duration_ms,
        })

        self._update(
            success_message=f"+{reward.gold_reward} Gold, +{reward.xp_reward} XP!",
            last_claimed_reward=reward,
        )
        self._schedule_message_clear()

        self.event_manager.notify_mission_claimed(mission_id, reward.gold_reward, reward.xp_reward)
        self.event_manager.notify_gold_changed(reward.gold_reward)

        await asyncio.sleep(self.refresh_delay_seconds)
        await self.refresh_quietly(user_id)
        return result

    # ------------------------------------------------------------------
    # Presentation helpers
    # ------------------------------------------------------------------
    def filter_by_category(self, category: Optional[str]) -> MissionBoardState:
        current = self.state.value
        return self._update(
            selected_category=category,
            **self._partitioned(current.all_missions, category),
        )

    def clear_messages(self) -> None:
        if self._message_task is not None and not self._message_task.done():
            self._message_task.cancel()
        self._update(error=None, success_message=None, last_claimed_reward=None)

    def _schedule_message_clear(self) -> None:
        if not self.message_display_seconds or self.message_display_seconds <= 0:
            return
        if self._message_task is not None and not self._message_task.done():
            self._message_task.cancel()
        self._message_task = asyncio.get_running_loop().create_task(
            self._clear_messages_later(self.state.value.error, self.state.value.success_message)
        )

    async def _clear_messages_later(self, error: Optional[str], success_message: Optional[str]) -> None:
        await asyncio.sleep(self.message_display_seconds)
        current = self.state.value
        changes = {}
        if current.error == error:
            changes["error"] = None
        if current.success_message == success_message:
            changes["success_message"] = None
        if changes:
            self._update(**changes)

    # ------------------------------------------------------------------
    # Event reactions
    # ------------------------------------------------------------------
    async def _sync_and_refresh(self) -> None:
        user_id = self._user_id
        if user_id is None:
            return
        await asyncio.sleep(self.refresh_delay_seconds)
        await self.sync_all_missions(user_id)
        await self.refresh_quietly(user_id)

    async def _on_mission_progress(self, event: events.MissionProgressEvent) -> None:
        if isinstance(event, events.MissionProgressUpdated):
            await self._sync_and_refresh()
        elif isinstance(event, events.MissionClaimed):
            await self.refresh_quietly()

    async def _on_living_dex(self, event: events.LivingDexEvent) -> None:
        if not isinstance(event, events.LivingDexAdded) or self._user_id is None:
            return
        if event.pokemon_types:
            try:
                await self.data_store.update_type_progress(self._user_id, event.pokemon_types)
            except DataStoreError as e:
                logger.warning("Type progress update failed for #%d: %s", event.pokemon_id, e)
        await self._sync_and_refresh()

    async def _on_team(self, event: events.TeamEvent) -> None:
        if isinstance(event, events.TeamCreated):
            await self._sync_and_refresh()

    async def _on_shop_purchase(self, event: events.ShopPurchaseEvent) -> None:
        await self._sync_and_refresh()

    async def _on_favorite(self, event: events.FavoriteEvent) -> None:
        if isinstance(event, events.FavoriteChanged):
            await self._sync_and_refresh()

    def start(self) -> None:
        manager = self.event_manager
        self._subscriptions = [
            manager.mission_progress.subscribe(self._on_mission_progress),
            manager.living_dex.subscribe(self._on_living_dex),
            manager.team.subscribe(self._on_team),
            manager.shop_purchase.subscribe(self._on_shop_purchase),
            manager.favorite.subscribe(self._on_favorite),
        ]

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        if self._message_task is not None and not self._message_task.done():
            self._message_task.cancel()

    async def aclose(self) -> None:
        """Close and wait for the event pumps and the message timer to stop."""
        subscriptions = list(self._subscriptions)
        message_task = self._message_task
        self.close()
        for subscription in subscriptions:
            await subscription.aclose()
        if message_task is not None:
            try:
                await message_task
            except asyncio.CancelledError:
                pass
