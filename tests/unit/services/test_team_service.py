# -*- coding: utf-8 -*-
"""
Unit tests for TeamService.
"""

import random

import pytest

from conftest import USER_ID
from services.infrastructure import events
from services.teams.team_service import MAX_TEAM_NAME_LENGTH, TEAM_GRADIENTS, TeamService, random_gradient


@pytest.fixture
def teams(fake_store, event_manager):
    return TeamService(fake_store, event_manager)


class TestCreateTeam:
    """Tests for create_team."""

    @pytest.mark.asyncio
    async def test_create_publishes_team_and_progress(self, teams, fake_store, event_manager):
        team_sub = event_manager.team.subscribe()
        progress_sub = event_manager.mission_progress.subscribe()

        result = await teams.create_team(USER_ID, "Kanto Crew", "Kanto", ["#000000", "#FFFFFF"])

        assert result.success is True
        assert fake_store.teams[0]["gradient_colors"] == ["#000000", "#FFFFFF"]
        assert team_sub.get_nowait() == events.TeamCreated()
        assert progress_sub.get_nowait() == events.MissionProgressUpdated()

    @pytest.mark.asyncio
    async def test_gradient_defaults_to_palette(self, teams, fake_store):
        await teams.create_team(USER_ID, "Johto Crew", "Johto")

        assert tuple(fake_store.teams[0]["gradient_colors"]) in TEAM_GRADIENTS

    @pytest.mark.parametrize("name", ["", "   ", "x" * (MAX_TEAM_NAME_LENGTH + 1)])
    @pytest.mark.asyncio
    async def test_invalid_names(self, teams, fake_store, name):
        result = await teams.create_team(USER_ID, name, "Kanto")

        assert result.error_code == "INVALID_NAME"
        assert fake_store.calls == []

    @pytest.mark.asyncio
    async def test_store_failure(self, teams, fake_store, event_manager, network_error):
        fake_store.failures["create_team"] = network_error
        team_sub = event_manager.team.subscribe()

        result = await teams.create_team(USER_ID, "Kanto Crew", "Kanto")

        assert result.error_code == "NETWORK"
        assert team_sub.pending == 0


class TestDeleteTeam:
    """Tests for delete_team."""

    @pytest.mark.asyncio
    async def test_delete(self, teams, fake_store, event_manager):
        await teams.create_team(USER_ID, "Kanto Crew", "Kanto")
        team_sub = event_manager.team.subscribe()

        result = await teams.delete_team("1")

        assert result.success is True
        assert fake_store.teams == []
        assert team_sub.get_nowait() == events.TeamDeleted()


def test_random_gradient_is_deterministic_with_seeded_rng():
    assert random_gradient(random.Random(7)) == random_gradient(random.Random(7))
