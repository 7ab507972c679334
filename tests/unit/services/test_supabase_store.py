# -*- coding: utf-8 -*-
"""
Unit tests for SupabaseDataStore.

The HTTP session is replaced by a fake so the tests cover status mapping,
claim error classification and request shapes without any network.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from services.datastore.supabase_store import SupabaseDataStore, classify_claim_error
from services.exceptions import (
    ClaimAlreadyClaimedError,
    ClaimNotEligibleError,
    RemoteNetworkError,
    RemoteResponseError,
)


class FakeResponse:
    def __init__(self, status, body=None):
        self.status = status
        self._body = body

    async def json(self, content_type=None):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class FakeRequestContext:
    def __init__(self, response=None, error=None):
        self._response = response
        self._error = error

    async def __aenter__(self):
        if self._error is not None:
            raise self._error
        return self._response

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    closed = False

    def __init__(self, response=None, error=None):
        self._context = FakeRequestContext(response, error)
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return self._context


@pytest.fixture
def store():
    return SupabaseDataStore("https://db.example.com/", "anon-key", access_token="user-token")


class TestClassifyClaimError:
    """Tests for classify_claim_error."""

    def test_already_claimed(self):
        error = classify_claim_error(RemoteResponseError("Mission already claimed"), 5)

        assert isinstance(error, ClaimAlreadyClaimedError)
        assert error.details["mission_id"] == 5

    @pytest.mark.parametrize("message", ["Mission not completed", "Mission is locked", "prerequisite missing"])
    def test_not_eligible(self, message):
        assert isinstance(classify_claim_error(RemoteResponseError(message), 5), ClaimNotEligibleError)

    def test_other_rejections_pass_through(self):
        original = RemoteResponseError("permission denied")

        assert classify_claim_error(original, 5) is original


class TestRequest:
    """Tests for _request status mapping."""

    @pytest.mark.asyncio
    async def test_success_returns_body_and_sends_headers(self, store):
        session = FakeSession(FakeResponse(200, [{"pokedex_id": 1}]))
        store._session = session

        body = await store._request("GET", "user_pokemons", params={"select": "pokedex_id"})

        assert body == [{"pokedex_id": 1}]
        method, url, kwargs = session.requests[0]
        assert (method, url) == ("GET", "https://db.example.com/rest/v1/user_pokemons")
        assert kwargs["headers"]["Authorization"] == "Bearer user-token"
        assert kwargs["headers"]["apikey"] == "anon-key"

    @pytest.mark.asyncio
    async def test_server_error_is_network_error(self, store):
        store._session = FakeSession(FakeResponse(503))

        with pytest.raises(RemoteNetworkError) as exc_info:
            await store._request("GET", "missions")

        assert exc_info.value.details["status"] == 503

    @pytest.mark.asyncio
    async def test_client_error_uses_server_message(self, store):
        store._session = FakeSession(FakeResponse(400, {"message": "Insufficient gold"}))

        with pytest.raises(RemoteResponseError, match="Insufficient gold"):
            await store._request("POST", "rpc/spend_gold")

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self, store):
        store._session = FakeSession(FakeResponse(204, ValueError("no body")))

        assert await store._request("DELETE", "teams") is None

    @pytest.mark.parametrize("error", [aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()])
    @pytest.mark.asyncio
    async def test_transport_failures_are_network_errors(self, store, error):
        store._session = FakeSession(error=error)

        with pytest.raises(RemoteNetworkError):
            await store._request("GET", "profiles")


class TestClaim:
    """Tests for claim_mission_reward."""

    @pytest.mark.asyncio
    async def test_successful_claim_payload(self, store):
        payload = [{"success": True, "gold_reward": 100, "xp_reward": 50, "next_mission_id": 2}]
        with patch.object(store, "_request", AsyncMock(return_value=payload)) as request:
            result = await store.claim_mission_reward("user-1", 1)

        assert (result.gold_reward, result.xp_reward, result.next_mission_id) == (100, 50, 2)
        request.assert_awaited_once_with(
            "POST", "rpc/claim_mission_reward_v2", payload={"p_user_id": "user-1", "p_mission_id": 1}
        )

    @pytest.mark.asyncio
    async def test_rejected_rpc_is_classified(self, store):
        rejection = RemoteResponseError("Mission already claimed")
        with patch.object(store, "_request", AsyncMock(side_effect=rejection)):
            with pytest.raises(ClaimAlreadyClaimedError):
                await store.claim_mission_reward("user-1", 1)

    @pytest.mark.asyncio
    async def test_soft_failure_in_payload_is_classified(self, store):
        with patch.object(store, "_request", AsyncMock(return_value={"success": False, "error": "Mission not active"})):
            with pytest.raises(ClaimNotEligibleError):
                await store.claim_mission_reward("user-1", 1)

    @pytest.mark.asyncio
    async def test_network_failure_is_not_reclassified(self, store):
        with patch.object(store, "_request", AsyncMock(side_effect=RemoteNetworkError("timeout"))):
            with pytest.raises(RemoteNetworkError):
                await store.claim_mission_reward("user-1", 1)


class TestQueries:
    """Tests for request shapes of the table helpers."""

    @pytest.mark.asyncio
    async def test_caught_ids(self, store):
        rows = [{"pokedex_id": 1}, {"pokedex_id": "25"}, {"pokedex_id": None}]
        with patch.object(store, "_request", AsyncMock(return_value=rows)) as request:
            caught = await store.fetch_caught_ids("user-1")

        assert caught == {1, 25}
        assert request.await_args.kwargs["params"] == {"select": "pokedex_id", "user_id": "eq.user-1"}

    @pytest.mark.asyncio
    async def test_missing_profile(self, store):
        with patch.object(store, "_request", AsyncMock(return_value=[])):
            assert await store.fetch_user_profile("user-1") is None

    @pytest.mark.asyncio
    async def test_type_progress_is_lowercased_and_skipped_when_empty(self, store):
        with patch.object(store, "_request", AsyncMock(return_value=None)) as request:
            await store.update_type_progress("user-1", [])
            await store.update_type_progress("user-1", ["Fire", "Flying"])

        request.assert_awaited_once_with(
            "POST", "rpc/update_type_progress",
            payload={"p_user_id": "user-1", "p_pokemon_types": ["fire", "flying"]},
        )
