"""Reward endpoints and the user projections built on the ledger."""

from __future__ import annotations

import asyncio

import pytest
from httpx import AsyncClient

from tests.conftest import bearer, signup


async def _add_coins(client: AsyncClient, token: str, amount: int, task_type: str):
    return await client.post("/add-coins", json={"amount": amount, "taskType": task_type}, headers=bearer(token))


class TestAddCoins:
    @pytest.mark.asyncio
    async def test_task_reward(self, client: AsyncClient):
        bob = await signup(client, "bob")
        response = await _add_coins(client, bob["token"], 50, "join_telegram")
        assert response.status_code == 200
        assert response.json() == {"message": "Task completed successfully", "coins": 50}

    @pytest.mark.asyncio
    async def test_repeated_task_rejected(self, client: AsyncClient):
        bob = await signup(client, "bob")
        await _add_coins(client, bob["token"], 50, "join_telegram")

        response = await _add_coins(client, bob["token"], 50, "join_telegram")
        assert response.status_code == 400
        assert response.json()["code"] == "TaskAlreadyCompleted"

        user = (await client.get("/user", headers=bearer(bob["token"]))).json()
        assert user["coins"] == 50

    @pytest.mark.asyncio
    async def test_click_reward(self, client: AsyncClient):
        bob = await signup(client, "bob")
        first = await _add_coins(client, bob["token"], 1, "click_coin")
        second = await _add_coins(client, bob["token"], 1, "click_coin")
        assert first.json() == {"message": "Coins added successfully", "coins": 1}
        assert second.json()["coins"] == 2

    @pytest.mark.asyncio
    async def test_negative_amount(self, client: AsyncClient):
        bob = await signup(client, "bob")
        response = await _add_coins(client, bob["token"], -1, "click_coin")
        assert response.status_code == 400
        assert response.json()["code"] == "ValidationFailure"

    @pytest.mark.asyncio
    async def test_largest_amount_accepted(self, client: AsyncClient):
        bob = await signup(client, "bob")
        first = await _add_coins(client, bob["token"], 2**31 - 1, "click_coin")
        second = await _add_coins(client, bob["token"], 2**31 - 1, "click_coin")
        assert first.status_code == 200
        assert second.json()["coins"] == 2 * (2**31 - 1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [2**31, 2**63, True, 1.5])
    async def test_out_of_range_or_non_integer_amount(self, client: AsyncClient, amount):
        bob = await signup(client, "bob")
        response = await client.post(
            "/add-coins", json={"amount": amount, "taskType": "click_coin"}, headers=bearer(bob["token"])
        )
        assert response.status_code == 400
        assert response.json()["code"] == "ValidationFailure"

        user = (await client.get("/user", headers=bearer(bob["token"]))).json()
        assert user["coins"] == 0

    @pytest.mark.asyncio
    async def test_missing_task_type(self, client: AsyncClient):
        bob = await signup(client, "bob")
        response = await client.post("/add-coins", json={"amount": 5}, headers=bearer(bob["token"]))
        assert response.status_code == 400
        assert response.json()["code"] == "ValidationFailure"

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.post("/add-coins", json={"amount": 5, "taskType": "click_coin"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_concurrent_task_requests_credit_once(self, client: AsyncClient):
        bob = await signup(client, "bob")
        responses = await asyncio.gather(*(_add_coins(client, bob["token"], 50, "join_telegram") for _ in range(4)))

        assert sorted(r.status_code for r in responses) == [200, 400, 400, 400]
        user = (await client.get("/user", headers=bearer(bob["token"]))).json()
        assert user["coins"] == 50


class TestLegacyAddCoin:
    @pytest.mark.asyncio
    async def test_adds_one(self, client: AsyncClient):
        bob = await signup(client, "bob")
        response = await client.post("/add-coin", headers=bearer(bob["token"]))
        assert response.status_code == 200
        assert response.json() == {"message": "Coin added successfully", "coins": 1}


class TestUserViews:
    @pytest.mark.asyncio
    async def test_user(self, client: AsyncClient):
        bob = await signup(client, "bob")
        response = await client.get("/user", headers=bearer(bob["token"]))
        assert response.status_code == 200
        assert response.json() == {
            "userId": bob["userId"],
            "username": "bob",
            "email": "bob@example.com",
            "coins": 0,
        }

    @pytest.mark.asyncio
    async def test_user_state(self, client: AsyncClient):
        bob = await signup(client, "bob")
        response = await client.get("/user/state", headers=bearer(bob["token"]))
        assert response.status_code == 200
        data = response.json()
        assert data["isAuthenticated"] is True
        assert data["username"] == "bob"

    @pytest.mark.asyncio
    async def test_referral_link(self, client: AsyncClient):
        bob = await signup(client, "bob")
        response = await client.get("/referral-link", headers=bearer(bob["token"]))
        assert response.status_code == 200
        assert response.json() == {"referralLink": f"https://coins.example.com/signup?ref={bob['userId']}"}

    @pytest.mark.asyncio
    async def test_empty_stats(self, client: AsyncClient):
        bob = await signup(client, "bob")
        response = await client.get("/user/stats", headers=bearer(bob["token"]))
        assert response.status_code == 200
        assert response.json() == {"referrals": [], "tasks": []}


class TestWorkedExample:
    @pytest.mark.asyncio
    async def test_referral_task_and_clicks(self, client: AsyncClient):
        """A refers B; B completes a task once and clicks twice."""
        alice = await signup(client, "alice")
        bob = await signup(client, "bob", referral_code=str(alice["userId"]))

        alice_user = (await client.get("/user", headers=bearer(alice["token"]))).json()
        assert alice_user["coins"] == 500

        assert (await _add_coins(client, bob["token"], 50, "join_telegram")).json()["coins"] == 50
        repeat = await _add_coins(client, bob["token"], 50, "join_telegram")
        assert repeat.status_code == 400
        assert (await _add_coins(client, bob["token"], 1, "click_coin")).json()["coins"] == 51
        assert (await _add_coins(client, bob["token"], 1, "click_coin")).json()["coins"] == 52

        bob_user = (await client.get("/user", headers=bearer(bob["token"]))).json()
        assert bob_user["coins"] == 52

        bob_stats = (await client.get("/user/stats", headers=bearer(bob["token"]))).json()
        assert [t["taskType"] for t in bob_stats["tasks"]] == ["join_telegram"]
        assert bob_stats["tasks"][0]["coinsEarned"] == 50
        assert bob_stats["referrals"] == []

        alice_stats = (await client.get("/user/stats", headers=bearer(alice["token"]))).json()
        assert len(alice_stats["referrals"]) == 1
        assert alice_stats["referrals"][0]["referredUserId"] == bob["userId"]
        assert alice_stats["referrals"][0]["referredUsername"] == "bob"
