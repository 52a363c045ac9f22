"""
Tests for the voice command endpoints (/voice).

These tests verify:
  - Utterances come back as a result plus the balance afterwards
  - Business-rule failures are HTTP 200 with status "failure"
  - Large transactions are staged, visible at /voice/pending, and run
    only on /voice/confirm
  - Each account has its own session and its own staged transaction
"""

import pytest
import pytest_asyncio


@pytest.fixture
def me(authenticated_client, directory):
    account = directory.find_by_email("testuser@example.com")
    account.balance_cents = 100_000
    return account


async def say(client, utterance):
    return await client.post("/voice/commands", json={"utterance": utterance})


class TestCommands:
    async def test_balance(self, authenticated_client, me):
        response = await say(authenticated_client, "check my balance")
        assert response.status_code == 200
        assert response.json() == {
            "message": "Your current balance is $1000.00",
            "should_speak": True,
            "status": "info",
            "balance_cents": 100_000,
        }

    async def test_unknown_contact_is_not_an_http_error(self, authenticated_client, me):
        response = await say(authenticated_client, "send 50 to zed")
        assert response.status_code == 200
        assert response.json()["status"] == "failure"
        assert response.json()["balance_cents"] == 100_000

    async def test_guidance(self, authenticated_client, me):
        response = await say(authenticated_client, "split with alice")
        assert response.json()["status"] == "guidance"

    async def test_utterance_length_limit(self, authenticated_client, me):
        response = await say(authenticated_client, "a" * 501)
        assert response.status_code == 422

    async def test_requires_auth(self, client):
        response = await say(client, "check my balance")
        assert response.status_code == 401


class TestConfirmation:
    @pytest_asyncio.fixture
    async def with_alice(self, authenticated_client, me):
        await authenticated_client.post(
            "/contacts", json={"name": "Alice", "balance_cents": 100_000}
        )
        return authenticated_client

    async def test_nothing_pending(self, authenticated_client, me):
        response = await authenticated_client.get("/voice/pending")
        assert response.status_code == 200
        assert response.json() is None

    async def test_stage_then_confirm(self, with_alice, me):
        staged = await say(with_alice, "send 200 to alice")
        assert staged.json()["status"] == "pending_confirmation"
        assert staged.json()["should_speak"] is False
        assert staged.json()["balance_cents"] == 100_000

        pending = (await with_alice.get("/voice/pending")).json()
        assert pending["type"] == "send"
        assert pending["amount_cents"] == 20_000
        assert pending["percentage_of_balance"] == 20.0

        refused = await say(with_alice, "check balance")
        assert refused.json()["message"] == "Please confirm or cancel the pending transaction first."

        confirmed = await with_alice.post("/voice/confirm")
        assert confirmed.json()["status"] == "success"
        assert confirmed.json()["balance_cents"] == 80_000
        assert (await with_alice.get("/voice/pending")).json() is None

    async def test_stage_then_cancel(self, with_alice, me):
        await say(with_alice, "send 200 to alice")
        cancelled = await with_alice.post("/voice/cancel")
        assert cancelled.json()["status"] == "cancelled"
        assert cancelled.json()["message"] == "Transaction cancelled."
        assert cancelled.json()["balance_cents"] == 100_000

    async def test_empty_balance_percentage_is_null(self, with_alice, me):
        me.balance_cents = 0
        await say(with_alice, "send 5 to alice")
        pending = (await with_alice.get("/voice/pending")).json()
        assert pending["percentage_of_balance"] is None

    async def test_sessions_are_per_account(self, with_alice, second_client, me):
        await say(with_alice, "send 200 to alice")
        assert (await second_client.get("/voice/pending")).json() is None
        response = await say(second_client, "help")
        assert response.json()["status"] == "info"
