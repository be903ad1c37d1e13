"""
Integration tests for GET and POST /score
"""

from decimal import Decimal

import pytest

from fancred.services.score_engine import compute_score
from tests.fakes import WALLET_A, WALLET_B


class TestGetScore:
    """Test suite for GET /score."""

    @pytest.mark.asyncio
    async def test_returns_breakdown(self, client):
        response = await client.get("/score", params={"walletAddress": WALLET_A})

        assert response.status_code == 200
        data = response.json()
        assert data["walletAddress"] == WALLET_A
        assert data["score"] == 90
        assert data["fanLevel"] == "Rookie"
        assert data["nftsHeld"] == 1
        assert data["ritualsCompleted"] == 0
        assert data["chzBalance"] == 80.0

    @pytest.mark.asyncio
    async def test_missing_wallet_is_400(self, client):
        response = await client.get("/score")

        assert response.status_code == 400
        assert response.json()["detail"] == "Wallet address is required"

    @pytest.mark.asyncio
    async def test_blank_wallet_is_400(self, client):
        response = await client.get("/score", params={"walletAddress": "   "})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_ledger_failure_degrades(self, client, reader):
        reader.failing.add(WALLET_A.lower())

        response = await client.get("/score", params={"walletAddress": WALLET_A})

        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 0
        assert data["warning"]


class TestPostScore:
    """Test suite for POST /score."""

    @pytest.mark.asyncio
    async def test_two_rituals_increment_counter(self, client):
        first = await client.post("/score", json={"walletAddress": "0xABC", "action": "complete_ritual"})
        second = await client.post("/score", json={"walletAddress": "0xABC", "action": "complete_ritual"})

        assert first.status_code == 200
        assert second.status_code == 200
        data = second.json()
        assert data["ritualsCompleted"] == first.json()["ritualsCompleted"] + 1 == 2
        assert data["score"] == compute_score(data["nftsHeld"], data["ritualsCompleted"], Decimal(0))
        assert data["message"].startswith("Ritual completed!")
        assert data["message"].endswith(f"New score: {data['score']}")

    @pytest.mark.asyncio
    async def test_action_visible_to_get(self, client):
        await client.post("/score", json={"walletAddress": WALLET_B, "action": "acquire_nft"})

        response = await client.get("/score", params={"walletAddress": WALLET_B})

        data = response.json()
        assert data["nftsHeld"] == 1
        assert data["score"] == 50 + 10

    @pytest.mark.asyncio
    async def test_invalid_action_is_400(self, client, store):
        response = await client.post("/score", json={"walletAddress": WALLET_A, "action": "dance"})

        assert response.status_code == 400
        assert WALLET_A.lower() not in store._records

    @pytest.mark.asyncio
    async def test_missing_fields_are_400(self, client):
        response = await client.post("/score", json={"action": "complete_ritual"})
        assert response.status_code == 400

        response = await client.post("/score", json={"walletAddress": WALLET_A})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unreadable_address_keeps_counting(self, client, reader, store):
        """Rituals for a wallet the ledger rejects are recorded and scored."""
        reader.invalid.add("0xabc")

        first = await client.post("/score", json={"walletAddress": "0xABC", "action": "complete_ritual"})
        second = await client.post("/score", json={"walletAddress": "0xABC", "action": "complete_ritual"})
        current = await client.get("/score", params={"walletAddress": "0xABC"})

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["ritualsCompleted"] == 2
        assert second.json()["warning"]
        assert current.status_code == 200
        assert current.json()["score"] == 40
        assert store._records["0xabc"].ritualsCompleted == 2

    @pytest.mark.asyncio
    async def test_missing_body_is_400(self, client):
        response = await client.post("/score")

        assert response.status_code == 400
        assert response.json()["detail"] == "Wallet address is required"

    @pytest.mark.asyncio
    async def test_malformed_body_is_400(self, client, store):
        response = await client.post(
            "/score", content=b"not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400

        response = await client.post("/score", json={"walletAddress": 123, "action": "complete_ritual"})
        assert response.status_code == 400
        assert store._records == {}

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_500(self, client, store, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("store offline")

        monkeypatch.setattr(store, "apply_action", broken)

        response = await client.post("/score", json={"walletAddress": WALLET_A, "action": "complete_ritual"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to update score data"
