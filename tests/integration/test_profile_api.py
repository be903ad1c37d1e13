"""
Integration tests for GET /profile/{walletAddress} and /health
"""

import pytest

from tests.fakes import WALLET_A, WALLET_D


class TestProfileEndpoint:
    """Test suite for GET /profile/{walletAddress}."""

    @pytest.mark.asyncio
    async def test_profile(self, client):
        response = await client.get(f"/profile/{WALLET_D}")

        assert response.status_code == 200
        data = response.json()
        assert data["walletAddress"] == WALLET_D
        assert data["superfanScore"] == 50
        assert data["fanLevel"] == "Rookie"
        assert data["nftsHeld"] == 1
        assert data["chzBalance"] == 0.0
        assert set(data) >= {"fandomTraits", "joinDate", "badgeArtworkUrl"}

    @pytest.mark.asyncio
    async def test_ledger_failure_is_500(self, client, reader):
        reader.failing.add(WALLET_A.lower())

        response = await client.get(f"/profile/{WALLET_A}")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to load fan profile. The address may be invalid."

    @pytest.mark.asyncio
    async def test_invalid_address_is_500(self, client, reader):
        reader.invalid.add("0xabc")

        response = await client.get("/profile/0xABC")

        assert response.status_code == 500


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
