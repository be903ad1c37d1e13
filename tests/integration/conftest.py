"""
Fixtures for API integration tests.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fancred.app import create_app
from fancred.config import Config
from tests.fakes import WALLET_A, WALLET_B, WALLET_C, WALLET_D


@pytest.fixture
def config():
    return Config(
        holdings_source="demo",
        ledger_timeout=1.0,
        leaderboard_addresses=(WALLET_A, WALLET_B, WALLET_C, WALLET_D),
    )


@pytest.fixture
def app(config, reader, store):
    return create_app(config=config, reader=reader, store=store)


@pytest_asyncio.fixture
async def client(app):
    """HTTP client bound to the app, no network involved."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
