"""
Pytest fixtures and configuration for all tests.
"""

from decimal import Decimal

import pytest

from fancred.models import Holdings
from fancred.services import FixedBaselineGenerator, InMemoryActivityStore
from tests.fakes import (
    FakeGenerator,
    FakeHoldingsReader,
    FakeScoreFetcher,
    FakeWalletProvider,
    WALLET_A,
    WALLET_B,
    WALLET_C,
    WALLET_D,
)


@pytest.fixture
def reader():
    """Fake reader with known holdings for the sample wallets."""
    return FakeHoldingsReader(
        holdings={
            WALLET_A: Holdings(nftsHeld=1, fungibleBalance=Decimal(80)),
            WALLET_B: Holdings(nftsHeld=0, fungibleBalance=Decimal(20)),
            WALLET_C: Holdings(nftsHeld=1, fungibleBalance=Decimal(80)),
            WALLET_D: Holdings(nftsHeld=1, fungibleBalance=Decimal(0)),
        }
    )


@pytest.fixture
def store():
    """Store whose new wallets start with no override and no rituals."""
    return InMemoryActivityStore(FixedBaselineGenerator(nfts_held=None, rituals_completed=0))


@pytest.fixture
def fetcher():
    return FakeScoreFetcher()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def provider():
    return FakeWalletProvider()
