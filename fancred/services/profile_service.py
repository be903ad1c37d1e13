"""Profile service for the public fan profile page."""

import asyncio
import random
from datetime import date, timedelta
from typing import Optional

from fancred.datasources import HoldingsReader
from fancred.errors import LedgerUnavailable
from fancred.models import FanProfile
from .activity_store import ActivityStore
from .score_service import build_breakdown, require_wallet

DEFAULT_TRAITS = "Real-time data from on-chain sources, traits would be stored in a DB."
PLACEHOLDER_BADGE_URL = "https://placehold.co/300x300.png"


class ProfileService:
    """Service for building a wallet's public profile."""

    def __init__(
        self,
        reader: HoldingsReader,
        store: ActivityStore,
        ledger_timeout: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        self.reader = reader
        self.store = store
        self.ledger_timeout = ledger_timeout
        self._rng = rng or random.Random()

    def _mock_join_date(self) -> str:
        days_ago = self._rng.randrange(0, 365)
        return (date.today() - timedelta(days=days_ago)).isoformat()

    async def get_profile(self, wallet_address: Optional[str]) -> FanProfile:
        """
        Build the profile view for a wallet.

        Unlike the score endpoint, ledger failures are not degraded here:
        LedgerUnavailable propagates so the caller can report it.
        """
        account_id = require_wallet(wallet_address)
        try:
            holdings = await asyncio.wait_for(
                self.reader.read_holdings(account_id), self.ledger_timeout
            )
        except asyncio.TimeoutError as e:
            raise LedgerUnavailable(f"Ledger read timed out for {account_id}") from e
        record = await self.store.get_or_create(account_id)
        breakdown = build_breakdown(account_id, holdings, record)

        return FanProfile(
            walletAddress=account_id,
            superfanScore=breakdown.score,
            fanLevel=breakdown.fanLevel,
            nftsHeld=breakdown.nftsHeld,
            ritualsCompleted=breakdown.ritualsCompleted,
            chzBalance=breakdown.chzBalance,
            fandomTraits=DEFAULT_TRAITS,
            joinDate=self._mock_join_date(),
            badgeArtworkUrl=PLACEHOLDER_BADGE_URL,
        )
