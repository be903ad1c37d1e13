"""Demo holdings reader that draws mock balances per wallet."""

import logging
import random
from decimal import Decimal
from typing import Optional

from fancred.errors import InvalidAccount
from fancred.models import Holdings
from .base import HoldingsReader

logger = logging.getLogger(__name__)


class DemoHoldingsReader(HoldingsReader):
    """
    Holdings reader for running without an RPC endpoint.

    Each wallet gets a fan token balance drawn once from a tiered
    distribution and reused for the life of the reader:
    30% hold 0-99 CHZ, 40% hold 100-499 CHZ, 30% hold 500-1499 CHZ.
    On-chain NFT count is always zero; NFTs come from the activity store.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()
        self._balances: dict[str, Decimal] = {}

    def _draw_balance(self) -> Decimal:
        tier = self._rng.random()
        if tier < 0.3:
            return Decimal(self._rng.randrange(0, 100))
        elif tier < 0.7:
            return Decimal(self._rng.randrange(100, 500))
        return Decimal(self._rng.randrange(500, 1500))

    async def read_holdings(self, account_id: str) -> Holdings:
        if not account_id or not account_id.strip():
            raise InvalidAccount("Wallet address is required")

        key = account_id.lower()
        if key not in self._balances:
            self._balances[key] = self._draw_balance()
            logger.debug(f"Drew demo balance {self._balances[key]} for {account_id}")

        return Holdings(nftsHeld=0, fungibleBalance=self._balances[key])
