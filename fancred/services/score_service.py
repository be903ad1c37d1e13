"""Score service backing GET and POST /score."""

import asyncio
import logging
from typing import Optional

from fancred.datasources import HoldingsReader
from fancred.errors import InvalidAccount, InvalidInput, LedgerUnavailable
from fancred.models import (
    ActivityRecord,
    FanAction,
    Holdings,
    ScoreActionResponse,
    ScoreBreakdown,
)
from .activity_store import ActivityStore
from .score_engine import score_result

logger = logging.getLogger(__name__)

LEDGER_WARNING = "On-chain holdings are unavailable; score computed with zero holdings."

ACTION_MESSAGES = {
    FanAction.COMPLETE_RITUAL: "Ritual completed! Your participation is noted.",
    FanAction.ACQUIRE_NFT: "New NFT acquired! Your collection grows.",
}


def require_wallet(wallet_address: Optional[str]) -> str:
    """Strip and return the wallet address, raising InvalidInput if blank."""
    if wallet_address is None or not wallet_address.strip():
        raise InvalidInput("Wallet address is required")
    return wallet_address.strip()


async def read_holdings_or_empty(
    reader: HoldingsReader,
    account_id: str,
    timeout: Optional[float] = None,
) -> tuple[Holdings, bool]:
    """
    Read holdings, degrading to zero holdings when the ledger fails.

    An address the ledger cannot query also degrades: counters are kept
    for any non-empty wallet id, on-chain or not.

    Returns:
        (holdings, degraded) where degraded is True if the read failed
    """
    try:
        holdings = await asyncio.wait_for(reader.read_holdings(account_id), timeout)
        return holdings, False
    except (LedgerUnavailable, InvalidAccount, asyncio.TimeoutError) as e:
        logger.warning(f"Ledger read failed for {account_id}, using zero holdings: {e!r}")
        return Holdings.empty(), True


def build_breakdown(
    account_id: str,
    holdings: Holdings,
    record: ActivityRecord,
    degraded: bool = False,
) -> ScoreBreakdown:
    """Combine holdings and activity into a ScoreBreakdown."""
    nfts = record.effective_nfts(holdings.nftsHeld)
    result = score_result(nfts, record.ritualsCompleted, holdings.fungibleBalance)
    return ScoreBreakdown(
        walletAddress=account_id,
        score=result.score,
        fanLevel=result.fanLevel,
        nftsHeld=nfts,
        ritualsCompleted=record.ritualsCompleted,
        chzBalance=float(holdings.fungibleBalance),
        warning=LEDGER_WARNING if degraded else None,
    )


class ScoreService:
    """Service for reading and updating a wallet's Superfan Score."""

    def __init__(
        self,
        reader: HoldingsReader,
        store: ActivityStore,
        ledger_timeout: Optional[float] = None,
    ):
        self.reader = reader
        self.store = store
        self.ledger_timeout = ledger_timeout

    async def get_score(self, wallet_address: Optional[str]) -> ScoreBreakdown:
        """
        Compute the current score for a wallet.

        Unknown wallets are seeded with baseline activity on first lookup.
        """
        account_id = require_wallet(wallet_address)
        holdings, degraded = await read_holdings_or_empty(
            self.reader, account_id, self.ledger_timeout
        )
        record = await self.store.get_or_create(account_id)
        return build_breakdown(account_id, holdings, record, degraded)

    async def apply_action(
        self,
        wallet_address: Optional[str],
        action: Optional[str],
    ) -> ScoreActionResponse:
        """
        Apply a fan action and return the recomputed score.

        Raises:
            InvalidInput: Missing wallet address
            InvalidAction: Unknown action tag
        """
        account_id = require_wallet(wallet_address)
        fan_action = FanAction.parse(action)

        # Read first so a reader failure never follows a committed action
        holdings, degraded = await read_holdings_or_empty(
            self.reader, account_id, self.ledger_timeout
        )
        record = await self.store.apply_action(account_id, fan_action)
        breakdown = build_breakdown(account_id, holdings, record, degraded)
        logger.info(f"{fan_action.value} for {account_id}: score={breakdown.score}")

        return ScoreActionResponse(
            **breakdown.model_dump(),
            message=f"{ACTION_MESSAGES[fan_action]} New score: {breakdown.score}",
        )
