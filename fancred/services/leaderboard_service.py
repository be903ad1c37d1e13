"""Leaderboard service for ranking wallets by Superfan Score."""

import asyncio
import logging
from typing import Iterable, Optional

from fancred.datasources import HoldingsReader
from fancred.errors import InvalidAccount, LedgerUnavailable
from fancred.models import Holdings, LeaderboardEntry, ScoreResult
from .activity_store import ActivityStore
from .score_engine import score_result

logger = logging.getLogger(__name__)


def avatar_text(account_id: str) -> str:
    """Two characters after the 0x prefix, upper-cased."""
    return account_id[2:4].upper()


def is_same_account(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive wallet comparison."""
    if not a or not b:
        return False
    return a.lower() == b.lower()


class LeaderboardService:
    """Service for generating the fan leaderboard."""

    def __init__(
        self,
        reader: HoldingsReader,
        store: ActivityStore,
        ledger_timeout: Optional[float] = None,
    ):
        self.reader = reader
        self.store = store
        self.ledger_timeout = ledger_timeout

    async def _read_one(self, account_id: str) -> tuple[Holdings, Optional[Exception]]:
        """
        Read holdings for one wallet, isolating its failure from the batch.

        Returns:
            (holdings, error) where error is None on success
        """
        try:
            holdings = await asyncio.wait_for(
                self.reader.read_holdings(account_id), self.ledger_timeout
            )
            return holdings, None
        except asyncio.TimeoutError:
            return Holdings.empty(), LedgerUnavailable(f"Timed out reading {account_id}")
        except (LedgerUnavailable, InvalidAccount) as e:
            return Holdings.empty(), e

    async def build_leaderboard(
        self,
        account_ids: Iterable[str],
        viewer_address: Optional[str] = None,
    ) -> list[LeaderboardEntry]:
        """
        Rank wallets by Superfan Score.

        Reads run concurrently; a wallet whose read fails gets zero holdings
        instead of failing the batch. Ties keep input order.

        Args:
            account_ids: Wallet addresses in input order
            viewer_address: Wallet of the caller; its row gets isCurrentUser

        Returns:
            List of LeaderboardEntry sorted by rank (1 = best)

        Raises:
            LedgerUnavailable: Every read failed because the ledger is down
        """
        accounts = [a for a in account_ids if a]
        if not accounts:
            return []

        reads = await asyncio.gather(*(self._read_one(a) for a in accounts))

        ledger_failures = sum(
            1 for _, error in reads if isinstance(error, LedgerUnavailable)
        )
        if ledger_failures == len(accounts):
            logger.error(f"Ledger unavailable for all {len(accounts)} leaderboard wallets")
            raise LedgerUnavailable("Ledger unavailable for every leaderboard wallet")

        scored: list[tuple[str, ScoreResult]] = []
        for account_id, (holdings, error) in zip(accounts, reads):
            if error is not None:
                logger.warning(f"Using zero holdings for {account_id}: {error}")
            record = await self.store.get_or_create(account_id)
            nfts = record.effective_nfts(holdings.nftsHeld)
            scored.append(
                (account_id, score_result(nfts, record.ritualsCompleted, holdings.fungibleBalance))
            )

        # list.sort is stable, so equal scores keep input order
        scored.sort(key=lambda x: x[1].score, reverse=True)

        return [
            LeaderboardEntry(
                rank=i + 1,
                walletAddress=account_id,
                score=result.score,
                fanLevel=result.fanLevel,
                avatarText=avatar_text(account_id),
                isCurrentUser=is_same_account(account_id, viewer_address),
            )
            for i, (account_id, result) in enumerate(scored)
        ]
