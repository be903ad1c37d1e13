"""Activity store for per-wallet off-chain counters."""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Protocol

from fancred.errors import InvalidInput
from fancred.models import ActivityRecord, FanAction

logger = logging.getLogger(__name__)


class BaselineGenerator(Protocol):
    """Seeds counters for a wallet the store has never seen."""

    def baseline(self, account_id: str) -> ActivityRecord:
        ...


@dataclass
class RandomBaselineGenerator:
    """
    Draws plausible new-user counters for demo realism.

    Not cryptographically meaningful and not deterministic unless a seeded
    Random is supplied.
    """
    zero_nft_probability: float = 0.2
    max_nfts: int = 4
    zero_ritual_probability: float = 0.4
    max_rituals: int = 6
    rng: Optional[random.Random] = None

    def __post_init__(self):
        if self.rng is None:
            self.rng = random.Random()

    def _draw(self, zero_probability: float, upper: int) -> int:
        if self.rng.random() < zero_probability:
            return 0
        return self.rng.randint(1, upper)

    def baseline(self, account_id: str) -> ActivityRecord:
        return ActivityRecord(
            accountId=account_id,
            nftsHeldOverride=self._draw(self.zero_nft_probability, self.max_nfts),
            ritualsCompleted=self._draw(self.zero_ritual_probability, self.max_rituals),
        )


@dataclass
class FixedBaselineGenerator:
    """Gives every new wallet the same counters."""
    nfts_held: Optional[int] = None
    rituals_completed: int = 0

    def baseline(self, account_id: str) -> ActivityRecord:
        return ActivityRecord(
            accountId=account_id,
            nftsHeldOverride=self.nfts_held,
            ritualsCompleted=self.rituals_completed,
        )


def normalize_account_id(account_id: str) -> str:
    """Store key for a wallet. Addresses compare case-insensitively."""
    if not account_id or not account_id.strip():
        raise InvalidInput("Wallet address is required")
    return account_id.strip().lower()


class ActivityStore(ABC):
    """
    Abstract key-value store of ActivityRecords keyed by wallet.

    Implementations must serialize apply_action for the same wallet and
    must not block actions for different wallets on each other.
    """

    @abstractmethod
    async def get_or_create(self, account_id: str) -> ActivityRecord:
        """Return the record for a wallet, seeding a baseline if absent."""
        pass

    @abstractmethod
    async def apply_action(self, account_id: str, action: FanAction) -> ActivityRecord:
        """
        Apply a fan action and return the updated record.

        Raises:
            InvalidAction: Unknown action tag. Nothing is mutated.
        """
        pass


class InMemoryActivityStore(ActivityStore):
    """
    Process-local store. Records live as long as the store instance.
    """

    def __init__(self, baseline_generator: Optional[BaselineGenerator] = None):
        self.baseline_generator = baseline_generator or RandomBaselineGenerator()
        self._records: dict[str, ActivityRecord] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def _ensure(self, account_id: str) -> ActivityRecord:
        """Return the stored record, seeding it under the lower-cased key."""
        key = normalize_account_id(account_id)
        record = self._records.get(key)
        if record is None:
            record = self.baseline_generator.baseline(key)
            self._records[key] = record
            logger.info(
                f"Seeded activity for {account_id}: "
                f"nfts={record.nftsHeldOverride} rituals={record.ritualsCompleted}"
            )
        return record

    async def get_or_create(self, account_id: str) -> ActivityRecord:
        return self._ensure(account_id).model_copy()

    async def apply_action(self, account_id: str, action: FanAction) -> ActivityRecord:
        action = FanAction.parse(action)
        key = normalize_account_id(account_id)

        async with self._lock_for(key):
            record = self._ensure(account_id)
            if action == FanAction.COMPLETE_RITUAL:
                record.ritualsCompleted += 1
            elif action == FanAction.ACQUIRE_NFT:
                record.nftsHeldOverride = (record.nftsHeldOverride or 0) + 1
            return record.model_copy()
