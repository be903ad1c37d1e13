"""Off-chain activity models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from fancred.errors import InvalidAction


class FanAction(str, Enum):
    """Actions that bump a fan's off-chain counters."""
    COMPLETE_RITUAL = "complete_ritual"
    ACQUIRE_NFT = "acquire_nft"

    @classmethod
    def parse(cls, value) -> "FanAction":
        """Convert a raw action tag, raising InvalidAction for unknown tags."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidAction(f"Invalid action type: {value!r}") from None


class ActivityRecord(BaseModel):
    """
    Mutable per-account counters kept by the activity store.
    """
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    accountId: str
    nftsHeldOverride: Optional[int] = Field(
        default=None,
        ge=0,
        description="Replaces the on-chain NFT count when set",
    )
    ritualsCompleted: int = Field(default=0, ge=0)

    def effective_nfts(self, on_chain: int) -> int:
        """NFT count used for scoring."""
        if self.nftsHeldOverride is None:
            return on_chain
        return self.nftsHeldOverride
