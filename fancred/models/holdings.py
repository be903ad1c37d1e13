"""On-chain holdings model."""

from decimal import Decimal

from pydantic import BaseModel, Field, ConfigDict


class Holdings(BaseModel):
    """
    Collectible count and fungible token balance read from the ledger.

    Fetched fresh for every score computation.
    """
    model_config = ConfigDict(populate_by_name=True)

    nftsHeld: int = Field(default=0, ge=0, description="Number of fan NFTs held")
    fungibleBalance: Decimal = Field(
        default=Decimal(0), ge=0, description="Fan token balance in whole tokens"
    )

    @classmethod
    def empty(cls) -> "Holdings":
        """Zero holdings, used when a ledger read fails."""
        return cls(nftsHeld=0, fungibleBalance=Decimal(0))
