"""Score models for API responses."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict


class FanLevel(str, Enum):
    """Coarse banding of the Superfan Score."""
    ROOKIE = "Rookie"
    PRO = "Pro"
    LEGEND = "Legend"


class ScoreResult(BaseModel):
    """Bounded score and its fan level."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    score: int = Field(ge=0, le=1000)
    fanLevel: FanLevel

    @classmethod
    def zero(cls) -> "ScoreResult":
        return cls(score=0, fanLevel=FanLevel.ROOKIE)


class ScoreBreakdown(BaseModel):
    """
    Score for a wallet together with the inputs it was computed from.
    """
    model_config = ConfigDict(populate_by_name=True)

    walletAddress: str
    score: int = Field(description="Superfan Score in [0, 1000]")
    fanLevel: FanLevel
    nftsHeld: int
    ritualsCompleted: int
    chzBalance: float = Field(description="Fan token balance in whole tokens")
    warning: Optional[str] = Field(
        default=None,
        description="Set when the ledger could not be read and zero holdings were used",
    )


class ScoreActionRequest(BaseModel):
    """Body of POST /score. Fields are validated by the service, not here."""
    walletAddress: Optional[str] = None
    action: Optional[str] = None


class ScoreActionResponse(ScoreBreakdown):
    """Updated score after applying a fan action."""
    message: str
