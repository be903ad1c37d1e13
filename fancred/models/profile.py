"""Fan profile model for API responses."""

from pydantic import BaseModel, ConfigDict

from .score import FanLevel


class FanProfile(BaseModel):
    """Public profile view of a wallet."""
    model_config = ConfigDict(populate_by_name=True)

    walletAddress: str
    superfanScore: int
    fanLevel: FanLevel
    nftsHeld: int
    ritualsCompleted: int
    chzBalance: float
    fandomTraits: str
    joinDate: str
    badgeArtworkUrl: str
