"""Leaderboard entry model for API responses."""

from pydantic import BaseModel, Field, ConfigDict

from .score import FanLevel


class LeaderboardEntry(BaseModel):
    """
    A single entry in the leaderboard.
    """
    model_config = ConfigDict(populate_by_name=True)

    rank: int = Field(ge=1)
    walletAddress: str
    score: int
    fanLevel: FanLevel
    avatarText: str = Field(description="Two hex characters after the 0x prefix, upper-cased")
    isCurrentUser: bool = Field(default=False, description="Row belongs to the viewing wallet")
