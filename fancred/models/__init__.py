from .holdings import Holdings
from .activity import ActivityRecord, FanAction
from .score import (
    FanLevel,
    ScoreResult,
    ScoreBreakdown,
    ScoreActionRequest,
    ScoreActionResponse,
)
from .leaderboard import LeaderboardEntry
from .profile import FanProfile

__all__ = [
    "Holdings",
    "ActivityRecord",
    "FanAction",
    "FanLevel",
    "ScoreResult",
    "ScoreBreakdown",
    "ScoreActionRequest",
    "ScoreActionResponse",
    "LeaderboardEntry",
    "FanProfile",
]
