from .activity_store import (
    ActivityStore,
    InMemoryActivityStore,
    RandomBaselineGenerator,
    FixedBaselineGenerator,
)
from .score_service import ScoreService
from .profile_service import ProfileService
from .leaderboard_service import LeaderboardService

__all__ = [
    "ActivityStore",
    "InMemoryActivityStore",
    "RandomBaselineGenerator",
    "FixedBaselineGenerator",
    "ScoreService",
    "ProfileService",
    "LeaderboardService",
]
