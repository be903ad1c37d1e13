"""Superfan Score computation.

Pure functions with no I/O. Callers validate inputs and degrade failed
ledger reads to zero holdings before calling in.
"""

from decimal import Decimal
from typing import Union

from fancred.models import FanLevel, ScoreResult

POINTS_PER_NFT = 50
POINTS_PER_RITUAL = 20
POINTS_PER_TEN_TOKENS = 5
MAX_BALANCE_POINTS = 500
MIN_SCORE = 0
MAX_SCORE = 1000

LEGEND_THRESHOLD = 700
PRO_THRESHOLD = 300

Number = Union[int, float, Decimal]


def compute_score(
    nfts_held: int,
    rituals_completed: int,
    fungible_balance: Number,
) -> int:
    """
    Compute the Superfan Score.

    50 points per NFT, 20 per ritual, 5 per whole 10 tokens held (capped
    at 500), then clamped to [0, 1000].
    """
    balance = fungible_balance if isinstance(fungible_balance, Decimal) else Decimal(fungible_balance)
    balance_points = min(int(balance // 10) * POINTS_PER_TEN_TOKENS, MAX_BALANCE_POINTS)

    raw = (
        nfts_held * POINTS_PER_NFT
        + rituals_completed * POINTS_PER_RITUAL
        + balance_points
    )
    return min(max(raw, MIN_SCORE), MAX_SCORE)


def compute_fan_level(score: int) -> FanLevel:
    """Band a score: 0-300 Rookie, 301-700 Pro, 701+ Legend."""
    if score > LEGEND_THRESHOLD:
        return FanLevel.LEGEND
    if score > PRO_THRESHOLD:
        return FanLevel.PRO
    return FanLevel.ROOKIE


def score_result(
    nfts_held: int,
    rituals_completed: int,
    fungible_balance: Number,
) -> ScoreResult:
    score = compute_score(nfts_held, rituals_completed, fungible_balance)
    return ScoreResult(score=score, fanLevel=compute_fan_level(score))
