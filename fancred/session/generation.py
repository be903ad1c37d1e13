"""AI generation contract used by the session controller.

Prompt wording and the model behind each call are owned by the
implementation; the session only gates the calls and applies results.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from fancred.models import FanLevel


@dataclass(frozen=True)
class FanAnalysisRequest:
    superfan_score: int
    fan_level: FanLevel
    fandom_traits: str
    wallet_address: str
    nfts_held: Optional[int] = None
    rituals_completed: Optional[int] = None


class GenerationService(Protocol):
    """
    Opaque AI generation calls.

    Implementations raise GenerationFailure on error. No retries are
    expected; the user re-triggers a failed generation.
    """

    async def generate_badge_artwork(self, fandom_traits: str) -> str:
        """Return badge artwork as a data URI."""
        ...

    async def generate_fan_quote(self, fan_activity: str) -> str:
        ...

    async def improve_score_suggestions(self, superfan_score: int, wallet_address: str) -> list[str]:
        ...

    async def generate_fan_analysis(self, request: FanAnalysisRequest) -> str:
        ...
