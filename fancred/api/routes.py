"""API routes for the FanCred score service."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from fancred.config import Config
from fancred.datasources import HoldingsReader
from fancred.errors import InvalidInput, LedgerUnavailable
from fancred.models import (
    FanProfile,
    LeaderboardEntry,
    ScoreActionRequest,
    ScoreActionResponse,
    ScoreBreakdown,
)
from fancred.services import (
    ActivityStore,
    LeaderboardService,
    ProfileService,
    ScoreService,
)
from .dependencies import get_activity_store, get_config, get_holdings_reader

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/score", response_model=ScoreBreakdown)
async def get_score(
    walletAddress: Optional[str] = Query(
        None,
        description="Wallet address",
        example="0x22821210811e59de6A493A6C774134c311546554"
    ),
    reader: HoldingsReader = Depends(get_holdings_reader),
    store: ActivityStore = Depends(get_activity_store),
    config: Config = Depends(get_config),
) -> ScoreBreakdown:
    """
    Get the Superfan Score for a wallet.

    Returns: walletAddress, score, fanLevel, nftsHeld, ritualsCompleted, chzBalance
    """
    service = ScoreService(reader, store, ledger_timeout=config.ledger_timeout)
    try:
        return await service.get_score(walletAddress)
    except InvalidInput as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/score", response_model=ScoreActionResponse)
async def post_score_action(
    request: Optional[ScoreActionRequest] = Body(None),
    reader: HoldingsReader = Depends(get_holdings_reader),
    store: ActivityStore = Depends(get_activity_store),
    config: Config = Depends(get_config),
) -> ScoreActionResponse:
    """
    Apply a fan action (complete_ritual or acquire_nft) and return the new score.

    Returns: updated score payload plus a human-readable message
    """
    if request is None:
        request = ScoreActionRequest()

    service = ScoreService(reader, store, ledger_timeout=config.ledger_timeout)
    try:
        return await service.apply_action(request.walletAddress, request.action)
    except InvalidInput as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        logger.exception("Error processing POST /score")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update score data",
        )


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def get_leaderboard(
    walletAddresses: Optional[str] = Query(
        None,
        description="Comma-separated list of wallet addresses (defaults to the configured list)",
        example="0x22821210811e59de6A493A6C774134c311546554,0x87971c681F613C5d15aA2e2425881204644e43A9"
    ),
    viewerAddress: Optional[str] = Query(
        None,
        description="Wallet of the viewer; its row is flagged with isCurrentUser",
    ),
    reader: HoldingsReader = Depends(get_holdings_reader),
    store: ActivityStore = Depends(get_activity_store),
    config: Config = Depends(get_config),
) -> list[LeaderboardEntry]:
    """
    Get the fan leaderboard ranked by Superfan Score.

    Returns ranked list: rank, walletAddress, score, fanLevel, avatarText, isCurrentUser
    """
    if walletAddresses:
        # Parse wallets from comma-separated string
        accounts = [a.strip() for a in walletAddresses.split(",") if a.strip()]
    else:
        accounts = list(config.leaderboard_addresses)

    service = LeaderboardService(reader, store, ledger_timeout=config.ledger_timeout)
    try:
        return await service.build_leaderboard(accounts, viewer_address=viewerAddress)
    except LedgerUnavailable:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Leaderboard is temporarily unavailable. Please try again later.",
        )


@router.get("/profile/{walletAddress}", response_model=FanProfile)
async def get_profile(
    walletAddress: str,
    reader: HoldingsReader = Depends(get_holdings_reader),
    store: ActivityStore = Depends(get_activity_store),
    config: Config = Depends(get_config),
) -> FanProfile:
    """
    Get the public profile for a wallet.

    Returns score, holdings and profile metadata.
    """
    service = ProfileService(reader, store, ledger_timeout=config.ledger_timeout)
    try:
        return await service.get_profile(walletAddress)
    except (LedgerUnavailable, InvalidInput) as e:
        logger.error(f"Error fetching profile data for {walletAddress}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load fan profile. The address may be invalid.",
        )
