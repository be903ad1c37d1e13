"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fancred.config import Config
from fancred.datasources import (
    ChilizHoldingsReader,
    DemoHoldingsReader,
    HoldingsReader,
)
from fancred.api import router
from fancred.api.dependencies import (
    set_activity_store,
    set_config,
    set_holdings_reader,
)
from fancred.services import ActivityStore, InMemoryActivityStore

logger = logging.getLogger(__name__)


def create_holdings_reader(config: Config) -> HoldingsReader:
    """Build the holdings reader selected by HOLDINGS_SOURCE."""
    if config.holdings_source == "demo":
        return DemoHoldingsReader()
    return ChilizHoldingsReader(
        nft_contract=config.nft_contract_address,
        token_contract=config.token_contract_address,
        rpc_url=config.chiliz_rpc_url,
        token_decimals=config.token_decimals,
        timeout=config.ledger_timeout,
    )


def create_app(
    config: Config | None = None,
    reader: HoldingsReader | None = None,
    store: ActivityStore | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration. If None, loads from environment.
        reader: Holdings reader. If None, built from config.
        store: Activity store. If None, a fresh in-memory store is used.

    Returns:
        Configured FastAPI application
    """
    if config is None:
        config = Config.from_env()

    if reader is None:
        reader = create_holdings_reader(config)
    if store is None:
        store = InMemoryActivityStore()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown."""
        # Startup
        logger.info("Starting FanCred Score API")
        logger.info(f"Holdings source: {config.holdings_source}")
        if config.holdings_source != "demo":
            logger.info(f"Using Chiliz RPC: {config.chiliz_rpc_url}")

        yield

        # Shutdown
        logger.info("Shutting down...")
        await reader.close()

    set_config(config)
    set_holdings_reader(reader)
    set_activity_store(store)

    app = FastAPI(
        title="FanCred Score API",
        description="Superfan Score, fan actions, profiles and leaderboard for FanCred",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Include API routes
    app.include_router(router)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # Malformed POST /score bodies answer 400, like a missing wallet
        if request.method == "POST" and request.url.path == "/score":
            logger.warning(f"Rejected POST /score body: {exc.errors()}")
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"detail": "Request body must be a JSON object"},
            )
        return await request_validation_exception_handler(request, exc)

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app
