"""Hall of Elite FastAPI application."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.cache import CacheLayer
from backend.config import ALLOWED_ORIGINS, CACHE_TTL_LEADERBOARD, CACHE_TTL_TIERS, CACHE_TTL_TRADER
from backend.routers import admin, health, leaderboard, payout, rewards, traders, users
from hall_of_elite.analytics import AnalyticsService, ProgressService
from hall_of_elite.config import settings, validate_config
from hall_of_elite.datastore import DataStore
from hall_of_elite.errors import InvalidArgument, NotFound, UpstreamUnavailable
from hall_of_elite.leaderboard import LeaderboardService
from hall_of_elite.logging_config import configure_logging
from hall_of_elite.payout import PayoutService
from hall_of_elite.rewards import RewardsService
from hall_of_elite.scoring import ScoringService
from hall_of_elite.tiering import TierConfigService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown resources."""
    # --- startup ---
    configure_logging()
    logger.info("Starting Hall of Elite API...")

    # Inconsistent engine tables are fatal before serving anything
    validate_config()

    datastore = DataStore(settings.DB_PATH, provision_mt5=settings.MT5_TABLES_PROVISIONED)
    app.state.datastore = datastore
    if not settings.MT5_TABLES_PROVISIONED:
        logger.warning("MT5 tables not provisioned; MT5-backed reads will fall back.")

    app.state.cache = CacheLayer(
        ttls={
            "leaderboard": CACHE_TTL_LEADERBOARD,
            "trader": CACHE_TTL_TRADER,
            "payout": CACHE_TTL_TRADER,
            "tiers": CACHE_TTL_TIERS,
        }
    )

    app.state.leaderboard_service = LeaderboardService(
        datastore, static_fallback=settings.STATIC_FALLBACK_ENABLED
    )
    app.state.scoring_service = ScoringService(datastore)
    app.state.payout_service = PayoutService(datastore)
    app.state.analytics_service = AnalyticsService(datastore)
    app.state.progress_service = ProgressService(datastore)
    app.state.rewards_service = RewardsService(datastore)
    app.state.tier_config_service = TierConfigService(datastore)

    logger.info("Hall of Elite API ready.")
    yield

    # --- shutdown ---
    logger.info("Shutting down Hall of Elite API...")
    datastore.close()
    logger.info("Hall of Elite API stopped.")


app = FastAPI(
    title="Hall of Elite API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(leaderboard.router)
app.include_router(traders.router)
app.include_router(payout.router)
app.include_router(users.router)
app.include_router(rewards.router)
app.include_router(admin.router)


@app.exception_handler(InvalidArgument)
async def invalid_argument_handler(request: Request, exc: InvalidArgument):
    content = {"detail": exc.detail}
    if exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(UpstreamUnavailable)
async def upstream_unavailable_handler(request: Request, exc: UpstreamUnavailable):
    logger.error("Upstream store unavailable: %s", exc)
    return JSONResponse(
        status_code=503,
        content={"detail": f"Upstream store unavailable: {exc.source}"},
    )


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint."""
    return {"name": "Hall of Elite API", "version": "0.1.0"}
