"""Payout router: payout tiers, stored payouts and payout calculation."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from backend.cache import CacheLayer
from backend.dependencies import get_cache, get_payout_service
from backend.mappers import to_payout_response, to_payout_tier_item
from backend.schemas import (
    PayoutCalculateRequest,
    PayoutNotCalculatedResponse,
    PayoutResponse,
    PayoutTiersResponse,
)
from hall_of_elite.errors import InvalidArgument, NotFound
from hall_of_elite.payout import PayoutService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["payout"])


@router.get("/payout/tiers", response_model=PayoutTiersResponse)
async def get_payout_tiers(
    service: PayoutService = Depends(get_payout_service),
    cache: CacheLayer = Depends(get_cache),
) -> PayoutTiersResponse:
    return cache.get_or_compute(
        "tiers",
        "payout",
        lambda: PayoutTiersResponse(tiers=[to_payout_tier_item(t) for t in service.get_payout_tiers()]),
    )


@router.get("/payout/{trader_id}", response_model=PayoutResponse)
async def get_payout(
    trader_id: str,
    service: PayoutService = Depends(get_payout_service),
    cache: CacheLayer = Depends(get_cache),
) -> PayoutResponse:
    def build() -> PayoutResponse | None:
        record = service.get_payout(trader_id)
        return to_payout_response(record) if record else None

    response = cache.get_or_compute("payout", trader_id, build)
    if response is None:
        raise NotFound("No payout calculated for trader")
    return response


@router.post("/payout/calculate", response_model=PayoutResponse)
async def calculate_payout(
    body: PayoutCalculateRequest,
    service: PayoutService = Depends(get_payout_service),
    cache: CacheLayer = Depends(get_cache),
) -> PayoutResponse | JSONResponse:
    """Calculate and store the trader's payout.

    Uses the supplied counts, or derives them from closed trades when both
    are omitted or ``from_trades`` is set.  A trader with no closed trades
    gets ``{"data": null, "message": ...}`` and nothing is stored.
    """
    counts_missing = body.max_trades_per_day is None and body.total_trading_days is None
    if body.from_trades or counts_missing:
        record = service.calculate_from_trades(body.trader_id)
        if record is None:
            logger.info("Payout not calculated for %s: no closed trades", body.trader_id)
            return JSONResponse(
                content=PayoutNotCalculatedResponse(
                    message="Payout not calculated: no closed trades found for trader"
                ).model_dump()
            )
    else:
        if body.max_trades_per_day is None or body.total_trading_days is None:
            raise InvalidArgument("max_trades_per_day and total_trading_days must be provided together")
        record = service.calculate(body.trader_id, body.max_trades_per_day, body.total_trading_days)

    cache.invalidate("payout", body.trader_id)
    cache.invalidate("trader", body.trader_id)
    logger.info("Payout calculated for %s: %s%%", body.trader_id, record.payout_percent)
    return to_payout_response(record)
