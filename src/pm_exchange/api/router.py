"""pm_exchange REST endpoints (state-changing market operations).

POST /markets                                 createMarket
POST /markets/{market_id}/swap                swap
POST /markets/{market_id}/liquidity/add       addLiquidity (creator only)
POST /markets/{market_id}/liquidity/remove    removeLiquidity (creator only)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_exchange.application.schemas import (
    CreateMarketRequest,
    ExchangeResult,
    LiquidityRequest,
    SwapRequest,
)
from src.pm_exchange.application.service import ExchangeService, get_exchange_service
from src.pm_gateway.auth.dependencies import get_current_user_id
from src.pm_market.application.schemas import MarketDetail

router = APIRouter(prefix="/markets", tags=["exchange"])


@router.post("", status_code=201)
async def create_market(
    body: CreateMarketRequest,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[ExchangeService, Depends(get_exchange_service)],
) -> ApiResponse:
    market = await service.create_market(
        db, user_id, body.question, body.yes_asset_id, body.no_asset_id
    )
    return success_response(MarketDetail.from_domain(market).model_dump(), request)


@router.post("/{market_id}/swap")
async def swap(
    market_id: str,
    body: SwapRequest,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[ExchangeService, Depends(get_exchange_service)],
) -> ApiResponse:
    market, plan = await service.swap(
        db, market_id, user_id, body.input_amount, body.min_output, body.direction
    )
    return success_response(ExchangeResult.from_plan(market, plan).model_dump(), request)


@router.post("/{market_id}/liquidity/add")
async def add_liquidity(
    market_id: str,
    body: LiquidityRequest,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[ExchangeService, Depends(get_exchange_service)],
) -> ApiResponse:
    market, plan = await service.add_liquidity(
        db, market_id, user_id, body.yes_amount, body.no_amount
    )
    return success_response(ExchangeResult.from_plan(market, plan).model_dump(), request)


@router.post("/{market_id}/liquidity/remove")
async def remove_liquidity(
    market_id: str,
    body: LiquidityRequest,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[ExchangeService, Depends(get_exchange_service)],
) -> ApiResponse:
    market, plan = await service.remove_liquidity(
        db, market_id, user_id, body.yes_amount, body.no_amount
    )
    return success_response(ExchangeResult.from_plan(market, plan).model_dump(), request)
