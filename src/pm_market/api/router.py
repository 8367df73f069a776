"""pm_market REST endpoints (read side).

GET /markets                          list with cursor pagination
GET /markets/{market_id}              full detail with reserves and prices
GET /markets/{market_id}/quote        read-only swap quote
GET /markets/{market_id}/events       pool event history
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.enums import SwapDirection
from src.pm_common.response import ApiResponse, success_response
from src.pm_common.u64 import U64_MAX
from src.pm_gateway.auth.dependencies import get_current_user_id
from src.pm_market.application.service import MarketApplicationService

router = APIRouter(prefix="/markets", tags=["markets"])

_service = MarketApplicationService()


@router.get("")
async def list_markets(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(
        None, description="Filter by status. Default: ACTIVE. Use ALL for no filter."
    ),
    creator: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_markets(db, status, creator, cursor, limit)
    return success_response(result.model_dump(), request)


@router.get("/{market_id}")
async def get_market(
    market_id: str,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_market(db, market_id)
    return success_response(result.model_dump(), request)


@router.get("/{market_id}/quote")
async def get_quote(
    market_id: str,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    direction: SwapDirection = Query(...),
    input_amount: int = Query(..., ge=0, le=U64_MAX),
) -> ApiResponse:
    result = await _service.quote(db, market_id, direction, input_amount)
    return success_response(result.model_dump(), request)


@router.get("/{market_id}/events")
async def list_events(
    market_id: str,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(50, ge=1, le=200),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_events(db, market_id, cursor, limit)
    return success_response(result.model_dump(), request)
