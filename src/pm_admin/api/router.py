# src/pm_admin/api/router.py
"""Admin REST API: every route requires the resolver account."""
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_admin.application.service import AdminService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import require_admin
from src.pm_ledger.application.schemas import IssueRequest

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


class ResolveRequest(BaseModel):
    outcome: Literal["YES", "NO"]


@router.post("/markets/{market_id}/resolve")
async def resolve_market(
    market_id: str,
    body: ResolveRequest,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.resolve_market(market_id, body.outcome, admin_id, db)
    return success_response(result, request)


@router.post("/markets/{market_id}/cancel")
async def cancel_market(
    market_id: str,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.cancel_market(market_id, admin_id, db)
    return success_response(result, request)


@router.post("/ledger/issue")
async def issue_tokens(
    body: IssueRequest,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.issue_tokens(
        body.asset_id, body.owner_id, body.amount, admin_id, db
    )
    return success_response(result.model_dump(), request)


@router.get("/markets/{market_id}/stats")
async def market_stats(
    market_id: str,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_market_stats(market_id, db)
    return success_response(result.model_dump(), request)


@router.get("/invariants")
async def verify_invariants(
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.verify_all_invariants(db)
    return success_response(result, request)
