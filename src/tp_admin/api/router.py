"""Operator payouts overview."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_admin.application.service import PayoutsOverviewService
from src.tp_common.database import get_db_session
from src.tp_common.response import ApiResponse, success_response
from src.tp_gateway.auth.dependencies import Operator, require_operator

router = APIRouter(prefix="/admin/payouts", tags=["admin"])
_service = PayoutsOverviewService()

OverviewStatus = Literal[
    "all", "pending", "pending_dj_account", "transferred",
    "reallocated", "reallocated_to_pool", "failed",
]


@router.get("")
async def payouts_overview(
    operator: Annotated[Operator, Depends(require_operator)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: OverviewStatus = Query("all", description="Narrow the tip list"),
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse:
    data = await _service.overview(db, status, limit)
    return success_response(data.model_dump(mode="json"), request)
