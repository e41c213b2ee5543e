"""tp_tips REST API — open a tip checkout, list tips a broadcaster received."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_common.database import get_db_session
from src.tp_common.response import ApiResponse, success_response
from src.tp_gateway.auth.dependencies import Operator, require_operator
from src.tp_tips.application.schemas import CreateTipCheckoutRequest
from src.tp_tips.application.service import TipCheckoutService

router = APIRouter(prefix="/tips", tags=["tips"])
_service = TipCheckoutService()


@router.post("/checkout")
async def create_tip_checkout(
    body: CreateTipCheckoutRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_checkout(db, body)
    return success_response(data.model_dump(), request)


@router.get("/received")
async def list_received_tips(
    operator: Annotated[Operator, Depends(require_operator)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    broadcaster_user_id: str = Query(..., min_length=1),
) -> ApiResponse:
    data = await _service.list_received(db, broadcaster_user_id)
    return success_response(data.model_dump(mode="json"), request)
