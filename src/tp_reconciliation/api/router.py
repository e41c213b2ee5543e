"""Operator-initiated resync of one broadcaster's unpaid tips."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_common.database import get_db_session
from src.tp_common.response import ApiResponse, success_response
from src.tp_gateway.auth.dependencies import Operator, require_operator
from src.tp_reconciliation.application.engine import ReconciliationEngine
from src.tp_reconciliation.application.schemas import ResyncRequest, ResyncResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/payouts", tags=["reconciliation"])
_engine = ReconciliationEngine()


@router.post("/resync")
async def resync_broadcaster(
    body: ResyncRequest,
    operator: Annotated[Operator, Depends(require_operator)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    logger.info("Resync of %s requested by %s", body.broadcaster_user_id, operator.subject)
    result = await _engine.resync(db, body.broadcaster_user_id)
    return success_response(ResyncResponse.from_result(result).model_dump(), request)
