"""Scheduled jobs, triggered by an external cron with the shared bearer secret.

GET and POST are both accepted since cron providers differ in which they send.
"""

from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_common.database import get_db_session
from src.tp_common.response import ApiResponse, success_response
from src.tp_gateway.auth.dependencies import verify_cron_secret
from src.tp_reconciliation.application.engine import ReconciliationEngine
from src.tp_sweeps.application.expiration import ExpirationSweep
from src.tp_sweeps.application.reminders import ReminderScheduler

router = APIRouter(
    prefix="/cron", tags=["cron"], dependencies=[Depends(verify_cron_secret)]
)

_engine = ReconciliationEngine()
_expiration = ExpirationSweep()
_reminders = ReminderScheduler()


@router.api_route("/process-pending-tips", methods=["GET", "POST"])
async def process_pending_tips(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _engine.sweep(db)
    return success_response(asdict(result), request)


@router.api_route("/reallocate-expired-tips", methods=["GET", "POST"])
async def reallocate_expired_tips(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _expiration.run(db)
    return success_response(asdict(result), request)


@router.api_route("/send-tip-reminders", methods=["GET", "POST"])
async def send_tip_reminders(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _reminders.run(db)
    return success_response(asdict(result), request)
