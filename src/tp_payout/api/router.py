"""Payout account status refresh.

Polls the processor for a broadcaster's connected account; on first activation
the broadcaster's waiting tips are reconciled in the same request.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_common.database import get_db_session
from src.tp_common.response import ApiResponse, success_response
from src.tp_gateway.auth.dependencies import Operator, require_operator
from src.tp_payout.application.directory import PayoutAccountDirectory
from src.tp_payout.application.schemas import AccountStatusResponse
from src.tp_reconciliation.application.engine import ReconciliationEngine
from src.tp_reconciliation.application.schemas import ResyncResponse

router = APIRouter(prefix="/payouts/accounts", tags=["payouts"])
_directory = PayoutAccountDirectory()
_engine = ReconciliationEngine(directory=_directory)


@router.post("/{user_id}/refresh")
async def refresh_account_status(
    user_id: str,
    operator: Annotated[Operator, Depends(require_operator)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    try:
        status = await _directory.refresh_activation(db, user_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    reconciliation = None
    if status.newly_activated:
        result = await _engine.on_account_activated(db, user_id)
        reconciliation = ResyncResponse.from_result(result)
    data = AccountStatusResponse.from_status(status, reconciliation)
    return success_response(data.model_dump(), request)
