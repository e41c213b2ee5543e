"""Pydantic schemas for reconciliation endpoints."""

from pydantic import BaseModel, Field

from src.tp_common.cents import cents_to_display
from src.tp_reconciliation.application.engine import ResyncResult


class ResyncRequest(BaseModel):
    broadcaster_user_id: str = Field(..., min_length=1)


class ResyncResponse(BaseModel):
    processed: int
    transferred: int
    failed: int
    skipped: int
    total_transferred_cents: int
    total_transferred_display: str

    @classmethod
    def from_result(cls, result: ResyncResult) -> "ResyncResponse":
        return cls(
            processed=result.processed,
            transferred=result.transferred,
            failed=result.failed,
            skipped=result.skipped,
            total_transferred_cents=result.total_transferred_cents,
            total_transferred_display=cents_to_display(result.total_transferred_cents),
        )
