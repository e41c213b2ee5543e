"""PayoutsOverviewService — read-only operator view of the payout ledger."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_admin.application.schemas import (
    PayoutsOverviewResponse,
    PayoutTipItem,
    PayoutTotalsResponse,
)
from src.tp_common.enums import PayoutStatus
from src.tp_tips.domain.repository import TipLedgerProtocol
from src.tp_tips.infrastructure.persistence import TipLedger

DEFAULT_OVERVIEW_LIMIT = 100

# "pending" in the overview covers both waiting states.
_STATUS_FILTERS: dict[str, list[PayoutStatus]] = {
    "pending": [PayoutStatus.PENDING, PayoutStatus.PENDING_DJ_ACCOUNT],
    "pending_dj_account": [PayoutStatus.PENDING_DJ_ACCOUNT],
    "transferred": [PayoutStatus.TRANSFERRED],
    "reallocated": [PayoutStatus.REALLOCATED_TO_POOL],
    "reallocated_to_pool": [PayoutStatus.REALLOCATED_TO_POOL],
    "failed": [PayoutStatus.FAILED],
}


class PayoutsOverviewService:
    def __init__(self, ledger: TipLedgerProtocol | None = None) -> None:
        self._ledger: TipLedgerProtocol = ledger or TipLedger()

    async def overview(
        self,
        db: AsyncSession,
        status: str | None = None,
        limit: int = DEFAULT_OVERVIEW_LIMIT,
    ) -> PayoutsOverviewResponse:
        """Totals always cover every tip; `status` only narrows the list."""
        statuses = _STATUS_FILTERS.get(status) if status and status != "all" else None
        summary = await self._ledger.summarize_payouts(db)
        tips = await self._ledger.list_for_overview(db, statuses, limit)
        return PayoutsOverviewResponse(
            totals=PayoutTotalsResponse.from_summary(summary),
            tips=[PayoutTipItem.from_tip(t) for t in tips],
        )
