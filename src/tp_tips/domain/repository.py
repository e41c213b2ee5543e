"""TipLedger Protocol — dependency inversion for testability.

Unit tests inject an in-memory ledger that conforms to this Protocol.
Infrastructure layer provides the PostgreSQL implementation.

compare_and_set_payout_status is the ONLY way payout_status changes.
"""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_common.enums import PaymentStatus, PayoutStatus
from src.tp_tips.domain.models import (
    PayoutSummary,
    ReallocationRecord,
    ReminderRecord,
    Tip,
    TipFilter,
)


class TipLedgerProtocol(Protocol):
    async def create(self, db: AsyncSession, tip: Tip) -> str: ...

    async def get(self, db: AsyncSession, tip_id: str) -> Tip | None: ...

    async def get_by_session_id(
        self, db: AsyncSession, stripe_session_id: str
    ) -> Tip | None: ...

    async def find_by_payout_status(
        self, db: AsyncSession, status: PayoutStatus, tip_filter: TipFilter
    ) -> list[Tip]: ...

    async def compare_and_set_payout_status(
        self,
        db: AsyncSession,
        tip_id: str,
        expected: PayoutStatus,
        target: PayoutStatus,
        extra: dict[str, Any] | None = None,
    ) -> bool: ...

    async def compare_and_set_payment_status(
        self,
        db: AsyncSession,
        tip_id: str,
        expected: PaymentStatus,
        target: PaymentStatus,
        payment_intent_id: str | None = None,
    ) -> bool: ...

    async def rebind_broadcaster(
        self, db: AsyncSession, tip_id: str, user_id: str
    ) -> bool: ...

    async def sum_tipper_session_cents(
        self, db: AsyncSession, tipper_user_id: str, broadcast_slot_id: str
    ) -> int: ...

    async def list_unclaimed(self, db: AsyncSession) -> list[Tip]: ...

    async def append_reallocation(
        self, db: AsyncSession, record: ReallocationRecord
    ) -> bool: ...

    async def reminder_sent(
        self, db: AsyncSession, broadcaster_user_id: str, day_marker: int
    ) -> bool: ...

    async def append_reminder(self, db: AsyncSession, record: ReminderRecord) -> bool: ...

    async def summarize_payouts(self, db: AsyncSession) -> PayoutSummary: ...

    async def list_for_overview(
        self, db: AsyncSession, statuses: list[PayoutStatus] | None, limit: int
    ) -> list[Tip]: ...

    async def list_received(
        self, db: AsyncSession, broadcaster_user_id: str
    ) -> list[Tip]: ...
