"""TipLedger — concrete implementation of TipLedgerProtocol.

All status mutations are single conditional UPDATE ... RETURNING statements.
A result of 0 rows means the guard did not match (another trigger won the race,
or the tip already reached a terminal state) and is reported as False.

asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Transaction ownership: the CALLER commits. Reconciliation code commits once per
tip so a crashed sweep resumes from the last finished tip.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_common.enums import PaymentStatus, PayoutStatus
from src.tp_common.errors import InternalError
from src.tp_tips.domain.models import (
    PayoutSummary,
    ReallocationRecord,
    ReminderRecord,
    Tip,
    TipFilter,
    Tipper,
    broadcaster_from_columns,
)
from src.tp_tips.domain.status import validate_payment_transition, validate_payout_transition

_TIP_COLUMNS = """
    id, created_at, updated_at,
    tipper_user_id, tipper_name,
    broadcaster_user_id, broadcaster_email, broadcaster_name,
    broadcast_slot_id, show_name,
    tip_amount_cents, platform_fee_cents, total_charged_cents,
    payment_status, payout_status,
    stripe_session_id, stripe_payment_intent_id, stripe_transfer_id,
    transferred_at, reallocated_at, last_payout_error, payout_attempt
"""

# ---------------------------------------------------------------------------
# SQL: tips
# ---------------------------------------------------------------------------

_INSERT_TIP_SQL = text("""
    INSERT INTO tips
        (id, created_at, tipper_user_id, tipper_name,
         broadcaster_user_id, broadcaster_email, broadcaster_name,
         broadcast_slot_id, show_name,
         tip_amount_cents, platform_fee_cents, total_charged_cents,
         payment_status, payout_status,
         stripe_session_id, stripe_payment_intent_id)
    VALUES
        (:id, :created_at, :tipper_user_id, :tipper_name,
         :broadcaster_user_id, :broadcaster_email, :broadcaster_name,
         :broadcast_slot_id, :show_name,
         :tip_amount_cents, :platform_fee_cents, :total_charged_cents,
         :payment_status, :payout_status,
         :stripe_session_id, :stripe_payment_intent_id)
    ON CONFLICT (stripe_session_id) DO NOTHING
    RETURNING id
""")

_GET_TIP_ID_BY_SESSION_SQL = text("""
    SELECT id FROM tips WHERE stripe_session_id = :stripe_session_id
""")

_GET_TIP_SQL = text(f"""
    SELECT {_TIP_COLUMNS}
    FROM tips
    WHERE id = :tip_id
""")

_GET_TIP_BY_SESSION_SQL = text(f"""
    SELECT {_TIP_COLUMNS}
    FROM tips
    WHERE stripe_session_id = :stripe_session_id
""")

_FIND_BY_PAYOUT_STATUS_SQL = text(f"""
    SELECT {_TIP_COLUMNS}
    FROM tips
    WHERE payout_status = :payout_status
      AND (CAST(:payment_status AS TEXT) IS NULL
           OR payment_status = CAST(:payment_status AS TEXT))
      AND (CAST(:broadcaster_user_id AS TEXT) IS NULL
           OR broadcaster_user_id = CAST(:broadcaster_user_id AS TEXT))
      AND (CAST(:broadcaster_email AS TEXT) IS NULL
           OR LOWER(broadcaster_email) = LOWER(CAST(:broadcaster_email AS TEXT)))
      AND (NOT CAST(:unresolved_only AS BOOLEAN) OR broadcaster_user_id IS NULL)
      AND (NOT CAST(:resolved_only AS BOOLEAN) OR broadcaster_user_id IS NOT NULL)
      AND (CAST(:created_before AS TIMESTAMPTZ) IS NULL
           OR created_at < CAST(:created_before AS TIMESTAMPTZ))
    ORDER BY created_at ASC, id ASC
""")

_CAS_PAYOUT_SQL = text("""
    UPDATE tips
    SET payout_status      = :target,
        stripe_transfer_id = COALESCE(CAST(:stripe_transfer_id AS TEXT), stripe_transfer_id),
        transferred_at     = COALESCE(CAST(:transferred_at AS TIMESTAMPTZ), transferred_at),
        reallocated_at     = COALESCE(CAST(:reallocated_at AS TIMESTAMPTZ), reallocated_at),
        last_payout_error  = COALESCE(CAST(:last_payout_error AS TEXT), last_payout_error),
        payout_attempt     = payout_attempt
            + CASE WHEN CAST(:expected AS TEXT) = 'failed' THEN 1 ELSE 0 END,
        updated_at = NOW()
    WHERE id = :tip_id AND payout_status = :expected
    RETURNING id
""")

_CAS_PAYMENT_SQL = text("""
    UPDATE tips
    SET payment_status = :target,
        stripe_payment_intent_id = COALESCE(
            CAST(:payment_intent_id AS TEXT), stripe_payment_intent_id
        ),
        updated_at = NOW()
    WHERE id = :tip_id AND payment_status = :expected
    RETURNING id
""")

_REBIND_BROADCASTER_SQL = text("""
    UPDATE tips
    SET broadcaster_user_id = :user_id,
        updated_at = NOW()
    WHERE id = :tip_id AND broadcaster_user_id IS NULL
    RETURNING id
""")

_SUM_TIPPER_SESSION_SQL = text("""
    SELECT COALESCE(SUM(tip_amount_cents), 0) AS total
    FROM tips
    WHERE tipper_user_id = :tipper_user_id
      AND broadcast_slot_id = :broadcast_slot_id
      AND payment_status = 'succeeded'
""")

_LIST_UNCLAIMED_SQL = text(f"""
    SELECT {_TIP_COLUMNS}
    FROM tips
    WHERE payment_status = 'succeeded'
      AND payout_status IN ('pending', 'pending_dj_account')
    ORDER BY created_at ASC, id ASC
""")

_SUMMARY_SQL = text("""
    SELECT payout_status,
           COUNT(*) AS tip_count,
           COALESCE(SUM(tip_amount_cents), 0) AS total_cents
    FROM tips
    WHERE payment_status = 'succeeded'
    GROUP BY payout_status
""")

_LIST_OVERVIEW_SQL = text(f"""
    SELECT {_TIP_COLUMNS}
    FROM tips
    WHERE payment_status = 'succeeded'
      AND (CAST(:statuses AS TEXT[]) IS NULL
           OR payout_status = ANY(CAST(:statuses AS TEXT[])))
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_RECEIVED_SQL = text(f"""
    SELECT {_TIP_COLUMNS}
    FROM tips
    WHERE broadcaster_user_id = :broadcaster_user_id
      AND payment_status = 'succeeded'
    ORDER BY created_at DESC, id DESC
""")

# ---------------------------------------------------------------------------
# SQL: append-only audit tables
# ---------------------------------------------------------------------------

_INSERT_REALLOCATION_SQL = text("""
    INSERT INTO support_pool_reallocations
        (tip_id, broadcaster_user_id, broadcaster_email, broadcaster_name,
         amount_cents, original_tip_date, reallocated_at)
    VALUES
        (:tip_id, :broadcaster_user_id, :broadcaster_email, :broadcaster_name,
         :amount_cents, :original_tip_date, :reallocated_at)
    ON CONFLICT (tip_id) DO NOTHING
    RETURNING id
""")

_REMINDER_EXISTS_SQL = text("""
    SELECT 1 FROM tip_reminders_sent
    WHERE broadcaster_user_id = :broadcaster_user_id AND day_marker = :day_marker
    LIMIT 1
""")

_INSERT_REMINDER_SQL = text("""
    INSERT INTO tip_reminders_sent
        (broadcaster_user_id, day_marker, pending_amount_cents, sent_at)
    VALUES
        (:broadcaster_user_id, :day_marker, :pending_amount_cents, :sent_at)
    ON CONFLICT (broadcaster_user_id, day_marker) DO NOTHING
    RETURNING id
""")


def _row_to_tip(row: object) -> Tip:
    return Tip(
        id=row.id,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
        tipper=Tipper(
            user_id=row.tipper_user_id,  # type: ignore[attr-defined]
            display_name=row.tipper_name,  # type: ignore[attr-defined]
        ),
        broadcaster=broadcaster_from_columns(
            row.broadcaster_user_id,  # type: ignore[attr-defined]
            row.broadcaster_email,  # type: ignore[attr-defined]
        ),
        broadcaster_name=row.broadcaster_name,  # type: ignore[attr-defined]
        broadcast_slot_id=row.broadcast_slot_id,  # type: ignore[attr-defined]
        show_name=row.show_name,  # type: ignore[attr-defined]
        tip_amount_cents=row.tip_amount_cents,  # type: ignore[attr-defined]
        platform_fee_cents=row.platform_fee_cents,  # type: ignore[attr-defined]
        total_charged_cents=row.total_charged_cents,  # type: ignore[attr-defined]
        payment_status=PaymentStatus(row.payment_status),  # type: ignore[attr-defined]
        payout_status=PayoutStatus(row.payout_status),  # type: ignore[attr-defined]
        stripe_session_id=row.stripe_session_id,  # type: ignore[attr-defined]
        stripe_payment_intent_id=row.stripe_payment_intent_id,  # type: ignore[attr-defined]
        stripe_transfer_id=row.stripe_transfer_id,  # type: ignore[attr-defined]
        transferred_at=row.transferred_at,  # type: ignore[attr-defined]
        reallocated_at=row.reallocated_at,  # type: ignore[attr-defined]
        last_payout_error=row.last_payout_error,  # type: ignore[attr-defined]
        payout_attempt=row.payout_attempt,  # type: ignore[attr-defined]
    )


class TipLedger:
    """Concrete ledger — every status write is an atomic guarded UPDATE."""

    async def create(self, db: AsyncSession, tip: Tip) -> str:
        """Insert the tip; a replayed checkout session returns the existing id."""
        result = await db.execute(
            _INSERT_TIP_SQL,
            {
                "id": tip.id,
                "created_at": tip.created_at,
                "tipper_user_id": tip.tipper.user_id,
                "tipper_name": tip.tipper.display_name,
                "broadcaster_user_id": tip.broadcaster_user_id,
                "broadcaster_email": tip.broadcaster_email,
                "broadcaster_name": tip.broadcaster_name,
                "broadcast_slot_id": tip.broadcast_slot_id,
                "show_name": tip.show_name,
                "tip_amount_cents": tip.tip_amount_cents,
                "platform_fee_cents": tip.platform_fee_cents,
                "total_charged_cents": tip.total_charged_cents,
                "payment_status": tip.payment_status.value,
                "payout_status": tip.payout_status.value,
                "stripe_session_id": tip.stripe_session_id,
                "stripe_payment_intent_id": tip.stripe_payment_intent_id,
            },
        )
        row = result.fetchone()
        if row is not None:
            return str(row.id)
        existing = await db.execute(
            _GET_TIP_ID_BY_SESSION_SQL, {"stripe_session_id": tip.stripe_session_id}
        )
        existing_row = existing.fetchone()
        if existing_row is None:
            raise InternalError("Tip insert conflicted but no row exists for the session")
        return str(existing_row.id)

    async def get(self, db: AsyncSession, tip_id: str) -> Tip | None:
        result = await db.execute(_GET_TIP_SQL, {"tip_id": tip_id})
        row = result.fetchone()
        return _row_to_tip(row) if row else None

    async def get_by_session_id(
        self, db: AsyncSession, stripe_session_id: str
    ) -> Tip | None:
        result = await db.execute(
            _GET_TIP_BY_SESSION_SQL, {"stripe_session_id": stripe_session_id}
        )
        row = result.fetchone()
        return _row_to_tip(row) if row else None

    async def find_by_payout_status(
        self, db: AsyncSession, status: PayoutStatus, tip_filter: TipFilter
    ) -> list[Tip]:
        result = await db.execute(
            _FIND_BY_PAYOUT_STATUS_SQL,
            {
                "payout_status": status.value,
                "payment_status": (
                    tip_filter.payment_status.value if tip_filter.payment_status else None
                ),
                "broadcaster_user_id": tip_filter.broadcaster_user_id,
                "broadcaster_email": tip_filter.broadcaster_email,
                "unresolved_only": tip_filter.unresolved_only,
                "resolved_only": tip_filter.resolved_only,
                "created_before": tip_filter.created_before,
            },
        )
        return [_row_to_tip(row) for row in result.fetchall()]

    async def compare_and_set_payout_status(
        self,
        db: AsyncSession,
        tip_id: str,
        expected: PayoutStatus,
        target: PayoutStatus,
        extra: dict[str, Any] | None = None,
    ) -> bool:
        extra = extra or {}
        validate_payout_transition(expected, target, extra)
        result = await db.execute(
            _CAS_PAYOUT_SQL,
            {
                "tip_id": tip_id,
                "expected": expected.value,
                "target": target.value,
                "stripe_transfer_id": extra.get("stripe_transfer_id"),
                "transferred_at": extra.get("transferred_at"),
                "reallocated_at": extra.get("reallocated_at"),
                "last_payout_error": extra.get("last_payout_error"),
            },
        )
        return result.fetchone() is not None

    async def compare_and_set_payment_status(
        self,
        db: AsyncSession,
        tip_id: str,
        expected: PaymentStatus,
        target: PaymentStatus,
        payment_intent_id: str | None = None,
    ) -> bool:
        validate_payment_transition(expected, target)
        result = await db.execute(
            _CAS_PAYMENT_SQL,
            {
                "tip_id": tip_id,
                "expected": expected.value,
                "target": target.value,
                "payment_intent_id": payment_intent_id,
            },
        )
        return result.fetchone() is not None

    async def rebind_broadcaster(
        self, db: AsyncSession, tip_id: str, user_id: str
    ) -> bool:
        result = await db.execute(
            _REBIND_BROADCASTER_SQL, {"tip_id": tip_id, "user_id": user_id}
        )
        return result.fetchone() is not None

    async def sum_tipper_session_cents(
        self, db: AsyncSession, tipper_user_id: str, broadcast_slot_id: str
    ) -> int:
        result = await db.execute(
            _SUM_TIPPER_SESSION_SQL,
            {"tipper_user_id": tipper_user_id, "broadcast_slot_id": broadcast_slot_id},
        )
        row = result.fetchone()
        return int(row.total) if row else 0

    async def list_unclaimed(self, db: AsyncSession) -> list[Tip]:
        result = await db.execute(_LIST_UNCLAIMED_SQL)
        return [_row_to_tip(row) for row in result.fetchall()]

    async def append_reallocation(
        self, db: AsyncSession, record: ReallocationRecord
    ) -> bool:
        result = await db.execute(
            _INSERT_REALLOCATION_SQL,
            {
                "tip_id": record.tip_id,
                "broadcaster_user_id": record.broadcaster_user_id,
                "broadcaster_email": record.broadcaster_email,
                "broadcaster_name": record.broadcaster_name,
                "amount_cents": record.amount_cents,
                "original_tip_date": record.original_tip_date,
                "reallocated_at": record.reallocated_at,
            },
        )
        return result.fetchone() is not None

    async def reminder_sent(
        self, db: AsyncSession, broadcaster_user_id: str, day_marker: int
    ) -> bool:
        result = await db.execute(
            _REMINDER_EXISTS_SQL,
            {"broadcaster_user_id": broadcaster_user_id, "day_marker": day_marker},
        )
        return result.fetchone() is not None

    async def append_reminder(self, db: AsyncSession, record: ReminderRecord) -> bool:
        result = await db.execute(
            _INSERT_REMINDER_SQL,
            {
                "broadcaster_user_id": record.broadcaster_user_id,
                "day_marker": record.day_marker,
                "pending_amount_cents": record.pending_amount_cents,
                "sent_at": record.sent_at,
            },
        )
        return result.fetchone() is not None

    async def summarize_payouts(self, db: AsyncSession) -> PayoutSummary:
        result = await db.execute(_SUMMARY_SQL)
        summary = PayoutSummary()
        for row in result.fetchall():
            status = PayoutStatus(row.payout_status)
            if status in (PayoutStatus.PENDING, PayoutStatus.PENDING_DJ_ACCOUNT):
                bucket = summary.pending
            elif status == PayoutStatus.TRANSFERRED:
                bucket = summary.transferred
            elif status == PayoutStatus.REALLOCATED_TO_POOL:
                bucket = summary.reallocated
            else:
                bucket = summary.failed
            bucket.cents += int(row.total_cents)
            bucket.count += int(row.tip_count)
        return summary

    async def list_for_overview(
        self, db: AsyncSession, statuses: list[PayoutStatus] | None, limit: int
    ) -> list[Tip]:
        result = await db.execute(
            _LIST_OVERVIEW_SQL,
            {
                "statuses": [s.value for s in statuses] if statuses else None,
                "limit": limit,
            },
        )
        return [_row_to_tip(row) for row in result.fetchall()]

    async def list_received(
        self, db: AsyncSession, broadcaster_user_id: str
    ) -> list[Tip]:
        result = await db.execute(
            _LIST_RECEIVED_SQL, {"broadcaster_user_id": broadcaster_user_id}
        )
        return [_row_to_tip(row) for row in result.fetchall()]
