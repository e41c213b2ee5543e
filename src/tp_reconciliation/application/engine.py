"""ReconciliationEngine — one idempotent per-tip procedure behind four triggers.

Triggers (payment confirmed, account activated, periodic sweep, manual resync)
may run concurrently and in any order. There are no in-process locks: every
payout write is a ledger compare-and-set and every transfer carries the
processor idempotency key, so a replayed or racing attempt degrades to a no-op.

Checkpointing: each tip is committed on its own. A crash mid-batch loses at
most the tip in flight, and the next trigger picks it up again.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tp_common.datetime_utils import days_ago, utc_now
from src.tp_common.enums import (
    PaymentStatus,
    PayoutStatus,
    ReconciliationTrigger,
    TransferOutcome,
)
from src.tp_common.errors import BroadcasterNotFoundError
from src.tp_payout.application.directory import PayoutAccountDirectory
from src.tp_payout.application.transfer import TransferExecutor
from src.tp_tips.domain.models import Tip, TipFilter, UnresolvedBroadcaster
from src.tp_tips.domain.repository import TipLedgerProtocol
from src.tp_tips.infrastructure.persistence import TipLedger

logger = logging.getLogger(__name__)

# Only these triggers may put a permanently failed tip back in the queue.
_RETRY_FAILED_TRIGGERS = frozenset(
    {ReconciliationTrigger.ACCOUNT_ACTIVATED, ReconciliationTrigger.MANUAL_RESYNC}
)


@dataclass
class ResyncResult:
    processed: int = 0
    transferred: int = 0
    failed: int = 0
    skipped: int = 0
    total_transferred_cents: int = 0

    def record(self, outcome: TransferOutcome, tip: Tip) -> None:
        self.processed += 1
        if outcome == TransferOutcome.TRANSFERRED:
            self.transferred += 1
            self.total_transferred_cents += tip.tip_amount_cents
        elif outcome in (TransferOutcome.RETRYABLE_FAILURE, TransferOutcome.PERMANENT_FAILURE):
            self.failed += 1
        else:
            self.skipped += 1


class ReconciliationEngine:
    def __init__(
        self,
        ledger: TipLedgerProtocol | None = None,
        directory: PayoutAccountDirectory | None = None,
        executor: TransferExecutor | None = None,
        claim_window_days: int | None = None,
    ) -> None:
        self._ledger: TipLedgerProtocol = ledger or TipLedger()
        self._directory = directory or PayoutAccountDirectory()
        self._executor = executor or TransferExecutor(ledger=self._ledger)
        self._claim_window_days = claim_window_days or settings.CLAIM_WINDOW_DAYS

    # ------------------------------------------------------------------
    # Per-tip procedure
    # ------------------------------------------------------------------

    async def attempt_tip(
        self, db: AsyncSession, tip_id: str, trigger: ReconciliationTrigger
    ) -> TransferOutcome:
        """Drive one tip as far along the payout lattice as current facts allow.

        Safe to call any number of times from any trigger. Commits before returning.
        """
        try:
            outcome = await self._attempt(db, tip_id, trigger)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return outcome

    async def _attempt(
        self, db: AsyncSession, tip_id: str, trigger: ReconciliationTrigger
    ) -> TransferOutcome:
        tip = await self._ledger.get(db, tip_id)
        if tip is None:
            logger.warning("Reconciliation skipped unknown tip %s (%s)", tip_id, trigger.value)
            return TransferOutcome.SKIPPED
        if tip.payment_status != PaymentStatus.SUCCEEDED or tip.is_payout_terminal:
            return TransferOutcome.SKIPPED
        if tip.created_at < days_ago(self._claim_window_days, utc_now()):
            # Past the claim window: the expiration sweep owns this tip now.
            return TransferOutcome.SKIPPED

        if isinstance(tip.broadcaster, UnresolvedBroadcaster):
            if tip.payout_status == PayoutStatus.PENDING:
                await self._ledger.compare_and_set_payout_status(
                    db, tip.id, PayoutStatus.PENDING, PayoutStatus.PENDING_DJ_ACCOUNT
                )
            return TransferOutcome.SKIPPED

        if tip.payout_status == PayoutStatus.FAILED and trigger not in _RETRY_FAILED_TRIGGERS:
            return TransferOutcome.SKIPPED

        # No status change unless a transfer follows.
        account = await self._directory.get_account(db, tip.broadcaster_user_id or "")
        if account is None or not account.can_receive_transfers:
            return TransferOutcome.SKIPPED

        if tip.payout_status in (PayoutStatus.PENDING_DJ_ACCOUNT, PayoutStatus.FAILED):
            if not await self._ledger.compare_and_set_payout_status(
                db, tip.id, tip.payout_status, PayoutStatus.PENDING
            ):
                return TransferOutcome.SKIPPED
            if tip.payout_status == PayoutStatus.FAILED:
                # Mirrors the ledger's bump: the retry gets a fresh idempotency key.
                tip.payout_attempt += 1
            tip.payout_status = PayoutStatus.PENDING

        return await self._executor.execute(db, tip, account, trigger)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def on_payment_confirmed(self, db: AsyncSession, tip_id: str) -> TransferOutcome:
        return await self.attempt_tip(db, tip_id, ReconciliationTrigger.PAYMENT_CONFIRMED)

    async def on_account_activated(self, db: AsyncSession, user_id: str) -> ResyncResult:
        return await self._reconcile_broadcaster(
            db, user_id, ReconciliationTrigger.ACCOUNT_ACTIVATED
        )

    async def resync(self, db: AsyncSession, user_id: str) -> ResyncResult:
        """Operator-initiated: same as activation, but the broadcaster must exist."""
        if await self._directory.get_account(db, user_id) is None:
            raise BroadcasterNotFoundError(user_id)
        return await self._reconcile_broadcaster(
            db, user_id, ReconciliationTrigger.MANUAL_RESYNC
        )

    async def sweep(self, db: AsyncSession) -> ResyncResult:
        """Periodic pass over pending tips whose broadcaster is known."""
        result = ResyncResult()
        pending = await self._ledger.find_by_payout_status(
            db, PayoutStatus.PENDING, TipFilter(resolved_only=True)
        )
        by_broadcaster: dict[str, list[Tip]] = {}
        for tip in pending:
            by_broadcaster.setdefault(tip.broadcaster_user_id or "", []).append(tip)

        for user_id, tips in by_broadcaster.items():
            account = await self._directory.get_account(db, user_id)
            if account is None or not account.can_receive_transfers:
                result.skipped += len(tips)
                result.processed += len(tips)
                continue
            await self._attempt_all(db, tips, ReconciliationTrigger.PERIODIC_SWEEP, result)

        logger.info(
            "Periodic sweep: processed=%d transferred=%d failed=%d skipped=%d",
            result.processed,
            result.transferred,
            result.failed,
            result.skipped,
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _reconcile_broadcaster(
        self, db: AsyncSession, user_id: str, trigger: ReconciliationTrigger
    ) -> ResyncResult:
        result = ResyncResult()
        candidates: dict[str, Tip] = {}

        for status in (
            PayoutStatus.PENDING,
            PayoutStatus.PENDING_DJ_ACCOUNT,
            PayoutStatus.FAILED,
        ):
            for tip in await self._ledger.find_by_payout_status(
                db, status, TipFilter(broadcaster_user_id=user_id)
            ):
                candidates[tip.id] = tip

        account = await self._directory.get_account(db, user_id)
        if account is not None and account.email:
            for tip in await self._unresolved_for_email(db, account.email):
                await self._rebind(db, tip, user_id)
                candidates[tip.id] = tip

        ordered = sorted(candidates.values(), key=lambda t: (t.created_at, t.id))
        await self._attempt_all(db, ordered, trigger, result)

        logger.info(
            "Reconciled broadcaster %s (%s): processed=%d transferred=%d "
            "failed=%d skipped=%d total_cents=%d",
            user_id,
            trigger.value,
            result.processed,
            result.transferred,
            result.failed,
            result.skipped,
            result.total_transferred_cents,
        )
        return result

    async def _unresolved_for_email(self, db: AsyncSession, email: str) -> list[Tip]:
        tips: list[Tip] = []
        for status in (PayoutStatus.PENDING_DJ_ACCOUNT, PayoutStatus.PENDING):
            tips.extend(
                await self._ledger.find_by_payout_status(
                    db,
                    status,
                    TipFilter(broadcaster_email=email, unresolved_only=True),
                )
            )
        return tips

    async def _rebind(self, db: AsyncSession, tip: Tip, user_id: str) -> None:
        """Fill in the broadcaster id; committed on its own so it survives a
        failed transfer attempt."""
        try:
            if await self._ledger.rebind_broadcaster(db, tip.id, user_id):
                logger.info("Bound tip %s to broadcaster %s by email", tip.id, user_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    async def _attempt_all(
        self,
        db: AsyncSession,
        tips: list[Tip],
        trigger: ReconciliationTrigger,
        result: ResyncResult,
    ) -> None:
        for tip in tips:
            try:
                outcome = await self.attempt_tip(db, tip.id, trigger)
            except Exception:
                # One bad tip must not stall the batch; it stays retryable.
                logger.exception("Reconciliation of tip %s failed (%s)", tip.id, trigger.value)
                outcome = TransferOutcome.RETRYABLE_FAILURE
            result.record(outcome, tip)
