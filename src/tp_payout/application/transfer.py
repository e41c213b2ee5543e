"""TransferExecutor — moves one tip's funds to the broadcaster's connected account.

At most one transfer per tip is guaranteed twice over:
  1. the processor idempotency key `tip-transfer-{tip_id}-{payout_attempt}`
     collapses replays of one attempt; a retry out of `failed` bumps the
     attempt, so the processor never replays the rejected request;
  2. the ledger CAS pending -> transferred lets exactly one caller record it.

The executor never commits; the reconciliation engine commits per tip.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tp_common.datetime_utils import utc_now
from src.tp_common.enums import (
    PaymentStatus,
    PayoutStatus,
    ReconciliationTrigger,
    TransferOutcome,
)
from src.tp_common.errors import PermanentProcessorError, TransientProcessorError
from src.tp_payout.domain.models import PayoutAccount
from src.tp_payout.domain.repository import PaymentGatewayProtocol, metadata_str
from src.tp_payout.infrastructure.stripe_gateway import StripeGateway
from src.tp_tips.domain.models import Tip
from src.tp_tips.domain.repository import TipLedgerProtocol
from src.tp_tips.infrastructure.persistence import TipLedger

logger = logging.getLogger(__name__)


def transfer_idempotency_key(tip_id: str, payout_attempt: int = 0) -> str:
    return f"tip-transfer-{tip_id}-{payout_attempt}"


class TransferExecutor:
    def __init__(
        self,
        ledger: TipLedgerProtocol | None = None,
        gateway: PaymentGatewayProtocol | None = None,
        currency: str | None = None,
    ) -> None:
        self._ledger: TipLedgerProtocol = ledger or TipLedger()
        self._gateway = gateway
        self._currency = currency or settings.PAYOUT_CURRENCY

    def _get_gateway(self) -> PaymentGatewayProtocol:
        if self._gateway is None:
            self._gateway = StripeGateway()
        return self._gateway

    async def execute(
        self,
        db: AsyncSession,
        tip: Tip,
        account: PayoutAccount,
        trigger: ReconciliationTrigger = ReconciliationTrigger.PERIODIC_SWEEP,
    ) -> TransferOutcome:
        if tip.payment_status != PaymentStatus.SUCCEEDED:
            return TransferOutcome.SKIPPED
        if tip.payout_status != PayoutStatus.PENDING:
            return TransferOutcome.SKIPPED
        if not account.can_receive_transfers or tip.broadcaster_user_id != account.user_id:
            return TransferOutcome.SKIPPED

        try:
            transfer = await self._get_gateway().create_transfer(
                amount_cents=tip.tip_amount_cents,
                currency=self._currency,
                destination=account.external_account_id or "",
                transfer_group=tip.id,
                metadata={
                    "tip_id": tip.id,
                    "broadcaster_user_id": metadata_str(account.user_id),
                    "trigger": trigger.value,
                },
                idempotency_key=transfer_idempotency_key(tip.id, tip.payout_attempt),
            )
        except TransientProcessorError as exc:
            logger.warning("Transfer for tip %s deferred: %s", tip.id, exc.message)
            return TransferOutcome.RETRYABLE_FAILURE
        except PermanentProcessorError as exc:
            recorded = await self._ledger.compare_and_set_payout_status(
                db,
                tip.id,
                PayoutStatus.PENDING,
                PayoutStatus.FAILED,
                {"last_payout_error": exc.message},
            )
            logger.error("Transfer for tip %s rejected: %s", tip.id, exc.message)
            return TransferOutcome.PERMANENT_FAILURE if recorded else TransferOutcome.SKIPPED

        recorded = await self._ledger.compare_and_set_payout_status(
            db,
            tip.id,
            PayoutStatus.PENDING,
            PayoutStatus.TRANSFERRED,
            {"stripe_transfer_id": transfer.id, "transferred_at": utc_now()},
        )
        if not recorded:
            logger.info(
                "Tip %s already recorded by another trigger (transfer %s)",
                tip.id,
                transfer.id,
            )
            return TransferOutcome.SKIPPED
        logger.info(
            "Transferred %d cents for tip %s to %s (transfer %s, trigger %s)",
            tip.tip_amount_cents,
            tip.id,
            account.user_id,
            transfer.id,
            trigger.value,
        )
        return TransferOutcome.TRANSFERRED
