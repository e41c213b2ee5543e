"""WebhookService — verifies processor events and feeds them into the ledger.

Signature verification happens before anything else; a bad signature raises
InvalidWebhookSignatureError and touches nothing. Once verified, a handler
failure is logged and acknowledged: the ledger is left retryable and the
periodic sweep picks the tip up, so the processor never re-sends a poison event.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_common.datetime_utils import utc_now
from src.tp_common.enums import PaymentStatus, PayoutStatus
from src.tp_payout.application.directory import PayoutAccountDirectory
from src.tp_payout.domain.models import WebhookEvent
from src.tp_payout.domain.repository import PaymentGatewayProtocol
from src.tp_payout.infrastructure.stripe_gateway import StripeGateway
from src.tp_reconciliation.application.engine import ReconciliationEngine
from src.tp_tips.application.service import (
    CHECKOUT_METADATA_TYPE,
    tip_from_checkout_metadata,
)
from src.tp_tips.domain.models import Tip
from src.tp_tips.domain.repository import TipLedgerProtocol
from src.tp_tips.infrastructure.persistence import TipLedger

logger = logging.getLogger(__name__)

_PAID_STATUSES = frozenset({"paid", "no_payment_required"})


@dataclass(frozen=True)
class WebhookResult:
    event_id: str
    event_type: str
    action: str


class WebhookService:
    def __init__(
        self,
        ledger: TipLedgerProtocol | None = None,
        directory: PayoutAccountDirectory | None = None,
        engine: ReconciliationEngine | None = None,
        gateway: PaymentGatewayProtocol | None = None,
    ) -> None:
        self._ledger: TipLedgerProtocol = ledger or TipLedger()
        self._directory = directory or PayoutAccountDirectory()
        self._engine = engine or ReconciliationEngine(
            ledger=self._ledger, directory=self._directory
        )
        self._gateway = gateway
        self._handlers: dict[
            str, Callable[[AsyncSession, dict[str, Any]], Awaitable[str]]
        ] = {
            "checkout.session.completed": self._on_checkout_completed,
            "checkout.session.async_payment_succeeded": self._on_checkout_completed,
            "checkout.session.expired": self._on_checkout_failed,
            "checkout.session.async_payment_failed": self._on_checkout_failed,
            "account.updated": self._on_account_updated,
            "transfer.created": self._on_transfer_created,
        }

    def _get_gateway(self) -> PaymentGatewayProtocol:
        if self._gateway is None:
            self._gateway = StripeGateway()
        return self._gateway

    async def process(
        self, db: AsyncSession, payload: bytes, sig_header: str | None
    ) -> WebhookResult:
        event = self._get_gateway().construct_event(payload, sig_header or "")
        return await self.handle(db, event)

    async def handle(self, db: AsyncSession, event: WebhookEvent) -> WebhookResult:
        handler = self._handlers.get(event.type)
        if handler is None:
            return WebhookResult(event.id, event.type, "ignored")
        try:
            action = await handler(db, event.data)
        except Exception:
            await db.rollback()
            logger.exception("Webhook %s (%s) handler failed", event.id, event.type)
            action = "error"
        logger.info("Webhook %s (%s): %s", event.id, event.type, action)
        return WebhookResult(event.id, event.type, action)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    async def _on_checkout_completed(self, db: AsyncSession, obj: dict[str, Any]) -> str:
        metadata = obj.get("metadata") or {}
        if metadata.get("type") != CHECKOUT_METADATA_TYPE:
            return "ignored"

        tip = await self._ensure_tip(db, obj, metadata)
        if obj.get("payment_status") not in _PAID_STATUSES:
            await db.commit()
            return "awaiting_payment"

        payment_intent = obj.get("payment_intent")
        await self._ledger.compare_and_set_payment_status(
            db,
            tip.id,
            PaymentStatus.PENDING,
            PaymentStatus.SUCCEEDED,
            payment_intent if isinstance(payment_intent, str) else None,
        )
        await db.commit()

        current = await self._ledger.get(db, tip.id)
        if current is None or current.payment_status != PaymentStatus.SUCCEEDED:
            return "payment_not_succeeded"
        outcome = await self._engine.on_payment_confirmed(db, tip.id)
        return f"payment_confirmed:{outcome.value}"

    async def _on_checkout_failed(self, db: AsyncSession, obj: dict[str, Any]) -> str:
        tip = await self._ledger.get_by_session_id(db, str(obj.get("id", "")))
        if tip is None:
            return "unknown_session"
        failed = await self._ledger.compare_and_set_payment_status(
            db, tip.id, PaymentStatus.PENDING, PaymentStatus.FAILED
        )
        await db.commit()
        return "payment_failed" if failed else "noop"

    async def _ensure_tip(
        self, db: AsyncSession, obj: dict[str, Any], metadata: dict[str, str]
    ) -> Tip:
        """The checkout endpoint normally wrote the row; rebuild it from
        metadata if that write was lost."""
        session_id = str(obj.get("id", ""))
        tip = await self._ledger.get_by_session_id(db, session_id)
        if tip is not None:
            return tip
        created = obj.get("created")
        created_at = (
            datetime.fromtimestamp(int(created), tz=timezone.utc) if created else utc_now()
        )
        tip = tip_from_checkout_metadata(metadata, session_id, created_at)
        tip.id = await self._ledger.create(db, tip)
        logger.warning("Tip %s recreated from checkout session %s", tip.id, session_id)
        return tip

    # ------------------------------------------------------------------
    # Connected accounts and transfers
    # ------------------------------------------------------------------

    async def _on_account_updated(self, db: AsyncSession, obj: dict[str, Any]) -> str:
        if not (obj.get("charges_enabled") and obj.get("payouts_enabled")):
            return "account_not_ready"
        account = await self._directory.get_by_external_account_id(db, str(obj.get("id", "")))
        if account is None:
            return "unknown_account"
        await self._directory.mark_activated(db, account.user_id)
        await db.commit()
        result = await self._engine.on_account_activated(db, account.user_id)
        return f"account_activated:transferred={result.transferred}"

    async def _on_transfer_created(self, db: AsyncSession, obj: dict[str, Any]) -> str:
        tip_id = (obj.get("metadata") or {}).get("tip_id")
        if not tip_id:
            return "ignored"
        recorded = await self._ledger.compare_and_set_payout_status(
            db,
            tip_id,
            PayoutStatus.PENDING,
            PayoutStatus.TRANSFERRED,
            {"stripe_transfer_id": str(obj.get("id", "")), "transferred_at": utc_now()},
        )
        await db.commit()
        return "transfer_recorded" if recorded else "noop"
