"""TipCheckoutService — validates a tip request, opens a processor checkout
session and records the tip as payment-pending.

Validation failures raise before any processor call or ledger write.
"""

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tp_common.cents import cents_to_display
from src.tp_common.datetime_utils import utc_now
from src.tp_common.enums import PaymentStatus, PayoutStatus
from src.tp_common.errors import (
    InvalidTipAmountError,
    MissingBroadcasterError,
    MissingShowContextError,
    MissingTipperError,
    TipLimitExceededError,
)
from src.tp_payout.application.directory import PayoutAccountDirectory, normalize_email
from src.tp_payout.domain.repository import PaymentGatewayProtocol, metadata_str
from src.tp_payout.infrastructure.stripe_gateway import StripeGateway
from src.tp_tips.application.schemas import (
    CheckoutResponse,
    CreateTipCheckoutRequest,
    ReceivedTipsResponse,
)
from src.tp_tips.domain.fee import calculate_total_charge
from src.tp_tips.domain.models import (
    BroadcasterRef,
    ResolvedBroadcaster,
    Tip,
    Tipper,
    broadcaster_from_columns,
)
from src.tp_tips.domain.repository import TipLedgerProtocol
from src.tp_tips.infrastructure.persistence import TipLedger

logger = logging.getLogger(__name__)

MIN_TIP_CENTS = 100
GUEST_MAX_TIP_CENTS = 2_000
MEMBER_MAX_TIP_CENTS = 20_000
SESSION_MAX_TIP_CENTS = 20_000

CHECKOUT_METADATA_TYPE = "tip"


def checkout_metadata(tip: Tip) -> dict[str, str]:
    """Everything needed to rebuild the tip row from the processor's copy."""
    return {
        "type": CHECKOUT_METADATA_TYPE,
        "tip_id": tip.id,
        "tip_amount_cents": str(tip.tip_amount_cents),
        "platform_fee_cents": str(tip.platform_fee_cents),
        "total_cents": str(tip.total_charged_cents),
        "broadcaster_user_id": metadata_str(tip.broadcaster_user_id),
        "broadcaster_email": metadata_str(tip.broadcaster_email),
        "broadcaster_name": tip.broadcaster_name,
        "broadcast_slot_id": tip.broadcast_slot_id,
        "show_name": tip.show_name,
        "tipper_user_id": tip.tipper.user_id,
        "tipper_name": tip.tipper.display_name,
    }


def tip_from_checkout_metadata(
    metadata: Mapping[str, str],
    stripe_session_id: str,
    created_at: datetime,
    stripe_payment_intent_id: str | None = None,
) -> Tip:
    """Rebuild a payment-pending tip from checkout metadata.

    Raises ValueError if the stored amounts break total = tip + fee.
    """
    broadcaster = broadcaster_from_columns(
        metadata.get("broadcaster_user_id") or None,
        normalize_email(metadata.get("broadcaster_email")),
    )
    return Tip(
        id=metadata.get("tip_id") or uuid.uuid4().hex,
        created_at=created_at,
        tipper=Tipper(
            user_id=metadata.get("tipper_user_id") or Tipper.guest().user_id,
            display_name=metadata.get("tipper_name") or Tipper.guest().display_name,
        ),
        broadcaster=broadcaster,
        broadcaster_name=metadata.get("broadcaster_name", ""),
        broadcast_slot_id=metadata.get("broadcast_slot_id", ""),
        show_name=metadata.get("show_name", ""),
        tip_amount_cents=int(metadata["tip_amount_cents"]),
        platform_fee_cents=int(metadata["platform_fee_cents"]),
        total_charged_cents=int(metadata["total_cents"]),
        payment_status=PaymentStatus.PENDING,
        payout_status=initial_payout_status(broadcaster),
        stripe_session_id=stripe_session_id,
        stripe_payment_intent_id=stripe_payment_intent_id,
    )


def initial_payout_status(broadcaster: BroadcasterRef) -> PayoutStatus:
    if isinstance(broadcaster, ResolvedBroadcaster):
        return PayoutStatus.PENDING
    return PayoutStatus.PENDING_DJ_ACCOUNT


class TipCheckoutService:
    def __init__(
        self,
        ledger: TipLedgerProtocol | None = None,
        directory: PayoutAccountDirectory | None = None,
        gateway: PaymentGatewayProtocol | None = None,
    ) -> None:
        self._ledger: TipLedgerProtocol = ledger or TipLedger()
        self._directory = directory or PayoutAccountDirectory()
        self._gateway = gateway

    def _get_gateway(self) -> PaymentGatewayProtocol:
        if self._gateway is None:
            self._gateway = StripeGateway()
        return self._gateway

    async def create_checkout(
        self, db: AsyncSession, body: CreateTipCheckoutRequest
    ) -> CheckoutResponse:
        amount = body.tip_amount_cents
        if amount < MIN_TIP_CENTS:
            raise InvalidTipAmountError(
                f"minimum tip is {cents_to_display(MIN_TIP_CENTS)}"
            )

        tipper = self._tipper_from_request(body)
        max_single = GUEST_MAX_TIP_CENTS if tipper.is_guest else MEMBER_MAX_TIP_CENTS
        if amount > max_single:
            who = "Guest tips" if tipper.is_guest else "Tips"
            raise TipLimitExceededError(
                f"{who} are limited to {cents_to_display(max_single)} each"
            )

        if not body.broadcaster_name or not (
            body.broadcaster_user_id or normalize_email(body.broadcaster_email)
        ):
            raise MissingBroadcasterError()
        if not body.broadcast_slot_id or not body.show_name:
            raise MissingShowContextError()

        if not tipper.is_guest:
            already = await self._ledger.sum_tipper_session_cents(
                db, tipper.user_id, body.broadcast_slot_id
            )
            if already + amount > SESSION_MAX_TIP_CENTS:
                remaining = max(SESSION_MAX_TIP_CENTS - already, 0)
                raise TipLimitExceededError(
                    f"Session tip limit is {cents_to_display(SESSION_MAX_TIP_CENTS)}; "
                    f"{cents_to_display(remaining)} remaining"
                )

        fees = calculate_total_charge(amount)
        broadcaster = await self._directory.resolve_broadcaster(
            db, body.broadcaster_user_id, body.broadcaster_email
        )

        tip = Tip(
            id=uuid.uuid4().hex,
            created_at=utc_now(),
            tipper=tipper,
            broadcaster=broadcaster,
            broadcaster_name=body.broadcaster_name,
            broadcast_slot_id=body.broadcast_slot_id,
            show_name=body.show_name,
            tip_amount_cents=fees.tip_amount_cents,
            platform_fee_cents=fees.platform_fee_cents,
            total_charged_cents=fees.total_cents,
            payment_status=PaymentStatus.PENDING,
            payout_status=initial_payout_status(broadcaster),
            stripe_session_id="",
        )

        base_url = settings.APP_BASE_URL.rstrip("/")
        session = await self._get_gateway().create_checkout_session(
            amount_cents=fees.total_cents,
            currency=settings.PAYOUT_CURRENCY,
            product_name=f"Tip for {body.broadcaster_name}",
            description=(
                f"{cents_to_display(fees.tip_amount_cents)} tip during {body.show_name} "
                f"+ {cents_to_display(fees.platform_fee_cents)} platform fee"
            ),
            metadata=checkout_metadata(tip),
            success_url=f"{base_url}/tip/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base_url}/tip/cancelled",
        )
        tip.stripe_session_id = session.id

        try:
            tip.id = await self._ledger.create(db, tip)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Checkout %s opened for tip %s (%d + %d cents, broadcaster %s)",
            session.id,
            tip.id,
            fees.tip_amount_cents,
            fees.platform_fee_cents,
            tip.broadcaster_user_id or tip.broadcaster_email,
        )
        return CheckoutResponse.from_tip(tip, session.url)

    async def list_received(
        self, db: AsyncSession, broadcaster_user_id: str
    ) -> ReceivedTipsResponse:
        tips = await self._ledger.list_received(db, broadcaster_user_id)
        return ReceivedTipsResponse.from_tips(broadcaster_user_id, tips)

    @staticmethod
    def _tipper_from_request(body: CreateTipCheckoutRequest) -> Tipper:
        if body.is_guest:
            return Tipper.guest()
        if not body.tipper_user_id or not body.tipper_name:
            raise MissingTipperError()
        return Tipper(user_id=body.tipper_user_id, display_name=body.tipper_name)
