"""Pydantic schemas for the tp_tips API."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.tp_common.cents import cents_to_display
from src.tp_common.enums import PayoutStatus
from src.tp_tips.domain.models import Tip

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateTipCheckoutRequest(BaseModel):
    """Amount and party checks run in the service so they surface as AppErrors."""

    tip_amount_cents: int = Field(..., description="Tip in cents, before the platform fee")
    broadcaster_user_id: str | None = None
    broadcaster_email: str | None = None
    broadcaster_name: str | None = None
    broadcast_slot_id: str | None = None
    show_name: str | None = None
    tipper_user_id: str | None = None
    tipper_name: str | None = None
    is_guest: bool = False


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CheckoutResponse(BaseModel):
    tip_id: str
    session_id: str
    checkout_url: str | None
    tip_amount_cents: int
    platform_fee_cents: int
    total_cents: int
    total_display: str
    payout_status: PayoutStatus

    @classmethod
    def from_tip(cls, tip: Tip, checkout_url: str | None) -> "CheckoutResponse":
        return cls(
            tip_id=tip.id,
            session_id=tip.stripe_session_id,
            checkout_url=checkout_url,
            tip_amount_cents=tip.tip_amount_cents,
            platform_fee_cents=tip.platform_fee_cents,
            total_cents=tip.total_charged_cents,
            total_display=cents_to_display(tip.total_charged_cents),
            payout_status=tip.payout_status,
        )


class ReceivedTipItem(BaseModel):
    tip_id: str
    amount_cents: int
    amount_display: str
    show_name: str
    payout_status: PayoutStatus
    created_at: datetime

    @classmethod
    def from_tip(cls, tip: Tip) -> "ReceivedTipItem":
        return cls(
            tip_id=tip.id,
            amount_cents=tip.tip_amount_cents,
            amount_display=cents_to_display(tip.tip_amount_cents),
            show_name=tip.show_name,
            payout_status=tip.payout_status,
            created_at=tip.created_at,
        )


class TipperGroup(BaseModel):
    tipper_name: str
    tip_count: int
    total_cents: int
    total_display: str
    tips: list[ReceivedTipItem]


class ReceivedTipsResponse(BaseModel):
    broadcaster_user_id: str
    tip_count: int
    total_cents: int
    total_display: str
    tippers: list[TipperGroup]

    @classmethod
    def from_tips(cls, broadcaster_user_id: str, tips: list[Tip]) -> "ReceivedTipsResponse":
        grouped: dict[str, list[Tip]] = {}
        for tip in tips:
            grouped.setdefault(tip.tipper.display_name, []).append(tip)
        tippers = [
            TipperGroup(
                tipper_name=name,
                tip_count=len(items),
                total_cents=sum(t.tip_amount_cents for t in items),
                total_display=cents_to_display(sum(t.tip_amount_cents for t in items)),
                tips=[ReceivedTipItem.from_tip(t) for t in items],
            )
            for name, items in grouped.items()
        ]
        tippers.sort(key=lambda g: (-g.total_cents, g.tipper_name))
        total = sum(t.tip_amount_cents for t in tips)
        return cls(
            broadcaster_user_id=broadcaster_user_id,
            tip_count=len(tips),
            total_cents=total,
            total_display=cents_to_display(total),
            tippers=tippers,
        )
