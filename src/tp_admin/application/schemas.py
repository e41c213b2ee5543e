"""Pydantic schemas for the payouts overview."""

from datetime import datetime

from pydantic import BaseModel

from src.tp_common.cents import cents_to_display
from src.tp_common.enums import PaymentStatus, PayoutStatus
from src.tp_tips.domain.models import PayoutBucket, PayoutSummary, Tip


class BucketResponse(BaseModel):
    cents: int
    display: str
    count: int

    @classmethod
    def from_bucket(cls, bucket: PayoutBucket) -> "BucketResponse":
        return cls(cents=bucket.cents, display=cents_to_display(bucket.cents), count=bucket.count)


class PayoutTotalsResponse(BaseModel):
    pending: BucketResponse
    transferred: BucketResponse
    reallocated: BucketResponse
    failed: BucketResponse

    @classmethod
    def from_summary(cls, summary: PayoutSummary) -> "PayoutTotalsResponse":
        return cls(
            pending=BucketResponse.from_bucket(summary.pending),
            transferred=BucketResponse.from_bucket(summary.transferred),
            reallocated=BucketResponse.from_bucket(summary.reallocated),
            failed=BucketResponse.from_bucket(summary.failed),
        )


class PayoutTipItem(BaseModel):
    tip_id: str
    created_at: datetime
    broadcaster_user_id: str | None
    broadcaster_email: str | None
    broadcaster_name: str
    tipper_name: str
    show_name: str
    tip_amount_cents: int
    tip_amount_display: str
    payment_status: PaymentStatus
    payout_status: PayoutStatus
    stripe_transfer_id: str | None
    transferred_at: datetime | None
    reallocated_at: datetime | None
    last_payout_error: str | None

    @classmethod
    def from_tip(cls, tip: Tip) -> "PayoutTipItem":
        return cls(
            tip_id=tip.id,
            created_at=tip.created_at,
            broadcaster_user_id=tip.broadcaster_user_id,
            broadcaster_email=tip.broadcaster_email,
            broadcaster_name=tip.broadcaster_name,
            tipper_name=tip.tipper.display_name,
            show_name=tip.show_name,
            tip_amount_cents=tip.tip_amount_cents,
            tip_amount_display=cents_to_display(tip.tip_amount_cents),
            payment_status=tip.payment_status,
            payout_status=tip.payout_status,
            stripe_transfer_id=tip.stripe_transfer_id,
            transferred_at=tip.transferred_at,
            reallocated_at=tip.reallocated_at,
            last_payout_error=tip.last_payout_error,
        )


class PayoutsOverviewResponse(BaseModel):
    totals: PayoutTotalsResponse
    tips: list[PayoutTipItem]
