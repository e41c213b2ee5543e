"""Domain models for tp_tips — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime

from src.tp_common.enums import PaymentStatus, PayoutStatus

GUEST_TIPPER_ID = "guest"
GUEST_TIPPER_NAME = "Guest"


@dataclass(frozen=True)
class ResolvedBroadcaster:
    """Broadcaster identity is known."""

    user_id: str
    email: str | None = None


@dataclass(frozen=True)
class UnresolvedBroadcaster:
    """Broadcaster has no account yet; bind later by matching this email."""

    email: str


BroadcasterRef = ResolvedBroadcaster | UnresolvedBroadcaster


def broadcaster_from_columns(user_id: str | None, email: str | None) -> BroadcasterRef:
    if user_id:
        return ResolvedBroadcaster(user_id=user_id, email=email)
    return UnresolvedBroadcaster(email=email or "")


@dataclass(frozen=True)
class Tipper:
    user_id: str
    display_name: str

    @property
    def is_guest(self) -> bool:
        return self.user_id == GUEST_TIPPER_ID

    @classmethod
    def guest(cls) -> "Tipper":
        return cls(user_id=GUEST_TIPPER_ID, display_name=GUEST_TIPPER_NAME)


@dataclass
class Tip:
    id: str
    created_at: datetime
    tipper: Tipper
    broadcaster: BroadcasterRef
    broadcaster_name: str
    broadcast_slot_id: str
    show_name: str
    tip_amount_cents: int
    platform_fee_cents: int
    total_charged_cents: int
    payment_status: PaymentStatus
    payout_status: PayoutStatus
    stripe_session_id: str
    stripe_payment_intent_id: str | None = None
    stripe_transfer_id: str | None = None
    transferred_at: datetime | None = None
    reallocated_at: datetime | None = None
    last_payout_error: str | None = None
    payout_attempt: int = 0     # bumped on each failed -> pending retry
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.total_charged_cents != self.tip_amount_cents + self.platform_fee_cents:
            raise ValueError(
                f"Tip {self.id}: total {self.total_charged_cents} != "
                f"tip {self.tip_amount_cents} + fee {self.platform_fee_cents}"
            )

    @property
    def broadcaster_user_id(self) -> str | None:
        if isinstance(self.broadcaster, ResolvedBroadcaster):
            return self.broadcaster.user_id
        return None

    @property
    def broadcaster_email(self) -> str | None:
        return self.broadcaster.email

    @property
    def is_payout_terminal(self) -> bool:
        return self.payout_status in TERMINAL_PAYOUT_STATUSES


TERMINAL_PAYOUT_STATUSES = frozenset(
    {PayoutStatus.TRANSFERRED, PayoutStatus.REALLOCATED_TO_POOL}
)
UNCLAIMED_PAYOUT_STATUSES = frozenset(
    {PayoutStatus.PENDING, PayoutStatus.PENDING_DJ_ACCOUNT}
)


@dataclass
class TipFilter:
    """Narrowing for TipLedger.find_by_payout_status. None means no constraint."""

    broadcaster_user_id: str | None = None
    broadcaster_email: str | None = None      # case-insensitive match
    unresolved_only: bool = False
    resolved_only: bool = False
    created_before: datetime | None = None
    payment_status: PaymentStatus | None = PaymentStatus.SUCCEEDED


@dataclass(frozen=True)
class ReallocationRecord:
    """Append-only audit entry written when a tip reaches reallocated_to_pool."""

    tip_id: str
    broadcaster_user_id: str | None
    broadcaster_email: str | None
    broadcaster_name: str
    amount_cents: int
    original_tip_date: datetime
    reallocated_at: datetime


@dataclass(frozen=True)
class ReminderRecord:
    broadcaster_user_id: str
    day_marker: int
    pending_amount_cents: int
    sent_at: datetime


@dataclass
class PayoutBucket:
    cents: int = 0
    count: int = 0


@dataclass
class PayoutSummary:
    pending: PayoutBucket = field(default_factory=PayoutBucket)
    transferred: PayoutBucket = field(default_factory=PayoutBucket)
    reallocated: PayoutBucket = field(default_factory=PayoutBucket)
    failed: PayoutBucket = field(default_factory=PayoutBucket)
