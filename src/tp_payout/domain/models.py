"""Domain models for tp_payout — pure dataclasses, no SQLAlchemy or stripe dependency."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class PayoutAccount:
    """A broadcaster's link to a connected processor account.

    Only `activated` gates transfers; an account id without activation means
    onboarding was started but the processor cannot pay out yet.
    """

    user_id: str
    email: str | None
    display_name: str
    external_account_id: str | None = None
    activated: bool = False

    @property
    def can_receive_transfers(self) -> bool:
        return self.activated and bool(self.external_account_id)


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str | None


@dataclass(frozen=True)
class TransferResult:
    id: str


@dataclass(frozen=True)
class ProcessorAccount:
    id: str
    charges_enabled: bool
    payouts_enabled: bool

    @property
    def ready(self) -> bool:
        return self.charges_enabled and self.payouts_enabled


@dataclass(frozen=True)
class WebhookEvent:
    """Signature-verified processor event, reduced to what the handlers read."""

    id: str
    type: str
    data: dict[str, Any] = field(default_factory=dict)
