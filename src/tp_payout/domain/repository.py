"""Protocols for the broadcaster account store and the payment processor.

Unit tests inject in-memory fakes conforming to these Protocols.
Infrastructure layer provides the PostgreSQL and Stripe implementations.
"""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_payout.domain.models import (
    CheckoutSession,
    PayoutAccount,
    ProcessorAccount,
    TransferResult,
    WebhookEvent,
)


class BroadcasterAccountRepositoryProtocol(Protocol):
    async def get_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> PayoutAccount | None: ...

    async def get_by_email(self, db: AsyncSession, email: str) -> PayoutAccount | None: ...

    async def get_by_external_account_id(
        self, db: AsyncSession, external_account_id: str
    ) -> PayoutAccount | None: ...

    async def set_activated(self, db: AsyncSession, user_id: str) -> bool: ...


class PaymentGatewayProtocol(Protocol):
    """Payment processor operations. Raises TransientProcessorError or
    PermanentProcessorError; never returns a partial result."""

    async def create_checkout_session(
        self,
        *,
        amount_cents: int,
        currency: str,
        product_name: str,
        description: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
    ) -> CheckoutSession: ...

    async def create_transfer(
        self,
        *,
        amount_cents: int,
        currency: str,
        destination: str,
        transfer_group: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> TransferResult: ...

    async def retrieve_account(self, account_id: str) -> ProcessorAccount: ...

    def construct_event(self, payload: bytes, sig_header: str) -> WebhookEvent: ...


def metadata_str(value: Any) -> str:
    """Processor metadata values are strings; None becomes ''."""
    return "" if value is None else str(value)
