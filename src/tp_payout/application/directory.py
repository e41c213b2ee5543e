"""PayoutAccountDirectory — broadcaster identity and payout-account lookups.

Reads never commit. mark_activated / refresh_activation write the activation
flag; the caller owns the commit.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_common.errors import (
    BroadcasterNotFoundError,
    MissingBroadcasterError,
    PayoutAccountMissingError,
)
from src.tp_payout.domain.models import PayoutAccount
from src.tp_payout.domain.repository import (
    BroadcasterAccountRepositoryProtocol,
    PaymentGatewayProtocol,
)
from src.tp_payout.infrastructure.persistence import BroadcasterAccountRepository
from src.tp_payout.infrastructure.stripe_gateway import StripeGateway
from src.tp_tips.domain.models import (
    BroadcasterRef,
    ResolvedBroadcaster,
    UnresolvedBroadcaster,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivationStatus:
    user_id: str
    external_account_id: str
    activated: bool
    newly_activated: bool


def normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    cleaned = email.strip().lower()
    return cleaned or None


class PayoutAccountDirectory:
    def __init__(
        self,
        repo: BroadcasterAccountRepositoryProtocol | None = None,
        gateway: PaymentGatewayProtocol | None = None,
    ) -> None:
        self._repo: BroadcasterAccountRepositoryProtocol = (
            repo or BroadcasterAccountRepository()
        )
        self._gateway = gateway

    def _get_gateway(self) -> PaymentGatewayProtocol:
        if self._gateway is None:
            self._gateway = StripeGateway()
        return self._gateway

    async def resolve_broadcaster(
        self,
        db: AsyncSession,
        broadcaster_user_id: str | None,
        broadcaster_email: str | None,
    ) -> BroadcasterRef:
        """Explicit id wins; otherwise match a known account by email;
        otherwise the tip waits, bound to the email only."""
        email = normalize_email(broadcaster_email)
        if broadcaster_user_id:
            return ResolvedBroadcaster(user_id=broadcaster_user_id, email=email)
        if email is None:
            raise MissingBroadcasterError()
        account = await self._repo.get_by_email(db, email)
        if account is not None:
            return ResolvedBroadcaster(user_id=account.user_id, email=email)
        return UnresolvedBroadcaster(email=email)

    async def get_account(self, db: AsyncSession, user_id: str) -> PayoutAccount | None:
        return await self._repo.get_by_user_id(db, user_id)

    async def get_by_external_account_id(
        self, db: AsyncSession, external_account_id: str
    ) -> PayoutAccount | None:
        return await self._repo.get_by_external_account_id(db, external_account_id)

    async def mark_activated(self, db: AsyncSession, user_id: str) -> bool:
        flipped = await self._repo.set_activated(db, user_id)
        if flipped:
            logger.info("Payout account activated for broadcaster %s", user_id)
        return flipped

    async def refresh_activation(self, db: AsyncSession, user_id: str) -> ActivationStatus:
        """Ask the processor whether the account can receive funds and record it."""
        account = await self._repo.get_by_user_id(db, user_id)
        if account is None:
            raise BroadcasterNotFoundError(user_id)
        if not account.external_account_id:
            raise PayoutAccountMissingError(user_id)

        remote = await self._get_gateway().retrieve_account(account.external_account_id)
        newly_activated = False
        if remote.ready and not account.activated:
            newly_activated = await self.mark_activated(db, user_id)
        return ActivationStatus(
            user_id=user_id,
            external_account_id=account.external_account_id,
            activated=account.activated or remote.ready,
            newly_activated=newly_activated,
        )
