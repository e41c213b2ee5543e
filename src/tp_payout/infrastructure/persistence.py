"""BroadcasterAccountRepository — concrete implementation of BroadcasterAccountRepositoryProtocol.

Reads go through the ORM mapping; the activation flag is flipped with a guarded
UPDATE so concurrent webhooks and status refreshes report the flip exactly once.
"""

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_payout.domain.models import PayoutAccount
from src.tp_payout.infrastructure.db_models import BroadcasterAccountModel

_SET_ACTIVATED_SQL = text("""
    UPDATE broadcaster_accounts
    SET activated = TRUE,
        updated_at = NOW()
    WHERE user_id = :user_id AND activated = FALSE
    RETURNING user_id
""")


def _model_to_account(model: BroadcasterAccountModel) -> PayoutAccount:
    return PayoutAccount(
        user_id=model.user_id,
        email=model.email,
        display_name=model.display_name,
        external_account_id=model.external_account_id,
        activated=model.activated,
    )


class BroadcasterAccountRepository:
    async def get_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> PayoutAccount | None:
        result = await db.execute(
            select(BroadcasterAccountModel).where(
                BroadcasterAccountModel.user_id == user_id
            )
        )
        model = result.scalar_one_or_none()
        return _model_to_account(model) if model else None

    async def get_by_email(self, db: AsyncSession, email: str) -> PayoutAccount | None:
        result = await db.execute(
            select(BroadcasterAccountModel)
            .where(func.lower(BroadcasterAccountModel.email) == email.strip().lower())
            .order_by(BroadcasterAccountModel.created_at)
            .limit(1)
        )
        model = result.scalar_one_or_none()
        return _model_to_account(model) if model else None

    async def get_by_external_account_id(
        self, db: AsyncSession, external_account_id: str
    ) -> PayoutAccount | None:
        result = await db.execute(
            select(BroadcasterAccountModel).where(
                BroadcasterAccountModel.external_account_id == external_account_id
            )
        )
        model = result.scalar_one_or_none()
        return _model_to_account(model) if model else None

    async def set_activated(self, db: AsyncSession, user_id: str) -> bool:
        """Returns True only for the call that flipped the flag."""
        result = await db.execute(_SET_ACTIVATED_SQL, {"user_id": user_id})
        return result.fetchone() is not None
