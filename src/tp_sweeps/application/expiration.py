"""ExpirationSweep — moves unclaimed tips past the claim window to the support pool.

Per tip, in one transaction: CAS {pending | pending_dj_account} -> reallocated_to_pool,
then append the reallocation record. A lost guard means another trigger got
there first (usually a transfer) and the tip is skipped.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tp_common.datetime_utils import days_ago, utc_now
from src.tp_common.enums import PayoutStatus
from src.tp_tips.domain.models import ReallocationRecord, Tip, TipFilter
from src.tp_tips.domain.repository import TipLedgerProtocol
from src.tp_tips.infrastructure.persistence import TipLedger

logger = logging.getLogger(__name__)

_EXPIRABLE_STATUSES = (PayoutStatus.PENDING, PayoutStatus.PENDING_DJ_ACCOUNT)


@dataclass
class ExpirationResult:
    reallocated: int = 0
    total_reallocated_cents: int = 0
    skipped: int = 0
    errors: int = 0


class ExpirationSweep:
    def __init__(
        self,
        ledger: TipLedgerProtocol | None = None,
        claim_window_days: int | None = None,
    ) -> None:
        self._ledger: TipLedgerProtocol = ledger or TipLedger()
        self._claim_window_days = claim_window_days or settings.CLAIM_WINDOW_DAYS

    async def run(self, db: AsyncSession, now: datetime | None = None) -> ExpirationResult:
        now = now or utc_now()
        cutoff = days_ago(self._claim_window_days, now)
        result = ExpirationResult()

        expired: list[Tip] = []
        for status in _EXPIRABLE_STATUSES:
            expired.extend(
                await self._ledger.find_by_payout_status(
                    db, status, TipFilter(created_before=cutoff)
                )
            )

        for tip in expired:
            try:
                if await self._reallocate(db, tip, now):
                    result.reallocated += 1
                    result.total_reallocated_cents += tip.tip_amount_cents
                else:
                    result.skipped += 1
                await db.commit()
            except Exception:
                await db.rollback()
                logger.exception("Reallocation of tip %s failed", tip.id)
                result.errors += 1

        logger.info(
            "Expiration sweep: reallocated=%d total_cents=%d skipped=%d errors=%d",
            result.reallocated,
            result.total_reallocated_cents,
            result.skipped,
            result.errors,
        )
        return result

    async def _reallocate(self, db: AsyncSession, tip: Tip, now: datetime) -> bool:
        won = await self._ledger.compare_and_set_payout_status(
            db,
            tip.id,
            tip.payout_status,
            PayoutStatus.REALLOCATED_TO_POOL,
            {"reallocated_at": now},
        )
        if not won:
            return False
        await self._ledger.append_reallocation(
            db,
            ReallocationRecord(
                tip_id=tip.id,
                broadcaster_user_id=tip.broadcaster_user_id,
                broadcaster_email=tip.broadcaster_email,
                broadcaster_name=tip.broadcaster_name,
                amount_cents=tip.tip_amount_cents,
                original_tip_date=tip.created_at,
                reallocated_at=now,
            ),
        )
        logger.info(
            "Tip %s (%d cents) reallocated to the support pool", tip.id, tip.tip_amount_cents
        )
        return True
