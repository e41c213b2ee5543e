"""ReminderScheduler — nudges broadcasters with unclaimed tips to connect payouts.

Read-only with respect to tips: the only write is the reminder record, appended
after the notifier reports delivery.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tp_common.datetime_utils import utc_now, whole_days_between
from src.tp_payout.application.directory import PayoutAccountDirectory
from src.tp_sweeps.domain.notifier import NotificationSenderProtocol
from src.tp_sweeps.domain.reminder import build_reminder_email, select_marker
from src.tp_sweeps.infrastructure.notifier import ResendNotifier
from src.tp_tips.domain.models import ReminderRecord, Tip
from src.tp_tips.domain.repository import TipLedgerProtocol
from src.tp_tips.infrastructure.persistence import TipLedger

logger = logging.getLogger(__name__)

ONBOARDING_PATH = "/dj-profile?connect=stripe"


@dataclass
class ReminderResult:
    sent: int = 0
    skipped: int = 0
    failed: int = 0


class ReminderScheduler:
    def __init__(
        self,
        ledger: TipLedgerProtocol | None = None,
        directory: PayoutAccountDirectory | None = None,
        notifier: NotificationSenderProtocol | None = None,
        claim_window_days: int | None = None,
    ) -> None:
        self._ledger: TipLedgerProtocol = ledger or TipLedger()
        self._directory = directory or PayoutAccountDirectory()
        self._notifier: NotificationSenderProtocol = notifier or ResendNotifier()
        self._claim_window_days = claim_window_days or settings.CLAIM_WINDOW_DAYS

    async def run(self, db: AsyncSession, now: datetime | None = None) -> ReminderResult:
        now = now or utc_now()
        result = ReminderResult()

        by_broadcaster: dict[str, list[Tip]] = {}
        for tip in await self._ledger.list_unclaimed(db):
            if tip.broadcaster_user_id is None:
                continue
            by_broadcaster.setdefault(tip.broadcaster_user_id, []).append(tip)

        for user_id, tips in by_broadcaster.items():
            oldest = min(tip.created_at for tip in tips)
            marker = select_marker(whole_days_between(oldest, now))
            if marker is None:
                continue
            try:
                outcome = await self._remind(db, user_id, tips, marker, now)
            except Exception:
                logger.exception("Day-%d reminder for broadcaster %s failed", marker, user_id)
                outcome = "failed"
            setattr(result, outcome, getattr(result, outcome) + 1)

        logger.info(
            "Reminder run: sent=%d skipped=%d failed=%d",
            result.sent,
            result.skipped,
            result.failed,
        )
        return result

    async def _remind(
        self,
        db: AsyncSession,
        user_id: str,
        tips: list[Tip],
        marker: int,
        now: datetime,
    ) -> str:
        """Returns the ReminderResult counter to bump: sent, skipped or failed."""
        account = await self._directory.get_account(db, user_id)
        if account is not None and account.activated:
            return "skipped"
        if await self._ledger.reminder_sent(db, user_id, marker):
            return "skipped"

        email = (account.email if account else None) or next(
            (tip.broadcaster_email for tip in tips if tip.broadcaster_email), None
        )
        if not email:
            logger.warning("No email on file for broadcaster %s; reminder skipped", user_id)
            return "skipped"

        pending_cents = sum(tip.tip_amount_cents for tip in tips)
        template = build_reminder_email(
            broadcaster_name=account.display_name if account else tips[0].broadcaster_name,
            pending_cents=pending_cents,
            tip_count=len(tips),
            days_remaining=max(self._claim_window_days - marker, 1),
            onboarding_url=f"{settings.APP_BASE_URL.rstrip('/')}{ONBOARDING_PATH}",
        )
        if not await self._notifier.send(email, template):
            return "failed"

        try:
            await self._ledger.append_reminder(
                db,
                ReminderRecord(
                    broadcaster_user_id=user_id,
                    day_marker=marker,
                    pending_amount_cents=pending_cents,
                    sent_at=now,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Sent day-%d reminder to broadcaster %s (%d cents pending)",
            marker,
            user_id,
            pending_cents,
        )
        return "sent"
