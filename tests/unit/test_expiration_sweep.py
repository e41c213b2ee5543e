"""Tests for ExpirationSweep: unclaimed tips past 60 days go to the support pool."""

from datetime import timedelta

from src.tp_common.datetime_utils import utc_now
from src.tp_common.enums import PaymentStatus, PayoutStatus, TransferOutcome
from src.tp_payout.application.directory import PayoutAccountDirectory
from src.tp_payout.application.transfer import TransferExecutor
from src.tp_reconciliation.application.engine import ReconciliationEngine
from src.tp_sweeps.application.expiration import ExpirationSweep
from src.tp_tips.domain.models import UnresolvedBroadcaster
from tests.unit.fakes import (
    FakeAccountRepo,
    FakeGateway,
    FakeLedger,
    activated_account,
    make_db,
    make_tip,
)


class TestExpirationSweep:
    async def test_reallocates_tip_older_than_window(self) -> None:
        now = utc_now()
        tip = make_tip("tip-old", created_at=now - timedelta(days=61))
        ledger = FakeLedger([tip])

        result = await ExpirationSweep(ledger=ledger, claim_window_days=60).run(make_db(), now)

        assert result.reallocated == 1
        assert result.total_reallocated_cents == 1000
        stored = ledger.tips["tip-old"]
        assert stored.payout_status == PayoutStatus.REALLOCATED_TO_POOL
        assert stored.reallocated_at == now
        record = ledger.reallocations["tip-old"]
        assert record.amount_cents == 1000
        assert record.original_tip_date == tip.created_at
        assert record.broadcaster_user_id == "dj-1"

    async def test_reallocates_pending_dj_account(self) -> None:
        now = utc_now()
        tip = make_tip(
            "tip-unclaimed",
            broadcaster=UnresolvedBroadcaster(email="ghost@example.com"),
            payout_status=PayoutStatus.PENDING_DJ_ACCOUNT,
            created_at=now - timedelta(days=75),
        )
        ledger = FakeLedger([tip])

        await ExpirationSweep(ledger=ledger, claim_window_days=60).run(make_db(), now)

        record = ledger.reallocations["tip-unclaimed"]
        assert record.broadcaster_user_id is None
        assert record.broadcaster_email == "ghost@example.com"

    async def test_leaves_recent_and_terminal_tips(self) -> None:
        now = utc_now()
        ledger = FakeLedger(
            [
                make_tip("tip-recent", created_at=now - timedelta(days=59)),
                make_tip(
                    "tip-paid-out",
                    payout_status=PayoutStatus.TRANSFERRED,
                    created_at=now - timedelta(days=90),
                ),
                make_tip(
                    "tip-failed",
                    payout_status=PayoutStatus.FAILED,
                    created_at=now - timedelta(days=90),
                ),
                make_tip(
                    "tip-unpaid",
                    payment_status=PaymentStatus.PENDING,
                    created_at=now - timedelta(days=90),
                ),
            ]
        )

        result = await ExpirationSweep(ledger=ledger, claim_window_days=60).run(make_db(), now)

        assert result.reallocated == 0
        assert ledger.reallocations == {}
        assert ledger.tips["tip-recent"].payout_status == PayoutStatus.PENDING
        assert ledger.tips["tip-paid-out"].payout_status == PayoutStatus.TRANSFERRED

    async def test_rerun_writes_one_record(self) -> None:
        now = utc_now()
        ledger = FakeLedger([make_tip("tip-old", created_at=now - timedelta(days=61))])
        sweep = ExpirationSweep(ledger=ledger, claim_window_days=60)

        first = await sweep.run(make_db(), now)
        second = await sweep.run(make_db(), now + timedelta(hours=1))

        assert first.reallocated == 1
        assert second.reallocated == 0
        assert len(ledger.reallocations) == 1

    async def test_reallocated_tip_is_never_transferred(self) -> None:
        now = utc_now()
        ledger = FakeLedger([make_tip("tip-old", created_at=now - timedelta(days=61))])
        await ExpirationSweep(ledger=ledger, claim_window_days=60).run(make_db(), now)

        gateway = FakeGateway()
        engine = ReconciliationEngine(
            ledger=ledger,
            directory=PayoutAccountDirectory(repo=FakeAccountRepo([activated_account()])),
            executor=TransferExecutor(ledger=ledger, gateway=gateway, currency="usd"),
            claim_window_days=60,
        )

        outcome = await engine.on_payment_confirmed(make_db(), "tip-old")
        await engine.resync(make_db(), "dj-1")

        assert outcome == TransferOutcome.SKIPPED
        assert gateway.transfer_calls == []
        assert ledger.tips["tip-old"].payout_status == PayoutStatus.REALLOCATED_TO_POOL
