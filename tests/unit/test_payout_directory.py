"""Tests for PayoutAccountDirectory."""

import pytest

from src.tp_common.errors import (
    BroadcasterNotFoundError,
    MissingBroadcasterError,
    PayoutAccountMissingError,
)
from src.tp_payout.application.directory import PayoutAccountDirectory
from src.tp_payout.domain.models import PayoutAccount, ProcessorAccount
from src.tp_tips.domain.models import ResolvedBroadcaster, UnresolvedBroadcaster
from tests.unit.fakes import FakeAccountRepo, FakeGateway, make_db


def _account(activated: bool = False, external: str | None = "acct_1") -> PayoutAccount:
    return PayoutAccount(
        user_id="dj-1",
        email="dj@example.com",
        display_name="DJ One",
        external_account_id=external,
        activated=activated,
    )


class TestResolveBroadcaster:
    async def test_explicit_id_wins(self) -> None:
        directory = PayoutAccountDirectory(repo=FakeAccountRepo([_account()]))
        ref = await directory.resolve_broadcaster(make_db(), "dj-9", "DJ@Example.com ")
        assert ref == ResolvedBroadcaster(user_id="dj-9", email="dj@example.com")

    async def test_email_lookup_is_case_insensitive(self) -> None:
        directory = PayoutAccountDirectory(repo=FakeAccountRepo([_account()]))
        ref = await directory.resolve_broadcaster(make_db(), None, "DJ@EXAMPLE.COM")
        assert ref == ResolvedBroadcaster(user_id="dj-1", email="dj@example.com")

    async def test_unknown_email_stays_unresolved(self) -> None:
        directory = PayoutAccountDirectory(repo=FakeAccountRepo([]))
        ref = await directory.resolve_broadcaster(make_db(), None, "new@example.com")
        assert ref == UnresolvedBroadcaster(email="new@example.com")

    async def test_missing_both(self) -> None:
        directory = PayoutAccountDirectory(repo=FakeAccountRepo([]))
        with pytest.raises(MissingBroadcasterError):
            await directory.resolve_broadcaster(make_db(), None, "  ")


class TestActivation:
    async def test_mark_activated_flips_once(self) -> None:
        directory = PayoutAccountDirectory(repo=FakeAccountRepo([_account()]))
        db = make_db()
        assert await directory.mark_activated(db, "dj-1") is True
        assert await directory.mark_activated(db, "dj-1") is False

    async def test_refresh_activates_ready_account(self) -> None:
        gateway = FakeGateway()
        gateway.remote_accounts["acct_1"] = ProcessorAccount(
            id="acct_1", charges_enabled=True, payouts_enabled=True
        )
        repo = FakeAccountRepo([_account()])
        directory = PayoutAccountDirectory(repo=repo, gateway=gateway)

        status = await directory.refresh_activation(make_db(), "dj-1")

        assert status.activated is True
        assert status.newly_activated is True
        assert repo.accounts["dj-1"].activated is True

    async def test_refresh_requires_payouts_enabled(self) -> None:
        gateway = FakeGateway()
        gateway.remote_accounts["acct_1"] = ProcessorAccount(
            id="acct_1", charges_enabled=True, payouts_enabled=False
        )
        directory = PayoutAccountDirectory(repo=FakeAccountRepo([_account()]), gateway=gateway)

        status = await directory.refresh_activation(make_db(), "dj-1")

        assert status.activated is False
        assert status.newly_activated is False

    async def test_refresh_unknown_broadcaster(self) -> None:
        directory = PayoutAccountDirectory(repo=FakeAccountRepo([]), gateway=FakeGateway())
        with pytest.raises(BroadcasterNotFoundError):
            await directory.refresh_activation(make_db(), "nobody")

    async def test_refresh_without_connected_account(self) -> None:
        directory = PayoutAccountDirectory(
            repo=FakeAccountRepo([_account(external=None)]), gateway=FakeGateway()
        )
        with pytest.raises(PayoutAccountMissingError):
            await directory.refresh_activation(make_db(), "dj-1")

    def test_can_receive_requires_account_id(self) -> None:
        assert _account(activated=True).can_receive_transfers
        assert not _account(activated=True, external=None).can_receive_transfers
        assert not _account(activated=False).can_receive_transfers
