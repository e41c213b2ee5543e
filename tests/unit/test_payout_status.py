"""Tests for the payout / payment status lattices."""

import pytest

from src.tp_common.enums import PaymentStatus, PayoutStatus
from src.tp_common.errors import InvalidPaymentTransitionError, InvalidPayoutTransitionError
from src.tp_tips.domain.status import (
    VALID_PAYOUT_TRANSITIONS,
    is_valid_payout_transition,
    validate_payment_transition,
    validate_payout_transition,
)

P = PayoutStatus


class TestPayoutLattice:
    @pytest.mark.parametrize(
        "current,target",
        [
            (P.PENDING, P.TRANSFERRED),
            (P.PENDING, P.PENDING_DJ_ACCOUNT),
            (P.PENDING, P.REALLOCATED_TO_POOL),
            (P.PENDING, P.FAILED),
            (P.PENDING_DJ_ACCOUNT, P.PENDING),
            (P.PENDING_DJ_ACCOUNT, P.REALLOCATED_TO_POOL),
            (P.PENDING_DJ_ACCOUNT, P.FAILED),
            (P.FAILED, P.PENDING),
        ],
    )
    def test_valid_edges(self, current: PayoutStatus, target: PayoutStatus) -> None:
        assert is_valid_payout_transition(current, target)

    @pytest.mark.parametrize("terminal", [P.TRANSFERRED, P.REALLOCATED_TO_POOL])
    def test_terminal_states_have_no_exits(self, terminal: PayoutStatus) -> None:
        assert VALID_PAYOUT_TRANSITIONS[terminal] == frozenset()
        for target in PayoutStatus:
            assert not is_valid_payout_transition(terminal, target)

    def test_pending_dj_account_cannot_transfer_directly(self) -> None:
        assert not is_valid_payout_transition(P.PENDING_DJ_ACCOUNT, P.TRANSFERRED)

    def test_failed_cannot_be_reallocated(self) -> None:
        assert not is_valid_payout_transition(P.FAILED, P.REALLOCATED_TO_POOL)


class TestValidatePayoutTransition:
    def test_transferred_requires_linkage(self) -> None:
        with pytest.raises(InvalidPayoutTransitionError):
            validate_payout_transition(P.PENDING, P.TRANSFERRED, {})

    def test_transferred_with_linkage_ok(self) -> None:
        validate_payout_transition(
            P.PENDING,
            P.TRANSFERRED,
            {"stripe_transfer_id": "tr_1", "transferred_at": "now"},
        )

    def test_rejects_fields_of_other_transitions(self) -> None:
        with pytest.raises(InvalidPayoutTransitionError) as exc_info:
            validate_payout_transition(
                P.PENDING, P.REALLOCATED_TO_POOL,
                {"reallocated_at": "now", "stripe_transfer_id": "tr_1"},
            )
        assert "stripe_transfer_id" in exc_info.value.message

    def test_rejects_edge_out_of_terminal(self) -> None:
        with pytest.raises(InvalidPayoutTransitionError) as exc_info:
            validate_payout_transition(P.TRANSFERRED, P.PENDING, {})
        assert exc_info.value.code == 3002


class TestPaymentLattice:
    def test_pending_to_succeeded(self) -> None:
        validate_payment_transition(PaymentStatus.PENDING, PaymentStatus.SUCCEEDED)

    def test_pending_to_failed(self) -> None:
        validate_payment_transition(PaymentStatus.PENDING, PaymentStatus.FAILED)

    def test_set_once(self) -> None:
        with pytest.raises(InvalidPaymentTransitionError):
            validate_payment_transition(PaymentStatus.SUCCEEDED, PaymentStatus.FAILED)
