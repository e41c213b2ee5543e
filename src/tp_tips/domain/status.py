"""Payout and payment status lattices.

Payout:
    pending             -> transferred | pending_dj_account | reallocated_to_pool | failed
    pending_dj_account  -> pending | reallocated_to_pool | failed
    failed              -> pending
    transferred, reallocated_to_pool: terminal

Payment:
    pending -> succeeded | failed   (set once)
"""

from src.tp_common.enums import PaymentStatus, PayoutStatus
from src.tp_common.errors import InvalidPaymentTransitionError, InvalidPayoutTransitionError

_P = PayoutStatus

VALID_PAYOUT_TRANSITIONS: dict[PayoutStatus, frozenset[PayoutStatus]] = {
    _P.PENDING: frozenset(
        {_P.TRANSFERRED, _P.PENDING_DJ_ACCOUNT, _P.REALLOCATED_TO_POOL, _P.FAILED}
    ),
    _P.PENDING_DJ_ACCOUNT: frozenset({_P.PENDING, _P.REALLOCATED_TO_POOL, _P.FAILED}),
    _P.FAILED: frozenset({_P.PENDING}),
    _P.TRANSFERRED: frozenset(),
    _P.REALLOCATED_TO_POOL: frozenset(),
}

VALID_PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.SUCCEEDED, PaymentStatus.FAILED}),
    PaymentStatus.SUCCEEDED: frozenset(),
    PaymentStatus.FAILED: frozenset(),
}

# Extra columns each payout transition may write alongside the status.
TRANSITION_FIELDS: dict[PayoutStatus, frozenset[str]] = {
    _P.TRANSFERRED: frozenset({"stripe_transfer_id", "transferred_at"}),
    _P.REALLOCATED_TO_POOL: frozenset({"reallocated_at"}),
    _P.FAILED: frozenset({"last_payout_error"}),
    _P.PENDING: frozenset(),
    _P.PENDING_DJ_ACCOUNT: frozenset(),
}

REQUIRED_TRANSITION_FIELDS: dict[PayoutStatus, frozenset[str]] = {
    _P.TRANSFERRED: frozenset({"stripe_transfer_id", "transferred_at"}),
    _P.REALLOCATED_TO_POOL: frozenset({"reallocated_at"}),
}


def is_valid_payout_transition(current: PayoutStatus, target: PayoutStatus) -> bool:
    return target in VALID_PAYOUT_TRANSITIONS[PayoutStatus(current)]


def validate_payout_transition(
    current: PayoutStatus, target: PayoutStatus, extra: dict[str, object]
) -> None:
    """Raise InvalidPayoutTransitionError unless current -> target is a lattice edge
    and `extra` carries exactly the columns that edge is allowed to write."""
    if not is_valid_payout_transition(current, target):
        raise InvalidPayoutTransitionError(str(current.value), str(target.value))
    allowed = TRANSITION_FIELDS[target]
    unexpected = set(extra) - allowed
    if unexpected:
        raise InvalidPayoutTransitionError(
            current.value, f"{target.value} (unexpected fields {sorted(unexpected)})"
        )
    missing = REQUIRED_TRANSITION_FIELDS.get(target, frozenset()) - set(extra)
    if missing:
        raise InvalidPayoutTransitionError(
            current.value, f"{target.value} (missing fields {sorted(missing)})"
        )


def validate_payment_transition(current: PaymentStatus, target: PaymentStatus) -> None:
    if target not in VALID_PAYMENT_TRANSITIONS[PaymentStatus(current)]:
        raise InvalidPaymentTransitionError(current.value, target.value)
