"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    PENDING_DJ_ACCOUNT = "pending_dj_account"
    TRANSFERRED = "transferred"
    REALLOCATED_TO_POOL = "reallocated_to_pool"
    FAILED = "failed"


class ReconciliationTrigger(str, Enum):
    """Who asked for a reconciliation attempt — logged and sent as transfer metadata."""
    PAYMENT_CONFIRMED = "payment_confirmed"
    ACCOUNT_ACTIVATED = "account_activated"
    PERIODIC_SWEEP = "periodic_sweep"
    MANUAL_RESYNC = "manual_resync"


class TransferOutcome(str, Enum):
    TRANSFERRED = "transferred"
    SKIPPED = "skipped"              # guard lost or tip no longer eligible
    RETRYABLE_FAILURE = "retryable_failure"
    PERMANENT_FAILURE = "permanent_failure"
