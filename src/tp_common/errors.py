"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Tip validation
  3xxx: Ledger
  4xxx: Payout / processor
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidOperatorTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Operator token is invalid or expired", 401)


class OperatorRoleRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Operator role required", 403)


class InvalidCronSecretError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Unauthorized", 401)


class InvalidWebhookSignatureError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Invalid webhook signature", 400)


# --- 2xxx: Tip validation ---

class InvalidTipAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2001, f"Invalid tip amount: {detail}", 400)


class TipLimitExceededError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2002, detail, 400)


class MissingBroadcasterError(AppError):
    def __init__(self) -> None:
        super().__init__(2003, "Broadcaster information required", 400)


class MissingShowContextError(AppError):
    def __init__(self) -> None:
        super().__init__(2004, "Show information required", 400)


class MissingTipperError(AppError):
    def __init__(self) -> None:
        super().__init__(2005, "Tipper information required", 400)


# --- 3xxx: Ledger ---

class TipNotFoundError(AppError):
    def __init__(self, tip_id: str) -> None:
        super().__init__(3001, f"Tip not found: {tip_id}", 404)


class InvalidPayoutTransitionError(AppError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            3002, f"Invalid payout transition: {current} -> {target}", 500
        )


class InvalidPaymentTransitionError(AppError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            3003, f"Invalid payment transition: {current} -> {target}", 500
        )


# --- 4xxx: Payout / processor ---

class BroadcasterNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(4001, f"Broadcaster not found: {user_id}", 404)


class PayoutAccountMissingError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(4002, f"No payout account connected for {user_id}", 422)


class ProcessorError(AppError):
    """Base for payment processor failures."""

    def __init__(self, code: int, message: str, http_status: int = 502) -> None:
        super().__init__(code, message, http_status)


class TransientProcessorError(ProcessorError):
    """Network / 5xx / rate limit / timeout — safe to retry later."""

    def __init__(self, detail: str) -> None:
        super().__init__(4003, f"Payment processor unavailable: {detail}", 503)


class PermanentProcessorError(ProcessorError):
    """Rejected by the processor — retrying without a fix will not help."""

    def __init__(self, detail: str) -> None:
        super().__init__(4004, f"Payment processor rejected request: {detail}", 502)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
