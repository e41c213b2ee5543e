"""Platform fee calculation: 15% of the tip, 50 cents minimum.

fee   = max(round_half_up(tip * 15 / 100), 50)
total = tip + fee
"""

from dataclasses import dataclass

from src.tp_common.cents import round_half_up
from src.tp_common.errors import InvalidTipAmountError

PLATFORM_FEE_PERCENT = 15
MINIMUM_FEE_CENTS = 50


@dataclass(frozen=True)
class FeeBreakdown:
    tip_amount_cents: int       # what the broadcaster receives
    platform_fee_cents: int
    total_cents: int            # what the tipper pays


def calculate_platform_fee(tip_amount_cents: int) -> int:
    percentage_fee = round_half_up(tip_amount_cents * PLATFORM_FEE_PERCENT, 100)
    return max(percentage_fee, MINIMUM_FEE_CENTS)


def calculate_total_charge(tip_amount_cents: int) -> FeeBreakdown:
    """Split a requested tip into (tip, fee, total). Rejects non-positive amounts."""
    if isinstance(tip_amount_cents, bool) or not isinstance(tip_amount_cents, int):
        raise InvalidTipAmountError("amount must be an integer number of cents")
    if tip_amount_cents <= 0:
        raise InvalidTipAmountError("amount must be positive")
    fee = calculate_platform_fee(tip_amount_cents)
    return FeeBreakdown(
        tip_amount_cents=tip_amount_cents,
        platform_fee_cents=fee,
        total_cents=tip_amount_cents + fee,
    )
