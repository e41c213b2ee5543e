"""Tests for tp_tips.domain.fee."""

import pytest

from src.tp_common.errors import InvalidTipAmountError
from src.tp_tips.domain.fee import (
    MINIMUM_FEE_CENTS,
    calculate_platform_fee,
    calculate_total_charge,
)


class TestPlatformFee:
    def test_minimum_fee_applies_to_small_tips(self) -> None:
        assert calculate_platform_fee(100) == MINIMUM_FEE_CENTS

    def test_fifteen_percent_above_minimum(self) -> None:
        assert calculate_platform_fee(1000) == 150

    def test_rounds_half_up(self) -> None:
        # 1010 * 0.15 = 151.5
        assert calculate_platform_fee(1010) == 152

    def test_rounds_down_below_half(self) -> None:
        # 1003 * 0.15 = 150.45
        assert calculate_platform_fee(1003) == 150

    def test_crossover_point(self) -> None:
        # 337 * 0.15 = 50.55 -> 51, first amount where the percentage wins
        assert calculate_platform_fee(333) == 50
        assert calculate_platform_fee(337) == 51


class TestTotalCharge:
    def test_one_dollar_tip(self) -> None:
        fees = calculate_total_charge(100)
        assert fees.tip_amount_cents == 100
        assert fees.platform_fee_cents == 50
        assert fees.total_cents == 150

    def test_ten_dollar_tip(self) -> None:
        fees = calculate_total_charge(1000)
        assert fees.platform_fee_cents == 150
        assert fees.total_cents == 1150

    @pytest.mark.parametrize("amount", [100, 101, 999, 1010, 2000, 20000])
    def test_total_is_tip_plus_fee(self, amount: int) -> None:
        fees = calculate_total_charge(amount)
        assert fees.total_cents == fees.tip_amount_cents + fees.platform_fee_cents
        assert fees.platform_fee_cents >= MINIMUM_FEE_CENTS

    @pytest.mark.parametrize("amount", [0, -100])
    def test_rejects_non_positive(self, amount: int) -> None:
        with pytest.raises(InvalidTipAmountError):
            calculate_total_charge(amount)

    def test_rejects_bool(self) -> None:
        with pytest.raises(InvalidTipAmountError):
            calculate_total_charge(True)

    def test_rejects_float(self) -> None:
        with pytest.raises(InvalidTipAmountError):
            calculate_total_charge(10.5)  # type: ignore[arg-type]
