"""Tests for tp_common.cents and tp_common.datetime_utils."""

from datetime import UTC, datetime, timedelta

from src.tp_common.cents import cents_to_display, round_half_up
from src.tp_common.datetime_utils import days_ago, whole_days_between


class TestCents:
    def test_display(self) -> None:
        assert cents_to_display(6500) == "$65.00"
        assert cents_to_display(5) == "$0.05"
        assert cents_to_display(123456) == "$1,234.56"
        assert cents_to_display(-1200) == "-$12.00"

    def test_round_half_up(self) -> None:
        assert round_half_up(1515, 10) == 152
        assert round_half_up(1514, 10) == 151
        assert round_half_up(0, 100) == 0


class TestDates:
    def test_whole_days_floors(self) -> None:
        start = datetime(2026, 1, 1, tzinfo=UTC)
        assert whole_days_between(start, start + timedelta(days=7, hours=23)) == 7

    def test_negative_span_clamps(self) -> None:
        start = datetime(2026, 1, 2, tzinfo=UTC)
        assert whole_days_between(start, start - timedelta(days=1)) == 0

    def test_days_ago(self) -> None:
        now = datetime(2026, 3, 2, tzinfo=UTC)
        assert days_ago(60, now) == datetime(2026, 1, 1, tzinfo=UTC)
