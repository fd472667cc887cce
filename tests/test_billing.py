"""Billing arithmetic for open and fixed sessions."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from cue_pos.services.billing import (
    billable_quarters,
    calculate_amount,
    elapsed_ms,
    estimate_amount,
    format_duration,
    format_span,
    is_overtime,
)
from cue_pos.services.models import TableSession

MIN = 60_000


class TestQuarterHours:
    @pytest.mark.parametrize(
        "elapsed, quarters",
        [(0, 0), (1, 1), (15 * MIN, 1), (15 * MIN + 1, 2), (46 * MIN, 4), (60 * MIN, 4)],
    )
    def test_started_quarters_are_rounded_up(self, elapsed, quarters):
        assert billable_quarters(elapsed) == quarters

    def test_negative_elapsed_counts_as_zero(self):
        assert billable_quarters(-5000) == 0


class TestCalculateAmount:
    def test_open_session_rounds_up_to_quarter_hour(self):
        # 46 minutes -> 1.00 h at 15/h
        assert calculate_amount(46 * MIN, "open", None, 15) == Decimal("15.00")

    def test_open_session_partial_hour(self):
        # 61 minutes -> 1.25 h
        assert calculate_amount(61 * MIN, "open", None, Decimal("25")) == Decimal("31.25")

    def test_zero_elapsed_costs_nothing(self):
        assert calculate_amount(0, "open", None, 50) == Decimal("0.00")

    def test_fixed_session_bills_declared_hours(self):
        # stopping early still pays for the booked time
        assert calculate_amount(10 * MIN, "fixed", 2, 25) == Decimal("50.00")

    def test_fixed_session_ignores_overtime(self):
        assert calculate_amount(200 * MIN, "fixed", Decimal("1.5"), 20) == Decimal("30.00")

    def test_fixed_without_duration_falls_back_to_open_billing(self):
        assert calculate_amount(20 * MIN, "fixed", None, 20) == Decimal("10.00")

    def test_result_has_two_decimal_places(self):
        amount = calculate_amount(15 * MIN, "open", None, Decimal("13.33"))
        assert amount == Decimal("3.33")
        assert amount.as_tuple().exponent == -2


class TestDisplayHelpers:
    def test_elapsed_never_negative(self):
        start = datetime(2024, 1, 1, 12, 0)
        assert elapsed_ms(start, start - timedelta(seconds=5)) == 0
        assert elapsed_ms(start, start + timedelta(minutes=2)) == 2 * MIN

    def test_estimate_is_linear(self):
        assert estimate_amount(30 * MIN, 20) == Decimal("10.00")

    def test_format_duration(self):
        assert format_duration(0) == "00:00:00"
        assert format_duration(3_723_000) == "01:02:03"

    def test_format_span(self):
        start = datetime(2024, 1, 1, 12, 0)
        assert format_span(start, start + timedelta(hours=1, minutes=5)) == "1h 5m"
        assert format_span(start, None) == "-"

    def test_overtime_only_for_fixed_sessions(self):
        fixed = TableSession("s1", "t1", "Table 1", datetime(2024, 1, 1), "fixed", Decimal("15"), Decimal("1"))
        open_ = TableSession("s2", "t1", "Table 1", datetime(2024, 1, 1), "open", Decimal("15"))
        assert not is_overtime(fixed, 59 * MIN)
        assert is_overtime(fixed, 60 * MIN)
        assert not is_overtime(open_, 500 * MIN)
