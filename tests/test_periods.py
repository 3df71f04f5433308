"""Tests for billing period and formatting helpers."""

from datetime import date

import pytest

from water_billing.billing import (
    current_billing_period,
    format_billing_period,
    format_currency,
    format_gallons,
    format_short_period,
    is_billing_reminder_day,
    make_period,
    today_string,
)


class TestBillingPeriods:

    @pytest.mark.parametrize("today, expected", [
        (date(2025, 3, 4), "2025-02"),
        (date(2025, 1, 1), "2024-12"),
        (date(2025, 1, 31), "2024-12"),
        (date(2025, 12, 15), "2025-11"),
        (date(2024, 3, 1), "2024-02"),
    ])
    def test_current_period_is_previous_month(self, today, expected):
        assert current_billing_period(today) == expected

    def test_make_period_pads(self):
        assert make_period(2025, 3) == "2025-03"

    def test_format_billing_period(self):
        assert format_billing_period("2025-01") == "January 2025"
        assert format_billing_period("2024-12") == "December 2024"

    @pytest.mark.parametrize("period", ["2025", "2025-13", "garbage", "2025-xx"])
    def test_malformed_period_unchanged(self, period):
        assert format_billing_period(period) == period

    def test_short_period(self):
        assert format_short_period("2025-01") == "Jan"
        assert format_short_period("2025-09") == "Sep"

    def test_today_string(self):
        assert today_string(date(2025, 2, 3)) == "2025-02-03"


class TestReminder:

    @pytest.mark.parametrize("day, expected", [(1, True), (5, True), (6, False), (28, False)])
    def test_reminder_first_days(self, day, expected):
        assert is_billing_reminder_day(date(2025, 4, day)) is expected

    def test_reminder_custom_last_day(self):
        assert is_billing_reminder_day(date(2025, 4, 10), last_day=10)


class TestFormatting:

    @pytest.mark.parametrize("amount, expected", [
        (12.5, "$12.50"),
        (-12.5, "-$12.50"),
        (0, "$0.00"),
        (-0.0, "$0.00"),
        (1234.567, "$1234.57"),
    ])
    def test_format_currency(self, amount, expected):
        assert format_currency(amount) == expected

    def test_format_gallons(self):
        assert format_gallons(12345) == "12,345"
        assert format_gallons(0) == "0"
