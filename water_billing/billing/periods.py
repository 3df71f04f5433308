"""
Billing period and display formatting helpers.

Billing periods are "YYYY-MM" strings and dates are "YYYY-MM-DD";
both compare correctly as strings because they are fixed-width.
"""

import calendar
from datetime import date
from typing import Optional


def _split_period(period: str) -> Optional[tuple[str, int]]:
    parts = period.split("-")
    if len(parts) != 2:
        return None
    year, month = parts
    try:
        month_number = int(month)
    except ValueError:
        return None
    if not 1 <= month_number <= 12:
        return None
    return year, month_number


def format_billing_period(period: str) -> str:
    """'2025-01' -> 'January 2025'. Malformed periods are returned unchanged."""
    parsed = _split_period(period)
    if parsed is None:
        return period
    year, month = parsed
    return f"{calendar.month_name[month]} {year}"


def format_short_period(period: str) -> str:
    """'2025-01' -> 'Jan'."""
    parsed = _split_period(period)
    if parsed is None:
        return period
    return calendar.month_abbr[parsed[1]]


def format_currency(amount: float) -> str:
    """Dollar amount with two decimals; negatives as '-$12.50'."""
    if amount < 0:
        return f"-${abs(amount):.2f}"
    return f"${abs(amount):.2f}"


def format_gallons(gallons: float) -> str:
    return f"{gallons:,.0f}"


def make_period(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def current_billing_period(today: Optional[date] = None) -> str:
    """
    Billing period new readings default to.

    Readings are taken at the start of a month and bill the month
    before, so this is the previous calendar month.
    """
    today = today or date.today()
    if today.month == 1:
        return make_period(today.year - 1, 12)
    return make_period(today.year, today.month - 1)


def today_string(today: Optional[date] = None) -> str:
    return (today or date.today()).isoformat()


def is_billing_reminder_day(today: Optional[date] = None, last_day: int = 5) -> bool:
    """True during the first days of the month, when readings are due."""
    today = today or date.today()
    return 1 <= today.day <= last_day
