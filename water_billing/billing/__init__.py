"""Billing calculations: tiered bills, running balances and invoices."""

from water_billing.billing.balance import (
    balance_status,
    calculate_property_balance,
    get_last_six_months_usage,
    get_usage_for_period,
    round_cents,
    usage_by_period,
)
from water_billing.billing.calculator import calculate_bill
from water_billing.billing.invoices import (
    available_years,
    balance_before_period,
    default_period_for_year,
    generate_invoice,
    invoices_for_period,
    monthly_totals,
    periods_with_data,
)
from water_billing.billing.periods import (
    current_billing_period,
    format_billing_period,
    format_currency,
    format_gallons,
    format_short_period,
    is_billing_reminder_day,
    make_period,
    today_string,
)

__all__ = [
    "available_years",
    "balance_before_period",
    "balance_status",
    "calculate_bill",
    "calculate_property_balance",
    "current_billing_period",
    "default_period_for_year",
    "format_billing_period",
    "format_currency",
    "format_gallons",
    "format_short_period",
    "generate_invoice",
    "get_last_six_months_usage",
    "get_usage_for_period",
    "invoices_for_period",
    "is_billing_reminder_day",
    "make_period",
    "monthly_totals",
    "periods_with_data",
    "round_cents",
    "today_string",
    "usage_by_period",
]
