"""
CSV exports for download.

Every cell is written as a pre-formatted string and quoted, so the
files look the same whatever spreadsheet opens them.
"""

import csv
import io

import pandas as pd

from water_billing.billing.balance import balance_status, calculate_property_balance
from water_billing.billing.periods import format_billing_period
from water_billing.ledger import build_activity
from water_billing.models.document import AppData, Invoice
from water_billing.models.views import ActivityItem, ActivityType


ACTIVITY_COLUMNS = ["Date", "Type", "Property", "Description", "Usage (gallons)", "Amount"]
BALANCE_SECTION_TITLE = "Final Customer Balances"
BALANCE_COLUMNS = ["Property", "Balance", "Status"]
INVOICE_COLUMNS = [
    "Property",
    "Billing Period",
    "Total Gallons",
    "Fixed Fee",
    "Tier 1",
    "Tier 2",
    "Tier 3",
    "Total Amount",
    "Previous Balance",
    "Amount Due",
]


def _to_csv(df: pd.DataFrame) -> str:
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def _activity_order(item: ActivityItem) -> tuple:
    # Payments before readings on the same day
    return (item.date, 0 if item.type == ActivityType.PAYMENT else 1, item.original_id)


def _activity_row(item: ActivityItem) -> list[str]:
    if item.type == ActivityType.PAYMENT:
        usage, amount = "", f"{item.amount:.2f}"
    else:
        usage, amount = f"{item.usage:.0f}", ""
    return [
        item.date.isoformat(),
        "Payment" if item.type == ActivityType.PAYMENT else "Reading",
        item.property_name,
        item.description,
        usage,
        amount,
    ]


def generate_activity_csv(data: AppData) -> str:
    """
    All payments and readings oldest first, followed by each property's
    final balance.
    """
    items = sorted(build_activity(data), key=_activity_order)
    activity_df = pd.DataFrame(
        [_activity_row(item) for item in items],
        columns=ACTIVITY_COLUMNS,
        dtype=str,
    )

    balance_rows = []
    for prop in data.properties:
        balance = calculate_property_balance(prop, data.readings, data.payments, data.settings)
        balance_rows.append([prop.name, f"{balance:.2f}", balance_status(balance).value])
    balances_df = pd.DataFrame(balance_rows, columns=BALANCE_COLUMNS, dtype=str)

    output = io.StringIO()
    output.write(_to_csv(activity_df))
    output.write("\n")
    output.write(f'"{BALANCE_SECTION_TITLE}"\n')
    output.write(_to_csv(balances_df))
    return output.getvalue()


def generate_invoice_csv(data: AppData, invoices: list[Invoice]) -> str:
    """One row per invoice with the charge breakdown."""
    rows = [
        [
            data.property_name(inv.property_id),
            format_billing_period(inv.billing_period),
            str(inv.total_gallons),
            f"{inv.fixed_charge:.2f}",
            f"{inv.tier1_charge:.2f}",
            f"{inv.tier2_charge:.2f}",
            f"{inv.tier3_charge:.2f}",
            f"{inv.total_amount:.2f}",
            f"{inv.previous_balance:.2f}",
            f"{inv.amount_due:.2f}",
        ]
        for inv in invoices
    ]
    return _to_csv(pd.DataFrame(rows, columns=INVOICE_COLUMNS, dtype=str))
