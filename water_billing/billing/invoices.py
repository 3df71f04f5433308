"""
Invoice Generation

Invoices are projections: they are recomputed from readings, payments
and settings every time they are viewed and never written back.

Invoice amounts are stated from the customer's side, as amounts owed:

    previous_balance = -(running balance before the period)
    amount_due       = total_amount + previous_balance

so a property carrying a 10.00 credit into a 35.00 month owes 25.00.
Both are rounded to cents; the tier charges are left unrounded.
"""

from datetime import date
from typing import Optional

from water_billing.billing.balance import (
    calculate_property_balance,
    get_usage_for_period,
    round_cents,
)
from water_billing.billing.calculator import calculate_bill
from water_billing.billing.periods import make_period
from water_billing.models.document import (
    AppData,
    BillingSettings,
    Invoice,
    MeterReading,
    Payment,
    Property,
)
from water_billing.models.views import MonthlyTotal


def invoice_id(property_id: str, billing_period: str) -> str:
    return f"inv-{property_id}-{billing_period}"


def balance_before_period(
    property: Property,
    billing_period: str,
    readings: list[MeterReading],
    payments: list[Payment],
    settings: BillingSettings,
) -> float:
    """
    Running balance carried into a billing period.

    Counts readings of strictly earlier periods and payments received
    strictly before the first day of the period. Dates compare against the
    period as strings, so '2025-01-31' < '2025-02' but '2025-02-01' is not.
    """
    return calculate_property_balance(
        property,
        [r for r in readings if r.billing_period < billing_period],
        [p for p in payments if p.received_date.isoformat() < billing_period],
        settings,
    )


def generate_invoice(
    property: Property,
    billing_period: str,
    readings: list[MeterReading],
    payments: list[Payment],
    settings: BillingSettings,
    today: Optional[date] = None,
) -> Invoice:
    """Compute the invoice of one property for one billing period."""
    usage = get_usage_for_period(property.id, billing_period, readings)
    bill = calculate_bill(max(0, usage), settings)

    carried = balance_before_period(property, billing_period, readings, payments, settings)
    previous_balance = round_cents(-carried)

    return Invoice(
        id=invoice_id(property.id, billing_period),
        property_id=property.id,
        billing_period=billing_period,
        generated_date=today or date.today(),
        total_gallons=usage,
        tier1_gallons=bill.tier1_gallons,
        tier2_gallons=bill.tier2_gallons,
        tier3_gallons=bill.tier3_gallons,
        tier1_charge=bill.tier1_charge,
        tier2_charge=bill.tier2_charge,
        tier3_charge=bill.tier3_charge,
        fixed_charge=bill.fixed_charge,
        total_amount=bill.total_amount,
        previous_balance=previous_balance,
        amount_due=round_cents(bill.total_amount + previous_balance),
    )


def invoices_for_period(
    data: AppData,
    billing_period: str,
    today: Optional[date] = None,
) -> list[Invoice]:
    """One invoice per property that used water in the period."""
    invoices = []
    for prop in data.properties:
        if get_usage_for_period(prop.id, billing_period, data.readings) <= 0:
            continue
        invoices.append(
            generate_invoice(
                prop,
                billing_period,
                data.readings,
                data.payments,
                data.settings,
                today=today,
            )
        )
    return invoices


def available_years(readings: list[MeterReading]) -> list[str]:
    """Years that have readings, newest first."""
    return sorted({r.billing_period.split("-")[0] for r in readings}, reverse=True)


def periods_with_data(readings: list[MeterReading], year: str) -> set[str]:
    return {r.billing_period for r in readings if r.billing_period.startswith(f"{year}-")}


def default_period_for_year(readings: list[MeterReading], year: str) -> str:
    """Latest period of the year with readings, or January."""
    periods = periods_with_data(readings, year)
    if periods:
        return max(periods)
    return f"{year}-01"


def monthly_totals(data: AppData, year: str, today: Optional[date] = None) -> list[MonthlyTotal]:
    """Invoice totals for each month of a year, for the year chart."""
    totals = []
    for index in range(12):
        period = make_period(int(year), index + 1)
        invoices = invoices_for_period(data, period, today=today)
        totals.append(
            MonthlyTotal(
                month=index,
                period=period,
                total_cost=sum(inv.total_amount for inv in invoices),
                total_gallons=sum(inv.total_gallons for inv in invoices),
                has_readings=any(r.billing_period == period for r in data.readings),
                has_invoices=bool(invoices),
            )
        )
    return totals
