"""
Running Balance Aggregation

A property's balance is a pure fold over the whole history:

    balance_adjustment - sum(monthly bill totals) + sum(payments)

Monthly bills are computed per distinct billing period from the summed
usage of all readings (all meters) of that period. Nothing here depends
on input order, so recomputing from scratch is always correct.

Sign convention: a positive balance is a credit, a negative balance is
the amount the property owes. See BalanceStatus.
"""

import math
from collections.abc import Iterable

from water_billing.billing.calculator import calculate_bill
from water_billing.models.document import BillingSettings, MeterReading, Payment, Property
from water_billing.models.views import BalanceStatus, UsagePoint


USAGE_HISTORY_LENGTH = 6


def round_cents(amount: float) -> float:
    """Round to whole cents, normalising -0.0 to 0.0."""
    rounded = round(amount, 2)
    return rounded if rounded else 0.0


def usage_by_period(property_id: str, readings: Iterable[MeterReading]) -> dict[str, float]:
    """Sum usage per billing period for one property."""
    totals: dict[str, float] = {}
    for reading in readings:
        if reading.property_id != property_id:
            continue
        totals[reading.billing_period] = totals.get(reading.billing_period, 0) + reading.usage
    return totals


def get_usage_for_period(
    property_id: str,
    billing_period: str,
    readings: Iterable[MeterReading],
) -> float:
    """Total usage of a property in one billing period (unclamped)."""
    return sum(
        r.usage
        for r in readings
        if r.property_id == property_id and r.billing_period == billing_period
    )


def calculate_property_balance(
    property: Property,
    readings: Iterable[MeterReading],
    payments: Iterable[Payment],
    settings: BillingSettings,
) -> float:
    """
    Fold a property's readings and payments into its running balance.

    Readings and payments of other properties are ignored, so callers may
    pass the full collections. The terms are summed with math.fsum and
    rounded to cents, so the result does not depend on their order and a
    settled account is exactly 0.0.
    """
    terms = [property.balance_adjustment]

    for usage in usage_by_period(property.id, readings).values():
        terms.append(-calculate_bill(max(0, usage), settings).total_amount)

    for payment in payments:
        if payment.property_id == property.id:
            terms.append(payment.amount)

    return round_cents(math.fsum(terms))


def balance_status(balance: float) -> BalanceStatus:
    return BalanceStatus.for_balance(balance)


def get_last_six_months_usage(
    property_id: str,
    readings: Iterable[MeterReading],
) -> list[UsagePoint]:
    """
    Usage of the most recent six billing periods, oldest first.

    Periods sort correctly as strings because they are zero-padded YYYY-MM.
    """
    totals = usage_by_period(property_id, readings)
    recent = sorted(totals.items())[-USAGE_HISTORY_LENGTH:]
    return [UsagePoint(period=period, usage=usage) for period, usage in recent]
