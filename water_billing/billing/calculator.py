"""
Tiered Billing Calculator

Charges are progressive: each tier's gallons are billed at that tier's
rate per 1000 gallons, plus a flat monthly fee. Tier 3 is unbounded.

The calculator never raises. Inconsistent settings (tier2_limit below
tier1_limit) collapse tier 2 to zero gallons instead of failing.
Callers must clamp negative usage to zero first.
"""

from water_billing.models.document import BillingSettings
from water_billing.models.views import BillCalculation


GALLONS_PER_RATE_UNIT = 1000


def calculate_bill(usage: float, settings: BillingSettings) -> BillCalculation:
    """
    Compute the tiered charge breakdown for one month of usage.

    Args:
        usage: Billable gallons for the month (already clamped to >= 0)
        settings: The shared rate schedule

    Returns:
        BillCalculation with unrounded charges
    """
    tier1_gallons = min(usage, settings.tier1_limit)
    tier2_gallons = max(
        0,
        min(usage - settings.tier1_limit, settings.tier2_limit - settings.tier1_limit),
    )
    tier3_gallons = max(0, usage - settings.tier2_limit)

    tier1_charge = tier1_gallons / GALLONS_PER_RATE_UNIT * settings.tier1_rate_per_thousand
    tier2_charge = tier2_gallons / GALLONS_PER_RATE_UNIT * settings.tier2_rate_per_thousand
    tier3_charge = tier3_gallons / GALLONS_PER_RATE_UNIT * settings.tier3_rate_per_thousand
    fixed_charge = settings.fixed_monthly_fee

    return BillCalculation(
        total_gallons=usage,
        tier1_gallons=tier1_gallons,
        tier2_gallons=tier2_gallons,
        tier3_gallons=tier3_gallons,
        tier1_charge=tier1_charge,
        tier2_charge=tier2_charge,
        tier3_charge=tier3_charge,
        fixed_charge=fixed_charge,
        total_amount=fixed_charge + tier1_charge + tier2_charge + tier3_charge,
    )
