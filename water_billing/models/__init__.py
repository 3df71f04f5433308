"""
Data Models Package

This package contains all Pydantic models used in the Water Billing Ledger.
Persisted records live in document.py; computed views in views.py.
"""

from water_billing.models.document import (
    BILLING_PERIOD_PATTERN,
    AppData,
    BillingPeriod,
    BillingSettings,
    Invoice,
    Meter,
    MeterReading,
    Neighbor,
    Payment,
    Property,
)
from water_billing.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from water_billing.models.views import (
    ActivityItem,
    ActivityType,
    BalanceStatus,
    BillCalculation,
    DataSummary,
    MonthlyTotal,
    SortDirection,
    SortField,
    UsagePoint,
)

__all__ = [
    # Document models
    "BILLING_PERIOD_PATTERN",
    "AppData",
    "BillingPeriod",
    "BillingSettings",
    "Invoice",
    "Meter",
    "MeterReading",
    "Neighbor",
    "Payment",
    "Property",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # View models
    "ActivityItem",
    "ActivityType",
    "BalanceStatus",
    "BillCalculation",
    "DataSummary",
    "MonthlyTotal",
    "SortDirection",
    "SortField",
    "UsagePoint",
]
