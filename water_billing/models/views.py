"""
Derived View Models

Values computed from the document for display and export.
None of these are persisted.
"""

import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BalanceStatus(str, Enum):
    """
    How an account balance is presented.

    The canonical convention: balance >= 0 is a credit, below zero is due.
    """
    CREDIT = "Credit"
    DUE = "Due"

    @classmethod
    def for_balance(cls, balance: float) -> "BalanceStatus":
        return cls.CREDIT if balance >= 0 else cls.DUE


class ActivityType(str, Enum):
    """Kinds of rows in the combined activity history."""
    PAYMENT = "payment"
    READING = "reading"


class SortField(str, Enum):
    DATE = "date"
    PROPERTY = "property"
    TYPE = "type"
    AMOUNT = "amount"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class BillCalculation(BaseModel):
    """Tiered charge breakdown for one month of usage."""
    model_config = ConfigDict(frozen=True)

    total_gallons: float
    tier1_gallons: float
    tier2_gallons: float
    tier3_gallons: float
    tier1_charge: float
    tier2_charge: float
    tier3_charge: float
    fixed_charge: float
    total_amount: float


class UsagePoint(BaseModel):
    """Summed usage of one billing period, for charts."""
    model_config = ConfigDict(frozen=True)

    period: str
    usage: float


class MonthlyTotal(BaseModel):
    """Bill totals across all properties for one month of a year."""
    model_config = ConfigDict(frozen=True)

    month: int = Field(..., ge=0, le=11, description="Zero-based month index")
    period: str
    total_cost: float
    total_gallons: float
    has_readings: bool
    has_invoices: bool


class ActivityItem(BaseModel):
    """
    One row of the combined payment/reading history.

    id is prefixed with the activity type so payment and reading ids can
    never collide; original_id points back at the stored record.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    original_id: str
    date: datetime.date
    type: ActivityType
    property_id: str
    property_name: str
    description: str
    amount: Optional[float] = None
    usage: Optional[float] = None
    reading_value: Optional[int] = None


class DataSummary(BaseModel):
    """Record counts shown on the settings page."""
    model_config = ConfigDict(frozen=True)

    properties: int = Field(ge=0)
    readings: int = Field(ge=0)
    payments: int = Field(ge=0)
    invoices: int = Field(ge=0)
    neighbors: int = Field(ge=0)
