"""
Persisted Document Models for Water Billing Ledger

These models define the schema of the single JSON document that holds
all application state. They are designed to:
1. Round-trip the persisted JSON without loss (camelCase keys, string dates)
2. Be immutable so calculators can never mutate shared state
3. Preserve unknown keys written by other consumers of the document

DESIGN DECISION: Field names in the document are load-bearing.
Python attributes are snake_case; every model serializes back to the
camelCase keys through an alias generator, and extra keys are kept,
explicit nulls included.

Amounts are plain floats because the document stores JSON numbers.
Balances and the invoice balance fields are rounded to cents when computed.
"""

from datetime import date
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializationInfo,
    SerializerFunctionWrapHandler,
    model_serializer,
)
from pydantic.alias_generators import to_camel


BILLING_PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

BillingPeriod = Annotated[
    str,
    Field(pattern=BILLING_PERIOD_PATTERN, description="Calendar month as YYYY-MM"),
]


class DocumentModel(BaseModel):
    """Base for every record stored in the document."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )

    @model_serializer(mode="wrap")
    def omit_unset_nulls(
        self,
        handler: SerializerFunctionWrapHandler,
        info: SerializationInfo,
    ) -> dict[str, Any]:
        # Optional fields the document never had stay absent; explicit
        # nulls (declared or unknown keys) are written back as null
        dumped = handler(self)
        for name, field in type(self).model_fields.items():
            if name in self.model_fields_set or getattr(self, name) is not None:
                continue
            key = field.alias if info.by_alias and field.alias else name
            dumped.pop(key, None)
        return dumped

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with the persisted camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# PROPERTIES AND METERS
# =============================================================================

class Meter(DocumentModel):
    """A water meter installed at a property."""

    id: str = Field(..., min_length=1)
    label: str = Field(default="")
    # Carried for the desktop app; never applied to usage
    shift: float = Field(default=0)


class Property(DocumentModel):
    """
    A served property (one customer account).

    balance_adjustment is a manual signed correction applied before any
    computed charges or payments.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., description="Display name, e.g. the household name")
    address: str = Field(
        default="",
        description="Free-text address; may span several lines"
    )
    balance_adjustment: float = Field(
        default=0.0,
        description="Signed manual offset added to the running balance"
    )
    meters: list[Meter] = Field(default_factory=list)

    def meter_by_id(self, meter_id: str) -> Optional[Meter]:
        return next((m for m in self.meters if m.id == meter_id), None)


# =============================================================================
# ACTIVITY RECORDS
# =============================================================================

class MeterReading(DocumentModel):
    """
    A meter reading attributed to one billing period.

    usage is the billable quantity in gallons. raw_usage is the delta from
    the previous reading of the same meter; the two are equal for readings
    entered through this application.
    """

    id: str = Field(..., min_length=1)
    meter_id: str = Field(...)
    property_id: str = Field(...)
    reading_date: date = Field(..., description="Day the meter was read")
    billing_period: BillingPeriod
    reading_value: int = Field(..., description="Cumulative meter index")
    raw_usage: int = Field(default=0)
    usage: int = Field(default=0, description="Billable gallons")


class Payment(DocumentModel):
    """
    A payment received from a property.

    Amounts are credits against the balance. The model does not reject
    non-positive amounts so historical documents always load; new payments
    are checked by the validator.
    """

    id: str = Field(..., min_length=1)
    property_id: str = Field(...)
    amount: float = Field(...)
    received_date: date = Field(...)
    notes: str = Field(default="")


class Invoice(DocumentModel):
    """
    Invoice for one property and billing period.

    Always derived from readings, payments and settings; the stored
    'invoices' collection is legacy data that is only counted.
    previous_balance and amount_due are amounts owed (positive = owes).
    """

    id: str
    property_id: str
    billing_period: BillingPeriod
    generated_date: date
    total_gallons: int
    tier1_gallons: float
    tier2_gallons: float
    tier3_gallons: float
    tier1_charge: float
    tier2_charge: float
    tier3_charge: float
    fixed_charge: float
    total_amount: float
    previous_balance: float
    amount_due: float


class Neighbor(DocumentModel):
    """A contact person attached to a property."""

    id: str = Field(..., min_length=1)
    property_id: str
    name: str
    email: str = Field(default="")
    notes: str = Field(default="")
    created_at: str = Field(default="", description="ISO timestamp as written")


# =============================================================================
# SETTINGS AND ROOT DOCUMENT
# =============================================================================

class BillingSettings(DocumentModel):
    """
    Tiered rate schedule shared by all properties.

    Tier 3 has no upper limit. tier3_limit exists in older documents and
    is preserved but never used.
    """

    fixed_monthly_fee: float = Field(default=20.0, description="Flat charge per billed month")
    tier1_limit: int = Field(default=5000, description="Upper bound of tier 1, gallons")
    tier1_rate_per_thousand: float = Field(default=3.0)
    tier2_limit: int = Field(default=15000, description="Upper bound of tier 2, gallons")
    tier2_rate_per_thousand: float = Field(default=4.5)
    tier3_limit: Optional[int] = Field(default=None)
    tier3_rate_per_thousand: float = Field(default=6.0)


class AppData(DocumentModel):
    """The whole persisted document."""

    properties: list[Property] = Field(default_factory=list)
    readings: list[MeterReading] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)
    invoices: list[Invoice] = Field(default_factory=list)
    neighbors: list[Neighbor] = Field(default_factory=list)
    settings: BillingSettings = Field(default_factory=BillingSettings)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "AppData":
        """Build from a decoded JSON document (raises pydantic.ValidationError)."""
        return cls.model_validate(document)

    def to_document(self) -> dict[str, Any]:
        return self.to_json_dict()

    def property_by_id(self, property_id: str) -> Optional[Property]:
        return next((p for p in self.properties if p.id == property_id), None)

    def property_name(self, property_id: str) -> str:
        """Display name of a property, 'Unknown' for dangling references."""
        prop = self.property_by_id(property_id)
        return prop.name if prop else "Unknown"
