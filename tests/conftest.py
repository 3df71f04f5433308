"""
Shared fixtures.

The sample document has two properties on the default rate schedule
(fee $20, tiers at 5,000 and 15,000 gallons, $3.00 / $4.50 / $6.00):

Smith (p-smith), one meter, no adjustment
    2025-01: 5,000 gal  -> $35.00
    2025-02: 7,000 gal  -> $44.00
    paid $35.00 on 2025-02-10
    balance: -44.00 (Due)

Jones (p-jones), two meters, +10.00 adjustment
    2025-01: 3,000 + 1,000 gal -> $32.00
    paid $30.00 on 2025-01-15
    balance: 8.00 (Credit)
"""

from datetime import date

import pytest

from water_billing.models import (
    AppData,
    BillingSettings,
    Meter,
    MeterReading,
    Neighbor,
    Payment,
    Property,
)
from water_billing.services.storage import InMemoryDocumentStorage


@pytest.fixture
def billing_settings() -> BillingSettings:
    return BillingSettings()


@pytest.fixture
def smith() -> Property:
    return Property(
        id="p-smith",
        name="Smith",
        address="12 Canyon Rd\nLinda Vista",
        meters=[Meter(id="m-smith", label="Main")],
    )


@pytest.fixture
def jones() -> Property:
    return Property(
        id="p-jones",
        name="Jones",
        address="14 Canyon Rd",
        balance_adjustment=10.0,
        meters=[
            Meter(id="m-jones-house", label="House"),
            Meter(id="m-jones-barn", label="Barn", shift=250),
        ],
    )


def make_reading(reading_id, meter_id, property_id, reading_date, period, value, usage):
    return MeterReading(
        id=reading_id,
        meter_id=meter_id,
        property_id=property_id,
        reading_date=reading_date,
        billing_period=period,
        reading_value=value,
        raw_usage=usage,
        usage=usage,
    )


@pytest.fixture
def readings() -> list[MeterReading]:
    return [
        make_reading("r1", "m-smith", "p-smith", date(2025, 2, 1), "2025-01", 5000, 5000),
        make_reading("r2", "m-smith", "p-smith", date(2025, 3, 1), "2025-02", 12000, 7000),
        make_reading("r3", "m-jones-house", "p-jones", date(2025, 2, 2), "2025-01", 3000, 3000),
        make_reading("r4", "m-jones-barn", "p-jones", date(2025, 2, 2), "2025-01", 1000, 1000),
    ]


@pytest.fixture
def payments() -> list[Payment]:
    return [
        Payment(id="pay1", property_id="p-smith", amount=35.0, received_date=date(2025, 2, 10)),
        Payment(
            id="pay2",
            property_id="p-jones",
            amount=30.0,
            received_date=date(2025, 1, 15),
            notes="Cash",
        ),
    ]


@pytest.fixture
def sample_data(smith, jones, readings, payments, billing_settings) -> AppData:
    return AppData(
        properties=[smith, jones],
        readings=readings,
        payments=payments,
        neighbors=[
            Neighbor(
                id="n1",
                property_id="p-smith",
                name="Ana Smith",
                email="ana@example.com",
                created_at="2024-12-01T10:00:00+00:00",
            ),
        ],
        settings=billing_settings,
    )


@pytest.fixture
def sample_document() -> dict:
    """A persisted document as another client would write it."""
    return {
        "properties": [
            {
                "id": "p-smith",
                "name": "Smith",
                "address": "12 Canyon Rd\nLinda Vista",
                "balanceAdjustment": -5.5,
                "meters": [{"id": "m-smith", "label": "Main", "shift": 0}],
                "gateCode": "1234",
            },
        ],
        "readings": [
            {
                "id": "r1",
                "meterId": "m-smith",
                "propertyId": "p-smith",
                "readingDate": "2025-02-01",
                "billingPeriod": "2025-01",
                "readingValue": 5000,
                "rawUsage": 5000,
                "usage": 5000,
            },
        ],
        "payments": [
            {
                "id": "pay1",
                "propertyId": "p-smith",
                "amount": 35.5,
                "receivedDate": "2025-02-10",
                "notes": "",
            },
        ],
        "invoices": [],
        "neighbors": [],
        "settings": {
            "fixedMonthlyFee": 20,
            "tier1Limit": 5000,
            "tier1RatePerThousand": 3,
            "tier2Limit": 15000,
            "tier2RatePerThousand": 4.5,
            "tier3RatePerThousand": 6,
        },
    }


@pytest.fixture
def memory_storage(sample_data) -> InMemoryDocumentStorage:
    return InMemoryDocumentStorage(sample_data)
