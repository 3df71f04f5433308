"""
Ledger State and Commands

This module ties storage, validation and the billing calculators
together and defines every operator action:
1. Payments (record, edit, delete)
2. Meter readings (log, edit, revert, delete)
3. Properties, neighbors and rate settings
4. The combined activity history shown on the dashboard

DESIGN DECISION: Commands are pure functions AppData -> AppData.
- They never touch storage
- They raise LedgerError for input that cannot be applied
- LedgerState.apply() swaps in the result and marks the state dirty;
  persist() writes the whole document back

This keeps every calculation testable without a backend and makes
"what is on screen" and "what gets saved" the same value.
"""

from datetime import date, datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

import structlog
from pydantic import ValidationError

from water_billing.config import Settings, get_settings
from water_billing.models.document import (
    AppData,
    BillingSettings,
    MeterReading,
    Neighbor,
    Payment,
    Property,
)
from water_billing.models.validation import ValidationResult
from water_billing.models.views import (
    ActivityItem,
    ActivityType,
    DataSummary,
    SortDirection,
    SortField,
)
from water_billing.services.storage import (
    DocumentNotFoundError,
    DocumentStorageInterface,
    StorageError,
    create_storage,
)
from water_billing.validation import LedgerValidator, previous_reading


logger = structlog.get_logger(__name__)


PAYMENT_DEFAULT_DESCRIPTION = "Payment received"
RECENT_PAYMENTS_LIMIT = 10


# =============================================================================
# EXCEPTIONS
# =============================================================================

class LedgerError(Exception):
    """Base exception for commands that cannot be applied."""
    pass


class UnknownPropertyError(LedgerError):
    """The referenced property does not exist."""
    pass


class UnknownMeterError(LedgerError):
    """The meter does not exist or does not belong to the property."""
    pass


class RecordNotFoundError(LedgerError):
    """A stored record with the given id does not exist."""
    pass


class ActivityNotFoundError(RecordNotFoundError):
    """No payment or reading with the given id."""
    pass


class InvalidInputError(LedgerError):
    """Operator input failed validation."""

    def __init__(self, message: str, result: Optional[ValidationResult] = None):
        super().__init__(message)
        self.result = result


def _new_id() -> str:
    return str(uuid4())


def _require_property(data: AppData, property_id: str) -> Property:
    prop = data.property_by_id(property_id)
    if prop is None:
        raise UnknownPropertyError(f"Property not found: {property_id}")
    return prop


def _replace_property(data: AppData, updated: Property) -> AppData:
    return data.model_copy(update={
        "properties": [updated if p.id == updated.id else p for p in data.properties],
    })


def _find_payment(data: AppData, payment_id: str) -> Payment:
    for payment in data.payments:
        if payment.id == payment_id:
            return payment
    raise ActivityNotFoundError(f"Payment not found: {payment_id}")


def _find_reading(data: AppData, reading_id: str) -> MeterReading:
    for reading in data.readings:
        if reading.id == reading_id:
            return reading
    raise ActivityNotFoundError(f"Reading not found: {reading_id}")


def _replace_reading(data: AppData, updated: MeterReading) -> AppData:
    return data.model_copy(update={
        "readings": [updated if r.id == updated.id else r for r in data.readings],
    })


# =============================================================================
# PAYMENTS
# =============================================================================

def record_payment(
    data: AppData,
    property_id: str,
    amount: float,
    received_date: date,
    notes: str = "",
) -> AppData:
    """Append a payment received from a property."""
    _require_property(data, property_id)
    if amount <= 0:
        raise InvalidInputError("Payment amount must be greater than zero")

    payment = Payment(
        id=_new_id(),
        property_id=property_id,
        amount=amount,
        received_date=received_date,
        notes=notes.strip(),
    )
    logger.info(
        "payment_recorded",
        payment_id=payment.id,
        property_id=property_id,
        amount=amount,
        received_date=received_date.isoformat(),
    )
    return data.model_copy(update={"payments": [*data.payments, payment]})


def update_payment(
    data: AppData,
    payment_id: str,
    amount: float,
    received_date: date,
    notes: str = "",
) -> AppData:
    """Edit the amount, date and notes of a stored payment."""
    existing = _find_payment(data, payment_id)
    if amount <= 0:
        raise InvalidInputError("Payment amount must be greater than zero")

    updated = existing.model_copy(update={
        "amount": amount,
        "received_date": received_date,
        "notes": notes.strip(),
    })
    logger.info("payment_updated", payment_id=payment_id, amount=amount)
    return data.model_copy(update={
        "payments": [updated if p.id == payment_id else p for p in data.payments],
    })


def delete_payment(data: AppData, payment_id: str) -> AppData:
    _find_payment(data, payment_id)
    logger.info("payment_deleted", payment_id=payment_id)
    return data.model_copy(update={
        "payments": [p for p in data.payments if p.id != payment_id],
    })


def recent_payments(
    data: AppData,
    property_id: str,
    limit: int = RECENT_PAYMENTS_LIMIT,
) -> list[Payment]:
    """A property's payments, newest first."""
    payments = [p for p in data.payments if p.property_id == property_id]
    payments.sort(key=lambda p: p.received_date, reverse=True)
    return payments[:limit]


# =============================================================================
# METER READINGS
# =============================================================================

def log_reading(
    data: AppData,
    property_id: str,
    reading_value: int,
    reading_date: date,
    billing_period: str,
    meter_id: Optional[str] = None,
) -> AppData:
    """
    Append a meter reading.

    Usage is the difference from the meter's previous reading (the one
    with the greatest billing period), or the full value for a meter's
    first reading. Billable usage equals raw usage.
    """
    prop = _require_property(data, property_id)
    if reading_value < 0:
        raise InvalidInputError("Meter reading cannot be negative")

    if meter_id is None:
        if not prop.meters:
            raise UnknownMeterError(f"{prop.name} has no meters")
        meter_id = prop.meters[0].id
    elif prop.meter_by_id(meter_id) is None:
        raise UnknownMeterError(f"Meter {meter_id} does not belong to {prop.name}")

    previous = previous_reading(data.readings, meter_id)
    raw_usage = reading_value - (previous.reading_value if previous else 0)

    try:
        reading = MeterReading(
            id=_new_id(),
            meter_id=meter_id,
            property_id=property_id,
            reading_date=reading_date,
            billing_period=billing_period,
            reading_value=reading_value,
            raw_usage=raw_usage,
            usage=raw_usage,
        )
    except ValidationError as e:
        raise InvalidInputError(f"Invalid reading: {e}") from e

    logger.info(
        "reading_logged",
        reading_id=reading.id,
        property_id=property_id,
        meter_id=meter_id,
        billing_period=billing_period,
        usage=raw_usage,
    )
    return data.model_copy(update={"readings": [*data.readings, reading]})


def update_reading(
    data: AppData,
    reading_id: str,
    reading_value: int,
    reading_date: date,
) -> AppData:
    """
    Edit a stored reading.

    Raw and billable usage shift by the change in the meter value, so a
    corrected typo corrects the period's usage by the same amount.
    """
    existing = _find_reading(data, reading_id)
    if reading_value < 0:
        raise InvalidInputError("Meter reading cannot be negative")

    delta = reading_value - existing.reading_value
    updated = existing.model_copy(update={
        "reading_value": reading_value,
        "reading_date": reading_date,
        "raw_usage": existing.raw_usage + delta,
        "usage": existing.usage + delta,
    })
    logger.info("reading_updated", reading_id=reading_id, delta=delta)
    return _replace_reading(data, updated)


def revert_reading_to_previous(data: AppData, reading_id: str) -> AppData:
    """Reset a reading to its meter's previous value, zeroing its usage."""
    existing = _find_reading(data, reading_id)
    previous = previous_reading(data.readings, existing.meter_id, exclude_id=reading_id)
    if previous is None:
        raise InvalidInputError("There is no previous reading for this meter")

    updated = existing.model_copy(update={
        "reading_value": previous.reading_value,
        "raw_usage": 0,
        "usage": 0,
    })
    logger.info(
        "reading_reverted",
        reading_id=reading_id,
        previous_reading_id=previous.id,
    )
    return _replace_reading(data, updated)


def delete_reading(data: AppData, reading_id: str) -> AppData:
    _find_reading(data, reading_id)
    logger.info("reading_deleted", reading_id=reading_id)
    return data.model_copy(update={
        "readings": [r for r in data.readings if r.id != reading_id],
    })


# =============================================================================
# SETTINGS, PROPERTIES AND NEIGHBORS
# =============================================================================

def update_settings(data: AppData, settings: BillingSettings) -> AppData:
    """
    Replace the rate schedule.

    Raises:
        InvalidInputError: If a value is negative or the tier limits are out of order
    """
    result = LedgerValidator().validate_settings(settings)
    if not result.is_valid:
        raise InvalidInputError("Invalid rate settings", result)

    logger.info("settings_updated", **settings.model_dump(exclude_none=True))
    return data.model_copy(update={"settings": settings})


def update_property_address(data: AppData, property_id: str, address: str) -> AppData:
    prop = _require_property(data, property_id)
    logger.info("property_address_updated", property_id=property_id)
    return _replace_property(data, prop.model_copy(update={"address": address.strip()}))


def set_balance_adjustment(data: AppData, property_id: str, amount: float) -> AppData:
    """Set the manual signed correction applied to a property's balance."""
    prop = _require_property(data, property_id)
    logger.info(
        "balance_adjustment_set",
        property_id=property_id,
        previous=prop.balance_adjustment,
        amount=amount,
    )
    return _replace_property(data, prop.model_copy(update={"balance_adjustment": amount}))


def add_neighbor(
    data: AppData,
    property_id: str,
    name: str,
    email: str = "",
    notes: str = "",
) -> AppData:
    _require_property(data, property_id)
    if not name.strip():
        raise InvalidInputError("Neighbor name is required")

    neighbor = Neighbor(
        id=_new_id(),
        property_id=property_id,
        name=name.strip(),
        email=email.strip(),
        notes=notes.strip(),
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    logger.info("neighbor_added", neighbor_id=neighbor.id, property_id=property_id)
    return data.model_copy(update={"neighbors": [*data.neighbors, neighbor]})


def remove_neighbor(data: AppData, neighbor_id: str) -> AppData:
    if not any(n.id == neighbor_id for n in data.neighbors):
        raise RecordNotFoundError(f"Neighbor not found: {neighbor_id}")
    logger.info("neighbor_removed", neighbor_id=neighbor_id)
    return data.model_copy(update={
        "neighbors": [n for n in data.neighbors if n.id != neighbor_id],
    })


# =============================================================================
# ACTIVITY HISTORY
# =============================================================================

def build_activity(data: AppData) -> list[ActivityItem]:
    """Payments and readings as one unsorted list of activity rows."""
    items = []

    for payment in data.payments:
        items.append(ActivityItem(
            id=f"payment-{payment.id}",
            original_id=payment.id,
            date=payment.received_date,
            type=ActivityType.PAYMENT,
            property_id=payment.property_id,
            property_name=data.property_name(payment.property_id),
            description=payment.notes or PAYMENT_DEFAULT_DESCRIPTION,
            amount=payment.amount,
        ))

    for reading in data.readings:
        items.append(ActivityItem(
            id=f"reading-{reading.id}",
            original_id=reading.id,
            date=reading.reading_date,
            type=ActivityType.READING,
            property_id=reading.property_id,
            property_name=data.property_name(reading.property_id),
            description=f"Meter reading: {reading.reading_value:,}",
            usage=reading.usage,
            reading_value=reading.reading_value,
        ))

    return items


def _sort_key(field: SortField) -> Callable[[ActivityItem], Any]:
    if field == SortField.PROPERTY:
        return lambda item: item.property_name
    if field == SortField.TYPE:
        return lambda item: item.type.value
    if field == SortField.AMOUNT:
        # Payments sort by amount, readings by usage
        return lambda item: item.amount or item.usage or 0
    return lambda item: item.date


def sort_activity(
    items: list[ActivityItem],
    field: SortField = SortField.DATE,
    direction: SortDirection = SortDirection.DESC,
) -> list[ActivityItem]:
    """Stable sort of activity rows; equal rows keep their input order."""
    return sorted(
        items,
        key=_sort_key(SortField(field)),
        reverse=SortDirection(direction) == SortDirection.DESC,
    )


def data_summary(data: AppData) -> DataSummary:
    return DataSummary(
        properties=len(data.properties),
        readings=len(data.readings),
        payments=len(data.payments),
        invoices=len(data.invoices),
        neighbors=len(data.neighbors),
    )


# =============================================================================
# APPLICATION STATE
# =============================================================================

class LedgerState:
    """
    The loaded document plus the backend it came from.

    Flow:
    1. load() reads the whole document
    2. apply() runs a command and marks the state dirty
    3. persist() overwrites the whole document and clears the flag

    Nothing is saved implicitly; callers decide when to persist.
    """

    def __init__(
        self,
        storage: DocumentStorageInterface,
        data: Optional[AppData] = None,
    ):
        self._storage = storage
        self._data = data
        self._dirty = False

    @property
    def storage(self) -> DocumentStorageInterface:
        return self._storage

    @property
    def is_loaded(self) -> bool:
        return self._data is not None

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def data(self) -> AppData:
        if self._data is None:
            raise LedgerError("Ledger data has not been loaded")
        return self._data

    async def load(self, create_if_missing: bool = False) -> AppData:
        """
        Read the document from storage, replacing any unsaved changes.

        Args:
            create_if_missing: Start from an empty document (marked dirty)
                               when the backend has none yet

        Raises:
            StorageError: If the document cannot be read
        """
        try:
            data = await self._storage.load()
            self._dirty = False
        except DocumentNotFoundError:
            if not create_if_missing:
                logger.error("document_load_failed", backend=self._storage.backend_name, reason="not_found")
                raise
            data = AppData()
            self._dirty = True
            logger.warning("document_created_empty", backend=self._storage.backend_name)
        except StorageError as e:
            logger.error("document_load_failed", backend=self._storage.backend_name, error=str(e))
            raise

        self._data = data
        logger.info(
            "document_loaded",
            backend=self._storage.backend_name,
            properties=len(data.properties),
            readings=len(data.readings),
            payments=len(data.payments),
        )
        return data

    def apply(self, command: Callable[..., AppData], *args: Any, **kwargs: Any) -> AppData:
        """
        Run a command against the current document and keep its result.

        The state is unchanged if the command raises.
        """
        self._data = command(self.data, *args, **kwargs)
        self._dirty = True
        return self._data

    async def persist(self) -> bool:
        """
        Write the whole document if it has unsaved changes.

        Returns:
            True if a write happened, False if there was nothing to save

        Raises:
            StorageError: If the write fails (the state stays dirty)
        """
        if not self._dirty:
            return False

        try:
            await self._storage.save(self.data)
        except StorageError as e:
            logger.error("document_save_failed", backend=self._storage.backend_name, error=str(e))
            raise

        self._dirty = False
        logger.info("document_saved", backend=self._storage.backend_name)
        return True


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[DocumentStorageInterface] = None,
) -> tuple[LedgerState, LedgerValidator]:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to select the storage backend from
        storage: Explicit backend, overriding the configured one (tests)

    Returns:
        (ledger_state, validator)
    """
    storage = storage or create_storage(settings or get_settings())
    return LedgerState(storage), LedgerValidator()
