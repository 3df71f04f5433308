"""
Two-Stage Validation of Operator Input

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required values present
- Format validation (billing periods, dates)
- Positive amounts, non-negative meter readings and rates
- This catches typos and empty form fields

STAGE 2 - SEMANTIC VALIDATION:
- Property and meter exist in the loaded document
- Meter reading lower than the previous reading of the meter
- Dates in the future
- Tier limits in order
- This catches input that is well-formed but does not fit the ledger

WHY TWO STAGES:
1. Separation of concerns (structural vs logical)
2. Better error messages (know exactly what kind of issue)
3. Can skip stage 2 if stage 1 fails
4. Stage 2 needs the loaded document

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the operator to review.
"""

import re
from datetime import date, timedelta
from typing import Optional

from water_billing.billing.periods import format_currency
from water_billing.models.document import (
    BILLING_PERIOD_PATTERN,
    AppData,
    BillingSettings,
    MeterReading,
)
from water_billing.models.validation import ValidationIssue, ValidationResult


FUTURE_DATE_TOLERANCE_DAYS = 1

# Payments above this are almost always a typo (an extra digit)
SUSPICIOUS_PAYMENT_AMOUNT = 5000.0


def previous_reading(
    readings: list[MeterReading],
    meter_id: str,
    exclude_id: Optional[str] = None,
) -> Optional[MeterReading]:
    """The meter's reading with the greatest billing period."""
    candidates = [
        r for r in readings
        if r.meter_id == meter_id and r.id != exclude_id
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda r: r.billing_period)


def _result(
    schema_valid: bool,
    semantic_valid: bool,
    issues: list[ValidationIssue],
) -> ValidationResult:
    return ValidationResult(
        schema_valid=schema_valid,
        semantic_valid=semantic_valid,
        is_valid=schema_valid and semantic_valid,
        issues=issues,
    )


def _no_errors(issues: list[ValidationIssue]) -> bool:
    return not any(issue.severity == "error" for issue in issues)


class LedgerValidator:
    """
    Validates payments, readings and rate changes before they are applied.

    Stage 1: Schema validation (no document needed)
    Stage 2: Semantic validation (checks against the loaded document)
    """

    def __init__(
        self,
        today: Optional[date] = None,
        future_tolerance_days: int = FUTURE_DATE_TOLERANCE_DAYS,
    ):
        """
        Initialize validator.

        Args:
            today: Reference date for future-date checks (defaults to today)
            future_tolerance_days: Days after today a date may fall without a warning
        """
        self._today = today
        self._future_tolerance = timedelta(days=future_tolerance_days)

    @property
    def today(self) -> date:
        return self._today or date.today()

    def _check_future_date(
        self,
        field: str,
        value: date,
        label: str,
    ) -> list[ValidationIssue]:
        if value > self.today + self._future_tolerance:
            return [ValidationIssue(
                field=field,
                issue_type="future_date",
                message=f"{label} ({value.isoformat()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            )]
        return []

    def _check_property(self, data: AppData, property_id: str) -> list[ValidationIssue]:
        if data.property_by_id(property_id) is None:
            return [ValidationIssue(
                field="property_id",
                issue_type="unknown_reference",
                message=f"Property '{property_id}' does not exist",
                severity="error",
                suggested_fix="Select one of the listed properties",
            )]
        return []

    # -------------------------------------------------------------------------
    # PAYMENTS
    # -------------------------------------------------------------------------

    def _validate_payment_schema(
        self,
        property_id: Optional[str],
        amount: Optional[float],
        received_date: Optional[date],
    ) -> tuple[bool, list[ValidationIssue]]:
        """Stage 1 for a payment. Returns: (is_valid, list_of_issues)"""
        issues = []

        if not property_id:
            issues.append(ValidationIssue(
                field="property_id",
                issue_type="missing",
                message="A property is required",
                severity="error",
            ))

        if amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Payment amount is required",
                severity="error",
            ))
        elif amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Payment amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount received, e.g. 35.00",
            ))

        if received_date is None:
            issues.append(ValidationIssue(
                field="received_date",
                issue_type="missing",
                message="Date received is required",
                severity="error",
            ))

        return _no_errors(issues), issues

    def _validate_payment_semantic(
        self,
        data: AppData,
        property_id: str,
        amount: float,
        received_date: date,
    ) -> tuple[bool, list[ValidationIssue]]:
        """Stage 2 for a payment. Returns: (is_valid, list_of_issues)"""
        issues = self._check_property(data, property_id)
        issues.extend(self._check_future_date("received_date", received_date, "Payment date"))

        if amount > SUSPICIOUS_PAYMENT_AMOUNT:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({format_currency(amount)}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return _no_errors(issues), issues

    def validate_payment(
        self,
        data: AppData,
        property_id: Optional[str],
        amount: Optional[float],
        received_date: Optional[date],
    ) -> ValidationResult:
        """Run both stages for a new or edited payment."""
        schema_valid, issues = self._validate_payment_schema(property_id, amount, received_date)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_payment_semantic(
                data, property_id, amount, received_date
            )
            issues.extend(semantic_issues)

        return _result(schema_valid, semantic_valid, issues)

    # -------------------------------------------------------------------------
    # METER READINGS
    # -------------------------------------------------------------------------

    def _validate_reading_schema(
        self,
        property_id: Optional[str],
        reading_value: Optional[int],
        reading_date: Optional[date],
        billing_period: Optional[str],
    ) -> tuple[bool, list[ValidationIssue]]:
        """Stage 1 for a reading. Returns: (is_valid, list_of_issues)"""
        issues = []

        if not property_id:
            issues.append(ValidationIssue(
                field="property_id",
                issue_type="missing",
                message="A property is required",
                severity="error",
            ))

        if reading_value is None:
            issues.append(ValidationIssue(
                field="reading_value",
                issue_type="missing",
                message="Meter reading is required",
                severity="error",
            ))
        elif reading_value < 0:
            issues.append(ValidationIssue(
                field="reading_value",
                issue_type="invalid_value",
                message="Meter reading cannot be negative",
                severity="error",
                suggested_fix="Enter the number shown on the meter",
            ))

        if reading_date is None:
            issues.append(ValidationIssue(
                field="reading_date",
                issue_type="missing",
                message="Reading date is required",
                severity="error",
            ))

        if not billing_period:
            issues.append(ValidationIssue(
                field="billing_period",
                issue_type="missing",
                message="Billing period is required",
                severity="error",
            ))
        elif not re.match(BILLING_PERIOD_PATTERN, billing_period):
            issues.append(ValidationIssue(
                field="billing_period",
                issue_type="invalid_format",
                message=f"Billing period '{billing_period}' is not in YYYY-MM format",
                severity="error",
                suggested_fix="Use a period like 2025-01",
            ))

        return _no_errors(issues), issues

    def _validate_reading_semantic(
        self,
        data: AppData,
        property_id: str,
        meter_id: Optional[str],
        reading_value: int,
        reading_date: date,
        exclude_id: Optional[str] = None,
    ) -> tuple[bool, list[ValidationIssue]]:
        """Stage 2 for a reading. Returns: (is_valid, list_of_issues)"""
        issues = self._check_property(data, property_id)
        if issues:
            return False, issues

        prop = data.property_by_id(property_id)
        if meter_id is None:
            if not prop.meters:
                issues.append(ValidationIssue(
                    field="meter_id",
                    issue_type="missing",
                    message=f"{prop.name} has no meters",
                    severity="error",
                ))
                return False, issues
            meter_id = prop.meters[0].id
        elif prop.meter_by_id(meter_id) is None:
            issues.append(ValidationIssue(
                field="meter_id",
                issue_type="unknown_reference",
                message=f"Meter '{meter_id}' does not belong to {prop.name}",
                severity="error",
            ))
            return False, issues

        previous = previous_reading(data.readings, meter_id, exclude_id)
        if previous is not None and reading_value < previous.reading_value:
            issues.append(ValidationIssue(
                field="reading_value",
                issue_type="suspicious_value",
                message=(
                    f"Reading ({reading_value:,}) is lower than the previous "
                    f"reading ({previous.reading_value:,})"
                ),
                severity="warning",
                suggested_fix="Usage for this period will be negative and billed as zero",
            ))

        issues.extend(self._check_future_date("reading_date", reading_date, "Reading date"))

        return _no_errors(issues), issues

    def validate_reading(
        self,
        data: AppData,
        property_id: Optional[str],
        reading_value: Optional[int],
        reading_date: Optional[date],
        billing_period: Optional[str],
        meter_id: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Run both stages for a new or edited reading.

        exclude_id skips the reading being edited when looking up the
        previous reading of the meter.
        """
        schema_valid, issues = self._validate_reading_schema(
            property_id, reading_value, reading_date, billing_period
        )

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_reading_semantic(
                data, property_id, meter_id, reading_value, reading_date, exclude_id
            )
            issues.extend(semantic_issues)

        return _result(schema_valid, semantic_valid, issues)

    # -------------------------------------------------------------------------
    # RATE SETTINGS
    # -------------------------------------------------------------------------

    def validate_settings(self, settings: BillingSettings) -> ValidationResult:
        """Rates and limits must be non-negative and the tier limits ordered."""
        issues = []

        for field in (
            "fixed_monthly_fee",
            "tier1_limit",
            "tier1_rate_per_thousand",
            "tier2_limit",
            "tier2_rate_per_thousand",
            "tier3_rate_per_thousand",
        ):
            if getattr(settings, field) < 0:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="invalid_value",
                    message=f"{field.replace('_', ' ').capitalize()} cannot be negative",
                    severity="error",
                ))

        schema_valid = _no_errors(issues)

        semantic_valid = False
        if schema_valid:
            if settings.tier1_limit > settings.tier2_limit:
                issues.append(ValidationIssue(
                    field="tier2_limit",
                    issue_type="inconsistent",
                    message=(
                        f"Tier 2 limit ({settings.tier2_limit:,}) must not be below "
                        f"tier 1 limit ({settings.tier1_limit:,})"
                    ),
                    severity="error",
                    suggested_fix="Raise the tier 2 limit or lower the tier 1 limit",
                ))
            semantic_valid = _no_errors(issues)

        return _result(schema_valid, semantic_valid, issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to the operator next to the form.
        """
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        errors = [issue for issue in result.issues if issue.severity == "error"]
        if errors:
            lines.append("Please fix the following:")
            for issue in errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for issue in result.warnings:
                lines.append(f"   • {issue.message}")

        return "\n".join(lines)
