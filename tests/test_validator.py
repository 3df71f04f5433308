"""Tests for the two-stage ledger validator."""

from datetime import date

import pytest

from water_billing.models import BillingSettings
from water_billing.validation import LedgerValidator, previous_reading


TODAY = date(2025, 3, 4)


@pytest.fixture
def validator() -> LedgerValidator:
    return LedgerValidator(today=TODAY)


class TestPaymentValidation:

    def test_valid_payment(self, validator, sample_data):
        result = validator.validate_payment(sample_data, "p-smith", 35.0, date(2025, 3, 1))
        assert result.is_valid
        assert result.issues == []

    @pytest.mark.parametrize("amount", [0, -5.0])
    def test_non_positive_amount_is_error(self, validator, sample_data, amount):
        result = validator.validate_payment(sample_data, "p-smith", amount, TODAY)
        assert not result.schema_valid
        assert not result.is_valid
        assert result.issues[0].field == "amount"

    def test_missing_fields_skip_semantic_stage(self, validator, sample_data):
        result = validator.validate_payment(sample_data, "", None, None)
        assert not result.schema_valid
        assert not result.semantic_valid
        assert result.error_count == 3

    def test_unknown_property_is_semantic_error(self, validator, sample_data):
        result = validator.validate_payment(sample_data, "p-nobody", 10.0, TODAY)
        assert result.schema_valid
        assert not result.semantic_valid
        assert result.issues[0].issue_type == "unknown_reference"

    def test_future_date_is_warning(self, validator, sample_data):
        result = validator.validate_payment(sample_data, "p-smith", 10.0, date(2025, 4, 1))
        assert result.is_valid
        assert result.warnings[0].issue_type == "future_date"

    def test_large_amount_is_warning(self, validator, sample_data):
        result = validator.validate_payment(sample_data, "p-smith", 9000.0, TODAY)
        assert result.is_valid
        assert result.warnings[0].field == "amount"


class TestReadingValidation:

    def test_valid_reading(self, validator, sample_data):
        result = validator.validate_reading(sample_data, "p-smith", 15000, TODAY, "2025-02")
        assert result.is_valid
        assert result.issues == []

    def test_bad_period_format(self, validator, sample_data):
        result = validator.validate_reading(sample_data, "p-smith", 15000, TODAY, "03/2025")
        assert not result.schema_valid
        assert result.issues[0].issue_type == "invalid_format"

    def test_negative_reading(self, validator, sample_data):
        result = validator.validate_reading(sample_data, "p-smith", -1, TODAY, "2025-02")
        assert not result.is_valid

    def test_meter_of_other_property(self, validator, sample_data):
        result = validator.validate_reading(
            sample_data, "p-smith", 100, TODAY, "2025-02", meter_id="m-jones-barn"
        )
        assert not result.semantic_valid
        assert result.issues[0].field == "meter_id"

    def test_lower_than_previous_is_warning(self, validator, sample_data):
        result = validator.validate_reading(sample_data, "p-smith", 11000, TODAY, "2025-03")
        assert result.is_valid
        assert result.warnings[0].field == "reading_value"

    def test_edited_reading_ignores_itself(self, validator, sample_data):
        # r2 is the latest Smith reading at 12,000; editing it compares against r1 (5,000)
        result = validator.validate_reading(
            sample_data, "p-smith", 11000, TODAY, "2025-02", meter_id="m-smith", exclude_id="r2"
        )
        assert result.warnings == []

    def test_property_without_meters(self, validator, sample_data):
        from water_billing.models import Property

        data = sample_data.model_copy(update={
            "properties": [*sample_data.properties, Property(id="p-empty", name="Empty")],
        })
        result = validator.validate_reading(data, "p-empty", 10, TODAY, "2025-02")
        assert not result.is_valid
        assert result.issues[0].field == "meter_id"


class TestSettingsValidation:

    def test_defaults_are_valid(self, validator):
        assert validator.validate_settings(BillingSettings()).is_valid

    def test_negative_value_is_error(self, validator):
        result = validator.validate_settings(BillingSettings(fixed_monthly_fee=-1))
        assert not result.schema_valid
        assert result.issues[0].field == "fixed_monthly_fee"

    def test_inverted_limits_are_error(self, validator):
        result = validator.validate_settings(BillingSettings(tier1_limit=20000, tier2_limit=15000))
        assert result.schema_valid
        assert not result.semantic_valid

    def test_equal_limits_are_valid(self, validator):
        assert validator.validate_settings(BillingSettings(tier1_limit=5000, tier2_limit=5000)).is_valid


class TestPreviousReading:

    def test_greatest_period_wins(self, readings):
        assert previous_reading(readings, "m-smith").id == "r2"

    def test_exclude_id(self, readings):
        assert previous_reading(readings, "m-smith", exclude_id="r2").id == "r1"

    def test_no_readings(self, readings):
        assert previous_reading(readings, "m-unknown") is None


class TestSummary:

    def test_all_passed(self, validator, sample_data):
        result = validator.validate_payment(sample_data, "p-smith", 10.0, TODAY)
        assert validator.get_user_friendly_summary(result) == "All checks passed."

    def test_summary_lists_errors_and_warnings(self, validator, sample_data):
        result = validator.validate_payment(sample_data, "p-nobody", 9000.0, date(2025, 5, 1))
        summary = validator.get_user_friendly_summary(result)
        assert "Please fix the following:" in summary
        assert "p-nobody" in summary
        assert "Please verify the following:" in summary
