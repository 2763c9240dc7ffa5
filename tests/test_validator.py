"""
Tests for the validation rules and the fail-fast validator.
"""

import pytest

from billing_export.config import ErrorCategory
from billing_export.rules import (
    VALIDATION_RULES,
    check_agency,
    check_client,
    check_gross_amount,
    check_invoice_number,
    check_net_amount,
    get_rules_by_category,
)
from billing_export.schemas import SummaryRecord
from billing_export.validator import format_summary_text, validate_batch, validate_record


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def valid_record() -> SummaryRecord:
    """Create a valid record for testing."""
    return SummaryRecord(
        invoice_number="100.0",
        agency="AgencyA",
        client="ClientB",
        channel="Ch",
        order_reference="Ref",
        gross_amount=1000,
        net_amount="850.50",
        currency="ARS",
    )


# ============================================================================
# Individual Rule Tests
# ============================================================================

class TestCompletenessRules:
    """Tests for completeness validation rules."""

    def test_check_invoice_number_valid(self, valid_record):
        assert check_invoice_number(valid_record) is None

    def test_check_invoice_number_blank(self, valid_record):
        valid_record.invoice_number = "   "
        assert check_invoice_number(valid_record) == "missing_field:invoice_number"

    def test_check_agency_blank(self, valid_record):
        valid_record.agency = ""
        assert check_agency(valid_record) == "missing_field:agency"

    def test_check_client_blank(self, valid_record):
        valid_record.client = " "
        assert check_client(valid_record) == "missing_field:client"


class TestFormatRules:
    """Tests for amount format rules."""

    def test_numeric_amounts_valid(self, valid_record):
        assert check_gross_amount(valid_record) is None
        assert check_net_amount(valid_record) is None

    def test_missing_amounts_valid(self, valid_record):
        valid_record.gross_amount = None
        valid_record.net_amount = None
        assert check_gross_amount(valid_record) is None
        assert check_net_amount(valid_record) is None

    def test_gross_not_numeric(self, valid_record):
        valid_record.gross_amount = "1.000,00"
        assert check_gross_amount(valid_record) == "format_error:gross_amount"

    def test_net_not_numeric(self, valid_record):
        valid_record.net_amount = "abc"
        assert check_net_amount(valid_record) == "format_error:net_amount"


class TestRuleRegistry:
    def test_rule_order(self):
        assert [rule.field for rule in VALIDATION_RULES] == [
            "invoice_number",
            "agency",
            "client",
            "gross_amount",
            "net_amount",
        ]

    def test_rules_by_category(self):
        assert len(get_rules_by_category(ErrorCategory.MISSING_FIELD)) == 3
        assert len(get_rules_by_category(ErrorCategory.FORMAT_ERROR)) == 2


# ============================================================================
# Validator Tests
# ============================================================================

class TestValidateRecord:
    """Tests for single-record validation."""

    def test_valid_record(self, valid_record):
        result = validate_record(valid_record, 0)

        assert result.is_valid is True
        assert result.row_number == 1
        assert result.error_code is None

    def test_row_number_is_one_based(self, valid_record):
        valid_record.client = ""
        result = validate_record(valid_record, 4)

        assert result.is_valid is False
        assert result.row_number == 5
        assert result.field == "client"
        assert result.message == "Row 5: 'Client' is required"

    def test_first_failure_wins(self, valid_record):
        valid_record.agency = ""
        valid_record.gross_amount = "x"
        result = validate_record(valid_record, 0)

        assert result.error_code == "missing_field:agency"

    def test_format_error_message(self, valid_record):
        valid_record.gross_amount = "x"
        result = validate_record(valid_record, 2)

        assert result.error_code == "format_error:gross_amount"
        assert result.message == "Row 3: 'Gross Invoice' is not a valid number"


class TestValidateBatch:
    """Tests for fail-fast batch validation."""

    def test_valid_batch(self, valid_record):
        result = validate_batch([valid_record, valid_record.model_copy()])

        assert result.is_valid is True
        assert result.checked == 2
        assert result.total == 2
        assert result.failure is None

    def test_stops_at_first_invalid(self, valid_record):
        second = valid_record.model_copy(update={"net_amount": "bad"})
        third = valid_record.model_copy(update={"agency": ""})

        result = validate_batch([valid_record, second, third])

        assert result.is_valid is False
        assert result.checked == 2
        assert result.total == 3
        assert result.failure.row_number == 2
        assert result.failure.field == "net_amount"

    def test_empty_batch(self):
        result = validate_batch([])
        assert result.is_valid is True
        assert result.checked == 0


class TestFormatSummaryText:
    def test_valid(self, valid_record):
        text = format_summary_text(validate_batch([valid_record]), skipped_total=1)

        assert "VALIDATION SUMMARY" in text
        assert "Records read:             1" in text
        assert "TOTAL rows skipped:       1" in text
        assert "All records are valid." in text

    def test_invalid(self, valid_record):
        valid_record.gross_amount = "x"
        text = format_summary_text(validate_batch([valid_record]))

        assert "First Error:" in text
        assert "format_error:gross_amount" in text
        assert "Row 1:" in text
