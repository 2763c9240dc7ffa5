"""
Tests for the canonicalizer module.

These tests cover invoice-number normalization, jurisdiction and month
inference, and amount parsing.
"""

from datetime import date, datetime

import pytest

from billing_export.canonicalizer import (
    cell_text,
    is_blank,
    jurisdiction_from_currency,
    month_from_filename,
    normalize_invoice_number,
    parse_amount,
    parse_month_argument,
    spanish_month_name,
)
from billing_export.errors import MonthNotFound


class TestNormalizeInvoiceNumber:
    """Tests for invoice number normalization."""

    def test_strips_float_suffix(self):
        assert normalize_invoice_number("12345.0") == "12345"

    def test_trims_whitespace(self):
        assert normalize_invoice_number("  12345 ") == "12345"

    def test_numeric_inputs(self):
        assert normalize_invoice_number(12345) == "12345"
        assert normalize_invoice_number(12345.0) == "12345"
        assert normalize_invoice_number(20251230070.0) == "20251230070"

    def test_other_decimals_untouched(self):
        assert normalize_invoice_number("10.05") == "10.05"
        assert normalize_invoice_number("A-10.00") == "A-10.00"

    @pytest.mark.parametrize(
        "value",
        ["12345.0", "12345", " 77.0 ", "5.0.0", "INV-9.0", "", "  ", "10.00", 42.0, 7],
    )
    def test_idempotent(self, value):
        once = normalize_invoice_number(value)
        assert normalize_invoice_number(once) == once


class TestJurisdiction:
    """Tests for currency to jurisdiction mapping."""

    def test_known_currencies(self):
        assert jurisdiction_from_currency("ARS") == "ar"
        assert jurisdiction_from_currency(" mxn ") == "mx"
        assert jurisdiction_from_currency("CLP") == "cl"

    def test_country_codes(self):
        assert jurisdiction_from_currency("AR") == "ar"
        assert jurisdiction_from_currency("cl") == "cl"

    def test_unknown_falls_back(self):
        assert jurisdiction_from_currency("USD") == "generico"
        assert jurisdiction_from_currency(None) == "generico"
        assert jurisdiction_from_currency("") == "generico"

    def test_custom_table(self):
        assert jurisdiction_from_currency("usd", table={"usd": "us"}) == "us"


class TestMonthFromFilename:
    """Tests for reporting month inference."""

    def test_spanish_name(self):
        inference = month_from_filename("Invoice_Summary_Diciembre.xlsx")
        assert inference.month == 12
        assert inference.from_filename is True
        assert inference.token == "diciembre"

    def test_english_abbreviation(self):
        assert month_from_filename("summary-dec-2025.xlsx").month == 12
        assert month_from_filename("summary_SEP.xlsx").month == 9

    def test_whitespace_separated(self):
        assert month_from_filename("Reporte enero 2026.xlsx").month == 1

    def test_first_matching_token_wins(self):
        assert month_from_filename("marzo_to_april.xlsx").month == 3

    def test_tokens_must_match_exactly(self):
        inference = month_from_filename("Marathon_report.xlsx", today=date(2025, 7, 3))
        assert inference.month == 7
        assert inference.from_filename is False

    def test_fallback_uses_clock(self):
        inference = month_from_filename("invoice_summary.xlsx", today=date(2024, 2, 10))
        assert inference.month == 2
        assert inference.from_filename is False
        assert inference.token is None

    def test_strict_raises(self):
        with pytest.raises(MonthNotFound):
            month_from_filename("invoice_summary.xlsx", strict=True)


class TestParseMonthArgument:
    def test_numbers(self):
        assert parse_month_argument("01") == 1
        assert parse_month_argument("12") == 12
        assert parse_month_argument(7) == 7

    def test_names(self):
        assert parse_month_argument("Diciembre") == 12
        assert parse_month_argument("june") == 6

    def test_invalid(self):
        assert parse_month_argument("13") is None
        assert parse_month_argument("0") is None
        assert parse_month_argument("foo") is None


class TestCellValues:
    """Tests for cell value helpers."""

    def test_cell_text(self):
        assert cell_text(None) is None
        assert cell_text(100.0) == "100.0"
        assert cell_text(12345) == "12345"
        assert cell_text(datetime(2025, 12, 31)) == "2025-12-31"
        assert cell_text(date(2025, 1, 2)) == "2025-01-02"

    def test_is_blank(self):
        assert is_blank(None)
        assert is_blank("   ")
        assert not is_blank(0)
        assert not is_blank("x")

    def test_parse_amount(self):
        assert parse_amount(1000) == 1000.0
        assert parse_amount(" 12.5 ") == 12.5
        assert parse_amount("-3") == -3.0
        assert parse_amount("1,000") is None
        assert parse_amount("abc") is None
        assert parse_amount("nan") is None
        assert parse_amount(float("inf")) is None
        assert parse_amount("") is None
        assert parse_amount(None) is None

    def test_spanish_month_name(self):
        assert spanish_month_name(1) == "Enero"
        assert spanish_month_name(12) == "Diciembre"
        assert spanish_month_name(13) == ""
