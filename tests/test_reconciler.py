"""
Tests for ledger reconciliation.
"""

import pytest

from billing_export.reconciler import build_reconciliation_map, extract_invoice_reference, lookup
from billing_export.schemas import LedgerRecord


def ledger(document_id, memo):
    return LedgerRecord(document_id=document_id, memo=memo)


class TestExtractInvoiceReference:
    """Tests for memo reference extraction."""

    def test_extracts_digits(self):
        memo = "Certificacion 20251230070 / Universal Channel / Acme"
        assert extract_invoice_reference(memo) == "20251230070"

    def test_case_insensitive(self):
        assert extract_invoice_reference("CERTIFICACION   42 / x") == "42"
        assert extract_invoice_reference("ref certificacion 7") == "7"

    def test_requires_whitespace_and_digits(self):
        assert extract_invoice_reference("Certificacion20251230070") is None
        assert extract_invoice_reference("Certificacion ABC") is None
        assert extract_invoice_reference("Factura 123") is None

    def test_empty(self):
        assert extract_invoice_reference(None) is None
        assert extract_invoice_reference("") is None


class TestBuildReconciliationMap:
    """Tests for the invoice number -> document id map."""

    def test_key_from_memo(self):
        mapping = build_reconciliation_map([ledger("FC-9", "Certificacion 20251230070 / X / Y")])
        assert dict(mapping) == {"20251230070": "FC-9"}

    def test_skips_rows_without_reference_or_document(self):
        mapping = build_reconciliation_map([
            ledger("FC-1", "Sin referencia"),
            ledger(None, "Certificacion 5"),
            ledger("FC-3", "Certificacion 6"),
        ])
        assert dict(mapping) == {"6": "FC-3"}

    def test_last_write_wins(self):
        mapping = build_reconciliation_map([
            ledger("FC-1", "Certificacion 100 / a"),
            ledger("FC-2", "Certificacion 100 / b"),
        ])
        assert mapping["100"] == "FC-2"

    def test_read_only(self):
        mapping = build_reconciliation_map([ledger("FC-1", "Certificacion 1")])
        with pytest.raises(TypeError):
            mapping["2"] = "FC-2"


class TestLookup:
    def test_normalizes_invoice_number(self):
        mapping = build_reconciliation_map([ledger("FC-1", "Certificacion 100 / Ch")])

        assert lookup(mapping, "100.0") == "FC-1"
        assert lookup(mapping, 100) == "FC-1"
        assert lookup(mapping, " 100 ") == "FC-1"

    def test_not_matched(self):
        mapping = build_reconciliation_map([ledger("FC-1", "Certificacion 100")])
        assert lookup(mapping, "101") is None
