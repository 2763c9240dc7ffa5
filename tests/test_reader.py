"""
Tests for the workbook reader module.
"""

from datetime import datetime

from billing_export.reader import read_invoice_summary, read_ledger_export


class TestReadInvoiceSummary:
    """Tests for Invoice Summary parsing."""

    def test_reads_records(self, summary_workbook, summary_row):
        result = read_invoice_summary(summary_workbook([summary_row]))

        assert result.ok is True
        assert len(result.records) == 1
        record = result.records[0]
        assert record.invoice_number == "100.0"
        assert record.agency == "AgencyA"
        assert record.client == "ClientB"
        assert record.channel == "Ch"
        assert record.order_reference == "Ref"
        assert record.gross_amount == 1000
        assert record.net_amount == 850
        assert record.currency == "ARS"

    def test_header_with_trailing_space(self, summary_workbook, summary_row):
        summary_row["Gross Invoice"] = 1234.5
        result = read_invoice_summary(summary_workbook([summary_row]))
        assert result.records[0].gross_value == 1234.5

    def test_numeric_invoice_cells_become_text(self, summary_workbook, summary_row):
        first = dict(summary_row, **{"Invoice #": 20251230070})
        second = dict(summary_row, **{"Invoice #": " 100.0 "})
        result = read_invoice_summary(summary_workbook([first, second]))

        assert result.records[0].invoice_number == "20251230070"
        # Text cells are kept verbatim; normalization happens downstream
        assert result.records[1].invoice_number == " 100.0 "

    def test_total_rows_skipped_any_case(self, summary_workbook, summary_row):
        rows = [
            summary_row,
            dict(summary_row, **{"Invoice Date": "TOTAL", "Invoice #": "999"}),
            dict(summary_row, **{"Invoice Date": "  total ", "Invoice #": "998"}),
            dict(summary_row, **{"Invoice Date": "Total", "Invoice #": "997"}),
        ]
        result = read_invoice_summary(summary_workbook(rows))

        assert [r.invoice_number for r in result.records] == ["100.0"]
        assert result.skipped_total_rows == 3

    def test_incomplete_rows_skipped(self, summary_workbook, summary_row):
        rows = [
            dict(summary_row, **{"Invoice #": None}),
            dict(summary_row, **{"Agency": "   "}),
            dict(summary_row, **{"Client": None}),
            dict(summary_row, **{"Invoice #": "101"}),
        ]
        result = read_invoice_summary(summary_workbook(rows))

        assert [r.invoice_number for r in result.records] == ["101"]
        assert result.skipped_incomplete_rows == 3

    def test_blank_rows_ignored(self, summary_workbook, summary_row):
        result = read_invoice_summary(summary_workbook([summary_row, {}, summary_row]))
        assert len(result.records) == 2
        assert result.skipped_incomplete_rows == 0

    def test_dates_become_iso_text(self, summary_workbook, summary_row):
        summary_row["Invoice Date"] = datetime(2025, 12, 15)
        result = read_invoice_summary(summary_workbook([summary_row]))
        assert result.records[0].invoice_date == "2025-12-15"

    def test_malformed_amount_kept_for_validation(self, summary_workbook, summary_row):
        summary_row["Gross Invoice"] = "n/a"
        result = read_invoice_summary(summary_workbook([summary_row]))

        assert result.ok is True
        assert result.records[0].gross_amount == "n/a"

    def test_extension_columns(self, summary_workbook, summary_row):
        headers = ["Invoice #", "Agency", "Client", "Campaign #", "Comm %", "Sales Exec.", "Channel by Feed"]
        row = dict(summary_row, **{
            "Campaign #": 5531,
            "Comm %": 15,
            "Sales Exec.": "J. Perez",
            "Channel by Feed": "UC Feed",
        })
        result = read_invoice_summary(summary_workbook([row], headers=headers))
        record = result.records[0]

        assert record.campaign_number == "5531"
        assert record.commission_percent == 15
        assert record.sales_executive == "J. Perez"
        assert record.channel_by_feed == "UC Feed"
        assert record.gross_amount is None

    def test_custom_header_offset(self, summary_workbook, summary_row):
        data = summary_workbook([summary_row], offset=0)
        assert len(read_invoice_summary(data, header_offset=0).records) == 1

    def test_missing_sheet(self, summary_workbook, summary_row):
        result = read_invoice_summary(summary_workbook([summary_row], sheet_name="Sheet1"))

        assert result.ok is False
        assert result.error_code == "missing_sheet"
        assert "Invoice Summary" in result.error
        assert result.records == []

    def test_unreadable_bytes(self):
        result = read_invoice_summary(b"this is not a workbook")

        assert result.ok is False
        assert result.error_code == "unreadable_workbook"


class TestReadLedgerExport:
    """Tests for ledger export parsing."""

    def test_reads_first_sheet(self, ledger_workbook):
        data = ledger_workbook([
            {
                "Comprobante": "FC-1",
                "Cliente": "AgencyA",
                "Observaciones": "Certificacion 100 / Ch / ClientB / Ref",
                "Importe Bruto": 1210,
                "Fecha": "2025-12-31",
            }
        ])
        result = read_ledger_export(data)

        assert result.ok is True
        assert result.sheet_name == "hoja1"
        assert len(result.records) == 1
        record = result.records[0]
        assert record.document_id == "FC-1"
        assert record.counterparty == "AgencyA"
        assert record.memo.startswith("Certificacion 100")
        assert record.gross_amount == 1210

    def test_requires_document_id_and_memo(self, ledger_workbook):
        data = ledger_workbook([
            {"Comprobante": "FC-1", "Observaciones": None},
            {"Comprobante": None, "Observaciones": "Certificacion 5"},
            {"Comprobante": "FC-3", "Observaciones": "Certificacion 6"},
        ])
        result = read_ledger_export(data)

        assert [r.document_id for r in result.records] == ["FC-3"]
        assert result.skipped_rows == 2

    def test_unreadable_bytes(self):
        result = read_ledger_export(b"")
        assert result.ok is False
        assert result.error_code == "unreadable_workbook"
