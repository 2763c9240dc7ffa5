"""
Billing Export

Turns a monthly Invoice Summary workbook into accounting import documents
(billing and credit notes), reconciling against the ledger export and
upserting canonical invoice records.
"""

__version__ = "0.1.0"
__author__ = "Billing Export Team"

from .schemas import SummaryRecord, LedgerRecord, OutputRow, OutputRowPair, InvoiceRecord, RunReport
from .reader import read_invoice_summary, read_ledger_export
from .validator import validate_record, validate_batch
from .pipeline import run_billing, run_credit_notes

__all__ = [
    "SummaryRecord",
    "LedgerRecord",
    "OutputRow",
    "OutputRowPair",
    "InvoiceRecord",
    "RunReport",
    "read_invoice_summary",
    "read_ledger_export",
    "validate_record",
    "validate_batch",
    "run_billing",
    "run_credit_notes",
]
