"""
Reconciliation of summary invoices against the ledger export.

Each ledger row's memo embeds the upstream invoice number as
"Certificacion <digits>". The map built here takes a normalized invoice
number to the document id the accounting system assigned.
"""

import re
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from .canonicalizer import normalize_invoice_number
from .config import LEDGER_REFERENCE_PATTERN, logger
from .schemas import LedgerRecord


REFERENCE_PATTERN = re.compile(LEDGER_REFERENCE_PATTERN, re.IGNORECASE)

ReconciliationMap = Mapping[str, str]


def extract_invoice_reference(memo: Optional[str]) -> Optional[str]:
    """
    Extract the invoice number embedded in a ledger memo.

    Example: "Certificacion 20251230070 / Universal Channel / ..." -> "20251230070"
    """
    if not memo:
        return None
    match = REFERENCE_PATTERN.search(memo)
    return match.group(1) if match else None


def build_reconciliation_map(records: Iterable[LedgerRecord]) -> ReconciliationMap:
    """
    Build a read-only normalized invoice number -> document id map.

    Rows without a reference or a document id are skipped. When several rows
    reference the same invoice, the last one in source order wins.
    """
    mapping: dict[str, str] = {}
    skipped = 0

    for record in records:
        reference = extract_invoice_reference(record.memo)
        if not reference or not record.document_id:
            skipped += 1
            continue

        key = normalize_invoice_number(reference)
        previous = mapping.get(key)
        if previous is not None and previous != record.document_id:
            logger.warning(
                f"Invoice {key} referenced by {previous} and {record.document_id}; keeping {record.document_id}"
            )
        mapping[key] = record.document_id

    logger.info(f"Reconciliation map built with {len(mapping)} entries ({skipped} ledger rows without reference)")
    return MappingProxyType(mapping)


def lookup(mapping: ReconciliationMap, invoice_number) -> Optional[str]:
    """Document id for an invoice number, or None when it is not matched."""
    return mapping.get(normalize_invoice_number(invoice_number))
