"""
Workbook reading for the Invoice Summary and the ledger export.

This module provides functionality to:
- Load a workbook from raw bytes using openpyxl
- Locate the header row and turn each data row into a typed record
- Drop footer (TOTAL) rows and rows missing identifying fields
- Report a missing sheet or unreadable file as a failed result
"""

import io
from datetime import date, datetime, time
from typing import Any, Iterator, Optional
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import ValidationError

from .canonicalizer import cell_text, is_blank
from .config import (
    ErrorCategory,
    HEADER_ROW_OFFSET,
    INVOICE_SUMMARY_SHEET,
    REQUIRED_SUMMARY_FIELDS,
    STATUS_COLUMN,
    TOTAL_TOKEN,
    logger,
)
from .schemas import LedgerRecord, LedgerReadResult, SummaryReadResult, SummaryRecord


LEDGER_REQUIRED_FIELDS = ("document_id", "memo")


# ============================================================================
# Sheet Helpers
# ============================================================================

def _open_workbook(data: bytes):
    """Load a workbook from bytes in read-only, cached-values mode."""
    return load_workbook(io.BytesIO(data), read_only=True, data_only=True)


def _cell_value(value: Any) -> Any:
    """Dates become ISO text; everything else is passed through."""
    if isinstance(value, (datetime, date, time)):
        return cell_text(value)
    return value


def _iter_sheet_rows(sheet, header_offset: int) -> Iterator[dict[str, Any]]:
    """
    Yield each data row as a dict keyed by trimmed column header.

    The header is the first row after `header_offset` skipped rows. Columns
    without a header are ignored and completely blank rows are skipped.
    """
    rows = sheet.iter_rows(min_row=header_offset + 1, values_only=True)

    headers: Optional[list[Optional[str]]] = None
    for row in rows:
        if headers is None:
            headers = [
                cell_text(h).strip() if not is_blank(h) else None
                for h in row
            ]
            continue

        if all(is_blank(v) for v in row):
            continue

        yield {
            header: _cell_value(value)
            for header, value in zip(headers, row)
            if header
        }


def _alias(model, field_name: str) -> str:
    return model.model_fields[field_name].alias or field_name


# ============================================================================
# Invoice Summary
# ============================================================================

def read_invoice_summary(
    data: bytes,
    sheet_name: str = INVOICE_SUMMARY_SHEET,
    header_offset: int = HEADER_ROW_OFFSET,
) -> SummaryReadResult:
    """
    Parse the Invoice Summary sheet into SummaryRecords.

    Two independent skip rules apply to data rows:
    - the status column ("Invoice Date") equals TOTAL, ignoring case and
      surrounding whitespace
    - invoice number, agency or client is blank

    Args:
        data: Raw workbook bytes
        sheet_name: Name of the sheet to read
        header_offset: Rows to skip before the header row

    Returns:
        SummaryReadResult; on failure ok is False and error_code is set
    """
    try:
        workbook = _open_workbook(data)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as e:
        logger.error(f"Could not open invoice summary workbook: {e}")
        return SummaryReadResult(
            ok=False,
            sheet_name=sheet_name,
            error_code=ErrorCategory.UNREADABLE_WORKBOOK.value,
            error=f"Could not open workbook: {e}",
        )

    try:
        if sheet_name not in workbook.sheetnames:
            logger.error(f"Sheet '{sheet_name}' not found; available: {workbook.sheetnames}")
            return SummaryReadResult(
                ok=False,
                sheet_name=sheet_name,
                error_code=ErrorCategory.MISSING_SHEET.value,
                error=f"Sheet '{sheet_name}' not found in workbook",
            )

        required_headers = [_alias(SummaryRecord, name) for name in REQUIRED_SUMMARY_FIELDS]
        records: list[SummaryRecord] = []
        skipped_total = 0
        skipped_incomplete = 0

        for position, row in enumerate(_iter_sheet_rows(workbook[sheet_name], header_offset)):
            status = cell_text(row.get(STATUS_COLUMN))
            if status is not None and status.strip().upper() == TOTAL_TOKEN:
                skipped_total += 1
                continue

            if any(is_blank(row.get(header)) for header in required_headers):
                skipped_incomplete += 1
                continue

            try:
                records.append(SummaryRecord.model_validate(row))
            except ValidationError as e:
                logger.error(f"Could not parse summary data row {position + 1}: {e}")
                return SummaryReadResult(
                    ok=False,
                    sheet_name=sheet_name,
                    error_code=f"{ErrorCategory.FORMAT_ERROR.value}:row",
                    error=f"Data row {position + 1} could not be parsed: {e}",
                )
    finally:
        workbook.close()

    logger.info(
        f"Read {len(records)} summary records from '{sheet_name}' "
        f"(skipped {skipped_total} total rows, {skipped_incomplete} incomplete rows)"
    )

    return SummaryReadResult(
        ok=True,
        sheet_name=sheet_name,
        records=records,
        skipped_total_rows=skipped_total,
        skipped_incomplete_rows=skipped_incomplete,
    )


# ============================================================================
# Ledger Export
# ============================================================================

def read_ledger_export(data: bytes) -> LedgerReadResult:
    """
    Parse the ledger export into LedgerRecords.

    The first sheet is used whatever its name, with headers in the first
    row. Rows without both a document id and a memo are discarded.
    """
    try:
        workbook = _open_workbook(data)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as e:
        logger.error(f"Could not open ledger workbook: {e}")
        return LedgerReadResult(
            ok=False,
            error_code=ErrorCategory.UNREADABLE_WORKBOOK.value,
            error=f"Could not open workbook: {e}",
        )

    try:
        if not workbook.worksheets:
            return LedgerReadResult(
                ok=False,
                error_code=ErrorCategory.MISSING_SHEET.value,
                error="Ledger workbook has no sheets",
            )

        sheet = workbook.worksheets[0]
        required_headers = [_alias(LedgerRecord, name) for name in LEDGER_REQUIRED_FIELDS]
        records: list[LedgerRecord] = []
        skipped = 0

        for row in _iter_sheet_rows(sheet, header_offset=0):
            if any(is_blank(row.get(header)) for header in required_headers):
                skipped += 1
                continue
            records.append(LedgerRecord.model_validate(row))
    finally:
        workbook.close()

    logger.info(f"Read {len(records)} ledger records from '{sheet.title}' (skipped {skipped})")

    return LedgerReadResult(
        ok=True,
        sheet_name=sheet.title,
        records=records,
        skipped_rows=skipped,
    )
