"""
Shared fixtures: in-memory workbook builders for the input and output formats.
"""

import io
from typing import Any, Optional

import pytest
from openpyxl import Workbook, load_workbook


# The source sheet really spells this header with a trailing space
SUMMARY_HEADERS = [
    "Invoice #",
    "Invoice Date",
    "Agency",
    "Client",
    "Channel",
    "Order Reference",
    "Gross Invoice ",
    "Net Invoice",
    "Currency",
]

LEDGER_HEADERS = ["Comprobante", "Cliente", "Observaciones", "Importe Bruto", "Fecha"]


def _to_bytes(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def make_summary_workbook(
    rows: list[dict[str, Any]],
    sheet_name: str = "Invoice Summary",
    headers: Optional[list[str]] = None,
    offset: int = 5,
) -> bytes:
    """Build an Invoice Summary workbook; row dicts are keyed by trimmed header."""
    headers = headers or SUMMARY_HEADERS
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_name

    for line in range(offset):
        sheet.append([f"Report banner line {line + 1}"])
    sheet.append(headers)
    for row in rows:
        sheet.append([row.get(header.strip()) for header in headers])

    return _to_bytes(workbook)


def make_ledger_workbook(rows: list[dict[str, Any]], sheet_name: str = "hoja1") -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_name
    sheet.append(LEDGER_HEADERS)
    for row in rows:
        sheet.append([row.get(header) for header in LEDGER_HEADERS])
    # Extra sheet that must be ignored
    workbook.create_sheet("Otros").append(["Comprobante", "Observaciones"])
    return _to_bytes(workbook)


def read_output_workbook(data: bytes) -> tuple[list[str], list[dict[str, Any]]]:
    """Column names and rows (as dicts) of a generated workbook."""
    workbook = load_workbook(io.BytesIO(data))
    sheet = workbook.active
    values = list(sheet.iter_rows(values_only=True))
    columns = list(values[0])
    return columns, [dict(zip(columns, row)) for row in values[1:]]


@pytest.fixture
def summary_row() -> dict[str, Any]:
    """A valid summary row keyed by trimmed header."""
    return {
        "Invoice #": "100.0",
        "Invoice Date": "2025-12-15",
        "Agency": "AgencyA",
        "Client": "ClientB",
        "Channel": "Ch",
        "Order Reference": "Ref",
        "Gross Invoice": 1000,
        "Net Invoice": 850,
        "Currency": "ARS",
    }


@pytest.fixture
def summary_workbook():
    return make_summary_workbook


@pytest.fixture
def ledger_workbook():
    return make_ledger_workbook


@pytest.fixture
def output_reader():
    return read_output_workbook
