"""
Serialization of generated rows into the accounting import workbook.
"""

import io
from typing import Sequence

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from .config import OUTPUT_COLUMNS, OUTPUT_SHEET_NAME, logger
from .schemas import OutputRow


def write_workbook(rows: Sequence[OutputRow]) -> bytes:
    """
    Write rows into a single-sheet workbook and return its bytes.

    The first row holds the column names in import order; each following
    row is one OutputRow. Empty-string fields are written as empty cells.
    Billing and credit-note documents both go through here.
    """
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = OUTPUT_SHEET_NAME

    column_names = [name for name, _ in OUTPUT_COLUMNS]
    sheet.append(column_names)

    for row in rows:
        values = row.model_dump(by_alias=True)
        sheet.append([
            None if values[name] == "" else values[name]
            for name in column_names
        ])

    for index, (_, width) in enumerate(OUTPUT_COLUMNS, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width

    buffer = io.BytesIO()
    workbook.save(buffer)

    logger.info(f"Wrote workbook with {len(rows)} rows")
    return buffer.getvalue()
