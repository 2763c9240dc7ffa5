"""
Canonicalization of spreadsheet values.

This module turns raw cell values into the canonical forms the rest of the
pipeline relies on:
- Invoice numbers as trimmed text without the ".0" left by numeric cells
- Jurisdiction tags inferred from currency codes
- The reporting month inferred from the source filename
- Amounts parsed from numeric or text cells
"""

import math
import re
from datetime import date, datetime, time
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from .config import (
    CURRENCY_JURISDICTIONS,
    FALLBACK_JURISDICTION,
    MONTH_NAMES,
    SPANISH_MONTHS,
    logger,
)
from .errors import MonthNotFound


FILENAME_SEPARATORS = re.compile(r"[_\-.\s]+")


# ============================================================================
# Cell Values
# ============================================================================

def cell_text(value: Any) -> Optional[str]:
    """
    Convert a cell value to text.

    Numbers keep Python's repr, so a float cell holding an invoice number
    reads as "12345.0"; normalize_invoice_number removes that suffix.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def is_blank(value: Any) -> bool:
    """True for None and for values whose text is empty after trimming."""
    if value is None:
        return True
    text = cell_text(value)
    return text is None or text.strip() == ""


def parse_amount(value: Any) -> Optional[float]:
    """
    Parse a numeric cell or numeric text into a float.

    Returns None for blanks and for anything that is not a finite number.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    text = str(value).strip()
    if not text:
        return None

    try:
        number = float(text)
    except ValueError:
        return None

    return number if math.isfinite(number) else None


# ============================================================================
# Invoice Numbers
# ============================================================================

def normalize_invoice_number(value: Any) -> str:
    """
    Canonical text form of an invoice number.

    Trims whitespace and drops the trailing ".0" of a float-typed cell.
    Repeated suffixes are all dropped so that the result is a fixed point.
    """
    normalized = (cell_text(value) or "").strip()
    while normalized.endswith(".0"):
        normalized = normalized[:-2]
    return normalized


# ============================================================================
# Jurisdiction
# ============================================================================

def jurisdiction_from_currency(
    currency: Optional[str],
    table: Mapping[str, str] = CURRENCY_JURISDICTIONS,
    fallback: str = FALLBACK_JURISDICTION,
) -> str:
    """Map a currency or country code to a jurisdiction tag; unknown codes get the fallback."""
    code = (currency or "").strip().lower()
    jurisdiction = table.get(code)
    if jurisdiction is None:
        logger.warning(f"Unknown currency code '{currency}', using jurisdiction '{fallback}'")
        return fallback
    return jurisdiction


# ============================================================================
# Reporting Month
# ============================================================================

class MonthInference(BaseModel):
    """Reporting month and where it came from."""
    month: int = Field(..., ge=1, le=12)
    from_filename: bool = Field(
        ...,
        description="False when no month token was found and the current month was used",
    )
    token: Optional[str] = None


def month_from_filename(
    filename: str,
    months: Mapping[str, int] = MONTH_NAMES,
    today: Optional[date] = None,
    strict: bool = False,
) -> MonthInference:
    """
    Infer the reporting month from a filename such as "Invoice_Summary_Diciembre.xlsx".

    The filename is split on "_", "-", "." and whitespace and the first token
    found in the month table wins. Without a match the current calendar month
    is used (from_filename=False), which depends on the wall clock; pass
    strict=True to raise MonthNotFound instead, or `today` to pin the clock.

    Raises:
        MonthNotFound: If strict is set and no token names a month
    """
    for token in FILENAME_SEPARATORS.split(filename.lower()):
        if token in months:
            return MonthInference(month=months[token], from_filename=True, token=token)

    if strict:
        raise MonthNotFound(f"No month name found in filename '{filename}'")

    current = today or date.today()
    logger.warning(
        f"No month name in filename '{filename}', falling back to current month {current.month}"
    )
    return MonthInference(month=current.month, from_filename=False)


def parse_month_argument(value: Any, months: Mapping[str, int] = MONTH_NAMES) -> Optional[int]:
    """
    Parse an explicitly selected month: "1"-"12", "01"-"12" or a month name.

    Returns None when the value does not name a month.
    """
    text = str(value).strip().lower()
    if text.isdigit():
        number = int(text)
        return number if 1 <= number <= 12 else None
    return months.get(text)


def spanish_month_name(month: int) -> str:
    """Spanish month name used in descriptions and artifact names ("" when out of range)."""
    if 1 <= month <= 12:
        return SPANISH_MONTHS[month]
    return ""
