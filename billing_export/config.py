"""
Configuration constants, lookup tables and enums for the billing export pipeline.
"""

import logging
import os
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Final, Mapping

# ============================================================================
# Source Workbook Layout
# ============================================================================

INVOICE_SUMMARY_SHEET: Final[str] = os.getenv("INVOICE_SUMMARY_SHEET", "Invoice Summary")

# Rows skipped before the header row (header is the 6th row of the sheet)
HEADER_ROW_OFFSET: Final[int] = int(os.getenv("HEADER_ROW_OFFSET", "5"))

# Column holding the invoice date; footer rows carry "TOTAL" here
STATUS_COLUMN: Final[str] = "Invoice Date"
TOTAL_TOKEN: Final[str] = "TOTAL"

# Field names whose blank value drops the row at read time
REQUIRED_SUMMARY_FIELDS: Final[tuple[str, ...]] = ("invoice_number", "agency", "client")

# ============================================================================
# Lookup Tables
# ============================================================================

MONTH_NAMES: Final[Mapping[str, int]] = MappingProxyType({
    "enero": 1, "january": 1, "jan": 1,
    "febrero": 2, "february": 2, "feb": 2,
    "marzo": 3, "march": 3, "mar": 3,
    "abril": 4, "april": 4, "apr": 4,
    "mayo": 5, "may": 5,
    "junio": 6, "june": 6, "jun": 6,
    "julio": 7, "july": 7, "jul": 7,
    "agosto": 8, "august": 8, "aug": 8,
    "septiembre": 9, "september": 9, "sep": 9,
    "octubre": 10, "october": 10, "oct": 10,
    "noviembre": 11, "november": 11, "nov": 11,
    "diciembre": 12, "december": 12, "dec": 12,
})

SPANISH_MONTHS: Final[tuple[str, ...]] = (
    "",
    "Enero",
    "Febrero",
    "Marzo",
    "Abril",
    "Mayo",
    "Junio",
    "Julio",
    "Agosto",
    "Septiembre",
    "Octubre",
    "Noviembre",
    "Diciembre",
)

# Currency (or country) code -> jurisdiction tag
CURRENCY_JURISDICTIONS: Final[Mapping[str, str]] = MappingProxyType({
    "ars": "ar",  # Argentine Peso
    "mxn": "mx",  # Mexican Peso
    "clp": "cl",  # Chilean Peso
    "ar": "ar",
    "mx": "mx",
    "cl": "cl",
})

FALLBACK_JURISDICTION: Final[str] = "generico"

# Credit notes are only issued where the ledger export exists
CREDIT_NOTE_JURISDICTIONS: Final[frozenset[str]] = frozenset({"ar"})

# ============================================================================
# Accounting Import Format
# ============================================================================

TAX_RATE: Final[Decimal] = Decimal(os.getenv("TAX_RATE", "0.21"))
CENT: Final[Decimal] = Decimal("0.01")

DOCUMENT_TYPE_INVOICE: Final[int] = 1
DOCUMENT_TYPE_CREDIT_NOTE: Final[int] = 3

DOCUMENT_NUMBER_TEMPLATE: Final[str] = "A-00002-00000000"
CURRENCY_LABEL: Final[str] = "Pesos Argentinos"
SERVICE_LABEL: Final[str] = "Servicio Publicidad"
COST_CENTER_LABEL: Final[str] = "NBCU ON AIR"
CREDIT_NOTE_EXCHANGE_RATE: Final[str] = "1"
CREDIT_NOTE_DISCOUNT: Final[str] = "0"

# Memo text; "Certificacion <digits>" is what the reconciler looks for later
MEMO_TEMPLATE: Final[str] = "Certificacion {invoice_number} / {channel} / {client} / {order_reference}"
LEDGER_REFERENCE_PATTERN: Final[str] = r"Certificacion\s+(\d+)"

# Output columns in import order, with display widths
OUTPUT_COLUMNS: Final[tuple[tuple[str, int], ...]] = (
    ("NUMERODECONTROL", 18),
    ("CLIENTE", 40),
    ("TIPO", 6),
    ("NUMERO", 20),
    ("FECHA", 12),
    ("VENCIMIENTODELCOBRO", 20),
    ("COMPROBANTEASOCIADO", 20),
    ("MONEDA", 18),
    ("COTIZACION", 12),
    ("OBSERVACIONES", 80),
    ("PRODUCTOSERVICIO", 25),
    ("CENTRODECOSTO", 15),
    ("PRODUCTOOBSERVACION", 25),
    ("CANTIDAD", 10),
    ("PRECIO", 15),
    ("DESCUENTO", 12),
    ("IMPORTE", 15),
    ("IVA", 15),
)

OUTPUT_SHEET_NAME: Final[str] = "Sheet1"

XLSX_CONTENT_TYPE: Final[str] = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class DocumentKind(str, Enum):
    """Generated document kinds; the value prefixes the artifact name."""
    BILLING = "Facturacion"
    CREDIT_NOTE = "NotasCredito"


# ============================================================================
# Error Code Prefixes
# ============================================================================

class ErrorCategory(str, Enum):
    """Categories for error codes."""
    MISSING_FIELD = "missing_field"
    FORMAT_ERROR = "format_error"
    MISSING_SHEET = "missing_sheet"
    UNREADABLE_WORKBOOK = "unreadable_workbook"


# ============================================================================
# Pipeline Behaviour
# ============================================================================

def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# When true, a filename without a month token is an error instead of
# falling back to the current calendar month
STRICT_MONTH_INFERENCE: Final[bool] = _env_flag("STRICT_MONTH_INFERENCE")

ARTIFACT_DIR: Final[str] = os.getenv("ARTIFACT_DIR", "processed")
INVOICE_STORE_PATH: Final[str] = os.getenv("INVOICE_STORE_PATH", "invoice_store.json")

# ============================================================================
# API Configuration
# ============================================================================

API_HOST: Final[str] = os.getenv("API_HOST", "0.0.0.0")
API_PORT: Final[int] = int(os.getenv("API_PORT", "8000"))
MAX_UPLOAD_SIZE_MB: Final[int] = int(os.getenv("MAX_UPLOAD_SIZE_MB", "10"))

# ============================================================================
# Logging Configuration
# ============================================================================

LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO")

def setup_logging() -> logging.Logger:
    """Configure and return the application logger."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("billing_export")


logger = setup_logging()
