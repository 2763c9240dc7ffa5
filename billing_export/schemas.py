"""
Pydantic models for spreadsheet records, generated rows and run results.

This module defines the core data structures used throughout the pipeline:
- SummaryRecord and LedgerRecord for rows read from the input workbooks
- OutputRow and OutputRowPair for the accounting import document
- InvoiceRecord for the canonical record upserted into the invoice store
- Result models (read, validation, run) so that failures travel as data
"""

from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from .canonicalizer import cell_text, parse_amount
from .config import DocumentKind


# Raw amount cell: numeric when the sheet typed it, text otherwise
Amount = Optional[Union[float, int, str]]


# ============================================================================
# Input Records
# ============================================================================

class SummaryRecord(BaseModel):
    """
    One row of the monthly Invoice Summary sheet.

    Field aliases are the sheet's column headers (trimmed). Amounts keep the
    raw cell value so that a malformed amount is reported by validation
    instead of failing while the sheet is being read.
    """

    # ========================================================================
    # Identifiers
    # ========================================================================
    invoice_number: str = Field(
        ...,
        alias="Invoice #",
        description="Upstream invoice number, exactly as it appears in the sheet",
    )
    invoice_date: Optional[str] = Field(
        None,
        alias="Invoice Date",
        description="Invoice date; footer rows carry TOTAL here",
    )

    # ========================================================================
    # Parties
    # ========================================================================
    agency: str = Field(..., alias="Agency", description="Billed counterparty")
    client: str = Field(..., alias="Client", description="Advertiser on whose behalf the agency buys")

    # ========================================================================
    # Order Details
    # ========================================================================
    channel: Optional[str] = Field(None, alias="Channel")
    order_reference: Optional[str] = Field(None, alias="Order Reference")
    gross_amount: Amount = Field(None, alias="Gross Invoice")
    net_amount: Amount = Field(None, alias="Net Invoice")
    currency: Optional[str] = Field(None, alias="Currency")

    # ========================================================================
    # Extension Fields
    # ========================================================================
    product: Optional[str] = Field(None, alias="Product")
    feed: Optional[str] = Field(None, alias="Feed")
    campaign_number: Optional[str] = Field(None, alias="Campaign #")
    commission_percent: Amount = Field(None, alias="Comm %")
    commission_amount: Amount = Field(None, alias="Commission")
    sales_executive: Optional[str] = Field(None, alias="Sales Exec.")
    system_source: Optional[str] = Field(None, alias="System")
    spot_count: Amount = Field(None, alias="Spot Count")
    business_type: Optional[str] = Field(None, alias="Business Type")
    document_type: Optional[str] = Field(None, alias="Type")
    company_code: Optional[str] = Field(None, alias="Company Code")
    channel_by_feed: Optional[str] = Field(None, alias="Channel by Feed")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
        "json_schema_extra": {
            "examples": [
                {
                    "Invoice #": "20251230070",
                    "Invoice Date": "2025-12-31",
                    "Agency": "Media Partners SA",
                    "Client": "Acme Foods",
                    "Channel": "Universal Channel",
                    "Order Reference": "OR-5531",
                    "Gross Invoice": 125000.0,
                    "Net Invoice": 106250.0,
                    "Currency": "ARS",
                }
            ]
        },
    }

    @field_validator("invoice_number", mode="before")
    @classmethod
    def coerce_invoice_number(cls, v):
        """Numeric cells become text; the value is otherwise kept verbatim."""
        return cell_text(v)

    @field_validator(
        "invoice_date", "agency", "client", "channel", "order_reference", "currency",
        "product", "feed", "campaign_number", "sales_executive", "system_source",
        "business_type", "document_type", "company_code", "channel_by_feed",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v):
        text = cell_text(v)
        return text.strip() if text is not None else None

    @property
    def gross_value(self) -> float:
        """Gross amount as a number; blank or malformed amounts count as 0."""
        value = parse_amount(self.gross_amount)
        return value if value is not None else 0.0


class LedgerRecord(BaseModel):
    """One row of the accounting ledger export used for reconciliation."""
    document_id: Optional[str] = Field(None, alias="Comprobante", description="Assigned document number")
    counterparty: Optional[str] = Field(None, alias="Cliente")
    memo: Optional[str] = Field(None, alias="Observaciones", description="Free text embedding the invoice number")
    gross_amount: Amount = Field(None, alias="Importe Bruto")
    date: Optional[str] = Field(None, alias="Fecha")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("document_id", "counterparty", "memo", "date", mode="before")
    @classmethod
    def coerce_text(cls, v):
        text = cell_text(v)
        return text.strip() if text is not None else None


# ============================================================================
# Generated Rows
# ============================================================================

class OutputRow(BaseModel):
    """
    One row of the accounting import sheet.

    Aliases are the import column names. Fields not used by a row are left
    as empty strings, which the writer emits as empty cells.
    """
    control_number: int = Field(..., alias="NUMERODECONTROL")
    counterparty: str = Field("", alias="CLIENTE")
    document_type: Union[int, str] = Field("", alias="TIPO")
    document_number: str = Field("", alias="NUMERO")
    issue_date: str = Field("", alias="FECHA")
    due_date: str = Field("", alias="VENCIMIENTODELCOBRO")
    associated_document: str = Field("", alias="COMPROBANTEASOCIADO")
    currency_label: str = Field("", alias="MONEDA")
    exchange_rate: str = Field("", alias="COTIZACION")
    memo: str = Field("", alias="OBSERVACIONES")
    service_label: str = Field("", alias="PRODUCTOSERVICIO")
    cost_center: str = Field("", alias="CENTRODECOSTO")
    description: str = Field("", alias="PRODUCTOOBSERVACION")
    quantity: Union[int, str] = Field("", alias="CANTIDAD")
    unit_price: Union[float, str] = Field("", alias="PRECIO")
    discount: str = Field("", alias="DESCUENTO")
    amount: Union[float, str] = Field("", alias="IMPORTE")
    tax: Union[float, str] = Field("", alias="IVA")

    model_config = {"populate_by_name": True}


class OutputRowPair(BaseModel):
    """Header and detail rows emitted for one qualifying record."""
    control_number: int = Field(..., ge=1)
    header: OutputRow
    detail: OutputRow

    def rows(self) -> list[OutputRow]:
        return [self.header, self.detail]


# ============================================================================
# Invoice Store Record
# ============================================================================

class InvoiceRecord(BaseModel):
    """Canonical invoice, keyed by (invoice_number, country) in the store."""
    invoice_number: str = Field(..., min_length=1, description="Normalized invoice number")
    country: str = Field(..., description="Jurisdiction tag")
    invoice_date: str = Field(..., description="Last day of the reporting month (ISO)")
    exhibition_month: str = Field(..., description="Reporting period as YYYY-MM")
    gross_value: Optional[float] = None
    net_value: Optional[float] = None
    channel: Optional[str] = None
    agency: str
    order_reference: Optional[str] = None
    client_id: Optional[str] = None
    product: Optional[str] = None
    feed: Optional[str] = None
    campaign_number: Optional[str] = None
    commission_percent: Optional[float] = None
    commission_amount: Optional[float] = None
    sales_executive: Optional[str] = None
    system_source: Optional[str] = None
    spot_count: Optional[float] = None
    business_type: Optional[str] = None
    document_type: Optional[str] = None
    company_code: Optional[str] = None
    channel_by_feed: Optional[str] = None
    due_date: Optional[str] = None
    assigned_invoice_number: Optional[str] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.invoice_number, self.country)


# ============================================================================
# Result Models
# ============================================================================

class SummaryReadResult(BaseModel):
    """Outcome of reading the Invoice Summary sheet."""
    ok: bool
    sheet_name: str
    records: list[SummaryRecord] = Field(default_factory=list)
    error_code: Optional[str] = None
    error: Optional[str] = None
    skipped_total_rows: int = Field(0, ge=0)
    skipped_incomplete_rows: int = Field(0, ge=0)


class LedgerReadResult(BaseModel):
    """Outcome of reading the ledger export."""
    ok: bool
    sheet_name: Optional[str] = None
    records: list[LedgerRecord] = Field(default_factory=list)
    error_code: Optional[str] = None
    error: Optional[str] = None
    skipped_rows: int = Field(0, ge=0)


class RowValidationResult(BaseModel):
    """
    Validation outcome for one record.

    row_number is 1-based; field and error_code are set only on failure.
    """
    row_number: int = Field(..., ge=1)
    is_valid: bool
    field: Optional[str] = None
    error_code: Optional[str] = None
    message: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "row_number": 3,
                    "is_valid": False,
                    "field": "gross_amount",
                    "error_code": "format_error:gross_amount",
                    "message": "Row 3: 'Gross Invoice' is not a valid number",
                }
            ]
        }
    }


class BatchValidationResult(BaseModel):
    """Fail-fast validation of a whole batch; failure is the first bad row."""
    is_valid: bool
    checked: int = Field(..., ge=0, description="Records checked before stopping")
    total: int = Field(..., ge=0)
    failure: Optional[RowValidationResult] = None


class RunReport(BaseModel):
    """Summary of a completed billing or credit-note run."""
    document_kind: DocumentKind
    artifact_name: str
    jurisdiction: str
    month: int = Field(..., ge=1, le=12)
    year: int
    month_source: str = Field(..., description="\"filename\", \"argument\" or \"current_month\"")
    records_read: int = Field(0, ge=0)
    pairs_generated: int = Field(0, ge=0)
    invoices_inserted: int = Field(0, ge=0)
    invoices_updated: int = Field(0, ge=0)
    invoices_reconciled: int = Field(0, ge=0)

    @property
    def message(self) -> str:
        return f"Generated {self.artifact_name} with {self.pairs_generated} document(s)"
