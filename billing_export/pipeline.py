"""
Billing and credit-note runs.

This module orchestrates the pipeline for one reporting period:

    read -> validate -> canonicalize -> [reconcile] -> generate -> write

and performs the external effects (invoice upserts, artifact upload)
through the ports it is given. Failed read/validation results are turned
into PipelineError subclasses here; nothing is written once validation
has failed.
"""

from datetime import date
from typing import AbstractSet, Any, Callable, Optional

from .canonicalizer import (
    MonthInference,
    jurisdiction_from_currency,
    month_from_filename,
    normalize_invoice_number,
    parse_amount,
    spanish_month_name,
)
from .config import (
    CREDIT_NOTE_JURISDICTIONS,
    DocumentKind,
    ErrorCategory,
    HEADER_ROW_OFFSET,
    INVOICE_SUMMARY_SHEET,
    STRICT_MONTH_INFERENCE,
    logger,
)
from .errors import (
    EmptyInput,
    ExternalIOFailure,
    MissingSheet,
    NoEligibleRecords,
    PipelineError,
    RowValidationError,
    UnreadableWorkbook,
    UnsupportedJurisdiction,
)
from .generator import (
    flatten_pairs,
    generate_billing_rows,
    generate_credit_note_rows,
    reporting_dates,
)
from .ports import ArtifactStore, InvoiceStore, KeyedRunLock, RunLock
from .reader import read_invoice_summary, read_ledger_export
from .reconciler import ReconciliationMap, build_reconciliation_map
from .schemas import InvoiceRecord, RunReport, SummaryRecord
from .validator import validate_batch
from .writer import write_workbook


# Shared by every run in this process unless a lock is injected
DEFAULT_RUN_LOCK = KeyedRunLock()


# ============================================================================
# Helpers
# ============================================================================

def artifact_name(kind: DocumentKind, month: int, jurisdiction: str) -> str:
    """<DocumentKind>_<MonthName>_<JUR>.xlsx, e.g. Facturacion_Diciembre_AR.xlsx"""
    return f"{kind.value}_{spanish_month_name(month)}_{jurisdiction.upper()}.xlsx"


def _external(operation: str, fn: Callable[..., Any], *args: Any) -> Any:
    """Call a port, re-raising any failure as ExternalIOFailure."""
    try:
        return fn(*args)
    except PipelineError:
        raise
    except Exception as e:
        logger.error(f"{operation} failed: {e}")
        raise ExternalIOFailure(operation, e) from e


def _raise_read_failure(error_code: Optional[str], error: Optional[str], sheet_name: str) -> None:
    if error_code == ErrorCategory.MISSING_SHEET.value:
        raise MissingSheet(sheet_name)
    if error_code == ErrorCategory.UNREADABLE_WORKBOOK.value:
        raise UnreadableWorkbook(error or "Workbook could not be read")
    raise PipelineError(error or "Workbook could not be read")


def load_summary(
    data: bytes,
    sheet_name: str = INVOICE_SUMMARY_SHEET,
    header_offset: int = HEADER_ROW_OFFSET,
) -> list[SummaryRecord]:
    """
    Read and validate the Invoice Summary.

    Raises:
        MissingSheet: If the sheet is absent
        UnreadableWorkbook: If the bytes are not a workbook
        EmptyInput: If no usable rows remain after filtering
        RowValidationError: For the first invalid record
    """
    result = read_invoice_summary(data, sheet_name=sheet_name, header_offset=header_offset)
    if not result.ok:
        _raise_read_failure(result.error_code, result.error, sheet_name)

    if not result.records:
        raise EmptyInput("The invoice summary contains no valid rows")

    validation = validate_batch(result.records)
    if not validation.is_valid:
        failure = validation.failure
        raise RowValidationError(failure.message, row_number=failure.row_number, field=failure.field)

    return result.records


def load_reconciliation(data: bytes) -> ReconciliationMap:
    """
    Read the ledger export and build the reconciliation map.

    Raises:
        UnreadableWorkbook: If the bytes are not a workbook
        EmptyInput: If the export has no rows with both document id and memo
    """
    result = read_ledger_export(data)
    if not result.ok:
        _raise_read_failure(result.error_code, result.error, "first sheet")

    if not result.records:
        raise EmptyInput("The ledger export contains no valid rows")

    return build_reconciliation_map(result.records)


def resolve_period(
    filename: str,
    month: Optional[int] = None,
    year: Optional[int] = None,
    strict_month: bool = STRICT_MONTH_INFERENCE,
    today: Optional[date] = None,
) -> tuple[int, int, str]:
    """
    Reporting (month, year, month_source).

    An explicit month wins; otherwise it is inferred from the filename. The
    year defaults to the current calendar year.
    """
    today = today or date.today()

    if month is not None:
        inference = MonthInference(month=month, from_filename=False)
        source = "argument"
    else:
        inference = month_from_filename(filename, today=today, strict=strict_month)
        source = "filename" if inference.from_filename else "current_month"

    return inference.month, year or today.year, source


def build_invoice_record(
    record: SummaryRecord,
    client_id: Optional[str],
    jurisdiction: str,
    month: int,
    year: int,
) -> InvoiceRecord:
    """Canonical store record for a validated summary record."""
    issue, _ = reporting_dates(year, month)

    return InvoiceRecord(
        invoice_number=normalize_invoice_number(record.invoice_number),
        country=jurisdiction.lower(),
        invoice_date=issue.isoformat(),
        exhibition_month=f"{year}-{month:02d}",
        gross_value=parse_amount(record.gross_amount),
        net_value=parse_amount(record.net_amount),
        channel=record.channel,
        agency=record.agency,
        order_reference=record.order_reference,
        client_id=client_id,
        product=record.product,
        feed=record.feed,
        campaign_number=record.campaign_number,
        commission_percent=parse_amount(record.commission_percent),
        commission_amount=parse_amount(record.commission_amount),
        sales_executive=record.sales_executive,
        system_source=record.system_source,
        spot_count=parse_amount(record.spot_count),
        business_type=record.business_type,
        document_type=record.document_type,
        company_code=record.company_code,
        channel_by_feed=record.channel_by_feed,
    )


# ============================================================================
# Runs
# ============================================================================

def run_billing(
    summary_data: bytes,
    filename: str,
    invoice_store: InvoiceStore,
    artifact_store: ArtifactStore,
    month: Optional[int] = None,
    year: Optional[int] = None,
    strict_month: bool = STRICT_MONTH_INFERENCE,
    run_lock: Optional[RunLock] = None,
    today: Optional[date] = None,
) -> RunReport:
    """
    Generate the billing document for an Invoice Summary.

    Every record is upserted into the invoice store (one call per record)
    and gets one row pair in Facturacion_<Mes>_<JUR>.xlsx. Upserts already
    applied are not rolled back if a later step fails.

    Args:
        summary_data: Raw Invoice Summary workbook bytes
        filename: Source filename, used to infer the reporting month
        invoice_store: Store receiving agencies, clients and invoices
        artifact_store: Store receiving the generated workbook
        month: Explicit reporting month, overriding the filename
        year: Reporting year (defaults to the current year)
        strict_month: Fail instead of using the current month when the
            filename names no month
        run_lock: Lock serializing runs per period and jurisdiction
        today: Clock override for the month/year fallbacks

    Returns:
        RunReport describing the generated artifact
    """
    logger.info(f"Starting billing run for {filename}")

    records = load_summary(summary_data)
    jurisdiction = jurisdiction_from_currency(records[0].currency)
    month, year, month_source = resolve_period(filename, month, year, strict_month, today)
    name = artifact_name(DocumentKind.BILLING, month, jurisdiction)
    lock = run_lock or DEFAULT_RUN_LOCK

    inserted = 0
    updated = 0

    with lock.hold(f"{year}-{month:02d}:{jurisdiction}"):
        for record in records:
            _external("ensure agency", invoice_store.ensure_agency, record.agency, jurisdiction)
            client_id = _external("ensure client", invoice_store.ensure_client, record.client, jurisdiction)
            invoice = build_invoice_record(record, client_id, jurisdiction, month, year)
            if _external("upsert invoice", invoice_store.upsert_invoice, invoice):
                inserted += 1
            else:
                updated += 1

        pairs = generate_billing_rows(records, month, year)
        workbook = write_workbook(flatten_pairs(pairs))
        _external("save artifact", artifact_store.save, name, workbook)

    logger.info(f"Billing run complete: {name} ({inserted} inserted, {updated} updated)")

    return RunReport(
        document_kind=DocumentKind.BILLING,
        artifact_name=name,
        jurisdiction=jurisdiction,
        month=month,
        year=year,
        month_source=month_source,
        records_read=len(records),
        pairs_generated=len(pairs),
        invoices_inserted=inserted,
        invoices_updated=updated,
    )


def run_credit_notes(
    summary_data: bytes,
    filename: str,
    ledger_data: bytes,
    invoice_store: InvoiceStore,
    artifact_store: ArtifactStore,
    eligible_agencies: Optional[AbstractSet[str]] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
    strict_month: bool = STRICT_MONTH_INFERENCE,
    run_lock: Optional[RunLock] = None,
    today: Optional[date] = None,
) -> RunReport:
    """
    Generate the credit-note document for an Invoice Summary.

    The ledger export is reconciled against the summary; records whose
    agency is eligible and whose invoice number has a ledger document get a
    credit-note pair. Every reconciled invoice also has its ledger document
    id recorded in the invoice store.

    Args:
        summary_data: Raw Invoice Summary workbook bytes
        filename: Source filename, used to infer the reporting month
        ledger_data: Raw ledger export workbook bytes
        invoice_store: Store holding invoices and agency eligibility
        artifact_store: Store receiving the generated workbook
        eligible_agencies: Agencies receiving credit notes; read from the
            invoice store when omitted

    Raises:
        UnsupportedJurisdiction: If the summary is not in a credit-note jurisdiction
        NoEligibleRecords: If no agency is eligible or no pair was generated
    """
    logger.info(f"Starting credit-note run for {filename}")

    reconciliation = load_reconciliation(ledger_data)
    records = load_summary(summary_data)

    jurisdiction = jurisdiction_from_currency(records[0].currency)
    if jurisdiction not in CREDIT_NOTE_JURISDICTIONS:
        raise UnsupportedJurisdiction(jurisdiction)

    if eligible_agencies is None:
        eligible_agencies = _external(
            "load credit-note agencies", invoice_store.credit_note_agencies, jurisdiction
        )
    eligible = frozenset(eligible_agencies)
    if not eligible:
        raise NoEligibleRecords("No agencies are marked to receive credit notes")

    month, year, month_source = resolve_period(filename, month, year, strict_month, today)
    name = artifact_name(DocumentKind.CREDIT_NOTE, month, jurisdiction)
    lock = run_lock or DEFAULT_RUN_LOCK

    with lock.hold(f"{year}-{month:02d}:{jurisdiction}"):
        pairs = generate_credit_note_rows(records, reconciliation, eligible, month, year)
        if not pairs:
            raise NoEligibleRecords(
                "No credit notes generated; check that agencies are marked and invoice numbers match the ledger"
            )

        reconciled = 0
        for record in records:
            invoice_number = normalize_invoice_number(record.invoice_number)
            document_id = reconciliation.get(invoice_number)
            if not document_id:
                continue
            if _external(
                "assign document number",
                invoice_store.assign_document_number,
                invoice_number,
                jurisdiction,
                document_id,
            ):
                reconciled += 1

        workbook = write_workbook(flatten_pairs(pairs))
        _external("save artifact", artifact_store.save, name, workbook)

    logger.info(f"Credit-note run complete: {name} ({len(pairs)} notes, {reconciled} invoices reconciled)")

    return RunReport(
        document_kind=DocumentKind.CREDIT_NOTE,
        artifact_name=name,
        jurisdiction=jurisdiction,
        month=month,
        year=year,
        month_source=month_source,
        records_read=len(records),
        pairs_generated=len(pairs),
        invoices_reconciled=reconciled,
    )
