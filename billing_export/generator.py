"""
Row generation for the accounting import document.

Every qualifying summary record becomes a header row and a detail row that
share a control number. Billing and credit-note documents differ only in
which records qualify and in a handful of header/detail fields.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import AbstractSet, Iterable, Sequence

from dateutil.relativedelta import relativedelta

from .canonicalizer import normalize_invoice_number, spanish_month_name
from .config import (
    CENT,
    COST_CENTER_LABEL,
    CREDIT_NOTE_DISCOUNT,
    CREDIT_NOTE_EXCHANGE_RATE,
    CURRENCY_LABEL,
    DOCUMENT_NUMBER_TEMPLATE,
    DOCUMENT_TYPE_CREDIT_NOTE,
    DOCUMENT_TYPE_INVOICE,
    MEMO_TEMPLATE,
    SERVICE_LABEL,
    TAX_RATE,
    logger,
)
from .reconciler import ReconciliationMap
from .schemas import OutputRow, OutputRowPair, SummaryRecord


# ============================================================================
# Derived Fields
# ============================================================================

def reporting_dates(year: int, month: int) -> tuple[date, date]:
    """
    Issue and due dates for a reporting month.

    Issue date is the last day of the month; due date is the last day of the
    following month (December rolls over into January of the next year).
    """
    first = date(year, month, 1)
    issue = first + relativedelta(months=1, days=-1)
    due = first + relativedelta(months=2, days=-1)
    return issue, due


def compute_tax(gross: float, rate: Decimal = TAX_RATE) -> float:
    """Tax on a gross amount, rounded half away from zero to the cent."""
    tax = (Decimal(str(gross)) * rate).quantize(CENT, rounding=ROUND_HALF_UP)
    return float(tax)


def build_memo(record: SummaryRecord) -> str:
    """Header memo; uses the invoice number exactly as read, not normalized."""
    return MEMO_TEMPLATE.format(
        invoice_number=record.invoice_number,
        channel=record.channel or "",
        client=record.client or "",
        order_reference=record.order_reference or "",
    )


def build_description(month: int, year: int) -> str:
    return f"{spanish_month_name(month)}, {year}"


# ============================================================================
# Row Pairs
# ============================================================================

def _build_pair(
    control_number: int,
    record: SummaryRecord,
    issue: date,
    due: date,
    description: str,
    document_type: int,
    associated_document: str = "",
    exchange_rate: str = "",
    discount: str = "",
) -> OutputRowPair:
    price = record.gross_value

    header = OutputRow(
        control_number=control_number,
        counterparty=record.agency,
        document_type=document_type,
        document_number=DOCUMENT_NUMBER_TEMPLATE,
        issue_date=issue.isoformat(),
        due_date=due.isoformat(),
        associated_document=associated_document,
        currency_label=CURRENCY_LABEL,
        exchange_rate=exchange_rate,
        memo=build_memo(record),
    )

    detail = OutputRow(
        control_number=control_number,
        service_label=SERVICE_LABEL,
        cost_center=COST_CENTER_LABEL,
        description=description,
        quantity=1,
        unit_price=price,
        discount=discount,
        amount=price,
        tax=compute_tax(price),
    )

    return OutputRowPair(control_number=control_number, header=header, detail=detail)


def generate_billing_rows(
    records: Iterable[SummaryRecord],
    month: int,
    year: int,
) -> list[OutputRowPair]:
    """
    One invoice pair per record, numbered from 1 in input order.
    """
    issue, due = reporting_dates(year, month)
    description = build_description(month, year)

    pairs = [
        _build_pair(
            control_number=position,
            record=record,
            issue=issue,
            due=due,
            description=description,
            document_type=DOCUMENT_TYPE_INVOICE,
        )
        for position, record in enumerate(records, start=1)
    ]

    logger.info(f"Generated {len(pairs)} billing pairs for {month:02d}/{year}")
    return pairs


def generate_credit_note_rows(
    records: Iterable[SummaryRecord],
    reconciliation: ReconciliationMap,
    eligible_agencies: AbstractSet[str],
    month: int,
    year: int,
) -> list[OutputRowPair]:
    """
    Credit-note pairs for records that are both eligible and reconciled.

    A record qualifies when its agency is in `eligible_agencies` and its
    normalized invoice number has an entry in `reconciliation`; the matched
    document id becomes the associated document. Control numbers count only
    emitted pairs, so skipped records leave no gaps.
    """
    issue, due = reporting_dates(year, month)
    description = build_description(month, year)

    pairs: list[OutputRowPair] = []
    ineligible = 0
    unmatched = 0

    for record in records:
        if record.agency not in eligible_agencies:
            ineligible += 1
            continue

        invoice_number = normalize_invoice_number(record.invoice_number)
        document_id = reconciliation.get(invoice_number)
        if not document_id:
            logger.debug(f"No ledger document for invoice {invoice_number}; skipped")
            unmatched += 1
            continue

        pairs.append(
            _build_pair(
                control_number=len(pairs) + 1,
                record=record,
                issue=issue,
                due=due,
                description=description,
                document_type=DOCUMENT_TYPE_CREDIT_NOTE,
                associated_document=document_id,
                exchange_rate=CREDIT_NOTE_EXCHANGE_RATE,
                discount=CREDIT_NOTE_DISCOUNT,
            )
        )

    logger.info(
        f"Generated {len(pairs)} credit-note pairs for {month:02d}/{year} "
        f"({ineligible} ineligible, {unmatched} without ledger match)"
    )
    return pairs


def flatten_pairs(pairs: Sequence[OutputRowPair]) -> list[OutputRow]:
    """Header and detail rows interleaved, in pair order."""
    return [row for pair in pairs for row in pair.rows()]
