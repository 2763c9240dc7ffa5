"""
Validation engine for Invoice Summary records.

Validation is fail-fast: a batch stops at the first invalid record, and the
caller must not write anything when the batch result is invalid.
"""

from typing import Optional, Sequence

from .config import logger
from .rules import VALIDATION_RULES, ValidationRule
from .schemas import BatchValidationResult, RowValidationResult, SummaryRecord


def validate_record(
    record: SummaryRecord,
    index: int,
    rules: Optional[Sequence[ValidationRule]] = None,
    context: Optional[dict] = None,
) -> RowValidationResult:
    """
    Validate a single record against the rules, stopping at the first failure.

    Args:
        record: The record to validate
        index: 0-based position of the record in the batch
        rules: Optional rules to apply (defaults to VALIDATION_RULES)
        context: Optional context dict passed through to each rule

    Returns:
        RowValidationResult naming the 1-based row and the failing field
    """
    if rules is None:
        rules = VALIDATION_RULES

    row_number = index + 1

    for rule in rules:
        error_code = rule.check(record, context)
        if error_code:
            return RowValidationResult(
                row_number=row_number,
                is_valid=False,
                field=rule.field,
                error_code=error_code,
                message=rule.describe(row_number),
            )

    return RowValidationResult(row_number=row_number, is_valid=True)


def validate_batch(
    records: Sequence[SummaryRecord],
    rules: Optional[Sequence[ValidationRule]] = None,
) -> BatchValidationResult:
    """
    Validate records in order and stop at the first invalid one.

    Returns:
        BatchValidationResult; `failure` holds the first invalid row, if any
    """
    logger.info(f"Validating batch of {len(records)} records")

    context: dict = {}

    for index, record in enumerate(records):
        result = validate_record(record, index, rules, context)
        if not result.is_valid:
            logger.warning(f"Validation stopped: {result.message}")
            return BatchValidationResult(
                is_valid=False,
                checked=index + 1,
                total=len(records),
                failure=result,
            )

    logger.info(f"Validation complete: {len(records)} records valid")

    return BatchValidationResult(is_valid=True, checked=len(records), total=len(records))


def format_summary_text(result: BatchValidationResult, skipped_total: int = 0, skipped_incomplete: int = 0) -> str:
    """
    Format a batch validation result as human-readable text for CLI output.
    """
    lines = [
        "=" * 50,
        "VALIDATION SUMMARY",
        "=" * 50,
        f"Records read:             {result.total}",
        f"Records checked:          {result.checked}",
        f"TOTAL rows skipped:       {skipped_total}",
        f"Incomplete rows skipped:  {skipped_incomplete}",
        "",
    ]

    if result.failure is not None:
        lines.append("First Error:")
        lines.append("-" * 40)
        lines.append(f"  {result.failure.error_code}")
        lines.append(f"  {result.failure.message}")
        lines.append("")
    else:
        lines.append("All records are valid.")
        lines.append("")

    lines.append("=" * 50)

    return "\n".join(lines)
