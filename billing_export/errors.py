"""
Exceptions raised at the pipeline boundary.

Readers and validators report failures as result models; the pipeline turns
a failed result into one of these so the CLI and API can map it to an exit
code or HTTP status.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for every failure that aborts a run."""

    code = "pipeline_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingSheet(PipelineError):
    """The required sheet is not present in the workbook."""

    code = "missing_sheet"

    def __init__(self, sheet_name: str):
        super().__init__(f"Sheet '{sheet_name}' not found in workbook")
        self.sheet_name = sheet_name


class UnreadableWorkbook(PipelineError):
    code = "unreadable_workbook"


class EmptyInput(PipelineError):
    """The workbook parsed but held no usable rows."""

    code = "empty_input"


class RowValidationError(PipelineError):
    """A row failed a field constraint; nothing was written."""

    code = "validation_error"

    def __init__(self, message: str, row_number: int, field: Optional[str] = None):
        super().__init__(message)
        self.row_number = row_number
        self.field = field


class MonthNotFound(PipelineError):
    code = "month_not_found"


class UnsupportedJurisdiction(PipelineError):
    code = "unsupported_jurisdiction"

    def __init__(self, jurisdiction: str):
        super().__init__(f"Credit notes are not available for jurisdiction '{jurisdiction}'")
        self.jurisdiction = jurisdiction


class NoEligibleRecords(PipelineError):
    """
    Credit-note generation produced nothing.

    This is a business outcome (no eligible counterparty, or no ledger
    match), not a technical failure.
    """

    code = "no_eligible_records"


class ExternalIOFailure(PipelineError):
    """A store or artifact call failed; the original error is chained."""

    code = "external_io_failure"

    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
