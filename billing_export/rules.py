"""
Validation rules for Invoice Summary records.

Rules are grouped by category:
- Completeness rules: identifying fields must be present
- Format rules: amounts, when present, must be numeric

Each rule is a function that returns an error code if validation fails, or
None if it passes. Rules run in registry order and the first failure wins.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from .canonicalizer import is_blank, parse_amount
from .config import ErrorCategory
from .schemas import SummaryRecord


# The function takes a SummaryRecord and optional context dict, returns error code or None
RuleCheckFn = Callable[[SummaryRecord, Optional[dict]], Optional[str]]


@dataclass(frozen=True)
class ValidationRule:
    """
    Represents a single validation rule.

    Attributes:
        code: Machine-readable error code (e.g., "missing_field:agency")
        field: Record field the rule inspects
        label: Column header shown in error messages
        message: Message template; "{label}" is substituted
        category: Category of the rule
        check: Function that performs the validation check
    """
    code: str
    field: str
    label: str
    message: str
    category: ErrorCategory
    check: RuleCheckFn

    def describe(self, row_number: int) -> str:
        return f"Row {row_number}: " + self.message.format(label=self.label)


# ============================================================================
# Completeness Rules
# ============================================================================

def check_invoice_number(record: SummaryRecord, context: Optional[dict] = None) -> Optional[str]:
    """Every record must have a non-blank invoice number."""
    if is_blank(record.invoice_number):
        return f"{ErrorCategory.MISSING_FIELD.value}:invoice_number"
    return None


def check_agency(record: SummaryRecord, context: Optional[dict] = None) -> Optional[str]:
    """Agency must not be blank."""
    if is_blank(record.agency):
        return f"{ErrorCategory.MISSING_FIELD.value}:agency"
    return None


def check_client(record: SummaryRecord, context: Optional[dict] = None) -> Optional[str]:
    """Client must not be blank."""
    if is_blank(record.client):
        return f"{ErrorCategory.MISSING_FIELD.value}:client"
    return None


# ============================================================================
# Format Rules
# ============================================================================

def check_gross_amount(record: SummaryRecord, context: Optional[dict] = None) -> Optional[str]:
    """A gross amount, when present, must parse as a number."""
    if not is_blank(record.gross_amount) and parse_amount(record.gross_amount) is None:
        return f"{ErrorCategory.FORMAT_ERROR.value}:gross_amount"
    return None


def check_net_amount(record: SummaryRecord, context: Optional[dict] = None) -> Optional[str]:
    """A net amount, when present, must parse as a number."""
    if not is_blank(record.net_amount) and parse_amount(record.net_amount) is None:
        return f"{ErrorCategory.FORMAT_ERROR.value}:net_amount"
    return None


# ============================================================================
# Rule Registry
# ============================================================================

# All validation rules in execution order
VALIDATION_RULES: tuple[ValidationRule, ...] = (
    ValidationRule(
        code="missing_field:invoice_number",
        field="invoice_number",
        label="Invoice #",
        message="'{label}' is required",
        category=ErrorCategory.MISSING_FIELD,
        check=check_invoice_number,
    ),
    ValidationRule(
        code="missing_field:agency",
        field="agency",
        label="Agency",
        message="'{label}' is required",
        category=ErrorCategory.MISSING_FIELD,
        check=check_agency,
    ),
    ValidationRule(
        code="missing_field:client",
        field="client",
        label="Client",
        message="'{label}' is required",
        category=ErrorCategory.MISSING_FIELD,
        check=check_client,
    ),
    ValidationRule(
        code="format_error:gross_amount",
        field="gross_amount",
        label="Gross Invoice",
        message="'{label}' is not a valid number",
        category=ErrorCategory.FORMAT_ERROR,
        check=check_gross_amount,
    ),
    ValidationRule(
        code="format_error:net_amount",
        field="net_amount",
        label="Net Invoice",
        message="'{label}' is not a valid number",
        category=ErrorCategory.FORMAT_ERROR,
        check=check_net_amount,
    ),
)


def get_rules_by_category(category: ErrorCategory) -> list[ValidationRule]:
    """Get all rules belonging to a specific category."""
    return [rule for rule in VALIDATION_RULES if rule.category == category]
