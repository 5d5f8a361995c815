"""
Input validation rules for issued documents.

Pure functions - no side effects, no I/O. Each rule returns the issues it
found instead of raising on the first one, so callers can gather every
problem with a document and reject it once.

Design Decisions:
- All-or-nothing: a document with any issue yields no totals and no number
- NaN and other non-comparable values are reported, not propagated
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable

from .errors import ValidationFailure, ValidationIssue
from .models import DocumentKind, LineItem

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Keeps every amount well inside the 28-digit decimal context once rounded to the cent
MAX_AMOUNT = Decimal("1e15")


def check_line_items(line_items: Iterable[LineItem]) -> list[ValidationIssue]:
    """
    Check the numeric invariants of every line.

    Rules: quantity > 0, unit_price >= 0, 0 <= tax_rate_percent <= 100,
    and quantity, unit_price and their product stay below MAX_AMOUNT.
    """
    issues: list[ValidationIssue] = []

    for index, item in enumerate(line_items):
        path = f"line_items[{index}]"
        try:
            if not item.quantity > ZERO:
                issues.append(ValidationIssue(f"{path}.quantity", f"must be positive, got {item.quantity}"))
            if item.unit_price < ZERO:
                issues.append(ValidationIssue(f"{path}.unit_price", f"must not be negative, got {item.unit_price}"))
            if not ZERO <= item.tax_rate_percent <= HUNDRED:
                issues.append(ValidationIssue(
                    f"{path}.tax_rate_percent",
                    f"must be between 0 and 100, got {item.tax_rate_percent}",
                ))
            for name, value in (("quantity", item.quantity), ("unit_price", item.unit_price)):
                if abs(value) >= MAX_AMOUNT:
                    issues.append(ValidationIssue(f"{path}.{name}", f"must be below {MAX_AMOUNT:f}, got {value}"))
            if abs(item.quantity * item.unit_price) >= MAX_AMOUNT:
                issues.append(ValidationIssue(path, f"line amount must be below {MAX_AMOUNT:f}"))
        except (InvalidOperation, TypeError) as e:
            # NaN refuses ordered comparison
            issues.append(ValidationIssue(path, f"non-numeric value: {e}"))

    return issues


def check_secondary_date(
    kind: DocumentKind,
    issue_date: date,
    secondary_date: date | None,
) -> list[ValidationIssue]:
    """
    Check the kind-specific secondary date.

    Invoices need a due date and quotes an expiry date, neither of which
    may precede the issue date. Delivery notes carry no secondary date.
    """
    profile = kind.profile
    issues: list[ValidationIssue] = []

    if profile.requires_secondary_date and secondary_date is None:
        issues.append(ValidationIssue(
            "secondary_date",
            f"{profile.secondary_date_label} is required for a {kind.value}",
        ))
    if not profile.requires_secondary_date and secondary_date is not None:
        issues.append(ValidationIssue("secondary_date", f"a {kind.value} has no secondary date"))
    if secondary_date is not None and secondary_date < issue_date:
        issues.append(ValidationIssue("secondary_date", "must not precede the issue date"))

    return issues


def raise_for_issues(issues: list[ValidationIssue]) -> None:
    """Raise ValidationFailure if any issue was collected."""
    if issues:
        raise ValidationFailure(issues)
