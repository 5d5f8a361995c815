"""
Monetary calculations for document totals.

Pure functions and a small calculator object - no side effects, no I/O.

Rules:
- net = quantity * unit_price, tax = net * rate / 100, line total = net + tax
- subtotal, tax total and grand total accumulate the unrounded values;
  only the figures handed back for presentation are rounded
- rounded line nets add up to the subtotal and rounded line taxes to the
  tax total (largest remainder), so printed line totals never drift more
  than a cent from the grand total
- the fiscal stamp is a flat, untaxed add-on for stamp-eligible kinds
  once the rounded grand total reaches the threshold

Design Decisions:
- Every line is validated before anything is summed, and all violations
  are reported together (all-or-nothing)
- ROUND_HALF_UP to the cent, the usual commercial rounding
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Iterable

from .models import DocumentKind, DocumentTotals, LineItem, LineTotal
from .validation import check_line_items, raise_for_issues

logger = logging.getLogger(__name__)


CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")


def quantize_money(value: Decimal) -> Decimal:
    """Round a monetary value to the cent."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal, currency: str) -> str:
    """
    Format an amount for print.

    Example:
        >>> format_amount(Decimal("35.7"), "EUR")
        '35.70 EUR'
    """
    return f"{quantize_money(value):.2f} {currency}"


def format_quantity(value: Decimal) -> str:
    """Print a quantity or rate without trailing zeros ('2.50' -> '2.5')."""
    if value == value.to_integral_value():
        return f"{value.to_integral_value():f}"
    return f"{value.normalize():f}"


def allocate_cents(values: list[Decimal], total: Decimal) -> list[Decimal]:
    """
    Round non-negative values to the cent so they add up to total.

    Every value is floored, then the missing cents go one each to the values
    that lost the most, earlier lines winning ties. total must be the rounded
    sum of values.

    Example:
        >>> allocate_cents([Decimal("0.005")] * 3, Decimal("0.02"))
        [Decimal('0.01'), Decimal('0.01'), Decimal('0.00')]
    """
    floors = [value.quantize(CENT, rounding=ROUND_FLOOR) for value in values]
    missing = int((total - sum(floors, ZERO)) / CENT)
    by_remainder = sorted(range(len(values)), key=lambda i: values[i] - floors[i], reverse=True)
    for index in by_remainder[:missing]:
        floors[index] += CENT
    return floors


def validate_line_items(line_items: Iterable[LineItem]) -> None:
    """
    Reject a document whose lines break a numeric invariant.

    Raises:
        ValidationFailure: Listing every offending line and field
    """
    issues = check_line_items(line_items)
    if issues:
        logger.info(f"Rejected {len(issues)} line item issue(s)")
        raise_for_issues(issues)


@dataclass(frozen=True)
class StampPolicy:
    """Fiscal stamp configuration."""
    enabled: bool = True
    fee: Decimal = Decimal("1.00")
    threshold: Decimal = Decimal("10.00")

    def applies(self, kind: DocumentKind, grand_total: Decimal) -> bool:
        return (
            self.enabled
            and self.fee > ZERO
            and kind.profile.stamp_eligible
            and grand_total >= self.threshold
        )


class MoneyCalculator:
    """
    Computes document totals from line items.

    Example:
        calculator = MoneyCalculator(StampPolicy(fee=Decimal("1.00")))
        totals = calculator.compute(items, DocumentKind.INVOICE)
        totals.payable_total
    """

    def __init__(self, stamp_policy: StampPolicy | None = None) -> None:
        self.stamp_policy = stamp_policy or StampPolicy(enabled=False)

    @classmethod
    def from_settings(cls, settings) -> "MoneyCalculator":
        return cls(StampPolicy(
            enabled=settings.fiscal_stamp_enabled,
            fee=settings.fiscal_stamp_fee,
            threshold=settings.fiscal_stamp_threshold,
        ))

    def compute(self, line_items: Iterable[LineItem], kind: DocumentKind) -> DocumentTotals:
        """
        Compute totals for a document.

        Raises:
            ValidationFailure: If any line violates the numeric invariants.
                No totals are produced in that case.
        """
        items = list(line_items)
        validate_line_items(items)

        nets = [item.quantity * item.unit_price for item in items]
        taxes = [net * item.tax_rate_percent / HUNDRED for net, item in zip(nets, items)]
        subtotal = sum(nets, ZERO)
        tax_total = sum(taxes, ZERO)

        line_nets = allocate_cents(nets, quantize_money(subtotal))
        line_taxes = allocate_cents(taxes, quantize_money(tax_total))
        lines = [
            LineTotal(net=net, tax=tax, total=net + tax)
            for net, tax in zip(line_nets, line_taxes)
        ]

        grand_total = quantize_money(subtotal + tax_total)

        stamp_fee = ZERO
        if self.stamp_policy.applies(kind, grand_total):
            stamp_fee = self.stamp_policy.fee

        return DocumentTotals(
            subtotal=quantize_money(subtotal),
            tax_total=quantize_money(tax_total),
            grand_total=grand_total,
            stamp_fee=quantize_money(stamp_fee),
            payable_total=quantize_money(grand_total + stamp_fee),
            lines=tuple(lines),
        )
