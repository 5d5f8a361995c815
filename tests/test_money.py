"""Tests for document totals and the fiscal stamp."""

from decimal import Decimal

import pytest

from facturier.config import Settings
from facturier.domain.errors import ValidationFailure
from facturier.domain.models import DocumentKind, LineItem
from facturier.domain.money import (
    MoneyCalculator,
    StampPolicy,
    allocate_cents,
    format_amount,
    format_quantity,
    quantize_money,
)


def item(quantity: str, price: str, tax: str = "0", description: str = "Widget") -> LineItem:
    return LineItem(
        description=description,
        quantity=Decimal(quantity),
        unit_price=Decimal(price),
        tax_rate_percent=Decimal(tax),
    )


@pytest.fixture
def calculator() -> MoneyCalculator:
    return MoneyCalculator(StampPolicy(enabled=True, fee=Decimal("1.00"), threshold=Decimal("10.00")))


def test_single_line_with_tax(calculator):
    totals = calculator.compute([item("3", "10.00", "19")], DocumentKind.INVOICE)

    assert totals.subtotal == Decimal("30.00")
    assert totals.tax_total == Decimal("5.70")
    assert totals.grand_total == Decimal("35.70")
    assert totals.lines[0].total == Decimal("35.70")


def test_stamp_added_to_payable_total(calculator):
    totals = calculator.compute([item("3", "10.00", "19")], DocumentKind.INVOICE)

    assert totals.has_stamp
    assert totals.stamp_fee == Decimal("1.00")
    assert totals.payable_total == Decimal("36.70")


def test_mixed_tax_rates_sum_per_line(calculator):
    totals = calculator.compute(
        [item("2", "50.00", "20"), item("1", "12.50", "5.5"), item("4", "3.25")],
        DocumentKind.QUOTE,
    )

    assert totals.subtotal == Decimal("125.50")
    # 20.00 + 0.6875
    assert totals.tax_total == Decimal("20.69")
    assert totals.grand_total == Decimal("146.19")
    assert [line.net for line in totals.lines] == [Decimal("100.00"), Decimal("12.50"), Decimal("13.00")]


def test_aggregates_use_unrounded_values(calculator):
    totals = calculator.compute([item("1", "0.005")] * 3, DocumentKind.INVOICE)

    # The subtotal is 0.015 rounded once; the lines share its two cents
    assert totals.subtotal == Decimal("0.02")
    assert [line.net for line in totals.lines] == [Decimal("0.01"), Decimal("0.01"), Decimal("0.00")]


def test_printed_line_totals_add_up_to_grand_total(calculator):
    totals = calculator.compute([item("1", "1.00", "5.5")] * 10, DocumentKind.INVOICE)

    assert totals.grand_total == Decimal("10.55")
    assert sum(line.total for line in totals.lines) == Decimal("10.55")
    assert sum(line.net for line in totals.lines) == totals.subtotal
    assert sum(line.tax for line in totals.lines) == totals.tax_total
    assert sorted({line.tax for line in totals.lines}) == [Decimal("0.05"), Decimal("0.06")]


@pytest.mark.parametrize("count", [1, 2, 3, 7, 10, 33])
@pytest.mark.parametrize("price", ["0.005", "0.333", "1.00", "9.999", "12.345"])
@pytest.mark.parametrize("rate", ["0", "5.5", "7.7", "19", "20"])
def test_line_totals_stay_within_a_cent_of_grand_total(calculator, count, price, rate):
    items = [item(str(n % 4 + 1), price, rate) for n in range(count)]
    totals = calculator.compute(items, DocumentKind.INVOICE)

    assert abs(sum(line.total for line in totals.lines) - totals.grand_total) <= Decimal("0.01")
    assert sum(line.net for line in totals.lines) == totals.subtotal
    assert sum(line.tax for line in totals.lines) == totals.tax_total
    assert all(line.net >= 0 and line.tax >= 0 for line in totals.lines)


def test_allocate_cents_gives_leftovers_to_largest_remainders():
    values = [Decimal("0.334"), Decimal("0.333"), Decimal("0.333")]
    assert allocate_cents(values, Decimal("1.00")) == [Decimal("0.34"), Decimal("0.33"), Decimal("0.33")]

    values = [Decimal("0.014"), Decimal("0.018"), Decimal("0.011")]
    assert allocate_cents(values, Decimal("0.04")) == [Decimal("0.01"), Decimal("0.02"), Decimal("0.01")]

    assert allocate_cents([], Decimal("0.00")) == []


def test_rounding_is_half_up():
    assert quantize_money(Decimal("0.125")) == Decimal("0.13")
    assert quantize_money(Decimal("2.675")) == Decimal("2.68")
    assert quantize_money(Decimal("-0.125")) == Decimal("-0.13")


def test_no_stamp_below_threshold(calculator):
    totals = calculator.compute([item("1", "9.99")], DocumentKind.INVOICE)

    assert not totals.has_stamp
    assert totals.stamp_fee == Decimal("0.00")
    assert totals.payable_total == Decimal("9.99")


def test_stamp_at_threshold_is_inclusive(calculator):
    totals = calculator.compute([item("1", "10.00")], DocumentKind.INVOICE)

    assert totals.stamp_fee == Decimal("1.00")
    assert totals.payable_total == Decimal("11.00")


def test_stamp_compares_rounded_grand_total(calculator):
    # 9.995 rounds to 10.00 and therefore reaches the threshold
    totals = calculator.compute([item("1", "9.995")], DocumentKind.INVOICE)

    assert totals.grand_total == Decimal("10.00")
    assert totals.has_stamp


def test_delivery_note_never_gets_stamp(calculator):
    totals = calculator.compute([item("10", "100.00")], DocumentKind.DELIVERY_NOTE)

    assert totals.grand_total == Decimal("1000.00")
    assert not totals.has_stamp
    assert totals.payable_total == totals.grand_total


def test_disabled_policy_never_applies():
    calculator = MoneyCalculator()
    totals = calculator.compute([item("10", "100.00")], DocumentKind.INVOICE)

    assert not totals.has_stamp


def test_zero_fee_never_applies():
    calculator = MoneyCalculator(StampPolicy(fee=Decimal("0")))
    assert not calculator.compute([item("1", "50")], DocumentKind.INVOICE).has_stamp


def test_empty_document_totals_are_zero(calculator):
    totals = calculator.compute([], DocumentKind.INVOICE)

    assert totals.subtotal == Decimal("0.00")
    assert totals.tax_total == Decimal("0.00")
    assert totals.grand_total == Decimal("0.00")
    assert totals.payable_total == Decimal("0.00")
    assert totals.lines == ()


def test_all_violations_reported_together(calculator):
    items = [
        item("1", "10.00", "19"),
        item("0", "10.00"),
        item("2", "-1.00", "120"),
    ]

    with pytest.raises(ValidationFailure) as exc_info:
        calculator.compute(items, DocumentKind.INVOICE)

    paths = [issue.field_path for issue in exc_info.value.issues]
    assert paths == [
        "line_items[1].quantity",
        "line_items[2].unit_price",
        "line_items[2].tax_rate_percent",
    ]


def test_nan_is_reported_not_propagated(calculator):
    with pytest.raises(ValidationFailure) as exc_info:
        calculator.compute([item("NaN", "1.00")], DocumentKind.INVOICE)
    assert exc_info.value.issues[0].field_path.startswith("line_items[0]")


def test_huge_amounts_are_reported_not_raised(calculator):
    with pytest.raises(ValidationFailure) as exc_info:
        calculator.compute([item("1e30", "1"), item("1", "10.00")], DocumentKind.INVOICE)

    paths = [issue.field_path for issue in exc_info.value.issues]
    assert paths == ["line_items[0].quantity", "line_items[0]"]


def test_amount_bound_applies_to_the_line_product(calculator):
    with pytest.raises(ValidationFailure) as exc_info:
        calculator.compute([item("1e8", "1e8")], DocumentKind.INVOICE)
    assert [issue.field_path for issue in exc_info.value.issues] == ["line_items[0]"]

    totals = calculator.compute([item("1e7", "1e7", "100")], DocumentKind.INVOICE)
    assert totals.grand_total == Decimal("200000000000000.00")


def test_boundary_rates_are_accepted(calculator):
    totals = calculator.compute([item("1", "0", "0"), item("1", "10", "100")], DocumentKind.INVOICE)
    assert totals.tax_total == Decimal("10.00")


def test_calculator_from_settings():
    settings = Settings(
        sequence_backend="memory",
        fiscal_stamp_fee=Decimal("0.60"),
        fiscal_stamp_threshold=Decimal("5"),
    )
    calculator = MoneyCalculator.from_settings(settings)

    totals = calculator.compute([item("1", "5.00")], DocumentKind.QUOTE)
    assert totals.stamp_fee == Decimal("0.60")
    assert totals.payable_total == Decimal("5.60")


def test_formatting_helpers():
    assert format_amount(Decimal("35.7"), "EUR") == "35.70 EUR"
    assert format_amount(Decimal("0"), "TND") == "0.00 TND"
    assert format_quantity(Decimal("2.50")) == "2.5"
    assert format_quantity(Decimal("3.000")) == "3"
    assert format_quantity(Decimal("19")) == "19"
