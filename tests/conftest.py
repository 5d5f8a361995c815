"""
Shared fixtures for the issuing core tests.

Numbers are generated against a fixed clock (15 October 2024, UTC) so
expected values like FACT202410-0001 stay stable.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from facturier.domain.models import (
    DocumentKind,
    DocumentRecord,
    DocumentStatus,
    LineItem,
    Party,
)
from facturier.domain.money import MoneyCalculator, StampPolicy
from facturier.domain.numbering import format_document_number
from facturier.services import DocumentRenderer, DocumentService, InMemoryCounterStore, SequenceGenerator

FIXED_NOW = datetime(2024, 10, 15, 9, 30, tzinfo=timezone.utc)
ISSUE_DATE = date(2024, 10, 15)
DUE_DATE = date(2024, 11, 14)


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_items(count: int, unit_price: str = "10.00", tax: str = "19") -> tuple[LineItem, ...]:
    return tuple(
        LineItem(
            description=f"Item {index + 1:03d}",
            quantity=Decimal("1"),
            unit_price=Decimal(unit_price),
            tax_rate_percent=Decimal(tax),
        )
        for index in range(count)
    )


def make_record(
    kind: DocumentKind = DocumentKind.INVOICE,
    items: tuple[LineItem, ...] = (),
    sequence: int = 1,
    secondary_date: date | None = DUE_DATE,
    notes: str | None = None,
    issuer: Party | None = None,
    customer: Party | None = None,
    stamp: StampPolicy | None = None,
) -> DocumentRecord:
    """Build an issued record without going through a counter store."""
    if kind is DocumentKind.DELIVERY_NOTE:
        secondary_date = None
    totals = MoneyCalculator(stamp or StampPolicy()).compute(items, kind)
    return DocumentRecord(
        id=f"doc-{sequence}",
        account_id="acc_1",
        kind=kind,
        number=format_document_number(kind, 2024, 10, sequence),
        issuer=issuer or ISSUER,
        customer=customer or CUSTOMER,
        issue_date=ISSUE_DATE,
        totals=totals,
        currency="EUR",
        line_items=items,
        secondary_date=secondary_date,
        notes=notes,
        status=DocumentStatus.DRAFT,
    )


ISSUER = Party(
    name="Atelier Verre & Co",
    address_lines=("12 Rue des Lilas", "75011 Paris"),
    email="billing@atelier-verre.example",
    phone="+33 1 23 45 67 89",
    tax_id="FR12345678901",
    currency="EUR",
)

CUSTOMER = Party(
    name="Boulangerie Martin",
    address_lines=("3 Place du Marché", "69002 Lyon"),
    email="compta@boulangerie-martin.example",
)


@pytest.fixture
def issuer() -> Party:
    return ISSUER


@pytest.fixture
def customer() -> Party:
    return CUSTOMER


@pytest.fixture
def counter_store() -> InMemoryCounterStore:
    return InMemoryCounterStore()


@pytest.fixture
def generator(counter_store) -> SequenceGenerator:
    return SequenceGenerator(counter_store, clock=fixed_clock)


@pytest.fixture
def renderer() -> DocumentRenderer:
    return DocumentRenderer()


@pytest.fixture
def service(generator, renderer) -> DocumentService:
    return DocumentService(
        sequence=generator,
        calculator=MoneyCalculator(StampPolicy()),
        renderer=renderer,
        default_currency="EUR",
        payment_terms_days=30,
    )
