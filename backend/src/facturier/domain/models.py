"""
Domain models for business document issuing.

These models represent the documents an account issues to its customers:
invoices, quotes and delivery notes, with their line items and the totals
locked in at creation time.

Design Decisions:
- Frozen dataclasses: a document is immutable once issued
- One DocumentKind enum carries per-kind behaviour through KindProfile,
  so renderers and calculators never branch on three code paths
- Decimal for all monetary values to avoid floating-point errors
"""

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum


@dataclass(frozen=True)
class KindProfile:
    """
    Kind-specific labels and field visibility.

    A secondary_date_label of None means the kind carries no
    secondary date at all.
    """
    title: str
    prefix: str
    secondary_date_label: str | None
    show_line_tax: bool
    stamp_eligible: bool

    @property
    def requires_secondary_date(self) -> bool:
        return self.secondary_date_label is not None


class DocumentKind(Enum):
    """Types of documents an account can issue."""
    INVOICE = "invoice"
    QUOTE = "quote"
    DELIVERY_NOTE = "delivery_note"

    @property
    def profile(self) -> KindProfile:
        return KIND_PROFILES[self]

    @property
    def prefix(self) -> str:
        return self.profile.prefix


KIND_PROFILES: dict[DocumentKind, KindProfile] = {
    DocumentKind.INVOICE: KindProfile(
        title="INVOICE",
        prefix="FACT",
        secondary_date_label="Due date",
        show_line_tax=True,
        stamp_eligible=True,
    ),
    DocumentKind.QUOTE: KindProfile(
        title="QUOTE",
        prefix="DEV",
        secondary_date_label="Valid until",
        show_line_tax=True,
        stamp_eligible=True,
    ),
    DocumentKind.DELIVERY_NOTE: KindProfile(
        title="DELIVERY NOTE",
        prefix="BL",
        secondary_date_label=None,
        show_line_tax=False,
        stamp_eligible=False,
    ),
}


class DocumentStatus(Enum):
    """Lifecycle status of an issued document."""
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"    # quotes only
    PAID = "paid"            # invoices only
    DELIVERED = "delivered"  # delivery notes only
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Party:
    """
    Issuer or customer profile as printed on the document.

    The issuer profile carries the account's operating currency.
    """
    name: str
    address_lines: tuple[str, ...] = ()
    email: str | None = None
    phone: str | None = None
    tax_id: str | None = None
    currency: str | None = None

    def display_lines(self) -> list[str]:
        """Lines printed under the party name, in print order."""
        lines = [line for line in self.address_lines if line.strip()]
        if self.email:
            lines.append(self.email)
        if self.phone:
            lines.append(f"Tel: {self.phone}")
        if self.tax_id:
            lines.append(f"Tax ID: {self.tax_id}")
        return lines


@dataclass(frozen=True)
class LineItem:
    """
    One billable row.

    Values are not checked here: MoneyCalculator validates every line of a
    document together so a caller gets all violations in one failure.
    """
    description: str
    quantity: Decimal
    unit_price: Decimal
    tax_rate_percent: Decimal = Decimal("0")
    product_ref: str | None = None


@dataclass(frozen=True)
class LineTotal:
    """Rounded per-line figures."""
    net: Decimal
    tax: Decimal
    total: Decimal


@dataclass(frozen=True)
class DocumentTotals:
    """
    Totals computed once when a document is issued.

    All values are rounded to two decimals. payable_total is grand_total
    plus the fiscal stamp when one applies.
    """
    subtotal: Decimal
    tax_total: Decimal
    grand_total: Decimal
    stamp_fee: Decimal = Decimal("0.00")
    payable_total: Decimal = Decimal("0.00")
    lines: tuple[LineTotal, ...] = ()

    @property
    def has_stamp(self) -> bool:
        return self.stamp_fee > 0


@dataclass(frozen=True)
class DocumentDraft:
    """Caller-supplied content of a document that has not been issued yet."""
    kind: DocumentKind
    issuer: Party
    customer: Party
    issue_date: date
    line_items: tuple[LineItem, ...] = ()
    secondary_date: date | None = None
    notes: str | None = None


@dataclass(frozen=True)
class DocumentRecord:
    """
    An issued document.

    number and totals are fixed at creation and never recomputed;
    status changes go through dataclasses.replace and leave them intact.
    """
    id: str
    account_id: str
    kind: DocumentKind
    number: str
    issuer: Party
    customer: Party
    issue_date: date
    totals: DocumentTotals
    currency: str
    line_items: tuple[LineItem, ...] = ()
    secondary_date: date | None = None
    notes: str | None = None
    status: DocumentStatus = DocumentStatus.DRAFT

    @property
    def has_notes(self) -> bool:
        return bool(self.notes and self.notes.strip())

    def with_status(self, status: DocumentStatus) -> "DocumentRecord":
        return replace(self, status=status)
