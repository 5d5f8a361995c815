"""
Pydantic schemas for API request/response validation.

These schemas define the contract between callers and the issuing core.
Monetary values are Decimals and serialize as strings to avoid floating
point issues. Numeric invariants of line items are deliberately not
enforced here: the domain validates every line together and reports all
violations in one 422 response.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from facturier.domain.models import (
    DocumentDraft,
    DocumentKind,
    DocumentRecord,
    DocumentStatus,
    DocumentTotals,
    LineItem,
    LineTotal,
    Party,
)


class DocumentKindEnum(str, Enum):
    """Document kind for API payloads."""
    INVOICE = "invoice"
    QUOTE = "quote"
    DELIVERY_NOTE = "delivery_note"


class DocumentStatusEnum(str, Enum):
    """Document status for API payloads."""
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    PAID = "paid"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# =============================================================================
# Shared Schemas
# =============================================================================

class PartySchema(BaseModel):
    """Issuer or customer profile."""
    name: str = Field(..., min_length=1, max_length=256)
    address_lines: list[str] = Field(default_factory=list, max_length=8)
    email: str | None = None
    phone: str | None = None
    tax_id: str | None = None
    currency: str | None = Field(
        default=None,
        pattern=r"^[A-Z]{3}$",
        description="Operating currency of the issuing account (ISO 4217)",
    )

    def to_domain(self) -> Party:
        return Party(
            name=self.name,
            address_lines=tuple(self.address_lines),
            email=self.email,
            phone=self.phone,
            tax_id=self.tax_id,
            currency=self.currency,
        )

    @classmethod
    def from_domain(cls, party: Party) -> "PartySchema":
        return cls(
            name=party.name,
            address_lines=list(party.address_lines),
            email=party.email,
            phone=party.phone,
            tax_id=party.tax_id,
            currency=party.currency,
        )


class LineItemSchema(BaseModel):
    """One billable row."""
    description: str = Field(..., max_length=2000)
    quantity: Decimal
    unit_price: Decimal
    tax_rate_percent: Decimal = Decimal("0")
    product_ref: str | None = None

    def to_domain(self) -> LineItem:
        return LineItem(
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            tax_rate_percent=self.tax_rate_percent,
            product_ref=self.product_ref,
        )

    @classmethod
    def from_domain(cls, item: LineItem) -> "LineItemSchema":
        return cls(
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            tax_rate_percent=item.tax_rate_percent,
            product_ref=item.product_ref,
        )


class LineTotalSchema(BaseModel):
    net: Decimal
    tax: Decimal
    total: Decimal


class TotalsSchema(BaseModel):
    """Totals locked at issue time."""
    subtotal: Decimal
    tax_total: Decimal
    grand_total: Decimal
    stamp_fee: Decimal = Decimal("0.00")
    payable_total: Decimal
    lines: list[LineTotalSchema] = []

    def to_domain(self) -> DocumentTotals:
        return DocumentTotals(
            subtotal=self.subtotal,
            tax_total=self.tax_total,
            grand_total=self.grand_total,
            stamp_fee=self.stamp_fee,
            payable_total=self.payable_total,
            lines=tuple(LineTotal(net=line.net, tax=line.tax, total=line.total) for line in self.lines),
        )

    @classmethod
    def from_domain(cls, totals: DocumentTotals) -> "TotalsSchema":
        return cls(
            subtotal=totals.subtotal,
            tax_total=totals.tax_total,
            grand_total=totals.grand_total,
            stamp_fee=totals.stamp_fee,
            payable_total=totals.payable_total,
            lines=[LineTotalSchema(net=line.net, tax=line.tax, total=line.total) for line in totals.lines],
        )


# =============================================================================
# Request Schemas
# =============================================================================

class IssueDocumentRequest(BaseModel):
    """Request to issue a new document."""
    account_id: str = Field(..., min_length=1, max_length=64)
    kind: DocumentKindEnum
    issuer: PartySchema
    customer: PartySchema
    issue_date: date
    secondary_date: date | None = Field(
        default=None,
        description="Due date for invoices, expiry date for quotes, absent for delivery notes",
    )
    notes: str | None = Field(default=None, max_length=20000)
    line_items: list[LineItemSchema] = []

    def to_draft(self) -> DocumentDraft:
        return DocumentDraft(
            kind=DocumentKind(self.kind.value),
            issuer=self.issuer.to_domain(),
            customer=self.customer.to_domain(),
            issue_date=self.issue_date,
            line_items=tuple(item.to_domain() for item in self.line_items),
            secondary_date=self.secondary_date,
            notes=self.notes,
        )


class DocumentRecordSchema(BaseModel):
    """An issued document, as returned by the issue endpoint."""
    id: str
    account_id: str
    kind: DocumentKindEnum
    number: str
    status: DocumentStatusEnum = DocumentStatusEnum.DRAFT
    issuer: PartySchema
    customer: PartySchema
    issue_date: date
    secondary_date: date | None = None
    notes: str | None = None
    currency: str = Field(..., pattern=r"^[A-Z]{3}$")
    line_items: list[LineItemSchema] = []
    totals: TotalsSchema

    def to_domain(self) -> DocumentRecord:
        return DocumentRecord(
            id=self.id,
            account_id=self.account_id,
            kind=DocumentKind(self.kind.value),
            number=self.number,
            issuer=self.issuer.to_domain(),
            customer=self.customer.to_domain(),
            issue_date=self.issue_date,
            totals=self.totals.to_domain(),
            currency=self.currency,
            line_items=tuple(item.to_domain() for item in self.line_items),
            secondary_date=self.secondary_date,
            notes=self.notes,
            status=DocumentStatus(self.status.value),
        )

    @classmethod
    def from_domain(cls, record: DocumentRecord) -> "DocumentRecordSchema":
        return cls(
            id=record.id,
            account_id=record.account_id,
            kind=DocumentKindEnum(record.kind.value),
            number=record.number,
            status=DocumentStatusEnum(record.status.value),
            issuer=PartySchema.from_domain(record.issuer),
            customer=PartySchema.from_domain(record.customer),
            issue_date=record.issue_date,
            secondary_date=record.secondary_date,
            notes=record.notes,
            currency=record.currency,
            line_items=[LineItemSchema.from_domain(item) for item in record.line_items],
            totals=TotalsSchema.from_domain(record.totals),
        )


class TransitionRequest(BaseModel):
    """Request to change a document's status."""
    document: DocumentRecordSchema
    status: DocumentStatusEnum


class ConvertQuoteRequest(BaseModel):
    """Request to turn a quote into an invoice."""
    account_id: str = Field(..., min_length=1, max_length=64)
    quote: DocumentRecordSchema
    issue_date: date | None = Field(
        default=None,
        description="Invoice issue date, today if omitted",
    )


# =============================================================================
# Response Schemas
# =============================================================================

class ConvertQuoteResponse(BaseModel):
    """The accepted quote and the invoice created from it."""
    quote: DocumentRecordSchema
    invoice: DocumentRecordSchema


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str
    database: str = "connected"
    sequence_backend: str


class ValidationIssueResponse(BaseModel):
    field_path: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: str | None = None
    issues: list[ValidationIssueResponse] = []
