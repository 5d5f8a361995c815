"""
Document issuing service.

The façade the calling layer talks to:
1. Issue a draft - validate, compute totals, reserve a number
2. Render an issued record to PDF
3. Convert an accepted quote into an invoice
4. Move a record through its status lifecycle

Records come in fully loaded and go back out as values; storing them is
the caller's business.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from uuid import uuid4

from facturier.config import Settings
from facturier.domain.errors import ValidationFailure
from facturier.domain.models import (
    DocumentDraft,
    DocumentKind,
    DocumentRecord,
    DocumentStatus,
)
from facturier.domain.money import MoneyCalculator
from facturier.domain.validation import check_secondary_date, raise_for_issues

from .pdf import DocumentRenderer, PageLayoutEngine, RenderedDocument
from .sequence import SequenceGenerator

logger = logging.getLogger(__name__)


# Allowed status changes; kind restrictions are applied on top
STATUS_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.DRAFT: frozenset({
        DocumentStatus.SENT,
        DocumentStatus.ACCEPTED,
        DocumentStatus.PAID,
        DocumentStatus.DELIVERED,
        DocumentStatus.CANCELLED,
    }),
    DocumentStatus.SENT: frozenset({
        DocumentStatus.ACCEPTED,
        DocumentStatus.PAID,
        DocumentStatus.DELIVERED,
        DocumentStatus.CANCELLED,
    }),
    DocumentStatus.ACCEPTED: frozenset(),
    DocumentStatus.PAID: frozenset(),
    DocumentStatus.DELIVERED: frozenset(),
    DocumentStatus.CANCELLED: frozenset(),
}

KIND_ONLY_STATUSES: dict[DocumentStatus, DocumentKind] = {
    DocumentStatus.ACCEPTED: DocumentKind.QUOTE,
    DocumentStatus.PAID: DocumentKind.INVOICE,
    DocumentStatus.DELIVERED: DocumentKind.DELIVERY_NOTE,
}


@dataclass(frozen=True)
class QuoteConversion:
    """Result of turning a quote into an invoice."""
    quote: DocumentRecord
    invoice: DocumentRecord


class DocumentService:
    """
    Issues, renders and converts business documents.

    Example:
        service = DocumentService.from_settings(settings, generator)
        record = await service.issue("acc_42", draft)
        pdf = service.render(record)
    """

    def __init__(
        self,
        sequence: SequenceGenerator,
        calculator: MoneyCalculator,
        renderer: DocumentRenderer,
        default_currency: str = "EUR",
        payment_terms_days: int = 30,
    ) -> None:
        self.sequence = sequence
        self.calculator = calculator
        self.renderer = renderer
        self.default_currency = default_currency
        self.payment_terms_days = payment_terms_days

    @classmethod
    def from_settings(cls, settings: Settings, sequence: SequenceGenerator) -> "DocumentService":
        return cls(
            sequence=sequence,
            calculator=MoneyCalculator.from_settings(settings),
            renderer=DocumentRenderer(PageLayoutEngine(max_pages=settings.max_pages)),
            default_currency=settings.default_currency,
            payment_terms_days=settings.payment_terms_days,
        )

    async def issue(self, account_id: str, draft: DocumentDraft) -> DocumentRecord:
        """
        Issue a document: lock its totals and give it a number.

        Every check runs before the number is reserved, so a rejected
        draft never consumes a sequence value.

        Raises:
            ValidationFailure: If a line item breaks a numeric invariant,
                the secondary date does not suit the document kind or a
                party profile is too long to print
        """
        issues = check_secondary_date(draft.kind, draft.issue_date, draft.secondary_date)
        issues += self.renderer.check_parties(draft.kind, draft.issuer, draft.customer)
        raise_for_issues(issues)
        totals = self.calculator.compute(draft.line_items, draft.kind)
        number = await self.sequence.generate(account_id, draft.kind)

        record = DocumentRecord(
            id=str(uuid4()),
            account_id=account_id,
            kind=draft.kind,
            number=number,
            issuer=draft.issuer,
            customer=draft.customer,
            issue_date=draft.issue_date,
            totals=totals,
            currency=draft.issuer.currency or self.default_currency,
            line_items=tuple(draft.line_items),
            secondary_date=draft.secondary_date,
            notes=draft.notes,
        )
        logger.info(
            f"Issued {record.number} for {account_id}: "
            f"{len(record.line_items)} line(s), payable {totals.payable_total} {record.currency}"
        )
        return record

    def render(self, record: DocumentRecord) -> RenderedDocument:
        """Render an issued record to PDF."""
        return self.renderer.render(record)

    async def issue_and_render(
        self,
        account_id: str,
        draft: DocumentDraft,
    ) -> tuple[DocumentRecord, RenderedDocument]:
        """Issue a draft and render it in one call."""
        record = await self.issue(account_id, draft)
        return record, self.render(record)

    def transition(self, record: DocumentRecord, status: DocumentStatus) -> DocumentRecord:
        """
        Change a record's status. Number and totals are left untouched.

        Raises:
            ValidationFailure: If the transition is not allowed
        """
        if status not in STATUS_TRANSITIONS[record.status]:
            raise ValidationFailure.single(
                "status",
                f"cannot move a {record.status.value} {record.kind.value} to {status.value}",
            )
        required_kind = KIND_ONLY_STATUSES.get(status)
        if required_kind is not None and record.kind is not required_kind:
            raise ValidationFailure.single(
                "status",
                f"{status.value} only applies to a {required_kind.value}",
            )

        logger.info(f"{record.number}: {record.status.value} -> {status.value}")
        return record.with_status(status)

    async def convert_quote(
        self,
        account_id: str,
        quote: DocumentRecord,
        issue_date: date,
    ) -> QuoteConversion:
        """
        Turn a quote into an invoice.

        The invoice copies the quote's parties, lines and notes, gets a fresh
        invoice number and a due date after the configured payment terms.
        The quote is returned marked accepted.

        Raises:
            ValidationFailure: If the record is not a convertible quote
        """
        if quote.kind is not DocumentKind.QUOTE:
            raise ValidationFailure.single("kind", f"only quotes convert, got {quote.kind.value}")
        if quote.account_id != account_id:
            raise ValidationFailure.single("account_id", "quote belongs to another account")

        accepted = self.transition(quote, DocumentStatus.ACCEPTED)

        draft = DocumentDraft(
            kind=DocumentKind.INVOICE,
            issuer=replace(quote.issuer, currency=quote.currency),
            customer=quote.customer,
            issue_date=issue_date,
            line_items=quote.line_items,
            secondary_date=issue_date + timedelta(days=self.payment_terms_days),
            notes=quote.notes,
        )
        invoice = await self.issue(account_id, draft)
        logger.info(f"Converted quote {quote.number} into invoice {invoice.number}")

        return QuoteConversion(quote=accepted, invoice=invoice)
