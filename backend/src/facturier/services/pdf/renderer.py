"""
Document renderer.

One renderer for every document kind. The kind profile decides the title,
which secondary date is printed, whether the tax column exists and whether
a fiscal stamp can appear; the rendering phases themselves are shared.

Phases run strictly in this order, never backwards:
    header -> parties -> date line -> item table -> totals
    -> stamp (if any) -> notes (if any)

The renderer never recomputes money: it prints the totals locked into
the record when it was issued.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum

from reportlab.lib.units import mm

from facturier.domain.errors import DocumentNotFound, ValidationFailure, ValidationIssue
from facturier.domain.hashing import compute_document_hash
from facturier.domain.models import DocumentKind, DocumentRecord, Party
from facturier.domain.money import format_amount, format_quantity
from facturier.domain.numbering import document_filename, parse_document_number
from facturier.domain.validation import check_secondary_date, raise_for_issues

from .layout import (
    BODY,
    BOLD,
    SMALL,
    TITLE,
    Column,
    PageGeometry,
    PageLayoutEngine,
    RenderContext,
    TableLayout,
    TextStyle,
    wrap_text,
)
from .writer import PdfWriter

logger = logging.getLogger(__name__)


PDF_CONTENT_TYPE = "application/pdf"

HEADER_ROW = 11 * mm
BLOCK_LINE = 4.5 * mm
NOTE_LINE = 4.5 * mm
SECTION_GAP = 6 * mm
MAX_PARTY_LINES = 14

# Column widths in mm, summing to the 180mm content width of A4
_WITH_TAX = (
    ("description", "Description", 80, "left"),
    ("quantity", "Qty", 18, "right"),
    ("unit_price", "Unit price", 30, "right"),
    ("tax_rate", "Tax", 16, "right"),
    ("line_total", "Total", 36, "right"),
)
_WITHOUT_TAX = (
    ("description", "Description", 96, "left"),
    ("quantity", "Qty", 18, "right"),
    ("unit_price", "Unit price", 30, "right"),
    ("line_total", "Total", 36, "right"),
)


class RenderPhase(Enum):
    HEADER = "header"
    PARTIES = "parties"
    DATE_LINE = "date_line"
    ITEM_TABLE = "item_table"
    TOTALS = "totals"
    STAMP = "stamp"
    NOTES = "notes"
    DONE = "done"


@dataclass(frozen=True)
class RenderedDocument:
    """A finished, immutable PDF artifact."""
    number: str
    filename: str
    content: bytes
    page_count: int
    content_type: str = PDF_CONTENT_TYPE

    @property
    def content_hash(self) -> str:
        return compute_document_hash(self.content)


def table_for_kind(kind: DocumentKind, geometry: PageGeometry) -> TableLayout:
    """Item table columns for a document kind."""
    widths = _WITH_TAX if kind.profile.show_line_tax else _WITHOUT_TAX
    columns = []
    x = geometry.content_left
    for key, label, width_mm, align in widths:
        columns.append(Column(key=key, label=label, x=x, width=width_mm * mm, align=align))
        x += width_mm * mm
    return TableLayout(columns=tuple(columns))


def party_lines(label: str, party: Party, width: float) -> list[tuple[str, TextStyle]]:
    """Printed lines of a party block: label, wrapped name, then contact details."""
    lines = [(label.upper(), SMALL)]
    lines += [(text, BOLD) for text in wrap_text(party.name, BOLD, width)]
    for detail in party.display_lines():
        lines += [(text, BODY) for text in wrap_text(detail, BODY, width)]
    return lines


def party_blocks(kind: DocumentKind, issuer: Party, customer: Party, geometry: PageGeometry):
    """The side-by-side issuer and customer blocks as (x, lines, field_path)."""
    half = geometry.content_width / 2
    customer_label = "Deliver to" if kind is DocumentKind.DELIVERY_NOTE else "Bill to"
    return [
        (geometry.content_left, party_lines("From", issuer, half - 5 * mm), "issuer"),
        (geometry.content_left + half, party_lines(customer_label, customer, half), "customer"),
    ]


def check_party_blocks(
    kind: DocumentKind,
    issuer: Party,
    customer: Party,
    geometry: PageGeometry,
) -> list[ValidationIssue]:
    """Party profiles that would not fit the header area."""
    issues = []
    for _, lines, field_path in party_blocks(kind, issuer, customer, geometry):
        if len(lines) > MAX_PARTY_LINES:
            issues.append(ValidationIssue(
                field_path,
                f"profile needs {len(lines)} printed lines, at most {MAX_PARTY_LINES} fit the header",
            ))
    return issues


def validate_record(record: DocumentRecord, geometry: PageGeometry | None = None) -> None:
    """
    Check the kind-specific input contract before rendering.

    Raises:
        DocumentNotFound: If the record arrives without its line items
        ValidationFailure: Listing every violation found
    """
    if record.totals.lines and not record.line_items:
        raise DocumentNotFound(f"{record.number} line items")

    issues = check_secondary_date(record.kind, record.issue_date, record.secondary_date)
    issues += check_party_blocks(record.kind, record.issuer, record.customer, geometry or PageGeometry())

    try:
        parsed = parse_document_number(record.number)
        if parsed.kind is not record.kind:
            issues.append(ValidationIssue(
                "number",
                f"{record.number} is not a {record.kind.value} number",
            ))
    except ValidationFailure as e:
        issues.extend(e.issues)

    if len(record.totals.lines) != len(record.line_items):
        issues.append(ValidationIssue(
            "totals.lines",
            f"{len(record.totals.lines)} line totals for {len(record.line_items)} line items",
        ))

    raise_for_issues(issues)


class DocumentRenderer:
    """
    Lays out a document record and writes it as PDF.

    Example:
        renderer = DocumentRenderer()
        rendered = renderer.render(record)
        rendered.filename  # "fact-FACT202410-0001.pdf"
    """

    def __init__(
        self,
        engine: PageLayoutEngine | None = None,
        writer: PdfWriter | None = None,
    ) -> None:
        self.engine = engine or PageLayoutEngine()
        self.writer = writer or PdfWriter(self.engine.geometry)

    def render(self, record: DocumentRecord) -> RenderedDocument:
        """
        Render a record to PDF.

        Raises:
            ValidationFailure: If the record breaks its kind's input contract
            LayoutOverflow: If the document would exceed the page cap
        """
        ctx = self.layout(record)
        content = self.writer.write(
            ctx.pages,
            title=f"{record.kind.profile.title.title()} {record.number}",
            author=record.issuer.name,
            footer=f"{record.kind.profile.title.title()} {record.number}",
        )
        logger.info(f"Rendered {record.number}: {ctx.page_count} page(s), {len(content)} bytes")

        return RenderedDocument(
            number=record.number,
            filename=document_filename(record.kind, record.number),
            content=content,
            page_count=ctx.page_count,
        )

    def check_parties(self, kind: DocumentKind, issuer: Party, customer: Party) -> list[ValidationIssue]:
        """Party profiles this renderer could not print; empty if both fit."""
        return check_party_blocks(kind, issuer, customer, self.engine.geometry)

    def layout(self, record: DocumentRecord) -> RenderContext:
        """Run every rendering phase and return the laid-out pages."""
        validate_record(record, self.engine.geometry)

        ctx = self.engine.start()
        phases = (
            (RenderPhase.HEADER, self._header),
            (RenderPhase.PARTIES, self._parties),
            (RenderPhase.DATE_LINE, self._date_line),
            (RenderPhase.ITEM_TABLE, self._item_table),
            (RenderPhase.TOTALS, self._totals),
            (RenderPhase.STAMP, self._stamp),
            (RenderPhase.NOTES, self._notes),
        )
        for phase, step in phases:
            logger.debug(f"{record.number}: {phase.value}")
            step(ctx, record)
        logger.debug(f"{record.number}: {RenderPhase.DONE.value}")
        return ctx

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def _header(self, ctx: RenderContext, record: DocumentRecord) -> None:
        geometry = self.engine.geometry
        self.engine.advance_row(ctx, HEADER_ROW)
        self.engine.draw_text_at(ctx, geometry.content_left, record.kind.profile.title, TITLE, tag="title")
        self.engine.draw_text_at(
            ctx, geometry.content_right, f"No. {record.number}", BOLD, align="right", tag="number",
        )
        self.engine.draw_rule(ctx, geometry.content_left, geometry.content_right, width=1)
        self.engine.new_section(ctx, SECTION_GAP)

    def _parties(self, ctx: RenderContext, record: DocumentRecord) -> None:
        blocks = [
            (x, lines)
            for x, lines, _ in party_blocks(record.kind, record.issuer, record.customer, self.engine.geometry)
        ]
        self.engine.draw_columns(ctx, blocks, BLOCK_LINE, tag="party")
        self.engine.new_section(ctx, SECTION_GAP)

    def _date_line(self, ctx: RenderContext, record: DocumentRecord) -> None:
        geometry = self.engine.geometry
        profile = record.kind.profile

        self.engine.advance_row(ctx, BLOCK_LINE)
        self.engine.draw_text_at(
            ctx, geometry.content_left, f"Issue date: {_format_date(record.issue_date)}", BODY, tag="date",
        )
        if profile.requires_secondary_date:
            self.engine.draw_text_at(
                ctx,
                geometry.content_left + geometry.content_width / 2,
                f"{profile.secondary_date_label}: {_format_date(record.secondary_date)}",
                BODY,
                tag="date",
            )
        self.engine.draw_text_at(
            ctx, geometry.content_right, f"Currency: {record.currency}", BODY, align="right", tag="date",
        )
        self.engine.new_section(ctx, SECTION_GAP)

    def _item_table(self, ctx: RenderContext, record: DocumentRecord) -> None:
        table = table_for_kind(record.kind, self.engine.geometry)
        description = table.column("description")
        engine = self.engine

        engine.begin_table(ctx, table)
        for item, line in zip(record.line_items, record.totals.lines):
            text_lines = wrap_text(item.description, table.body_style, description.inner_width)

            engine.advance_row(ctx, table.row_height)
            engine.draw_text(ctx, description, text_lines[0], table.body_style, tag="item")
            engine.draw_text(ctx, table.column("quantity"), format_quantity(item.quantity), tag="item")
            engine.draw_text(
                ctx, table.column("unit_price"), format_amount(item.unit_price, record.currency), tag="item",
            )
            if table.has_column("tax_rate"):
                engine.draw_text(
                    ctx, table.column("tax_rate"), f"{format_quantity(item.tax_rate_percent)}%", tag="item",
                )
            engine.draw_text(
                ctx, table.column("line_total"), format_amount(line.total, record.currency), tag="item",
            )

            # Continuation rows carry the rest of a long description
            for text in text_lines[1:]:
                engine.advance_row(ctx, table.row_height)
                engine.draw_text(ctx, description, text, table.body_style, tag="item-continued")

            engine.draw_rule(ctx, table.x, table.x + table.width, width=0.25)
        engine.end_table(ctx)

    def _totals(self, ctx: RenderContext, record: DocumentRecord) -> None:
        totals = record.totals
        rows = [
            ("Subtotal (excl. tax)", totals.subtotal, BODY),
            ("Tax", totals.tax_total, BODY),
            ("Total", totals.grand_total, BOLD),
        ]
        # The stamp lines travel with the totals so the block is never split
        reserved = len(rows) + (2 if totals.has_stamp else 0)

        self.engine.new_section(ctx, SECTION_GAP / 2)
        self.engine.ensure_room(ctx, reserved * BLOCK_LINE)
        self._amount_rows(ctx, record, rows, tag="total")

    def _stamp(self, ctx: RenderContext, record: DocumentRecord) -> None:
        totals = record.totals
        if not totals.has_stamp:
            return
        rows = [
            ("Fiscal stamp", totals.stamp_fee, BODY),
            ("Amount payable", totals.payable_total, BOLD),
        ]
        self._amount_rows(ctx, record, rows, tag="stamp")

    def _amount_rows(self, ctx: RenderContext, record: DocumentRecord, rows, tag: str) -> None:
        total_column = table_for_kind(record.kind, self.engine.geometry).column("line_total")
        label_x = total_column.x - total_column.padding

        for label, amount, style in rows:
            self.engine.advance_row(ctx, BLOCK_LINE)
            self.engine.draw_text_at(ctx, label_x, label, style, align="right", tag=tag)
            self.engine.draw_text(ctx, total_column, format_amount(amount, record.currency), style, tag=tag)

    def _notes(self, ctx: RenderContext, record: DocumentRecord) -> None:
        if not record.has_notes:
            return
        geometry = self.engine.geometry
        lines = wrap_text(record.notes.strip(), BODY, geometry.content_width)

        self.engine.new_section(ctx, SECTION_GAP)
        # Keep the label together with at least the first line of text
        self.engine.ensure_room(ctx, 2 * NOTE_LINE)
        self.engine.advance_row(ctx, NOTE_LINE)
        self.engine.draw_text_at(ctx, geometry.content_left, "NOTES", SMALL, tag="notes-label")

        for text in lines:
            self.engine.advance_row(ctx, NOTE_LINE)
            self.engine.draw_text_at(ctx, geometry.content_left, text, BODY, tag="notes")


def _format_date(value: date | None) -> str:
    return value.isoformat() if value else ""
