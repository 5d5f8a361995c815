"""
Page layout engine.

Keeps a drawing cursor on a fixed-size A4 page and records draw operations
page by page. When a row does not fit above the bottom margin the engine
opens a new page, repeats the active table's column header row and carries
on, so a table of any length is split across pages without clipping.

All per-render state lives in RenderContext, which every operation
receives explicitly. The engine itself only holds immutable geometry
and limits, so one engine can serve any number of concurrent renders.

Coordinates are PDF points with the origin at the bottom-left corner;
cursor_y is the top of the free area and decreases as content is added.
A row allocated by advance_row occupies [cursor_y, cursor_y + height].
"""

import logging
from dataclasses import dataclass, field
from typing import Literal

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth

from facturier.domain.errors import LayoutOverflow

logger = logging.getLogger(__name__)

Align = Literal["left", "right", "center"]

# Sub-point slack so float accumulation never forces a spurious break
EPSILON = 0.001


@dataclass(frozen=True)
class PageGeometry:
    """Page size and margins, in points."""
    width: float = A4[0]
    height: float = A4[1]
    margin_top: float = 18 * mm
    margin_bottom: float = 18 * mm
    margin_left: float = 15 * mm
    margin_right: float = 15 * mm

    @property
    def content_top(self) -> float:
        return self.height - self.margin_top

    @property
    def content_left(self) -> float:
        return self.margin_left

    @property
    def content_right(self) -> float:
        return self.width - self.margin_right

    @property
    def content_width(self) -> float:
        return self.content_right - self.content_left

    @property
    def usable_height(self) -> float:
        return self.content_top - self.margin_bottom


@dataclass(frozen=True)
class TextStyle:
    """Font settings for a piece of text."""
    font: str = "Helvetica"
    size: float = 9
    color: str = "#000000"

    def width_of(self, text: str) -> float:
        return stringWidth(text, self.font, self.size)


BODY = TextStyle()
BOLD = TextStyle(font="Helvetica-Bold")
SMALL = TextStyle(size=7.5, color="#555555")
TITLE = TextStyle(font="Helvetica-Bold", size=18, color="#1F3A5F")
HEADER = TextStyle(font="Helvetica-Bold", size=8.5, color="#FFFFFF")


@dataclass(frozen=True)
class Column:
    """A table column with a fixed x-offset."""
    key: str
    label: str
    x: float
    width: float
    align: Align = "left"
    padding: float = 1.5 * mm

    @property
    def inner_width(self) -> float:
        return self.width - 2 * self.padding

    @property
    def anchor_x(self) -> float:
        """x at which text is anchored for this column's alignment."""
        if self.align == "right":
            return self.x + self.width - self.padding
        if self.align == "center":
            return self.x + self.width / 2
        return self.x + self.padding


@dataclass(frozen=True)
class TableLayout:
    """Columns and styles of the item table for one document kind."""
    columns: tuple[Column, ...]
    row_height: float = 6 * mm
    header_style: TextStyle = HEADER
    body_style: TextStyle = BODY
    header_fill: str = "#1F3A5F"

    @property
    def x(self) -> float:
        return self.columns[0].x

    @property
    def width(self) -> float:
        last = self.columns[-1]
        return last.x + last.width - self.x

    def column(self, key: str) -> Column:
        for column in self.columns:
            if column.key == key:
                return column
        raise KeyError(f"No column {key!r} in table layout")

    def has_column(self, key: str) -> bool:
        return any(column.key == key for column in self.columns)


# =============================================================================
# Recorded draw operations
# =============================================================================

@dataclass(frozen=True)
class TextOp:
    """Text anchored at (x, y) - y is the baseline."""
    x: float
    y: float
    text: str
    style: TextStyle
    align: Align = "left"
    tag: str = ""  # "table-header", "item", "total", ... for inspection


@dataclass(frozen=True)
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    width: float = 0.5
    color: str = "#B0B7C3"


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    width: float
    height: float
    fill: str


DrawOp = TextOp | LineOp | RectOp


@dataclass
class Page:
    """One output page and the operations drawn on it."""
    number: int
    ops: list[DrawOp] = field(default_factory=list)

    def texts(self, tag: str | None = None) -> list[TextOp]:
        return [
            op for op in self.ops
            if isinstance(op, TextOp) and (tag is None or op.tag == tag)
        ]


@dataclass
class RenderContext:
    """
    Per-render layout state.

    Owned by exactly one render call and discarded once the PDF bytes
    are produced.
    """
    geometry: PageGeometry
    pages: list[Page]
    cursor_y: float
    table: TableLayout | None = None
    row_height: float = 0.0  # height of the row most recently allocated

    @property
    def current_page(self) -> Page:
        return self.pages[-1]

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def remaining_height(self) -> float:
        return self.cursor_y - self.geometry.margin_bottom


def wrap_text(text: str, style: TextStyle, max_width: float) -> list[str]:
    """
    Split text into lines no wider than max_width.

    Explicit line breaks are kept, blank lines included. Tokens wider than
    the whole line (long URLs, IBANs) are cut into width-safe chunks, so no
    character is ever dropped.
    """
    lines: list[str] = []
    for paragraph in str(text).splitlines() or [""]:
        current = ""
        for word in paragraph.split():
            for token in _split_long_token(word, style, max_width):
                candidate = f"{current} {token}" if current else token
                if style.width_of(candidate) <= max_width:
                    current = candidate
                else:
                    if current:
                        lines.append(current)
                    current = token
        lines.append(current)
    return lines


def _split_long_token(token: str, style: TextStyle, max_width: float) -> list[str]:
    if style.width_of(token) <= max_width:
        return [token]

    chunks = []
    remaining = token
    while remaining:
        # Binary search for the longest prefix that fits
        lo, hi, fit = 1, len(remaining), 1
        while lo <= hi:
            mid = (lo + hi) // 2
            if style.width_of(remaining[:mid]) <= max_width:
                fit = mid
                lo = mid + 1
            else:
                hi = mid - 1
        chunks.append(remaining[:fit])
        remaining = remaining[fit:]
    return chunks


class PageLayoutEngine:
    """
    Allocates rows on pages and records draw operations.

    Example:
        engine = PageLayoutEngine()
        ctx = engine.start()
        engine.begin_table(ctx, table)
        for row in rows:
            engine.advance_row(ctx, table.row_height)
            engine.draw_text(ctx, table.column("description"), row.text, BODY)
        engine.end_table(ctx)
    """

    def __init__(
        self,
        geometry: PageGeometry | None = None,
        max_pages: int = 500,
    ) -> None:
        self.geometry = geometry or PageGeometry()
        self.max_pages = max_pages

    def start(self) -> RenderContext:
        """Open a fresh context with a single empty page."""
        return RenderContext(
            geometry=self.geometry,
            pages=[Page(number=1)],
            cursor_y=self.geometry.content_top,
        )

    # -------------------------------------------------------------------------
    # Cursor movement
    # -------------------------------------------------------------------------

    def advance_row(self, ctx: RenderContext, height: float) -> None:
        """
        Allocate a row of the given height below the cursor.

        If the row would fall below the bottom margin the current page is
        closed, a new one opened (with the table header repeated when a table
        is active) and the row is allocated there instead.
        """
        if height > self._first_row_capacity(ctx):
            raise ValueError(f"Row of {height:.1f}pt cannot fit on an empty page")

        if ctx.cursor_y - height < self.geometry.margin_bottom - EPSILON:
            self.break_page(ctx)

        ctx.cursor_y -= height
        ctx.row_height = height

    def new_section(self, ctx: RenderContext, gap: float) -> None:
        """
        Insert vertical whitespace between blocks.

        Never repeats a table header. A gap that reaches past the bottom
        margin simply starts the next block on a new page.
        """
        if ctx.cursor_y - gap < self.geometry.margin_bottom - EPSILON:
            self.break_page(ctx, repeat_header=False)
        else:
            ctx.cursor_y -= gap

    def ensure_room(self, ctx: RenderContext, height: float) -> bool:
        """
        Make sure a block of the given height fits before drawing it.

        Returns True if a page break was needed.
        """
        if height > self.geometry.usable_height:
            raise ValueError(f"Block of {height:.1f}pt is taller than a page")
        if ctx.cursor_y - height < self.geometry.margin_bottom - EPSILON:
            self.break_page(ctx, repeat_header=False)
            return True
        return False

    def break_page(self, ctx: RenderContext, repeat_header: bool = True) -> None:
        """Close the current page and continue on a new one."""
        if ctx.page_count >= self.max_pages:
            logger.warning(f"Page cap of {self.max_pages} reached")
            raise LayoutOverflow(self.max_pages)

        ctx.pages.append(Page(number=ctx.page_count + 1))
        ctx.cursor_y = self.geometry.content_top
        logger.debug(f"Opened page {ctx.page_count}")

        if repeat_header and ctx.table is not None:
            self._draw_table_header(ctx)

    def _first_row_capacity(self, ctx: RenderContext) -> float:
        """Height available to a body row on a freshly opened page."""
        capacity = self.geometry.usable_height
        if ctx.table is not None:
            capacity -= ctx.table.row_height
        return capacity

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    def begin_table(self, ctx: RenderContext, table: TableLayout) -> None:
        """
        Emit the column header row and keep it active for page breaks.

        The header is never left alone at the bottom of a page: room for
        the header plus one body row is reserved first.
        """
        self.ensure_room(ctx, 2 * table.row_height)
        ctx.table = table
        self._draw_table_header(ctx)

    def end_table(self, ctx: RenderContext) -> None:
        if ctx.table is not None:
            table = ctx.table
            self.draw_rule(ctx, table.x, table.x + table.width)
        ctx.table = None

    def _draw_table_header(self, ctx: RenderContext) -> None:
        table = ctx.table
        ctx.cursor_y -= table.row_height
        ctx.row_height = table.row_height

        ctx.current_page.ops.append(RectOp(
            x=table.x,
            y=ctx.cursor_y,
            width=table.width,
            height=table.row_height,
            fill=table.header_fill,
        ))
        for column in table.columns:
            self.draw_text(ctx, column, column.label, table.header_style, tag="table-header")

    # -------------------------------------------------------------------------
    # Drawing
    # -------------------------------------------------------------------------

    def _baseline(self, ctx: RenderContext, style: TextStyle) -> float:
        # Centre the cap height (about 0.7 em) inside the current row
        return ctx.cursor_y + max(ctx.row_height - 0.7 * style.size, 0) / 2

    def draw_text(
        self,
        ctx: RenderContext,
        column: Column,
        text: str,
        style: TextStyle = BODY,
        tag: str = "",
    ) -> None:
        """Place text in a column of the row most recently allocated."""
        ctx.current_page.ops.append(TextOp(
            x=column.anchor_x,
            y=self._baseline(ctx, style),
            text=text,
            style=style,
            align=column.align,
            tag=tag,
        ))

    def draw_text_at(
        self,
        ctx: RenderContext,
        x: float,
        text: str,
        style: TextStyle = BODY,
        align: Align = "left",
        tag: str = "",
    ) -> None:
        """Place text at an arbitrary x on the row most recently allocated."""
        ctx.current_page.ops.append(TextOp(
            x=x,
            y=self._baseline(ctx, style),
            text=text,
            style=style,
            align=align,
            tag=tag,
        ))

    def draw_rule(self, ctx: RenderContext, x1: float, x2: float, width: float = 0.5) -> None:
        """Horizontal line at the cursor."""
        ctx.current_page.ops.append(LineOp(x1, ctx.cursor_y, x2, ctx.cursor_y, width=width))

    def draw_columns(
        self,
        ctx: RenderContext,
        blocks: list[tuple[float, list[tuple[str, TextStyle]]]],
        line_height: float,
        tag: str = "",
    ) -> None:
        """
        Draw independent side-by-side text blocks starting at the cursor.

        Each block is (x, [(text, style), ...]). Blocks are laid out from the
        same top edge; afterwards the cursor sits below the tallest block.
        """
        tallest = max((len(lines) for _, lines in blocks), default=0) * line_height
        if tallest == 0:
            return
        self.ensure_room(ctx, tallest)

        top = ctx.cursor_y
        bottoms = []
        for x, lines in blocks:
            ctx.cursor_y = top
            for text, style in lines:
                ctx.cursor_y -= line_height
                ctx.row_height = line_height
                self.draw_text_at(ctx, x, text, style, tag=tag)
            bottoms.append(ctx.cursor_y)

        ctx.cursor_y = min(bottoms)
