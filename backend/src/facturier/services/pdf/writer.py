"""
PDF output for laid-out pages.

Replays the draw operations recorded by PageLayoutEngine onto a reportlab
canvas. The page count is only known once layout is finished, which is why
page footers ("Page 2 / 5") are stamped here rather than during layout.

The canvas runs in invariant mode: no creation date and a fixed document
ID, so the same pages always produce the same bytes.
"""

import io
import logging

from reportlab.lib.colors import HexColor
from reportlab.pdfgen import canvas

from .layout import SMALL, LineOp, Page, PageGeometry, RectOp, TextOp

logger = logging.getLogger(__name__)


class PdfWriter:
    """Serializes pages to PDF bytes."""

    def __init__(self, geometry: PageGeometry | None = None) -> None:
        self.geometry = geometry or PageGeometry()

    def write(
        self,
        pages: list[Page],
        title: str,
        author: str = "",
        footer: str = "",
    ) -> bytes:
        """
        Render pages to a PDF document.

        Args:
            pages: Laid-out pages in order
            title: Document title metadata
            author: Author metadata (the issuing account)
            footer: Text printed at the bottom left of every page
        """
        if not pages:
            raise ValueError("Cannot write a PDF without pages")

        buffer = io.BytesIO()
        pdf = canvas.Canvas(
            buffer,
            pagesize=(self.geometry.width, self.geometry.height),
            invariant=1,
        )
        pdf.setTitle(title)
        pdf.setAuthor(author)
        pdf.setCreator("Facturier")

        total = len(pages)
        for page in pages:
            for op in page.ops:
                self._draw(pdf, op)
            self._draw_footer(pdf, page.number, total, footer)
            pdf.showPage()

        pdf.save()
        content = buffer.getvalue()
        logger.debug(f"Wrote {total} page(s), {len(content)} bytes")
        return content

    def _draw(self, pdf: canvas.Canvas, op) -> None:
        if isinstance(op, TextOp):
            pdf.setFont(op.style.font, op.style.size)
            pdf.setFillColor(HexColor(op.style.color))
            if op.align == "right":
                pdf.drawRightString(op.x, op.y, op.text)
            elif op.align == "center":
                pdf.drawCentredString(op.x, op.y, op.text)
            else:
                pdf.drawString(op.x, op.y, op.text)
        elif isinstance(op, LineOp):
            pdf.setStrokeColor(HexColor(op.color))
            pdf.setLineWidth(op.width)
            pdf.line(op.x1, op.y1, op.x2, op.y2)
        elif isinstance(op, RectOp):
            pdf.setFillColor(HexColor(op.fill))
            pdf.rect(op.x, op.y, op.width, op.height, stroke=0, fill=1)
        else:
            raise TypeError(f"Unknown draw operation: {op!r}")

    def _draw_footer(self, pdf: canvas.Canvas, number: int, total: int, footer: str) -> None:
        y = self.geometry.margin_bottom / 2
        pdf.setFont(SMALL.font, SMALL.size)
        pdf.setFillColor(HexColor(SMALL.color))
        if footer:
            pdf.drawString(self.geometry.content_left, y, footer)
        pdf.drawRightString(self.geometry.content_right, y, f"Page {number} / {total}")
