"""
PDF subpackage - Paginated rendering of issued documents.
"""

from .layout import PageGeometry, PageLayoutEngine, RenderContext, TableLayout
from .renderer import DocumentRenderer, RenderedDocument
from .writer import PdfWriter

__all__ = [
    "DocumentRenderer",
    "PageGeometry",
    "PageLayoutEngine",
    "PdfWriter",
    "RenderContext",
    "RenderedDocument",
    "TableLayout",
]
