"""
Services package - Numbering, rendering and the issuing façade.
"""

from .documents import DocumentService, QuoteConversion
from .pdf import DocumentRenderer, PageLayoutEngine, RenderedDocument
from .sequence import CounterStore, InMemoryCounterStore, SequenceGenerator, SqlCounterStore

__all__ = [
    "CounterStore",
    "DocumentRenderer",
    "DocumentService",
    "InMemoryCounterStore",
    "PageLayoutEngine",
    "QuoteConversion",
    "RenderedDocument",
    "SequenceGenerator",
    "SqlCounterStore",
]
