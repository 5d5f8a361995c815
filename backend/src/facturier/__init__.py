"""
Facturier - document issuing core.

Numbers, totals and paginated PDF rendering for invoices,
quotes and delivery notes.
"""

__version__ = "0.1.0"
