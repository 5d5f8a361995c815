"""
Domain package - Core business logic with no external dependencies.

This package contains pure Python domain models, numbering rules and
money calculations for issuing invoices, quotes and delivery notes.
"""
