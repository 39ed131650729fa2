"""Specification-to-invoice reconciliation.

Parses customer specifications and supplier invoices into structured items,
matches them with learned rules and fuzzy similarity, and prices the result.
"""

__version__ = "0.1.0"
