"""Document ingestion for specrecon.

Turns specification and invoice documents into structured items.
"""

from specrecon.ingestion.invoices import parse_invoice_file, parse_invoice_grid
from specrecon.ingestion.specifications import (
    parse_specification_file,
    parse_specification_grid,
)

__all__ = [
    "parse_invoice_file",
    "parse_invoice_grid",
    "parse_specification_file",
    "parse_specification_grid",
]
