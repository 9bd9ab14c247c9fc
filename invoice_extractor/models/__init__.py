"""Invoice data models and the extraction contract."""

from invoice_extractor.models.invoice import (
    EXPORT_HEADERS,
    ExtractedInvoice,
    ExtractedLineItem,
    InvoiceLineItem,
    InvoiceRecord,
)

__all__ = [
    "EXPORT_HEADERS",
    "ExtractedInvoice",
    "ExtractedLineItem",
    "InvoiceLineItem",
    "InvoiceRecord",
]
