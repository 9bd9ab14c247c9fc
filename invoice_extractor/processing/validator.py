"""
Reconciliation of an extracted invoice's stated total against its parts.

An inconsistent invoice is not rejected; it gets a human-readable warning
attached in ``validation_error``.
"""

import logging
from decimal import Decimal

from invoice_extractor.models.invoice import InvoiceRecord
from invoice_extractor.utils import format_currency, to_decimal

logger = logging.getLogger(__name__)

# Currency rounding allowance: one cent
TOLERANCE = Decimal("0.01")


def line_items_sum(record: InvoiceRecord) -> Decimal:
    """Sum of line totals; a missing line total counts as zero."""
    return sum(
        (to_decimal(item.line_total) for item in record.line_items or []),
        Decimal("0"),
    )


def calculated_total(record: InvoiceRecord) -> Decimal:
    """Line items plus freight; missing freight counts as zero."""
    return line_items_sum(record) + to_decimal(record.total_freight)


def reconcile(record: InvoiceRecord, symbol: str = "$") -> InvoiceRecord:
    """
    Check ``invoice_total ≈ sum(line totals) + freight`` within one cent.

    Skipped entirely when the record has no invoice total or no line items.

    Args:
        record: Freshly extracted invoice
        symbol: Currency symbol used in the warning message

    Returns:
        The same record, or a copy with ``validation_error`` set
    """
    if record.invoice_total is None or record.line_items is None:
        return record

    stated = to_decimal(record.invoice_total)
    calculated = calculated_total(record)
    discrepancy = abs(stated - calculated)

    if discrepancy <= TOLERANCE:
        return record

    message = (
        f"Warning: Invoice total of {format_currency(stated, symbol)} does not match "
        f"the sum of line items plus freight ({format_currency(calculated, symbol)}). "
        f"Discrepancy is {format_currency(discrepancy, symbol)}."
    )
    logger.info(f"{record.file_name}: total mismatch of {discrepancy}")
    return record.model_copy(update={"validation_error": message})
