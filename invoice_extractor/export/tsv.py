"""
Tab-delimited export of invoices, one row per line item.

The text pastes straight into a spreadsheet: tab between fields, newline
between rows, header row first.
"""

import re
from typing import Any, Iterable, List

from invoice_extractor.models.invoice import EXPORT_HEADERS, InvoiceRecord
from invoice_extractor.utils import format_number

FIELD_SEPARATOR = "\t"
ROW_SEPARATOR = "\n"

_CONTROL_CHARS = re.compile(r"[\t\n\r]")


def escape_field(value: Any) -> str:
    """Render one cell: None is empty, tabs and line breaks become spaces."""
    return _CONTROL_CHARS.sub(" ", format_number(value))


def export_rows(records: Iterable[InvoiceRecord]) -> List[List[Any]]:
    """All data rows in record order, then line-item order."""
    rows: List[List[Any]] = []
    for record in records:
        rows.extend(record.to_export_rows())
    return rows


def to_tsv(records: Iterable[InvoiceRecord]) -> str:
    """
    Build the tab-delimited export for the given records.

    Returns:
        Header row plus one row per line item (one row for an invoice with
        no line items), joined by newlines with no trailing newline
    """
    lines = [FIELD_SEPARATOR.join(EXPORT_HEADERS)]
    for row in export_rows(records):
        lines.append(FIELD_SEPARATOR.join(escape_field(value) for value in row))
    return ROW_SEPARATOR.join(lines)
