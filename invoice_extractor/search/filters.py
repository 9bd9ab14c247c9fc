"""Text search and invoice-date range filtering over extracted invoices."""

from datetime import date, datetime, time
from typing import List, Optional, Sequence, Union

from invoice_extractor.models.invoice import InvoiceRecord
from invoice_extractor.utils import parse_date

DateBound = Union[str, date, None]

_END_OF_DAY = time(23, 59, 59, 999000)


def _to_datetime(value: DateBound) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return parse_date(value)


def matches_query(record: InvoiceRecord, query: str) -> bool:
    """Case-insensitive substring match against any of the record's search fields."""
    normalized = (query or "").lower()
    if not normalized:
        return True
    return any(normalized in term for term in record.searchable_terms())


def within_date_range(
    record: InvoiceRecord,
    start: Optional[datetime],
    end: Optional[datetime],
) -> bool:
    """
    Whether the record's invoice date lies within [start, end].

    A record whose date is missing or unparseable always passes, as does
    any record when neither boundary is set.
    """
    if start is None and end is None:
        return True
    invoice_date = parse_date(record.invoice_date)
    if invoice_date is None:
        return True
    if start is not None and invoice_date < start:
        return False
    if end is not None and invoice_date > end:
        return False
    return True


def filter_invoices(
    records: Sequence[InvoiceRecord],
    query: str = "",
    start: DateBound = None,
    end: DateBound = None,
) -> List[InvoiceRecord]:
    """
    Return the records that pass both the text and the date predicate.

    Args:
        records: All invoices, in display order (not modified)
        query: Free-text search; empty matches everything
        start: Inclusive lower bound; ignored if missing or unparseable
        end: Inclusive upper bound through end of day; ignored if missing
            or unparseable

    Returns:
        Matching records in their original order
    """
    start_dt = _to_datetime(start)
    end_dt = _to_datetime(end)
    if end_dt is not None:
        end_dt = datetime.combine(end_dt.date(), _END_OF_DAY)

    return [
        record
        for record in records
        if matches_query(record, query) and within_date_range(record, start_dt, end_dt)
    ]
