"""
Utility functions for invoice data formatting and parsing.

Provides helpers for:
- Date parsing (multiple formats supported)
- Currency formatting for reconciliation messages and the UI
- Number-to-text rendering for search and export
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Union

# Formats tried after ISO parsing fails, most specific first
_DATE_FORMATS = ("%Y/%m/%d", "%m/%d/%Y", "%m/%d/%y")


def parse_date(date_str: Optional[str]) -> Optional[datetime]:
    """
    Parse a date string to a datetime object.

    Args:
        date_str: Date string in ISO format (e.g., "2024-12-25", optionally
            with a time part), "2024/12/25", "12/25/2024" or "12/25/24"

    Returns:
        datetime object if parsing succeeds, None otherwise
    """
    if date_str:
        date_str = date_str.strip()
    if not date_str:
        return None

    try:
        return datetime.fromisoformat(date_str).replace(tzinfo=None)
    except (ValueError, TypeError):
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(date_str, fmt)
        except ValueError:
            continue

    return None


def to_decimal(value: Union[int, float, Decimal, None]) -> Decimal:
    """Convert a number to Decimal through its shortest text form; None is zero."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_currency(value: Union[int, float, Decimal], symbol: str = "$") -> str:
    """
    Format an amount as currency, e.g. 1234.5 -> '$1,234.50', -5 -> '-$5.00'.

    Args:
        value: Numeric amount to format.
        symbol: Currency symbol prefix.
    """
    amount = to_decimal(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_number(value: Any) -> str:
    """
    Render a value as text the way a spreadsheet user expects to see it.

    Whole floats lose their trailing '.0' (100.0 -> '100'), other floats use
    their shortest round-trip form (19.99 -> '19.99'), None becomes ''.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)
