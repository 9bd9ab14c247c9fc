"""Filtering of the invoice list by search text and date range."""

from .filters import filter_invoices, matches_query, within_date_range

__all__ = ["filter_invoices", "matches_query", "within_date_range"]
