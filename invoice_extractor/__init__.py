"""
Invoice Extractor - browser-based invoice data extraction application.

This package provides functionality for:
- Sending invoice images and PDFs to a multimodal model for extraction
- Reconciling extracted totals against line items and freight
- Per-user storage, search and date filtering of extracted invoices
- Tab-delimited (clipboard) and Excel export
"""

__version__ = "0.1.0"
__author__ = "Invoice Extractor"
