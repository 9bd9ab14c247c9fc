"""Local per-user persistence of extracted invoices."""

from .store import INVOICES_KEY_PREFIX, USER_KEY, InvoiceStore, StorageError

__all__ = ["INVOICES_KEY_PREFIX", "USER_KEY", "InvoiceStore", "StorageError"]
