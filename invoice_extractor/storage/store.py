"""
Per-user invoice persistence.

Records live in a diskcache.Cache under the data directory:

    invoices_<username>            JSON list of records (previews stripped)
    invoice-ocr-user:<session>     last logged-in username for one browser session

Unreadable persisted data is treated as "no invoices yet". One store is
shared by every UI session in the process, so appends are serialized and
always extend the list currently on disk.
"""

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import diskcache
from pydantic import ValidationError

from invoice_extractor.models.invoice import InvoiceRecord

logger = logging.getLogger(__name__)

INVOICES_KEY_PREFIX = "invoices_"
USER_KEY = "invoice-ocr-user"


class StorageError(Exception):
    """The invoice list could not be written to disk."""
    pass


def _clean_username(user: str) -> str:
    name = (user or "").strip()
    if not name:
        raise ValueError("Username must not be empty")
    return name


def invoices_key(user: str) -> str:
    """Storage key holding the given user's invoice list."""
    return f"{INVOICES_KEY_PREFIX}{_clean_username(user)}"


def user_key(session_id: str) -> str:
    """Storage key holding the remembered username of one browser session."""
    if not session_id:
        raise ValueError("Session id must not be empty")
    return f"{USER_KEY}:{session_id}"


class InvoiceStore:
    """
    In-memory invoice lists keyed by user, written through to disk.

    Attributes:
        cache: Underlying on-disk key-value store.
    """

    def __init__(self, location: Union[str, Path, diskcache.Cache]):
        """
        Args:
            location: Data directory (created if missing) or an open Cache.
        """
        if isinstance(location, diskcache.Cache):
            self.cache = location
        else:
            self.cache = diskcache.Cache(str(Path(location)))
        self._invoices: Dict[str, List[InvoiceRecord]] = {}
        self._lock = threading.Lock()

    def load(self, user: str) -> List[InvoiceRecord]:
        """
        Load the user's persisted invoices into memory.

        Returns:
            The user's invoices in arrival order, or [] if nothing usable is stored
        """
        name = _clean_username(user)
        records = self._read(name)
        with self._lock:
            self._invoices[name] = records
        logger.info(f"Loaded {len(records)} invoice(s) for {name}")
        return list(records)

    def _read(self, name: str) -> List[InvoiceRecord]:
        raw = self.cache.get(invoices_key(name))
        if raw is None:
            return []

        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error(f"Discarding unreadable invoice data for {name}: {e}")
            return []

        if not isinstance(data, list):
            logger.error(
                f"Discarding invoice data for {name}: expected a list, got {type(data).__name__}"
            )
            return []

        try:
            return [InvoiceRecord.model_validate(item) for item in data]
        except ValidationError as e:
            logger.error(f"Discarding invalid invoice data for {name}: {e}")
            return []

    def invoices(self, user: str) -> List[InvoiceRecord]:
        """Return the in-memory list for the user, loading it on first access."""
        name = _clean_username(user)
        with self._lock:
            cached = self._invoices.get(name)
        if cached is None:
            return self.load(name)
        return list(cached)

    def append(self, user: str, records: Sequence[InvoiceRecord]) -> List[InvoiceRecord]:
        """
        Append records and persist the whole list before returning.

        Returns:
            The user's updated invoice list

        Raises:
            StorageError: If the list could not be written; nothing is changed
        """
        name = _clean_username(user)
        with self._lock:
            try:
                with self.cache.transact():
                    persisted = self._read(name)
                    in_memory = self._invoices.get(name)
                    # The in-memory copy still carries previews; use it unless
                    # another session has appended since it was loaded
                    if in_memory is not None and len(in_memory) == len(persisted):
                        current = in_memory
                    else:
                        current = persisted
                    updated = current + list(records)

                    payload = json.dumps([record.to_storage_dict() for record in updated])
                    self.cache.set(invoices_key(name), payload)
            except (OSError, sqlite3.Error, diskcache.Timeout) as e:
                raise StorageError(f"Failed to save invoices for {name}: {e}") from e
            self._invoices[name] = updated

        logger.info(f"Saved {len(records)} new invoice(s) for {name} ({len(updated)} total)")
        return list(updated)

    def clear(self, user: str) -> None:
        """Drop the user's in-memory list. Persisted data is kept."""
        with self._lock:
            self._invoices.pop(_clean_username(user), None)

    def remember_user(self, session_id: str, user: str) -> str:
        """Record the user logged in to this browser session."""
        name = _clean_username(user)
        self.cache.set(user_key(session_id), name)
        return name

    def last_user(self, session_id: str) -> Optional[str]:
        """The username remembered for this browser session, if any."""
        name = self.cache.get(user_key(session_id))
        if isinstance(name, str) and name.strip():
            return name.strip()
        return None

    def forget_user(self, session_id: str) -> None:
        self.cache.delete(user_key(session_id))

    def close(self) -> None:
        self.cache.close()
