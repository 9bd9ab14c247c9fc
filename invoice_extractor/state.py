"""
Application state for the Invoice Extractor UI.

State is an immutable AppState value. Every change goes through
``reduce(state, action)``, which is pure; InvoiceController dispatches
actions and performs the side effects tied to specific transitions
(persisting the user on login, saving after a successful batch, clearing
on logout, writing the clipboard on copy).
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional, Sequence, Tuple, Union

from invoice_extractor.export.clipboard import copy_to_clipboard
from invoice_extractor.export.tsv import to_tsv
from invoice_extractor.llm.extractor import InvoiceFile
from invoice_extractor.models.invoice import InvoiceRecord
from invoice_extractor.processing.batch import BatchFailedError, BatchProcessor, ProgressCallback
from invoice_extractor.search.filters import filter_invoices
from invoice_extractor.storage.store import InvoiceStore, StorageError

logger = logging.getLogger(__name__)

GENERIC_BATCH_ERROR = (
    "An error occurred while processing the invoices. Please check the log and try again."
)
CLIPBOARD_FAILED_WARNING = (
    "Could not access the system clipboard. Copy the data below manually."
)


@dataclass(frozen=True)
class DateRange:
    """Inclusive invoice-date filter; either end may be open."""
    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def is_set(self) -> bool:
        return self.start is not None or self.end is not None


@dataclass(frozen=True)
class AppState:
    current_user: Optional[str] = None
    invoices: Tuple[InvoiceRecord, ...] = ()
    is_loading: bool = False
    error: Optional[str] = None
    notice: Optional[str] = None
    warning: Optional[str] = None
    export_text: Optional[str] = None
    search_term: str = ""
    date_range: DateRange = field(default_factory=DateRange)

    @property
    def is_logged_in(self) -> bool:
        return self.current_user is not None

    @property
    def filtered_invoices(self) -> Tuple[InvoiceRecord, ...]:
        return tuple(
            filter_invoices(
                self.invoices,
                self.search_term,
                self.date_range.start,
                self.date_range.end,
            )
        )

    @property
    def has_active_filters(self) -> bool:
        return bool(self.search_term) or self.date_range.is_set

    @property
    def heading(self) -> str:
        return "Filtered Results" if self.has_active_filters else "All Invoices"

    @property
    def result_summary(self) -> str:
        """Summary text such as 'Showing 3 of 10 invoices'."""
        total = len(self.invoices)
        noun = "invoice" if total == 1 else "invoices"
        return f"Showing {len(self.filtered_invoices)} of {total} {noun}"


@dataclass(frozen=True)
class LoggedIn:
    username: str
    invoices: Sequence[InvoiceRecord] = ()


@dataclass(frozen=True)
class LoggedOut:
    pass


@dataclass(frozen=True)
class BatchStarted:
    file_count: int


@dataclass(frozen=True)
class BatchSucceeded:
    records: Sequence[InvoiceRecord]


@dataclass(frozen=True)
class BatchFailed:
    message: str = GENERIC_BATCH_ERROR


@dataclass(frozen=True)
class SearchChanged:
    term: str


@dataclass(frozen=True)
class DateRangeChanged:
    start: Optional[date] = None
    end: Optional[date] = None


@dataclass(frozen=True)
class ExportCopied:
    copied: bool
    text: str
    invoice_count: int


Action = Union[
    LoggedIn,
    LoggedOut,
    BatchStarted,
    BatchSucceeded,
    BatchFailed,
    SearchChanged,
    DateRangeChanged,
    ExportCopied,
]


def reduce(state: AppState, action: Action) -> AppState:
    """Return the state that follows ``action``. Never mutates ``state``."""
    if isinstance(action, LoggedIn):
        return AppState(current_user=action.username, invoices=tuple(action.invoices))

    if isinstance(action, LoggedOut):
        return AppState()

    if isinstance(action, BatchStarted):
        return replace(
            state, is_loading=True, error=None, notice=None, warning=None, export_text=None
        )

    if isinstance(action, BatchSucceeded):
        count = len(action.records)
        return replace(
            state,
            invoices=state.invoices + tuple(action.records),
            is_loading=False,
            error=None,
            notice=f"Extracted {count} invoice{'' if count == 1 else 's'}.",
        )

    if isinstance(action, BatchFailed):
        return replace(state, is_loading=False, error=action.message, notice=None)

    if isinstance(action, SearchChanged):
        return replace(state, search_term=action.term)

    if isinstance(action, DateRangeChanged):
        return replace(state, date_range=DateRange(action.start, action.end))

    if isinstance(action, ExportCopied):
        if action.copied:
            noun = "invoice" if action.invoice_count == 1 else "invoices"
            return replace(
                state,
                notice=f"Copied {action.invoice_count} {noun} to the clipboard.",
                warning=None,
                export_text=None,
            )
        return replace(
            state, notice=None, warning=CLIPBOARD_FAILED_WARNING, export_text=action.text
        )

    raise TypeError(f"Unknown action: {action!r}")


class InvoiceController:
    """
    Owns the current AppState and the collaborators that act on it.

    One controller exists per browser session; the store is shared.

    Attributes:
        store: Per-user invoice persistence
        processor: Sequential batch extractor
        session_id: Identifies the browser session whose user is remembered
    """

    def __init__(
        self,
        store: InvoiceStore,
        processor: BatchProcessor,
        session_id: str,
        state: Optional[AppState] = None,
    ):
        self.store = store
        self.processor = processor
        self.session_id = session_id
        self.state = state or AppState()

    def dispatch(self, action: Action) -> AppState:
        self.state = reduce(self.state, action)
        return self.state

    def restore_session(self) -> AppState:
        """Log the remembered user back in, if there is one."""
        if not self.state.is_logged_in:
            user = self.store.last_user(self.session_id)
            if user:
                logger.info(f"Restoring session for {user}")
                return self.dispatch(LoggedIn(user, self.store.load(user)))
        return self.state

    def login(self, username: str) -> AppState:
        """
        Start a session for ``username`` and show their saved invoices.

        Raises:
            ValueError: If the username is blank
        """
        name = self.store.remember_user(self.session_id, username)
        invoices = self.store.load(name)
        logger.info(f"User {name} logged in")
        return self.dispatch(LoggedIn(name, invoices))

    def logout(self) -> AppState:
        user = self.state.current_user
        if user:
            self.store.clear(user)
            logger.info(f"User {user} logged out")
        self.store.forget_user(self.session_id)
        return self.dispatch(LoggedOut())

    def process_files(
        self,
        files: Sequence[InvoiceFile],
        on_progress: Optional[ProgressCallback] = None,
    ) -> AppState:
        """
        Extract a batch of uploads and save the results for the current user.

        Records reach the state only after they are on disk. Nothing is kept
        if any file fails or the save fails; the user sees one generic error
        and the details go to the log.
        """
        user = self.state.current_user
        if not files or not user:
            return self.state

        self.dispatch(BatchStarted(len(files)))
        try:
            records = self.processor.process(files, on_progress)
        except BatchFailedError:
            logger.exception(f"Batch of {len(files)} file(s) failed for {user}")
            return self.dispatch(BatchFailed())

        try:
            self.store.append(user, records)
        except StorageError:
            logger.exception(f"Could not save {len(records)} extracted invoice(s) for {user}")
            return self.dispatch(BatchFailed())

        return self.dispatch(BatchSucceeded(records))

    def set_search_term(self, term: str) -> AppState:
        return self.dispatch(SearchChanged(term or ""))

    def set_date_range(self, start: Optional[date], end: Optional[date]) -> AppState:
        return self.dispatch(DateRangeChanged(start, end))

    def copy_filtered(self) -> AppState:
        """Copy the currently visible invoices to the clipboard as tab-delimited text."""
        visible = self.state.filtered_invoices
        if not visible:
            return self.state
        text = to_tsv(visible)
        copied = copy_to_clipboard(text)
        return self.dispatch(ExportCopied(copied, text, len(visible)))
