"""
Invoice Extractor - Main Streamlit UI

Upload invoice images and PDFs, extract structured data with a multimodal
model, and review, search and export the results.

Features:
- Per-user invoice lists, remembered between sessions
- Batch upload (PDF, images) with sequential extraction
- Total reconciliation warnings
- Text search and invoice-date range filters
- Copy results as tab-delimited text, download as Excel
"""

import base64
import logging
import sys
import uuid
from pathlib import Path
from typing import Optional, Tuple

import pandas as pd
import streamlit as st

# Add package directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from invoice_extractor.config import get_config, validate_system_requirements
from invoice_extractor.export.excel import ExcelExporter
from invoice_extractor.llm.extractor import InvoiceExtractor, InvoiceFile
from invoice_extractor.models.invoice import InvoiceRecord
from invoice_extractor.processing.batch import BatchProcessor, create_pacer
from invoice_extractor.state import InvoiceController
from invoice_extractor.storage.store import InvoiceStore
from invoice_extractor.utils import format_currency, format_number

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SESSION_PARAM = "session"


@st.cache_resource
def get_store() -> InvoiceStore:
    """One on-disk store per process, shared across reruns."""
    return InvoiceStore(get_config().storage.data_dir)


def get_browser_session_id() -> str:
    """
    Token identifying this browser tab across reloads.

    Kept in the URL so a refresh restores the same user; opening the app
    without it starts a fresh, logged-out session.
    """
    session_id = st.query_params.get(SESSION_PARAM)
    if not session_id:
        session_id = uuid.uuid4().hex
        st.query_params[SESSION_PARAM] = session_id
    return session_id


def init_session_state():
    """Initialize Streamlit session state."""
    if "config" not in st.session_state:
        st.session_state.config = get_config()

    if "controller" not in st.session_state:
        config = st.session_state.config
        processor = BatchProcessor(InvoiceExtractor(config=config), create_pacer(config.batch))
        controller = InvoiceController(get_store(), processor, get_browser_session_id())
        controller.restore_session()
        st.session_state.controller = controller

    if "system_validated" not in st.session_state:
        st.session_state.system_validated = False

    if "validation_results" not in st.session_state:
        st.session_state.validation_results = None

    if "uploader_key" not in st.session_state:
        st.session_state.uploader_key = 0


def get_controller() -> InvoiceController:
    return st.session_state.controller


def validate_system():
    """Validate system requirements on startup."""
    if not st.session_state.system_validated:
        with st.spinner("Validating system requirements..."):
            results = validate_system_requirements()
            st.session_state.validation_results = results
            st.session_state.system_validated = True

    return st.session_state.validation_results


def render_sidebar():
    """Render the system status sidebar."""
    with st.sidebar:
        st.header("⚙️ System Status")

        if st.button("🔄 Refresh Status"):
            st.session_state.system_validated = False
            st.rerun()

        results = st.session_state.validation_results or {}

        gemini = results.get("gemini", {})
        if gemini.get("configured"):
            st.success(f"✅ Gemini ({gemini.get('model')})")
        else:
            st.error(f"❌ {gemini.get('message', 'Gemini API key not set')}")

        storage = results.get("storage", {})
        if storage.get("writable"):
            st.success("✅ Local storage")
            st.caption(storage.get("path", ""))
        else:
            st.error(f"❌ {storage.get('message', 'Storage unavailable')}")

        deps = results.get("python_deps", {})
        if not deps.get("installed", True):
            st.error(f"❌ {deps.get('message')}")


def render_login():
    """Render the username-only sign-in form."""
    st.title("📄 Invoice Extractor")
    st.markdown("Enter a username to keep your extracted invoices separate from other users.")

    with st.form("login_form"):
        username = st.text_input("Username", placeholder="e.g. jsmith")
        if st.form_submit_button("Sign in", type="primary"):
            try:
                get_controller().login(username)
            except ValueError:
                st.error("Please enter a username.")
            else:
                st.rerun()


def render_header():
    """Render the title bar with the current user and logout."""
    state = get_controller().state
    col1, col2 = st.columns([4, 1])
    with col1:
        st.title("📄 Invoice Extractor")
    with col2:
        st.markdown(f"Signed in as **{state.current_user}**")
        if st.button("Log out", use_container_width=True):
            get_controller().logout()
            st.rerun()


def render_upload_section():
    """Render the batch upload section and run extraction on demand."""
    st.header("📤 Upload Invoices")

    config = st.session_state.config
    uploaded_files = st.file_uploader(
        "Choose invoice files",
        type=list(config.accepted_extensions),
        accept_multiple_files=True,
        key=f"uploader_{st.session_state.uploader_key}",
        help="Upload one or more invoice images or PDFs",
    )

    controller = get_controller()
    if st.button(
        "🔍 Process Invoices",
        type="primary",
        disabled=not uploaded_files or controller.state.is_loading,
        use_container_width=True,
    ):
        files = [
            InvoiceFile(name=f.name, content=f.getvalue(), mime_type=f.type or "")
            for f in uploaded_files
        ]
        progress = st.progress(0.0, text="Analyzing invoices... This may take a moment.")

        def on_progress(done: int, total: int, file_name: str):
            progress.progress(done / total, text=f"Processed {file_name} ({done}/{total})")

        with st.spinner("Analyzing invoices... This may take a moment."):
            state = controller.process_files(files, on_progress)
        progress.empty()

        if state.error is None:
            # New uploader widget so the processed files are not submitted twice
            st.session_state.uploader_key += 1
            st.rerun()


def render_messages():
    """Show the batch error, clipboard fallback and notices."""
    state = get_controller().state

    if state.error:
        st.error(f"**Error:** {state.error}")

    if state.warning:
        st.warning(state.warning)
        if state.export_text:
            st.code(state.export_text, language=None)

    if state.notice:
        st.success(state.notice)


def render_filters():
    """Render search and date filters; returns nothing, updates controller state."""
    controller = get_controller()

    col1, col2, col3 = st.columns([2, 1, 1])
    with col1:
        term = st.text_input(
            "Search",
            value=controller.state.search_term,
            placeholder="Invoice number, supplier, item, category...",
        )
    with col2:
        start = st.date_input("From", value=controller.state.date_range.start, format="YYYY-MM-DD")
    with col3:
        end = st.date_input("To", value=controller.state.date_range.end, format="YYYY-MM-DD")

    if term != controller.state.search_term:
        controller.set_search_term(term)
    if (start, end) != (controller.state.date_range.start, controller.state.date_range.end):
        controller.set_date_range(start, end)

    st.caption(controller.state.result_summary)


def render_export_actions():
    """Copy-as-TSV and Excel download for the filtered invoices."""
    controller = get_controller()
    visible = controller.state.filtered_invoices
    if not visible:
        return

    col1, col2 = st.columns(2)
    with col1:
        if st.button(
            "📋 Copy Results",
            disabled=controller.state.is_loading,
            use_container_width=True,
        ):
            controller.copy_filtered()
            st.rerun()
    with col2:
        try:
            data = ExcelExporter(st.session_state.config.currency_symbol).export_bytes(visible)
        except Exception as e:
            st.error(f"Export failed: {e}")
            logger.exception("Excel export failed")
        else:
            st.download_button(
                "⬇️ Download Excel",
                data=data,
                file_name="invoices.xlsx",
                mime=XLSX_MIME,
                use_container_width=True,
            )


def _decode_data_url(data_url: str) -> Tuple[str, bytes]:
    header, _, payload = data_url.partition(",")
    mime_type = header[len("data:"):].split(";")[0]
    return mime_type, base64.b64decode(payload)


def _money(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    return format_currency(value, st.session_state.config.currency_symbol)


def render_invoice_card(invoice: InvoiceRecord, index: int):
    """Render one invoice: summary fields, warning, line items, preview."""
    with st.container(border=True):
        st.subheader(f"🧾 {invoice.file_name}")

        cols = st.columns(6)
        cols[0].metric("Invoice #", invoice.invoice_number or "N/A")
        cols[1].metric("Supplier #", invoice.supplier_number or "N/A")
        cols[2].metric("Invoice Date", invoice.invoice_date or "N/A")
        cols[3].metric("Due Date", invoice.due_date or "N/A")
        cols[4].metric("Freight", _money(invoice.total_freight))
        cols[5].metric("Total", _money(invoice.invoice_total))

        if invoice.validation_error:
            st.warning(invoice.validation_error)

        if invoice.line_items:
            df = pd.DataFrame(
                [
                    {
                        "Description": item.description,
                        "Category": item.category,
                        "Quantity": format_number(item.quantity),
                        "Unit Price": _money(item.unit_price),
                        "Total": _money(item.line_total),
                    }
                    for item in invoice.line_items
                ]
            )
            st.dataframe(df, use_container_width=True, hide_index=True)
        else:
            st.info("No line items were extracted for this invoice.")

        if invoice.file_data_url:
            mime_type, content = _decode_data_url(invoice.file_data_url)
            with st.expander("🖼️ Original document"):
                if mime_type.startswith("image/"):
                    st.image(content, caption=invoice.file_name, use_container_width=True)
                else:
                    st.download_button(
                        "⬇️ Download original",
                        data=content,
                        file_name=invoice.file_name,
                        mime=mime_type,
                        key=f"original_{index}",
                    )


def render_results_section():
    """Render filters, export actions and the invoice cards."""
    controller = get_controller()
    st.header(f"📑 {controller.state.heading}")

    render_filters()
    render_export_actions()

    visible = controller.state.filtered_invoices
    if not visible:
        if controller.state.invoices:
            st.info("No invoices match your filters.")
        else:
            st.info("Upload some invoices to get started.")
        return

    for index, invoice in enumerate(visible):
        render_invoice_card(invoice, index)


def main():
    """Main application entry point."""
    st.set_page_config(
        page_title="Invoice Extractor",
        page_icon="📄",
        layout="wide",
        initial_sidebar_state="collapsed",
    )

    init_session_state()
    validate_system()
    render_sidebar()

    if not get_controller().state.is_logged_in:
        render_login()
        return

    render_header()
    st.divider()
    render_upload_section()
    render_messages()
    st.divider()
    render_results_section()


if __name__ == "__main__":
    main()
