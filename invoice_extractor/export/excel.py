"""
Excel export module for invoice data.

Writes the same rows as the tab-delimited export to an .xlsx workbook:
- One row per line item, invoice fields repeated on every row
- Currency number format on money columns
- Styled, frozen header row
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import Iterable, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from invoice_extractor.export.tsv import export_rows
from invoice_extractor.models.invoice import EXPORT_HEADERS, InvoiceRecord

logger = logging.getLogger(__name__)

SHEET_TITLE = "Invoices"


class ExcelExporter:
    """Exports invoices to Excel workbooks."""

    # Header columns holding money amounts
    CURRENCY_COLUMNS = {"InvoiceTotal", "TotalFreight", "LineUnitPrice", "LineTotal"}

    COLUMN_WIDTHS = {
        "A": 28,  # FileName
        "B": 16,  # InvoiceNumber
        "C": 16,  # SupplierNumber
        "D": 12,  # InvoiceDate
        "E": 12,  # DueDate
        "F": 14,  # InvoiceTotal
        "G": 14,  # TotalFreight
        "H": 40,  # LineDescription
        "I": 22,  # LineCategory
        "J": 10,  # LineQuantity
        "K": 14,  # LineUnitPrice
        "L": 14,  # LineTotal
    }

    def __init__(self, currency_symbol: str = "$"):
        self.currency_format = f'"{currency_symbol}"#,##0.00'
        self._setup_styles()

    def _setup_styles(self):
        self.header_font = Font(bold=True, color="FFFFFF")
        self.header_fill = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
        self.header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

        thin_border = Side(style="thin", color="CCCCCC")
        self.cell_border = Border(
            left=thin_border,
            right=thin_border,
            top=thin_border,
            bottom=thin_border,
        )

        self.even_row_fill = PatternFill(start_color="F2F2F2", end_color="F2F2F2", fill_type="solid")

    def build_workbook(self, records: Iterable[InvoiceRecord]) -> Workbook:
        """Create a workbook with a header row and one row per line item."""
        wb = Workbook()
        ws = wb.active
        ws.title = SHEET_TITLE
        self._write_headers(ws)

        row_num = 1
        for row_num, row_data in enumerate(export_rows(records), start=2):
            self._write_row(ws, row_num, row_data)

        for col_letter, width in self.COLUMN_WIDTHS.items():
            ws.column_dimensions[col_letter].width = width

        logger.info(f"Built workbook with {row_num - 1} data row(s)")
        return wb

    def export_bytes(self, records: Iterable[InvoiceRecord]) -> bytes:
        """Serialize the export workbook to .xlsx bytes (for downloads)."""
        buffer = BytesIO()
        self.build_workbook(records).save(buffer)
        return buffer.getvalue()

    def export(self, records: Iterable[InvoiceRecord], file_path: Union[str, Path]) -> Path:
        """
        Write the export workbook to disk.

        Args:
            records: Invoices to export, in order
            file_path: Target path; the suffix is forced to .xlsx

        Returns:
            Path to the exported file
        """
        file_path = Path(file_path)
        if file_path.suffix.lower() != ".xlsx":
            file_path = file_path.with_suffix(".xlsx")

        self.build_workbook(records).save(file_path)
        logger.info(f"Exported invoices to {file_path}")
        return file_path

    def _write_headers(self, ws):
        for col, header in enumerate(EXPORT_HEADERS, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = self.header_alignment
            cell.border = self.cell_border

        ws.freeze_panes = "A2"

    def _write_row(self, ws, row_num: int, row_data: list):
        for col, (header, value) in enumerate(zip(EXPORT_HEADERS, row_data), start=1):
            cell = ws.cell(row=row_num, column=col, value=value)
            cell.border = self.cell_border
            if header in self.CURRENCY_COLUMNS and value is not None:
                cell.number_format = self.currency_format
            if row_num % 2 == 0:
                cell.fill = self.even_row_fill
