"""Export of invoices as tab-delimited text (clipboard) and Excel workbooks."""

from .clipboard import copy_to_clipboard
from .excel import ExcelExporter
from .tsv import escape_field, to_tsv

__all__ = ["ExcelExporter", "copy_to_clipboard", "escape_field", "to_tsv"]
