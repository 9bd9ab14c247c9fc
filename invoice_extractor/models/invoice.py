"""
Invoice domain models.

Two families of models live here:

    InvoiceRecord                  what the app stores, filters and exports
    └── InvoiceLineItem[]

    ExtractedInvoice               the strict contract the remote model must meet
    └── ExtractedLineItem[]

Field names are snake_case in Python and camelCase on the wire and on disk
(``invoiceNumber``, ``lineItems``, ``unitPrice``), matching the keys the
extraction model returns.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from invoice_extractor.utils import format_number

EXPORT_HEADERS = [
    "FileName",
    "InvoiceNumber",
    "SupplierNumber",
    "InvoiceDate",
    "DueDate",
    "InvoiceTotal",
    "TotalFreight",
    "LineDescription",
    "LineCategory",
    "LineQuantity",
    "LineUnitPrice",
    "LineTotal",
]

_LINE_ITEM_COLUMNS = 5


class InvoiceLineItem(BaseModel):
    """A single billed item. No identity beyond its position in the invoice."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    description: Optional[str] = None
    category: Optional[str] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    line_total: Optional[float] = None


class InvoiceRecord(BaseModel):
    """
    One extracted invoice, created once per input file and never mutated.

    ``total_freight`` is None when the model omitted it; arithmetic treats
    that as zero. ``file_data_url`` is a preview payload that is never
    persisted.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    file_name: str
    invoice_number: Optional[str] = None
    supplier_number: Optional[str] = None
    invoice_date: Optional[str] = None
    due_date: Optional[str] = None
    invoice_total: Optional[float] = None
    total_freight: Optional[float] = None
    line_items: Optional[List[InvoiceLineItem]] = None
    validation_error: Optional[str] = None
    file_data_url: Optional[str] = None

    @classmethod
    def from_extraction(
        cls,
        extracted: "ExtractedInvoice",
        file_name: str,
        file_data_url: Optional[str] = None,
    ) -> "InvoiceRecord":
        """Build a record from a validated extraction payload."""
        return cls(
            file_name=file_name,
            invoice_number=extracted.invoice_number,
            supplier_number=extracted.supplier_number,
            invoice_date=extracted.invoice_date,
            due_date=extracted.due_date,
            invoice_total=extracted.invoice_total,
            total_freight=extracted.total_freight,
            line_items=[
                InvoiceLineItem(**item.model_dump()) for item in extracted.line_items
            ],
            file_data_url=file_data_url,
        )

    def to_storage_dict(self) -> dict[str, Any]:
        """Return the camelCase JSON form used for persistence, minus the preview."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude={"file_data_url"},
            exclude_none=True,
        )

    def searchable_terms(self) -> List[str]:
        """Return the lowercased terms that the text search matches against."""
        terms: List[str] = [
            self.invoice_number or "",
            self.supplier_number or "",
            self.invoice_date or "",
            self.due_date or "",
            format_number(self.invoice_total),
            format_number(self.total_freight),
        ]
        for item in self.line_items or []:
            terms.append(item.description or "")
        for item in self.line_items or []:
            terms.append(item.category or "")
        return [term.lower() for term in terms if term]

    def to_export_rows(self) -> List[List[Any]]:
        """
        Flatten the invoice into one row per line item, in EXPORT_HEADERS order.

        An invoice without line items still yields exactly one row, with the
        line item columns left as None.
        """
        head = [
            self.file_name,
            self.invoice_number,
            self.supplier_number,
            self.invoice_date,
            self.due_date,
            self.invoice_total,
            self.total_freight,
        ]
        if not self.line_items:
            return [head + [None] * _LINE_ITEM_COLUMNS]
        return [
            head + [
                item.description,
                item.category,
                item.quantity,
                item.unit_price,
                item.line_total,
            ]
            for item in self.line_items
        ]


class ExtractedLineItem(BaseModel):
    """Line item as returned by the model; every field is mandatory."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, strict=True)

    description: str
    category: str
    quantity: float
    unit_price: float
    line_total: float


class ExtractedInvoice(BaseModel):
    """
    Extraction contract. Invoice number, invoice date, invoice total and line
    items are mandatory; everything else may be omitted by the model.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, strict=True)

    invoice_number: str
    supplier_number: Optional[str] = None
    invoice_date: str
    due_date: Optional[str] = None
    invoice_total: float
    total_freight: Optional[float] = None
    line_items: List[ExtractedLineItem]
