"""
Shared pytest fixtures: sample invoices, a throwaway on-disk store,
a tiny PNG and a scriptable stand-in for the extractor.
"""

import json
from io import BytesIO

import pytest
from PIL import Image

from invoice_extractor.config import AppConfig, GeminiConfig
from invoice_extractor.llm.client import ExtractionResponseError
from invoice_extractor.models.invoice import InvoiceLineItem, InvoiceRecord
from invoice_extractor.storage.store import InvoiceStore


def build_record(file_name="invoice.pdf", line_totals=(80.0,), **fields):
    """Build an InvoiceRecord with one line item per entry in line_totals."""
    if line_totals is None:
        line_items = None
    else:
        line_items = [
            InvoiceLineItem(
                description=f"Item {i + 1}",
                category="Office Supplies",
                quantity=1.0,
                unit_price=total,
                line_total=total,
            )
            for i, total in enumerate(line_totals)
        ]
    fields.setdefault("invoice_number", "INV-001")
    fields.setdefault("invoice_date", "2024-01-15")
    fields.setdefault("invoice_total", 100.0)
    return InvoiceRecord(file_name=file_name, line_items=line_items, **fields)


class FakeExtractor:
    """Returns a canned record per file and fails on the named files."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = []

    def extract(self, file):
        self.calls.append(file.name)
        if file.name in self.fail_on:
            raise ExtractionResponseError(f"Response does not match the invoice schema ({file.name})")
        return build_record(file_name=file.name, invoice_number=f"INV-{file.name}")


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def make_extractor():
    return FakeExtractor


@pytest.fixture
def store(tmp_path):
    invoice_store = InvoiceStore(tmp_path / "data")
    yield invoice_store
    invoice_store.close()


@pytest.fixture
def png_bytes():
    """A small solid-colour RGBA PNG."""
    buffer = BytesIO()
    Image.new("RGBA", (40, 20), color=(255, 0, 0, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def gemini_config():
    return GeminiConfig(
        base_url="https://gemini.example.test/v1beta",
        model="gemini-test",
        api_key="test-api-key-0123456789",
        timeout=30,
    )


@pytest.fixture
def app_config(gemini_config):
    return AppConfig(gemini=gemini_config, preview_max_size=64)


@pytest.fixture
def extraction_payload():
    """A model answer that satisfies the extraction contract."""
    return {
        "invoiceNumber": "INV-2024-001",
        "supplierNumber": "SUP-42",
        "invoiceDate": "2024-01-15",
        "dueDate": "2024-02-14",
        "invoiceTotal": 100.0,
        "totalFreight": 19.99,
        "lineItems": [
            {
                "description": "A4 Paper, 5 reams",
                "category": "Office Supplies",
                "quantity": 2.0,
                "unitPrice": 40.0,
                "lineTotal": 80.0,
            }
        ],
    }


@pytest.fixture
def extraction_json(extraction_payload):
    return json.dumps(extraction_payload)
