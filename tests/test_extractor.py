"""
Tests for per-file extraction: file typing, previews and the extract pipeline.
"""

import base64
import json
from io import BytesIO
from unittest.mock import MagicMock

import pytest
from PIL import Image

from invoice_extractor.llm.client import ExtractionResponseError, UnsupportedFileError
from invoice_extractor.llm.extractor import InvoiceExtractor, InvoiceFile, build_preview_data_url


def _decode(data_url):
    header, _, payload = data_url.partition(",")
    return header, base64.b64decode(payload)


def _client(response_text):
    client = MagicMock()
    client.generate.return_value = response_text
    return client


def test_media_type_is_guessed_from_name():
    assert InvoiceFile("scan.PNG", b"").media_type == "image/png"
    assert InvoiceFile("invoice.pdf", b"").media_type == "application/pdf"
    assert InvoiceFile("mystery", b"").media_type == "application/octet-stream"


def test_declared_media_type_wins():
    file = InvoiceFile("upload.bin", b"", mime_type="image/jpeg")

    assert file.media_type == "image/jpeg"
    assert file.is_image
    assert not file.is_pdf


def test_from_path(tmp_path, png_bytes):
    path = tmp_path / "receipt.png"
    path.write_bytes(png_bytes)

    file = InvoiceFile.from_path(path)

    assert file.name == "receipt.png"
    assert file.content == png_bytes
    assert file.is_image


def test_image_preview_is_png_data_url(png_bytes):
    preview = build_preview_data_url(InvoiceFile("scan.png", png_bytes))

    header, content = _decode(preview)
    assert header == "data:image/png;base64"
    image = Image.open(BytesIO(content))
    assert image.mode == "RGB"
    assert image.size == (40, 20)


def test_large_image_preview_is_downscaled(png_bytes):
    preview = build_preview_data_url(InvoiceFile("scan.png", png_bytes), max_size=10)

    _, content = _decode(preview)
    assert Image.open(BytesIO(content)).size == (10, 5)


def test_pdf_preview_embeds_original_bytes():
    content = b"%PDF-1.4 fake document"

    preview = build_preview_data_url(InvoiceFile("invoice.pdf", content))

    assert _decode(preview) == ("data:application/pdf;base64", content)


def test_undecodable_image_preview_falls_back_to_raw_bytes():
    content = b"definitely not a png"

    preview = build_preview_data_url(InvoiceFile("broken.png", content))

    assert _decode(preview) == ("data:image/png;base64", content)


def test_extract_builds_reconciled_record(app_config, png_bytes, extraction_json):
    client = _client(extraction_json)
    extractor = InvoiceExtractor(client=client, config=app_config)

    record = extractor.extract(InvoiceFile("scan.png", png_bytes, mime_type="image/png"))

    assert record.file_name == "scan.png"
    assert record.invoice_number == "INV-2024-001"
    assert record.total_freight == 19.99
    assert record.validation_error is None
    assert record.file_data_url.startswith("data:image/png;base64,")

    data_b64, mime_type, prompt, schema = client.generate.call_args[0]
    assert base64.b64decode(data_b64) == png_bytes
    assert mime_type == "image/png"
    assert "totalFreight" in prompt
    assert "lineItems" in schema["properties"]


def test_extract_flags_total_mismatch(app_config, extraction_payload):
    extraction_payload["totalFreight"] = 15.0
    extractor = InvoiceExtractor(client=_client(json.dumps(extraction_payload)), config=app_config)

    record = extractor.extract(InvoiceFile("invoice.pdf", b"%PDF-1.4"))

    assert "Discrepancy is $5.00" in record.validation_error
    assert record.file_data_url.startswith("data:application/pdf;base64,")


def test_unsupported_file_is_rejected_before_calling_model(app_config):
    client = _client("{}")
    extractor = InvoiceExtractor(client=client, config=app_config)

    with pytest.raises(UnsupportedFileError):
        extractor.extract(InvoiceFile("notes.txt", b"hello"))

    client.generate.assert_not_called()


def test_svg_is_not_treated_as_an_image(app_config):
    """Vector images are refused like any other unsupported type."""
    client = _client("{}")
    extractor = InvoiceExtractor(client=client, config=app_config)
    logo = InvoiceFile("logo.svg", b"<svg xmlns='http://www.w3.org/2000/svg'/>",
                       mime_type="image/svg+xml")

    assert not logo.is_image
    with pytest.raises(UnsupportedFileError):
        extractor.extract(logo)

    client.generate.assert_not_called()


def test_schema_violation_fails_the_file(app_config):
    extractor = InvoiceExtractor(client=_client('{"invoiceNumber": "X"}'), config=app_config)

    with pytest.raises(ExtractionResponseError):
        extractor.extract(InvoiceFile("invoice.pdf", b"%PDF-1.4"))
