"""
Per-file invoice extraction.

Turns one uploaded file into one reconciled InvoiceRecord:
encode -> remote model call -> strict parse -> reconcile.
"""

import base64
import logging
import mimetypes
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from invoice_extractor.config import AppConfig, get_config
from invoice_extractor.llm.client import GeminiClient, UnsupportedFileError
from invoice_extractor.llm.parser import InvoiceParser
from invoice_extractor.llm.prompts import get_extraction_prompt, get_response_schema
from invoice_extractor.models.invoice import InvoiceRecord
from invoice_extractor.processing.validator import reconcile

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
# Image types the model cannot read as pixels
VECTOR_IMAGE_TYPES = frozenset({"image/svg+xml"})


@dataclass(frozen=True)
class InvoiceFile:
    """An uploaded invoice document: raw bytes plus its declared media type."""
    name: str
    content: bytes
    mime_type: str = ""

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "InvoiceFile":
        """Load a file from disk, guessing its media type from the extension."""
        path = Path(path)
        return cls(name=path.name, content=path.read_bytes())

    @property
    def media_type(self) -> str:
        """Declared media type, or one guessed from the file name."""
        if self.mime_type:
            return self.mime_type
        guessed, _ = mimetypes.guess_type(self.name)
        return guessed or "application/octet-stream"

    @property
    def is_pdf(self) -> bool:
        return self.media_type == PDF_MIME_TYPE

    @property
    def is_image(self) -> bool:
        return (
            self.media_type.startswith("image/")
            and self.media_type not in VECTOR_IMAGE_TYPES
        )

    def to_base64(self) -> str:
        """Transport encoding for the model: plain base64 of the raw bytes."""
        return base64.b64encode(self.content).decode("utf-8")


def _data_url(mime_type: str, content: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(content).decode('utf-8')}"


def build_preview_data_url(file: InvoiceFile, max_size: int = 1536) -> str:
    """
    Build a self-contained preview of the file as a data URL.

    Images are normalised (EXIF orientation, RGB, down-scaled so the longest
    edge is at most max_size, PNG). PDFs, and images Pillow cannot read, are
    embedded unchanged.
    """
    if not file.is_image:
        return _data_url(file.media_type, file.content)

    try:
        return _data_url("image/png", _normalized_png(file, max_size))
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not decode {file.name} for preview, embedding as-is: {e}")
        return _data_url(file.media_type, file.content)


def _normalized_png(file: InvoiceFile, max_size: int) -> bytes:
    pil_img = Image.open(BytesIO(file.content))
    pil_img = ImageOps.exif_transpose(pil_img)

    # Convert to RGB (handles CMYK, RGBA, palette modes)
    if pil_img.mode != "RGB":
        pil_img = pil_img.convert("RGB")

    # Resize if too large (preserve aspect ratio)
    w, h = pil_img.size
    if max(w, h) > max_size:
        scale = max_size / max(w, h)
        new_w, new_h = max(int(w * scale), 1), max(int(h * scale), 1)
        pil_img = pil_img.resize((new_w, new_h), Image.LANCZOS)
        logger.info(f"Resized preview of {file.name} from {w}x{h} to {new_w}x{new_h}")

    buffer = BytesIO()
    pil_img.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


class InvoiceExtractor:
    """
    Extracts exactly one InvoiceRecord from one file, or raises.

    Does not touch the invoice store.
    """

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        parser: Optional[InvoiceParser] = None,
        config: Optional[AppConfig] = None,
    ):
        self.config = config or get_config()
        self.client = client or GeminiClient(self.config.gemini)
        self.parser = parser or InvoiceParser()

    def extract(self, file: InvoiceFile) -> InvoiceRecord:
        """
        Extract and reconcile one invoice.

        Args:
            file: Uploaded image or PDF

        Returns:
            InvoiceRecord with preview attached and validation_error set if
            the totals do not reconcile

        Raises:
            ExtractionError: If the file is unsupported or extraction fails
        """
        if not (file.is_image or file.is_pdf):
            raise UnsupportedFileError(
                f"{file.name}: unsupported file type {file.media_type} "
                "(expected an image or a PDF)"
            )

        preview = build_preview_data_url(file, self.config.preview_max_size)

        logger.info(f"Extracting {file.name} ({file.media_type}, {len(file.content):,} bytes)")
        response = self.client.generate(
            file.to_base64(),
            file.media_type,
            get_extraction_prompt(),
            get_response_schema(),
        )
        extracted = self.parser.parse(response)

        record = InvoiceRecord.from_extraction(extracted, file.name, preview)
        return reconcile(record, self.config.currency_symbol)
