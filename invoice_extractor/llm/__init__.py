"""Remote-model extraction of structured invoice data from images and PDFs."""

from .client import (
    ExtractionAuthError,
    ExtractionConnectionError,
    ExtractionError,
    ExtractionResponseError,
    GeminiClient,
    UnsupportedFileError,
)
from .extractor import InvoiceExtractor, InvoiceFile
from .parser import InvoiceParser

__all__ = [
    "ExtractionAuthError",
    "ExtractionConnectionError",
    "ExtractionError",
    "ExtractionResponseError",
    "GeminiClient",
    "InvoiceExtractor",
    "InvoiceFile",
    "InvoiceParser",
    "UnsupportedFileError",
]
