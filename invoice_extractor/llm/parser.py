"""
Model response parser for invoice extraction.

Handles:
- JSON extraction from the response text
- Strict validation against the extraction contract
"""

import json
import logging
import re
from typing import Optional

from pydantic import ValidationError

from invoice_extractor.llm.client import ExtractionResponseError
from invoice_extractor.models.invoice import ExtractedInvoice

logger = logging.getLogger(__name__)


class InvoiceParser:
    """
    Parses model responses into validated extraction payloads.

    The response must be a single JSON object, optionally wrapped in a
    markdown code block. Anything else fails the whole file.
    """

    CODE_BLOCK_PATTERN = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```$")

    def parse(self, response: str) -> ExtractedInvoice:
        """
        Parse a model response.

        Args:
            response: Raw response text

        Returns:
            Validated ExtractedInvoice

        Raises:
            ExtractionResponseError: If the text is not JSON or violates the schema
        """
        json_str = self._extract_json(response)
        if not json_str:
            raise ExtractionResponseError("Empty response from extraction model")

        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ExtractionResponseError(f"JSON parse error: {e}")

        if not isinstance(data, dict):
            raise ExtractionResponseError(
                f"Expected a JSON object, got {type(data).__name__}"
            )

        try:
            return ExtractedInvoice.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Rejected extraction payload: {data}")
            raise ExtractionResponseError(
                f"Response does not match the invoice schema: {e.error_count()} error(s)\n{e}"
            )

    def _extract_json(self, response: Optional[str]) -> Optional[str]:
        """Strip surrounding whitespace and an optional markdown code block."""
        if response is None:
            return None
        text = response.strip()
        match = self.CODE_BLOCK_PATTERN.match(text)
        if match:
            return match.group(1)
        return text


def parse_model_response(response: str) -> ExtractedInvoice:
    """
    Convenience function to parse a model response.

    Args:
        response: Raw response text

    Returns:
        Validated ExtractedInvoice
    """
    parser = InvoiceParser()
    return parser.parse(response)
