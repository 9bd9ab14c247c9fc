"""
Gemini client for multimodal invoice extraction.

Sends one document (inline base64 data + media type) together with the
extraction instruction and a structured-output schema, and returns the
model's JSON text. One HTTP request per call, no automatic retries.
"""

import logging
from typing import Optional

import requests

from invoice_extractor.config import GeminiConfig, get_config

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Base exception for a failed extraction of one file."""
    pass


class ExtractionConnectionError(ExtractionError):
    """Error reaching the extraction service (network, timeout, rate limit)."""
    pass


class ExtractionAuthError(ExtractionError):
    """Missing or rejected API credentials."""
    pass


class ExtractionResponseError(ExtractionError):
    """The service answered, but not with a usable invoice."""
    pass


class UnsupportedFileError(ExtractionError):
    """The uploaded file is neither a raster image nor a PDF."""
    pass


class GeminiClient:
    """Client for the Gemini generateContent API."""

    def __init__(self, config: Optional[GeminiConfig] = None):
        """Initialize Gemini client."""
        self.config = config or get_config().gemini
        self.base_url = self.config.base_url.rstrip("/")

    def get_provider_name(self) -> str:
        return "Gemini"

    def is_available(self) -> bool:
        """Check if a Gemini API key is configured."""
        return bool(self.config.api_key)

    def _get_headers(self) -> dict:
        """Get request headers with authentication."""
        return {
            "x-goog-api-key": self.config.api_key,
            "Content-Type": "application/json",
        }

    def _endpoint(self) -> str:
        return f"{self.base_url}/models/{self.config.model}:generateContent"

    def build_payload(self, data_b64: str, mime_type: str, prompt: str, schema: dict) -> dict:
        """Build the generateContent request body for one document."""
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"inline_data": {"mime_type": mime_type, "data": data_b64}},
                        {"text": prompt},
                    ],
                }
            ],
            "generationConfig": {
                "temperature": self.config.temperature,
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }

    def generate(self, data_b64: str, mime_type: str, prompt: str, schema: dict) -> str:
        """
        Run one structured extraction call.

        Args:
            data_b64: Base64-encoded document bytes
            mime_type: Declared media type of the document
            prompt: Extraction instruction
            schema: Response schema the JSON output must follow

        Returns:
            The model's response text (expected to be a JSON object)

        Raises:
            ExtractionAuthError: If no API key is set or the key is rejected
            ExtractionConnectionError: On network errors, timeouts and rate limiting
            ExtractionResponseError: On any other error status or an empty answer
        """
        if not self.config.api_key:
            raise ExtractionAuthError("Gemini API key not configured (set GEMINI_API_KEY)")

        logger.info(f"Sending {mime_type} document to Gemini model {self.config.model}")

        try:
            response = requests.post(
                self._endpoint(),
                headers=self._get_headers(),
                json=self.build_payload(data_b64, mime_type, prompt, schema),
                timeout=self.config.timeout,
            )
        except requests.exceptions.ConnectionError as e:
            raise ExtractionConnectionError(f"Failed to connect to Gemini: {e}")
        except requests.exceptions.Timeout:
            raise ExtractionConnectionError("Gemini request timed out")

        if response.status_code in (401, 403):
            raise ExtractionAuthError(f"Gemini rejected the API key (status {response.status_code})")
        elif response.status_code == 400 and "API key" in response.text:
            raise ExtractionAuthError("Invalid Gemini API key")
        elif response.status_code == 429:
            raise ExtractionConnectionError("Gemini rate limit exceeded")
        elif response.status_code != 200:
            raise ExtractionResponseError(
                f"Gemini returned status {response.status_code}: {response.text}"
            )

        return self._response_text(response)

    def _response_text(self, response: requests.Response) -> str:
        """Pull the generated text out of a generateContent response body."""
        try:
            body = response.json()
        except ValueError:
            raise ExtractionResponseError("Gemini returned a body that is not JSON")

        candidates = body.get("candidates") or []
        if not candidates:
            block_reason = (body.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                raise ExtractionResponseError(f"Gemini blocked the request: {block_reason}")
            raise ExtractionResponseError("Gemini returned no candidates")

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text.strip():
            raise ExtractionResponseError(
                f"Gemini returned an empty response (finishReason={candidate.get('finishReason')})"
            )
        return text
