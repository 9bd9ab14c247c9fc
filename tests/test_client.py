"""
Tests for the Gemini client: request shape and error classification.
HTTP is mocked at requests.post.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from invoice_extractor.config import GeminiConfig
from invoice_extractor.llm.client import (
    ExtractionAuthError,
    ExtractionConnectionError,
    ExtractionResponseError,
    GeminiClient,
)
from invoice_extractor.llm.prompts import get_extraction_prompt, get_response_schema

POST = "invoice_extractor.llm.client.requests.post"


def _response(status_code=200, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


def _candidate_body(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]}


def _generate(client):
    return client.generate("aGVsbG8=", "image/png", get_extraction_prompt(), get_response_schema())


def test_sends_document_prompt_and_schema(gemini_config):
    client = GeminiClient(gemini_config)

    with patch(POST, return_value=_response(body=_candidate_body('{"ok": true}'))) as mock_post:
        text = _generate(client)

    assert text == '{"ok": true}'
    args, kwargs = mock_post.call_args
    assert args[0] == "https://gemini.example.test/v1beta/models/gemini-test:generateContent"
    assert kwargs["headers"]["x-goog-api-key"] == "test-api-key-0123456789"
    assert kwargs["timeout"] == 30

    payload = kwargs["json"]
    parts = payload["contents"][0]["parts"]
    assert parts[0] == {"inline_data": {"mime_type": "image/png", "data": "aGVsbG8="}}
    assert parts[1]["text"] == get_extraction_prompt()
    assert payload["generationConfig"]["responseMimeType"] == "application/json"
    assert payload["generationConfig"]["responseSchema"] == get_response_schema()


def test_response_schema_requires_core_fields():
    schema = get_response_schema()

    assert set(schema["required"]) == {"invoiceNumber", "invoiceDate", "invoiceTotal", "lineItems"}
    assert set(schema["properties"]["lineItems"]["items"]["required"]) == {
        "description", "category", "quantity", "unitPrice", "lineTotal",
    }


def test_joins_multiple_text_parts(gemini_config):
    body = {"candidates": [{"content": {"parts": [{"text": '{"a":'}, {"text": " 1}"}]}}]}

    with patch(POST, return_value=_response(body=body)):
        assert _generate(GeminiClient(gemini_config)) == '{"a": 1}'


def test_missing_api_key_fails_without_request():
    client = GeminiClient(GeminiConfig(api_key=""))

    with patch(POST) as mock_post:
        with pytest.raises(ExtractionAuthError):
            _generate(client)

    mock_post.assert_not_called()
    assert client.is_available() is False


@pytest.mark.parametrize(
    "status, text, error",
    [
        (401, "unauthorized", ExtractionAuthError),
        (403, "forbidden", ExtractionAuthError),
        (400, "API key not valid. Please pass a valid API key.", ExtractionAuthError),
        (400, "Invalid JSON payload", ExtractionResponseError),
        (429, "Resource has been exhausted", ExtractionConnectionError),
        (500, "internal error", ExtractionResponseError),
        (503, "unavailable", ExtractionResponseError),
    ],
)
def test_error_statuses_are_classified(gemini_config, status, text, error):
    with patch(POST, return_value=_response(status_code=status, text=text)):
        with pytest.raises(error):
            _generate(GeminiClient(gemini_config))


def test_connection_error(gemini_config):
    with patch(POST, side_effect=requests.exceptions.ConnectionError("refused")):
        with pytest.raises(ExtractionConnectionError, match="Failed to connect"):
            _generate(GeminiClient(gemini_config))


def test_timeout(gemini_config):
    with patch(POST, side_effect=requests.exceptions.Timeout()):
        with pytest.raises(ExtractionConnectionError, match="timed out"):
            _generate(GeminiClient(gemini_config))


def test_blocked_prompt(gemini_config):
    body = {"promptFeedback": {"blockReason": "SAFETY"}}

    with patch(POST, return_value=_response(body=body)):
        with pytest.raises(ExtractionResponseError, match="SAFETY"):
            _generate(GeminiClient(gemini_config))


def test_empty_candidate_text(gemini_config):
    body = {"candidates": [{"content": {"parts": []}, "finishReason": "MAX_TOKENS"}]}

    with patch(POST, return_value=_response(body=body)):
        with pytest.raises(ExtractionResponseError, match="MAX_TOKENS"):
            _generate(GeminiClient(gemini_config))


def test_non_json_body(gemini_config):
    with patch(POST, return_value=_response(body=ValueError("no json"))):
        with pytest.raises(ExtractionResponseError):
            _generate(GeminiClient(gemini_config))
