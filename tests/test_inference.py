"""Tests for the schema-constrained inference client."""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel

from docingest.exceptions import InferenceError
from docingest.extraction.schemas import ClassificationResult, DocumentCategory, RawInvoice
from docingest.inference.client import (
    ImageContent,
    OpenAIInferenceClient,
    clean_json_response,
)


def _mock_openai(content: str | None, finish_reason: str = "stop") -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    choice.finish_reason = finish_reason
    response = MagicMock()
    response.choices = [choice]

    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


def _generate(
    client: MagicMock,
    content: str | ImageContent = "text",
    schema: type[BaseModel] = ClassificationResult,
) -> Any:
    inference = OpenAIInferenceClient(client, model="test-model")
    return asyncio.run(
        inference.generate_object(
            system="Classify.", content=content, schema=schema, temperature=0.2
        )
    )


class TestCleanJsonResponse:
    """Tests for markdown fence stripping."""

    def test_json_fence(self) -> None:
        assert clean_json_response('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self) -> None:
        assert clean_json_response('```\n{"a": 1}```') == '{"a": 1}'

    def test_plain_json(self) -> None:
        assert clean_json_response('  {"a": 1} ') == '{"a": 1}'


class TestOpenAIInferenceClient:
    """Tests for OpenAIInferenceClient.generate_object."""

    def test_valid_reply(self) -> None:
        client = _mock_openai('{"type": "invoice", "confidence": 0.93, "language": "english"}')

        result = _generate(client)

        assert result == ClassificationResult(
            type=DocumentCategory.INVOICE, confidence=0.93, language="english"
        )
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"] == [
            {"role": "system", "content": "Classify."},
            {"role": "user", "content": "text"},
        ]
        response_format = kwargs["response_format"]
        assert response_format["type"] == "json_schema"
        assert response_format["json_schema"]["name"] == "ClassificationResult"
        assert "confidence" in response_format["json_schema"]["schema"]["properties"]

    def test_fenced_reply(self) -> None:
        client = _mock_openai('```json\n{"type": "receipt", "confidence": 0.8}\n```')
        result = _generate(client)
        assert result.type is DocumentCategory.RECEIPT
        assert result.language is None

    def test_image_content(self) -> None:
        client = _mock_openai('{"type": "receipt", "confidence": 0.7}')

        _generate(client, content=ImageContent(b"abc", "image/png"))

        user = client.chat.completions.create.call_args.kwargs["messages"][1]
        assert user["content"] == [
            {"type": "image_url", "image_url": {"url": "data:image/png;base64,YWJj"}}
        ]

    def test_empty_reply(self) -> None:
        client = _mock_openai(None, finish_reason="length")
        with pytest.raises(InferenceError, match="finish_reason=length"):
            _generate(client)

    def test_reply_not_matching_schema(self) -> None:
        client = _mock_openai('{"type": "invoice", "confidence": 1.7}')
        with pytest.raises(InferenceError, match="does not match ClassificationResult"):
            _generate(client)

    def test_reply_not_json(self) -> None:
        client = _mock_openai("I think this is an invoice.")
        with pytest.raises(InferenceError):
            _generate(client)

    def test_nullable_invoice_fields(self) -> None:
        client = _mock_openai('{"invoice_number": null, "line_items": null}')
        result = _generate(client, schema=RawInvoice)
        assert result.invoice_number is None
        assert result.line_items == []

    def test_api_error_propagates(self) -> None:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=ConnectionError("down"))
        with pytest.raises(ConnectionError):
            _generate(client)
