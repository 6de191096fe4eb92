"""Tests for receipt field extraction."""

import asyncio
import logging
from typing import Any

import pytest
from helpers import FakeInferenceClient, RecordingSleep, make_png

from docingest.exceptions import DocumentTextError, InferenceError
from docingest.extraction.prompts import RECEIPT_PROMPT
from docingest.extraction.receipt_processor import ReceiptProcessor
from docingest.extraction.schemas import ExtractedReceipt, RawReceipt
from docingest.inference.client import ImageContent
from docingest.loaders.document_loader import DocumentRef

RECEIPT_TEXT = "KONZUM d.d. Zagreb Mlijeko 2 x 1.29 UKUPNO 23.45 EUR 10.05.2024"


class TestProcessImage:
    """Tests for ReceiptProcessor.process_image."""

    def test_image_sent_to_model(
        self, complete_receipt: dict[str, Any], sleep: RecordingSleep
    ) -> None:
        client = FakeInferenceClient(complete_receipt)
        png = make_png()

        record = asyncio.run(
            ReceiptProcessor(client, sleep=sleep).process_image(png, "Image/PNG")
        )

        assert isinstance(record, ExtractedReceipt)
        assert record.merchant_name == "Konzum d.d."
        assert record.items[0].name == "Mlijeko"
        assert record.data_quality_poor is False
        call = client.calls[0]
        assert call["content"] == ImageContent(png, "image/png")
        assert call["schema"] is RawReceipt
        assert call["system"] == RECEIPT_PROMPT

    def test_company_name_in_prompt(
        self, complete_receipt: dict[str, Any], sleep: RecordingSleep
    ) -> None:
        client = FakeInferenceClient(complete_receipt)
        asyncio.run(
            ReceiptProcessor(client, sleep=sleep).process_image(
                make_png(), "image/png", company_name="Acme d.o.o."
            )
        )
        assert 'NEVER set merchant_name = "Acme d.o.o."' in client.calls[0]["system"]

    def test_retries_then_succeeds(
        self,
        complete_receipt: dict[str, Any],
        sleep: RecordingSleep,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        client = FakeInferenceClient(InferenceError("rate limited"), complete_receipt)

        with caplog.at_level(logging.WARNING, logger="docingest.utils.retry"):
            record = asyncio.run(
                ReceiptProcessor(client, sleep=sleep).process_image(make_png(), "image/png")
            )

        assert record.total_amount == 23.45
        assert sleep.delays == [1.0]
        assert "Receipt extraction failed on attempt 1/3: rate limited" in caplog.text


class TestProcessDocument:
    """Tests for ReceiptProcessor.process_document."""

    def test_image_reference(
        self, complete_receipt: dict[str, Any], sleep: RecordingSleep
    ) -> None:
        client = FakeInferenceClient(complete_receipt)
        ref = DocumentRef(mime_type="image/jpeg", content=b"\xff\xd8\xff")

        asyncio.run(ReceiptProcessor(client, sleep=sleep).process_document(ref))

        assert client.calls[0]["content"] == ImageContent(b"\xff\xd8\xff", "image/jpeg")

    def test_text_reference(
        self, complete_receipt: dict[str, Any], sleep: RecordingSleep
    ) -> None:
        client = FakeInferenceClient(complete_receipt)
        ref = DocumentRef(mime_type="text/plain", content=RECEIPT_TEXT.encode())

        asyncio.run(ReceiptProcessor(client, sleep=sleep).process_document(ref))

        assert client.calls[0]["content"] == RECEIPT_TEXT

    def test_unreadable_document(self, sleep: RecordingSleep) -> None:
        client = FakeInferenceClient({})
        ref = DocumentRef(mime_type="application/zip", content=b"PK")
        with pytest.raises(DocumentTextError):
            asyncio.run(ReceiptProcessor(client, sleep=sleep).process_document(ref))
        assert client.calls == []


class TestQualityFlag:
    """Tests for the receipt data-quality flag."""

    def test_missing_total(
        self,
        complete_receipt: dict[str, Any],
        sleep: RecordingSleep,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        client = FakeInferenceClient({**complete_receipt, "total_amount": None})

        with caplog.at_level(logging.WARNING):
            record = asyncio.run(
                ReceiptProcessor(client, sleep=sleep).process_text(RECEIPT_TEXT)
            )

        assert record.data_quality_poor is True
        assert "Receipt data quality is poor, missing: total_amount" in caplog.text

    def test_null_items(self, sleep: RecordingSleep) -> None:
        client = FakeInferenceClient({"merchant_name": "Lidl d.o.o.", "items": None})
        record = asyncio.run(ReceiptProcessor(client, sleep=sleep).process_text(RECEIPT_TEXT))
        assert record.items == []
        assert record.model_dump(by_alias=True)["merchantName"] == "Lidl d.o.o."
