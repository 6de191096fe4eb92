"""Tests for the FastAPI REST endpoints."""

from collections.abc import Iterator
from typing import Any

import openai
import pytest
from fastapi.testclient import TestClient
from helpers import INVOICE_TEXT, FakeInferenceClient, FakeOCR, RecordingSleep, make_png

from docingest import __version__
from docingest.api.app import app, get_loader, get_pipeline
from docingest.exceptions import InferenceError
from docingest.extraction.classifier import DocumentClassifier
from docingest.extraction.invoice_processor import InvoiceProcessor
from docingest.extraction.receipt_processor import ReceiptProcessor
from docingest.loaders.document_loader import DocumentLoader
from docingest.pipeline import DocumentPipeline

INVOICE = {"type": "invoice", "confidence": 0.97, "language": "english"}
RECEIPT = {"type": "receipt", "confidence": 0.9, "language": "croatian"}


def _install(*replies: Any, ocr: FakeOCR | None = None) -> FakeInferenceClient:
    client = FakeInferenceClient(*replies)
    sleep = RecordingSleep()
    loader = DocumentLoader(ocr=ocr)
    pipeline = DocumentPipeline(
        loader=loader,
        classifier=DocumentClassifier(client),
        invoices=InvoiceProcessor(client, loader=loader, sleep=sleep),
        receipts=ReceiptProcessor(client, loader=loader, sleep=sleep),
        ocr=ocr,
    )
    app.dependency_overrides[get_loader] = lambda: loader
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    return client


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Create a FastAPI test client and reset dependency overrides."""
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health_returns_200(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == __version__
        assert isinstance(data["tesseract_available"], bool)
        assert isinstance(data["soffice_available"], bool)


class TestLoadEndpoint:
    """Tests for POST /documents/load."""

    def test_text_file(self, client: TestClient) -> None:
        _install({})
        response = client.post(
            "/documents/load",
            files={"file": ("note.txt", b"Hello\n\nWorld", "text/plain")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["text"] == "Hello World"
        assert data["mimeType"] == "text/plain"
        assert data["ocrUsed"] is False
        assert data["filename"] == "note.txt"

    def test_unreadable_file_returns_null_text(self, client: TestClient) -> None:
        _install({})
        response = client.post(
            "/documents/load",
            files={"file": ("scan.pdf", b"%PDF-garbage", "application/pdf")},
        )
        assert response.status_code == 200
        assert response.json()["text"] is None

    def test_unsupported_type(self, client: TestClient) -> None:
        _install({})
        response = client.post(
            "/documents/load",
            files={"file": ("a.zip", b"PK\x03\x04", "application/zip")},
        )
        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["detail"]


class TestClassifyEndpoint:
    """Tests for POST /documents/classify."""

    def test_classify_text(self, client: TestClient) -> None:
        _install(INVOICE)
        response = client.post(
            "/documents/classify",
            files={"file": ("inv.txt", INVOICE_TEXT.encode(), "text/plain")},
        )
        assert response.status_code == 200
        assert response.json() == INVOICE

    def test_classify_empty_document(self, client: TestClient) -> None:
        _install(INVOICE)
        response = client.post(
            "/documents/classify",
            files={"file": ("empty.txt", b"   ", "text/plain")},
        )
        assert response.status_code == 422


class TestProcessEndpoint:
    """Tests for POST /documents/process."""

    def test_invoice(self, client: TestClient, complete_invoice: dict[str, Any]) -> None:
        fake = _install(INVOICE, complete_invoice)

        response = client.post(
            "/documents/process",
            files={"file": ("inv.txt", INVOICE_TEXT.encode(), "text/plain")},
            data={"company_name": "Acme d.o.o."},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["classification"]["type"] == "invoice"
        assert data["invoice"]["vendorName"] == "Google LLC"
        assert data["invoice"]["website"] == "google.com"
        assert data["receipt"] is None
        assert data["dataQualityPoor"] is False
        assert data["processingTimeMs"] >= 0
        assert "documentId" in data
        assert 'NEVER set vendor_name = "Acme d.o.o."' in fake.calls[1]["system"]

    def test_receipt_image(
        self, client: TestClient, complete_receipt: dict[str, Any]
    ) -> None:
        _install(RECEIPT, {**complete_receipt, "currency": None})

        response = client.post(
            "/documents/process",
            files={"file": ("r.png", make_png(), "image/png")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["invoice"] is None
        assert data["receipt"]["merchantName"] == "Konzum d.d."
        assert data["dataQualityPoor"] is True

    def test_contract_has_no_record(self, client: TestClient) -> None:
        _install({"type": "contract", "confidence": 0.8})
        response = client.post(
            "/documents/process",
            files={"file": ("c.txt", b"Ugovor o djelu", "text/plain")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["invoice"] is None
        assert data["receipt"] is None

    def test_inference_failure_returns_502(self, client: TestClient) -> None:
        _install(INVOICE, InferenceError("model returned nonsense"))
        response = client.post(
            "/documents/process",
            files={"file": ("inv.txt", INVOICE_TEXT.encode(), "text/plain")},
        )
        assert response.status_code == 502
        assert "Inference failed" in response.json()["detail"]

    def test_openai_error_returns_502(self, client: TestClient) -> None:
        _install(openai.OpenAIError("quota exceeded"))
        response = client.post(
            "/documents/process",
            files={"file": ("inv.txt", INVOICE_TEXT.encode(), "text/plain")},
        )
        assert response.status_code == 502

    def test_unreadable_document_returns_422(self, client: TestClient) -> None:
        _install(INVOICE)
        response = client.post(
            "/documents/process",
            files={"file": ("scan.pdf", b"%PDF-garbage", "application/pdf")},
        )
        assert response.status_code == 422

    def test_unexpected_error_returns_500(self, client: TestClient) -> None:
        _install(RuntimeError("boom"))
        response = client.post(
            "/documents/process",
            files={"file": ("inv.txt", INVOICE_TEXT.encode(), "text/plain")},
        )
        assert response.status_code == 500

    def test_unsupported_type(self, client: TestClient) -> None:
        _install(INVOICE)
        response = client.post(
            "/documents/process",
            files={"file": ("a.exe", b"MZ", "application/x-msdownload")},
        )
        assert response.status_code == 400


class TestClientLifecycle:
    """Tests for building and closing the shared clients."""

    def test_missing_api_key_returns_502(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        get_pipeline.cache_clear()

        response = TestClient(app).post(
            "/documents/classify",
            files={"file": ("inv.txt", INVOICE_TEXT.encode(), "text/plain")},
        )

        assert response.status_code == 502
        assert "OPENAI_API_KEY" in response.json()["detail"]

    def test_shutdown_closes_cached_clients(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        get_pipeline.cache_clear()
        get_loader.cache_clear()

        with TestClient(app):
            pipeline = get_pipeline()
            http_client = pipeline.invoices.http_client
            openai_client = pipeline.invoices.client.client
            loader_client = get_loader()._owned_client

        assert http_client.is_closed
        assert openai_client.is_closed()
        assert loader_client is not None
        assert loader_client.is_closed
        assert get_pipeline.cache_info().currsize == 0
