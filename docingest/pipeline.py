"""End-to-end document processing: load, classify, extract.

Orchestrates the format extractor, OCR fallback, classifier and field
extractors for a single document. Stages run strictly in order and no
state is kept between documents.
"""

import asyncio
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from typing import TypeVar

import httpx
from openai import AsyncOpenAI

from docingest.exceptions import DocumentTextError, InferenceError
from docingest.extraction.classifier import DocumentClassifier
from docingest.extraction.invoice_processor import InvoiceProcessor
from docingest.extraction.receipt_processor import ReceiptProcessor
from docingest.extraction.schemas import (
    ClassificationResult,
    DocumentCategory,
    ExtractedInvoice,
    ExtractedReceipt,
)
from docingest.inference.client import OpenAIInferenceClient
from docingest.loaders.document_loader import (
    DocumentLoader,
    LoadDocumentRequest,
    LoadDocumentResult,
)
from docingest.loaders.mime import is_image_type, normalize_mime_type
from docingest.ocr.backend import OCRBackend
from docingest.ocr.document_ocr import DocumentOCRClient
from docingest.ocr.pdf_handler import PDFHandler
from docingest.ocr.tesseract_engine import TesseractEngine, TesseractOCR
from docingest.utils.config import AppConfig, OCRConfig
from docingest.utils.logger import get_logger
from docingest.utils.retry import RetryPolicy
from docingest.utils.text import clean_text, get_content_sample

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class PipelineResult:
    """Outcome of processing one document.

    ``record`` is ``None`` for contracts and other documents that have
    no field extractor.
    """

    content: LoadDocumentResult
    classification: ClassificationResult
    record: ExtractedInvoice | ExtractedReceipt | None = None


class DocumentPipeline:
    """Routes a document through loading, classification and extraction.

    Args:
        loader: Format extractor with OCR fallback.
        classifier: Document classifier.
        invoices: Invoice field extractor.
        receipts: Receipt field extractor.
        ocr: OCR backend for scanned invoice images.
        sample_max_tokens: Token budget of the text sample classified.
        stage_timeout_s: Optional deadline applied to each stage.
        owned_clients: HTTP and OpenAI clients created for this pipeline
            and closed by :meth:`aclose`.
    """

    def __init__(
        self,
        loader: DocumentLoader,
        classifier: DocumentClassifier,
        invoices: InvoiceProcessor,
        receipts: ReceiptProcessor,
        ocr: OCRBackend | None = None,
        sample_max_tokens: int = 1200,
        stage_timeout_s: float | None = None,
        owned_clients: Sequence[httpx.AsyncClient | AsyncOpenAI] = (),
    ) -> None:
        self.loader = loader
        self.classifier = classifier
        self.invoices = invoices
        self.receipts = receipts
        self.ocr = ocr
        self.sample_max_tokens = sample_max_tokens
        self.stage_timeout_s = stage_timeout_s
        self._owned_clients = list(owned_clients)

    async def aclose(self) -> None:
        """Close the clients this pipeline created."""
        while self._owned_clients:
            client = self._owned_clients.pop()
            if isinstance(client, httpx.AsyncClient):
                await client.aclose()
            else:
                await client.close()

    async def _stage(self, name: str, awaitable: Awaitable[T]) -> T:
        if self.stage_timeout_s is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self.stage_timeout_s)
        except TimeoutError:
            logger.error("Stage '%s' exceeded %.1fs", name, self.stage_timeout_s)
            raise

    async def load(self, request: LoadDocumentRequest) -> LoadDocumentResult:
        return await self._stage("load", self.loader.load(request))

    async def classify(self, request: LoadDocumentRequest) -> ClassificationResult:
        """Classify a document without extracting fields."""
        if is_image_type(request.mime_type):
            return await self._stage(
                "classify",
                self.classifier.classify(request.content, True, request.mime_type),
            )

        content = await self.load(request)
        if not content.text:
            raise DocumentTextError(f"No text could be extracted from {request.filename}")
        return await self._classify_text(content.text)

    async def _classify_text(self, text: str) -> ClassificationResult:
        sample = get_content_sample(text, self.sample_max_tokens)
        return await self._stage("classify", self.classifier.classify(sample, False))

    async def process(
        self,
        request: LoadDocumentRequest,
        company_name: str | None = None,
    ) -> PipelineResult:
        """Load, classify and extract one document.

        Args:
            request: Uploaded document bytes and MIME type.
            company_name: Name of the company the document was sent to.

        Returns:
            Loaded content, classification and the extracted record.

        Raises:
            DocumentTextError: If a non-image document yields no text.
        """
        mime = normalize_mime_type(request.mime_type)
        logger.info("Processing %s (%s)", request.filename or "document", mime)

        if is_image_type(mime):
            return await self._process_image(request, mime, company_name)

        content = await self.load(request)
        if not content.text:
            raise DocumentTextError(
                f"No text could be extracted from {request.filename or mime}"
            )

        classification = await self._classify_text(content.text)
        record: ExtractedInvoice | ExtractedReceipt | None = None
        if classification.type == DocumentCategory.INVOICE:
            record = await self._stage(
                "extract", self.invoices.process_text(content.text, company_name)
            )
        elif classification.type == DocumentCategory.RECEIPT:
            record = await self._stage(
                "extract", self.receipts.process_text(content.text, company_name)
            )
        else:
            logger.info("No field extractor for %s documents", classification.type)

        return PipelineResult(content=content, classification=classification, record=record)

    async def _process_image(
        self,
        request: LoadDocumentRequest,
        mime: str,
        company_name: str | None,
    ) -> PipelineResult:
        classification = await self._stage(
            "classify", self.classifier.classify(request.content, True, mime)
        )
        content = LoadDocumentResult(
            text=None, mime_type=mime, metadata={"filename": request.filename}
        )

        record: ExtractedInvoice | ExtractedReceipt | None = None
        if classification.type == DocumentCategory.RECEIPT:
            record = await self._stage(
                "extract",
                self.receipts.process_image(request.content, mime, company_name),
            )
        elif classification.type == DocumentCategory.INVOICE:
            text = await self._ocr_image(request.content, mime)
            content.text = text or None
            content.metadata["ocr_used"] = True
            if not text:
                raise DocumentTextError(
                    f"OCR produced no text for invoice image {request.filename or mime}"
                )
            record = await self._stage(
                "extract", self.invoices.process_text(text, company_name)
            )
        else:
            logger.info("No field extractor for %s images", classification.type)

        return PipelineResult(content=content, classification=classification, record=record)

    async def _ocr_image(self, content: bytes, mime: str) -> str:
        if self.ocr is None:
            logger.warning("Invoice image received but no OCR backend is configured")
            return ""
        text = await self._stage("ocr", self.ocr.ocr(content, mime))
        return clean_text(text)


def build_ocr_backend(
    config: OCRConfig,
    http_client: httpx.AsyncClient,
) -> OCRBackend | None:
    """Create the configured OCR backend, or ``None`` when OCR is off."""
    if config.provider == "none":
        return None

    if config.provider == "tesseract":
        return TesseractOCR(
            engine=TesseractEngine(config.tesseract_cmd, config.default_lang),
            pdf_handler=PDFHandler(dpi=config.pdf_dpi),
            psm=config.psm,
        )

    api_key = config.resolve_api_key()
    if not api_key:
        logger.warning("%s is not set, OCR fallback disabled", config.api_key_env)
        return None

    return DocumentOCRClient(
        http_client,
        api_key=api_key,
        base_url=config.base_url,
        model=config.model,
        retry=RetryPolicy(max_attempts=config.max_attempts),
    )


def build_loader(
    config: AppConfig,
    http_client: httpx.AsyncClient | None = None,
) -> DocumentLoader:
    """Create a document loader with the configured OCR fallback.

    A client created here is owned by the loader and closed by
    :meth:`DocumentLoader.aclose`.
    """
    owned_client = None
    if http_client is None:
        http_client = owned_client = httpx.AsyncClient(timeout=config.ocr.timeout_s)
    return DocumentLoader(
        ocr=build_ocr_backend(config.ocr, http_client),
        csv_separator=config.loader.csv_separator,
        soffice_cmd=config.loader.soffice_cmd,
        owned_client=owned_client,
    )


def build_pipeline(
    config: AppConfig,
    http_client: httpx.AsyncClient | None = None,
    openai_client: AsyncOpenAI | None = None,
) -> DocumentPipeline:
    """Wire a pipeline from configuration.

    Clients are created once here and shared by every stage; pass
    existing clients to reuse connection pools owned by the caller.
    Clients created here are closed by :meth:`DocumentPipeline.aclose`.

    Args:
        config: Application configuration.
        http_client: Shared HTTP client for OCR and URL fetches.
        openai_client: Shared OpenAI client for inference.

    Returns:
        A ready-to-use document pipeline.

    Raises:
        InferenceError: If no OpenAI client is given and no API key is
            configured.
    """
    owned_clients: list[httpx.AsyncClient | AsyncOpenAI] = []
    if openai_client is None:
        api_key = config.inference.resolve_api_key()
        if not api_key:
            raise InferenceError(
                f"No inference API key configured; set {config.inference.api_key_env}"
            )
        openai_client = AsyncOpenAI(
            api_key=api_key,
            base_url=config.inference.base_url,
            timeout=config.inference.timeout_s,
        )
        owned_clients.append(openai_client)
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=config.ocr.timeout_s)
        owned_clients.append(http_client)

    loader = build_loader(config, http_client)
    inference = OpenAIInferenceClient(openai_client, model=config.inference.model)
    extraction = config.extraction
    retry = RetryPolicy(
        max_attempts=extraction.max_attempts, base_delay=extraction.base_delay_s
    )
    processor_kwargs = {
        "loader": loader,
        "http_client": http_client,
        "retry": retry,
        "temperature": config.inference.extraction_temperature,
        "max_words": extraction.max_words,
    }

    return DocumentPipeline(
        loader=loader,
        classifier=DocumentClassifier(
            inference, temperature=config.inference.classification_temperature
        ),
        invoices=InvoiceProcessor(
            inference, min_text_length=extraction.min_text_length, **processor_kwargs
        ),
        receipts=ReceiptProcessor(inference, **processor_kwargs),
        ocr=loader.ocr,
        sample_max_tokens=extraction.sample_max_tokens,
        stage_timeout_s=config.pipeline.stage_timeout_s,
        owned_clients=owned_clients,
    )
