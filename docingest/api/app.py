"""FastAPI application for the document ingestion service.

Provides REST endpoints for text loading, classification, full
invoice/receipt extraction, and health checks.
"""

import shutil
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Annotated

import openai
from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docingest import __version__
from docingest.exceptions import DocumentFetchError, DocumentTextError, InferenceError
from docingest.extraction.schemas import ClassificationResult, ExtractedInvoice
from docingest.loaders.document_loader import DocumentLoader, LoadDocumentRequest
from docingest.loaders.mime import (
    is_mime_type_supported_for_processing,
    normalize_mime_type,
)
from docingest.pipeline import DocumentPipeline, build_loader, build_pipeline
from docingest.utils.config import load_config
from docingest.utils.logger import get_logger

from .schemas import HealthResponse, LoadResponse, ProcessResponse

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Close the shared HTTP and inference clients on shutdown."""
    yield
    if get_pipeline.cache_info().currsize:
        await get_pipeline().aclose()
    if get_loader.cache_info().currsize:
        await get_loader().aclose()
    get_pipeline.cache_clear()
    get_loader.cache_clear()


app = FastAPI(
    title="Document Ingestion API",
    description="Extract text, classify, and pull structured invoice and receipt data",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InferenceError)
async def inference_error_handler(request: Request, exc: InferenceError) -> JSONResponse:
    """Return 502 for inference failures raised outside a route body.

    A missing API key surfaces here while the pipeline dependency is built.
    """
    logger.error("Inference unavailable for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": f"Inference failed: {exc}"})


@lru_cache
def get_loader() -> DocumentLoader:
    """Return the process-wide document loader."""
    return build_loader(load_config())


@lru_cache
def get_pipeline() -> DocumentPipeline:
    """Return the process-wide document pipeline."""
    return build_pipeline(load_config())


async def _read_upload(file: UploadFile) -> LoadDocumentRequest:
    mime_type = normalize_mime_type(file.content_type or "application/octet-stream")
    if not is_mime_type_supported_for_processing(mime_type):
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {mime_type}",
        )
    return LoadDocumentRequest(
        content=await file.read(),
        mime_type=mime_type,
        filename=file.filename,
    )


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, DocumentTextError | DocumentFetchError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, InferenceError | openai.OpenAIError):
        return HTTPException(status_code=502, detail=f"Inference failed: {exc}")
    return HTTPException(status_code=500, detail=str(exc))


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        tesseract_available=shutil.which("tesseract") is not None,
        soffice_available=shutil.which("soffice") is not None,
    )


@app.post("/documents/load", response_model=LoadResponse)
async def load_document(
    file: Annotated[UploadFile, File(...)],
    loader: Annotated[DocumentLoader, Depends(get_loader)],
) -> LoadResponse:
    """Extract normalized text from an uploaded document.

    Args:
        file: Uploaded document.
        loader: Document loader dependency.

    Returns:
        The extracted text, ``null`` when nothing could be read.
    """
    request = await _read_upload(file)
    result = await loader.load(request)
    return LoadResponse(
        filename=file.filename,
        mime_type=result.mime_type,
        text=result.text,
        page_count=result.page_count,
        ocr_used=bool(result.metadata.get("ocr_used")),
    )


@app.post("/documents/classify", response_model=ClassificationResult)
async def classify_document(
    file: Annotated[UploadFile, File(...)],
    pipeline: Annotated[DocumentPipeline, Depends(get_pipeline)],
) -> ClassificationResult:
    """Classify an uploaded document as invoice, receipt, contract or other."""
    request = await _read_upload(file)
    try:
        return await pipeline.classify(request)
    except Exception as exc:
        logger.error("Classification failed for %s: %s", file.filename, exc)
        raise _to_http_error(exc) from exc


@app.post("/documents/process", response_model=ProcessResponse)
async def process_document(
    file: Annotated[UploadFile, File(...)],
    pipeline: Annotated[DocumentPipeline, Depends(get_pipeline)],
    company_name: Annotated[str | None, Form()] = None,
) -> ProcessResponse:
    """Classify an uploaded document and extract its invoice or receipt fields.

    Args:
        file: Uploaded document.
        pipeline: Document pipeline dependency.
        company_name: Name of the receiving company, used to tell the
            vendor apart from the recipient.

    Returns:
        Classification and the extracted record, if any.
    """
    start_time = time.time()
    request = await _read_upload(file)

    try:
        result = await pipeline.process(request, company_name=company_name)
    except Exception as exc:
        logger.error("Processing failed for %s: %s", file.filename, exc)
        raise _to_http_error(exc) from exc

    record = result.record
    is_invoice = isinstance(record, ExtractedInvoice)
    return ProcessResponse(
        document_id=str(uuid.uuid4()),
        filename=file.filename,
        mime_type=request.mime_type,
        classification=result.classification,
        invoice=record if is_invoice else None,
        receipt=None if is_invoice else record,
        data_quality_poor=record.data_quality_poor if record else False,
        processing_time_ms=(time.time() - start_time) * 1000,
    )
