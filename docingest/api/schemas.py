"""Pydantic response schemas for the FastAPI endpoints."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from docingest.extraction.schemas import (
    ClassificationResult,
    ExtractedInvoice,
    ExtractedReceipt,
)


class _Response(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoadResponse(_Response):
    """Response schema for a text extraction request."""

    filename: str | None
    mime_type: str
    text: str | None
    page_count: int | None = None
    ocr_used: bool = False


class ProcessResponse(_Response):
    """Response schema for full document processing."""

    document_id: str
    filename: str | None
    mime_type: str
    classification: ClassificationResult
    invoice: ExtractedInvoice | None = None
    receipt: ExtractedReceipt | None = None
    data_quality_poor: bool = False
    processing_time_ms: float


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    soffice_available: bool
