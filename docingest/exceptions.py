"""Custom exceptions for the document ingestion pipeline.

Format and OCR failures are data-quality events and never raise; these
exceptions cover the failures callers have to decide about.
"""


class DocumentIngestionError(Exception):
    """Base exception for document ingestion errors."""


class DocumentTextError(DocumentIngestionError):
    """Raised when a document yields no usable text for extraction."""


class DocumentFetchError(DocumentIngestionError):
    """Raised when a referenced document cannot be retrieved."""


class InferenceError(DocumentIngestionError):
    """Raised when the inference backend returns no valid structured object."""
