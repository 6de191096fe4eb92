"""MIME type tables and lookup helpers for uploaded documents."""

from collections.abc import Iterable
from typing import Any

PDF_TYPES = frozenset({"application/pdf", "application/x-pdf"})

DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PPTX = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
DOC = "application/msword"
XLS = "application/vnd.ms-excel"
ODT = "application/vnd.oasis.opendocument.text"
ODS = "application/vnd.oasis.opendocument.spreadsheet"
ODP = "application/vnd.oasis.opendocument.presentation"

OFFICE_TYPES = frozenset(
    {DOCX, XLSX, PPTX, DOC, XLS, ODT, ODS, ODP, "application/docx", "application/pptx"}
)

TEXT_TYPES = frozenset({"text/plain", "text/markdown", "text/csv", "application/rtf"})

LOADABLE_TYPES = PDF_TYPES | OFFICE_TYPES | TEXT_TYPES

# Attachments accepted from upstream mail/upload sources
ALLOWED_ATTACHMENT_TYPES: tuple[str, ...] = (
    "image/heic",
    "image/png",
    "image/jpeg",
    "image/jpg",
    "application/pdf",
    "application/octet-stream",
)

_PROCESSABLE_TYPES = LOADABLE_TYPES | {
    "image/heic",
    "image/png",
    "image/jpeg",
    "image/jpg",
}

_EXTENSIONS: dict[str, str] = {
    "application/pdf": "pdf",
    "application/x-pdf": "pdf",
    DOCX: "docx",
    XLSX: "xlsx",
    PPTX: "pptx",
    DOC: "doc",
    XLS: "xls",
    ODT: "odt",
    ODS: "ods",
    ODP: "odp",
    "text/plain": "txt",
    "text/csv": "csv",
    "text/markdown": "md",
    "application/rtf": "rtf",
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/heic": "heic",
}

SUPPORTED_EXTENSIONS: tuple[str, ...] = (
    "pdf",
    "csv",
    "txt",
    "md",
    "rtf",
    "docx",
    "doc",
    "xlsx",
    "xls",
    "pptx",
    "odt",
    "ods",
    "odp",
)


def normalize_mime_type(mime_type: str) -> str:
    """Lower-case a MIME type and drop parameters such as ``charset``.

    ``"Text/Plain; charset=utf-8"`` becomes ``"text/plain"``.
    """
    return mime_type.split(";", 1)[0].strip().lower()


def is_image_type(mime_type: str) -> bool:
    return normalize_mime_type(mime_type).startswith("image/")


def is_file_type_supported(mime_type: str) -> bool:
    """Whether the format extractor can produce text for this type."""
    mime = normalize_mime_type(mime_type)
    return mime in LOADABLE_TYPES or mime.startswith("text/")


def is_mime_type_supported_for_processing(mime_type: str) -> bool:
    """Whether the full pipeline accepts this type, images included."""
    mime = normalize_mime_type(mime_type)
    return mime in _PROCESSABLE_TYPES or mime.startswith("image/")


def get_supported_extensions() -> list[str]:
    return list(SUPPORTED_EXTENSIONS)


def get_extension_from_mime_type(mime_type: str) -> str:
    """Map a MIME type to a file extension, ``"bin"`` when unknown."""
    return _EXTENSIONS.get(normalize_mime_type(mime_type), "bin")


def get_document_type_from_mime_type(mime_type: str) -> str:
    """Guess the business type of an attachment before classification.

    PDFs and opaque binaries are treated as invoices; everything else,
    typically photographed slips, as receipts.
    """
    if normalize_mime_type(mime_type) in {"application/pdf", "application/octet-stream"}:
        return "invoice"
    return "receipt"


def get_allowed_attachments(
    attachments: Iterable[dict[str, Any]] | None,
    key: str = "content_type",
) -> list[dict[str, Any]]:
    """Filter attachment descriptors to the allowed MIME types.

    Args:
        attachments: Attachment mappings, each carrying its MIME type.
        key: Mapping key holding the MIME type.

    Returns:
        Attachments whose type is in the allow-list, in input order.
    """
    if not attachments:
        return []
    return [
        attachment
        for attachment in attachments
        if normalize_mime_type(str(attachment.get(key, ""))) in ALLOWED_ATTACHMENT_TYPES
    ]
