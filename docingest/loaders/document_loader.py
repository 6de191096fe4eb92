"""Document loader: MIME dispatch to format handlers with OCR fallback.

Turns an uploaded document into normalized text. Unsupported formats
and parser failures are reported as ``text=None`` rather than raised,
so callers can treat unreadable uploads as a data-quality outcome.
"""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import partial
from typing import Any

import httpx

from docingest.exceptions import DocumentFetchError
from docingest.ocr.backend import OCRBackend
from docingest.utils.logger import get_logger
from docingest.utils.text import clean_text

from .formats import (
    ExtractedText,
    FormatHandler,
    OfficeExtractor,
    extract_csv_text,
    extract_pdf_text,
    extract_plain_text,
    extract_rtf_text,
)
from .mime import (
    PDF_TYPES,
    get_supported_extensions,
    is_file_type_supported,
    normalize_mime_type,
)

logger = get_logger(__name__)

_GENERIC_TYPES = frozenset({"", "application/octet-stream", "binary/octet-stream"})


@dataclass
class LoadDocumentRequest:
    """A document to load, as raw bytes plus its declared type."""

    content: bytes
    mime_type: str
    filename: str | None = None


@dataclass
class LoadDocumentResult:
    """Normalized text of a loaded document.

    ``text`` is ``None`` when the type is unsupported or when neither
    the format handler nor OCR produced any text.
    """

    text: str | None
    mime_type: str
    page_count: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class DocumentRef:
    """Reference to a document held inline or at a URL."""

    mime_type: str
    content: bytes | None = None
    url: str | None = None
    filename: str | None = None


@dataclass(frozen=True)
class _Registration:
    handler: FormatHandler
    ocr_fallback: bool = False


class DocumentLoader:
    """Extracts text from uploaded documents by MIME type.

    Handlers for PDF, CSV, RTF, plain text, Markdown and the Office and
    OpenDocument families are registered on construction. Further
    handlers can be added with :meth:`register`.

    Args:
        ocr: OCR backend for PDFs without a text layer. When ``None``,
            such PDFs load as ``text=None``.
        csv_separator: Separator placed between CSV fields.
        soffice_cmd: LibreOffice binary used for legacy ``.doc`` files.
        owned_client: HTTP client created for this loader's OCR backend,
            closed by :meth:`aclose`.
    """

    def __init__(
        self,
        ocr: OCRBackend | None = None,
        csv_separator: str = " | ",
        soffice_cmd: str | None = None,
        owned_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.ocr = ocr
        self._owned_client = owned_client
        self._handlers: dict[str, _Registration] = {}
        self._text_fallback = _Registration(extract_plain_text)

        self.register(PDF_TYPES, extract_pdf_text, ocr_fallback=True)
        self.register(["text/csv"], partial(extract_csv_text, separator=csv_separator))
        self.register(["text/plain", "text/markdown"], extract_plain_text)
        self.register(["application/rtf", "text/rtf"], extract_rtf_text)
        office = OfficeExtractor(soffice_cmd=soffice_cmd)
        self.register(office.mime_types, office)

    def register(
        self,
        mime_types: Iterable[str],
        handler: FormatHandler,
        *,
        ocr_fallback: bool = False,
    ) -> None:
        """Register a format handler for one or more MIME types.

        Args:
            mime_types: Types served by ``handler``; normalized on insert.
            handler: Synchronous ``(content, mime_type) -> ExtractedText``.
            ocr_fallback: Whether to OCR documents whose extracted text
                is empty or that the handler fails to parse.
        """
        registration = _Registration(handler, ocr_fallback)
        for mime_type in mime_types:
            self._handlers[normalize_mime_type(mime_type)] = registration

    async def aclose(self) -> None:
        """Close the HTTP client owned by this loader, if any."""
        if self._owned_client is not None:
            await self._owned_client.aclose()
            self._owned_client = None

    def is_supported(self, mime_type: str) -> bool:
        mime = normalize_mime_type(mime_type)
        return mime in self._handlers or is_file_type_supported(mime)

    def get_supported_extensions(self) -> list[str]:
        return get_supported_extensions()

    async def load(self, request: LoadDocumentRequest) -> LoadDocumentResult:
        """Load a document and return its normalized text.

        Args:
            request: Document bytes and declared MIME type.

        Returns:
            Load result; never raises for unreadable documents.
        """
        mime = normalize_mime_type(request.mime_type)
        metadata: dict[str, Any] = {"filename": request.filename, "ocr_used": False}

        registration = self._handlers.get(mime)
        if registration is None and mime.startswith("text/"):
            registration = self._text_fallback
        if registration is None:
            logger.warning("Unsupported file type: %s", mime)
            return LoadDocumentResult(text=None, mime_type=mime, metadata=metadata)

        try:
            extracted = await self._extract(registration, request.content, mime, metadata)
        except Exception:
            logger.exception("Error loading document %s", request.filename or mime)
            return LoadDocumentResult(text=None, mime_type=mime, metadata=metadata)

        text = clean_text(extracted.text) if extracted.text else ""
        if not text:
            logger.warning("No text extracted from %s", request.filename or mime)

        return LoadDocumentResult(
            text=text or None,
            mime_type=mime,
            page_count=extracted.page_count,
            metadata=metadata,
        )

    async def _extract(
        self,
        registration: _Registration,
        content: bytes,
        mime: str,
        metadata: dict[str, Any],
    ) -> ExtractedText:
        if not registration.ocr_fallback:
            return await asyncio.to_thread(registration.handler, content, mime)

        try:
            extracted = await asyncio.to_thread(registration.handler, content, mime)
        except Exception as exc:
            logger.error("Failed to parse %s document: %s", mime, exc)
            if self.ocr is None:
                return ExtractedText(text=None)
            metadata["ocr_used"] = True
            return ExtractedText(text=await self.ocr.ocr(content, mime))

        if extracted.text and extracted.text.strip():
            return extracted

        if self.ocr is None:
            logger.info("No text layer in %s document and no OCR configured", mime)
            return ExtractedText(text=None, page_count=extracted.page_count)

        logger.info("No text layer in %s document, attempting OCR", mime)
        metadata["ocr_used"] = True
        text = await self.ocr.ocr(content, mime)
        return ExtractedText(text=text, page_count=extracted.page_count)


async def read_document(
    ref: DocumentRef,
    http_client: httpx.AsyncClient | None = None,
) -> LoadDocumentRequest:
    """Resolve a document reference into bytes ready for loading.

    The declared MIME type wins. A server ``Content-Type`` is used only
    when the declared type is missing or generic binary.

    Args:
        ref: Inline or URL document reference.
        http_client: Client used for URL references.

    Returns:
        Load request carrying the document bytes.

    Raises:
        DocumentFetchError: If the reference has no content and the URL
            cannot be fetched.
    """
    if ref.content is not None:
        return LoadDocumentRequest(ref.content, ref.mime_type, ref.filename)

    if not ref.url:
        raise DocumentFetchError("Document reference has neither content nor URL")

    if http_client is None:
        raise DocumentFetchError(f"No HTTP client available to fetch {ref.url}")

    try:
        response = await http_client.get(ref.url, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise DocumentFetchError(f"Failed to fetch {ref.url}: {exc}") from exc

    mime_type = ref.mime_type
    if normalize_mime_type(mime_type or "") in _GENERIC_TYPES:
        mime_type = response.headers.get("content-type") or mime_type
    logger.debug("Fetched %d bytes from %s (%s)", len(response.content), ref.url, mime_type)
    return LoadDocumentRequest(
        response.content, normalize_mime_type(mime_type), ref.filename
    )
