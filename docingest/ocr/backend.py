"""OCR backend interface used by the document loader and the pipeline."""

from typing import Protocol


class OCRBackend(Protocol):
    """Best-effort text recognition for documents without a text layer.

    Implementations never raise: failures are logged and an empty string
    is returned.
    """

    async def ocr(self, content: bytes, mime_type: str) -> str: ...
