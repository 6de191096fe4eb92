"""Local Tesseract OCR backend.

Runs pytesseract on images directly and on PDFs after rasterizing them
page by page; used when no hosted OCR service is configured.
"""

import asyncio
import io

import pytesseract
from PIL import Image

from docingest.utils.logger import get_logger

from .pdf_handler import PDFHandler

logger = get_logger(__name__)


class TesseractEngine:
    """Wrapper around Tesseract OCR for page text extraction.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Default OCR language code.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "eng",
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang

    def extract_text(
        self,
        image: Image.Image,
        lang: str | None = None,
        psm: int = 3,
    ) -> str:
        """Extract text from a single page image.

        Args:
            image: Page image.
            lang: OCR language code. Defaults to the engine default.
            psm: Tesseract page segmentation mode.

        Returns:
            Recognized text with surrounding whitespace removed.
        """
        lang = lang or self.default_lang
        text = pytesseract.image_to_string(image, lang=lang, config=f"--psm {psm}")
        return text.strip()


class TesseractOCR:
    """OCR backend that recognizes documents locally.

    Args:
        engine: Tesseract wrapper.
        pdf_handler: Rasterizer for PDF input.
        psm: Tesseract page segmentation mode.
    """

    def __init__(
        self,
        engine: TesseractEngine | None = None,
        pdf_handler: PDFHandler | None = None,
        psm: int = 3,
    ) -> None:
        self.engine = engine or TesseractEngine()
        self.pdf_handler = pdf_handler or PDFHandler()
        self.psm = psm

    def _recognize(self, content: bytes, mime_type: str) -> str:
        if mime_type in ("application/pdf", "application/x-pdf"):
            pages = self.pdf_handler.pdf_to_images(content)
        else:
            pages = [Image.open(io.BytesIO(content))]

        texts = [self.engine.extract_text(page, psm=self.psm) for page in pages]
        logger.info("Tesseract recognized %d pages", len(texts))
        return "\n\n".join(texts)

    async def ocr(self, content: bytes, mime_type: str) -> str:
        """Recognize text in a PDF or image, ``""`` on any failure."""
        try:
            return await asyncio.to_thread(self._recognize, content, mime_type)
        except Exception as exc:
            logger.error("OCR failed: %s", exc)
            return ""
