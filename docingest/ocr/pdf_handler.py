"""PDF rasterization for the local OCR backend.

Renders PDF pages to PIL images with pdf2image (poppler) so that
Tesseract can read scanned documents.
"""

from pdf2image import convert_from_bytes
from PIL import Image

from docingest.utils.logger import get_logger

logger = get_logger(__name__)


class PDFHandler:
    """Converts PDF bytes into page images.

    Args:
        dpi: Resolution for PDF rendering. Higher values produce
            better OCR results but use more memory.
    """

    def __init__(self, dpi: int = 300) -> None:
        self.dpi = dpi

    def pdf_to_images(self, content: bytes) -> list[Image.Image]:
        """Render every page of a PDF.

        Args:
            content: Raw PDF bytes.

        Returns:
            One RGB image per page.

        Raises:
            RuntimeError: If PDF conversion fails.
        """
        try:
            images = convert_from_bytes(content, dpi=self.dpi)
        except Exception as exc:
            raise RuntimeError(f"PDF conversion failed: {exc}") from exc

        logger.info("Converted PDF to %d images at %d DPI", len(images), self.dpi)
        return images
