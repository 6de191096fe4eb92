"""Receipt field extraction from images, documents and text."""

from docingest.inference.client import ImageContent
from docingest.loaders.document_loader import DocumentRef, read_document
from docingest.loaders.mime import is_image_type, normalize_mime_type
from docingest.utils.logger import get_logger
from docingest.utils.text import limit_words

from .base import StructuredExtractor
from .prompts import create_receipt_prompt
from .quality import missing_receipt_fields
from .schemas import ExtractedReceipt, RawReceipt, ReceiptItem

logger = get_logger(__name__)


class ReceiptProcessor(StructuredExtractor):
    """Extracts structured receipt records.

    Receipts are usually photographed, so images go straight to a
    vision-capable model; other documents are loaded to text first.
    """

    document_kind = "receipt"

    async def process_image(
        self,
        content: bytes,
        mime_type: str,
        company_name: str | None = None,
    ) -> ExtractedReceipt:
        """Extract receipt fields from a photo or scan.

        Args:
            content: Raw image bytes.
            mime_type: Image MIME type.
            company_name: Name of the buying company, if known.

        Returns:
            The extracted receipt record.
        """
        mime = normalize_mime_type(mime_type)
        logger.info("Processing receipt image (%d bytes, %s)", len(content), mime)
        raw = await self._generate(
            create_receipt_prompt(company_name),
            ImageContent(content, mime),
            RawReceipt,
        )
        return self.to_record(raw)

    async def process_document(
        self,
        ref: DocumentRef,
        company_name: str | None = None,
    ) -> ExtractedReceipt:
        """Extract receipt fields from an image or text-bearing document."""
        request = await read_document(ref, self.http_client)
        if is_image_type(request.mime_type):
            return await self.process_image(request.content, request.mime_type, company_name)

        result = await self.loader.load(request)
        return await self.process_text(result.text or "", company_name)

    async def process_text(
        self,
        text: str,
        company_name: str | None = None,
    ) -> ExtractedReceipt:
        """Extract receipt fields from already-loaded text."""
        self._check_text(text)
        logger.info("Processing receipt text (%d characters)", len(text))
        raw = await self._generate(
            create_receipt_prompt(company_name),
            limit_words(text, self.max_words),
            RawReceipt,
        )
        return self.to_record(raw)

    @staticmethod
    def to_record(raw: RawReceipt) -> ExtractedReceipt:
        """Map a raw model response onto the public receipt record."""
        missing = missing_receipt_fields(raw)
        if missing:
            logger.warning(
                "Receipt data quality is poor, missing: %s", ", ".join(missing)
            )

        return ExtractedReceipt(
            merchant_name=raw.merchant_name,
            merchant_address=raw.merchant_address,
            date=raw.date,
            total_amount=raw.total_amount,
            tax_amount=raw.tax_amount,
            currency=raw.currency,
            payment_method=raw.payment_method,
            items=[
                ReceiptItem(name=item.name, quantity=item.quantity, price=item.price)
                for item in raw.items
            ],
            language=raw.language,
            data_quality_poor=bool(missing),
        )
