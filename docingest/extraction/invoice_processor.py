"""Invoice field extraction from documents and text.

Invoices are read as text only; scanned invoices reach this processor
after the loader or the pipeline has run OCR on them.
"""

from docingest.exceptions import DocumentTextError
from docingest.loaders.document_loader import DocumentRef
from docingest.utils.logger import get_logger
from docingest.utils.text import limit_words

from .base import StructuredExtractor, resolve_website
from .prompts import create_invoice_prompt
from .quality import missing_invoice_fields
from .schemas import ExtractedInvoice, LineItem, RawInvoice

logger = get_logger(__name__)


class InvoiceProcessor(StructuredExtractor):
    """Extracts structured invoice records.

    Args:
        min_text_length: Minimum characters of loaded text required
            before a document is sent for extraction.
        **kwargs: Forwarded to :class:`StructuredExtractor`.
    """

    document_kind = "invoice"

    def __init__(self, *args, min_text_length: int = 50, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.min_text_length = min_text_length

    async def process_document(
        self,
        ref: DocumentRef,
        company_name: str | None = None,
    ) -> ExtractedInvoice:
        """Load an invoice document and extract its fields.

        Args:
            ref: Inline or URL reference to the document.
            company_name: Name of the receiving company, if known.

        Returns:
            The extracted invoice record.

        Raises:
            DocumentTextError: If the document yields too little text.
        """
        text = await self._load_text(ref)
        if len(text) < self.min_text_length:
            raise DocumentTextError(
                f"Could not extract text from invoice document "
                f"({len(text)} characters, need {self.min_text_length})"
            )
        return await self.process_text(text, company_name)

    async def process_text(
        self,
        text: str,
        company_name: str | None = None,
    ) -> ExtractedInvoice:
        """Extract invoice fields from already-loaded text.

        Args:
            text: Normalized invoice text.
            company_name: Name of the receiving company, if known.

        Returns:
            The extracted invoice record.
        """
        self._check_text(text)
        logger.info("Processing invoice document (%d characters)", len(text))

        raw = await self._generate(
            create_invoice_prompt(company_name),
            limit_words(text, self.max_words),
            RawInvoice,
        )
        return self.to_record(raw)

    @staticmethod
    def to_record(raw: RawInvoice) -> ExtractedInvoice:
        """Map a raw model response onto the public invoice record."""
        missing = missing_invoice_fields(raw)
        if missing:
            logger.warning(
                "Invoice data quality is poor, missing: %s", ", ".join(missing)
            )

        return ExtractedInvoice(
            invoice_number=raw.invoice_number,
            invoice_date=raw.invoice_date,
            due_date=raw.due_date,
            vendor_name=raw.vendor_name,
            vendor_address=raw.vendor_address,
            customer_name=raw.customer_name,
            customer_address=raw.customer_address,
            email=raw.email,
            website=resolve_website(raw.website, raw.email),
            total_amount=raw.total_amount,
            tax_amount=raw.tax_amount,
            tax_rate=raw.tax_rate,
            currency=raw.currency,
            tax_type=raw.tax_type,
            line_items=[
                LineItem(
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total=item.total,
                    vat_rate=item.vat_rate,
                )
                for item in raw.line_items
            ],
            payment_instructions=raw.payment_instructions,
            notes=raw.notes,
            language=raw.language,
            data_quality_poor=bool(missing),
        )
