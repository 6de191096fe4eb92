"""Response schemas and public records for classification and extraction.

``Raw*`` models are the snake_case shapes requested from the inference
backend. ``Extracted*`` models are the public records handed to callers;
they serialize with camelCase keys and accept either key style on input.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class DocumentCategory(StrEnum):
    """Business type of a document."""

    INVOICE = "invoice"
    RECEIPT = "receipt"
    CONTRACT = "contract"
    OTHER = "other"


class ClassificationResult(BaseModel):
    """Category, certainty and language of a document."""

    type: DocumentCategory = Field(description="One of invoice, receipt, contract, other")
    confidence: float = Field(
        ge=0.0, le=1.0, description="Classification certainty between 0 and 1"
    )
    language: str | None = Field(
        default=None,
        description="Document language (english, serbian, croatian, german, ...)",
    )


class ImageClassificationResult(ClassificationResult):
    """Classification of a photographed or scanned document."""


def _none_as_empty(value: object) -> object:
    return [] if value is None else value


# --- Raw inference responses -------------------------------------------------


class RawLineItem(BaseModel):
    description: str | None = Field(default=None, description="Description of the item")
    quantity: float | None = Field(default=None, description="Quantity of items")
    unit_price: float | None = Field(default=None, description="Price per unit")
    total: float | None = Field(default=None, description="Total price for this line item")
    vat_rate: float | None = Field(default=None, description="VAT rate as a percentage")


class RawInvoice(BaseModel):
    """Invoice fields as returned by the model."""

    invoice_number: str | None = Field(default=None, description="Invoice or document number")
    invoice_date: str | None = Field(default=None, description="Issue date (YYYY-MM-DD)")
    due_date: str | None = Field(default=None, description="Payment due date (YYYY-MM-DD)")
    vendor_name: str | None = Field(
        default=None,
        description="Full legal name of the issuing company, with entity suffix",
    )
    vendor_address: str | None = Field(default=None, description="Full vendor address")
    customer_name: str | None = Field(default=None, description="Customer/recipient name")
    customer_address: str | None = Field(default=None, description="Full customer address")
    email: str | None = Field(default=None, description="Vendor contact email")
    website: str | None = Field(default=None, description="Vendor root domain")
    total_amount: float | None = Field(default=None, description="Total amount to pay")
    currency: str | None = Field(default=None, description="ISO 4217 currency code")
    tax_amount: float | None = Field(default=None, description="Tax/VAT amount")
    tax_rate: float | None = Field(default=None, description="Tax rate as a percentage")
    tax_type: str | None = Field(default=None, description="Type of tax (VAT, PDV, DDV, GST)")
    line_items: list[RawLineItem] = Field(default_factory=list)
    payment_instructions: str | None = Field(
        default=None, description="Bank details or payment instructions"
    )
    notes: str | None = Field(default=None, description="Additional notes or terms")
    language: str | None = Field(default=None, description="Document language")

    @field_validator("line_items", mode="before")
    @classmethod
    def null_line_items_as_empty(cls, value: object) -> object:
        return _none_as_empty(value)


class RawReceiptItem(BaseModel):
    name: str | None = Field(default=None, description="Name of the purchased item")
    quantity: float | None = Field(default=None, description="Quantity purchased")
    price: float | None = Field(default=None, description="Price paid for the item")


class RawReceipt(BaseModel):
    """Receipt fields as returned by the model."""

    merchant_name: str | None = Field(
        default=None,
        description="Full legal name of the merchant, with entity suffix",
    )
    merchant_address: str | None = Field(default=None, description="Merchant address")
    date: str | None = Field(default=None, description="Purchase date (YYYY-MM-DD)")
    total_amount: float | None = Field(default=None, description="Total amount paid")
    currency: str | None = Field(default=None, description="ISO 4217 currency code")
    tax_amount: float | None = Field(default=None, description="Tax/VAT amount if shown")
    payment_method: str | None = Field(default=None, description="How payment was made")
    items: list[RawReceiptItem] = Field(default_factory=list)
    language: str | None = Field(default=None, description="Receipt language")

    @field_validator("items", mode="before")
    @classmethod
    def null_items_as_empty(cls, value: object) -> object:
        return _none_as_empty(value)


# --- Public records -----------------------------------------------------------


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LineItem(_Record):
    """One invoice line. ``total`` is kept as printed, never recomputed."""

    description: str | None = None
    quantity: float | None = None
    unit_price: float | None = None
    total: float | None = None
    vat_rate: float | None = None


class ExtractedInvoice(_Record):
    invoice_number: str | None = None
    invoice_date: str | None = None
    due_date: str | None = None
    vendor_name: str | None = None
    vendor_address: str | None = None
    customer_name: str | None = None
    customer_address: str | None = None
    email: str | None = None
    website: str | None = None
    total_amount: float | None = None
    tax_amount: float | None = None
    tax_rate: float | None = None
    currency: str | None = None
    tax_type: str | None = None
    line_items: list[LineItem] = Field(default_factory=list)
    payment_instructions: str | None = None
    notes: str | None = None
    language: str | None = None
    data_quality_poor: bool = False

    @field_validator("line_items", mode="before")
    @classmethod
    def null_line_items_as_empty(cls, value: object) -> object:
        return _none_as_empty(value)


class ReceiptItem(_Record):
    name: str | None = None
    quantity: float | None = None
    price: float | None = None


class ExtractedReceipt(_Record):
    merchant_name: str | None = None
    merchant_address: str | None = None
    date: str | None = None
    total_amount: float | None = None
    tax_amount: float | None = None
    currency: str | None = None
    payment_method: str | None = None
    items: list[ReceiptItem] = Field(default_factory=list)
    language: str | None = None
    data_quality_poor: bool = False

    @field_validator("items", mode="before")
    @classmethod
    def null_items_as_empty(cls, value: object) -> object:
        return _none_as_empty(value)
