"""Data-quality heuristics for extracted records.

A record is poor quality when a field needed to book it is missing. The
flag is advisory: records are always returned, and callers decide
whether to route flagged ones to manual review.
"""

from .schemas import RawInvoice, RawReceipt


def missing_invoice_fields(invoice: RawInvoice) -> list[str]:
    """Names of the critical invoice fields that are absent."""
    missing = [
        name
        for name in ("total_amount", "currency", "vendor_name")
        if not getattr(invoice, name)
    ]
    if not invoice.invoice_date and not invoice.due_date:
        missing.append("invoice_date/due_date")
    return missing


def missing_receipt_fields(receipt: RawReceipt) -> list[str]:
    """Names of the critical receipt fields that are absent."""
    return [
        name
        for name in ("total_amount", "currency", "merchant_name", "date")
        if not getattr(receipt, name)
    ]


def is_invoice_quality_poor(invoice: RawInvoice) -> bool:
    return bool(missing_invoice_fields(invoice))


def is_receipt_quality_poor(receipt: RawReceipt) -> bool:
    return bool(missing_receipt_fields(receipt))
