"""Instruction templates for classification and field extraction.

Legal-entity normalization is carried by the prompts: suffix rules per
jurisdiction and known brand to legal-name mappings are rendered from
the tables below so they can be reviewed and extended as data.
"""

from dataclasses import dataclass

from .schemas import DocumentCategory

# Legal-entity suffixes by jurisdiction
INVOICE_ENTITY_SUFFIXES: dict[str, str] = {
    "US Companies": "Inc, LLC, Corp, Corporation, Ltd, Co",
    "Balkan": (
        "d.o.o. (društvo s ograničenom odgovornošću), d.d. (dioničko društvo), "
        "a.d. (akcionarsko društvo)"
    ),
    "German": "GmbH, AG",
    "Other EU": "S.A., S.r.l., B.V., N.V.",
}

RECEIPT_ENTITY_SUFFIXES: dict[str, str] = {
    "US": "Inc, LLC, Corp, Corporation",
    "Balkan": "d.o.o., d.d., a.d.",
    "EU": "GmbH, AG, S.A., S.r.l.",
}

# Brand or statement descriptor -> legal entity name
VENDOR_NAME_MAPPINGS: dict[str, str] = {
    '"Slack" / "SLACK*"': "Slack Technologies Inc",
    '"Google" / "GOOGLE*"': "Google LLC",
    '"Microsoft" / "MSFT*"': "Microsoft Corporation",
    '"GitHub"': "GitHub Inc",
    '"Amazon" / "AWS" / "AMZN*"': "Amazon.com Inc / Amazon Web Services Inc",
    '"Figma"': "Figma Inc",
    '"Notion"': "Notion Labs Inc",
    '"Stripe"': "Stripe Inc",
    '"Adobe"': "Adobe Inc",
    '"Atlassian" / "Jira"': "Atlassian Corporation",
    '"Zoom"': "Zoom Video Communications Inc",
    '"Dropbox"': "Dropbox Inc",
    '"OpenAI"': "OpenAI Inc",
    '"ABC D.O.O."': "ABC d.o.o. (fix capitalization)",
}

MERCHANT_NAME_MAPPINGS: dict[str, str] = {
    '"Starbucks"': "Starbucks Corporation",
    '"McDonald\'s"': "McDonald's Corporation",
    '"KONZUM"': "Konzum d.d.",
    '"LIDL"': "Lidl d.o.o.",
    '"KAUFLAND"': "Kaufland d.o.o.",
    '"SPAR"': "Spar Hrvatska d.o.o. / Spar Slovenija d.o.o.",
    '"DM" / "dm drogerie"': "dm-drogerie markt d.o.o.",
    '"MAXI"': "Maxi d.o.o.",
    '"IDEA"': "Idea d.o.o.",
    '"INA"': "INA d.d.",
    '"PETROL"': "Petrol d.d.",
    '"OMV"': "OMV Slovenija d.o.o.",
    '"MOL"': "MOL d.o.o.",
    '"NIS"': "NIS a.d.",
    '"Bolt" / "BOLT"': "Bolt Technology OÜ",
    '"Uber" / "UBER*"': "Uber Technologies Inc",
}

LANGUAGE_HINT = "english, serbian, croatian, german, etc."


def _render_suffixes(table: dict[str, str]) -> str:
    return "\n".join(f"- {region}: {suffixes}" for region, suffixes in table.items())


def _render_mappings(table: dict[str, str]) -> str:
    return "\n".join(f'- {brand} → "{legal}"' for brand, legal in table.items())


def _render_categories() -> str:
    return ", ".join(category.value for category in DocumentCategory)


DOCUMENT_CLASSIFIER_PROMPT = f"""You are an expert multilingual document classifier for business documents.

TASK: Classify the document type and extract key metadata.

CLASSIFICATION CATEGORIES:
- invoice: A bill or invoice requesting payment for goods/services (Faktura, Račun)
- receipt: A proof of payment or purchase receipt (Fiskalni račun, Potvrda)
- contract: A legal agreement or contract (Ugovor, Sporazum)
- other: Any other type of document

OUTPUT REQUIREMENTS:
1. type: One of {_render_categories()}
2. confidence: 0-1 score indicating classification certainty
3. language: Document language ({LANGUAGE_HINT})

IDENTIFICATION CLUES:
- Invoices: "Invoice", "Faktura", "Račun", invoice numbers, due dates, payment terms
- Receipts: "Receipt", "Fiskalni račun", POS terminal data, transaction IDs
- Contracts: "Contract", "Ugovor", "Agreement", party signatures, terms and conditions

Be decisive in classification. Analyze document structure and key terms."""

IMAGE_CLASSIFIER_PROMPT = f"""You are an expert multilingual document classifier for business document images.

TASK: Classify the document type and extract key metadata from the image.

CLASSIFICATION CATEGORIES:
- invoice: A bill or invoice requesting payment for goods/services
- receipt: A proof of payment or purchase receipt (POS receipt, store receipt)
- contract: A legal agreement or contract
- other: Any other type of document

OUTPUT REQUIREMENTS:
1. type: One of {_render_categories()}
2. confidence: 0-1 score indicating classification certainty
3. language: Document language ({LANGUAGE_HINT})

VISUAL IDENTIFICATION CLUES:
- Invoices: Structured layout, line items, totals at bottom, company headers
- Receipts: Long narrow format, store logo at top, itemized list, POS data
- Contracts: Multiple pages, signature lines, legal formatting

Analyze visual structure and any visible text to classify accurately."""

INVOICE_PROMPT = f"""You are an expert invoice data extractor specializing in global business documents.

TASK: Extract all relevant information from the invoice with maximum accuracy.

CRITICAL - VENDOR NAME EXTRACTION:
ALWAYS extract the FULL LEGAL ENTITY NAME with proper suffix:
{_render_suffixes(INVOICE_ENTITY_SUFFIXES)}

COMMON VENDOR TRANSFORMATIONS:
{_render_mappings(VENDOR_NAME_MAPPINGS)}

FIELDS TO EXTRACT:
- invoice_number: The invoice or document number
- invoice_date: The date the invoice was issued (YYYY-MM-DD)
- due_date: The payment due date (YYYY-MM-DD)
- vendor_name: FULL LEGAL NAME of the company/person issuing the invoice WITH entity suffix
- vendor_address: The full address of the vendor
- customer_name: The name of the customer/recipient
- customer_address: The full address of the customer
- email: Contact email (vendor's email if available)
- website: Vendor's website (root domain only)
- total_amount: The total amount to pay (numeric)
- currency: The currency code (EUR, USD, RSD, HRK, BAM, GBP)
- tax_amount: The tax/VAT amount (numeric)
- tax_rate: The tax rate as a percentage (numeric)
- tax_type: Type of tax (VAT, PDV, DDV, GST)
- line_items: Array of items with description, quantity, unit_price, total, vat_rate
- payment_instructions: Bank details or payment instructions
- notes: Any additional notes or terms
- language: The language of the document ({LANGUAGE_HINT})

RULES:
- Look for vendor in: header, letterhead, "From:" section, top-left area
- Dates: Convert all formats (DD/MM/YYYY, DD.MM.YYYY) to YYYY-MM-DD
- Amounts: Extract final total, not subtotals
- Numbers: Support 1,234.56 and 1.234,56 formats
- Currency: From symbols (€, $, £, din, kn, KM) or 3-letter codes
- If a field is not present, return null

Be precise with numbers and dates."""

RECEIPT_PROMPT = f"""You are an expert receipt data extractor specializing in global retail documents.

TASK: Extract all relevant information from the receipt with maximum accuracy.

CRITICAL - MERCHANT NAME EXTRACTION:
ALWAYS extract the FULL LEGAL ENTITY NAME with proper suffix:
{_render_suffixes(RECEIPT_ENTITY_SUFFIXES)}

COMMON MERCHANT TRANSFORMATIONS:
{_render_mappings(MERCHANT_NAME_MAPPINGS)}

FIELDS TO EXTRACT:
- merchant_name: FULL LEGAL NAME of the store/merchant WITH entity suffix
- merchant_address: The address of the merchant
- date: The date of purchase (YYYY-MM-DD)
- total_amount: The total amount paid (numeric)
- currency: The currency code (EUR, USD, RSD, HRK, BAM)
- tax_amount: The tax/VAT amount if shown (numeric)
- payment_method: How payment was made (cash, card, contactless, gotovina, kartica)
- items: Array of purchased items with name, quantity, price
- language: The language of the receipt ({LANGUAGE_HINT})

RULES:
- Look for merchant in: receipt header, store logo, business registration info
- Dates: Convert all formats to YYYY-MM-DD
- Amounts: Extract final total, look for "TOTAL", "UKUPNO", "SKUPAJ", "ZA UPLATU"
- Currency: From symbols (€, $, din, kn, KM) or codes
- If a field is not present, return null

Be precise with numbers and dates."""


def create_invoice_prompt(company_name: str | None = None) -> str:
    """Invoice instructions, naming ``company_name`` as the recipient.

    Without a company name the base instructions are returned unchanged.
    """
    if not company_name:
        return INVOICE_PROMPT
    return f"""{INVOICE_PROMPT}

CRITICAL CONTEXT: "{company_name}" is the RECIPIENT/CUSTOMER receiving this invoice.

VENDOR IDENTIFICATION:
- vendor_name = Company ISSUING the invoice TO "{company_name}" (NOT "{company_name}" itself)
- Look for vendor in: document header, letterhead, "From:" section
- "{company_name}" appears in: "Bill To:", "Customer:", recipient sections

NEVER set vendor_name = "{company_name}\""""


def create_receipt_prompt(company_name: str | None = None) -> str:
    """Receipt instructions, naming ``company_name`` as the buyer."""
    if not company_name:
        return RECEIPT_PROMPT
    return f"""{RECEIPT_PROMPT}

CRITICAL CONTEXT: "{company_name}" is the CUSTOMER/BUYER making the purchase.

MERCHANT IDENTIFICATION:
- merchant_name = BUSINESS/MERCHANT that sold items TO "{company_name}" (NOT "{company_name}" itself)
- Look for merchant in: receipt header, store logo, business address at top
- "{company_name}" appears in: loyalty card sections, customer info areas

NEVER set merchant_name = "{company_name}\""""


@dataclass(frozen=True)
class ClassifierPrompts:
    """Pair of classifier instructions selected by input modality."""

    text: str = DOCUMENT_CLASSIFIER_PROMPT
    image: str = IMAGE_CLASSIFIER_PROMPT

    def for_input(self, is_image: bool) -> str:
        return self.image if is_image else self.text
