"""Shared test fixtures for the document ingestion test suite."""

from pathlib import Path
from typing import Any

import pytest
from helpers import RecordingSleep


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"


@pytest.fixture
def complete_invoice() -> dict[str, Any]:
    """A raw invoice reply with every critical field present."""
    return {
        "invoice_number": "INV-2024-001",
        "invoice_date": "2024-03-01",
        "due_date": "2024-03-31",
        "vendor_name": "Google LLC",
        "vendor_address": "1600 Amphitheatre Parkway, Mountain View, CA",
        "customer_name": "Acme d.o.o.",
        "customer_address": "Ilica 1, Zagreb",
        "email": "billing@payments.google.com",
        "website": None,
        "total_amount": 120.0,
        "currency": "USD",
        "tax_amount": 20.0,
        "tax_rate": 20.0,
        "tax_type": "VAT",
        "line_items": [
            {
                "description": "Workspace Business Standard",
                "quantity": 10,
                "unit_price": 10.0,
                "total": 100.0,
                "vat_rate": 20.0,
            }
        ],
        "payment_instructions": "Charged to card ending 4242",
        "notes": None,
        "language": "english",
    }


@pytest.fixture
def complete_receipt() -> dict[str, Any]:
    """A raw receipt reply with every critical field present."""
    return {
        "merchant_name": "Konzum d.d.",
        "merchant_address": "Marijana Čavića 1a, Zagreb",
        "date": "2024-05-10",
        "total_amount": 23.45,
        "currency": "EUR",
        "tax_amount": 4.69,
        "payment_method": "kartica",
        "items": [{"name": "Mlijeko", "quantity": 2, "price": 2.58}],
        "language": "croatian",
    }
