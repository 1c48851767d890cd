"""Gemeinsame Fixtures für die Rechnungs-Tests."""

import pytest

from tests.helpers import make_invoice


@pytest.fixture
def invoice():
    return make_invoice()


@pytest.fixture
def camel_payload():
    """Rechnung in der camelCase-Form des Frontends."""
    return {
        "invoiceNumber": "INV-7",
        "businessProfile": {
            "name": "Acme Studio",
            "email": "billing@acme.example",
            "phone": "",
            "address": "100 Market Street",
            "city": "San Francisco",
            "state": "CA",
            "zipCode": "94105",
            "country": "USA",
        },
        "clientName": "Example Corp",
        "clientEmail": "ap@example.com",
        "clientPhone": "",
        "clientAddress": "42 Sample Road",
        "clientCity": "Austin",
        "clientState": "TX",
        "clientZipCode": "73301",
        "clientCountry": "",
        "items": [
            {"id": "a", "description": "Design", "quantity": 3, "rate": 80, "amount": 240},
            {"id": "b", "description": "Hosting", "quantity": 1, "rate": 20.5, "amount": 20.5},
        ],
        "subtotal": 260.5,
        "taxRate": 10,
        "taxAmount": 26.05,
        "discountRate": 0,
        "discountAmount": 0,
        "total": 286.55,
        "notes": "Thank you!",
        "terms": "",
        "issueDate": "2025-01-15",
        "dueDate": "2025-02-14T00:00:00.000Z",
        "currency": "EUR",
    }
