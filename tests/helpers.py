"""Hilfsfunktionen für die Rechnungs-Tests."""

import io
from datetime import date
from decimal import Decimal

import fitz
from PIL import Image

from invoice_generator import InvoiceDocument, LineItem, Party


def make_invoice(
    item_count=1,
    discount="0",
    tax="0",
    notes="",
    terms="",
    number="INV-001",
    currency="USD",
):
    """Baut eine gültige Rechnung mit wählbaren Varianten."""
    items = tuple(
        LineItem(
            description=f"Consulting block {i + 1}",
            quantity=Decimal("2"),
            rate=Decimal("50.00"),
            amount=Decimal("100.00"),
        )
        for i in range(item_count)
    )
    subtotal = Decimal("100.00") * item_count
    return InvoiceDocument(
        issuer=Party(name="Acme Studio", email="billing@acme.example"),
        recipient=Party(name="Example Corp"),
        items=items,
        subtotal=subtotal,
        discount_amount=Decimal(discount),
        tax_amount=Decimal(tax),
        total=subtotal - Decimal(discount) + Decimal(tax),
        issue_date=date(2025, 1, 15),
        due_date=date(2025, 2, 14),
        invoice_number=number,
        currency=currency,
        notes=notes,
        terms=terms,
    )


def pdf_pages(data: bytes) -> list:
    """Öffnet ein PDF und liefert die Seitenrechtecke."""
    with fitz.open(stream=data, filetype="pdf") as doc:
        return [page.rect for page in doc]


def pdf_text(data: bytes) -> str:
    """Extrahierter Text aller Seiten."""
    with fitz.open(stream=data, filetype="pdf") as doc:
        return "".join(page.get_text() for page in doc)


def png_bytes(size, color="white", mode="RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format="PNG")
    return buf.getvalue()
