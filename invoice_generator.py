"""
PDF-Rechnungsgenerator (Vektor-Layout)

Erzeugt eine einseitige A4-Rechnung direkt aus den Rechnungsdaten:
- Dataclasses für Rechnung, Parteien und Positionen
- Konfigurierbarem Layout
- Inhaltsblöcken mit fester Höhe für die vertikale Zentrierung
- Zeichenbefehlen, die auf einem reportlab-Canvas abgespielt werden

Dieser Pfad dient als Fallback, wenn keine gerenderte Vorschau
übernommen werden kann (siehe pdf_export.py). Inhalt, der nicht auf
eine Seite passt, wird vom Seitenrand abgeschnitten.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Union

from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)


# =============================================================================
# Konstanten
# =============================================================================

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "C$",
    "AUD": "A$",
    "CHF": "CHF",
    "CNY": "¥",
    "INR": "₹",
    "KES": "KSh",
}

LABELS: dict[str, str] = {
    "title": "INVOICE",
    "invoice_number": "Invoice #",
    "date": "Date",
    "due_date": "Due Date",
    "from": "From:",
    "to": "To:",
    "description": "Description",
    "quantity": "Qty",
    "rate": "Rate",
    "amount": "Amount",
    "subtotal": "Subtotal",
    "discount": "Discount",
    "tax": "Tax",
    "total": "Total",
    "notes": "Notes:",
    "terms": "Terms & Conditions:",
}


# =============================================================================
# Fehler
# =============================================================================

class InvoiceRenderError(Exception):
    """Basisklasse für Fehler beim Erzeugen des Rechnungs-PDFs."""
    pass


class CaptureError(InvoiceRenderError):
    """Die gerenderte Vorschau konnte nicht übernommen werden."""
    pass


class LayoutError(InvoiceRenderError):
    """Das Vektor-Layout konnte nicht erzeugt werden."""
    pass


# =============================================================================
# Konfiguration
# =============================================================================

@dataclass(frozen=True)
class PageGeometry:
    """Seitengröße in Millimetern und die entsprechende Pixelgröße (300 dpi)."""

    width_mm: float = 210
    height_mm: float = 297
    pixel_width: int = 2480
    pixel_height: int = 3508

    @property
    def pagesize(self) -> tuple[float, float]:
        """Seitengröße in PDF-Punkten für reportlab."""
        return (self.width_mm * mm, self.height_mm * mm)


A4_GEOMETRY = PageGeometry()


@dataclass(frozen=True)
class LayoutConfig:
    """Konfiguration für das Vektor-Layout (alle Maße in mm)."""

    # Zentrierter Inhaltsblock
    content_ratio: float = 0.7
    content_max_width: float = 140
    min_fill_ratio: float = 0.75
    min_margin: float = 10

    # Spalte "An" (ab Seitenmitte)
    recipient_offset: float = 10

    # Tabelle: Spaltenpositionen als Anteil der Inhaltsbreite
    cell_padding: float = 2
    col_quantity: float = 0.62
    col_rate: float = 0.75
    col_amount: float = 0.90
    description_gap: float = 8
    header_fill_offset: float = 6
    header_fill_height: float = 10

    # Summenblock
    totals_ratio: float = 0.5

    # Textumbruch für Hinweise und Bedingungen
    line_height: float = 6
    wrap_inset: float = 4

    # Schriftgrößen (pt)
    font_size_title: int = 28
    font_size_meta: int = 14
    font_size_party_heading: int = 16
    font_size_normal: int = 12
    font_size_totals: int = 13
    font_size_total: int = 15

    # Vorschub je Block
    title_gap: float = 20
    meta_gap: float = 10
    due_date_gap: float = 18
    party_heading_gap: float = 10
    party_gap: float = 14
    table_header_gap: float = 8
    table_rule_gap: float = 6
    row_height: float = 10
    table_end_gap: float = 6
    totals_rule_gap: float = 8
    totals_line_gap: float = 8
    total_gap: float = 14
    notes_section_gap: float = 12
    notes_heading_gap: float = 8
    notes_gap: float = 4


@dataclass(frozen=True)
class StyleConfig:
    """Konfiguration für Farben und Schriften."""

    text_color: str = "#000000"
    accent_color: str = "#3B82F6"
    header_fill_color: str = "#F0F0F0"
    rule_color: str = "#C8C8C8"
    rule_width: float = 0.2

    font_regular: str = "Helvetica"
    font_bold: str = "Helvetica-Bold"


# =============================================================================
# Datenmodelle
# =============================================================================

@dataclass(frozen=True)
class Party:
    """Aussteller oder Empfänger einer Rechnung."""
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""

    @property
    def locality_line(self) -> str:
        """Zeile "Stadt, Bundesstaat PLZ" ohne leere Bestandteile."""
        city_state = ", ".join(p for p in (self.city.strip(), self.state.strip()) if p)
        zip_code = self.zip_code.strip()
        if city_state and zip_code:
            return f"{city_state} {zip_code}"
        return city_state or zip_code

    def to_lines(self) -> list[str]:
        """Konvertiert die Partei in Zeilen für die Anzeige (leere Werte entfallen)."""
        lines = [
            self.name,
            self.email,
            self.phone,
            self.address,
            self.locality_line,
            self.country,
        ]
        return [line.strip() for line in lines if line and line.strip()]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Party:
        """Erstellt eine Partei aus einem Geschäftsprofil (camelCase oder snake_case)."""
        return cls(
            name=_text(_pick(data, "name")),
            email=_text(_pick(data, "email")),
            phone=_text(_pick(data, "phone")),
            address=_text(_pick(data, "address")),
            city=_text(_pick(data, "city")),
            state=_text(_pick(data, "state")),
            zip_code=_text(_pick(data, "zipCode", "zip_code")),
            country=_text(_pick(data, "country")),
        )

    @classmethod
    def from_client_fields(cls, data: Mapping[str, Any]) -> Party:
        """Erstellt den Empfänger aus den flachen client*-Feldern einer Rechnung."""
        return cls(
            name=_text(_pick(data, "clientName", "client_name")),
            email=_text(_pick(data, "clientEmail", "client_email")),
            phone=_text(_pick(data, "clientPhone", "client_phone")),
            address=_text(_pick(data, "clientAddress", "client_address")),
            city=_text(_pick(data, "clientCity", "client_city")),
            state=_text(_pick(data, "clientState", "client_state")),
            zip_code=_text(_pick(data, "clientZipCode", "client_zip_code")),
            country=_text(_pick(data, "clientCountry", "client_country")),
        )


@dataclass(frozen=True)
class LineItem:
    """Einzelne Rechnungsposition. Der Betrag wird übernommen, nicht berechnet."""
    description: str
    quantity: Decimal
    rate: Decimal
    amount: Decimal

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LineItem:
        """Erstellt eine Position aus einem Dictionary."""
        return cls(
            description=_text(_pick(data, "description")),
            quantity=_to_decimal(_pick(data, "quantity", "qty"), default=Decimal("1")),
            rate=_to_decimal(_pick(data, "rate", "unit_price"), default=Decimal("0")),
            amount=_to_decimal(_pick(data, "amount"), default=Decimal("0")),
        )


@dataclass(frozen=True)
class InvoiceDocument:
    """
    Vollständig aufgelöste Rechnung.

    Summen werden so gerendert, wie sie geliefert werden; sie werden nie
    aus den Positionen neu berechnet.
    """
    issuer: Party
    recipient: Party
    items: tuple[LineItem, ...]
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total: Decimal
    issue_date: date
    due_date: date
    invoice_number: str
    currency: str = "USD"
    notes: str = ""
    terms: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], default_currency: str = "USD") -> InvoiceDocument:
        """
        Erstellt eine Rechnung aus einem Request- oder Datenbank-Dictionary.

        Akzeptiert sowohl die camelCase-Form des Frontends
        (invoiceNumber, businessProfile, items) als auch die
        snake_case-Form der Datenbank (invoice_number, business_profile,
        invoice_items).

        Raises:
            ValueError: Bei nicht lesbaren Beträgen oder Datumswerten
        """
        profile = _pick(data, "businessProfile", "business_profile", "business_profiles") or {}
        if isinstance(profile, list):
            # Join-Ergebnis der Datenbank
            profile = profile[0] if profile else {}
        items = _pick(data, "items", "invoice_items") or []

        return cls(
            issuer=Party.from_dict(profile),
            recipient=Party.from_client_fields(data),
            items=tuple(LineItem.from_dict(item) for item in items),
            subtotal=_to_decimal(_pick(data, "subtotal"), default=Decimal("0")),
            discount_amount=_to_decimal(
                _pick(data, "discountAmount", "discount_amount"), default=Decimal("0")
            ),
            tax_amount=_to_decimal(_pick(data, "taxAmount", "tax_amount"), default=Decimal("0")),
            total=_to_decimal(_pick(data, "total"), default=Decimal("0")),
            issue_date=_to_date(_pick(data, "issueDate", "issue_date")),
            due_date=_to_date(_pick(data, "dueDate", "due_date")),
            invoice_number=_text(_pick(data, "invoiceNumber", "invoice_number")),
            currency=_text(_pick(data, "currency")) or default_currency,
            notes=_text(_pick(data, "notes")),
            terms=_text(_pick(data, "terms")),
        )


# =============================================================================
# Hilfsfunktionen
# =============================================================================

def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    """Gibt den ersten vorhandenen Wert zu einem der Schlüssel zurück."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _to_decimal(value: Any, default: Optional[Decimal] = None) -> Decimal:
    """
    Konvertiert einen Wert in Decimal.

    Fehlende Werte ergeben ``default``; nicht lesbare Werte führen zu
    ValueError, auch wenn ein Default angegeben ist.
    """
    if isinstance(value, Decimal):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is None:
            raise ValueError("Betrag fehlt")
        return default
    if isinstance(value, bool):
        raise ValueError(f"Ungültiger Betrag: {value!r}")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Ungültiger Betrag: {value!r}") from None


def _to_date(value: Any) -> date:
    """Konvertiert ein ISO-Datum (oder datetime) in ein date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"Ungültiges Datum: {value!r}")


def currency_symbol(code: str) -> str:
    """
    Liefert das Anzeigesymbol zu einem Währungscode.

    Unbekannte Codes werden unverändert zurückgegeben.
    """
    return CURRENCY_SYMBOLS.get((code or "").upper(), code)


def font_can_encode(text: str, font_name: str) -> bool:
    """
    Prüft, ob die Schrift alle Zeichen des Textes darstellen kann.

    Die Standard-Schriften von reportlab sind WinAnsi-kodiert,
    TrueType-Schriften werden über ihre Glyphentabelle geprüft.
    """
    font = pdfmetrics.getFont(font_name)
    if isinstance(font, TTFont):
        return all(ord(ch) in font.face.charToGlyph for ch in text)
    try:
        text.encode("cp1252")
    except UnicodeEncodeError:
        return False
    return True


def format_money(amount: Any, currency: str, font_name: Optional[str] = None) -> str:
    """
    Formatiert einen Betrag mit Währungssymbol, z.B. ``$ 1234.50``.

    Mit ``font_name`` wird statt eines Symbols, das die Schrift nicht
    darstellen kann, der Währungscode ausgegeben (``INR 50.00``).

    Raises:
        ValueError: Wenn der Betrag nicht lesbar oder nicht endlich ist
    """
    value = _to_decimal(amount)
    if not value.is_finite():
        raise ValueError(f"Ungültiger Betrag: {amount!r}")
    value = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    symbol = currency_symbol(currency)
    if font_name and not font_can_encode(symbol, font_name):
        symbol = currency.upper()
    return f"{symbol} {value:.2f}"


def format_date(value: date) -> str:
    """Formatiert ein Datum als MM/DD/YYYY."""
    return _to_date(value).strftime("%m/%d/%Y")


def format_quantity(qty: Any) -> str:
    """Formatiert eine Menge; ganze Zahlen ohne Dezimalstellen."""
    qty = _to_decimal(qty)
    if not qty.is_finite():
        raise ValueError(f"Ungültige Menge: {qty!r}")
    if qty == qty.to_integral_value():
        return str(int(qty))
    return format(qty.normalize(), "f")


def wrap_text(text: str, max_width_mm: float, font_name: str, font_size: float) -> list[str]:
    """
    Bricht Text anhand der Schriftmetrik in Zeilen um.

    Leerer Text ergibt keine Zeilen.
    """
    if not text or not text.strip():
        return []
    return simpleSplit(text.strip(), font_name, font_size, max_width_mm * mm)


def fit_text(
    text: str,
    max_width_mm: float,
    font_name: str,
    font_size: float,
    ellipsis: str = "...",
) -> str:
    """Kürzt einzeiligen Text mit Auslassungspunkten auf die verfügbare Breite."""
    limit = max_width_mm * mm
    if stringWidth(text, font_name, font_size) <= limit:
        return text
    while text and stringWidth(text + ellipsis, font_name, font_size) > limit:
        text = text[:-1]
    return text.rstrip() + ellipsis


# =============================================================================
# Zeichenbefehle
# =============================================================================

class TextAlign(Enum):
    """Horizontale Ausrichtung eines Textes relativ zu seiner x-Position."""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass(frozen=True)
class TextCommand:
    """Text an absoluter Position (mm, y = Grundlinie von oben)."""
    x: float
    y: float
    text: str
    font: str
    size: float
    color: str
    align: TextAlign = TextAlign.LEFT


@dataclass(frozen=True)
class LineCommand:
    """Linie zwischen zwei absoluten Punkten (mm, von oben)."""
    x1: float
    y1: float
    x2: float
    y2: float
    color: str
    width: float


@dataclass(frozen=True)
class RectCommand:
    """Gefülltes Rechteck; (x, y) ist die obere linke Ecke in mm."""
    x: float
    y: float
    width: float
    height: float
    fill_color: str


DrawCommand = Union[TextCommand, LineCommand, RectCommand]


@dataclass(frozen=True)
class ContentBlock:
    """Logische Layout-Einheit mit fester Höhe.

    ``draw`` erhält die obere y-Position des Blocks und liefert die
    Zeichenbefehle.
    """
    name: str
    height: float
    draw: Callable[[float], list[DrawCommand]] = field(compare=False, repr=False)


@dataclass(frozen=True)
class VectorLayout:
    """Ergebnis des Vektor-Layouts für genau eine Seite."""
    commands: tuple[DrawCommand, ...]
    blocks: tuple[str, ...]
    content_height: float
    top_offset: float
    cursor_end: float

    @property
    def consumed_height(self) -> float:
        """Tatsächlich vom Cursor durchlaufene Höhe."""
        return self.cursor_end - self.top_offset


# =============================================================================
# Vektor-Layout
# =============================================================================

class VectorLayoutEngine:
    """
    Berechnet das einseitige Vektor-Layout einer Rechnung.

    Alle Blöcke werden einmal mit ihrer Höhe erzeugt. Aus derselben Liste
    wird die Gesamthöhe für die Zentrierung summiert und anschließend
    gezeichnet, so dass Vorab-Höhe und gezeichnete Höhe übereinstimmen.

    Beispiel:
        ```python
        engine = VectorLayoutEngine()
        pdf_bytes = engine.render(invoice)
        ```
    """

    def __init__(
        self,
        geometry: Optional[PageGeometry] = None,
        layout: Optional[LayoutConfig] = None,
        style: Optional[StyleConfig] = None,
    ):
        self.geometry = geometry or A4_GEOMETRY
        self.layout = layout or LayoutConfig()
        self.style = style or StyleConfig()

        page_width = self.geometry.width_mm
        self.content_width = min(self.layout.content_max_width, page_width * self.layout.content_ratio)
        self.left = (page_width - self.content_width) / 2
        self.right = page_width - self.left
        self.center_x = page_width / 2
        self.recipient_x = self.center_x + self.layout.recipient_offset

        # Tabellenspalten
        self.desc_x = self.left + self.layout.cell_padding
        self.qty_x = self.left + self.content_width * self.layout.col_quantity
        self.rate_x = self.left + self.content_width * self.layout.col_rate
        self.amount_x = self.left + self.content_width * self.layout.col_amount
        self.totals_x = self.left + self.content_width * self.layout.totals_ratio + self.layout.cell_padding

    @property
    def min_fill_height(self) -> float:
        return self.geometry.height_mm * self.layout.min_fill_ratio

    def top_offset(self, content_height: float) -> float:
        """Obere Startposition: kurzer Inhalt wird vertikal zentriert."""
        fill = max(content_height, self.min_fill_height)
        return max((self.geometry.height_mm - fill) / 2, self.layout.min_margin)

    def layout_invoice(self, invoice: InvoiceDocument) -> VectorLayout:
        """
        Berechnet die Zeichenbefehle für eine Rechnung.

        Raises:
            LayoutError: Bei nicht darstellbaren Werten
        """
        try:
            blocks = self.build_blocks(invoice)
            content_height = sum(block.height for block in blocks)
            top = self.top_offset(content_height)

            y = top
            commands: list[DrawCommand] = []
            for block in blocks:
                commands.extend(block.draw(y))
                y += block.height
        except LayoutError:
            raise
        except Exception as exc:
            raise LayoutError(f"Layout fehlgeschlagen: {exc}") from exc

        return VectorLayout(
            commands=tuple(commands),
            blocks=tuple(block.name for block in blocks),
            content_height=content_height,
            top_offset=top,
            cursor_end=y,
        )

    def render(self, invoice: InvoiceDocument) -> bytes:
        """
        Erzeugt die einseitige PDF-Datei.

        Returns:
            PDF als Bytes

        Raises:
            LayoutError: Wenn Layout oder Zeichnen fehlschlägt
        """
        result = self.layout_invoice(invoice)

        buffer = io.BytesIO()
        try:
            c = canvas.Canvas(buffer, pagesize=self.geometry.pagesize, invariant=1)
            c.setTitle(f"Invoice {invoice.invoice_number}")
            self.draw(c, result.commands)
            c.showPage()
            c.save()
        except LayoutError:
            raise
        except Exception as exc:
            raise LayoutError(f"Zeichnen fehlgeschlagen: {exc}") from exc

        logger.debug(
            "Vektor-Layout für Rechnung %s: Höhe %.1f mm, Start %.1f mm",
            invoice.invoice_number, result.content_height, result.top_offset,
        )
        return buffer.getvalue()

    def draw(self, c: canvas.Canvas, commands: tuple[DrawCommand, ...]) -> None:
        """Spielt Zeichenbefehle auf einem Canvas ab (mm von oben -> pt von unten)."""
        page_height = self.geometry.height_mm

        for cmd in commands:
            if isinstance(cmd, TextCommand):
                c.setFont(cmd.font, cmd.size)
                c.setFillColor(colors.HexColor(cmd.color))
                x, y = cmd.x * mm, (page_height - cmd.y) * mm
                if cmd.align is TextAlign.RIGHT:
                    c.drawRightString(x, y, cmd.text)
                elif cmd.align is TextAlign.CENTER:
                    c.drawCentredString(x, y, cmd.text)
                else:
                    c.drawString(x, y, cmd.text)
            elif isinstance(cmd, LineCommand):
                c.setStrokeColor(colors.HexColor(cmd.color))
                c.setLineWidth(cmd.width * mm)
                c.line(
                    cmd.x1 * mm, (page_height - cmd.y1) * mm,
                    cmd.x2 * mm, (page_height - cmd.y2) * mm,
                )
            elif isinstance(cmd, RectCommand):
                c.setFillColor(colors.HexColor(cmd.fill_color))
                c.rect(
                    cmd.x * mm,
                    (page_height - cmd.y - cmd.height) * mm,
                    cmd.width * mm,
                    cmd.height * mm,
                    stroke=0,
                    fill=1,
                )
            else:
                raise LayoutError(f"Unbekannter Zeichenbefehl: {cmd!r}")

    # -------------------------------------------------------------------------
    # Blöcke
    # -------------------------------------------------------------------------

    def build_blocks(self, invoice: InvoiceDocument) -> list[ContentBlock]:
        """Erzeugt die geordnete Liste der Inhaltsblöcke."""
        lay = self.layout

        # Bedingte Zeilen werden genau einmal ausgewertet
        discount = _to_decimal(invoice.discount_amount)
        tax = _to_decimal(invoice.tax_amount)

        blocks = [
            ContentBlock("title", lay.title_gap, self._title),
            ContentBlock("meta", lay.meta_gap, lambda y: self._meta(y, invoice)),
            ContentBlock("due_date", lay.due_date_gap, lambda y: self._due_date(y, invoice)),
            ContentBlock("party_heading", lay.party_heading_gap, self._party_heading),
            self._parties(invoice),
            ContentBlock("table_header", lay.table_header_gap, self._table_header),
            ContentBlock("table_rule", lay.table_rule_gap, self._table_rule),
        ]
        blocks.extend(self._item_row(item, invoice.currency) for item in invoice.items)
        blocks.append(
            ContentBlock("totals_rule", lay.table_end_gap + lay.totals_rule_gap, self._totals_rule)
        )
        blocks.append(self._totals_line("subtotal", invoice.subtotal, invoice.currency))
        if discount > 0:
            blocks.append(self._totals_line("discount", discount, invoice.currency))
        if tax > 0:
            blocks.append(self._totals_line("tax", tax, invoice.currency))
        blocks.append(self._total(invoice))

        if invoice.notes.strip() or invoice.terms.strip():
            blocks.append(ContentBlock("notes_gap", lay.notes_section_gap, lambda y: []))
            if invoice.notes.strip():
                blocks.extend(self._text_section("notes", invoice.notes, lay.notes_gap))
            if invoice.terms.strip():
                blocks.extend(self._text_section("terms", invoice.terms, 0))

        return blocks

    def _draw_text(
        self,
        x: float,
        y: float,
        text: str,
        font: Optional[str] = None,
        size: Optional[float] = None,
        color: Optional[str] = None,
        align: TextAlign = TextAlign.LEFT,
    ) -> TextCommand:
        return TextCommand(
            x=x,
            y=y,
            text=text,
            font=font or self.style.font_regular,
            size=size or self.layout.font_size_normal,
            color=color or self.style.text_color,
            align=align,
        )

    def _title(self, y: float) -> list[DrawCommand]:
        return [
            self._draw_text(
                self.center_x, y, LABELS["title"],
                size=self.layout.font_size_title,
                color=self.style.accent_color,
                align=TextAlign.CENTER,
            )
        ]

    def _meta(self, y: float, invoice: InvoiceDocument) -> list[DrawCommand]:
        size = self.layout.font_size_meta
        return [
            self._draw_text(self.left, y, f"{LABELS['invoice_number']}: {invoice.invoice_number}", size=size),
            self._draw_text(
                self.right, y, f"{LABELS['date']}: {format_date(invoice.issue_date)}",
                size=size, align=TextAlign.RIGHT,
            ),
        ]

    def _due_date(self, y: float, invoice: InvoiceDocument) -> list[DrawCommand]:
        return [
            self._draw_text(
                self.right, y, f"{LABELS['due_date']}: {format_date(invoice.due_date)}",
                size=self.layout.font_size_meta, align=TextAlign.RIGHT,
            )
        ]

    def _party_heading(self, y: float) -> list[DrawCommand]:
        bold, size = self.style.font_bold, self.layout.font_size_party_heading
        return [
            self._draw_text(self.left, y, LABELS["from"], font=bold, size=size),
            self._draw_text(self.recipient_x, y, LABELS["to"], font=bold, size=size),
        ]

    def _parties(self, invoice: InvoiceDocument) -> ContentBlock:
        from_lines = invoice.issuer.to_lines()
        to_lines = invoice.recipient.to_lines()
        step = self.layout.line_height
        height = max(len(from_lines), len(to_lines)) * step + self.layout.party_gap

        def draw(y: float) -> list[DrawCommand]:
            commands = [self._draw_text(self.left, y + i * step, line) for i, line in enumerate(from_lines)]
            commands.extend(
                self._draw_text(self.recipient_x, y + i * step, line) for i, line in enumerate(to_lines)
            )
            return commands

        return ContentBlock("parties", height, draw)

    def _table_header(self, y: float) -> list[DrawCommand]:
        bold = self.style.font_bold
        return [
            RectCommand(
                x=self.left,
                y=y - self.layout.header_fill_offset,
                width=self.content_width,
                height=self.layout.header_fill_height,
                fill_color=self.style.header_fill_color,
            ),
            self._draw_text(self.desc_x, y, LABELS["description"], font=bold),
            self._draw_text(self.qty_x, y, LABELS["quantity"], font=bold, align=TextAlign.CENTER),
            self._draw_text(self.rate_x, y, LABELS["rate"], font=bold, align=TextAlign.RIGHT),
            self._draw_text(self.amount_x, y, LABELS["amount"], font=bold, align=TextAlign.RIGHT),
        ]

    def _rule(self, x1: float, x2: float, y: float) -> LineCommand:
        return LineCommand(
            x1=x1, y1=y, x2=x2, y2=y,
            color=self.style.rule_color,
            width=self.style.rule_width,
        )

    def _table_rule(self, y: float) -> list[DrawCommand]:
        return [self._rule(self.left, self.right, y)]

    def _item_row(self, item: LineItem, currency: str) -> ContentBlock:
        # Werte vorab formatieren, damit Fehler vor dem Zeichnen auftreten
        description = fit_text(
            item.description,
            self.qty_x - self.desc_x - self.layout.description_gap,
            self.style.font_regular,
            self.layout.font_size_normal,
        )
        quantity = format_quantity(item.quantity)
        rate = format_money(item.rate, currency, self.style.font_regular)
        amount = format_money(item.amount, currency, self.style.font_regular)

        def draw(y: float) -> list[DrawCommand]:
            return [
                self._draw_text(self.desc_x, y, description),
                self._draw_text(self.qty_x, y, quantity, align=TextAlign.CENTER),
                self._draw_text(self.rate_x, y, rate, align=TextAlign.RIGHT),
                self._draw_text(self.amount_x, y, amount, align=TextAlign.RIGHT),
            ]

        return ContentBlock("item", self.layout.row_height, draw)

    def _totals_rule(self, y: float) -> list[DrawCommand]:
        x1 = self.left + self.content_width * self.layout.totals_ratio
        return [self._rule(x1, self.right, y + self.layout.table_end_gap)]

    def _totals_line(self, key: str, amount: Any, currency: str) -> ContentBlock:
        text = f"{LABELS[key]}: {format_money(amount, currency, self.style.font_regular)}"
        size = self.layout.font_size_totals
        return ContentBlock(
            key,
            self.layout.totals_line_gap,
            lambda y: [self._draw_text(self.totals_x, y, text, size=size)],
        )

    def _total(self, invoice: InvoiceDocument) -> ContentBlock:
        text = f"{LABELS['total']}: {format_money(invoice.total, invoice.currency, self.style.font_bold)}"
        bold, size = self.style.font_bold, self.layout.font_size_total
        return ContentBlock(
            "total",
            self.layout.total_gap,
            lambda y: [self._draw_text(self.totals_x, y, text, font=bold, size=size)],
        )

    def _text_section(self, key: str, text: str, trailing_gap: float) -> list[ContentBlock]:
        lines = wrap_text(
            text,
            self.content_width - self.layout.wrap_inset,
            self.style.font_regular,
            self.layout.font_size_normal,
        )
        step = self.layout.line_height

        def draw_body(y: float) -> list[DrawCommand]:
            return [self._draw_text(self.left, y + i * step, line) for i, line in enumerate(lines)]

        heading = LABELS[key]
        return [
            ContentBlock(
                f"{key}_heading",
                self.layout.notes_heading_gap,
                lambda y: [self._draw_text(self.left, y, heading, font=self.style.font_bold)],
            ),
            ContentBlock(key, len(lines) * step + trailing_gap, draw_body),
        ]


# =============================================================================
# Beispiel / Demo
# =============================================================================

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    demo_invoice = InvoiceDocument(
        issuer=Party(
            name="Acme Studio",
            email="billing@acme.example",
            phone="+1 555 0100",
            address="100 Market Street",
            city="San Francisco",
            state="CA",
            zip_code="94105",
            country="USA",
        ),
        recipient=Party(
            name="Example Corp",
            email="ap@example.com",
            address="42 Sample Road",
            city="Austin",
            state="TX",
            zip_code="73301",
        ),
        items=(
            LineItem("Frontend implementation", Decimal("10"), Decimal("85.00"), Decimal("850.00")),
            LineItem("Hosting (monthly)", Decimal("1"), Decimal("29.90"), Decimal("29.90")),
        ),
        subtotal=Decimal("879.90"),
        discount_amount=Decimal("0"),
        tax_amount=Decimal("70.39"),
        total=Decimal("950.29"),
        issue_date=date(2025, 1, 15),
        due_date=date(2025, 2, 14),
        invoice_number="INV-2025-001",
        currency="USD",
        notes="Thank you for your business.",
        terms="Payment due within 30 days.",
    )

    output_path = "demo_invoice.pdf"
    with open(output_path, "wb") as f:
        f.write(VectorLayoutEngine().render(demo_invoice))
    print(f"Demo-Rechnung erstellt: {output_path}")
