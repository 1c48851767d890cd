"""
PDF-Export einer Rechnung

Zwei Strategien:
- Raster: eine gerenderte Vorschau wird als Bild übernommen und in
  A4-Streifen geschnitten (mehrseitig, hohe Treue)
- Vektor: einseitiges Layout direkt aus den Rechnungsdaten
  (Fallback, siehe invoice_generator.py)

Der DocumentAssembler versucht zuerst die Erfassung der Vorschau und
fällt bei jedem Fehler auf das Vektor-Layout zurück.
"""

from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Iterator, Mapping, Optional

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from invoice_generator import (
    A4_GEOMETRY,
    CaptureError,
    InvoiceDocument,
    LayoutConfig,
    LayoutError,
    PageGeometry,
    StyleConfig,
    VectorLayoutEngine,
)

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Failed to generate PDF. Please try again."

# Rundungstoleranz beim Vergleich Bildhöhe / Seitenhöhe
_PAGE_EPSILON = 1e-9


# =============================================================================
# Erfassung
# =============================================================================

@dataclass(frozen=True)
class SurfaceHandle:
    """Verweis auf eine gerenderte Vorschau mit ihrer Größe in Pixeln."""
    surface_id: str
    width: int
    height: int


@dataclass(frozen=True)
class CapturedSurface:
    """Erfasstes Rasterbild der Vorschau."""
    image: Image.Image

    @property
    def pixel_width(self) -> int:
        return self.image.width

    @property
    def pixel_height(self) -> int:
        return self.image.height


SurfaceCapture = Callable[[SurfaceHandle, float], CapturedSurface]


def capture_scale(handle: SurfaceHandle, geometry: PageGeometry = A4_GEOMETRY) -> float:
    """Skalierung, mit der die Vorschau mindestens Seitenauflösung erreicht."""
    return max(geometry.pixel_width / handle.width, geometry.pixel_height / handle.height)


def _flatten(img: Image.Image, background: str) -> Image.Image:
    """Legt transparente Bilder auf einen einfarbigen Hintergrund."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        flat = Image.new("RGB", rgba.size, background)
        flat.paste(rgba, mask=rgba.getchannel("A"))
        return flat
    return img.convert("RGB")


class ImageSurfaceCapture:
    """
    Erfasst Vorschauen, die clientseitig gerendert und als Bild hochgeladen wurden.

    Beispiel:
        ```python
        capture = ImageSurfaceCapture({"invoice-view-preview": png_bytes})
        surface = capture(SurfaceHandle("invoice-view-preview", 794, 1123), 3.0)
        ```
    """

    def __init__(self, sources: Mapping[str, bytes], background: str = "#ffffff"):
        self._sources = sources
        self.background = background

    def __call__(self, handle: SurfaceHandle, scale: float) -> CapturedSurface:
        """
        Dekodiert das Bild zur Vorschau und skaliert es.

        Raises:
            CaptureError: Wenn die Vorschau fehlt oder nicht lesbar ist
        """
        try:
            data = self._sources[handle.surface_id]
        except KeyError:
            raise CaptureError(f"Vorschau nicht gefunden: {handle.surface_id}") from None

        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                frame = _flatten(img, self.background)
        except (OSError, Image.DecompressionBombError) as e:
            raise CaptureError(f"Vorschau konnte nicht gelesen werden: {e}") from e

        target = (round(handle.width * scale), round(handle.height * scale))
        if target[0] <= 0 or target[1] <= 0:
            raise CaptureError(f"Vorschau ohne Fläche: {target[0]}x{target[1]}")
        if frame.size != target:
            frame = frame.resize(target, Image.Resampling.LANCZOS)

        return CapturedSurface(frame)


# =============================================================================
# Raster-Paginierung
# =============================================================================

class RasterPaginator:
    """
    Verteilt ein beliebig hohes Rasterbild auf A4-Seiten.

    Das Bild wird auf Seitenbreite skaliert; seine Höhe in mm ergibt sich
    aus dem Seitenverhältnis. Jede Seite erhält einen eigenen Ausschnitt
    des Bildes, der letzte wird mit Weiß auf Seitenhöhe aufgefüllt.
    """

    def __init__(self, geometry: Optional[PageGeometry] = None, background: str = "#ffffff"):
        self.geometry = geometry or A4_GEOMETRY
        self.background = background

    def image_height_mm(self, surface: CapturedSurface) -> float:
        """Bildhöhe in mm bei voller Seitenbreite."""
        self._check(surface)
        return surface.pixel_height * self.geometry.width_mm / surface.pixel_width

    def page_count(self, surface: CapturedSurface) -> int:
        """
        Anzahl der Seiten für das Bild.

        Ein Rest unter einer Pixelzeile erzeugt keine weitere Seite.
        """
        step = self.page_height_px(surface)
        return max(1, math.floor((surface.pixel_height - 1) / step + _PAGE_EPSILON) + 1)

    def page_height_px(self, surface: CapturedSurface) -> float:
        """Seitenhöhe in Pixeln des erfassten Bildes."""
        self._check(surface)
        return surface.pixel_width * self.geometry.height_mm / self.geometry.width_mm

    def frame_height_px(self, surface: CapturedSurface) -> int:
        """Höhe eines Seitenrahmens in ganzen Pixeln."""
        return math.ceil(self.page_height_px(surface) - _PAGE_EPSILON)

    def slice_bounds(self, surface: CapturedSurface) -> list[tuple[int, int]]:
        """Obere und untere Pixelzeile (exklusiv) je Seite."""
        step = self.page_height_px(surface)
        bounds = []
        count = self.page_count(surface)
        for index in range(count):
            top = round(index * step)
            bottom = min(round((index + 1) * step), surface.pixel_height)
            if index == count - 1:
                bottom = min(surface.pixel_height, top + self.frame_height_px(surface))
            bounds.append((top, bottom))
        return bounds

    def frames(self, surface: CapturedSurface) -> Iterator[Image.Image]:
        """Liefert je Seite ein seitengroßes Bild."""
        frame_size = (surface.pixel_width, self.frame_height_px(surface))
        for top, bottom in self.slice_bounds(surface):
            band = surface.image.crop((0, top, surface.pixel_width, bottom))
            frame = Image.new("RGB", frame_size, self.background)
            frame.paste(band, (0, 0))
            yield frame

    def render(self, surface: CapturedSurface) -> bytes:
        """
        Erzeugt die mehrseitige PDF-Datei.

        Returns:
            PDF als Bytes
        """
        width, height = self.geometry.pagesize
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=self.geometry.pagesize, pageCompression=1)

        for frame in self.frames(surface):
            c.drawImage(ImageReader(frame), 0, 0, width=width, height=height)
            c.showPage()

        c.save()
        return buffer.getvalue()

    def _check(self, surface: CapturedSurface) -> None:
        if surface.pixel_width <= 0 or surface.pixel_height <= 0:
            raise CaptureError(
                f"Vorschau ohne Fläche: {surface.pixel_width}x{surface.pixel_height}"
            )


# =============================================================================
# Zusammenbau
# =============================================================================

class RenderOutcome(Enum):
    """Welcher Pfad das Dokument erzeugt hat."""
    CAPTURED = "captured"
    FALLBACK_USED = "fallback_used"
    ABORTED = "aborted"


@dataclass(frozen=True)
class RenderResult:
    """Ergebnis einer Konvertierung."""
    outcome: RenderOutcome
    filename: str
    content: Optional[bytes] = None
    page_count: int = 0
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is not RenderOutcome.ABORTED


def artifact_name(invoice_number: str, export_date: date) -> str:
    """Dateiname für den Download; das Datum ist der Exporttag."""
    number = invoice_number.replace("/", "-")
    return f"invoice-{number}-{export_date.isoformat()}.pdf"


class DocumentAssembler:
    """
    Erzeugt das Rechnungs-PDF: Raster-Pfad mit Vektor-Fallback.

    Jede Konvertierung ist unabhängig; Geometrie und erfasste Bilder
    gehören allein dem jeweiligen Aufruf.

    Beispiel:
        ```python
        assembler = DocumentAssembler(capture=ImageSurfaceCapture(sources))
        result = assembler.produce(invoice, SurfaceHandle("invoice-view-preview", 794, 1123))
        ```
    """

    def __init__(
        self,
        capture: Optional[SurfaceCapture] = None,
        geometry: Optional[PageGeometry] = None,
        layout: Optional[LayoutConfig] = None,
        style: Optional[StyleConfig] = None,
        today: Callable[[], date] = date.today,
    ):
        self.capture = capture
        self.geometry = geometry or A4_GEOMETRY
        self.layout = layout
        self.style = style
        self.today = today

    def produce(self, invoice: InvoiceDocument, surface: Optional[SurfaceHandle] = None) -> RenderResult:
        """
        Erzeugt das PDF für eine Rechnung.

        Args:
            invoice: Die vollständig aufgelöste Rechnung
            surface: Optionale gerenderte Vorschau; ohne Vorschau wird
                direkt das Vektor-Layout verwendet

        Returns:
            RenderResult mit Dateiname und PDF-Bytes (außer bei ABORTED)
        """
        filename = artifact_name(invoice.invoice_number, self.today())

        if surface is not None:
            captured = self._attempt_capture(surface)
            if captured is not None:
                result = self._paginate(captured, filename)
                if result is not None:
                    return result

        return self._fallback(invoice, filename)

    def _attempt_capture(self, surface: SurfaceHandle) -> Optional[CapturedSurface]:
        if self.capture is None:
            logger.info("Keine Erfassung konfiguriert, Vektor-Layout wird verwendet")
            return None

        if surface.width <= 0 or surface.height <= 0:
            logger.warning(
                "Vorschau %s ohne Fläche (%sx%s), Vektor-Layout wird verwendet",
                surface.surface_id, surface.width, surface.height,
            )
            return None

        try:
            captured = self.capture(surface, capture_scale(surface, self.geometry))
            if captured.pixel_width <= 0 or captured.pixel_height <= 0:
                captured.image.close()
                raise CaptureError("Erfasstes Bild ohne Fläche")
        except Exception as e:
            logger.warning("Erfassung fehlgeschlagen, Vektor-Layout wird verwendet: %s", e)
            return None
        return captured

    def _paginate(self, captured: CapturedSurface, filename: str) -> Optional[RenderResult]:
        paginator = RasterPaginator(self.geometry)
        try:
            pages = paginator.page_count(captured)
            content = paginator.render(captured)
        except Exception as e:
            logger.warning("Raster-Paginierung fehlgeschlagen, Vektor-Layout wird verwendet: %s", e)
            return None
        finally:
            captured.image.close()

        logger.info("%s: %d Seite(n) aus der Vorschau erzeugt", filename, pages)
        return RenderResult(RenderOutcome.CAPTURED, filename, content, pages)

    def _fallback(self, invoice: InvoiceDocument, filename: str) -> RenderResult:
        engine = VectorLayoutEngine(self.geometry, self.layout, self.style)
        try:
            content = engine.render(invoice)
        except LayoutError:
            logger.exception("Vektor-Layout für %s fehlgeschlagen", filename)
            return RenderResult(RenderOutcome.ABORTED, filename, error=FAILURE_MESSAGE)

        logger.info("%s: Vektor-Layout erzeugt (1 Seite)", filename)
        return RenderResult(RenderOutcome.FALLBACK_USED, filename, content, 1)
