"""
Rechnungs-PDF - Web App
Flask-basierte Anwendung zum Herunterladen von Rechnungen als PDF
"""

import io
import json
import logging
import os

from flask import Flask, request, send_file, jsonify
from PIL import Image

from invoice_generator import InvoiceDocument
from pdf_export import DocumentAssembler, ImageSurfaceCapture, SurfaceHandle

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Konfiguration
DEFAULT_CURRENCY = os.environ.get("INVOICE_DEFAULT_CURRENCY", "USD")
PREVIEW_SURFACE_ID = "invoice-view-preview"


def _read_payload() -> dict:
    """Liest die Rechnungsdaten aus JSON oder aus dem Formularfeld "invoice"."""
    if request.is_json:
        data = request.get_json(silent=True)
    else:
        raw = request.form.get("invoice", "")
        data = json.loads(raw) if raw else None
    if not isinstance(data, dict):
        raise ValueError("Rechnungsdaten fehlen")
    # Antwort der Rechnungs-API: {"invoice": {...}}
    if isinstance(data.get("invoice"), dict):
        data = data["invoice"]
    return data


def _read_surface() -> tuple:
    """Liest die hochgeladene Vorschau; liefert (Handle, Bytes) oder (None, None)."""
    upload = request.files.get("surface")
    if upload is None:
        return None, None

    data = upload.read()
    width = request.form.get("surface_width", type=int)
    height = request.form.get("surface_height", type=int)
    if not width or not height:
        try:
            with Image.open(io.BytesIO(data)) as img:
                width, height = img.size
        except (OSError, Image.DecompressionBombError):
            # Größe unbekannt: die Erfassung schlägt fehl, Vektor-Fallback greift
            width, height = 0, 0

    return SurfaceHandle(PREVIEW_SURFACE_ID, width, height), data


@app.route("/generate", methods=["POST"])
def generate_invoice():
    """Generiert die PDF-Rechnung aus den Rechnungsdaten (optional mit Vorschau)."""
    try:
        invoice = InvoiceDocument.from_dict(_read_payload(), default_currency=DEFAULT_CURRENCY)
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning("Ungültige Rechnungsdaten: %s", e)
        return jsonify({"error": f"Invalid invoice data: {e}"}), 400

    handle, surface_bytes = _read_surface()
    capture = ImageSurfaceCapture({PREVIEW_SURFACE_ID: surface_bytes}) if handle else None

    assembler = DocumentAssembler(capture=capture)
    result = assembler.produce(invoice, handle)

    if not result.ok:
        return jsonify({"error": result.error}), 500

    response = send_file(
        io.BytesIO(result.content),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=result.filename,
    )
    response.headers["X-Render-Outcome"] = result.outcome.value
    response.headers["X-Page-Count"] = str(result.page_count)
    return response


if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=False)
