"""Certificate document rendering.

Pure presentation: everything here is derived from a persisted
``Certificate`` and can be regenerated at any time.

- QR codes are produced with segno (PNG)
- The page is drawn with reportlab, A4 landscape
- When a template PDF exists for the certificate kind, the drawing is merged
  onto its first page with pypdf
"""

import asyncio
import base64
import io
import re
import unicodedata
from pathlib import Path

import segno
import structlog
from pypdf import PdfReader, PdfWriter
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from campus.utils.dates import format_long_date_es

from .models import Certificate, CertificateKind


logger = structlog.get_logger(__name__)

PNG_DATA_URL_PREFIX = "data:image/png;base64,"

# Title lines (large, small, large) and lead-in sentence per kind
_TITLES = {
    CertificateKind.APPROVAL: (
        ("CERTIFICADO", "DE", "APROBACIÓN"),
        "ha aprobado satisfactoriamente el programa de",
    ),
    CertificateKind.PARTICIPATION: (
        ("CERTIFICADO", "DE", "FINALIZACIÓN"),
        "ha finalizado satisfactoriamente el programa de",
    ),
}

_TEMPLATE_FILES = {
    CertificateKind.APPROVAL: "approval.pdf",
    CertificateKind.PARTICIPATION: "participation.pdf",
}

MARGIN = 50
QR_SIZE = 90
VALIDATION_NOTE = "Este certificado puede ser validado escaneando el código QR"


# ==============================================================================
# QR Codes
# ==============================================================================


def render_qr_png(url: str, scale: int = 5, border: int = 1) -> bytes:
    """Render a QR code encoding ``url`` as PNG bytes."""
    qr = segno.make(url, error="m")
    out = io.BytesIO()
    qr.save(out, kind="png", scale=scale, border=border)
    return out.getvalue()


def qr_data_url(url: str, scale: int = 5) -> str:
    """QR code for ``url`` as a PNG data URL (the stored representation)."""
    png = render_qr_png(url, scale=scale)
    return PNG_DATA_URL_PREFIX + base64.b64encode(png).decode("ascii")


def decode_data_url(data_url: str) -> bytes:
    """PNG bytes of a ``data:image/png;base64,`` URL.

    Raises:
        ValueError: If the value is not a base64 PNG data URL
    """
    if not data_url.startswith(PNG_DATA_URL_PREFIX):
        msg = "Not a PNG data URL"
        raise ValueError(msg)
    return base64.b64decode(data_url[len(PNG_DATA_URL_PREFIX) :], validate=True)


def certificate_filename(course_name: str) -> str:
    """ASCII download filename, e.g. ``certificado-Farmacologia-Basica.pdf``."""
    ascii_name = (
        unicodedata.normalize("NFKD", course_name)
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    slug = re.sub(r"[^A-Za-z0-9]+", "-", ascii_name).strip("-")
    return f"certificado-{slug or 'curso'}.pdf"


# ==============================================================================
# PDF
# ==============================================================================


class CertificateRenderer:
    """Renders certificate PDFs."""

    def __init__(
        self,
        issuer_name: str = "INEE",
        template_dir: str | Path | None = None,
        qr_scale: int = 5,
    ):
        self.issuer_name = issuer_name
        self.template_dir = Path(template_dir) if template_dir else None
        self.qr_scale = qr_scale

    def template_path(self, kind: CertificateKind) -> Path | None:
        """Background template for ``kind``, None when not configured/present."""
        if self.template_dir is None:
            return None
        path = self.template_dir / _TEMPLATE_FILES[kind]
        return path if path.is_file() else None

    def render(self, certificate: Certificate) -> bytes:
        """Render the certificate document (blocking)."""
        page = self._draw(certificate)

        template = self.template_path(certificate.kind)
        if template is None:
            return page

        logger.debug(
            "certificate_template_used",
            certificate_id=certificate.certificate_id,
            template=template.name,
        )
        return self._merge_onto(template, page)

    async def render_async(self, certificate: Certificate) -> bytes:
        """Render off the event loop; drawing and merging are CPU-bound."""
        return await asyncio.to_thread(self.render, certificate)

    def _qr_png(self, certificate: Certificate) -> bytes:
        if certificate.qr_code_image:
            try:
                return decode_data_url(certificate.qr_code_image)
            except ValueError:
                logger.warning(
                    "certificate_qr_unreadable",
                    certificate_id=certificate.certificate_id,
                )
        return render_qr_png(certificate.verification_url, scale=self.qr_scale)

    def _draw(self, certificate: Certificate) -> bytes:
        out = io.BytesIO()
        width, height = landscape(A4)
        pdf = canvas.Canvas(out, pagesize=(width, height))
        pdf.setTitle(f"Certificado {certificate.certificate_id}")
        pdf.setAuthor(self.issuer_name)

        center = width / 2
        content_width = width - 2 * MARGIN

        # QR code, top left
        qr_top = height - MARGIN
        pdf.drawImage(
            ImageReader(io.BytesIO(self._qr_png(certificate))),
            MARGIN,
            qr_top - QR_SIZE,
            width=QR_SIZE,
            height=QR_SIZE,
        )

        (big_1, small, big_2), lead_in = _TITLES[certificate.kind]
        y = qr_top - QR_SIZE - 60

        pdf.setFont("Helvetica-Bold", 42)
        pdf.drawCentredString(center, y, big_1)
        y -= 40
        pdf.setFont("Helvetica-Bold", 22)
        pdf.drawCentredString(center, y, small)
        y -= 50
        pdf.setFont("Helvetica-Bold", 42)
        pdf.drawCentredString(center, y, big_2)
        y -= 45

        pdf.setFont("Helvetica", 15)
        pdf.drawCentredString(center, y, f"{self.issuer_name} certifica que")
        y -= 35

        pdf.setFont("Helvetica-Bold", 26)
        pdf.drawCentredString(center, y, certificate.full_name.upper())
        y -= 25

        pdf.setFont("Helvetica", 13)
        pdf.drawCentredString(center, y, f"DNI: {certificate.national_id}")
        y -= 30

        pdf.setFont("Helvetica", 15)
        pdf.drawCentredString(center, y, lead_in)
        y -= 30

        pdf.setFont("Helvetica-Bold", 18)
        for line in simpleSplit(
            certificate.course_name.upper(), "Helvetica-Bold", 18, content_width
        ):
            pdf.drawCentredString(center, y, line)
            y -= 24
        y -= 16

        pdf.setFont("Helvetica", 13)
        pdf.drawCentredString(
            center,
            y,
            f"Fecha de finalización: {format_long_date_es(certificate.completion_date)}",
        )

        pdf.setFont("Helvetica", 9)
        pdf.drawCentredString(center, MARGIN, VALIDATION_NOTE)

        pdf.showPage()
        pdf.save()
        return out.getvalue()

    @staticmethod
    def _merge_onto(template: Path, overlay: bytes) -> bytes:
        background = PdfReader(str(template)).pages[0]
        background.merge_page(PdfReader(io.BytesIO(overlay)).pages[0])

        writer = PdfWriter()
        writer.add_page(background)
        out = io.BytesIO()
        writer.write(out)
        return out.getvalue()
