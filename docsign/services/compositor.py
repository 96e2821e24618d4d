# docsign/services/compositor.py
from __future__ import annotations

import logging
from collections import OrderedDict
from io import BytesIO
from typing import Iterable, Sequence

from pypdf import PdfReader, PdfWriter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from docsign.config.signing import SigningConfig
from docsign.errors import NoSignatures, NotFound

from .artifacts import Artifact, ArtifactEncoder, RasterArtifact, RasterFormat, TextArtifact
from .coordinates import DocumentPoint, PageSize, map_to_document_space, raster_origin, text_origin

logger = logging.getLogger(__name__)


def renderable(signatures: Iterable) -> list:
    """Everything except rejected placements; pending ones are drawn too."""
    return [s for s in signatures if s.status != "rejected"]


class PdfCompositor:
    """
    Draws signature artifacts onto a copy of a PDF.

    Signatures are any objects exposing the Signature model's placement and
    content attributes (page, x, y, display_width, display_height,
    signature_type, signature_value, status).
    """

    def __init__(self, config: SigningConfig, encoder: ArtifactEncoder | None = None):
        self.config = config
        self.encoder = encoder or ArtifactEncoder(config)

    # -----------------------------
    # Drawing
    # -----------------------------
    def _draw(self, c: canvas.Canvas, artifact: Artifact, point: DocumentPoint) -> None:
        if isinstance(artifact, TextArtifact):
            x, y = text_origin(point, artifact.width, artifact.height)
            c.setFillColorRGB(0, 0, 0)
            c.setFont(self.config.font_name, artifact.font_size)
            c.drawString(x, y, artifact.text)
        elif isinstance(artifact, RasterArtifact):
            x, y = raster_origin(point, artifact.width, artifact.height)
            mode = "RGBA" if artifact.format is RasterFormat.PNG else "RGB"
            image = artifact.image.convert(mode)
            c.drawImage(ImageReader(image), x, y, width=artifact.width, height=artifact.height, mask="auto")
        else:
            raise TypeError(f"Unsupported artifact: {type(artifact).__name__}")

    def _draw_signature(self, c: canvas.Canvas, signature, page_size: PageSize) -> None:
        point = map_to_document_space(
            signature.x,
            signature.y,
            signature.display_width,
            signature.display_height,
            page_size,
            self.config,
        )
        try:
            artifact = self.encoder.encode_or_fallback(signature.signature_type, signature.signature_value)
            self._draw(c, artifact, point)
        except Exception:
            logger.exception("Drawing signature %s failed; stamping fallback text", getattr(signature, "id", "?"))
            self._draw(c, self.encoder.fallback(), point)

    def _make_overlay(self, page_size: PageSize, signatures: Sequence) -> bytes:
        """One overlay page, same size as the target page, holding every stamp for it."""
        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=(page_size.width, page_size.height))
        for signature in signatures:
            self._draw_signature(c, signature, page_size)
        c.save()
        return buf.getvalue()

    # -----------------------------
    # Render
    # -----------------------------
    def render(self, source_bytes: bytes | None, signatures: Iterable) -> bytes:
        """
        Returns new PDF bytes with every non-rejected signature drawn on its
        page. The source bytes and the signature objects are left untouched.
        """
        if not source_bytes:
            raise NotFound("Document file not found")

        active = renderable(signatures)
        if not active:
            raise NoSignatures()

        # Whole-document clone: outline, metadata and forms survive
        writer = PdfWriter(clone_from=PdfReader(BytesIO(source_bytes)))

        page_count = len(writer.pages)
        by_page: "OrderedDict[int, list]" = OrderedDict()
        for signature in active:
            index = int(signature.page) - 1
            if index < 0 or index >= page_count:
                # Stale placement on a replaced or shorter document
                logger.info(
                    "Skipping signature %s: page %s outside 1..%d",
                    getattr(signature, "id", "?"), signature.page, page_count,
                )
                continue
            by_page.setdefault(index, []).append(signature)

        for index, page_signatures in by_page.items():
            page = writer.pages[index]
            page_size = PageSize(float(page.mediabox.width), float(page.mediabox.height))
            overlay = PdfReader(BytesIO(self._make_overlay(page_size, page_signatures)))
            page.merge_page(overlay.pages[0])

        out = BytesIO()
        writer.write(out)
        return out.getvalue()
