# docsign/services/coordinates.py
"""
UI space -> document space.

UI space: pixels, origin top-left, scaled to whatever width the client
rendered the page at. Document space: PDF points, origin bottom-left.
"""
from __future__ import annotations

import logging
from typing import NamedTuple, Optional, Tuple

from docsign.config.signing import SigningConfig

logger = logging.getLogger(__name__)

_DEFAULTS = SigningConfig()


class PageSize(NamedTuple):
    width: float
    height: float


class DocumentPoint(NamedTuple):
    x: float
    y: float
    # True when the stored display box was missing and defaults were used
    degraded: bool = False


def resolve_display_box(
    display_width: Optional[float],
    display_height: Optional[float],
    config: SigningConfig = _DEFAULTS,
) -> Tuple[float, float, bool]:
    """
    Returns (width, height, degraded). Each dimension falls back on its own
    when absent or zero.
    """
    degraded = False
    width = float(display_width or 0)
    height = float(display_height or 0)

    if width <= 0:
        width = config.default_display_width
        degraded = True
    if height <= 0:
        height = config.default_display_height
        degraded = True

    return width, height, degraded


def map_to_document_space(
    x: float,
    y: float,
    display_width: Optional[float],
    display_height: Optional[float],
    page_size: PageSize,
    config: SigningConfig = _DEFAULTS,
) -> DocumentPoint:
    width, height, degraded = resolve_display_box(display_width, display_height, config)
    if degraded:
        logger.warning(
            "No display box stored for placement (%s, %s); using default %.1fx%.1f, "
            "position may be inaccurate",
            x, y, width, height,
        )

    scale_x = page_size.width / width
    scale_y = page_size.height / height

    return DocumentPoint(
        x=x * scale_x,
        y=page_size.height - y * scale_y,
        degraded=degraded,
    )


def map_to_ui_space(
    doc_x: float,
    doc_y: float,
    display_width: Optional[float],
    display_height: Optional[float],
    page_size: PageSize,
    config: SigningConfig = _DEFAULTS,
) -> Tuple[float, float]:
    """Inverse of map_to_document_space."""
    width, height, _ = resolve_display_box(display_width, display_height, config)
    scale_x = page_size.width / width
    scale_y = page_size.height / height
    return doc_x / scale_x, (page_size.height - doc_y) / scale_y


# =========================================================
# Centering on the click point
# =========================================================
# The client centers the drag handle on the click point. Text sits half a
# line above it, rasters are centered on both axes.
def text_origin(point: DocumentPoint, width: float, height: float) -> Tuple[float, float]:
    return point.x - width / 2, point.y + height / 2


def raster_origin(point: DocumentPoint, width: float, height: float) -> Tuple[float, float]:
    return point.x - width / 2, point.y - height / 2
