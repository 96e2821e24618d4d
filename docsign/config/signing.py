# docsign/config/signing.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

# A4 height/width
A4_RATIO = 1.41421356


@dataclass(frozen=True)
class SigningConfig:
    """
    Constants used by the signing core.

    Built once by the app factory from app.config and handed to each
    component at construction; nothing in docsign.services reads the
    environment directly.
    """
    default_display_width: float = 600.0
    default_page_ratio: float = A4_RATIO

    # Text stamps: width estimate is len(text) * char_width, used for centering only
    font_name: str = "Helvetica"
    font_size: int = 12
    char_width: float = 7.0

    # Rasters are drawn at this fraction of their native pixel size
    raster_scale: float = 0.5

    fallback_text: str = "SIGNED"
    rejected_prefix: str = "rejected_"

    # Best-effort event handlers (audit, archive)
    handler_attempts: int = 1

    @property
    def default_display_height(self) -> float:
        return self.default_display_width * self.default_page_ratio

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> "SigningConfig":
        return cls(
            default_display_width=float(cfg.get("DEFAULT_DISPLAY_WIDTH", 600.0)),
            default_page_ratio=float(cfg.get("DEFAULT_PAGE_RATIO", A4_RATIO)),
            font_size=int(cfg.get("SIGNATURE_FONT_SIZE", 12)),
            char_width=float(cfg.get("SIGNATURE_CHAR_WIDTH", 7.0)),
            raster_scale=float(cfg.get("SIGNATURE_RASTER_SCALE", 0.5)),
            fallback_text=str(cfg.get("SIGNATURE_FALLBACK_TEXT", "SIGNED")),
            handler_attempts=max(1, int(cfg.get("EVENT_HANDLER_ATTEMPTS", 1))),
        )
