# docsign/services/artifacts.py
from __future__ import annotations

import base64
import binascii
import enum
import logging
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Union

from PIL import Image, UnidentifiedImageError

from docsign.config.signing import SigningConfig
from docsign.errors import DecodeError, ValidationError

logger = logging.getLogger(__name__)

_DATA_URL = re.compile(r"^data:(?P<media>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.*)$", re.DOTALL)


class RasterFormat(enum.Enum):
    PNG = "PNG"
    JPEG = "JPEG"


_MEDIA_TYPES = {
    "image/png": RasterFormat.PNG,
    "image/jpeg": RasterFormat.JPEG,
    "image/jpg": RasterFormat.JPEG,
}

# Pillow names for each format; camera JPEGs with an embedded preview open as MPO
_PIL_FORMATS = {
    RasterFormat.PNG: {"PNG"},
    RasterFormat.JPEG: {"JPEG", "MPO"},
}


@dataclass(frozen=True)
class TextArtifact:
    text: str
    font_size: int
    width: float
    height: float


@dataclass(frozen=True)
class RasterArtifact:
    format: RasterFormat
    image: Image.Image
    width: float
    height: float
    # No media type was given; PNG was assumed (drawing surfaces emit PNG)
    format_assumed: bool = False


Artifact = Union[TextArtifact, RasterArtifact]


def split_raster_payload(value: str) -> tuple[RasterFormat, str, bool]:
    """
    Returns (format, base64 payload, format_assumed).
    Raises DecodeError for data URLs of an unsupported media type.
    """
    value = (value or "").strip()
    match = _DATA_URL.match(value)
    if not match:
        return RasterFormat.PNG, value, True

    media = match.group("media").lower()
    fmt = _MEDIA_TYPES.get(media)
    if fmt is None:
        raise DecodeError(f"Unsupported signature media type: {media}")
    return fmt, match.group("payload"), False


class ArtifactEncoder:
    def __init__(self, config: SigningConfig):
        self.config = config

    # -----------------------------
    # Text
    # -----------------------------
    def text(self, value: str | None) -> TextArtifact:
        text = value or self.config.fallback_text
        return TextArtifact(
            text=text,
            font_size=self.config.font_size,
            width=len(text) * self.config.char_width,
            height=float(self.config.font_size),
        )

    def fallback(self) -> TextArtifact:
        return self.text(self.config.fallback_text)

    # -----------------------------
    # Raster
    # -----------------------------
    def raster(self, value: str) -> RasterArtifact:
        if not value:
            raise DecodeError("Empty signature image")

        fmt, payload, assumed = split_raster_payload(value)

        try:
            # MIME-wrapped payloads carry line breaks
            raw = base64.b64decode("".join(payload.split()), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(f"Invalid base64 signature payload: {exc}") from exc

        try:
            image = Image.open(BytesIO(raw))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise DecodeError(f"Unreadable signature image: {exc}") from exc

        if image.format not in _PIL_FORMATS[fmt]:
            raise DecodeError(f"Signature image is {image.format}, expected {fmt.value}")

        return RasterArtifact(
            format=fmt,
            image=image,
            width=image.width * self.config.raster_scale,
            height=image.height * self.config.raster_scale,
            format_assumed=assumed,
        )

    # -----------------------------
    # Dispatch
    # -----------------------------
    def encode(self, signature_type: str, signature_value: str | None) -> Artifact:
        if signature_type == "text":
            return self.text(signature_value)
        if signature_type in ("image", "draw"):
            return self.raster(signature_value or "")
        raise ValidationError(f"Unknown signature type: {signature_type}")

    def encode_or_fallback(self, signature_type: str, signature_value: str | None) -> Artifact:
        """encode(), degrading to the fallback text stamp on a bad raster."""
        try:
            return self.encode(signature_type, signature_value)
        except (DecodeError, ValidationError) as exc:
            logger.warning("Signature artifact unusable, stamping fallback text: %s", exc)
            return self.fallback()
