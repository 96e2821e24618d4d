"""
Signature artifact encoding: text stamps, PNG/JPEG rasters, fallbacks.
"""
import base64
from io import BytesIO

import pytest
from PIL import Image

from docsign.config.signing import SigningConfig
from docsign.errors import DecodeError, ValidationError
from docsign.services.artifacts import (
    ArtifactEncoder,
    RasterArtifact,
    RasterFormat,
    TextArtifact,
    split_raster_payload,
)

from conftest import data_url, image_bytes


@pytest.fixture
def encoder():
    return ArtifactEncoder(SigningConfig())


def test_text_width_is_estimated_per_character(encoder):
    artifact = encoder.encode("text", "Jane Doe")
    assert isinstance(artifact, TextArtifact)
    assert artifact.width == pytest.approx(8 * 7.0)
    assert artifact.font_size == 12


def test_empty_text_uses_fallback(encoder):
    assert encoder.text("").text == "SIGNED"


def test_png_data_url(encoder):
    artifact = encoder.encode("image", data_url("PNG", (80, 40)))
    assert isinstance(artifact, RasterArtifact)
    assert artifact.format is RasterFormat.PNG
    assert artifact.format_assumed is False
    assert (artifact.width, artifact.height) == (40.0, 20.0)


def test_jpeg_data_url(encoder):
    artifact = encoder.encode("draw", data_url("JPEG", (100, 50)))
    assert artifact.format is RasterFormat.JPEG
    assert (artifact.width, artifact.height) == (50.0, 25.0)


def test_bare_base64_is_explicitly_assumed_png(encoder):
    raw = base64.b64encode(image_bytes("PNG")).decode()
    artifact = encoder.encode("draw", raw)
    assert artifact.format is RasterFormat.PNG
    assert artifact.format_assumed is True


def test_split_rejects_unsupported_media_type():
    with pytest.raises(DecodeError):
        split_raster_payload("data:image/gif;base64,R0lGODlh")


def test_media_type_must_match_content(encoder):
    # JPEG bytes labelled as PNG
    mislabeled = "data:image/png;base64," + base64.b64encode(image_bytes("JPEG")).decode()
    with pytest.raises(DecodeError):
        encoder.raster(mislabeled)


@pytest.mark.parametrize("value", ["", "data:image/png;base64,!!!not-base64!!!", "data:image/png;base64,aGVsbG8="])
def test_undecodable_raster_raises(encoder, value):
    with pytest.raises(DecodeError):
        encoder.raster(value)


def test_encode_or_fallback_degrades_to_text(encoder):
    artifact = encoder.encode_or_fallback("image", "data:image/png;base64,aGVsbG8=")
    assert isinstance(artifact, TextArtifact)
    assert artifact.text == "SIGNED"


def test_unknown_type_is_a_validation_error(encoder):
    with pytest.raises(ValidationError):
        encoder.encode("stamp", "x")


def test_camera_jpeg_opened_as_mpo_is_accepted(encoder):
    # Multi-picture JPEG (primary image + preview), as phone cameras write them
    primary = Image.new("RGB", (60, 30), (10, 10, 10))
    preview = Image.new("RGB", (30, 15), (10, 10, 10))
    buf = BytesIO()
    primary.save(buf, format="MPO", save_all=True, append_images=[preview])
    value = "data:image/jpeg;base64," + base64.b64encode(buf.getvalue()).decode()

    artifact = encoder.encode_or_fallback("image", value)

    assert isinstance(artifact, RasterArtifact)
    assert artifact.format is RasterFormat.JPEG
    assert artifact.image.format in {"JPEG", "MPO"}
    assert (artifact.width, artifact.height) == (30.0, 15.0)


def test_line_wrapped_base64_is_decoded(encoder):
    wrapped = base64.encodebytes(image_bytes("PNG", (80, 40))).decode()
    assert "\n" in wrapped

    artifact = encoder.encode_or_fallback("draw", "data:image/png;base64," + wrapped)

    assert isinstance(artifact, RasterArtifact)
    assert artifact.format is RasterFormat.PNG
    assert (artifact.width, artifact.height) == (40.0, 20.0)
