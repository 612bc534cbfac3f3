"""Pillow-backed image codec, with libmagic for content sniffing."""
import io
import logging
from pathlib import Path

import magic
from PIL import Image as PILImage, ImageOps, UnidentifiedImageError

from errors import DecodeError, EncodeError

logger = logging.getLogger(__name__)

# MIME type -> Pillow decoders
DECODERS = {
    "image/gif": ["GIF"],
    "image/jpeg": ["JPEG"],
    "image/png": ["PNG"],
    "image/bmp": ["BMP"],
    "image/webp": ["WEBP"],
}
# older libmagic releases report non-canonical names for whitelisted types
MIME_ALIASES = {
    "image/x-ms-bmp": "image/bmp",
    "image/x-bmp": "image/bmp",
    "image/pjpeg": "image/jpeg",
}

ENCODER_OPTIONS = {
    "WEBP": {"quality": 88, "method": 4},
    "JPEG": {"quality": 88},
    "PNG": {"optimize": True},
}

OCTET_STREAM = "application/octet-stream"
_READ_ERRORS = (
    UnidentifiedImageError,
    OSError,
    SyntaxError,
    ValueError,
    PILImage.DecompressionBombError,
)


def detect_mime_type(path: Path) -> str:
    """Sniff the MIME type from the file's content, ignoring its name."""
    try:
        mime = magic.from_file(str(path), mime=True)
    except magic.MagicException as e:
        logger.warning("libmagic could not read %s: %s", path, e)
        return OCTET_STREAM
    return MIME_ALIASES.get(mime, mime)


def read_dimensions(data: bytes) -> tuple[int, int]:
    """Read image dimensions without decoding the pixels."""
    try:
        with PILImage.open(io.BytesIO(data)) as im:
            return im.width, im.height
    except _READ_ERRORS as e:
        raise DecodeError("Failure to read image dimensions.") from e


def decode(data: bytes, mime_type: str) -> PILImage.Image:
    """Decode bytes into an RGB or RGBA raster using the decoder for mime_type.

    EXIF orientation is applied, since re-encoding drops the EXIF block.
    Animated images yield their first frame.
    """
    formats = DECODERS.get(mime_type)
    if formats is None:
        raise DecodeError(f"No decoder for MIME type: {mime_type}")
    try:
        im = PILImage.open(io.BytesIO(data), formats=formats)
        im.load()
        im = ImageOps.exif_transpose(im)
    except _READ_ERRORS as e:
        raise DecodeError("Failure to read uploaded image file.") from e

    if im.mode not in ("RGB", "RGBA"):
        has_alpha = im.mode in ("LA", "PA", "RGBa") or "transparency" in im.info
        im = im.convert("RGBA" if has_alpha else "RGB")
    return im


def resize(raster: PILImage.Image, width: int, height: int) -> PILImage.Image:
    return raster.resize((width, height), resample=PILImage.Resampling.LANCZOS)


def encode(raster: PILImage.Image, output_format: str) -> bytes:
    """Encode a raster to the named Pillow format."""
    if output_format == "JPEG" and raster.mode != "RGB":
        raster = raster.convert("RGB")
    buf = io.BytesIO()
    try:
        raster.save(buf, format=output_format, **ENCODER_OPTIONS.get(output_format, {}))
    except (OSError, ValueError, KeyError) as e:
        raise EncodeError(f"Failed to encode image as {output_format}.") from e
    return buf.getvalue()
