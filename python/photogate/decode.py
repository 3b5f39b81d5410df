"""Image container decoding and inline payload encoding."""
import base64
import binascii
import io
import logging
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .config import MAX_UPLOAD_BYTES
from .errors import InvalidImageBuffer, InvalidUpload
from .types import RawImageSample, data_url_format

logger = logging.getLogger(__name__)


def detect_format(data: bytes) -> Optional[str]:
    """Detect an image format from magic numbers."""
    if len(data) < 4:
        return None

    if data[0:2] == b'\xff\xd8':
        return "jpeg"
    if data[0:4] == b'\x89PNG':
        return "png"
    if data[0:4] == b'GIF8':
        return "gif"
    if data[0:4] == b'RIFF' and len(data) > 11 and data[8:12] == b'WEBP':
        return "webp"
    if data[0:2] == b'BM':
        return "bmp"
    if data[0:4] in (b'II*\x00', b'MM\x00*'):
        return "tiff"

    return None


def validate_upload(data: bytes, max_bytes: int = MAX_UPLOAD_BYTES) -> str:
    """Check a submitted payload before it is stored.

    Args:
        data: Uploaded file bytes
        max_bytes: Size ceiling

    Returns:
        Detected format name

    Raises:
        InvalidUpload: empty, too large, or not a recognised image
    """
    if not data:
        raise InvalidUpload("No image was uploaded")
    if len(data) > max_bytes:
        raise InvalidUpload(
            f"Image is {len(data)} bytes, limit is {max_bytes} bytes"
        )
    fmt = detect_format(data)
    if fmt is None:
        raise InvalidUpload("Only images are allowed")
    return fmt


def decode_image(data: bytes) -> Tuple[RawImageSample, str]:
    """Decode an image file into a raw RGB(A) sample buffer.

    Returns:
        Tuple of (RawImageSample, detected format name)

    Raises:
        InvalidImageBuffer: Pillow cannot decode the data, or the image is
            larger than Pillow's decompression-bomb limit
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = (detect_format(data) or img.format or "").lower()
            has_alpha = img.mode in ("RGBA", "LA", "PA") or (
                img.mode == "P" and "transparency" in img.info
            )
            converted = img.convert("RGBA" if has_alpha else "RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise InvalidImageBuffer(f"Failed to decode image data: {e}") from e

    channels = len(converted.getbands())
    sample = RawImageSample(
        width=converted.width,
        height=converted.height,
        channels=channels,
        samples=converted.tobytes(),
    )
    logger.debug(f"Decoded {fmt or 'unknown'} image {sample.width}x{sample.height}, {channels} channels")
    return sample, fmt


def to_data_url(data: bytes, fmt: str) -> str:
    """Encode image bytes as ``data:image/<fmt>;base64,<payload>``."""
    return f"data:image/{fmt};base64,{base64.b64encode(data).decode()}"


def parse_data_url(url: str) -> Tuple[bytes, str]:
    """Split an inline data URL back into bytes and format name.

    Raises:
        InvalidImageBuffer: the URL is not a base64 image data URL
    """
    if not url or "," not in url:
        raise InvalidImageBuffer("Image URL is not a data URL")

    header, payload = url.split(",", 1)
    if not header.startswith("data:") or ";base64" not in header:
        raise InvalidImageBuffer("Image URL is not base64 encoded")
    if not payload:
        raise InvalidImageBuffer("Image URL carries no data")

    fmt = data_url_format(header)

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageBuffer(f"Invalid base64 payload: {e}") from e
    return data, fmt
