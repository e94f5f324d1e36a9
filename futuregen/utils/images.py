"""Image processing utilities."""

import base64
import binascii
from io import BytesIO
from typing import Tuple
from PIL import Image, ImageOps, UnidentifiedImageError

from .logger import get_logger
from .errors import ImageDecodeError
from ..models.schemas import CompressedImage, ImageAsset

logger = get_logger(__name__)

MAX_DIMENSION = 1024
JPEG_QUALITY = 95


def base64_to_bytes(base64_string: str) -> bytes:
    """
    Convert base64 string to bytes.

    Args:
        base64_string: Base64 encoded image

    Returns:
        Image bytes

    Raises:
        ImageDecodeError: If the string is not valid base64
    """
    # Remove data URL prefix if present
    if "," in base64_string:
        base64_string = base64_string.split(",")[1]

    try:
        return base64.b64decode(base64_string, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Image data is not valid base64: {e}")


def bytes_to_base64(image_bytes: bytes) -> str:
    """
    Convert image bytes to base64 string.

    Args:
        image_bytes: Raw image bytes

    Returns:
        Base64 encoded string
    """
    return base64.b64encode(image_bytes).decode('utf-8')


def _open_image(image_bytes: bytes) -> Image.Image:
    """Decode and apply EXIF orientation so sizes match what a viewer shows."""
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
        return ImageOps.exif_transpose(image)
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as e:
        raise ImageDecodeError(f"Failed to process image: {e}")


def get_image_dimensions(image_bytes: bytes) -> Tuple[int, int]:
    """
    Get width and height of an image.

    Args:
        image_bytes: Raw image bytes

    Returns:
        Tuple of (width, height)

    Raises:
        ImageDecodeError: If image cannot be read
    """
    return _open_image(image_bytes).size


def scaled_dimensions(width: int, height: int, max_dimension: int = MAX_DIMENSION) -> Tuple[int, int]:
    """
    Fit (width, height) inside a max_dimension square, keeping aspect ratio.

    The longer side becomes max_dimension; the shorter side is rounded half up.
    Images already inside the bound are returned unchanged.
    """
    if width <= max_dimension and height <= max_dimension:
        return width, height

    if width > height:
        new_height = max(1, int(height * max_dimension / width + 0.5))
        return max_dimension, new_height

    new_width = max(1, int(width * max_dimension / height + 0.5))
    return new_width, max_dimension


def compress_image(
    image: ImageAsset,
    max_dimension: int = MAX_DIMENSION,
    quality: int = JPEG_QUALITY,
) -> CompressedImage:
    """
    Downscale and re-encode an image as JPEG for transmission.

    Recomputed on every call; nothing is cached.

    Args:
        image: Image to compress (any format Pillow can decode)
        max_dimension: Ceiling for the longer side in pixels
        quality: JPEG quality 1-100

    Returns:
        CompressedImage, always image/jpeg

    Raises:
        ImageDecodeError: If the payload cannot be decoded or re-encoded
    """
    decoded = _open_image(base64_to_bytes(image.data))
    width, height = decoded.size
    new_width, new_height = scaled_dimensions(width, height, max_dimension)

    # JPEG has no alpha or palette
    if decoded.mode != 'RGB':
        decoded = decoded.convert('RGB')

    if (new_width, new_height) != (width, height):
        decoded = decoded.resize((new_width, new_height), Image.LANCZOS)

    buffer = BytesIO()
    try:
        decoded.save(buffer, format='JPEG', quality=quality)
    except (OSError, ValueError) as e:
        raise ImageDecodeError(f"Failed to encode image: {e}")

    logger.debug(
        f"Compressed image {width}x{height} -> {new_width}x{new_height}",
        extra={
            "source_mime_type": image.mime_type,
            "original_width": width,
            "original_height": height,
            "new_width": new_width,
            "new_height": new_height,
            "compressed_kb": len(buffer.getvalue()) / 1024,
        }
    )

    return CompressedImage(
        data=bytes_to_base64(buffer.getvalue()),
        mime_type="image/jpeg",
        width=new_width,
        height=new_height,
    )
