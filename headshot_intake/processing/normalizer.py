import logging
import os
from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Sequence

import pillow_heif
from PIL import Image, UnidentifiedImageError

from headshot_intake.core.errors import ImageProcessingError

pillow_heif.register_heif_opener()

logger = logging.getLogger(__name__)

HEIF_EXTENSIONS = (".heic", ".heif")
HEIF_TYPES = ("image/heic", "image/heif")

EXTENSION_TYPES = {
    ".heic": "image/heic",
    ".heif": "image/heic",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}


@dataclass
class NormalizedImage:
    data: bytes
    width: int
    height: int
    format: str
    content_type: str
    transcoded: bool = False


def file_extension(file_name: str) -> str:
    return os.path.splitext(file_name or "")[1].lower()


def resolve_content_type(content_type: Optional[str], file_name: str, allowed_types: Sequence[str]) -> str:
    """Return the declared type if we accept it, otherwise guess from the extension.

    Unknown extensions keep the declared type so the format check can reject it.
    """
    content_type = (content_type or "").lower()
    if content_type in allowed_types:
        return content_type
    guessed = EXTENSION_TYPES.get(file_extension(file_name))
    if guessed:
        logger.debug("Correcting content type %r to %s for %s", content_type, guessed, file_name)
        return guessed
    return content_type or "application/octet-stream"


def is_image_upload(content_type: Optional[str], file_name: str, allowed_types: Sequence[str]) -> bool:
    """False when neither the declared type nor the extension names an image we take."""
    resolved = resolve_content_type(content_type, file_name, allowed_types)
    return resolved in allowed_types or file_extension(file_name) in EXTENSION_TYPES


def is_heif(content_type: Optional[str], file_name: str) -> bool:
    return file_extension(file_name) in HEIF_EXTENSIONS or (content_type or "").lower() in HEIF_TYPES


def normalize_image(data: bytes, file_name: str, content_type: Optional[str] = None, quality: int = 90) -> NormalizedImage:
    """Decode the upload, transcoding HEIC/HEIF to baseline JPEG.

    Every later step works on ``NormalizedImage.data``. Decode errors are fatal
    and raised as ``ImageProcessingError``.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            # open() only parses the header; truncated pixel data fails here
            img.load()
            if is_heif(content_type, file_name):
                rgb = img.convert("RGB")
                out = BytesIO()
                rgb.save(out, format="JPEG", quality=quality)
                logger.info("Transcoded %s to JPEG (%dx%d)", file_name, rgb.width, rgb.height)
                return NormalizedImage(
                    data=out.getvalue(),
                    width=rgb.width,
                    height=rgb.height,
                    format="jpeg",
                    content_type="image/jpeg",
                    transcoded=True,
                )

            width, height = img.size
            fmt = (img.format or "").lower()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageProcessingError(f"Failed to process image: {e}") from e

    return NormalizedImage(
        data=data,
        width=width,
        height=height,
        format=fmt,
        content_type=content_type or Image.MIME.get(fmt.upper(), "application/octet-stream"),
    )
