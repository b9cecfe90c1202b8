import hashlib
import logging
import secrets
from io import BytesIO

import numpy as np
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

HASH_SIZE = 32


def brightness_bits(data: bytes, size: int = HASH_SIZE) -> str:
    """Threshold a ``size`` x ``size`` grayscale thumbnail at its mean brightness.

    Returns one character per pixel: ``"1"`` when the pixel is at least as bright
    as the mean, ``"0"`` otherwise.
    """
    with Image.open(BytesIO(data)) as img:
        thumb = ImageOps.fit(img.convert("RGB"), (size, size)).convert("L")
    pixels = np.asarray(thumb, dtype=np.float64).ravel()
    mean = pixels.mean()
    return "".join("1" if p >= mean else "0" for p in pixels)


def similarity_hash(data: bytes, size: int = HASH_SIZE, random_on_failure: bool = True) -> str:
    """Digest of the brightness bitmap, stored as ``similarityHash``.

    The md5 step means only identical bitmaps produce close hashes. When the
    image cannot be read a random hash is returned so the upload still
    completes; that hash will not match anything.
    """
    try:
        bits = brightness_bits(data, size)
    except Exception:
        if not random_on_failure:
            raise
        logger.exception("Error generating similarity hash, using a random one")
        return secrets.token_hex(16)
    return hashlib.md5(bits.encode("ascii")).hexdigest()


def hash_similarity(first: str, second: str) -> float:
    """Percentage of hex characters equal at the same position."""
    if not first or not second or len(first) != len(second):
        return 0.0
    matching = sum(1 for a, b in zip(first, second) if a == b)
    return matching / len(first) * 100
