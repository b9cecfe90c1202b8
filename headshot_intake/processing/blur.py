import logging
import math
from io import BytesIO

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

BORDER = 2
REFERENCE_SIDE = 500
MIN_NORMALIZATION = 0.5


def laplacian_response(gray: np.ndarray) -> np.ndarray:
    """``|4*center - top - bottom - left - right|`` for every interior pixel.

    A 2 pixel border is skipped. Returns an empty array for images too small to
    have an interior.
    """
    g = gray.astype(np.int64)
    h, w = g.shape
    if h <= 2 * BORDER or w <= 2 * BORDER:
        return np.empty((0, 0), dtype=np.int64)
    rows = slice(BORDER, h - BORDER)
    cols = slice(BORDER, w - BORDER)
    center = g[rows, cols]
    top = g[BORDER - 1:h - BORDER - 1, cols]
    bottom = g[BORDER + 1:h - BORDER + 1, cols]
    left = g[rows, BORDER - 1:w - BORDER - 1]
    right = g[rows, BORDER + 1:w - BORDER + 1]
    return np.abs(4 * center - top - bottom - left - right)


def normalization_factor(width: int, height: int) -> float:
    return max(MIN_NORMALIZATION, math.sqrt(width * height) / REFERENCE_SIDE)


def sharpness_score(gray: np.ndarray) -> float:
    response = laplacian_response(gray)
    mean = float(response.mean()) if response.size else 0.0
    h, w = gray.shape
    return mean * normalization_factor(w, h)


def detect_blurriness(data: bytes, failure_score: float = 100.0) -> float:
    """Resolution-normalized sharpness score, higher is sharper.

    Returns ``failure_score`` when the image cannot be read so that a broken
    estimator never rejects an image.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            gray = np.asarray(img.convert("L"))
        score = sharpness_score(gray)
    except Exception:
        logger.exception("Error detecting blurriness, using fallback score %s", failure_score)
        return failure_score

    logger.info("Blur detection: score=%.2f, dimensions=%dx%d", score, gray.shape[1], gray.shape[0])
    return score
