import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

import cv2
import numpy as np

from headshot_intake.core.errors import FaceDetectionError

logger = logging.getLogger(__name__)


@dataclass
class BoundingBox:
    """Face extent as fractions of the image size, all in [0, 1]."""
    left: float
    top: float
    width: float
    height: float


@dataclass
class DetectedFace:
    confidence: float
    bounding_box: BoundingBox

    @property
    def size_percentage(self) -> float:
        return self.bounding_box.width * self.bounding_box.height * 100


class FaceDetector(ABC):
    @abstractmethod
    def detect(self, image_bytes: bytes) -> List[DetectedFace]:
        ...


class HaarCascadeFaceDetector(FaceDetector):
    """Frontal face detector bundled with OpenCV."""

    def __init__(
        self,
        cascade_file: str = "haarcascade_frontalface_default.xml",
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
        min_size: int = 30,
    ):
        cascade_path = os.path.join(cv2.data.haarcascades, cascade_file)
        self.cascade = cv2.CascadeClassifier(cascade_path)
        if self.cascade.empty():
            raise FaceDetectionError(f"Could not load face cascade from {cascade_path}")
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = min_size

    def detect(self, image_bytes: bytes) -> List[DetectedFace]:
        np_arr = np.frombuffer(image_bytes, np.uint8)
        img = cv2.imdecode(np_arr, cv2.IMREAD_GRAYSCALE)
        if img is None:
            raise FaceDetectionError("Face detection failed: could not decode image bytes")

        h, w = img.shape
        try:
            rects, _, weights = self.cascade.detectMultiScale3(
                img,
                scaleFactor=self.scale_factor,
                minNeighbors=self.min_neighbors,
                minSize=(self.min_size, self.min_size),
                outputRejectLevels=True,
            )
        except cv2.error as e:
            raise FaceDetectionError(f"Face detection failed: {e}") from e

        faces = []
        for (x, y, fw, fh), weight in zip(rects, np.ravel(weights)):
            faces.append(DetectedFace(
                confidence=float(weight),
                bounding_box=BoundingBox(
                    left=x / w,
                    top=y / h,
                    width=fw / w,
                    height=fh / h,
                ),
            ))

        logger.info("Face detection: found %d faces", len(faces))
        return faces
