"""In-memory collaborators and image factories shared by the test suite."""
import threading
from datetime import timedelta
from io import BytesIO
from typing import Callable, Dict, List, Optional, Union

import numpy as np
import pytest
from PIL import Image

from headshot_intake.ML.face_detection import BoundingBox, DetectedFace, FaceDetector
from headshot_intake.core.config import ImageValidationRules
from headshot_intake.core.storage import ObjectStore
from headshot_intake.core.utils import generate_uuid
from headshot_intake.models.imageRecord import ImageRecord, ImageStatus, utcnow
from headshot_intake.services.records import RecordStore


class InMemoryRecordStore(RecordStore):
    def __init__(self):
        self.rows: Dict[str, ImageRecord] = {}
        self.hash_reads = 0

    async def create(self, **fields) -> ImageRecord:
        fields.setdefault("id", generate_uuid())
        fields.setdefault("status", ImageStatus.PROCESSING.value)
        fields.setdefault("created_at", utcnow())
        fields.setdefault("updated_at", fields["created_at"])
        record = ImageRecord(**fields)
        self.rows[record.id] = record
        return record

    async def update(self, image_id: str, **fields) -> ImageRecord:
        record = self.rows[image_id]
        for name, value in fields.items():
            setattr(record, name, value)
        record.updated_at = utcnow()
        return record

    async def get(self, image_id: str) -> Optional[ImageRecord]:
        return self.rows.get(image_id)

    def _matching(self, user_id, status):
        rows = [r for r in self.rows.values() if r.user_id == user_id]
        if status:
            rows = [r for r in rows if r.status == ImageStatus(status).value]
        return rows

    async def list_for_user(self, user_id, status, skip, limit) -> List[ImageRecord]:
        rows = sorted(self._matching(user_id, status), key=lambda r: r.created_at, reverse=True)
        return rows[skip:skip + limit]

    async def count_for_user(self, user_id, status) -> int:
        return len(self._matching(user_id, status))

    async def accepted_hashes(self, user_id):
        self.hash_reads += 1
        return [(r.id, r.similarity_hash) for r in self._matching(user_id, ImageStatus.ACCEPTED)]

    async def delete(self, image_id: str) -> None:
        self.rows.pop(image_id, None)


class FakeObjectStore(ObjectStore):
    def __init__(self):
        self.objects: Dict[str, tuple] = {}
        self.signed = 0
        # ids of the threads each call ran on
        self.threads = set()

    def put(self, key: str, data: bytes, content_type: str) -> None:
        self.threads.add(threading.get_ident())
        self.objects[key] = (data, content_type)

    def signed_url(self, key: str, expires: timedelta) -> str:
        self.threads.add(threading.get_ident())
        self.signed += 1
        return f"https://storage.test/{key}?expires={int(expires.total_seconds())}&sig={self.signed}"

    def delete(self, key: str) -> None:
        self.threads.add(threading.get_ident())
        self.objects.pop(key, None)


def face(width: float = 0.4, height: float = 0.5, confidence: float = 99.0) -> DetectedFace:
    return DetectedFace(confidence=confidence, bounding_box=BoundingBox(0.3, 0.2, width, height))


class FakeFaceDetector(FaceDetector):
    def __init__(self, faces: Union[List[DetectedFace], Callable[[bytes], List[DetectedFace]], None] = None):
        self.faces = [face()] if faces is None else faces
        self.calls = 0

    def detect(self, image_bytes: bytes) -> List[DetectedFace]:
        self.calls += 1
        if callable(self.faces):
            return self.faces(image_bytes)
        return list(self.faces)


def make_image_bytes(width: int = 400, height: int = 400, seed: int = 0, fmt: str = "PNG", flat: bool = False) -> bytes:
    """Random noise is about as sharp as an image gets; ``flat`` gives a blur score of 0."""
    if flat:
        pixels = np.full((height, width, 3), 128, dtype=np.uint8)
    else:
        rng = np.random.default_rng(seed)
        pixels = rng.integers(0, 256, (height, width, 3), dtype=np.uint8)
    buf = BytesIO()
    Image.fromarray(pixels).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def rules():
    return ImageValidationRules()


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def face_detector():
    return FakeFaceDetector()
