import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Sequence

from headshot_intake.ML.face_detection import DetectedFace, FaceDetector
from headshot_intake.core.config import ImageValidationRules
from headshot_intake.core.errors import FaceDetectionError, ImageProcessingError, StorageError
from headshot_intake.core.storage import ObjectStore, build_object_key
from headshot_intake.core.utils import generate_uuid
from headshot_intake.models.imageRecord import ImageRecord, ImageStatus
from headshot_intake.processing.blur import detect_blurriness
from headshot_intake.processing.hashing import similarity_hash
from headshot_intake.processing.normalizer import NormalizedImage, normalize_image, resolve_content_type
from headshot_intake.services import validators
from headshot_intake.services.records import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class UploadedImage:
    data: bytes
    file_name: str
    content_type: Optional[str] = None


class IngestionService:
    """Moves each upload from PROCESSING to ACCEPTED or REJECTED."""

    def __init__(
        self,
        records: RecordStore,
        objects: ObjectStore,
        face_detector: FaceDetector,
        rules: ImageValidationRules,
        url_ttl: timedelta = timedelta(hours=24),
    ):
        self.records = records
        self.objects = objects
        self.face_detector = face_detector
        self.rules = rules
        self.url_ttl = url_ttl

    async def ingest(self, upload: UploadedImage, user_id: str) -> ImageRecord:
        loop = asyncio.get_running_loop()
        rules = self.rules
        content_type = resolve_content_type(upload.content_type, upload.file_name, rules.allowed_types)
        file_name = os.path.basename(upload.file_name)

        # storage fields are unique, so the placeholder has to be too
        placeholder = f"temp-{generate_uuid()}"
        record = await self.records.create(
            user_id=user_id,
            original_name=upload.file_name,
            file_name=file_name,
            file_size=len(upload.data),
            file_type=content_type,
            storage_key=placeholder,
            access_url=placeholder,
            status=ImageStatus.PROCESSING.value,
        )
        logger.info("Processing %s for user %s as image %s", upload.file_name, user_id, record.id)

        try:
            image = await loop.run_in_executor(
                None, normalize_image, upload.data, upload.file_name, content_type, rules.heic_jpeg_quality
            )
        except ImageProcessingError:
            logger.exception("Image %s could not be decoded, leaving it PROCESSING", record.id)
            raise

        faces = await loop.run_in_executor(None, self._detect_faces, image.data)
        face_check = validators.validate_faces(faces, rules)
        key = build_object_key(file_name)

        if not face_check.valid:
            # kept for auditing even though nothing else is checked
            await loop.run_in_executor(None, self._store, key, image)
            return await self._finalize(record, key, image, face_check, similarity=None)

        await loop.run_in_executor(None, self._store, key, image)
        image_hash = await loop.run_in_executor(
            None, similarity_hash, image.data, rules.hash_size, rules.random_hash_on_failure
        )
        blur_score = await loop.run_in_executor(None, detect_blurriness, image.data, rules.blur_failure_score)

        results = [
            validators.validate_format(content_type, upload.file_name, rules),
            validators.validate_dimensions(image.width, image.height, rules),
            await validators.validate_similarity(image_hash, user_id, self.records, rules),
            validators.validate_sharpness(blur_score, rules),
        ]
        outcome = validators.first_failure(results) or validators.PASSED
        return await self._finalize(record, key, image, outcome, similarity=image_hash)

    async def ingest_many(self, uploads: Sequence[UploadedImage], user_id: str) -> List[ImageRecord]:
        """One upload at a time, in order."""
        results = []
        for upload in uploads:
            results.append(await self.ingest(upload, user_id))
        return results

    def _detect_faces(self, data: bytes) -> List[DetectedFace]:
        try:
            return self.face_detector.detect(data)
        except FaceDetectionError:
            raise
        except Exception as e:
            raise FaceDetectionError(f"Face detection failed: {e}") from e

    def _store(self, key: str, image: NormalizedImage) -> None:
        try:
            self.objects.put(key, image.data, image.content_type)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Could not store {key}: {e}") from e

    async def _finalize(
        self,
        record: ImageRecord,
        key: str,
        image: NormalizedImage,
        outcome: validators.ValidationResult,
        similarity: Optional[str],
    ) -> ImageRecord:
        status = ImageStatus.ACCEPTED if outcome.valid else ImageStatus.REJECTED
        url = await asyncio.get_running_loop().run_in_executor(None, self.objects.signed_url, key, self.url_ttl)
        finalized = await self.records.update(
            record.id,
            storage_key=key,
            access_url=url,
            width=image.width,
            height=image.height,
            status=status.value,
            rejection_reason=outcome.reason,
            similarity_hash=similarity,
        )
        if outcome.valid:
            logger.info("Image %s accepted", record.id)
        else:
            logger.info("Image %s rejected: %s", record.id, outcome.reason)
        return finalized
