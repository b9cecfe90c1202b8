from datetime import timedelta
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from headshot_intake.ML.face_detection import FaceDetector, HaarCascadeFaceDetector
from headshot_intake.core.config import ImageValidationRules, settings
from headshot_intake.core.database import get_db
from headshot_intake.core.storage import MinioObjectStore, ObjectStore
from headshot_intake.services.gallery import GalleryService
from headshot_intake.services.ingestion import IngestionService
from headshot_intake.services.records import RecordStore, SqlAlchemyRecordStore


@lru_cache
def get_object_store() -> ObjectStore:
    return MinioObjectStore.from_settings()


@lru_cache
def get_face_detector() -> FaceDetector:
    return HaarCascadeFaceDetector()


def get_rules() -> ImageValidationRules:
    return settings.image_validation


def get_url_ttl() -> timedelta:
    return timedelta(hours=settings.SIGNED_URL_TTL_HOURS)


def get_record_store(db: AsyncSession = Depends(get_db)) -> RecordStore:
    return SqlAlchemyRecordStore(db)


def get_ingestion_service(
    records: RecordStore = Depends(get_record_store),
    objects: ObjectStore = Depends(get_object_store),
    face_detector: FaceDetector = Depends(get_face_detector),
    rules: ImageValidationRules = Depends(get_rules),
    url_ttl: timedelta = Depends(get_url_ttl),
) -> IngestionService:
    return IngestionService(records, objects, face_detector, rules, url_ttl)


def get_gallery_service(
    records: RecordStore = Depends(get_record_store),
    objects: ObjectStore = Depends(get_object_store),
    url_ttl: timedelta = Depends(get_url_ttl),
) -> GalleryService:
    return GalleryService(records, objects, url_ttl)
