import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from io import BytesIO

from minio import Minio
from minio.error import S3Error

from headshot_intake.core.config import settings
from headshot_intake.core.errors import StorageError
from headshot_intake.core.utils import generate_uuid

logger = logging.getLogger(__name__)


def build_object_key(file_name: str) -> str:
    return f"uploads/{generate_uuid()}-{file_name}"


class ObjectStore(ABC):
    """Durable byte storage handing out time-limited read URLs."""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> None:
        ...

    @abstractmethod
    def signed_url(self, key: str, expires: timedelta) -> str:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class MinioObjectStore(ObjectStore):
    def __init__(self, client: Minio, bucket: str):
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls) -> "MinioObjectStore":
        client = Minio(
            settings.MINIO_ENDPOINT,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_SECURE,
        )
        return cls(client, settings.MINIO_BUCKET)

    def ensure_bucket(self) -> None:
        if not self.client.bucket_exists(self.bucket):
            self.client.make_bucket(self.bucket)
            logger.info("Created bucket %s", self.bucket)

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self.client.put_object(
                self.bucket,
                key,
                data=BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except S3Error as e:
            raise StorageError(f"Could not store {key}: {e}") from e

    def signed_url(self, key: str, expires: timedelta) -> str:
        try:
            return self.client.presigned_get_object(self.bucket, key, expires=expires)
        except S3Error as e:
            raise StorageError(f"Could not generate signed URL for {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.remove_object(self.bucket, key)
        except S3Error as e:
            raise StorageError(f"Could not delete {key}: {e}") from e
