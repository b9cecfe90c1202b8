import asyncio
import logging
import math
from datetime import timedelta
from typing import Optional

from headshot_intake.core.storage import ObjectStore
from headshot_intake.models.imageRecord import TERMINAL_STATUSES, ImageRecord, ImageStatus
from headshot_intake.schemas.image import ImageOut, ImagePage, Pagination, SignedUrl
from headshot_intake.services.records import RecordStore

logger = logging.getLogger(__name__)


def describe_ttl(ttl: timedelta) -> str:
    hours = int(ttl.total_seconds() // 3600)
    if hours * 3600 == ttl.total_seconds():
        return f"{hours} hours" if hours != 1 else "1 hour"
    return f"{int(ttl.total_seconds())} seconds"


class GalleryService:
    """Read and delete access to ingested images.

    Stored access URLs expire, so every read hands out a freshly signed one.
    """

    def __init__(self, records: RecordStore, objects: ObjectStore, url_ttl: timedelta = timedelta(hours=24)):
        self.records = records
        self.objects = objects
        self.url_ttl = url_ttl

    async def _signed_url(self, key: str) -> str:
        return await asyncio.get_running_loop().run_in_executor(None, self.objects.signed_url, key, self.url_ttl)

    async def _present(self, record: ImageRecord) -> ImageOut:
        image = ImageOut.model_validate(record)
        if ImageStatus(record.status) in TERMINAL_STATUSES and record.storage_key:
            image = image.model_copy(update={"access_url": await self._signed_url(record.storage_key)})
        return image

    async def list_images(
        self,
        user_id: str,
        status: Optional[ImageStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> ImagePage:
        page = max(page, 1)
        limit = max(limit, 1)
        skip = (page - 1) * limit

        records = await self.records.list_for_user(user_id, status, skip, limit)
        total = await self.records.count_for_user(user_id, status)

        return ImagePage(
            images=[await self._present(r) for r in records],
            pagination=Pagination(
                total=total,
                page=page,
                limit=limit,
                total_pages=math.ceil(total / limit),
            ),
        )

    async def _owned(self, image_id: str, user_id: str) -> Optional[ImageRecord]:
        record = await self.records.get(image_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    async def get_url(self, image_id: str, user_id: str) -> Optional[SignedUrl]:
        """``None`` when the image is missing or owned by someone else."""
        record = await self._owned(image_id, user_id)
        if record is None:
            return None
        url = await self._signed_url(record.storage_key)
        return SignedUrl(url=url, expires_in=describe_ttl(self.url_ttl))

    async def delete_image(self, image_id: str, user_id: str) -> bool:
        record = await self._owned(image_id, user_id)
        if record is None:
            return False

        # object first, then the record
        await asyncio.get_running_loop().run_in_executor(None, self.objects.delete, record.storage_key)
        await self.records.delete(image_id)
        logger.info("Deleted image %s for user %s", image_id, user_id)
        return True
