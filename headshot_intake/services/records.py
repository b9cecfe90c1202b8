from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from headshot_intake.core.utils import generate_uuid
from headshot_intake.models.imageRecord import ImageRecord, ImageStatus, utcnow


class RecordStore(ABC):
    """Persistence for ``ImageRecord`` rows. The only writer of image records."""

    @abstractmethod
    async def create(self, **fields) -> ImageRecord:
        ...

    @abstractmethod
    async def update(self, image_id: str, **fields) -> ImageRecord:
        ...

    @abstractmethod
    async def get(self, image_id: str) -> Optional[ImageRecord]:
        ...

    @abstractmethod
    async def list_for_user(
        self, user_id: str, status: Optional[ImageStatus], skip: int, limit: int
    ) -> List[ImageRecord]:
        """Newest first."""

    @abstractmethod
    async def count_for_user(self, user_id: str, status: Optional[ImageStatus]) -> int:
        ...

    @abstractmethod
    async def accepted_hashes(self, user_id: str) -> List[Tuple[str, Optional[str]]]:
        """``(id, similarity_hash)`` of every ACCEPTED image of the user."""

    @abstractmethod
    async def delete(self, image_id: str) -> None:
        ...


class SqlAlchemyRecordStore(RecordStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, **fields) -> ImageRecord:
        fields.setdefault("id", generate_uuid())
        fields.setdefault("status", ImageStatus.PROCESSING.value)
        fields.setdefault("created_at", utcnow())
        record = ImageRecord(**fields)
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)
        return record

    async def update(self, image_id: str, **fields) -> ImageRecord:
        record = await self.db.get(ImageRecord, image_id)
        if record is None:
            raise LookupError(f"Image {image_id} does not exist")
        for name, value in fields.items():
            setattr(record, name, value)
        await self.db.commit()
        await self.db.refresh(record)
        return record

    async def get(self, image_id: str) -> Optional[ImageRecord]:
        return await self.db.get(ImageRecord, image_id)

    def _user_filter(self, query, user_id: str, status: Optional[ImageStatus]):
        query = query.where(ImageRecord.user_id == user_id)
        if status:
            query = query.where(ImageRecord.status == ImageStatus(status).value)
        return query

    async def list_for_user(
        self, user_id: str, status: Optional[ImageStatus], skip: int, limit: int
    ) -> List[ImageRecord]:
        query = self._user_filter(select(ImageRecord), user_id, status)
        query = query.order_by(ImageRecord.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_for_user(self, user_id: str, status: Optional[ImageStatus]) -> int:
        query = self._user_filter(select(func.count()).select_from(ImageRecord), user_id, status)
        result = await self.db.execute(query)
        return result.scalar_one()

    async def accepted_hashes(self, user_id: str) -> List[Tuple[str, Optional[str]]]:
        result = await self.db.execute(
            select(ImageRecord.id, ImageRecord.similarity_hash).where(
                ImageRecord.user_id == user_id,
                ImageRecord.status == ImageStatus.ACCEPTED.value,
            )
        )
        return [(row.id, row.similarity_hash) for row in result]

    async def delete(self, image_id: str) -> None:
        record = await self.db.get(ImageRecord, image_id)
        if record is not None:
            await self.db.delete(record)
            await self.db.commit()
