from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from headshot_intake.models.imageRecord import ImageStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class ImageOut(CamelModel):
    id: str
    user_id: str
    original_name: str
    file_name: str
    file_size: int
    file_type: str
    storage_key: str
    access_url: str
    width: Optional[int] = None
    height: Optional[int] = None
    status: ImageStatus
    rejection_reason: Optional[str] = None
    similarity_hash: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int


class ImagePage(CamelModel):
    images: List[ImageOut]
    pagination: Pagination


class UploadSummary(CamelModel):
    total: int
    accepted: int
    rejected: int


class SignedUrl(CamelModel):
    url: str
    expires_in: str


class DeleteImageRequest(CamelModel):
    user_id: Optional[str] = None
