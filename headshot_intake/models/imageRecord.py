import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text

from headshot_intake.core.database import Base
from headshot_intake.core.utils import generate_uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImageStatus(str, enum.Enum):
    PROCESSING = "PROCESSING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


TERMINAL_STATUSES = (ImageStatus.ACCEPTED, ImageStatus.REJECTED)


class ImageRecord(Base):
    __tablename__ = "images"
    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(128), index=True, nullable=False)
    original_name = Column(String(512), nullable=False)
    file_name = Column(String(512), nullable=False)
    file_size = Column(Integer, nullable=False)
    file_type = Column(String(128), nullable=False)
    storage_key = Column(String(1024), unique=True, nullable=False)
    # presigned, expires; regenerated on every read
    access_url = Column(Text, nullable=False)
    width = Column(Integer)
    height = Column(Integer)
    status = Column(String(16), index=True, nullable=False, default=ImageStatus.PROCESSING.value)
    rejection_reason = Column(Text)
    similarity_hash = Column(String(64))
    created_at = Column(DateTime(timezone=True), index=True, nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<ImageRecord id={self.id} user={self.user_id} status={self.status}>"
