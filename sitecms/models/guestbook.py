import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from sitecms.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GuestBook(Base):
    __tablename__ = "guestbooks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    origin = Column(String(150), nullable=False)
    purpose = Column(String(200), nullable=False)
    selfie_image = Column(String, nullable=False)
    signature_image = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
