from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator

from sitecms.schemas.common import Pagination


def _trimmed(max_length: int):
    return Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=max_length)]


class GuestBookCreate(BaseModel):
    name: _trimmed(100)
    origin: _trimmed(150)
    purpose: _trimmed(200)
    selfie_image: str = Field(..., min_length=1)
    signature_image: str = Field(..., min_length=1)


class GuestBookUpdate(BaseModel):
    name: Optional[_trimmed(100)] = None
    origin: Optional[_trimmed(150)] = None
    purpose: Optional[_trimmed(200)] = None
    selfie_image: Optional[str] = Field(None, min_length=1)
    signature_image: Optional[str] = Field(None, min_length=1)

    @model_validator(mode="after")
    def require_one_field(self):
        if not any(getattr(self, name) is not None for name in type(self).model_fields):
            raise ValueError("At least one field must be provided for update")
        return self


class GuestBookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    origin: str
    purpose: str
    selfie_image: str
    signature_image: str
    created_at: datetime
    updated_at: datetime


class GuestBookListResponse(BaseModel):
    items: list[GuestBookResponse]
    pagination: Pagination
