import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sitecms.models.publication import PublicationType
from sitecms.schemas.common import Pagination


def _parse_publication_type(value):
    if isinstance(value, PublicationType):
        return value
    if isinstance(value, str):
        normalized = value.strip().upper()
        if normalized in PublicationType.__members__:
            return PublicationType[normalized]
    raise ValueError("Publication type must be either 'news' or 'article'")


def _reject_duplicate_ids(ids):
    if ids is not None and len(set(ids)) != len(ids):
        raise ValueError("Category ids must not contain duplicates")
    return ids


class PublicationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, title="Title", description="Title in the primary language.")
    content: str = Field(..., min_length=1, title="Content", description="HTML content in the primary language.")
    type: PublicationType = Field(..., title="Publication Type", description="Either 'news' or 'article'.")
    date: dt.date = Field(..., title="Publication Date")
    category_ids: list[str] = Field(..., min_length=1, title="Category IDs")
    image: str = Field(..., min_length=1, title="Banner Image", description="Stored path of the banner image.")
    image_og: str = Field(..., min_length=1, title="OpenGraph Image", description="Stored path of the social preview image.")

    @field_validator("type", mode="before")
    @classmethod
    def parse_type(cls, value):
        return _parse_publication_type(value)

    @field_validator("category_ids")
    @classmethod
    def unique_categories(cls, value):
        return _reject_duplicate_ids(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Peresmian Gedung Baru",
                "content": "<p>Gedung baru resmi digunakan.</p>",
                "type": "article",
                "date": "2024-01-10",
                "category_ids": ["0b8f9c1e-6c1a-4f7e-9d43-3f1f4c3e2a10"],
                "image": "uploads/publications/banner.webp",
                "image_og": "uploads/publications/og.webp",
            }
        }
    )


class PublicationUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255, title="Updated Title")
    content: Optional[str] = Field(None, min_length=1, title="Updated Content")
    type: Optional[PublicationType] = Field(None, title="Publication Type")
    date: Optional[dt.date] = Field(None, title="Publication Date")
    category_ids: Optional[list[str]] = Field(None, min_length=1, title="Category IDs")
    image: Optional[str] = Field(None, min_length=1, title="Banner Image")
    image_og: Optional[str] = Field(None, min_length=1, title="OpenGraph Image")

    @field_validator("type", mode="before")
    @classmethod
    def parse_type(cls, value):
        return None if value is None else _parse_publication_type(value)

    @field_validator("category_ids")
    @classmethod
    def unique_categories(cls, value):
        return _reject_duplicate_ids(value)

    @model_validator(mode="after")
    def require_one_field(self):
        if not any(getattr(self, name) is not None for name in type(self).model_fields):
            raise ValueError("At least one field must be provided for update")
        return self


class PublicationCategoryResponse(BaseModel):
    id: str
    name: str


class PublicationResponse(BaseModel):
    id: str
    slug: str
    title: str
    content: str
    type: str = Field(..., description="'news' or 'article'.")
    date: dt.date
    image: Optional[str] = None
    image_og: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime
    language: str
    categories: list[PublicationCategoryResponse]
    slug_map: dict[str, Optional[str]] = Field(
        ..., description="Sibling slug for every supported language, null where no translation exists."
    )


class PublicationListResponse(BaseModel):
    items: list[PublicationResponse]
    pagination: Pagination
