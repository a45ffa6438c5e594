"""
Publication models

One language-independent Publication row owns one PublicationTranslation
row per language code (translation-table pattern) and a set of category
links. Slugs are unique per language, not globally.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from sitecms.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class PublicationType(str, enum.Enum):
    NEWS = "NEWS"
    ARTICLE = "ARTICLE"


publication_categories = Table(
    "publication_categories",
    Base.metadata,
    Column(
        "publication_id",
        String(36),
        ForeignKey("publications.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "category_id",
        String(36),
        ForeignKey("categories.id", ondelete="RESTRICT"),
        primary_key=True,
        index=True,
    ),
)


class Publication(Base):
    __tablename__ = "publications"

    id = Column(String(36), primary_key=True, default=_new_id)
    type = Column(Enum(PublicationType, name="publication_type"), nullable=False)
    date = Column(Date, nullable=False, index=True)
    banner_image = Column(String, nullable=True)
    og_image = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    translations = relationship(
        "PublicationTranslation",
        back_populates="publication",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PublicationTranslation.language_code",
    )
    categories = relationship("Category", secondary=publication_categories, back_populates="publications")

    def translation_for(self, language_code: str) -> PublicationTranslation | None:
        for translation in self.translations:
            if translation.language_code == language_code:
                return translation
        return None


class PublicationTranslation(Base):
    """Per-language rendering (title, content, slug) of a Publication."""

    __tablename__ = "publication_translations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    publication_id = Column(
        String(36),
        ForeignKey("publications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    language_code = Column(String(10), nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)  # HTML
    slug = Column(String(300), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    publication = relationship("Publication", back_populates="translations")

    __table_args__ = (
        # One translation per (publication, language) pair
        UniqueConstraint("publication_id", "language_code", name="uq_publication_translation_language"),
        # Slugs are unique inside a language partition only
        UniqueConstraint("language_code", "slug", name="uq_publication_translation_slug"),
        Index("idx_pt_language_title", "language_code", "title"),
    )
