"""
Category models

Categories are themselves multilingual: the display name lives in one
CategoryTranslation row per language.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from sitecms.database import Base
from sitecms.models.publication import publication_categories


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    translations = relationship(
        "CategoryTranslation",
        back_populates="category",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    publications = relationship(
        "Publication",
        secondary=publication_categories,
        back_populates="categories",
        passive_deletes=True,
    )


class CategoryTranslation(Base):
    __tablename__ = "category_translations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(
        String(36),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    language_code = Column(String(10), nullable=False)
    name = Column(String(100), nullable=False)

    category = relationship("Category", back_populates="translations")

    __table_args__ = (
        UniqueConstraint("category_id", "language_code", name="uq_category_translation_language"),
    )
