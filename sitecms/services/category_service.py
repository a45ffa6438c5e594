"""
Category Service

Category catalog operations and the category resolver used by the
publication pipeline. Names are stored per language; the primary-language
name is the one searched, ordered and kept unique.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sitecms.config import settings
from sitecms.exceptions import (
    CategoryNotFoundError,
    ConflictError,
    ErrorCode,
    StorageError,
    ValidationError,
)
from sitecms.models.category import Category, CategoryTranslation
from sitecms.models.publication import publication_categories
from sitecms.schemas.category import CategoryListResponse, CategoryResponse
from sitecms.utils.pagination import build_pagination, page_offset

logger = logging.getLogger(__name__)


def resolve_category_name(translations: Iterable[CategoryTranslation], language: str | None = None) -> str:
    """Pick a category name: requested language, then primary language, then any."""
    by_language = {t.language_code: t.name for t in translations}
    if language and language in by_language:
        return by_language[language]
    if settings.default_language in by_language:
        return by_language[settings.default_language]
    return next(iter(by_language.values()), "")


def to_category_response(category: Category, language: str | None = None) -> CategoryResponse:
    return CategoryResponse(id=category.id, name=resolve_category_name(category.translations, language))


# ── Resolver ───────────────────────────────────────────────────────────────────


async def ensure_categories_exist(db: AsyncSession, category_ids: Iterable[str]) -> list[str]:
    """Deduplicate category ids and check that each one exists.

    Raises:
        ValidationError: when no id is given or when any id is unknown.
    """
    unique_ids = list(dict.fromkeys(category_ids))
    if not unique_ids:
        raise ValidationError(
            "At least one category must be selected",
            field="category_ids",
            error_code=ErrorCode.CATEGORY_REQUIRED,
        )

    result = await db.execute(select(func.count(Category.id)).where(Category.id.in_(unique_ids)))
    found = result.scalar_one()
    if found != len(unique_ids):
        raise ValidationError(
            "Some categories are invalid or not registered",
            field="category_ids",
            error_code=ErrorCode.CATEGORY_INVALID,
            details={"requested": len(unique_ids), "found": found},
        )
    return unique_ids


async def load_categories(db: AsyncSession, category_ids: list[str]) -> list[Category]:
    result = await db.execute(select(Category).where(Category.id.in_(category_ids)))
    return list(result.scalars().all())


# ── Catalog ────────────────────────────────────────────────────────────────────


async def _commit(db: AsyncSession, operation: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error during {operation}: {e}")
        raise StorageError(f"Failed to {operation.replace('_', ' ')}: {e}", operation=operation) from e


async def _assert_name_unique(db: AsyncSession, name: str, exclude_category_id: str | None = None) -> None:
    query = select(CategoryTranslation.id).where(
        CategoryTranslation.language_code == settings.default_language,
        CategoryTranslation.name == name,
    )
    if exclude_category_id:
        query = query.where(CategoryTranslation.category_id != exclude_category_id)
    result = await db.execute(query)
    if result.first() is not None:
        raise ConflictError("Category name is already in use", details={"name": name})


async def _get_category(db: AsyncSession, category_id: str) -> Category:
    result = await db.execute(
        select(Category).where(Category.id == category_id).execution_options(populate_existing=True)
    )
    category = result.scalars().first()
    if category is None:
        raise CategoryNotFoundError(category_id)
    return category


async def create_category(db: AsyncSession, name: str) -> CategoryResponse:
    """Create a category with the same name in every supported language."""
    name = name.strip()
    await _assert_name_unique(db, name)

    category = Category(
        translations=[
            CategoryTranslation(language_code=code, name=name) for code in settings.supported_languages
        ]
    )
    db.add(category)
    await _commit(db, "create_category")
    logger.info("Category created: %s (%s)", category.id, name)
    return to_category_response(await _get_category(db, category.id))


async def list_categories(db: AsyncSession, page: int, limit: int, search: str = "") -> CategoryListResponse:
    """Paginated categories ordered by primary-language name."""
    where = [CategoryTranslation.language_code == settings.default_language]
    if search:
        where.append(CategoryTranslation.name.icontains(search, autoescape=True))

    total = (await db.execute(select(func.count(CategoryTranslation.id)).where(*where))).scalar_one()
    result = await db.execute(
        select(Category)
        .join(CategoryTranslation, CategoryTranslation.category_id == Category.id)
        .where(*where)
        .order_by(CategoryTranslation.name.asc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    categories = result.scalars().all()
    return CategoryListResponse(
        items=[to_category_response(category) for category in categories],
        pagination=build_pagination(total, page, limit),
    )


async def get_all_categories(db: AsyncSession, language: str | None = None) -> list[CategoryResponse]:
    result = await db.execute(
        select(Category)
        .join(CategoryTranslation, CategoryTranslation.category_id == Category.id)
        .where(CategoryTranslation.language_code == settings.default_language)
        .order_by(CategoryTranslation.name.asc())
    )
    return [to_category_response(category, language) for category in result.scalars().all()]


async def get_category(db: AsyncSession, category_id: str, language: str | None = None) -> CategoryResponse:
    return to_category_response(await _get_category(db, category_id), language)


async def update_category(db: AsyncSession, category_id: str, name: str | None) -> CategoryResponse:
    """Rename a category in every supported language, creating missing rows."""
    category = await _get_category(db, category_id)

    if name:
        name = name.strip()
        await _assert_name_unique(db, name, exclude_category_id=category_id)

        existing = {t.language_code: t for t in category.translations}
        for code in settings.supported_languages:
            if code in existing:
                existing[code].name = name
            else:
                category.translations.append(CategoryTranslation(language_code=code, name=name))
        await _commit(db, "update_category")
        logger.info("Category updated: %s (%s)", category_id, name)

    return to_category_response(await _get_category(db, category_id))


async def delete_category(db: AsyncSession, category_id: str) -> dict[str, str]:
    """Delete a category that no publication references.

    Raises:
        CategoryNotFoundError: unknown id
        ConflictError: at least one publication still links the category
    """
    category = await _get_category(db, category_id)

    usage = (
        await db.execute(
            select(func.count())
            .select_from(publication_categories)
            .where(publication_categories.c.category_id == category_id)
        )
    ).scalar_one()
    if usage > 0:
        raise ConflictError(
            "Category cannot be deleted because it is still linked to publications",
            error_code=ErrorCode.CATEGORY_IN_USE,
            details={"category_id": category_id, "publications": usage},
        )

    await db.delete(category)
    await _commit(db, "delete_category")

    logger.info("Category deleted: %s", category_id)
    return {"message": "Category deleted"}
