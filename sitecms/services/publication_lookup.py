"""
Publication Lookup: cross-language reads

Functions:
    load_publication: publication with translations and categories
    build_slug_map: sibling slug per supported language
    to_publication_response: render one language of a publication
    get_publication_by_id: admin detail lookup
    get_publication_by_slug: landing-page lookup with slug fallback
    list_publications: paginated list for one language

Reads degrade gracefully on incomplete publications: a missing language
is reported as ``TranslationNotAvailableError`` (distinct from a missing
publication) and a missing slug becomes ``None`` in the slug map.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sitecms.config import settings
from sitecms.exceptions import PublicationNotFoundError, TranslationNotAvailableError
from sitecms.models.category import Category
from sitecms.models.publication import (
    Publication,
    PublicationTranslation,
    PublicationType,
    publication_categories,
)
from sitecms.schemas.publication import (
    PublicationCategoryResponse,
    PublicationListResponse,
    PublicationResponse,
)
from sitecms.services.category_service import resolve_category_name
from sitecms.utils.pagination import build_pagination, page_offset

logger = logging.getLogger(__name__)

# Where a missing language borrows its slug from, in order
SLUG_MAP_FALLBACKS: dict[str, tuple[str, ...]] = {
    "zh": ("en", "id"),
}


def _publication_options():
    return (
        selectinload(Publication.translations),
        selectinload(Publication.categories).selectinload(Category.translations),
    )


async def load_publication(db: AsyncSession, publication_id: str) -> Publication | None:
    """Fetch a publication with all of its translations and categories, fresh from storage."""
    result = await db.execute(
        select(Publication)
        .where(Publication.id == publication_id)
        .options(*_publication_options())
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


def build_slug_map(
    translations: Iterable[PublicationTranslation],
    languages: list[str] | None = None,
) -> dict[str, str | None]:
    """Map every supported language to the publication's slug in that language.

    A language without a translation borrows the slug of its first
    available fallback language (``zh`` -> ``en`` -> ``id``), else ``None``.
    """
    languages = languages or settings.supported_languages
    found = {t.language_code: t.slug for t in translations}
    slug_map: dict[str, str | None] = {code: found.get(code) for code in languages}

    for code in languages:
        if slug_map[code]:
            continue
        for fallback in SLUG_MAP_FALLBACKS.get(code, ()):
            if found.get(fallback):
                slug_map[code] = found[fallback]
                break
    return slug_map


def to_publication_response(
    publication: Publication,
    translation: PublicationTranslation,
    languages: list[str] | None = None,
) -> PublicationResponse:
    language = translation.language_code
    return PublicationResponse(
        id=publication.id,
        slug=translation.slug,
        title=translation.title,
        content=translation.content,
        type=PublicationType(publication.type).value.lower(),
        date=publication.date,
        image=publication.banner_image,
        image_og=publication.og_image,
        created_at=publication.created_at,
        updated_at=publication.updated_at,
        language=language,
        categories=[
            PublicationCategoryResponse(
                id=category.id,
                name=resolve_category_name(category.translations, language),
            )
            for category in publication.categories
        ],
        slug_map=build_slug_map(publication.translations, languages),
    )


def to_response_bundle(publication: Publication, languages: list[str] | None = None) -> dict[str, PublicationResponse]:
    """One response per language the publication currently has, in configured order."""
    languages = languages or settings.supported_languages
    bundle = {}
    for code in languages:
        translation = publication.translation_for(code)
        if translation is not None:
            bundle[code] = to_publication_response(publication, translation, languages)
    return bundle


async def get_publication_by_id(db: AsyncSession, publication_id: str, language: str) -> PublicationResponse:
    """
    Return one language of a publication.

    Raises:
        PublicationNotFoundError: no publication with this id
        TranslationNotAvailableError: the publication has no row for ``language``
    """
    publication = await load_publication(db, publication_id)
    if publication is None:
        raise PublicationNotFoundError(publication_id)

    translation = publication.translation_for(language)
    if translation is None:
        raise TranslationNotAvailableError(language, publication_id)

    return to_publication_response(publication, translation)


async def get_publication_by_slug(db: AsyncSession, slug: str, language: str) -> PublicationResponse:
    """
    Resolve a landing-page slug in the requested language.

    Tries in order:
    1. Exact (slug, language) match
    2. The slug in any language, to locate the parent publication, then that
       publication's translation for ``language``

    Raises:
        PublicationNotFoundError: the slug is unknown in every language
        TranslationNotAvailableError: the publication exists but not in ``language``
    """
    result = await db.execute(
        select(PublicationTranslation.publication_id).where(
            PublicationTranslation.slug == slug,
            PublicationTranslation.language_code == language,
        )
    )
    publication_id = result.scalars().first()

    if publication_id is None:
        result = await db.execute(
            select(PublicationTranslation.publication_id)
            .where(PublicationTranslation.slug == slug)
            .order_by(PublicationTranslation.id)
        )
        publication_id = result.scalars().first()
        if publication_id is None:
            raise PublicationNotFoundError(slug)
        logger.debug("Slug '%s' resolved through another language for '%s'", slug, language)

    publication = await load_publication(db, publication_id)
    if publication is None:
        raise PublicationNotFoundError(slug)

    translation = publication.translation_for(language)
    if translation is None:
        raise TranslationNotAvailableError(language, publication_id)

    return to_publication_response(publication, translation)


async def list_publications(
    db: AsyncSession,
    page: int,
    limit: int,
    search: str = "",
    language: str | None = None,
    category_id: str | None = None,
    publication_type: PublicationType | None = None,
) -> PublicationListResponse:
    """Paginated publications that exist in ``language``, newest date first."""
    language = language or settings.default_language

    where = [PublicationTranslation.language_code == language]
    if search:
        where.append(PublicationTranslation.title.icontains(search, autoescape=True))
    if publication_type is not None:
        where.append(Publication.type == publication_type)
    if category_id:
        where.append(
            Publication.id.in_(
                select(publication_categories.c.publication_id).where(
                    publication_categories.c.category_id == category_id
                )
            )
        )

    base = select(PublicationTranslation).join(
        Publication, Publication.id == PublicationTranslation.publication_id
    )
    total = (
        await db.execute(select(func.count()).select_from(base.where(*where).subquery()))
    ).scalar_one()

    result = await db.execute(
        base.where(*where)
        .options(
            selectinload(PublicationTranslation.publication).selectinload(Publication.translations),
            selectinload(PublicationTranslation.publication)
            .selectinload(Publication.categories)
            .selectinload(Category.translations),
        )
        .order_by(Publication.date.desc(), Publication.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    translations = result.scalars().all()

    return PublicationListResponse(
        items=[to_publication_response(t.publication, t) for t in translations],
        pagination=build_pagination(total, page, limit),
    )
