"""
Slug Service

Allocates URL slugs for publication translations. Slugs are unique
inside one language partition; the same slug may exist once per language.

The existence check is advisory only. Two writers can both see a slug as
free, so the ``(language_code, slug)`` unique constraint stays the final
authority and ``is_slug_conflict`` lets callers recognise its violation
and allocate again.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sitecms.models.publication import PublicationTranslation
from sitecms.utils.slugify import FALLBACK_SLUG, slugify

logger = logging.getLogger(__name__)

SLUG_CONSTRAINT_NAME = "uq_publication_translation_slug"


async def is_slug_taken(
    db: AsyncSession,
    slug: str,
    language_code: str,
    current_slug: str | None = None,
) -> bool:
    """Return True when ``slug`` is already used by another row of the language."""
    if current_slug and slug == current_slug:
        return False

    result = await db.execute(
        select(PublicationTranslation.id).where(
            PublicationTranslation.language_code == language_code,
            PublicationTranslation.slug == slug,
        )
    )
    return result.first() is not None


async def generate_unique_slug(
    db: AsyncSession,
    title: str,
    language_code: str,
    current_slug: str | None = None,
    fallback_title: str | None = None,
) -> str:
    """Derive a slug from ``title`` that is free within ``language_code``.

    If ``title`` has no usable characters (e.g. a Chinese title) and a
    ``fallback_title`` is given, the slug is derived from that instead.
    Keeps ``current_slug`` when the derived candidate equals it, otherwise
    appends ``-1``, ``-2``, ... until a free slug is found.
    """
    base_slug = slugify(title)
    if base_slug == FALLBACK_SLUG and fallback_title:
        base_slug = slugify(fallback_title)

    slug = base_slug
    counter = 1
    while await is_slug_taken(db, slug, language_code, current_slug):
        slug = f"{base_slug}-{counter}"
        counter += 1

    if slug != base_slug:
        logger.debug("Slug '%s' taken in '%s', using '%s'", base_slug, language_code, slug)
    return slug


def is_slug_conflict(exc: IntegrityError) -> bool:
    """Return True when an IntegrityError comes from the per-language slug constraint."""
    message = str(exc.orig).lower()
    if SLUG_CONSTRAINT_NAME in message:
        return True
    # SQLite reports the columns instead of the constraint name
    return "publication_translations.language_code, publication_translations.slug" in message
