"""
Publication Service

Keeps one logical publication consistent across every supported language.

Create and update run as a staged pipeline with a single commit at the end:

1. validate category references (cheap, before any external call)
2. translate into the secondary languages (external, may fail)
3. allocate per-language slugs
4. stage publication, translation and category-link rows and commit once

A failure in stages 1-3 leaves storage untouched. The slug pre-check in
stage 3 is advisory; a unique-constraint violation at commit rolls the
whole unit back and stages 3-4 run again with fresh slugs.

Image files are only removed after the commit that stopped referencing
them has succeeded.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sitecms.config import settings
from sitecms.exceptions import (
    ConflictError,
    ErrorCode,
    PublicationNotFoundError,
    StorageError,
    TranslationNotAvailableError,
)
from sitecms.models.publication import Publication, PublicationTranslation
from sitecms.schemas.publication import PublicationCreate, PublicationResponse, PublicationUpdate
from sitecms.services import slug_service
from sitecms.services.category_service import ensure_categories_exist, load_categories
from sitecms.services.publication_lookup import load_publication, to_response_bundle
from sitecms.services.translation_gateway import TranslatedText, TranslationGateway
from sitecms.utils.file_store import LocalFileStore, delete_files_quietly

logger = logging.getLogger(__name__)

# Commit attempts before a slug collision is reported as a conflict
MAX_SLUG_ATTEMPTS = 3


@dataclass
class TranslationPlan:
    """What one language row should look like after the write."""

    language_code: str
    title: str
    content: str
    current_slug: str | None = None
    fallback_title: str | None = None
    keep_slug: bool = False
    slug: str | None = None


class PublicationService:
    """Create, update and delete publications in all languages as one unit."""

    def __init__(
        self,
        db: AsyncSession,
        translator: TranslationGateway,
        file_store: LocalFileStore | None = None,
        languages: list[str] | None = None,
        primary_language: str | None = None,
    ):
        self.db = db
        self.translator = translator
        self.file_store = file_store or LocalFileStore()
        self.languages = list(languages or settings.supported_languages)
        self.primary_language = primary_language or settings.default_language
        if self.primary_language not in self.languages:
            raise ValueError(f"Primary language '{self.primary_language}' is not in {self.languages}")

    @property
    def secondary_languages(self) -> list[str]:
        return [code for code in self.languages if code != self.primary_language]

    # ── Create ─────────────────────────────────────────────────────────────────

    async def create_publication(self, data: PublicationCreate) -> dict[str, PublicationResponse]:
        """
        Create a publication with a translation row for every supported language.

        Args:
            data: Validated create request in the primary language

        Returns:
            Response per language code

        Raises:
            ValidationError: missing or unknown categories (before any translation call)
            TranslationError: any secondary language could not be translated (nothing stored)
            ConflictError: slugs kept colliding with concurrent writers
            StorageError: unexpected persistence failure
        """
        category_ids = await ensure_categories_exist(self.db, data.category_ids)

        translated = await self._translate(data.title, data.content, self.secondary_languages)
        plans = [TranslationPlan(self.primary_language, data.title, data.content)]
        plans += [
            TranslationPlan(code, text.title, text.content, fallback_title=data.title)
            for code, text in translated.items()
        ]

        publication_id = str(uuid.uuid4())

        async def stage() -> None:
            await self._allocate_slugs(plans)
            publication = Publication(
                id=publication_id,
                type=data.type,
                date=data.date,
                banner_image=data.image,
                og_image=data.image_og,
                translations=[
                    PublicationTranslation(
                        language_code=plan.language_code,
                        title=plan.title,
                        content=plan.content,
                        slug=plan.slug,
                    )
                    for plan in plans
                ],
                categories=await load_categories(self.db, category_ids),
            )
            self.db.add(publication)

        await self._commit_with_slug_retry("create_publication", stage)
        logger.info(
            "Publication created: %s (%s)",
            publication_id,
            ", ".join(f"{plan.language_code}={plan.slug}" for plan in plans),
        )
        return await self._response_bundle(publication_id)

    # ── Update ─────────────────────────────────────────────────────────────────

    async def update_publication(self, publication_id: str, data: PublicationUpdate) -> dict[str, PublicationResponse]:
        """
        Apply a partial update to a publication and keep its languages in sync.

        Omitted fields keep their values. A changed title or content is
        translated again for every secondary language; otherwise existing
        translations are reused and only missing languages are filled in.
        Existing slugs are kept whenever the title still produces them.

        Raises:
            PublicationNotFoundError: unknown id
            TranslationNotAvailableError: the primary language row is missing and
                the request does not supply both title and content
            ValidationError: invalid categories
            TranslationError: a required translation failed (nothing stored)
            ConflictError: slugs kept colliding with concurrent writers
            StorageError: unexpected persistence failure
        """
        existing = await load_publication(self.db, publication_id)
        if existing is None:
            raise PublicationNotFoundError(publication_id)

        category_ids = None
        if data.category_ids is not None:
            category_ids = await ensure_categories_exist(self.db, data.category_ids)

        before = {
            t.language_code: TranslationPlan(t.language_code, t.title, t.content, current_slug=t.slug)
            for t in existing.translations
        }
        old_images = (existing.banner_image, existing.og_image)

        primary = before.get(self.primary_language)
        if primary is None and (data.title is None or data.content is None):
            raise TranslationNotAvailableError(self.primary_language, publication_id)

        title = data.title if data.title is not None else primary.title
        content = data.content if data.content is not None else primary.content
        text_changed = primary is None or title != primary.title or content != primary.content

        plans = [
            TranslationPlan(
                self.primary_language,
                title,
                content,
                current_slug=primary.current_slug if primary else None,
                keep_slug=primary is not None and title == primary.title,
            )
        ]

        if text_changed:
            to_translate = self.secondary_languages
        else:
            to_translate = [code for code in self.secondary_languages if code not in before]
            for code in self.secondary_languages:
                if code in before:
                    kept = before[code]
                    plans.append(TranslationPlan(code, kept.title, kept.content, current_slug=kept.current_slug, keep_slug=True))
            if to_translate:
                logger.info("Backfilling missing translations for %s: %s", publication_id, to_translate)

        translated = await self._translate(title, content, to_translate)
        for code, text in translated.items():
            previous = before.get(code)
            plans.append(
                TranslationPlan(
                    code,
                    text.title,
                    text.content,
                    current_slug=previous.current_slug if previous else None,
                    fallback_title=title,
                )
            )

        async def stage() -> None:
            publication = await load_publication(self.db, publication_id)
            if publication is None:
                raise PublicationNotFoundError(publication_id)

            await self._allocate_slugs(plans)

            if data.type is not None:
                publication.type = data.type
            if data.date is not None:
                publication.date = data.date
            if data.image is not None:
                publication.banner_image = data.image
            if data.image_og is not None:
                publication.og_image = data.image_og

            for plan in plans:
                translation = publication.translation_for(plan.language_code)
                if translation is None:
                    publication.translations.append(
                        PublicationTranslation(
                            language_code=plan.language_code,
                            title=plan.title,
                            content=plan.content,
                            slug=plan.slug,
                        )
                    )
                else:
                    translation.title = plan.title
                    translation.content = plan.content
                    translation.slug = plan.slug

            if category_ids is not None:
                # Full replacement of the link set
                publication.categories = await load_categories(self.db, category_ids)

            publication.updated_at = datetime.now(timezone.utc)

        await self._commit_with_slug_retry("update_publication", stage)
        logger.info("Publication updated: %s", publication_id)

        if data.image and data.image_og:
            new_images = {data.image, data.image_og}
            delete_files_quietly(
                self.file_store,
                [path for path in old_images if path not in new_images],
                label="publication image",
            )

        return await self._response_bundle(publication_id)

    # ── Delete ─────────────────────────────────────────────────────────────────

    async def delete_publication(self, publication_id: str) -> dict[str, str]:
        """Delete a publication with its translations and links, then its images."""
        publication = await load_publication(self.db, publication_id)
        if publication is None:
            raise PublicationNotFoundError(publication_id)

        images = [publication.banner_image, publication.og_image]

        await self.db.delete(publication)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error deleting publication {publication_id}: {e}")
            raise StorageError(f"Failed to delete publication: {e}", operation="delete_publication") from e

        logger.info("Publication deleted: %s", publication_id)
        delete_files_quietly(self.file_store, images, label="publication image")
        return {"message": "Publication deleted"}

    # ── Helpers ────────────────────────────────────────────────────────────────

    async def _translate(self, title: str, content: str, languages: list[str]) -> dict[str, TranslatedText]:
        """Translate into several languages concurrently.

        The first failure aborts the batch: calls still in flight are cancelled
        and awaited before the error propagates.
        """
        if not languages:
            return {}
        tasks = [asyncio.create_task(self.translator.translate(title, content, code)) for code in languages]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                logger.info("Cancelled %d pending translation call(s)", len(pending))
                await asyncio.gather(*pending, return_exceptions=True)
            raise
        return dict(zip(languages, results))

    async def _allocate_slugs(self, plans: list[TranslationPlan]) -> None:
        for plan in plans:
            if plan.keep_slug:
                plan.slug = plan.current_slug
                continue
            plan.slug = await slug_service.generate_unique_slug(
                self.db,
                plan.title,
                plan.language_code,
                current_slug=plan.current_slug,
                fallback_title=plan.fallback_title,
            )

    async def _commit_with_slug_retry(self, operation: str, stage: Callable[[], Awaitable[None]]) -> None:
        """Stage rows and commit them as one transaction, retrying on slug collisions."""
        for attempt in range(1, MAX_SLUG_ATTEMPTS + 1):
            try:
                await stage()
                await self.db.commit()
                return
            except IntegrityError as e:
                await self.db.rollback()
                if not slug_service.is_slug_conflict(e):
                    logger.error(f"Integrity error during {operation}: {e.orig}")
                    raise ConflictError(
                        "The change conflicts with existing data",
                        details={"operation": operation},
                    ) from e
                logger.warning(
                    "Slug collision during %s (attempt %d/%d), allocating again",
                    operation,
                    attempt,
                    MAX_SLUG_ATTEMPTS,
                )
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Database error during {operation}: {e}")
                raise StorageError(f"Failed to {operation.replace('_', ' ')}: {e}", operation=operation) from e

        raise ConflictError(
            "Could not allocate a unique slug, please retry",
            error_code=ErrorCode.SLUG_CONFLICT,
            details={"operation": operation, "attempts": MAX_SLUG_ATTEMPTS},
        )

    async def _response_bundle(self, publication_id: str) -> dict[str, PublicationResponse]:
        publication = await load_publication(self.db, publication_id)
        if publication is None:
            raise PublicationNotFoundError(publication_id)
        return to_response_bundle(publication, self.languages)
