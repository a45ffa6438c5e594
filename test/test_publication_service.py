"""
Tests for the publication service

Tests the create/update/delete pipeline: category checks, translation into
every secondary language, per-language slugs, the single commit with slug
conflict retries, and image cleanup after commit.
"""

import datetime as dt

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from sitecms.exceptions import (
    ConflictError,
    ErrorCode,
    PublicationNotFoundError,
    StorageError,
    TranslationError,
    TranslationNotAvailableError,
    ValidationError,
)
from sitecms.models.publication import Publication, PublicationTranslation, PublicationType, publication_categories
from sitecms.schemas.publication import PublicationCreate, PublicationUpdate
from sitecms.services import slug_service
from sitecms.services.publication_service import MAX_SLUG_ATTEMPTS, PublicationService
from utils.mock_utils import create_test_category, create_test_publication
from utils.mocks import StubTranslator


def _create_request(category_ids, title="Peresmian Gedung Baru", **overrides) -> PublicationCreate:
    values = {
        "title": title,
        "content": "<p>Gedung baru resmi digunakan.</p>",
        "type": "article",
        "date": dt.date(2024, 1, 10),
        "category_ids": category_ids,
        "image": "uploads/banner.webp",
        "image_og": "uploads/og.webp",
        **overrides,
    }
    return PublicationCreate(**values)


async def _translation_rows(db, publication_id=None) -> dict[str, PublicationTranslation]:
    query = select(PublicationTranslation).execution_options(populate_existing=True)
    if publication_id:
        query = query.where(PublicationTranslation.publication_id == publication_id)
    result = await db.execute(query)
    return {row.language_code: row for row in result.scalars().all()}


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.fixture
def service(test_db, translator, file_store) -> PublicationService:
    return PublicationService(test_db, translator, file_store=file_store)


class TestCreatePublication:
    """Test creating a publication in every language"""

    async def test_creates_one_row_per_language(self, service, test_db, test_category, translator):
        bundle = await service.create_publication(_create_request([test_category.id]))

        assert set(bundle) == {"id", "en", "zh"}
        publication_id = bundle["id"].id
        assert all(response.id == publication_id for response in bundle.values())

        rows = await _translation_rows(test_db, publication_id)
        assert rows["id"].slug == "peresmian-gedung-baru"
        assert rows["en"].slug == "inauguration-of-the-new-building"
        assert rows["en"].title == "Inauguration of the New Building"
        # Chinese titles fall back to the primary title for their slug
        assert rows["zh"].title == "新大楼落成典礼"
        assert rows["zh"].slug == "peresmian-gedung-baru"
        assert sorted(translator.languages) == ["en", "zh"]

    async def test_response_shape(self, service, test_category):
        bundle = await service.create_publication(_create_request([test_category.id]))

        en = bundle["en"]
        assert en.type == "article"
        assert en.language == "en"
        assert en.date == dt.date(2024, 1, 10)
        assert en.image == "uploads/banner.webp"
        assert en.image_og == "uploads/og.webp"
        assert [(c.id, c.name) for c in en.categories] == [(test_category.id, "News")]
        assert bundle["zh"].categories[0].name == "新闻"
        assert en.slug_map == {
            "id": "peresmian-gedung-baru",
            "en": "inauguration-of-the-new-building",
            "zh": "peresmian-gedung-baru",
        }

    async def test_links_categories(self, service, test_db, test_category):
        second = await create_test_category(test_db, "Kegiatan")

        bundle = await service.create_publication(_create_request([test_category.id, second.id]))

        links = await test_db.execute(
            select(publication_categories.c.category_id).where(
                publication_categories.c.publication_id == bundle["id"].id
            )
        )
        assert sorted(links.scalars().all()) == sorted([test_category.id, second.id])

    async def test_second_publication_with_same_title_gets_suffix(self, service, test_category):
        await service.create_publication(_create_request([test_category.id]))
        bundle = await service.create_publication(_create_request([test_category.id]))

        assert bundle["id"].slug == "peresmian-gedung-baru-1"
        assert bundle["en"].slug == "inauguration-of-the-new-building-1"
        assert bundle["zh"].slug == "peresmian-gedung-baru-1"

    async def test_translation_failure_stores_nothing(self, test_db, test_category, file_store):
        service = PublicationService(test_db, StubTranslator(fail_for={"zh"}), file_store=file_store)

        with pytest.raises(TranslationError) as exc_info:
            await service.create_publication(_create_request([test_category.id]))

        assert exc_info.value.target_language == "zh"
        assert await _count(test_db, Publication) == 0
        assert await _count(test_db, PublicationTranslation) == 0
        assert await _count(test_db, publication_categories) == 0

    async def test_translation_failure_cancels_pending_calls(self, test_db, test_category, file_store):
        """A failing language stops the sibling calls that are still in flight"""
        translator = StubTranslator(fail_for={"en"}, delays={"zh": 5})
        service = PublicationService(test_db, translator, file_store=file_store)

        with pytest.raises(TranslationError) as exc_info:
            await service.create_publication(_create_request([test_category.id]))

        assert exc_info.value.target_language == "en"
        assert translator.cancelled == ["zh"]
        assert translator.completed == []
        assert await _count(test_db, Publication) == 0

    async def test_unknown_category_fails_before_translation(self, service, test_db, test_category, translator):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_publication(_create_request([test_category.id, "missing"]))

        assert exc_info.value.error_code == ErrorCode.CATEGORY_INVALID
        assert translator.calls == []
        assert await _count(test_db, Publication) == 0

    async def test_primary_language_must_be_configured(self, test_db, translator):
        with pytest.raises(ValueError):
            PublicationService(test_db, translator, languages=["en", "zh"], primary_language="id")


class TestSlugConflictRetry:
    """Test recovery when another writer takes a slug between check and commit"""

    async def test_retries_with_fresh_slugs(self, service, test_db, test_category, monkeypatch):
        await create_test_publication(
            test_db,
            {"id": "peresmian-gedung-baru", "en": "inauguration-of-the-new-building", "zh": "peresmian-gedung-baru"},
        )

        real_is_slug_taken = slug_service.is_slug_taken
        lookups = {"count": 0}

        async def stale_is_slug_taken(db, slug, language_code, current_slug=None):
            # The first allocation round sees a stale view where everything is free
            lookups["count"] += 1
            if lookups["count"] <= 3:
                return False
            return await real_is_slug_taken(db, slug, language_code, current_slug)

        monkeypatch.setattr(slug_service, "is_slug_taken", stale_is_slug_taken)

        bundle = await service.create_publication(_create_request([test_category.id]))

        assert bundle["id"].slug == "peresmian-gedung-baru-1"
        assert bundle["en"].slug == "inauguration-of-the-new-building-1"
        assert await _count(test_db, Publication) == 2

    async def test_gives_up_after_max_attempts(self, service, test_db, test_category, monkeypatch):
        await create_test_publication(test_db, {"id": "peresmian-gedung-baru"})

        attempts = {"count": 0}

        async def always_free(db, slug, language_code, current_slug=None):
            attempts["count"] += 1
            return False

        monkeypatch.setattr(slug_service, "is_slug_taken", always_free)

        with pytest.raises(ConflictError) as exc_info:
            await service.create_publication(_create_request([test_category.id]))

        assert exc_info.value.error_code == ErrorCode.SLUG_CONFLICT
        assert attempts["count"] == 3 * MAX_SLUG_ATTEMPTS
        assert await _count(test_db, Publication) == 1

    async def test_update_retries_with_fresh_slugs(self, service, test_db, test_category, translator, monkeypatch):
        await service.create_publication(_create_request([test_category.id]))
        other = await service.create_publication(_create_request([test_category.id], title="Seminar Nasional"))
        translator.calls.clear()

        real_is_slug_taken = slug_service.is_slug_taken
        lookups = {"count": 0}

        async def stale_is_slug_taken(db, slug, language_code, current_slug=None):
            lookups["count"] += 1
            if lookups["count"] <= 3:
                return False
            return await real_is_slug_taken(db, slug, language_code, current_slug)

        monkeypatch.setattr(slug_service, "is_slug_taken", stale_is_slug_taken)

        bundle = await service.update_publication(
            other["id"].id, PublicationUpdate(title="Peresmian Gedung Baru")
        )

        assert bundle["id"].slug == "peresmian-gedung-baru-1"
        assert bundle["en"].slug == "inauguration-of-the-new-building-1"
        assert bundle["zh"].slug == "peresmian-gedung-baru-1"
        # Retrying reuses the translations from the first attempt
        assert sorted(translator.languages) == ["en", "zh"]
        rows = await _translation_rows(test_db, other["id"].id)
        assert rows["id"].title == "Peresmian Gedung Baru"


class TestCommitFailures:
    """Test how storage failures other than slug collisions surface"""

    def _fail_commit(self, monkeypatch, db, error):
        rollbacks = []
        real_rollback = db.rollback

        async def failing_commit():
            raise error

        async def tracking_rollback():
            rollbacks.append(True)
            await real_rollback()

        monkeypatch.setattr(db, "commit", failing_commit)
        monkeypatch.setattr(db, "rollback", tracking_rollback)
        return rollbacks

    async def test_other_integrity_error_is_conflict(self, service, test_db, test_category, monkeypatch):
        error = IntegrityError(
            "INSERT INTO publications", {}, Exception("NOT NULL constraint failed: publications.date")
        )
        rollbacks = self._fail_commit(monkeypatch, test_db, error)

        with pytest.raises(ConflictError) as exc_info:
            await service.create_publication(_create_request([test_category.id]))

        assert exc_info.value.error_code == ErrorCode.CONFLICT
        assert rollbacks == [True]
        assert await _count(test_db, Publication) == 0
        assert await _count(test_db, PublicationTranslation) == 0

    async def test_database_error_is_storage_error(self, service, test_db, test_category, monkeypatch):
        rollbacks = self._fail_commit(
            monkeypatch, test_db, OperationalError("COMMIT", {}, Exception("database is locked"))
        )

        with pytest.raises(StorageError) as exc_info:
            await service.create_publication(_create_request([test_category.id]))

        assert exc_info.value.error_code == ErrorCode.STORAGE_ERROR
        assert exc_info.value.details["operation"] == "create_publication"
        assert rollbacks == [True]
        assert await _count(test_db, Publication) == 0

    async def test_update_database_error_keeps_rows(self, service, test_db, test_category, monkeypatch):
        created = await service.create_publication(_create_request([test_category.id]))
        self._fail_commit(monkeypatch, test_db, OperationalError("COMMIT", {}, Exception("disk I/O error")))

        with pytest.raises(StorageError):
            await service.update_publication(created["id"].id, PublicationUpdate(title="Seminar Nasional"))

        rows = await _translation_rows(test_db, created["id"].id)
        assert rows["id"].slug == "peresmian-gedung-baru"
        assert rows["en"].title == "Inauguration of the New Building"

class TestUpdatePublication:
    """Test partial updates and language sync"""

    async def test_unknown_publication(self, service):
        with pytest.raises(PublicationNotFoundError):
            await service.update_publication("missing", PublicationUpdate(type="news"))

    async def test_metadata_only_update_keeps_translations(self, service, test_db, test_category, translator):
        created = await service.create_publication(_create_request([test_category.id]))
        publication_id = created["id"].id
        before = {code: (row.title, row.content, row.slug) for code, row in (await _translation_rows(test_db)).items()}
        translator.calls.clear()

        bundle = await service.update_publication(publication_id, PublicationUpdate(type="news"))

        after = {code: (row.title, row.content, row.slug) for code, row in (await _translation_rows(test_db)).items()}
        assert after == before
        assert translator.calls == []
        assert bundle["en"].type == "news"

    async def test_title_change_retranslates_and_reslugs(self, service, test_db, test_category, translator):
        created = await service.create_publication(_create_request([test_category.id]))
        publication_id = created["id"].id
        translator.calls.clear()

        bundle = await service.update_publication(
            publication_id, PublicationUpdate(title="Peresmian Gedung Baru Kampus")
        )

        assert sorted(translator.languages) == ["en", "zh"]
        assert bundle["id"].slug == "peresmian-gedung-baru-kampus"
        assert bundle["en"].slug == "inauguration-of-the-new-campus-building"
        assert bundle["en"].title == "Inauguration of the New Campus Building"
        assert bundle["zh"].slug == "peresmian-gedung-baru-kampus"
        # Content was not in the request and stays unchanged
        assert bundle["id"].content == "<p>Gedung baru resmi digunakan.</p>"

    async def test_content_change_keeps_slugs(self, service, test_category, translator):
        created = await service.create_publication(_create_request([test_category.id]))
        translator.calls.clear()

        bundle = await service.update_publication(
            created["id"].id, PublicationUpdate(content="<p>Konten baru.</p>")
        )

        assert sorted(translator.languages) == ["en", "zh"]
        assert {code: r.slug for code, r in bundle.items()} == {code: r.slug for code, r in created.items()}
        assert bundle["en"].content == "<p>Konten baru.</p> <!-- en -->"

    async def test_title_change_failure_leaves_rows_untouched(self, test_db, test_category, file_store):
        service = PublicationService(test_db, StubTranslator(), file_store=file_store)
        created = await service.create_publication(_create_request([test_category.id]))
        before = {code: (row.title, row.slug) for code, row in (await _translation_rows(test_db)).items()}

        failing = PublicationService(test_db, StubTranslator(fail_for={"en"}), file_store=file_store)
        with pytest.raises(TranslationError):
            await failing.update_publication(created["id"].id, PublicationUpdate(title="Judul Lain"))

        after = {code: (row.title, row.slug) for code, row in (await _translation_rows(test_db)).items()}
        assert after == before

    async def test_backfills_missing_languages(self, service, test_db, translator):
        publication = await create_test_publication(test_db, {"id": "seminar-nasional"})

        bundle = await service.update_publication(publication.id, PublicationUpdate(date=dt.date(2024, 2, 1)))

        assert sorted(translator.languages) == ["en", "zh"]
        assert set(bundle) == {"id", "en", "zh"}
        assert bundle["id"].slug == "seminar-nasional"
        assert bundle["en"].slug == "national-seminar"
        assert bundle["zh"].slug == "seminar-nasional"
        assert bundle["id"].date == dt.date(2024, 2, 1)

    async def test_missing_primary_needs_full_text(self, service, test_db):
        publication = await create_test_publication(test_db, {"en": "national-seminar"})

        with pytest.raises(TranslationNotAvailableError) as exc_info:
            await service.update_publication(publication.id, PublicationUpdate(type="article"))
        assert exc_info.value.language == "id"

    async def test_replaces_categories(self, service, test_db, test_category):
        created = await service.create_publication(_create_request([test_category.id]))
        other = await create_test_category(test_db, "Kegiatan", {"en": "Activities"})

        bundle = await service.update_publication(created["id"].id, PublicationUpdate(category_ids=[other.id]))

        assert [c.name for c in bundle["en"].categories] == ["Activities"]

    async def test_invalid_categories_rejected(self, service, test_category, translator):
        created = await service.create_publication(_create_request([test_category.id]))
        translator.calls.clear()

        with pytest.raises(ValidationError):
            await service.update_publication(
                created["id"].id, PublicationUpdate(title="Judul Lain", category_ids=["missing"])
            )
        assert translator.calls == []


class TestPublicationImages:
    """Test image file cleanup after commits"""

    def _touch(self, file_store, *paths):
        for path in paths:
            target = file_store.resolve(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(b"img")

    async def test_replacing_both_images_deletes_old_files(self, service, file_store, test_category):
        self._touch(file_store, "uploads/banner.webp", "uploads/og.webp", "uploads/new-banner.webp", "uploads/new-og.webp")
        created = await service.create_publication(_create_request([test_category.id]))

        await service.update_publication(
            created["id"].id,
            PublicationUpdate(image="uploads/new-banner.webp", image_og="uploads/new-og.webp"),
        )

        assert not file_store.resolve("uploads/banner.webp").exists()
        assert not file_store.resolve("uploads/og.webp").exists()
        assert file_store.resolve("uploads/new-banner.webp").exists()

    async def test_replacing_one_image_keeps_files(self, service, file_store, test_category):
        self._touch(file_store, "uploads/banner.webp", "uploads/og.webp")
        created = await service.create_publication(_create_request([test_category.id]))

        bundle = await service.update_publication(created["id"].id, PublicationUpdate(image="uploads/new-banner.webp"))

        assert bundle["id"].image == "uploads/new-banner.webp"
        assert file_store.resolve("uploads/banner.webp").exists()

    async def test_reused_path_is_not_deleted(self, service, file_store, test_category):
        self._touch(file_store, "uploads/banner.webp", "uploads/og.webp")
        created = await service.create_publication(_create_request([test_category.id]))

        await service.update_publication(
            created["id"].id,
            PublicationUpdate(image="uploads/banner.webp", image_og="uploads/new-og.webp"),
        )

        assert file_store.resolve("uploads/banner.webp").exists()
        assert not file_store.resolve("uploads/og.webp").exists()


class TestDeletePublication:
    async def test_delete_removes_rows_links_and_files(self, service, test_db, file_store, test_category):
        TestPublicationImages()._touch(file_store, "uploads/banner.webp", "uploads/og.webp")
        created = await service.create_publication(_create_request([test_category.id]))

        result = await service.delete_publication(created["id"].id)

        assert result == {"message": "Publication deleted"}
        assert await _count(test_db, Publication) == 0
        assert await _count(test_db, PublicationTranslation) == 0
        assert await _count(test_db, publication_categories) == 0
        assert not file_store.resolve("uploads/banner.webp").exists()
        assert not file_store.resolve("uploads/og.webp").exists()

    async def test_delete_with_missing_files(self, service, test_category):
        created = await service.create_publication(_create_request([test_category.id]))

        assert await service.delete_publication(created["id"].id) == {"message": "Publication deleted"}

    async def test_delete_unknown(self, service):
        with pytest.raises(PublicationNotFoundError):
            await service.delete_publication("missing")

    async def test_type_is_stored_as_enum(self, service, test_db, test_category):
        created = await service.create_publication(_create_request([test_category.id], type="NEWS"))

        publication = await test_db.get(Publication, created["id"].id)
        assert publication.type == PublicationType.NEWS
