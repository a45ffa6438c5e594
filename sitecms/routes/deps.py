from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sitecms.config import settings
from sitecms.database import get_db
from sitecms.i18n.languages import parse_accept_language, resolve_language
from sitecms.services.publication_service import PublicationService
from sitecms.services.translation_gateway import TranslationGateway, get_translation_gateway
from sitecms.utils.file_store import LocalFileStore, get_file_store
from sitecms.utils.pagination import normalize_page


def get_language(
    lang: str | None = Query(None, description="Language code: id, en or zh."),
    accept_language: str | None = Header(None),
) -> str:
    """``?lang=`` wins; otherwise Accept-Language; otherwise the primary language."""
    if lang is None and accept_language:
        lang = parse_accept_language(accept_language, settings.supported_languages)
    return resolve_language(lang)


def get_page(
    page: int | None = Query(None, description="Page number, starting at 1."),
    limit: int | None = Query(None, description="Page size."),
) -> tuple[int, int]:
    return normalize_page(page, limit)


def get_publication_service(
    db: AsyncSession = Depends(get_db),
    translator: TranslationGateway = Depends(get_translation_gateway),
    file_store: LocalFileStore = Depends(get_file_store),
) -> PublicationService:
    return PublicationService(db, translator=translator, file_store=file_store)
