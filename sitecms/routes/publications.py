import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sitecms.database import get_db
from sitecms.models.publication import PublicationType
from sitecms.routes.deps import get_language, get_page, get_publication_service
from sitecms.schemas.publication import PublicationCreate, PublicationUpdate
from sitecms.services import publication_lookup
from sitecms.services.publication_service import PublicationService

router = APIRouter()
public_router = APIRouter()


def _parse_type(value: str | None) -> PublicationType | None:
    if not value:
        return None
    return PublicationType.__members__.get(value.strip().upper())


async def _list(db, pagination, search, language, category_id, publication_type):
    page, limit = pagination
    return await publication_lookup.list_publications(
        db,
        page,
        limit,
        search=search,
        language=language,
        category_id=category_id,
        publication_type=_parse_type(publication_type),
    )


@router.get("")
async def list_publications(
    search: str = Query("", description="Case-insensitive title search."),
    category_id: str | None = Query(None),
    publication_type: str | None = Query(None, alias="type", description="news or article"),
    pagination: tuple[int, int] = Depends(get_page),
    language: str = Depends(get_language),
    db: AsyncSession = Depends(get_db),
):
    return {"data": await _list(db, pagination, search, language, category_id, publication_type)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_publication(
    payload: PublicationCreate,
    service: PublicationService = Depends(get_publication_service),
):
    return {"data": await service.create_publication(payload)}


@router.get("/{publication_id}")
async def get_publication(
    publication_id: uuid.UUID,
    language: str = Depends(get_language),
    db: AsyncSession = Depends(get_db),
):
    return {"data": await publication_lookup.get_publication_by_id(db, str(publication_id), language)}


@router.put("/{publication_id}")
async def update_publication(
    publication_id: uuid.UUID,
    payload: PublicationUpdate,
    service: PublicationService = Depends(get_publication_service),
):
    return {"data": await service.update_publication(str(publication_id), payload)}


@router.delete("/{publication_id}")
async def delete_publication(
    publication_id: uuid.UUID,
    service: PublicationService = Depends(get_publication_service),
):
    return {"data": await service.delete_publication(str(publication_id))}


@public_router.get("")
async def list_public_publications(
    search: str = Query(""),
    category_id: str | None = Query(None),
    publication_type: str | None = Query(None, alias="type"),
    pagination: tuple[int, int] = Depends(get_page),
    language: str = Depends(get_language),
    db: AsyncSession = Depends(get_db),
):
    return {"data": await _list(db, pagination, search, language, category_id, publication_type)}


@public_router.get("/{slug}")
async def get_public_publication(
    slug: str,
    language: str = Depends(get_language),
    db: AsyncSession = Depends(get_db),
):
    return {"data": await publication_lookup.get_publication_by_slug(db, slug, language)}
