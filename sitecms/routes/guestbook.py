from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sitecms.database import get_db
from sitecms.routes.deps import get_page
from sitecms.schemas.guestbook import GuestBookCreate, GuestBookUpdate
from sitecms.services import guestbook_service
from sitecms.utils.file_store import LocalFileStore, get_file_store

router = APIRouter()
public_router = APIRouter()


@router.get("")
async def list_guestbooks(
    search: str = Query(""),
    pagination: tuple[int, int] = Depends(get_page),
    db: AsyncSession = Depends(get_db),
):
    page, limit = pagination
    return {"data": await guestbook_service.list_guestbooks(db, page, limit, search)}


@router.get("/{entry_id}")
async def get_guestbook(entry_id: str, db: AsyncSession = Depends(get_db)):
    return {"data": await guestbook_service.get_guestbook(db, entry_id)}


@router.put("/{entry_id}")
async def update_guestbook(
    entry_id: str,
    payload: GuestBookUpdate,
    db: AsyncSession = Depends(get_db),
    file_store: LocalFileStore = Depends(get_file_store),
):
    return {"data": await guestbook_service.update_guestbook(db, entry_id, payload, file_store)}


@router.delete("/{entry_id}")
async def delete_guestbook(
    entry_id: str,
    db: AsyncSession = Depends(get_db),
    file_store: LocalFileStore = Depends(get_file_store),
):
    return {"data": await guestbook_service.delete_guestbook(db, entry_id, file_store)}


@public_router.post("", status_code=status.HTTP_201_CREATED)
async def create_guestbook(payload: GuestBookCreate, db: AsyncSession = Depends(get_db)):
    return {"data": await guestbook_service.create_guestbook(db, payload)}
