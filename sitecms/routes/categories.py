from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sitecms.database import get_db
from sitecms.routes.deps import get_language, get_page
from sitecms.schemas.category import CategoryCreate, CategoryUpdate
from sitecms.services import category_service

router = APIRouter()
public_router = APIRouter()


@router.get("")
async def list_categories(
    search: str = Query(""),
    pagination: tuple[int, int] = Depends(get_page),
    db: AsyncSession = Depends(get_db),
):
    page, limit = pagination
    return {"data": await category_service.list_categories(db, page, limit, search)}


@router.get("/all")
async def all_categories(db: AsyncSession = Depends(get_db)):
    return {"data": await category_service.get_all_categories(db)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_category(payload: CategoryCreate, db: AsyncSession = Depends(get_db)):
    return {"data": await category_service.create_category(db, payload.name)}


@router.get("/{category_id}")
async def get_category(category_id: str, db: AsyncSession = Depends(get_db)):
    return {"data": await category_service.get_category(db, category_id)}


@router.put("/{category_id}")
async def update_category(category_id: str, payload: CategoryUpdate, db: AsyncSession = Depends(get_db)):
    return {"data": await category_service.update_category(db, category_id, payload.name)}


@router.delete("/{category_id}")
async def delete_category(category_id: str, db: AsyncSession = Depends(get_db)):
    return {"data": await category_service.delete_category(db, category_id)}


@public_router.get("")
async def public_categories(
    language: str = Depends(get_language),
    db: AsyncSession = Depends(get_db),
):
    return {"data": await category_service.get_all_categories(db, language)}
