"""
Guestbook Service

CRUD for visitor guestbook entries. Each entry owns a selfie and a
signature image; replaced or orphaned image files are removed on a
best-effort basis after the row change is committed.
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sitecms.exceptions import GuestBookNotFoundError, StorageError
from sitecms.models.guestbook import GuestBook
from sitecms.schemas.guestbook import (
    GuestBookCreate,
    GuestBookListResponse,
    GuestBookResponse,
    GuestBookUpdate,
)
from sitecms.utils.file_store import LocalFileStore, delete_files_quietly
from sitecms.utils.pagination import build_pagination, page_offset

logger = logging.getLogger(__name__)


async def _commit(db: AsyncSession, operation: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error during {operation}: {e}")
        raise StorageError(f"Failed to {operation.replace('_', ' ')}: {e}", operation=operation) from e


async def _get_entry(db: AsyncSession, entry_id: str) -> GuestBook:
    result = await db.execute(select(GuestBook).where(GuestBook.id == entry_id))
    entry = result.scalars().first()
    if entry is None:
        raise GuestBookNotFoundError(entry_id)
    return entry


async def create_guestbook(db: AsyncSession, data: GuestBookCreate) -> GuestBookResponse:
    entry = GuestBook(**data.model_dump())
    db.add(entry)
    await _commit(db, "create_guestbook")
    await db.refresh(entry)
    logger.info("Guestbook entry created: %s", entry.id)
    return GuestBookResponse.model_validate(entry)


async def list_guestbooks(db: AsyncSession, page: int, limit: int, search: str = "") -> GuestBookListResponse:
    """Newest entries first; ``search`` matches name, origin or purpose case-insensitively."""
    where = []
    if search:
        where.append(
            or_(
                GuestBook.name.icontains(search, autoescape=True),
                GuestBook.origin.icontains(search, autoescape=True),
                GuestBook.purpose.icontains(search, autoescape=True),
            )
        )

    total = (await db.execute(select(func.count(GuestBook.id)).where(*where))).scalar_one()
    result = await db.execute(
        select(GuestBook)
        .where(*where)
        .order_by(GuestBook.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return GuestBookListResponse(
        items=[GuestBookResponse.model_validate(entry) for entry in result.scalars().all()],
        pagination=build_pagination(total, page, limit),
    )


async def get_guestbook(db: AsyncSession, entry_id: str) -> GuestBookResponse:
    return GuestBookResponse.model_validate(await _get_entry(db, entry_id))


async def update_guestbook(
    db: AsyncSession,
    entry_id: str,
    data: GuestBookUpdate,
    file_store: LocalFileStore | None = None,
) -> GuestBookResponse:
    entry = await _get_entry(db, entry_id)

    replaced = []
    for field, value in data.model_dump(exclude_none=True).items():
        previous = getattr(entry, field)
        if field in ("selfie_image", "signature_image") and previous != value:
            replaced.append(previous)
        setattr(entry, field, value)

    await _commit(db, "update_guestbook")
    await db.refresh(entry)
    logger.info("Guestbook entry updated: %s", entry_id)

    if replaced:
        delete_files_quietly(file_store or LocalFileStore(), replaced, label="guestbook image")
    return GuestBookResponse.model_validate(entry)


async def delete_guestbook(
    db: AsyncSession,
    entry_id: str,
    file_store: LocalFileStore | None = None,
) -> dict[str, str]:
    entry = await _get_entry(db, entry_id)
    images = [entry.selfie_image, entry.signature_image]

    await db.delete(entry)
    await _commit(db, "delete_guestbook")
    logger.info("Guestbook entry deleted: %s", entry_id)

    delete_files_quietly(file_store or LocalFileStore(), images, label="guestbook image")
    return {"message": "Guestbook entry deleted"}
