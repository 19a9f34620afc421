"""Collections API routes."""
from uuid import UUID
from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from polytag.database import get_db
from polytag.errors import NotFoundError
from polytag.models.collection import Collection
from polytag.schemas.collection import (
    CollectionCreate,
    CollectionListResponse,
    CollectionResponse,
    CollectionUpdate,
)

router = APIRouter(prefix="/api/collections", tags=["collections"])


class CollectionNotFound(NotFoundError):
    def __init__(self, collection_id: UUID):
        self.collection_id = collection_id
        super().__init__(f"collection `{collection_id}` was not found")


@router.get("", response_model=CollectionListResponse)
async def list_collections(
    page: int = Query(0, ge=0),
    page_size: int = Query(25, ge=1, le=100, alias="pageSize"),
    order: Literal["asc", "desc"] = Query("asc"),
    filter_name: Optional[str] = Query(None, alias="filterName"),
    db: AsyncSession = Depends(get_db),
):
    """List collections ordered by creation, optionally filtered by exact name."""
    query = select(Collection)
    if filter_name is not None:
        query = query.where(Collection.name == filter_name)
    if order == "asc":
        query = query.order_by(Collection.created_at.asc(), Collection.id.asc())
    else:
        query = query.order_by(Collection.created_at.desc(), Collection.id.desc())

    # One extra row tells whether a next page exists
    result = await db.execute(query.offset(page * page_size).limit(page_size + 1))
    collections = result.scalars().all()

    return {
        "pagination": {
            "has_prev": page > 0,
            "has_next": len(collections) > page_size,
        },
        "items": [_to_response(c) for c in collections[:page_size]],
    }


@router.get("/{collection_id}", response_model=CollectionResponse)
async def get_collection(
    collection_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a single collection by ID."""
    return _to_response(await _get_or_404(db, collection_id))


@router.post("", response_model=CollectionResponse, status_code=201)
async def create_collection(
    body: CollectionCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a new collection."""
    collection = Collection(**body.model_dump())
    db.add(collection)
    await db.commit()
    await db.refresh(collection)
    return _to_response(collection)


@router.put("/{collection_id}", response_model=CollectionResponse)
async def update_collection(
    collection_id: UUID,
    body: CollectionUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Replace the name and description of a collection."""
    collection = await _get_or_404(db, collection_id)
    for key, value in body.model_dump().items():
        setattr(collection, key, value)

    await db.commit()
    await db.refresh(collection)
    return _to_response(collection)


@router.delete("/{collection_id}", response_model=CollectionResponse)
async def delete_collection(
    collection_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Delete a collection and return what was removed."""
    collection = await _get_or_404(db, collection_id)
    response = _to_response(collection)
    await db.delete(collection)
    await db.commit()
    return response


async def _get_or_404(db: AsyncSession, collection_id: UUID) -> Collection:
    result = await db.execute(select(Collection).where(Collection.id == collection_id))
    collection = result.scalar_one_or_none()
    if not collection:
        raise CollectionNotFound(collection_id)
    return collection


def _to_response(collection: Collection) -> dict:
    return {
        "uuid": collection.id,
        "name": collection.name,
        "description": collection.description,
        "created_at": collection.created_at,
    }
