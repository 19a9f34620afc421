"""Stagings API routes."""
from uuid import UUID
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from polytag.database import get_db
from polytag.dependencies import get_file_driver, get_search_index
from polytag.models.staging import Staging
from polytag.schemas.file import FileResponse
from polytag.schemas.staging import StagingCreateResponse, StagingResponse
from polytag.services.file_storage import FileDriver
from polytag.services.request_body import parse_content_range
from polytag.services.search_index import SearchIndex
from polytag.services.upload_service import StagingNotFound, upload_staging
from polytag.routes.files import file_to_response

router = APIRouter(prefix="/api/stagings", tags=["stagings"])


@router.post("", response_model=StagingCreateResponse, status_code=201)
async def create_staging(db: AsyncSession = Depends(get_db)):
    """Allocate a new upload slot."""
    staging = Staging()
    db.add(staging)
    await db.commit()
    return {"uuid": staging.id}


@router.get("/{staging_id}", response_model=StagingResponse)
async def get_staging(
    staging_id: UUID,
    db: AsyncSession = Depends(get_db),
    driver: FileDriver = Depends(get_file_driver),
):
    """Get a staging slot and how many bytes it holds so far."""
    result = await db.execute(select(Staging).where(Staging.id == staging_id))
    staging = result.scalar_one_or_none()
    if not staging:
        raise StagingNotFound(staging_id)

    return {
        "uuid": staging.id,
        "staged_size": await driver.size_of(staging.id) or 0,
        "staged_at": staging.staged_at,
    }


@router.put("/{staging_id}", response_model=FileResponse)
async def put_staging(
    staging_id: UUID,
    request: Request,
    content_range: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    driver: FileDriver = Depends(get_file_driver),
    search_index: SearchIndex = Depends(get_search_index),
):
    """Upload the file field of a multipart body, resuming at the Content-Range start."""
    offset = parse_content_range(content_range)
    record = await upload_staging(
        db, driver, search_index, staging_id, offset,
        request.headers.get("content-type"), request.stream(),
    )
    return file_to_response(record)
