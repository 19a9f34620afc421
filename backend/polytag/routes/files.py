"""Files API routes."""
from uuid import UUID
from typing import Optional
from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from polytag.config import Settings
from polytag.database import get_db
from polytag.dependencies import get_file_driver, get_search_index, get_settings
from polytag.models.file_record import FileRecord
from polytag.schemas.file import (
    FileDetailResponse,
    FileListResponse,
    FilePrepareRequest,
    FilePrepareResponse,
    FileResponse as FileResponseSchema,
    FileSearchRequest,
)
from polytag.services.file_catalog import FileNotFound, get_complete_file, prepare_file, search_files
from polytag.services.file_storage import FileDriver
from polytag.services.request_body import parse_content_range
from polytag.services.search_index import SearchIndex
from polytag.services.upload_service import upload_file

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("", response_model=FilePrepareResponse, status_code=201)
async def create_file(
    body: FilePrepareRequest,
    db: AsyncSession = Depends(get_db),
):
    """Prepare a file record with its tags; bytes are uploaded separately."""
    record = await prepare_file(db, body)
    return {"uuid": record.id}


@router.post("/search", response_model=FileListResponse)
async def search(
    body: FileSearchRequest,
    page: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    search_index: SearchIndex = Depends(get_search_index),
    settings: Settings = Depends(get_settings),
):
    """List complete files matching a free-text query and tag filters."""
    records = await search_files(
        db, search_index, body.query, body.tags,
        page=page,
        page_size=settings.FILE_PAGE_SIZE,
        search_limit=settings.SEARCH_LIMIT,
    )
    return {"page": page, "items": [file_to_response(r) for r in records]}


@router.put("/{file_id}", response_model=FileResponseSchema)
async def put_file(
    file_id: UUID,
    request: Request,
    offset: Optional[int] = Query(None, ge=0),
    content_range: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    driver: FileDriver = Depends(get_file_driver),
    search_index: SearchIndex = Depends(get_search_index),
):
    """Upload (or resume uploading) the raw bytes of a prepared file."""
    if offset is None:
        offset = parse_content_range(content_range)
    record = await upload_file(db, driver, search_index, file_id, offset, request.stream())
    return file_to_response(record)


@router.get("/{file_id}", response_model=FileDetailResponse)
async def get_file(
    file_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a complete file with its tags."""
    record = await get_complete_file(db, file_id)
    return {
        **file_to_response(record),
        "tags": [
            {"template_uuid": tag.template_id, "value": tag.value}
            for tag in sorted(record.tags, key=lambda t: t.template_id)
        ],
    }


@router.get("/{file_id}/download")
async def download_file(
    file_id: UUID,
    db: AsyncSession = Depends(get_db),
    driver: FileDriver = Depends(get_file_driver),
):
    """Download the committed bytes of a file."""
    record = await get_complete_file(db, file_id)
    if not await driver.file_exists(record.id):
        raise FileNotFound(file_id)

    return FileResponse(
        path=driver.file_path(record.id),
        filename=record.name,
        media_type=record.mime,
    )


def file_to_response(record: FileRecord) -> dict:
    return {
        "uuid": record.id,
        "name": record.name,
        "mime": record.mime,
        "size": record.size,
        "hash": record.hash,
        "uploaded_at": record.uploaded_at,
    }
