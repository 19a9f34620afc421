"""Upload orchestration: lock, write, inspect, record, promote, commit, index.

Both entry points run inside one database transaction that holds a row lock on the
identity being written (``SELECT ... FOR UPDATE``), so concurrent uploads to the same
staging or file are serialized while different identities proceed in parallel. The lock
is released by the commit or rollback at the end of the transaction.

Bytes written before a failure stay in the staging directory; the client resumes with a
later offset. The search index is only updated once the database commit succeeded.
"""
import logging
from datetime import datetime, timezone
from typing import AsyncIterable, Optional
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from polytag.errors import ConflictError, NotFoundError
from polytag.models.file_record import FileRecord
from polytag.models.staging import Staging
from polytag.services.file_catalog import FileNotFound, search_document
from polytag.services.file_storage import FileDriver
from polytag.services.request_body import (
    InvalidFileName,
    MultipartFieldReader,
    MultipleFieldFound,
    NoFieldFound,
)
from polytag.services.search_index import SearchIndex

logger = logging.getLogger(__name__)


class StagingNotFound(NotFoundError):
    def __init__(self, staging_id: UUID):
        self.staging_id = staging_id
        super().__init__(f"staging `{staging_id}` was not found")


class FileAlreadyUploaded(ConflictError):
    def __init__(self, file_id: UUID):
        self.file_id = file_id
        super().__init__(f"file `{file_id}` has already been uploaded")


async def upload_file(
    db: AsyncSession,
    driver: FileDriver,
    search_index: SearchIndex,
    file_id: UUID,
    offset: Optional[int],
    stream: AsyncIterable[bytes],
) -> FileRecord:
    """Write bytes of a prepared file, and complete it once the write finished.

    The staging object is keyed by ``file_id``. A record is completed exactly once; a
    second upload to a complete file is rejected.
    """
    async with db.begin():
        result = await db.execute(
            select(FileRecord).where(FileRecord.id == file_id).with_for_update()
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise FileNotFound(file_id)
        if record.is_complete:
            raise FileAlreadyUploaded(file_id)

        size = await driver.write(file_id, offset, stream)
        metadata = await driver.read_metadata(file_id, record.name)

        record.mime = metadata.mime
        record.size = size
        record.hash = metadata.hash
        record.uploaded_at = datetime.now(timezone.utc)
        await db.flush()

        await driver.promote(file_id, file_id)

    logger.info(f"Uploaded file {file_id}: {size} bytes, {metadata.mime}, crc32 {metadata.hash:08x}")
    await search_index.upsert(str(record.id), search_document(record))
    return record


async def upload_staging(
    db: AsyncSession,
    driver: FileDriver,
    search_index: SearchIndex,
    staging_id: UUID,
    offset: Optional[int],
    content_type: Optional[str],
    body: AsyncIterable[bytes],
) -> FileRecord:
    """Stream the single file field of a multipart body into a staging slot.

    On success a new complete file record is created from the staged bytes, the bytes
    are promoted under the new file identity and the staging slot is removed.
    """
    async with db.begin():
        result = await db.execute(
            select(Staging).where(Staging.id == staging_id).with_for_update()
        )
        if result.scalar_one_or_none() is None:
            raise StagingNotFound(staging_id)

        reader = MultipartFieldReader(content_type, body)
        field = await reader.next_field()
        if field is None:
            raise NoFieldFound()
        if not field.filename:
            raise InvalidFileName()

        size = await driver.write(staging_id, offset, field)
        if await reader.next_field() is not None:
            raise MultipleFieldFound()

        metadata = await driver.read_metadata(staging_id, field.filename)
        record = FileRecord(
            id=uuid4(),
            name=field.filename,
            mime=metadata.mime,
            size=size,
            hash=metadata.hash,
            uploaded_at=datetime.now(timezone.utc),
        )
        db.add(record)
        await db.flush()

        await driver.promote(staging_id, record.id)
        await db.execute(delete(Staging).where(Staging.id == staging_id))

    logger.info(f"Committed staging {staging_id} as file {record.id} ({size} bytes)")
    await search_index.upsert(str(record.id), search_document(record))
    return record
