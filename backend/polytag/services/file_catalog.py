"""File records: preparation with tags, lookup, and tag/free-text search."""
import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from polytag.errors import NotFoundError
from polytag.models.file_record import FileRecord
from polytag.models.tag import Tag, VALUE_COLUMNS
from polytag.models.tag_template import TagTemplate, TagValueType
from polytag.schemas.file import FilePrepareRequest, FileTagFilter, TagValueFilter
from polytag.services.search_index import SearchIndex
from polytag.services.tag_validation import (
    check_tag_filters,
    check_tag_values,
    sort_unique_by_template,
    validate_file_name,
    value_type_of,
)

logger = logging.getLogger(__name__)


class FileNotFound(NotFoundError):
    def __init__(self, file_id: UUID):
        self.file_id = file_id
        super().__init__(f"file `{file_id}` was not found")


def search_document(record: FileRecord) -> Dict[str, Any]:
    """Denormalized copy of a complete file record for the search index."""
    return {
        "uuid": str(record.id),
        "name": record.name,
        "mime": record.mime,
        "size": record.size,
        "hash": record.hash,
        "uploadedAt": record.uploaded_at.isoformat(),
    }


async def fetch_template_types(
    db: AsyncSession, template_ids: Sequence[UUID],
) -> Dict[UUID, Optional[TagValueType]]:
    if not template_ids:
        return {}
    result = await db.execute(
        select(TagTemplate.id, TagTemplate.value_type)
        .where(TagTemplate.id.in_(template_ids))
        .order_by(TagTemplate.id)
    )
    return {row.id: row.value_type for row in result}


async def prepare_file(db: AsyncSession, body: FilePrepareRequest) -> FileRecord:
    """Create an incomplete file record and its tags in one transaction.

    Nothing is persisted when any tag fails validation.
    """
    validate_file_name(body.name)
    tags = sort_unique_by_template(body.tags)

    async with db.begin():
        template_types = await fetch_template_types(db, [t.template_uuid for t in tags])
        check_tag_values(tags, template_types)

        record = FileRecord(name=body.name)
        db.add(record)
        await db.flush()

        for tag in tags:
            row = Tag(template_id=tag.template_uuid, file_id=record.id)
            if tag.value is not None:
                column = VALUE_COLUMNS[value_type_of(tag.value)]
                setattr(row, column.key, tag.value)
            db.add(row)

    logger.info(f"Prepared file {record.id} ({body.name!r}) with {len(tags)} tags")
    return record


async def get_complete_file(db: AsyncSession, file_id: UUID) -> FileRecord:
    """The complete record with its tags; incomplete records count as missing."""
    result = await db.execute(
        select(FileRecord)
        .options(selectinload(FileRecord.tags))
        .where(FileRecord.id == file_id, FileRecord.is_complete)
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise FileNotFound(file_id)
    return record


def _value_condition(column, value: TagValueFilter):
    conditions = []
    if value.equal is not None:
        conditions.append(column == value.equal)
    if value.not_equal is not None:
        conditions.append(column != value.not_equal)
    if value.less_than is not None:
        conditions.append(column < value.less_than)
    if value.less_than_or_equal is not None:
        conditions.append(column <= value.less_than_or_equal)
    if value.greater_than is not None:
        conditions.append(column > value.greater_than)
    if value.greater_than_or_equal is not None:
        conditions.append(column >= value.greater_than_or_equal)
    if value.contains is not None:
        conditions.append(column.contains(value.contains, autoescape=True))
    if value.one_of is not None:
        conditions.append(column.in_(value.one_of))
    return conditions


def _tag_condition(tag_filter: FileTagFilter, value_type: Optional[TagValueType]):
    conditions = [Tag.template_id == tag_filter.template_uuid]
    if tag_filter.value is not None and value_type is not None:
        conditions.extend(_value_condition(VALUE_COLUMNS[value_type], tag_filter.value))
    return and_(*conditions)


async def search_files(
    db: AsyncSession,
    search_index: SearchIndex,
    query: Optional[str],
    tag_filters: Optional[List[FileTagFilter]],
    page: int,
    page_size: int,
    search_limit: int,
) -> List[FileRecord]:
    """One page of complete files matching the free-text query and every tag filter."""
    filters = sort_unique_by_template(tag_filters or [])
    template_types = await fetch_template_types(db, [f.template_uuid for f in filters])
    check_tag_filters(filters, template_types)

    candidate_ids = None
    if query:
        hits = await search_index.search(query, ["uuid"], search_limit)
        candidate_ids = [UUID(hit["uuid"]) for hit in hits]
        if not candidate_ids:
            return []

    stmt = select(FileRecord).where(FileRecord.is_complete)
    if candidate_ids is not None:
        stmt = stmt.where(FileRecord.id.in_(candidate_ids))

    if filters:
        # A file matches when every filter matched one of its tags
        matched = (
            select(Tag.file_id)
            .where(or_(*[_tag_condition(f, template_types[f.template_uuid]) for f in filters]))
            .group_by(Tag.file_id)
            .having(func.count() == len(filters))
        )
        stmt = stmt.where(FileRecord.id.in_(matched))

    result = await db.execute(
        stmt.order_by(FileRecord.id).offset(page * page_size).limit(page_size)
    )
    return list(result.scalars().all())
