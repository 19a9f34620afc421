"""File request/response schemas."""
from uuid import UUID
from datetime import datetime
from typing import List, Optional, Union
from pydantic import StrictBool, StrictInt, StrictStr
from polytag.schemas.base import CamelModel, CamelORMModel, UuidResponse

# bool before int: JSON true must not be read as 1
TagValue = Union[StrictBool, StrictInt, StrictStr]


class FilePrepareTag(CamelModel):
    template_uuid: UUID
    value: Optional[TagValue] = None


class FilePrepareRequest(CamelModel):
    name: str
    tags: List[FilePrepareTag] = []


class FilePrepareResponse(UuidResponse):
    pass


class FileResponse(CamelORMModel):
    uuid: UUID
    name: str
    mime: str
    size: int
    hash: int
    uploaded_at: datetime


class FileTagResponse(CamelORMModel):
    template_uuid: UUID
    value: Optional[TagValue] = None


class FileDetailResponse(FileResponse):
    tags: List[FileTagResponse] = []


class TagValueFilter(CamelModel):
    equal: Optional[TagValue] = None
    not_equal: Optional[TagValue] = None
    less_than: Optional[TagValue] = None
    less_than_or_equal: Optional[TagValue] = None
    greater_than: Optional[TagValue] = None
    greater_than_or_equal: Optional[TagValue] = None
    contains: Optional[StrictStr] = None
    one_of: Optional[List[TagValue]] = None


class FileTagFilter(CamelModel):
    template_uuid: UUID
    value: Optional[TagValueFilter] = None


class FileSearchRequest(CamelModel):
    query: Optional[str] = None
    tags: Optional[List[FileTagFilter]] = None


class FileListResponse(CamelORMModel):
    page: int
    items: List[FileResponse]
