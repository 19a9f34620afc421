"""Collection request/response schemas."""
from uuid import UUID
from datetime import datetime
from typing import List, Optional
from polytag.schemas.base import CamelModel, CamelORMModel


class CollectionCreate(CamelModel):
    name: str
    description: Optional[str] = None


class CollectionUpdate(CamelModel):
    name: str
    description: Optional[str] = None


class CollectionResponse(CamelORMModel):
    uuid: UUID
    name: str
    description: Optional[str] = None
    created_at: datetime


class PaginationMetadata(CamelORMModel):
    has_prev: bool
    has_next: bool


class CollectionListResponse(CamelORMModel):
    pagination: PaginationMetadata
    items: List[CollectionResponse]
