"""Tag template request/response schemas."""
from uuid import UUID
from datetime import datetime
from typing import List, Optional
from pydantic import field_validator
from polytag.models.tag_template import TagValueType
from polytag.schemas.base import CamelModel, CamelORMModel, UuidResponse

_VALUE_TYPE_ALIASES = {"int": "integer", "bool": "boolean"}


class TagTemplateCreate(CamelModel):
    name: str
    description: Optional[str] = None
    value_type: Optional[TagValueType] = None

    @field_validator("value_type", mode="before")
    @classmethod
    def normalize_value_type(cls, v):
        if isinstance(v, str):
            v = v.lower()
            return _VALUE_TYPE_ALIASES.get(v, v)
        return v


class TagTemplateCreateResponse(UuidResponse):
    pass


class TagTemplateResponse(CamelORMModel):
    uuid: UUID
    name: str
    description: Optional[str] = None
    value_type: Optional[TagValueType] = None
    created_at: datetime


class TagTemplateListResponse(CamelORMModel):
    page: int
    items: List[TagTemplateResponse]
