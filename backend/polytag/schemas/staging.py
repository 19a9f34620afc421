"""Staging request/response schemas."""
from uuid import UUID
from datetime import datetime
from polytag.schemas.base import CamelORMModel, UuidResponse


class StagingCreateResponse(UuidResponse):
    pass


class StagingResponse(CamelORMModel):
    uuid: UUID
    staged_size: int
    staged_at: datetime
