"""Base schema classes: camelCase on the wire, snake_case in Python."""
from uuid import UUID
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request bodies. Unknown keys are rejected so a misspelt filter is not ignored."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "forbid",
    }


class CamelORMModel(BaseModel):
    """Response bodies, built from ORM rows or route dicts."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class UuidResponse(CamelORMModel):
    """Body of a create call: only the new identity."""
    uuid: UUID
