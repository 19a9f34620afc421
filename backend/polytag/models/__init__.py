"""Import all models so SQLAlchemy metadata knows about them."""
from polytag.models.base import Base
from polytag.models.staging import Staging
from polytag.models.file_record import FileRecord
from polytag.models.tag_template import TagTemplate, TagValueType
from polytag.models.tag import Tag
from polytag.models.collection import Collection

__all__ = [
    "Base",
    "Staging", "FileRecord", "TagTemplate", "TagValueType", "Tag", "Collection",
]
