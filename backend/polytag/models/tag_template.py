"""TagTemplate model - a named, optionally typed field that file tags conform to."""
import enum
from datetime import datetime
from sqlalchemy import String, Text, DateTime, Enum, func
from sqlalchemy.orm import Mapped, mapped_column
from polytag.models.base import Base, UuidPrimaryKeyMixin


class TagValueType(str, enum.Enum):
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"

    def __str__(self) -> str:
        return self.value


class TagTemplate(Base, UuidPrimaryKeyMixin):
    __tablename__ = "tag_templates"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    value_type: Mapped[TagValueType | None] = mapped_column(
        Enum(TagValueType, name="tag_value_type", values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
