"""Tag model - a value attached to a file under a tag template."""
import uuid
from sqlalchemy import Text, BigInteger, Boolean, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from polytag.models.base import Base
from polytag.models.tag_template import TagValueType


class Tag(Base):
    __tablename__ = "tags"

    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("tag_templates.id", ondelete="CASCADE"), primary_key=True
    )
    file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("files.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    value_string: Mapped[str | None] = mapped_column(Text, nullable=True)
    value_integer: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    value_boolean: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    file = relationship("FileRecord", back_populates="tags")

    @property
    def value(self) -> str | int | bool | None:
        if self.value_string is not None:
            return self.value_string
        if self.value_integer is not None:
            return self.value_integer
        return self.value_boolean


VALUE_COLUMNS = {
    TagValueType.STRING: Tag.value_string,
    TagValueType.INTEGER: Tag.value_integer,
    TagValueType.BOOLEAN: Tag.value_boolean,
}
