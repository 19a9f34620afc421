"""Collection model - a named grouping of files."""
from datetime import datetime
from sqlalchemy import String, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from polytag.models.base import Base, UuidPrimaryKeyMixin


class Collection(Base, UuidPrimaryKeyMixin):
    __tablename__ = "collections"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
