"""FileRecord model - file metadata (actual bytes in the files directory).

mime, size, hash and uploaded_at are filled together by the upload step.
A record is complete only when all four are set.
"""
from datetime import datetime
from sqlalchemy import String, BigInteger, DateTime, Text, and_
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship
from polytag.models.base import Base, TimestampMixin, UuidPrimaryKeyMixin


class FileRecord(Base, UuidPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "files"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    mime: Mapped[str | None] = mapped_column(String(255), nullable=True)
    size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    hash: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    uploaded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    tags = relationship(
        "Tag", back_populates="file",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    @hybrid_property
    def is_complete(self) -> bool:
        return (
            self.mime is not None
            and self.size is not None
            and self.hash is not None
            and self.uploaded_at is not None
        )

    @is_complete.inplace.expression
    @classmethod
    def _is_complete_expression(cls):
        return and_(
            cls.mime.is_not(None),
            cls.size.is_not(None),
            cls.hash.is_not(None),
            cls.uploaded_at.is_not(None),
        )
