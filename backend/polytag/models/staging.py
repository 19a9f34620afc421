"""Staging model - an upload slot whose bytes live in the stagings directory."""
from datetime import datetime
from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from polytag.models.base import Base, UuidPrimaryKeyMixin


class Staging(Base, UuidPrimaryKeyMixin):
    __tablename__ = "stagings"

    staged_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
