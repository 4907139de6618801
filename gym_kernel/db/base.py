"""
Declarative ORM base for gym billing tables (``gym_kernel.db.base``).

Every table gets a UUID primary key stored as text, so the same schema
works on the embedded SQLite file and on any server database.  Annotated
columns pick their SQL type from ``Base.type_annotation_map``:

    Decimal   -> Numeric(38, 9)   (tax rates and money, never float)
    datetime  -> DateTime(timezone=True)
    UUID      -> UUIDString

``TrackedBase`` adds who/when audit columns to tables that are edited
from the billing screens.  This module imports nothing from the other
gym packages.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

__all__ = ["Base", "TrackedBase", "UUID", "UUIDString"]


class UUIDString(TypeDecorator):
    """``uuid.UUID`` on the Python side, ``VARCHAR(36)`` in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Root of all gym billing ORM models."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Adds audit columns.

    ``created_at`` / ``updated_at`` are filled by the database clock;
    ``created_by_id`` names the staff member who created the row and is
    required.  ``updated_by_id`` stays NULL until the first edit.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False,
    )
    created_by_id: Mapped[UUID] = mapped_column(nullable=False)
    updated_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
