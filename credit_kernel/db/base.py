"""
Declarative base for the registry tables.

Primary keys are uuid4 strings stored as ``String(36)`` so the same
models run on PostgreSQL and on in-memory SQLite in tests.
"""

from datetime import datetime
from typing import ClassVar
from uuid import uuid4

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """Accepts ``uuid.UUID`` or ``str`` on write and always reads back ``str``."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)


def _new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {datetime: DateTime(timezone=True)}

    id: Mapped[str] = mapped_column(UUIDString(), primary_key=True, default=_new_id)
