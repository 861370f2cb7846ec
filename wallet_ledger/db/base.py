"""
Module: wallet_ledger.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the UUID primary key convention, the UTC timestamp column type and the
    type annotation map used by every model.
Architecture position: DB layer.  Lowest-level import target; ALL model files
    import from here.  MUST NOT import from models/, services/ or selectors/.

Invariants enforced:
    - UUID primary keys: every entity gets a uuid4-generated id.
    - Integer money: int maps to BigInteger; amounts are integer minor units
      and floats never reach a money column.
    - UTC timestamps: UTCDateTime stores naive UTC and always returns
      timezone-aware UTC datetimes, so comparisons never mix naive and aware.
"""

from datetime import datetime, timezone
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored as naive UTC.

    SQLite keeps no offset, so values are normalized to UTC on the way in and
    tagged as UTC on the way out.  Naive inputs are taken to be UTC already.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - datetime maps to UTCDateTime -- always timezone-aware on read.
        - int maps to BigInteger -- safe for sequences and cent amounts.
        - UUID maps to UUIDString.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: BigInteger,
    }


class EntityBase(Base):
    """
    Abstract base for ledger entities identified by an opaque UUID.

    The sequence counter table is keyed by name and inherits Base directly.
    """

    __abstract__ = True

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


# Re-export UUID for convenience
UUID = PyUUID
