"""Database layer - engine, base classes, types, and immutability."""

from wallet_ledger.db.base import UUID, Base, EntityBase, UTCDateTime, UUIDString
from wallet_ledger.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_path,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "init_engine_from_url",
    "init_engine_from_path",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "EntityBase",
    "UUIDString",
    "UTCDateTime",
    "UUID",
]
