"""Database layer - engine, base classes, column types, immutability."""

from gl_kernel.db.base import UUID, Base, EnumString, TrackedBase, UUIDString
from gl_kernel.db.engine import (
    build_engine,
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)

__all__ = [
    "build_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "EnumString",
    "UUID",
]
