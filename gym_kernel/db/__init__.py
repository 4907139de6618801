"""Database layer - engine, base classes and types."""

from gym_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from gym_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "init_engine_from_url",
    "session_scope",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
