"""Database layer - engine, base classes, append-only guards."""

from warehouse_kernel.db.base import UUID, Base, SoftDeleteMixin, TrackedBase, UUIDString
from warehouse_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "SoftDeleteMixin",
    "UUIDString",
    "UUID",
]
