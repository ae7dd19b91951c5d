"""
Module: warehouse_kernel.models.activity_log
Responsibility: Append-only record of who did what to which entity.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced:
    - Append-only (db/immutability.py).

Failure modes:
    Entries are written best-effort after the business change commits; a
    failed write is logged by ActivityRecorder and never undoes the change.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import Base, UUIDString
from warehouse_kernel.domain.dtos import ActivityAction, ActivityEntity


class ActivityLogEntry(Base):
    """One business action with before/after snapshots."""

    __tablename__ = "activity_log_entries"

    __table_args__ = (
        Index("idx_activity_entity", "entity_type", "entity_id", "occurred_at"),
        Index("idx_activity_actor", "performed_by_id"),
        Index("idx_activity_action", "action"),
    )

    entity_type: Mapped[ActivityEntity] = mapped_column(String(20), nullable=False)

    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    action: Mapped[ActivityAction] = mapped_column(String(40), nullable=False)

    performed_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    old_values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    new_values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<ActivityLogEntry {self.entity_type}:{self.entity_id} {self.action}>"
