"""
Module: warehouse_kernel.models.task
Responsibility: ORM persistence for staff work items (picking, packing,
    receiving) with time tracking.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced (by TaskService):
    - Picking/Packing tasks reference an order; Receiving tasks reference a
      receiving.
    - started_at is stamped once; completion_duration is whole minutes
      between started_at and completed_at.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString
from warehouse_kernel.domain.dtos import TaskPriority, TaskStatus, TaskType


class Task(SoftDeleteMixin, TrackedBase):
    """A unit of warehouse work assigned to one staff member."""

    __tablename__ = "tasks"

    __table_args__ = (
        Index("idx_task_assignee_status", "assigned_to_id", "status", "is_deleted"),
        Index("idx_task_order", "related_order_id"),
        Index("idx_task_receiving", "related_receiving_id"),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    task_type: Mapped[TaskType] = mapped_column(String(20), nullable=False)

    priority: Mapped[TaskPriority] = mapped_column(
        String(10),
        nullable=False,
        default=TaskPriority.MEDIUM,
    )

    status: Mapped[TaskStatus] = mapped_column(
        String(20),
        nullable=False,
        default=TaskStatus.PENDING,
    )

    assigned_to_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=False,
    )

    assigned_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    related_order_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("orders.id"),
        nullable=True,
    )

    related_receiving_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("receivings.id"),
        nullable=True,
    )

    started_at: Mapped[datetime | None] = mapped_column(nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Whole minutes
    completion_duration: Mapped[int | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Task {self.task_type} '{self.title}' ({self.status})>"
