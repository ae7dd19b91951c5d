"""
Module: warehouse_kernel.models.user
Responsibility: Minimal user record the kernel validates assignees against
    (role, active flag, soft-delete flag).  Authentication and user CRUD live
    outside the kernel.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.
"""

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import SoftDeleteMixin, TrackedBase
from warehouse_kernel.domain.dtos import UserRole


class User(SoftDeleteMixin, TrackedBase):
    """A warehouse operator."""

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
        Index("idx_user_role_active", "role", "is_active"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[UserRole] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.STAFF,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def is_assignable(self) -> bool:
        """Active, not deleted."""
        return self.is_active and not self.is_deleted

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
