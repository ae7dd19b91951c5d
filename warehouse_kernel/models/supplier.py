"""
Module: warehouse_kernel.models.supplier
Responsibility: Minimal supplier record consulted when a receiving is
    created.  Supplier CRUD lives outside the kernel.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.
"""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import SoftDeleteMixin, TrackedBase
from warehouse_kernel.domain.dtos import SupplierStatus


class Supplier(SoftDeleteMixin, TrackedBase):
    """
    A vendor that delivers stock.

    Contract:
        Only suppliers with status ACTIVE and is_deleted False may receive
        new receivings (see ``can_supply``).
    """

    __tablename__ = "suppliers"

    __table_args__ = (
        Index("idx_supplier_status", "status", "is_deleted"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[SupplierStatus] = mapped_column(
        String(20),
        nullable=False,
        default=SupplierStatus.ACTIVE,
    )

    @property
    def can_supply(self) -> bool:
        return not self.is_deleted and self.status == SupplierStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Supplier {self.name} ({self.status})>"
