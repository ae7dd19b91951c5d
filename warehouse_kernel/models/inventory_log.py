"""
Module: warehouse_kernel.models.inventory_log
Responsibility: Append-only stock movement ledger.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced:
    - Append-only: UPDATE and DELETE are rejected by db/immutability.py.
    - new_quantity == previous_quantity + quantity_changed.
    - Written inside the same transaction as the quantity change it records;
      a rolled-back movement leaves no entry.

Audit relevance:
    Replaying a product's entries in occurred_at order reproduces its
    quantity.  Shipment and receiving entries carry the document number in
    ``reference``.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import Base, UUIDString
from warehouse_kernel.domain.dtos import StockAction


class InventoryLogEntry(Base):
    """One stock movement for one product."""

    __tablename__ = "inventory_log_entries"

    __table_args__ = (
        CheckConstraint(
            "new_quantity = previous_quantity + quantity_changed",
            name="ck_inventory_log_arithmetic",
        ),
        CheckConstraint("new_quantity >= 0", name="ck_inventory_log_non_negative"),
        Index("idx_inventory_log_product", "product_id", "occurred_at"),
        Index("idx_inventory_log_reference", "reference"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    action: Mapped[StockAction] = mapped_column(String(10), nullable=False)

    # Signed delta
    quantity_changed: Mapped[int] = mapped_column(nullable=False)

    previous_quantity: Mapped[int] = mapped_column(nullable=False)

    new_quantity: Mapped[int] = mapped_column(nullable=False)

    performed_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    note: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Order or receiving number for workflow-driven movements
    reference: Mapped[str | None] = mapped_column(String(30), nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<InventoryLogEntry {self.action} {self.quantity_changed:+d} "
            f"({self.previous_quantity}->{self.new_quantity})>"
        )
