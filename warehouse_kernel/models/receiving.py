"""
Module: warehouse_kernel.models.receiving
Responsibility: ORM persistence for inbound supplier deliveries.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced:
    - receiving_number is unique.
    - Each product appears at most once per receiving.
    - Stock is added exactly once, on Pending -> Completed.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import Base, SoftDeleteMixin, TrackedBase, UUIDString
from warehouse_kernel.domain.dtos import ReceivingStatus


class Receiving(SoftDeleteMixin, TrackedBase):
    """A delivery from one supplier, booked into stock on completion."""

    __tablename__ = "receivings"

    __table_args__ = (
        UniqueConstraint("receiving_number", name="uq_receiving_number"),
        Index("idx_receiving_status", "status", "is_deleted"),
        Index("idx_receiving_supplier", "supplier_id"),
    )

    receiving_number: Mapped[str] = mapped_column(String(30), nullable=False)

    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("suppliers.id"),
        nullable=False,
    )

    received_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    status: Mapped[ReceivingStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ReceivingStatus.PENDING,
    )

    total_items: Mapped[int] = mapped_column(nullable=False, default=0)

    total_quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["ReceivingItem"]] = relationship(
        back_populates="receiving",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ReceivingItem.position",
    )

    def __repr__(self) -> str:
        return f"<Receiving {self.receiving_number} ({self.status})>"


class ReceivingItem(Base):
    """One product line of a receiving, with the unit cost snapshot."""

    __tablename__ = "receiving_items"

    __table_args__ = (
        UniqueConstraint(
            "receiving_id", "product_id", name="uq_receiving_item_product"
        ),
        CheckConstraint("quantity > 0", name="ck_receiving_item_quantity_positive"),
    )

    receiving_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("receivings.id"),
        nullable=False,
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    position: Mapped[int] = mapped_column(nullable=False, default=0)

    quantity: Mapped[int] = mapped_column(nullable=False)

    unit_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)

    receiving: Mapped[Receiving] = relationship(back_populates="items")
