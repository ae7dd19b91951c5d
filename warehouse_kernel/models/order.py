"""
Module: warehouse_kernel.models.order
Responsibility: ORM persistence for outbound orders and their line items.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced:
    - order_number is unique.
    - Each product appears at most once per order (uq_order_item_product).
    - Line quantities are positive; unit_price is a snapshot taken at
      creation and never re-read from the product.
    - status follows ORDER_WORKFLOW (enforced by OrderService, not the ORM).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import Base, SoftDeleteMixin, TrackedBase, UUIDString
from warehouse_kernel.domain.dtos import OrderStatus


class Order(SoftDeleteMixin, TrackedBase):
    """
    A customer order moving through the fulfillment lifecycle.

    Contract:
        Stock is deducted exactly once, on the Packed -> Shipped transition,
        for every line item or for none.
    """

    __tablename__ = "orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_order_number"),
        Index("idx_order_status", "status", "is_deleted"),
        Index("idx_order_staff", "assigned_staff_id"),
    )

    order_number: Mapped[str] = mapped_column(String(30), nullable=False)

    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    assigned_staff_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=True,
    )

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.position",
    )

    def __repr__(self) -> str:
        return f"<Order {self.order_number} ({self.status})>"


class OrderItem(Base):
    """One product line of an order."""

    __tablename__ = "order_items"

    __table_args__ = (
        UniqueConstraint("order_id", "product_id", name="uq_order_item_product"),
        CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("orders.id"),
        nullable=False,
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    # Request order, kept for stable presentation
    position: Mapped[int] = mapped_column(nullable=False, default=0)

    quantity: Mapped[int] = mapped_column(nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)

    order: Mapped[Order] = relationship(back_populates="items")
