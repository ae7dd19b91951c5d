"""
Module: warehouse_kernel.models.product
Responsibility: ORM persistence for stocked products.  The quantity column is
    the stock ledger's balance; it is mutated only by StockLedger and by the
    order/receiving workflows, always together with an InventoryLogEntry.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced:
    - quantity >= 0 (service check plus ck_product_quantity_non_negative).
    - minimum_stock_level >= 0.
    - sku is unique among non-deleted products (partial unique index).

Failure modes:
    - IntegrityError if a write bypasses the services and breaks a CHECK.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString


class Product(SoftDeleteMixin, TrackedBase):
    """
    A stock-keeping unit.

    Contract:
        Quantity is never negative.  A product references at most one
        storage location; the location's occupancy counts this product's
        quantity while the product is not deleted.

    Non-goals:
        - Category management (category_id is an opaque reference).
    """

    __tablename__ = "products"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_product_quantity_non_negative"),
        CheckConstraint(
            "minimum_stock_level >= 0", name="ck_product_minimum_non_negative"
        ),
        Index(
            "uq_product_sku_live",
            "sku",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
        Index("idx_product_location", "location_id"),
    )

    sku: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    minimum_stock_level: Mapped[int] = mapped_column(nullable=False, default=0)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    category_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    supplier_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("suppliers.id"),
        nullable=True,
    )

    location_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id"),
        nullable=True,
    )

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.minimum_stock_level

    def __repr__(self) -> str:
        return f"<Product {self.sku}: qty={self.quantity}>"
