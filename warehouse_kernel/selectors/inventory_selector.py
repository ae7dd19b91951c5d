"""
Module: warehouse_kernel.selectors.inventory_selector
Responsibility: Product lookups, low-stock listing, the per-product stock
    ledger and ledger replay.
Architecture position: Kernel > Selectors.

Audit relevance:
    ``replay_quantity`` sums a product's ledger entries; for every product
    it equals the stored quantity.  ``ledger_discrepancies`` lists the
    products where it does not.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select

from warehouse_kernel.domain.dtos import InventoryLogInfo, ProductInfo, StockAction
from warehouse_kernel.domain.validation import require_choice
from warehouse_kernel.models.inventory_log import InventoryLogEntry
from warehouse_kernel.models.product import Product
from warehouse_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class LedgerDiscrepancy:
    """A product whose stored quantity disagrees with its ledger."""

    product_id: UUID
    sku: str
    stored_quantity: int
    ledger_quantity: int


class InventorySelector(BaseSelector[Product]):
    """Read-side queries over products and the inventory ledger."""

    def get_product(self, product_id: UUID, include_deleted: bool = False) -> ProductInfo | None:
        product = self.session.get(Product, product_id)
        if product is None or (product.is_deleted and not include_deleted):
            return None
        return ProductInfo.from_model(product)

    def get_by_sku(self, sku: str) -> ProductInfo | None:
        product = self.session.execute(
            select(Product).where(Product.sku == sku.strip().upper(), Product.is_deleted.is_(False))
        ).scalar_one_or_none()
        return ProductInfo.from_model(product) if product else None

    def list_products(
        self,
        location_id: UUID | None = None,
        supplier_id: UUID | None = None,
        include_deleted: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[ProductInfo]:
        query = self._live(select(Product), Product, include_deleted)
        if location_id is not None:
            query = query.where(Product.location_id == location_id)
        if supplier_id is not None:
            query = query.where(Product.supplier_id == supplier_id)
        query = query.order_by(Product.sku)
        if limit is not None:
            query = query.limit(limit)
        if offset is not None:
            query = query.offset(offset)
        return [ProductInfo.from_model(p) for p in self.session.execute(query).scalars()]

    def low_stock_products(self) -> list[ProductInfo]:
        """Live products with quantity at or below their minimum level."""
        query = (
            select(Product)
            .where(
                Product.is_deleted.is_(False),
                Product.quantity <= Product.minimum_stock_level,
            )
            .order_by(Product.quantity, Product.sku)
        )
        return [ProductInfo.from_model(p) for p in self.session.execute(query).scalars()]

    def ledger_history(
        self,
        product_id: UUID,
        action: StockAction | None = None,
        reference: str | None = None,
        limit: int | None = None,
    ) -> list[InventoryLogInfo]:
        """Ledger entries for one product, oldest first."""
        query = select(InventoryLogEntry).where(InventoryLogEntry.product_id == product_id)
        if action is not None:
            query = query.where(
                InventoryLogEntry.action == require_choice(StockAction, action, "action").value
            )
        if reference is not None:
            query = query.where(InventoryLogEntry.reference == reference)
        query = query.order_by(InventoryLogEntry.occurred_at, InventoryLogEntry.id)
        if limit is not None:
            query = query.limit(limit)
        return [InventoryLogInfo.from_model(e) for e in self.session.execute(query).scalars()]

    def entries_for_reference(self, reference: str) -> list[InventoryLogInfo]:
        """All movements booked by one order or receiving number."""
        query = (
            select(InventoryLogEntry)
            .where(InventoryLogEntry.reference == reference)
            .order_by(InventoryLogEntry.occurred_at, InventoryLogEntry.product_id)
        )
        return [InventoryLogInfo.from_model(e) for e in self.session.execute(query).scalars()]

    def replay_quantity(self, product_id: UUID) -> int:
        return self.session.execute(
            select(func.coalesce(func.sum(InventoryLogEntry.quantity_changed), 0)).where(
                InventoryLogEntry.product_id == product_id
            )
        ).scalar_one()

    def ledger_discrepancies(self) -> list[LedgerDiscrepancy]:
        ledger = (
            select(
                InventoryLogEntry.product_id.label("product_id"),
                func.sum(InventoryLogEntry.quantity_changed).label("total"),
            )
            .group_by(InventoryLogEntry.product_id)
            .subquery()
        )
        rows = self.session.execute(
            select(Product.id, Product.sku, Product.quantity, func.coalesce(ledger.c.total, 0))
            .outerjoin(ledger, ledger.c.product_id == Product.id)
            .order_by(Product.sku)
        ).all()
        return [
            LedgerDiscrepancy(pid, sku, stored, int(replayed))
            for pid, sku, stored, replayed in rows
            if stored != int(replayed)
        ]
