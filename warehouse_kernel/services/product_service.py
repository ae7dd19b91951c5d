"""
Service layer for the product catalogue.

Registers products, edits their descriptive fields, and soft-deletes them.
Quantities are deliberately not editable here: stock moves only through
StockLedger and the order/receiving workflows so every change is logged.
Initial stock on registration is booked as an ADD ledger entry.

Returns ProductInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from warehouse_kernel.domain.dtos import (
    ActivityAction,
    ActivityEntity,
    Actor,
    ProductInfo,
    StockAction,
)
from warehouse_kernel.domain.validation import (
    normalize_sku,
    optional_text,
    require_money,
    require_non_negative_quantity,
    require_text,
)
from warehouse_kernel.exceptions import (
    DuplicateSKUError,
    ProductNotFoundError,
    SupplierNotFoundError,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.product import Product
from warehouse_kernel.models.supplier import Supplier
from warehouse_kernel.services.base import WorkflowService
from warehouse_kernel.services.location_service import LocationService
from warehouse_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.product")


class ProductService(WorkflowService):
    """
    Product registration and maintenance.

    Location assignment is LocationService.assign_product; quantity changes
    are StockLedger.
    """

    def create_product(
        self,
        sku: str,
        name: str,
        actor: Actor,
        unit_price: Decimal | str | int = Decimal("0"),
        minimum_stock_level: int = 0,
        initial_quantity: int = 0,
        supplier_id: UUID | None = None,
        category_id: UUID | None = None,
        description: str | None = None,
    ) -> ProductInfo:
        sku = normalize_sku(sku)
        name = require_text(name, "name", max_length=200)
        price = require_money(unit_price, "unit_price")
        require_non_negative_quantity(minimum_stock_level, "minimum_stock_level")
        require_non_negative_quantity(initial_quantity, "initial_quantity")
        description = optional_text(description, "description", 2000)

        def work() -> ProductInfo:
            self._ensure_sku_free(sku)
            if supplier_id is not None:
                self._require_supplier(supplier_id)
            product = Product(
                sku=sku,
                name=name,
                description=description,
                quantity=0,
                minimum_stock_level=minimum_stock_level,
                unit_price=price,
                supplier_id=supplier_id,
                category_id=category_id,
                created_by_id=actor.actor_id,
            )
            self.session.add(product)
            self.session.flush()
            if initial_quantity:
                StockLedger(self.session, self._clock, auto_commit=False).apply_movement(
                    product,
                    initial_quantity,
                    StockAction.ADD,
                    actor,
                    note="Initial stock",
                )
            return ProductInfo.from_model(product)

        info = self._atomic("product_create", actor, work, sku=sku)
        logger.info(
            "product_created",
            extra={"product_id": str(info.id), "sku": info.sku, "quantity": info.quantity},
        )
        self._activity.record(
            ActivityEntity.INVENTORY,
            info.id,
            ActivityAction.PRODUCT_CREATED,
            actor,
            new_values={"sku": info.sku, "name": info.name, "quantity": info.quantity},
        )
        return info

    def update_product(
        self,
        product_id: UUID,
        actor: Actor,
        sku: str | None = None,
        name: str | None = None,
        unit_price: Decimal | str | int | None = None,
        minimum_stock_level: int | None = None,
        description: str | None = None,
        supplier_id: UUID | None = None,
        category_id: UUID | None = None,
    ) -> ProductInfo:
        """Update descriptive fields; None leaves a field unchanged."""
        changes: dict = {}
        if sku is not None:
            changes["sku"] = normalize_sku(sku)
        if name is not None:
            changes["name"] = require_text(name, "name", max_length=200)
        if unit_price is not None:
            changes["unit_price"] = require_money(unit_price, "unit_price")
        if minimum_stock_level is not None:
            changes["minimum_stock_level"] = require_non_negative_quantity(
                minimum_stock_level, "minimum_stock_level"
            )
        if description is not None:
            changes["description"] = optional_text(description, "description", 2000)
        if supplier_id is not None:
            changes["supplier_id"] = supplier_id
        if category_id is not None:
            changes["category_id"] = category_id

        def work() -> tuple[ProductInfo, dict]:
            product = self._get_live(product_id)
            if "sku" in changes and changes["sku"] != product.sku:
                self._ensure_sku_free(changes["sku"], exclude_id=product.id)
            if "supplier_id" in changes:
                self._require_supplier(changes["supplier_id"])
            old_values = {key: getattr(product, key) for key in changes}
            for key, value in changes.items():
                setattr(product, key, value)
            product.updated_by_id = actor.actor_id
            self.session.flush()
            return ProductInfo.from_model(product), old_values

        info, old_values = self._atomic("product_update", actor, work, product_id=str(product_id))
        logger.info(
            "product_updated",
            extra={"product_id": str(info.id), "fields": sorted(changes)},
        )
        self._activity.record(
            ActivityEntity.INVENTORY,
            info.id,
            ActivityAction.PRODUCT_UPDATED,
            actor,
            old_values=old_values,
            new_values=changes,
        )
        return info

    def delete_product(self, product_id: UUID, actor: Actor) -> ProductInfo:
        """
        Soft-delete a product.  Its quantity stops counting toward its
        location's occupancy in the same unit of work.
        """
        locations = LocationService(self.session, self._clock, self._notifier, auto_commit=False)

        def work() -> tuple[ProductInfo, list]:
            product = self._lock_products([product_id]).get(product_id)
            if product is None or product.is_deleted:
                raise ProductNotFoundError(str(product_id))
            product.mark_deleted(actor.actor_id, self._clock.now())
            changes = []
            if product.location_id is not None and product.quantity:
                change = locations.shift_occupancy(product.location_id, -product.quantity)
                if change is not None:
                    changes.append(change)
            self.session.flush()
            return ProductInfo.from_model(product), changes

        info, changes = self._atomic("product_delete", actor, work, product_id=str(product_id))
        logger.info("product_deleted", extra={"product_id": str(info.id), "sku": info.sku})
        self._activity.record(
            ActivityEntity.INVENTORY,
            info.id,
            ActivityAction.PRODUCT_DELETED,
            actor,
            new_values={"isDeleted": True},
        )
        locations.publish_occupancy_changes(changes, actor)
        return info

    def _get_live(self, product_id: UUID) -> Product:
        product = self.session.get(Product, product_id)
        if product is None or product.is_deleted:
            raise ProductNotFoundError(str(product_id))
        return product

    def _require_supplier(self, supplier_id: UUID) -> Supplier:
        supplier = self.session.get(Supplier, supplier_id)
        if supplier is None or supplier.is_deleted:
            raise SupplierNotFoundError(str(supplier_id))
        return supplier

    def _ensure_sku_free(self, sku: str, exclude_id: UUID | None = None) -> None:
        query = select(Product.id).where(Product.sku == sku, Product.is_deleted.is_(False))
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        if self.session.execute(query).first() is not None:
            raise DuplicateSKUError(sku)
