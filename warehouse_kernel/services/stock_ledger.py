"""
StockLedger -- the only writer of product quantities outside lifecycle
transitions.

Responsibility:
    Manual stock adjustments (ADD / REMOVE), stock-count corrections
    (UPDATE), and the ledger primitive ``apply_movement`` that the order and
    receiving workflows call inside their own unit of work.

Architecture position:
    Kernel > Services.  Uses LocationService for the post-commit occupancy
    refresh.

Invariants enforced:
    - Quantity never goes negative: REMOVE larger than the locked, freshly
      read quantity raises InsufficientStockError and mutates nothing.
    - Every quantity change is paired with exactly one InventoryLogEntry in
      the same transaction.

Failure modes:
    - ProductNotFoundError for missing or soft-deleted products.
    - InvalidQuantityError for non-positive adjustment quantities.
    - InsufficientStockError as above.
    - Occupancy refresh and notifications after commit are best-effort.

Audit relevance:
    InventoryLogEntry rows are append-only; replaying a product's entries
    reproduces its quantity.
"""

from __future__ import annotations

from uuid import UUID

from warehouse_kernel.domain.dtos import (
    Actor,
    AdjustmentResult,
    InventoryLogInfo,
    ProductInfo,
    StockAction,
)
from warehouse_kernel.domain.validation import (
    LEDGER_NOTE_MAX,
    optional_text,
    require_choice,
    require_non_negative_quantity,
    require_positive_quantity,
)
from warehouse_kernel.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
    ValidationError,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.inventory_log import InventoryLogEntry
from warehouse_kernel.models.product import Product
from warehouse_kernel.notifications import Events
from warehouse_kernel.services.base import WorkflowService
from warehouse_kernel.services.location_service import LocationService

logger = get_logger("services.stock_ledger")


class StockLedger(WorkflowService):
    """
    Atomic load-check-mutate-log for one product's quantity.

    Guarantees:
        - ``adjust`` and ``set_quantity`` commit (or release their savepoint)
          before any side effect runs.
        - Low stock (quantity <= minimum_stock_level) after an adjustment
          publishes ``lowStockAlert``; every adjustment publishes
          ``inventoryUpdated``.
    """

    def adjust(
        self,
        product_id: UUID,
        action: StockAction,
        quantity: int,
        actor: Actor,
        note: str | None = None,
    ) -> AdjustmentResult:
        """
        Add or remove ``quantity`` units.

        Raises:
            ValidationError: action is not ADD or REMOVE.
            InvalidQuantityError: quantity < 1.
            ProductNotFoundError: product missing or deleted.
            InsufficientStockError: REMOVE would go negative.
        """
        action = require_choice(StockAction, action, "action")
        if action not in (StockAction.ADD, StockAction.REMOVE):
            raise ValidationError("Adjustment action must be ADD or REMOVE", field="action")
        require_positive_quantity(quantity)
        note = optional_text(note, "note", LEDGER_NOTE_MAX)
        delta = quantity if action == StockAction.ADD else -quantity

        def work() -> AdjustmentResult:
            product = self._lock_live_product(product_id)
            entry = self.apply_movement(product, delta, action, actor, note=note)
            return AdjustmentResult(
                product=ProductInfo.from_model(product),
                entry=InventoryLogInfo.from_model(entry),
            )

        result = self._atomic(
            "stock_adjustment",
            actor,
            work,
            product_id=str(product_id),
            action=action.value,
            quantity=quantity,
        )
        logger.info(
            "stock_adjusted",
            extra={
                "product_id": str(product_id),
                "sku": result.product.sku,
                "action": action.value,
                "quantity_changed": delta,
                "new_quantity": result.product.quantity,
            },
        )
        self._after_commit(result, actor)
        return result

    def set_quantity(
        self,
        product_id: UUID,
        new_quantity: int,
        actor: Actor,
        note: str | None = None,
    ) -> AdjustmentResult:
        """
        Stock-count correction: set an absolute quantity and log the signed
        delta as an UPDATE entry.

        A count that matches the stored quantity changes nothing: no ledger
        entry is written, no event is published and ``result.entry`` is None.
        """
        require_non_negative_quantity(new_quantity)
        note = optional_text(note, "note", LEDGER_NOTE_MAX)

        def work() -> AdjustmentResult:
            product = self._lock_live_product(product_id)
            delta = new_quantity - product.quantity
            if delta == 0:
                return AdjustmentResult(product=ProductInfo.from_model(product), entry=None)
            entry = self.apply_movement(product, delta, StockAction.UPDATE, actor, note=note)
            return AdjustmentResult(
                product=ProductInfo.from_model(product),
                entry=InventoryLogInfo.from_model(entry),
            )

        result = self._atomic(
            "stock_count_correction",
            actor,
            work,
            product_id=str(product_id),
            new_quantity=new_quantity,
        )
        if result.entry is None:
            logger.info(
                "stock_count_confirmed",
                extra={"product_id": str(product_id), "quantity": result.product.quantity},
            )
            return result
        logger.info(
            "stock_count_corrected",
            extra={
                "product_id": str(product_id),
                "quantity_changed": result.entry.quantity_changed,
                "new_quantity": result.product.quantity,
            },
        )
        self._after_commit(result, actor)
        return result

    def apply_movement(
        self,
        product: Product,
        delta: int,
        action: StockAction,
        actor: Actor,
        note: str | None = None,
        reference: str | None = None,
    ) -> InventoryLogEntry:
        """
        Change ``product.quantity`` by ``delta`` and append the ledger entry.

        Preconditions:
            The caller holds the product's row lock and owns the transaction.

        Raises:
            InsufficientStockError: the result would be negative.
        """
        previous = product.quantity
        new_quantity = previous + delta
        if new_quantity < 0:
            raise InsufficientStockError(
                product_id=str(product.id),
                requested=-delta,
                available=previous,
                sku=product.sku,
            )
        product.quantity = new_quantity
        product.updated_by_id = actor.actor_id
        entry = InventoryLogEntry(
            product_id=product.id,
            action=action.value,
            quantity_changed=delta,
            previous_quantity=previous,
            new_quantity=new_quantity,
            performed_by_id=actor.actor_id,
            note=note,
            reference=reference,
            occurred_at=self._clock.now(),
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def _lock_live_product(self, product_id: UUID) -> Product:
        product = self._lock_products([product_id]).get(product_id)
        if product is None or product.is_deleted:
            raise ProductNotFoundError(str(product_id))
        return product

    def _after_commit(self, result: AdjustmentResult, actor: Actor) -> None:
        product = result.product

        if product.location_id is not None:
            locations = LocationService(
                self.session, self._clock, self._notifier, auto_commit=self._auto_commit
            )
            try:
                locations.recalculate(product.location_id, actor)
            except Exception:
                logger.error(
                    "occupancy_recalculation_failed",
                    extra={
                        "product_id": str(product.id),
                        "location_id": str(product.location_id),
                    },
                    exc_info=True,
                )

        if product.is_low_stock:
            logger.warning(
                "low_stock_detected",
                extra={
                    "product_id": str(product.id),
                    "sku": product.sku,
                    "quantity": product.quantity,
                    "minimum_stock_level": product.minimum_stock_level,
                },
            )
            self._notify(Events.LOW_STOCK_ALERT, low_stock_payload(product), actor)

        self._notify(
            Events.INVENTORY_UPDATED,
            {
                "productId": str(product.id),
                "sku": product.sku,
                "action": result.entry.action.value,
                "quantityChanged": result.entry.quantity_changed,
                "previousQuantity": result.entry.previous_quantity,
                "newQuantity": result.entry.new_quantity,
            },
            actor,
        )


def low_stock_payload(product: ProductInfo) -> dict:
    return {
        "productId": str(product.id),
        "sku": product.sku,
        "name": product.name,
        "quantity": product.quantity,
        "minimumStockLevel": product.minimum_stock_level,
    }
