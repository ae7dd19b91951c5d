"""
ReceivingService -- inbound deliveries from suppliers.

Responsibility:
    Creates receivings (supplier check, cost snapshot, numbering), moves
    them through RECEIVING_WORKFLOW, and soft-deletes them.

Architecture position:
    Kernel > Services.  Completion books stock through
    StockLedger.apply_movement and LocationService.shift_occupancy inside
    the same unit of work.

Invariants enforced:
    - Stock is added exactly once per receiving: only the
      Pending -> Completed edge moves stock, and Completed is terminal.
    - Completion is all-or-nothing across line items.
    - Occupancy of each product's location grows by the received quantity
      in the same transaction.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock
from warehouse_kernel.domain.dtos import (
    ActivityAction,
    ActivityEntity,
    Actor,
    OccupancyChange,
    ReceivingInfo,
    ReceivingLineRequest,
    ReceivingStatus,
    StockAction,
    StockMovement,
)
from warehouse_kernel.domain.validation import (
    RECEIVING_NOTES_MAX,
    line_subtotal,
    optional_text,
    require_choice,
    require_line_items,
)
from warehouse_kernel.domain.workflow import RECEIVING_DELETABLE_STATES, RECEIVING_WORKFLOW
from warehouse_kernel.exceptions import (
    DeletionNotAllowedError,
    InactiveSupplierError,
    ProductNotFoundError,
    ReceivingNotFoundError,
    SupplierNotFoundError,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.product import Product
from warehouse_kernel.models.receiving import Receiving, ReceivingItem
from warehouse_kernel.models.supplier import Supplier
from warehouse_kernel.notifications import Events, Notifier
from warehouse_kernel.services.base import WorkflowService
from warehouse_kernel.services.location_service import LocationService
from warehouse_kernel.services.sequence_service import SequenceService
from warehouse_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.receiving")


class ReceivingService(WorkflowService):
    """Receiving lifecycle operations."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: Notifier | None = None,
        auto_commit: bool = True,
        number_prefix: str = SequenceService.RECEIVING_PREFIX,
        number_width: int = 5,
    ):
        super().__init__(session, clock, notifier, auto_commit)
        self._number_prefix = number_prefix
        self._sequences = SequenceService(session, width=number_width)
        self._ledger = StockLedger(session, self._clock, self._notifier, auto_commit=False)
        self._locations = LocationService(session, self._clock, self._notifier, auto_commit=False)

    def create_receiving(
        self,
        supplier_id: UUID,
        items: Sequence[ReceivingLineRequest],
        actor: Actor,
        notes: str | None = None,
    ) -> ReceivingInfo:
        """
        Register a Pending delivery.

        Raises:
            SupplierNotFoundError: supplier missing or deleted.
            InactiveSupplierError: supplier exists but is INACTIVE.
            ProductNotFoundError: a product is missing or deleted.
            ValidationError: empty or duplicate line items, notes too long.
        """
        require_line_items(item.product_id for item in items)
        notes = optional_text(notes, "notes", RECEIVING_NOTES_MAX)

        def work() -> ReceivingInfo:
            supplier = self.session.get(Supplier, supplier_id)
            if supplier is None or supplier.is_deleted:
                raise SupplierNotFoundError(str(supplier_id))
            if not supplier.can_supply:
                raise InactiveSupplierError(str(supplier_id))

            ids = [item.product_id for item in items]
            products = {
                p.id: p
                for p in self.session.execute(
                    select(Product).where(Product.id.in_(ids))
                ).scalars()
            }
            receiving_items = []
            for position, item in enumerate(items):
                product = products.get(item.product_id)
                if product is None or product.is_deleted:
                    raise ProductNotFoundError(str(item.product_id))
                receiving_items.append(
                    ReceivingItem(
                        product_id=product.id,
                        position=position,
                        quantity=item.quantity,
                        unit_cost=item.unit_cost,
                        subtotal=line_subtotal(item.unit_cost, item.quantity),
                    )
                )

            receiving = Receiving(
                receiving_number=self._sequences.next_document_number(
                    self._number_prefix, self._clock.now().date()
                ),
                supplier_id=supplier.id,
                received_by_id=actor.actor_id,
                status=ReceivingStatus.PENDING.value,
                total_items=len(receiving_items),
                total_quantity=sum(i.quantity for i in receiving_items),
                notes=notes,
                items=receiving_items,
                created_by_id=actor.actor_id,
            )
            self.session.add(receiving)
            self.session.flush()
            return ReceivingInfo.from_model(receiving)

        info = self._atomic(
            "receiving_create",
            actor,
            work,
            supplier_id=str(supplier_id),
            item_count=len(items),
        )
        logger.info(
            "receiving_created",
            extra={
                "receiving_id": str(info.id),
                "receiving_number": info.receiving_number,
                "total_items": info.total_items,
                "total_quantity": info.total_quantity,
            },
        )
        self._activity.record(
            ActivityEntity.RECEIVING,
            info.id,
            ActivityAction.RECEIVING_CREATED,
            actor,
            new_values={
                "receivingNumber": info.receiving_number,
                "supplier": info.supplier_id,
                "totalItems": info.total_items,
                "totalQuantity": info.total_quantity,
                "status": info.status,
            },
        )
        self._notify(
            Events.RECEIVING_CREATED,
            {
                "receivingId": str(info.id),
                "receivingNumber": info.receiving_number,
                "supplierId": str(info.supplier_id),
                "totalQuantity": info.total_quantity,
                "status": info.status.value,
            },
            actor,
        )
        return info

    def transition_status(
        self,
        receiving_id: UUID,
        new_status: ReceivingStatus | str,
        actor: Actor,
    ) -> ReceivingInfo:
        """
        Complete or cancel a Pending receiving.

        Completion adds every line item's quantity to stock, or none of
        them.
        """
        target = require_choice(ReceivingStatus, new_status, "status")

        def work() -> tuple[ReceivingInfo, ReceivingStatus, list[StockMovement], list[OccupancyChange]]:
            receiving = self._lock_live_receiving(receiving_id)
            previous = ReceivingStatus(receiving.status)
            transition = RECEIVING_WORKFLOW.require(
                "Receiving", receiving.id, previous.value, target.value
            )

            movements: list[StockMovement] = []
            occupancy: list[OccupancyChange] = []
            if transition.moves_stock:
                movements, occupancy = self._book_stock(receiving, actor)

            receiving.status = target.value
            receiving.updated_by_id = actor.actor_id
            self.session.flush()
            return ReceivingInfo.from_model(receiving), previous, movements, occupancy

        info, previous, movements, occupancy = self._atomic(
            "receiving_transition",
            actor,
            work,
            receiving_id=str(receiving_id),
            requested_status=target.value,
        )
        logger.info(
            "receiving_status_updated",
            extra={
                "receiving_id": str(info.id),
                "receiving_number": info.receiving_number,
                "from_status": previous.value,
                "to_status": info.status.value,
                "stock_movements": len(movements),
            },
        )

        completed = info.status == ReceivingStatus.COMPLETED
        self._activity.record(
            ActivityEntity.RECEIVING,
            info.id,
            ActivityAction.RECEIVING_COMPLETED if completed else ActivityAction.RECEIVING_CANCELLED,
            actor,
            old_values={"status": previous},
            new_values={"status": info.status},
        )
        self._notify(
            Events.RECEIVING_COMPLETED if completed else Events.RECEIVING_CANCELLED,
            {
                "receivingId": str(info.id),
                "receivingNumber": info.receiving_number,
                "oldStatus": previous.value,
                "newStatus": info.status.value,
            },
            actor,
        )
        for movement in movements:
            self._notify(
                Events.INVENTORY_UPDATED,
                {
                    "productId": str(movement.product_id),
                    "sku": movement.sku,
                    "quantityChanged": movement.quantity_changed,
                    "newQuantity": movement.new_quantity,
                    "reference": info.receiving_number,
                },
                actor,
            )
        self._locations.publish_occupancy_changes(occupancy, actor)
        return info

    def delete_receiving(self, receiving_id: UUID, actor: Actor) -> ReceivingInfo:
        """Soft-delete a receiving that is Pending or Cancelled."""

        def work() -> ReceivingInfo:
            receiving = self._lock_live_receiving(receiving_id)
            status = ReceivingStatus(receiving.status)
            if status not in RECEIVING_DELETABLE_STATES:
                raise DeletionNotAllowedError("Receiving", str(receiving.id), status.value)
            receiving.mark_deleted(actor.actor_id, self._clock.now())
            self.session.flush()
            return ReceivingInfo.from_model(receiving)

        info = self._atomic("receiving_delete", actor, work, receiving_id=str(receiving_id))
        logger.info(
            "receiving_deleted",
            extra={"receiving_id": str(info.id), "receiving_number": info.receiving_number},
        )
        self._activity.record(
            ActivityEntity.RECEIVING,
            info.id,
            ActivityAction.RECEIVING_DELETED,
            actor,
            old_values={"status": info.status, "isDeleted": False},
            new_values={"isDeleted": True},
        )
        return info

    def _book_stock(
        self, receiving: Receiving, actor: Actor
    ) -> tuple[list[StockMovement], list[OccupancyChange]]:
        products = self._lock_products(item.product_id for item in receiving.items)
        movements: list[StockMovement] = []
        occupancy: list[OccupancyChange] = []
        note = f"Receiving {receiving.receiving_number} completed"

        for item in sorted(receiving.items, key=lambda i: str(i.product_id)):
            product = products.get(item.product_id)
            if product is None or product.is_deleted:
                raise ProductNotFoundError(str(item.product_id))
            entry = self._ledger.apply_movement(
                product,
                item.quantity,
                StockAction.ADD,
                actor,
                note=note,
                reference=receiving.receiving_number,
            )
            movements.append(
                StockMovement(
                    product_id=product.id,
                    sku=product.sku,
                    quantity_changed=entry.quantity_changed,
                    new_quantity=entry.new_quantity,
                    minimum_stock_level=product.minimum_stock_level,
                    location_id=product.location_id,
                )
            )
            if product.location_id is not None:
                change = self._locations.shift_occupancy(product.location_id, item.quantity)
                if change is not None:
                    occupancy.append(change)
        return movements, occupancy

    def _lock_live_receiving(self, receiving_id: UUID) -> Receiving:
        receiving = self.session.execute(
            select(Receiving)
            .where(Receiving.id == receiving_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if receiving is None or receiving.is_deleted:
            raise ReceivingNotFoundError(str(receiving_id))
        return receiving
