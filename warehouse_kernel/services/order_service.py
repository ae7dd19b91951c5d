"""
OrderService -- the order fulfillment state machine.

Responsibility:
    Creates orders (price snapshot, numbering, availability check), assigns
    staff, moves orders through ORDER_WORKFLOW, and soft-deletes them.

Architecture position:
    Kernel > Services.  Uses StockLedger.apply_movement and
    LocationService.shift_occupancy as flush-level primitives inside its own
    unit of work.

Invariants enforced:
    - Only edges of ORDER_WORKFLOW are taken; Cancelled only from Pending or
      Picking.
    - Packed -> Shipped deducts every line item or none: products are
      row-locked in ascending id order, re-read, checked, deducted and
      logged (REMOVE, referencing the order number) in one transaction.
      Two concurrent shipments of the same product serialize on the row
      lock; the loser re-reads the reduced quantity and fails with
      InsufficientStockError.
    - Order creation checks availability but reserves nothing.
    - Shipped and Delivered orders cannot be deleted.

Failure modes:
    - OrderNotFoundError, ProductNotFoundError, UserNotFoundError.
    - InvalidTransitionError, DeletionNotAllowedError.
    - InsufficientStockError (creation-time or ship-time).
    - ValidationError subclasses for malformed requests.

Audit relevance:
    Activity entries (ORDER_CREATED, STATUS_UPDATED, ORDER_CANCELLED,
    STAFF_ASSIGNED, ORDER_DELETED) are written after commit, best-effort.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock
from warehouse_kernel.domain.dtos import (
    ActivityAction,
    ActivityEntity,
    Actor,
    OccupancyChange,
    OrderInfo,
    OrderLineRequest,
    OrderStatus,
    StockAction,
    StockMovement,
)
from warehouse_kernel.domain.validation import (
    CUSTOMER_NAME_MAX,
    CUSTOMER_NAME_MIN,
    line_subtotal,
    require_choice,
    require_line_items,
    require_text,
    to_cents,
)
from warehouse_kernel.domain.workflow import ORDER_DELETABLE_STATES, ORDER_WORKFLOW
from warehouse_kernel.exceptions import (
    DeletionNotAllowedError,
    InsufficientStockError,
    InvalidAssigneeError,
    OrderNotFoundError,
    ProductNotFoundError,
    UserNotFoundError,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.order import Order, OrderItem
from warehouse_kernel.models.product import Product
from warehouse_kernel.models.user import User
from warehouse_kernel.notifications import Events, Notifier
from warehouse_kernel.services.base import WorkflowService
from warehouse_kernel.services.location_service import LocationService
from warehouse_kernel.services.sequence_service import SequenceService
from warehouse_kernel.services.stock_ledger import StockLedger, low_stock_payload

logger = get_logger("services.order")


class OrderService(WorkflowService):
    """
    Order lifecycle operations.

    Guarantees:
        - Every public mutator returns an OrderInfo reflecting committed state.
        - Side effects (activity, notifications) never run for a rolled-back
          operation.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: Notifier | None = None,
        auto_commit: bool = True,
        number_prefix: str = SequenceService.ORDER_PREFIX,
        number_width: int = 5,
    ):
        super().__init__(session, clock, notifier, auto_commit)
        self._number_prefix = number_prefix
        self._sequences = SequenceService(session, width=number_width)
        self._ledger = StockLedger(session, self._clock, self._notifier, auto_commit=False)
        self._locations = LocationService(session, self._clock, self._notifier, auto_commit=False)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_order(
        self,
        customer_name: str,
        items: Sequence[OrderLineRequest],
        actor: Actor,
    ) -> OrderInfo:
        """
        Create a Pending order.

        Raises:
            ValidationError: bad customer name, no items, duplicate products.
            ProductNotFoundError: a product is missing or deleted.
            InsufficientStockError: a product lacks the requested quantity
                right now (nothing is reserved).
        """
        customer_name = require_text(
            customer_name, "customer_name", CUSTOMER_NAME_MIN, CUSTOMER_NAME_MAX
        )
        require_line_items(item.product_id for item in items)

        def work() -> OrderInfo:
            products = self._load_products(item.product_id for item in items)
            order_items: list[OrderItem] = []
            for position, item in enumerate(items):
                product = products.get(item.product_id)
                if product is None or product.is_deleted:
                    raise ProductNotFoundError(str(item.product_id))
                if product.quantity < item.quantity:
                    raise InsufficientStockError(
                        product_id=str(product.id),
                        requested=item.quantity,
                        available=product.quantity,
                        sku=product.sku,
                    )
                unit_price = Decimal(product.unit_price)
                order_items.append(
                    OrderItem(
                        product_id=product.id,
                        position=position,
                        quantity=item.quantity,
                        unit_price=unit_price,
                        subtotal=line_subtotal(unit_price, item.quantity),
                    )
                )

            order = Order(
                order_number=self._sequences.next_document_number(
                    self._number_prefix, self._clock.now().date()
                ),
                customer_name=customer_name,
                status=OrderStatus.PENDING.value,
                total_amount=to_cents(sum((i.subtotal for i in order_items), Decimal("0"))),
                items=order_items,
                created_by_id=actor.actor_id,
            )
            self.session.add(order)
            self.session.flush()
            return OrderInfo.from_model(order)

        info = self._atomic("order_create", actor, work, item_count=len(items))
        logger.info(
            "order_created",
            extra={
                "order_id": str(info.id),
                "order_number": info.order_number,
                "item_count": len(info.items),
                "total_amount": info.total_amount,
            },
        )
        self._activity.record(
            ActivityEntity.ORDER,
            info.id,
            ActivityAction.ORDER_CREATED,
            actor,
            new_values={
                "orderNumber": info.order_number,
                "customerName": info.customer_name,
                "totalAmount": info.total_amount,
                "status": info.status,
                "items": [
                    {"productId": i.product_id, "quantity": i.quantity, "unitPrice": i.unit_price}
                    for i in info.items
                ],
            },
        )
        self._notify(
            Events.ORDER_CREATED,
            {
                "orderId": str(info.id),
                "orderNumber": info.order_number,
                "customerName": info.customer_name,
                "totalAmount": str(info.total_amount),
                "status": info.status.value,
            },
            actor,
        )
        return info

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def transition_status(
        self,
        order_id: UUID,
        new_status: OrderStatus | str,
        actor: Actor,
    ) -> OrderInfo:
        """
        Move an order along ORDER_WORKFLOW.

        Shipping deducts stock for every line item atomically; if any item
        fails the order stays Packed and no quantity changes.

        Raises:
            ValidationError: ``new_status`` is not an order status.
            OrderNotFoundError, InvalidTransitionError,
            ProductNotFoundError, InsufficientStockError.
        """
        target = require_choice(OrderStatus, new_status, "status")

        def work() -> tuple[OrderInfo, OrderStatus, list[StockMovement], list[OccupancyChange]]:
            order = self._lock_live_order(order_id)
            previous = OrderStatus(order.status)
            transition = ORDER_WORKFLOW.require("Order", order.id, previous.value, target.value)

            movements: list[StockMovement] = []
            occupancy: list[OccupancyChange] = []
            if transition.moves_stock:
                movements, occupancy = self._ship(order, actor)

            order.status = target.value
            order.updated_by_id = actor.actor_id
            self.session.flush()
            return OrderInfo.from_model(order), previous, movements, occupancy

        info, previous, movements, occupancy = self._atomic(
            "order_transition",
            actor,
            work,
            order_id=str(order_id),
            requested_status=target.value,
        )
        logger.info(
            "order_status_updated",
            extra={
                "order_id": str(info.id),
                "order_number": info.order_number,
                "from_status": previous.value,
                "to_status": info.status.value,
                "stock_movements": len(movements),
            },
        )

        cancelled = info.status == OrderStatus.CANCELLED
        self._activity.record(
            ActivityEntity.ORDER,
            info.id,
            ActivityAction.ORDER_CANCELLED if cancelled else ActivityAction.STATUS_UPDATED,
            actor,
            old_values={"status": previous},
            new_values={"status": info.status},
        )
        self._notify(
            Events.ORDER_CANCELLED if cancelled else Events.ORDER_STATUS_UPDATED,
            {
                "orderId": str(info.id),
                "orderNumber": info.order_number,
                "oldStatus": previous.value,
                "newStatus": info.status.value,
            },
            actor,
        )
        self._publish_movements(movements, info.order_number, actor)
        self._locations.publish_occupancy_changes(occupancy, actor)
        return info

    def assign_staff(self, order_id: UUID, staff_id: UUID, actor: Actor) -> OrderInfo:
        """
        Assign an active, non-deleted user to the order.

        Raises:
            OrderNotFoundError, UserNotFoundError, InvalidAssigneeError.
        """

        def work() -> tuple[OrderInfo, UUID | None]:
            order = self._lock_live_order(order_id)
            user = self.session.get(User, staff_id)
            if user is None or user.is_deleted:
                raise UserNotFoundError(str(staff_id))
            if not user.is_active:
                raise InvalidAssigneeError(str(staff_id), "user is inactive")
            previous = order.assigned_staff_id
            order.assigned_staff_id = user.id
            order.updated_by_id = actor.actor_id
            self.session.flush()
            return OrderInfo.from_model(order), previous

        info, previous = self._atomic(
            "order_staff_assignment",
            actor,
            work,
            order_id=str(order_id),
            staff_id=str(staff_id),
        )
        logger.info(
            "order_staff_assigned",
            extra={"order_id": str(info.id), "staff_id": str(staff_id)},
        )
        self._activity.record(
            ActivityEntity.ORDER,
            info.id,
            ActivityAction.STAFF_ASSIGNED,
            actor,
            old_values={"assignedStaff": previous},
            new_values={"assignedStaff": staff_id},
        )
        self._notify(
            Events.ORDER_STAFF_ASSIGNED,
            {
                "orderId": str(info.id),
                "orderNumber": info.order_number,
                "assignedStaff": str(staff_id),
            },
            actor,
        )
        return info

    def delete_order(self, order_id: UUID, actor: Actor) -> OrderInfo:
        """
        Soft-delete an order that has not left the warehouse.

        Raises:
            OrderNotFoundError, DeletionNotAllowedError (Shipped/Delivered).
        """

        def work() -> OrderInfo:
            order = self._lock_live_order(order_id)
            status = OrderStatus(order.status)
            if status not in ORDER_DELETABLE_STATES:
                raise DeletionNotAllowedError("Order", str(order.id), status.value)
            order.mark_deleted(actor.actor_id, self._clock.now())
            self.session.flush()
            return OrderInfo.from_model(order)

        info = self._atomic("order_delete", actor, work, order_id=str(order_id))
        logger.info(
            "order_deleted",
            extra={"order_id": str(info.id), "order_number": info.order_number},
        )
        self._activity.record(
            ActivityEntity.ORDER,
            info.id,
            ActivityAction.ORDER_DELETED,
            actor,
            old_values={"status": info.status, "isDeleted": False},
            new_values={"isDeleted": True},
        )
        return info

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ship(
        self, order: Order, actor: Actor
    ) -> tuple[list[StockMovement], list[OccupancyChange]]:
        products = self._lock_products(item.product_id for item in order.items)
        movements: list[StockMovement] = []
        occupancy: list[OccupancyChange] = []
        note = f"Order {order.order_number} shipped"

        for item in sorted(order.items, key=lambda i: str(i.product_id)):
            product = products.get(item.product_id)
            if product is None or product.is_deleted:
                raise ProductNotFoundError(str(item.product_id))
            entry = self._ledger.apply_movement(
                product,
                -item.quantity,
                StockAction.REMOVE,
                actor,
                note=note,
                reference=order.order_number,
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
                change = self._locations.shift_occupancy(product.location_id, -item.quantity)
                if change is not None:
                    occupancy.append(change)
        return movements, occupancy

    def _publish_movements(
        self, movements: list[StockMovement], reference: str, actor: Actor
    ) -> None:
        for movement in movements:
            self._notify(
                Events.INVENTORY_UPDATED,
                {
                    "productId": str(movement.product_id),
                    "sku": movement.sku,
                    "quantityChanged": movement.quantity_changed,
                    "newQuantity": movement.new_quantity,
                    "reference": reference,
                },
                actor,
            )
            if movement.is_low_stock:
                logger.warning(
                    "low_stock_detected",
                    extra={
                        "product_id": str(movement.product_id),
                        "sku": movement.sku,
                        "quantity": movement.new_quantity,
                        "minimum_stock_level": movement.minimum_stock_level,
                    },
                )
                self._notify(
                    Events.LOW_STOCK_ALERT,
                    {
                        "productId": str(movement.product_id),
                        "sku": movement.sku,
                        "quantity": movement.new_quantity,
                        "minimumStockLevel": movement.minimum_stock_level,
                    },
                    actor,
                )

    def _load_products(self, product_ids) -> dict[UUID, Product]:
        ids = list(product_ids)
        rows = self.session.execute(select(Product).where(Product.id.in_(ids))).scalars()
        return {p.id: p for p in rows}

    def _lock_live_order(self, order_id: UUID) -> Order:
        order = self.session.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if order is None or order.is_deleted:
            raise OrderNotFoundError(str(order_id))
        return order
