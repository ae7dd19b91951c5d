"""
Tests for OrderService.

Covers:
- Creation: price snapshot, totals, numbering, availability check
- Lifecycle edges of the order workflow (and rejected edges)
- Shipment: all-or-nothing stock deduction, ledger references, occupancy
- Cancellation and deletion rules
- Staff assignment
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from warehouse_kernel.domain.dtos import (
    ActivityAction,
    ActivityEntity,
    OrderLineRequest,
    OrderStatus,
    StockAction,
    UserRole,
)
from warehouse_kernel.exceptions import (
    DeletionNotAllowedError,
    DuplicateLineItemError,
    EmptyLineItemsError,
    InsufficientStockError,
    InvalidAssigneeError,
    InvalidQuantityError,
    InvalidTransitionError,
    OrderNotFoundError,
    ProductNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from warehouse_kernel.models.location import Location
from warehouse_kernel.models.order import Order
from warehouse_kernel.models.product import Product
from warehouse_kernel.notifications import Events
from warehouse_kernel.selectors import ActivitySelector, InventorySelector

_TO_PACKED = (OrderStatus.PICKING, OrderStatus.PACKED)


def _advance(services, order_id, actor, *statuses):
    info = None
    for status in statuses:
        info = services.orders.transition_status(order_id, status, actor)
    return info


class TestCreateOrder:
    """Order creation."""

    def test_snapshot_and_total(self, services, manager, make_product):
        widget = make_product(quantity=10, unit_price="2.50")
        gadget = make_product(quantity=5, unit_price="19.99")

        info = services.orders.create_order(
            "Acme Corp",
            [OrderLineRequest(widget.id, 4), OrderLineRequest(gadget.id, 1)],
            manager,
        )

        assert info.status == OrderStatus.PENDING
        assert info.order_number == "ORD-20240101-00001"
        assert info.total_amount == Decimal("29.99")
        assert [i.subtotal for i in info.items] == [Decimal("10.00"), Decimal("19.99")]

    def test_price_change_does_not_touch_existing_order(self, services, manager, admin, make_product):
        product = make_product(quantity=10, unit_price="5.00")
        info = services.orders.create_order("Acme", [OrderLineRequest(product.id, 2)], manager)

        services.products.update_product(product.id, admin, unit_price="9.00")

        stored = services.session.get(Order, info.id)
        assert stored.items[0].unit_price == Decimal("5.00")
        assert stored.total_amount == Decimal("10.00")

    def test_numbers_increment(self, services, manager, make_product):
        product = make_product(quantity=10)
        first = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        second = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        assert first.order_number == "ORD-20240101-00001"
        assert second.order_number == "ORD-20240101-00002"

    def test_numbering_restarts_each_day(self, services, manager, make_product, clock):
        product = make_product(quantity=10)
        services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        clock.advance(seconds=86400)
        info = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        assert info.order_number == "ORD-20240102-00001"

    def test_creation_reserves_nothing(self, services, manager, make_product, session):
        product = make_product(quantity=3)
        services.orders.create_order("Acme", [OrderLineRequest(product.id, 3)], manager)
        services.orders.create_order("Acme", [OrderLineRequest(product.id, 3)], manager)
        assert session.get(Product, product.id).quantity == 3

    def test_insufficient_stock(self, services, manager, make_product, session):
        product = make_product(quantity=2)
        with pytest.raises(InsufficientStockError) as exc_info:
            services.orders.create_order("Acme", [OrderLineRequest(product.id, 3)], manager)
        assert exc_info.value.requested == 3
        assert exc_info.value.available == 2
        assert session.query(Order).count() == 0

    def test_unknown_product(self, services, manager):
        with pytest.raises(ProductNotFoundError):
            services.orders.create_order("Acme", [OrderLineRequest(uuid4(), 1)], manager)

    def test_deleted_product(self, services, manager, admin, make_product):
        product = make_product(quantity=5)
        services.products.delete_product(product.id, admin)
        with pytest.raises(ProductNotFoundError):
            services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)

    def test_empty_items(self, services, manager):
        with pytest.raises(EmptyLineItemsError):
            services.orders.create_order("Acme", [], manager)

    def test_duplicate_items(self, services, manager, make_product):
        product = make_product(quantity=5)
        with pytest.raises(DuplicateLineItemError):
            services.orders.create_order(
                "Acme",
                [OrderLineRequest(product.id, 1), OrderLineRequest(product.id, 2)],
                manager,
            )

    def test_zero_quantity(self):
        with pytest.raises(InvalidQuantityError):
            OrderLineRequest(uuid4(), 0)

    def test_customer_name_too_short(self, services, manager, make_product):
        product = make_product(quantity=5)
        with pytest.raises(ValidationError):
            services.orders.create_order("A", [OrderLineRequest(product.id, 1)], manager)

    def test_notification_and_activity(self, services, manager, make_product, channel, session):
        product = make_product(quantity=5)
        info = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)

        payload = channel.named(Events.ORDER_CREATED)[0]
        assert payload["orderNumber"] == info.order_number
        assert payload["updatedBy"] == str(manager.actor_id)
        entries = ActivitySelector(session).for_entity(ActivityEntity.ORDER, info.id)
        assert [e.action for e in entries] == [ActivityAction.ORDER_CREATED]


class TestOrderLifecycle:
    """Workflow edges."""

    def test_full_lifecycle(self, services, manager, make_product, session):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 4)], manager)

        for status in (
            OrderStatus.PICKING,
            OrderStatus.PACKED,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        ):
            info = services.orders.transition_status(order.id, status, manager)
            assert info.status == status

        assert session.get(Product, product.id).quantity == 6

    @pytest.mark.parametrize(
        "path, target",
        [
            ((), OrderStatus.PACKED),
            ((), OrderStatus.SHIPPED),
            ((OrderStatus.PICKING,), OrderStatus.PENDING),
            (_TO_PACKED, OrderStatus.CANCELLED),
            (_TO_PACKED + (OrderStatus.SHIPPED,), OrderStatus.CANCELLED),
            ((OrderStatus.CANCELLED,), OrderStatus.PENDING),
        ],
    )
    def test_invalid_edges_leave_state(self, services, manager, make_product, session, path, target):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        before = _advance(services, order.id, manager, *path) if path else order
        quantity_before = session.get(Product, product.id).quantity

        with pytest.raises(InvalidTransitionError) as exc_info:
            services.orders.transition_status(order.id, target, manager)

        assert exc_info.value.current_status == before.status.value
        assert session.get(Order, order.id).status == before.status.value
        assert session.get(Product, product.id).quantity == quantity_before

    def test_unknown_status_is_validation_error(self, services, manager, make_product, session):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        _advance(services, order.id, manager, *_TO_PACKED)

        with pytest.raises(ValidationError) as exc_info:
            services.orders.transition_status(order.id, "Shipping", manager)

        assert exc_info.value.field == "status"
        assert session.get(Order, order.id).status == OrderStatus.PACKED.value
        assert session.get(Product, product.id).quantity == 10

    def test_delivered_is_terminal(self, services, manager, make_product):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        _advance(services, order.id, manager, *_TO_PACKED, OrderStatus.SHIPPED, OrderStatus.DELIVERED)
        with pytest.raises(InvalidTransitionError):
            services.orders.transition_status(order.id, OrderStatus.CANCELLED, manager)

    @pytest.mark.parametrize("path", [(), (OrderStatus.PICKING,)])
    def test_cancel_early(self, services, manager, make_product, channel, path):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        if path:
            _advance(services, order.id, manager, *path)

        info = services.orders.transition_status(order.id, OrderStatus.CANCELLED, manager)

        assert info.status == OrderStatus.CANCELLED
        assert channel.named(Events.ORDER_CANCELLED)[0]["newStatus"] == "Cancelled"

    def test_unknown_order(self, services, manager):
        with pytest.raises(OrderNotFoundError):
            services.orders.transition_status(uuid4(), OrderStatus.PICKING, manager)

    def test_status_notification(self, services, manager, make_product, channel):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        services.orders.transition_status(order.id, OrderStatus.PICKING, manager)

        payload = channel.named(Events.ORDER_STATUS_UPDATED)[0]
        assert payload["oldStatus"] == "Pending"
        assert payload["newStatus"] == "Picking"


class TestShipment:
    """Packed -> Shipped stock deduction."""

    def test_deducts_every_item(self, services, manager, make_product, session):
        a = make_product(quantity=10)
        b = make_product(quantity=8)
        order = services.orders.create_order(
            "Acme", [OrderLineRequest(a.id, 3), OrderLineRequest(b.id, 8)], manager
        )
        _advance(services, order.id, manager, *_TO_PACKED, OrderStatus.SHIPPED)

        assert session.get(Product, a.id).quantity == 7
        assert session.get(Product, b.id).quantity == 0

    def test_all_or_nothing(self, services, manager, admin, make_product, session):
        plenty = make_product(quantity=10)
        scarce = make_product(quantity=5)
        order = services.orders.create_order(
            "Acme", [OrderLineRequest(plenty.id, 2), OrderLineRequest(scarce.id, 5)], manager
        )
        _advance(services, order.id, manager, *_TO_PACKED)
        services.stock_ledger.adjust(scarce.id, StockAction.REMOVE, 3, admin)

        with pytest.raises(InsufficientStockError) as exc_info:
            services.orders.transition_status(order.id, OrderStatus.SHIPPED, manager)

        assert exc_info.value.product_id == str(scarce.id)
        assert session.get(Order, order.id).status == OrderStatus.PACKED.value
        assert session.get(Product, plenty.id).quantity == 10
        assert session.get(Product, scarce.id).quantity == 2
        assert InventorySelector(session).entries_for_reference(order.order_number) == []

    def test_failed_shipment_can_be_retried(self, services, manager, admin, make_product, session):
        product = make_product(quantity=5)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 5)], manager)
        _advance(services, order.id, manager, *_TO_PACKED)
        services.stock_ledger.adjust(product.id, StockAction.REMOVE, 1, admin)

        with pytest.raises(InsufficientStockError):
            services.orders.transition_status(order.id, OrderStatus.SHIPPED, manager)

        services.stock_ledger.adjust(product.id, StockAction.ADD, 1, admin)
        info = services.orders.transition_status(order.id, OrderStatus.SHIPPED, manager)
        assert info.status == OrderStatus.SHIPPED
        assert session.get(Product, product.id).quantity == 0

    def test_ledger_entries_reference_order(self, services, manager, make_product, session):
        a = make_product(quantity=10)
        b = make_product(quantity=10)
        order = services.orders.create_order(
            "Acme", [OrderLineRequest(a.id, 2), OrderLineRequest(b.id, 3)], manager
        )
        _advance(services, order.id, manager, *_TO_PACKED, OrderStatus.SHIPPED)

        entries = InventorySelector(session).entries_for_reference(order.order_number)
        assert {(e.product_id, e.quantity_changed) for e in entries} == {(a.id, -2), (b.id, -3)}
        for entry in entries:
            assert entry.action == StockAction.REMOVE
            assert entry.new_quantity == entry.previous_quantity + entry.quantity_changed
            assert order.order_number in entry.note

    def test_ledger_matches_quantities(self, services, manager, make_product, session):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 4)], manager)
        _advance(services, order.id, manager, *_TO_PACKED, OrderStatus.SHIPPED)

        assert InventorySelector(session).ledger_discrepancies() == []

    def test_occupancy_decremented(self, services, manager, admin, make_product, make_location, session, channel):
        location = make_location(capacity=100)
        product = make_product(quantity=20)
        services.locations.assign_product(location.id, product.id, admin)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 6)], manager)
        _advance(services, order.id, manager, *_TO_PACKED)
        channel.clear()

        services.orders.transition_status(order.id, OrderStatus.SHIPPED, manager)

        assert session.get(Location, location.id).current_occupancy == 14
        occupancy = channel.named(Events.LOCATION_OCCUPANCY_UPDATED)
        assert occupancy[0]["currentOccupancy"] == 14

    def test_inventory_and_low_stock_events(self, services, manager, make_product, channel, captured_logs):
        product = make_product(quantity=10, minimum_stock_level=5)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 6)], manager)
        _advance(services, order.id, manager, *_TO_PACKED)
        channel.clear()

        services.orders.transition_status(order.id, OrderStatus.SHIPPED, manager)

        updated = channel.named(Events.INVENTORY_UPDATED)[0]
        assert updated["quantityChanged"] == -6
        assert updated["newQuantity"] == 4
        assert updated["reference"] == order.order_number
        alert = channel.named(Events.LOW_STOCK_ALERT)[0]
        assert alert["quantity"] == 4
        assert any(r["message"] == "low_stock_detected" for r in captured_logs())

    def test_rejection_logged(self, services, manager, admin, make_product, captured_logs):
        product = make_product(quantity=5)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 5)], manager)
        _advance(services, order.id, manager, *_TO_PACKED)
        services.stock_ledger.adjust(product.id, StockAction.REMOVE, 5, admin)

        with pytest.raises(InsufficientStockError):
            services.orders.transition_status(order.id, OrderStatus.SHIPPED, manager)

        rejected = [r for r in captured_logs() if r["message"] == "order_transition_rejected"]
        assert rejected[0]["error_code"] == "INSUFFICIENT_STOCK"

    def test_delivery_moves_no_stock(self, services, manager, make_product, session):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 4)], manager)
        _advance(services, order.id, manager, *_TO_PACKED, OrderStatus.SHIPPED)
        services.orders.transition_status(order.id, OrderStatus.DELIVERED, manager)

        assert session.get(Product, product.id).quantity == 6
        assert len(InventorySelector(session).ledger_history(product.id, action=StockAction.REMOVE)) == 1


class TestDeleteOrder:
    """Soft deletion."""

    @pytest.mark.parametrize("path", [(), (OrderStatus.PICKING,), _TO_PACKED, (OrderStatus.CANCELLED,)])
    def test_deletable(self, services, manager, make_product, session, path):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        if path:
            _advance(services, order.id, manager, *path)

        info = services.orders.delete_order(order.id, manager)

        assert info.is_deleted
        with pytest.raises(OrderNotFoundError):
            services.orders.transition_status(order.id, OrderStatus.PICKING, manager)

    @pytest.mark.parametrize(
        "path",
        [_TO_PACKED + (OrderStatus.SHIPPED,), _TO_PACKED + (OrderStatus.SHIPPED, OrderStatus.DELIVERED)],
    )
    def test_not_deletable_after_shipping(self, services, manager, make_product, session, path):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        _advance(services, order.id, manager, *path)

        with pytest.raises(DeletionNotAllowedError):
            services.orders.delete_order(order.id, manager)
        assert not session.get(Order, order.id).is_deleted


class TestAssignStaff:
    """Staff assignment."""

    def test_assign(self, services, manager, make_product, staff_user, channel):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)

        info = services.orders.assign_staff(order.id, staff_user.id, manager)

        assert info.assigned_staff_id == staff_user.id
        assert channel.named(Events.ORDER_STAFF_ASSIGNED)[0]["assignedStaff"] == str(staff_user.id)

    def test_inactive_user(self, services, manager, make_product, make_user):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        inactive = make_user(UserRole.STAFF, is_active=False)
        with pytest.raises(InvalidAssigneeError):
            services.orders.assign_staff(order.id, inactive.id, manager)

    def test_unknown_user(self, services, manager, make_product):
        product = make_product(quantity=10)
        order = services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)
        with pytest.raises(UserNotFoundError):
            services.orders.assign_staff(order.id, uuid4(), manager)
