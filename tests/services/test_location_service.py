"""
Tests for LocationService.

Covers:
- Location creation, duplicate paths, zone normalization
- Capacity updates (including making a location unlimited)
- Deletion guarded by stored products
- assign_product: capacity check, move between locations, conflicts
- recalculate is idempotent and tolerates over-capacity
"""

from uuid import uuid4

import pytest

from warehouse_kernel.domain.dtos import StockAction
from warehouse_kernel.exceptions import (
    CapacityExceededError,
    DuplicateLocationPathError,
    InsufficientStockError,
    LocationNotEmptyError,
    LocationNotFoundError,
    ProductAlreadyAssignedError,
)
from warehouse_kernel.models.location import Location
from warehouse_kernel.models.product import Product
from warehouse_kernel.notifications import Events


class TestLocationLifecycle:
    """Create, update, delete."""

    def test_create(self, services, admin, channel):
        info = services.locations.create_location("a", "R1", "S2", "B3", admin, capacity=50)

        assert info.zone == "A"
        assert info.full_path == "A-R1-S2-B3"
        assert info.capacity == 50
        assert info.current_occupancy == 0
        assert info.available_capacity == 50
        assert channel.named(Events.LOCATION_CREATED)[0]["locationId"] == str(info.id)

    def test_duplicate_path(self, services, admin):
        services.locations.create_location("A", "R1", "S1", "B1", admin)
        with pytest.raises(DuplicateLocationPathError):
            services.locations.create_location("a", "R1", "S1", "B1", admin)

    def test_path_reusable_after_delete(self, services, admin):
        first = services.locations.create_location("A", "R1", "S1", "B1", admin)
        services.locations.delete_location(first.id, admin)
        second = services.locations.create_location("A", "R1", "S1", "B1", admin)
        assert second.id != first.id

    def test_unlimited_by_default(self, make_location):
        info = make_location()
        assert info.capacity is None
        assert info.available_capacity is None

    def test_capacity_below_occupancy_rejected(self, services, admin, make_location, make_product):
        location = make_location(capacity=20)
        product = make_product(quantity=8)
        services.locations.assign_product(location.id, product.id, admin)

        with pytest.raises(CapacityExceededError):
            services.locations.update_location(location.id, admin, capacity=5)

    def test_capacity_can_be_removed(self, services, admin, make_location):
        location = make_location(capacity=20)
        info = services.locations.update_location(location.id, admin, capacity=None)
        assert info.capacity is None

    def test_description_untouched_when_omitted(self, services, admin):
        location = services.locations.create_location("A", "R9", "S1", "B1", admin, description="cold")
        info = services.locations.update_location(location.id, admin, capacity=10)
        assert info.description == "cold"

    def test_rename_to_taken_path(self, services, admin):
        services.locations.create_location("A", "R1", "S1", "B1", admin)
        other = services.locations.create_location("A", "R2", "S1", "B1", admin)
        with pytest.raises(DuplicateLocationPathError):
            services.locations.update_location(other.id, admin, rack="R1")

    def test_delete_with_products_rejected(self, services, admin, make_location, make_product):
        location = make_location()
        product = make_product(quantity=1)
        services.locations.assign_product(location.id, product.id, admin)

        with pytest.raises(LocationNotEmptyError) as exc_info:
            services.locations.delete_location(location.id, admin)
        assert exc_info.value.product_count == 1

    def test_delete_missing(self, services, admin):
        with pytest.raises(LocationNotFoundError):
            services.locations.delete_location(uuid4(), admin)


class TestAssignProduct:
    """Moving a product's whole quantity into a location."""

    def test_assign_within_capacity(self, services, admin, make_location, make_product, session):
        location = make_location(capacity=10)
        product = make_product(quantity=6)

        info = services.locations.assign_product(location.id, product.id, admin)

        assert info.current_occupancy == 6
        assert session.get(Product, product.id).location_id == location.id

    def test_capacity_exceeded(self, services, admin, make_location, make_product, session):
        location = make_location(capacity=10)
        filler = make_product(quantity=4)
        services.locations.assign_product(location.id, filler.id, admin)
        product = make_product(quantity=8)

        with pytest.raises(CapacityExceededError) as exc_info:
            services.locations.assign_product(location.id, product.id, admin)

        assert isinstance(exc_info.value, InsufficientStockError)
        assert exc_info.value.available == 6
        assert session.get(Location, location.id).current_occupancy == 4
        assert session.get(Product, product.id).location_id is None

    def test_move_between_locations(self, services, admin, make_location, make_product, session, channel):
        source = make_location(capacity=50)
        target = make_location(capacity=50)
        product = make_product(quantity=12)
        services.locations.assign_product(source.id, product.id, admin)
        channel.clear()

        services.locations.assign_product(target.id, product.id, admin)

        assert session.get(Location, source.id).current_occupancy == 0
        assert session.get(Location, target.id).current_occupancy == 12
        occupancy = channel.named(Events.LOCATION_OCCUPANCY_UPDATED)
        assert {e["locationId"] for e in occupancy} == {str(source.id), str(target.id)}
        assigned = channel.named(Events.PRODUCT_ASSIGNED_TO_LOCATION)[0]
        assert assigned["previousLocationId"] == str(source.id)

    def test_already_assigned(self, services, admin, make_location, make_product):
        location = make_location()
        product = make_product(quantity=1)
        services.locations.assign_product(location.id, product.id, admin)
        with pytest.raises(ProductAlreadyAssignedError):
            services.locations.assign_product(location.id, product.id, admin)

    def test_deleted_location(self, services, admin, make_location, make_product):
        location = make_location()
        services.locations.delete_location(location.id, admin)
        product = make_product(quantity=1)
        with pytest.raises(LocationNotFoundError):
            services.locations.assign_product(location.id, product.id, admin)


class TestRecalculate:
    """Occupancy derived from stored products."""

    def test_idempotent(self, services, admin, make_location, make_product):
        location = make_location(capacity=100)
        for quantity in (3, 4):
            product = make_product(quantity=quantity)
            services.locations.assign_product(location.id, product.id, admin)

        first = services.locations.recalculate(location.id, admin)
        second = services.locations.recalculate(location.id, admin)

        assert first.current_occupancy == second.current_occupancy == 7

    def test_deleted_products_not_counted(self, services, admin, make_location, make_product):
        location = make_location()
        kept = make_product(quantity=5)
        dropped = make_product(quantity=9)
        services.locations.assign_product(location.id, kept.id, admin)
        services.locations.assign_product(location.id, dropped.id, admin)

        services.products.delete_product(dropped.id, admin)

        assert services.locations.recalculate(location.id, admin).current_occupancy == 5

    def test_over_capacity_is_logged_not_rejected(
        self, services, admin, make_location, make_product, captured_logs
    ):
        location = make_location(capacity=10)
        product = make_product(quantity=8)
        services.locations.assign_product(location.id, product.id, admin)

        services.stock_ledger.adjust(product.id, StockAction.ADD, 5, admin)

        info = services.locations.recalculate(location.id, admin)
        assert info.current_occupancy == 13
        assert any(r["message"] == "location_over_capacity" for r in captured_logs())
