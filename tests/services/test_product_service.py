"""
Tests for ProductService.

Covers:
- Registration with an initial stock entry in the ledger
- SKU normalization and uniqueness
- Updates touch descriptive fields only
- Soft deletion releases location occupancy
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from warehouse_kernel.domain.dtos import ActivityAction, ActivityEntity, StockAction
from warehouse_kernel.exceptions import (
    DuplicateSKUError,
    ProductNotFoundError,
    SupplierNotFoundError,
    ValidationError,
)
from warehouse_kernel.models.location import Location
from warehouse_kernel.selectors import ActivitySelector, InventorySelector


class TestCreateProduct:
    """Product registration."""

    def test_initial_quantity_is_logged(self, services, admin, session):
        info = services.products.create_product("ab-100", "Bolt", admin, initial_quantity=25)

        assert info.sku == "AB-100"
        assert info.quantity == 25
        history = InventorySelector(session).ledger_history(info.id)
        assert [(e.action, e.quantity_changed) for e in history] == [(StockAction.ADD, 25)]

    def test_zero_quantity_writes_no_entry(self, services, admin, session):
        info = services.products.create_product("AB-101", "Bolt", admin)
        assert InventorySelector(session).ledger_history(info.id) == []

    def test_duplicate_sku(self, services, admin):
        services.products.create_product("AB-102", "Bolt", admin)
        with pytest.raises(DuplicateSKUError):
            services.products.create_product("ab-102", "Other bolt", admin)

    def test_invalid_sku(self, services, admin):
        with pytest.raises(ValidationError):
            services.products.create_product("AB 103", "Bolt", admin)

    def test_negative_price(self, services, admin):
        with pytest.raises(ValidationError):
            services.products.create_product("AB-104", "Bolt", admin, unit_price="-1")

    def test_unknown_supplier(self, services, admin):
        with pytest.raises(SupplierNotFoundError):
            services.products.create_product("AB-105", "Bolt", admin, supplier_id=uuid4())

    def test_with_supplier(self, services, admin, supplier):
        info = services.products.create_product("AB-106", "Bolt", admin, supplier_id=supplier.id)
        assert info.supplier_id == supplier.id

    def test_activity_recorded(self, services, admin, session):
        info = services.products.create_product("AB-107", "Bolt", admin)
        entries = ActivitySelector(session).for_entity(ActivityEntity.INVENTORY, info.id)
        assert entries[0].action == ActivityAction.PRODUCT_CREATED


class TestUpdateProduct:
    """Descriptive updates."""

    def test_update_price(self, services, admin, make_product):
        product = make_product(quantity=4)
        info = services.products.update_product(product.id, admin, unit_price="3.75")
        assert info.unit_price == Decimal("3.75")
        assert info.quantity == 4

    def test_rename_sku_to_taken(self, services, admin, make_product):
        make_product(sku="TAKEN")
        product = make_product()
        with pytest.raises(DuplicateSKUError):
            services.products.update_product(product.id, admin, sku="taken")

    def test_keep_own_sku(self, services, admin, make_product):
        product = make_product(sku="MINE")
        info = services.products.update_product(product.id, admin, sku="mine", name="Renamed")
        assert info.sku == "MINE"
        assert info.name == "Renamed"

    def test_old_values_in_activity(self, services, admin, make_product, session):
        product = make_product(minimum_stock_level=2)
        services.products.update_product(product.id, admin, minimum_stock_level=9)

        entry = ActivitySelector(session).for_entity(
            ActivityEntity.INVENTORY, product.id, action=ActivityAction.PRODUCT_UPDATED
        )[0]
        assert entry.old_values == {"minimum_stock_level": 2}
        assert entry.new_values == {"minimum_stock_level": 9}


class TestDeleteProduct:
    """Soft deletion."""

    def test_hidden_after_delete(self, services, admin, make_product, session):
        product = make_product(quantity=3)
        services.products.delete_product(product.id, admin)

        selector = InventorySelector(session)
        assert selector.get_product(product.id) is None
        assert selector.get_product(product.id, include_deleted=True).is_deleted

    def test_delete_twice(self, services, admin, make_product):
        product = make_product()
        services.products.delete_product(product.id, admin)
        with pytest.raises(ProductNotFoundError):
            services.products.delete_product(product.id, admin)

    def test_releases_occupancy(self, services, admin, make_product, make_location, session):
        location = make_location(capacity=30)
        product = make_product(quantity=12)
        services.locations.assign_product(location.id, product.id, admin)

        services.products.delete_product(product.id, admin)

        assert session.get(Location, location.id).current_occupancy == 0

    def test_deleted_product_cannot_be_adjusted(self, services, admin, make_product):
        product = make_product(quantity=3)
        services.products.delete_product(product.id, admin)
        with pytest.raises(ProductNotFoundError):
            services.stock_ledger.adjust(product.id, StockAction.ADD, 1, admin)
