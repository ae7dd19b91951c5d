"""Deterministic clock and frozen snapshot behaviour."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from warehouse_kernel.domain.clock import DeterministicClock, SystemClock
from warehouse_kernel.domain.dtos import ActivityAction, Actor, StockMovement, UserRole


class TestClock:
    def test_deterministic_is_stable(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now() == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def test_advance(self):
        clock = DeterministicClock()
        start = clock.now()
        assert clock.advance(minutes=3) - start == timedelta(minutes=3, seconds=1)

    def test_set_time(self):
        clock = DeterministicClock()
        target = datetime(2025, 6, 30, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now() == target

    def test_system_clock_is_utc(self):
        assert SystemClock().now().tzinfo == timezone.utc


class TestDtos:
    def test_actor_is_frozen(self):
        actor = Actor(uuid4(), UserRole.ADMIN)
        with pytest.raises(FrozenInstanceError):
            actor.role = UserRole.STAFF

    def test_default_role_is_staff(self):
        assert Actor(uuid4()).is_staff

    @pytest.mark.parametrize("quantity, low", [(4, True), (5, True), (6, False)])
    def test_movement_low_stock(self, quantity, low):
        movement = StockMovement(uuid4(), "SKU-1", -1, quantity, minimum_stock_level=5)
        assert movement.is_low_stock is low

    def test_product_snapshot(self, make_product):
        info = make_product(quantity=3, minimum_stock_level=3, unit_price="4.20")
        assert info.unit_price == Decimal("4.20")
        assert info.is_low_stock
        with pytest.raises(FrozenInstanceError):
            info.quantity = 10

    def test_receiving_activity_actions(self):
        receiving = {a for a in ActivityAction if a.value.startswith("RECEIVING_")}
        assert receiving == {
            ActivityAction.RECEIVING_CREATED,
            ActivityAction.RECEIVING_COMPLETED,
            ActivityAction.RECEIVING_CANCELLED,
            ActivityAction.RECEIVING_DELETED,
        }
