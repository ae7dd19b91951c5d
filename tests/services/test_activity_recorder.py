"""
Tests for ActivityRecorder.

Covers:
- JSON-safe serialization of enum, UUID, Decimal and datetime values
- Entries survive a failed business operation only if recorded after it
- A failed write is logged and returns None instead of raising
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError

from warehouse_kernel.domain.dtos import ActivityAction, ActivityEntity, OrderStatus
from warehouse_kernel.exceptions import OrderNotFoundError
from warehouse_kernel.selectors import ActivitySelector
from warehouse_kernel.services.activity_recorder import ActivityRecorder


class TestActivityRecorder:
    def test_values_are_json_safe(self, session, clock, admin):
        entity_id = uuid4()
        staff_id = uuid4()
        recorder = ActivityRecorder(session, clock)

        info = recorder.record(
            ActivityEntity.ORDER,
            entity_id,
            ActivityAction.STATUS_UPDATED,
            admin,
            old_values={"status": OrderStatus.PENDING},
            new_values={
                "status": OrderStatus.PICKING,
                "assignedStaff": staff_id,
                "total": Decimal("12.50"),
                "at": datetime(2024, 1, 1, tzinfo=timezone.utc),
                "tags": ("a", "b"),
            },
        )

        assert info.occurred_at == clock.now()
        stored = ActivitySelector(session).for_entity(ActivityEntity.ORDER, entity_id)[0]
        assert stored.old_values == {"status": "Pending"}
        assert stored.new_values == {
            "status": "Picking",
            "assignedStaff": str(staff_id),
            "total": "12.50",
            "at": "2024-01-01T00:00:00+00:00",
            "tags": ["a", "b"],
        }

    def test_by_actor(self, session, clock, admin, manager):
        recorder = ActivityRecorder(session, clock)
        for _ in range(3):
            recorder.record(ActivityEntity.TASK, uuid4(), ActivityAction.TASK_CREATED, admin)
        recorder.record(ActivityEntity.TASK, uuid4(), ActivityAction.TASK_CREATED, manager)

        assert len(ActivitySelector(session).by_actor(admin.actor_id)) == 3
        assert len(ActivitySelector(session).by_actor(admin.actor_id, limit=2)) == 2

    def test_write_failure_is_swallowed(self, session, clock, admin, monkeypatch, captured_logs):
        recorder = ActivityRecorder(session, clock)

        def broken_savepoint(*args, **kwargs):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(session, "begin_nested", broken_savepoint)
        result = recorder.record(ActivityEntity.ORDER, uuid4(), ActivityAction.ORDER_CREATED, admin)

        assert result is None
        assert any(r["message"] == "activity_log_write_failed" for r in captured_logs())

    def test_rejected_operation_leaves_no_activity(self, services, manager, session):
        missing = uuid4()
        with pytest.raises(OrderNotFoundError):
            services.orders.delete_order(missing, manager)

        assert ActivitySelector(session).for_entity(ActivityEntity.ORDER, missing) == []
