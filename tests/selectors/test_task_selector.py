"""Task visibility and completion statistics."""

import pytest

from warehouse_kernel.domain.dtos import OrderLineRequest, TaskStatus, TaskType, UserRole
from warehouse_kernel.selectors import TaskSelector


@pytest.fixture
def order(services, manager, make_product):
    product = make_product(quantity=10)
    return services.orders.create_order("Acme", [OrderLineRequest(product.id, 1)], manager)


class TestTaskSelector:
    def test_staff_sees_own_tasks(self, services, session, manager, staff, staff_user, make_user, order):
        other = make_user(UserRole.STAFF)
        mine = services.tasks.create_task(
            "Pick", TaskType.PICKING, staff_user.id, manager, related_order_id=order.id
        )
        theirs = services.tasks.create_task(
            "Pack", TaskType.PACKING, other.id, manager, related_order_id=order.id
        )

        selector = TaskSelector(session)
        assert [t.id for t in selector.list_tasks(staff)] == [mine.id]
        assert selector.get_task(theirs.id, staff) is None
        assert len(selector.list_tasks(manager)) == 2
        assert [t.id for t in selector.list_tasks(manager, task_type=TaskType.PACKING)] == [theirs.id]

    def test_completion_stats(self, services, session, manager, staff_user, clock, order):
        for minutes in (10, 20):
            task = services.tasks.create_task(
                "Pick", TaskType.PICKING, staff_user.id, manager, related_order_id=order.id
            )
            services.tasks.transition_status(task.id, TaskStatus.IN_PROGRESS, manager)
            clock.advance(seconds=0, minutes=minutes)
            services.tasks.transition_status(task.id, TaskStatus.COMPLETED, manager)

        stats = TaskSelector(session).completion_stats(staff_user.id)

        assert stats.completed == 2
        assert stats.average_minutes == pytest.approx(15.0)

    def test_no_completed_tasks(self, session, staff_user):
        stats = TaskSelector(session).completion_stats(staff_user.id)
        assert stats.completed == 0
        assert stats.average_minutes is None
