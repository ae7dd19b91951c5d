"""
Module: warehouse_kernel.selectors.order_selector
Responsibility: Read-side queries over orders and receivings, with the
    Staff visibility rule applied.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - A Staff actor sees only orders assigned to them and receivings they
      received; other roles see everything.  A hidden record reads as
      absent (None), never as an error.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from warehouse_kernel.domain.dtos import (
    Actor,
    OrderInfo,
    OrderStatus,
    ReceivingInfo,
    ReceivingStatus,
)
from warehouse_kernel.domain.validation import require_choice
from warehouse_kernel.models.order import Order
from warehouse_kernel.models.receiving import Receiving
from warehouse_kernel.selectors.base import BaseSelector


class OrderSelector(BaseSelector[Order]):
    """Orders and receivings as seen by one actor."""

    def get_order(
        self,
        order_id: UUID,
        actor: Actor,
        include_deleted: bool = False,
    ) -> OrderInfo | None:
        query = self._orders_for(actor, include_deleted).where(Order.id == order_id)
        order = self.session.execute(query).scalar_one_or_none()
        return OrderInfo.from_model(order) if order else None

    def get_by_number(self, order_number: str, actor: Actor) -> OrderInfo | None:
        query = self._orders_for(actor, False).where(Order.order_number == order_number)
        order = self.session.execute(query).scalar_one_or_none()
        return OrderInfo.from_model(order) if order else None

    def list_orders(
        self,
        actor: Actor,
        status: OrderStatus | None = None,
        assigned_staff_id: UUID | None = None,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
        include_deleted: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[OrderInfo]:
        """
        Orders newest first.

        ``assigned_staff_id`` only narrows the result for Admin and Manager
        actors; Staff are always limited to their own orders.
        """
        query = self._orders_for(actor, include_deleted)
        if status is not None:
            query = query.where(
                Order.status == require_choice(OrderStatus, status, "status").value
            )
        if assigned_staff_id is not None and not actor.is_staff:
            query = query.where(Order.assigned_staff_id == assigned_staff_id)
        if created_from is not None:
            query = query.where(Order.created_at >= created_from)
        if created_to is not None:
            query = query.where(Order.created_at <= created_to)
        query = query.order_by(Order.created_at.desc(), Order.order_number.desc())
        if limit is not None:
            query = query.limit(limit)
        if offset is not None:
            query = query.offset(offset)
        return [OrderInfo.from_model(o) for o in self.session.execute(query).scalars()]

    def get_receiving(
        self,
        receiving_id: UUID,
        actor: Actor,
        include_deleted: bool = False,
    ) -> ReceivingInfo | None:
        query = self._receivings_for(actor, include_deleted).where(Receiving.id == receiving_id)
        receiving = self.session.execute(query).scalar_one_or_none()
        return ReceivingInfo.from_model(receiving) if receiving else None

    def list_receivings(
        self,
        actor: Actor,
        status: ReceivingStatus | None = None,
        supplier_id: UUID | None = None,
        include_deleted: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[ReceivingInfo]:
        query = self._receivings_for(actor, include_deleted)
        if status is not None:
            query = query.where(
                Receiving.status == require_choice(ReceivingStatus, status, "status").value
            )
        if supplier_id is not None:
            query = query.where(Receiving.supplier_id == supplier_id)
        query = query.order_by(Receiving.created_at.desc(), Receiving.receiving_number.desc())
        if limit is not None:
            query = query.limit(limit)
        if offset is not None:
            query = query.offset(offset)
        return [ReceivingInfo.from_model(r) for r in self.session.execute(query).scalars()]

    def _orders_for(self, actor: Actor, include_deleted: bool):
        query = self._live(select(Order), Order, include_deleted)
        if actor.is_staff:
            query = query.where(Order.assigned_staff_id == actor.actor_id)
        return query

    def _receivings_for(self, actor: Actor, include_deleted: bool):
        query = self._live(select(Receiving), Receiving, include_deleted)
        if actor.is_staff:
            query = query.where(Receiving.received_by_id == actor.actor_id)
        return query
