"""
WarehouseServices -- wiring for the kernel's workflow services.

Responsibility:
    Builds every workflow service once per session, sharing one clock and
    one notifier.  Applies numbering settings and hands out the process-wide
    limiter for events clients send in.

Architecture position:
    Kernel > Services.  The only place services are composed for callers;
    services themselves still construct the flush-level collaborators they
    call inside their own unit of work.

Usage:
    services = WarehouseServices.from_settings(session, get_active_settings())
    services.orders.transition_status(order_id, OrderStatus.SHIPPED, actor)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock, SystemClock
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.notifications import (
    EventRateLimiter,
    LoggingChannel,
    NotificationChannel,
    Notifier,
    get_event_rate_limiter,
)
from warehouse_kernel.services.location_service import LocationService
from warehouse_kernel.services.order_service import OrderService
from warehouse_kernel.services.product_service import ProductService
from warehouse_kernel.services.receiving_service import ReceivingService
from warehouse_kernel.services.sequence_service import SequenceService
from warehouse_kernel.services.stock_ledger import StockLedger
from warehouse_kernel.services.task_service import TaskService

if TYPE_CHECKING:
    from warehouse_config.schema import WarehouseSettings

logger = get_logger("services.container")


class WarehouseServices:
    """
    Per-session service set.

    Non-goals:
        - Does NOT own the session; closing it is the caller's job.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: Notifier | None = None,
        auto_commit: bool = True,
        order_prefix: str = SequenceService.ORDER_PREFIX,
        receiving_prefix: str = SequenceService.RECEIVING_PREFIX,
        number_width: int = 5,
        event_rate_limiter: EventRateLimiter | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.notifier = notifier or Notifier()
        self.event_rate_limiter = event_rate_limiter or get_event_rate_limiter()

        common = dict(clock=self.clock, notifier=self.notifier, auto_commit=auto_commit)
        self.stock_ledger = StockLedger(session, **common)
        self.locations = LocationService(session, **common)
        self.products = ProductService(session, **common)
        self.tasks = TaskService(session, **common)
        self.orders = OrderService(
            session, number_prefix=order_prefix, number_width=number_width, **common
        )
        self.receivings = ReceivingService(
            session, number_prefix=receiving_prefix, number_width=number_width, **common
        )

    @classmethod
    def from_settings(
        cls,
        session: Session,
        settings: WarehouseSettings,
        clock: Clock | None = None,
        channel: NotificationChannel | None = None,
    ) -> WarehouseServices:
        """Build services with numbering and rate limits taken from settings."""
        limiter = get_event_rate_limiter(
            window_seconds=settings.rate_limit.window_seconds,
            max_events=settings.rate_limit.max_events,
        )
        return cls(
            session,
            clock=clock,
            notifier=Notifier(channel=channel or LoggingChannel()),
            order_prefix=settings.numbering.order_prefix,
            receiving_prefix=settings.numbering.receiving_prefix,
            number_width=settings.numbering.width,
            event_rate_limiter=limiter,
        )

    def allow_client_event(self, connection_id: str, event: str) -> bool:
        """
        Check an event a client sent in against the process-wide limiter.

        Returns False once ``connection_id`` has sent ``event`` more than the
        configured number of times in the current window.  Events the kernel
        publishes are not counted.
        """
        allowed = self.event_rate_limiter.allow(connection_id, event)
        if not allowed:
            logger.warning(
                "client_event_rate_limited",
                extra={"event": event, "connection_id": connection_id},
            )
        return allowed
