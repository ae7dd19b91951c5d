"""
Change notifications -- best-effort fan-out of workflow events.

Responsibility:
    Defines the outbound channel interface workflow services publish to
    after their atomic unit of work commits, the event names, and the
    per-process rate limiter that caps how many events one client connection
    may send in per window.

Architecture position:
    Kernel > Infrastructure.  Imported by services/; imports nothing from
    services/ or selectors/.

Failure modes:
    - A channel that raises is logged (``notification_publish_failed``) and
      swallowed by Notifier.publish.  A notification failure never reverts a
      committed stock or status change.
    - EventRateLimiter only answers allow/deny; the layer receiving client
      events decides what to do with a denied event.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from warehouse_kernel.domain.clock import Clock, SystemClock
from warehouse_kernel.logging_config import get_logger

logger = get_logger("notifications")


class Events:
    """Event names published by the kernel."""

    ORDER_CREATED = "orderCreated"
    ORDER_STATUS_UPDATED = "orderStatusUpdated"
    ORDER_CANCELLED = "orderCancelled"
    ORDER_STAFF_ASSIGNED = "orderStaffAssigned"
    INVENTORY_UPDATED = "inventoryUpdated"
    LOW_STOCK_ALERT = "lowStockAlert"
    RECEIVING_CREATED = "receivingCreated"
    RECEIVING_COMPLETED = "receivingCompleted"
    RECEIVING_CANCELLED = "receivingCancelled"
    LOCATION_CREATED = "locationCreated"
    LOCATION_UPDATED = "locationUpdated"
    LOCATION_DELETED = "locationDeleted"
    PRODUCT_ASSIGNED_TO_LOCATION = "productAssignedToLocation"
    LOCATION_OCCUPANCY_UPDATED = "locationOccupancyUpdated"
    TASK_CREATED = "taskCreated"
    TASK_ASSIGNED = "taskAssigned"
    TASK_STATUS_UPDATED = "taskStatusUpdated"
    TASK_COMPLETED = "taskCompleted"
    TASK_CANCELLED = "taskCancelled"


class NotificationChannel(ABC):
    """Outbound sink for change events (socket hub, message bus, ...)."""

    @abstractmethod
    def publish(self, event: str, payload: Mapping[str, Any]) -> None:
        ...


class NullChannel(NotificationChannel):
    """Discards every event."""

    def publish(self, event: str, payload: Mapping[str, Any]) -> None:
        return None


@dataclass(frozen=True)
class PublishedEvent:
    event: str
    payload: dict[str, Any]


class InMemoryChannel(NotificationChannel):
    """
    Records events in publish order.  Used by tests and by in-process
    consumers that poll.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._events: list[PublishedEvent] = []

    def publish(self, event: str, payload: Mapping[str, Any]) -> None:
        with self._lock:
            self._events.append(PublishedEvent(event, dict(payload)))

    @property
    def events(self) -> list[PublishedEvent]:
        with self._lock:
            return list(self._events)

    def named(self, event: str) -> list[dict[str, Any]]:
        """Payloads of every published ``event``."""
        return [e.payload for e in self.events if e.event == event]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class LoggingChannel(NotificationChannel):
    """Writes each event to the structured log."""

    def publish(self, event: str, payload: Mapping[str, Any]) -> None:
        logger.info("notification_published", extra={"event": event, "payload": dict(payload)})


class EventRateLimiter:
    """
    Expiring per-(connection, event) counter.

    Contract:
        ``allow()`` returns True while the key has been seen at most
        ``max_events`` times in the current window, then False until the
        window (which starts at the key's first hit) expires.

    Guarantees:
        - Updates are serialized by one lock; counts are exact within a
          process.
        - Expired keys are purged on access, so memory is bounded by the
          number of keys active within one window.

    Non-goals:
        - No sharing across processes.
    """

    def __init__(
        self,
        window_seconds: float = 60.0,
        max_events: int = 100,
        clock: Clock | None = None,
    ):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._window = timedelta(seconds=window_seconds)
        self._max_events = max_events
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        # key -> (window start, count)
        self._counters: dict[tuple[str, str], tuple[datetime, int]] = {}

    @property
    def limits(self) -> tuple[float, int]:
        return self._window.total_seconds(), self._max_events

    def allow(self, connection_id: str, event: str) -> bool:
        now = self._clock.now()
        key = (connection_id, event)
        with self._lock:
            self._purge(now)
            started, count = self._counters.get(key, (now, 0))
            if count >= self._max_events:
                return False
            self._counters[key] = (started, count + 1)
            return True

    def remaining(self, connection_id: str, event: str) -> int:
        now = self._clock.now()
        with self._lock:
            self._purge(now)
            _, count = self._counters.get((connection_id, event), (now, 0))
            return max(0, self._max_events - count)

    def reset(self, connection_id: str | None = None) -> None:
        """Forget one connection's counters, or all of them."""
        with self._lock:
            if connection_id is None:
                self._counters.clear()
                return
            for key in [k for k in self._counters if k[0] == connection_id]:
                del self._counters[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)

    def _purge(self, now: datetime) -> None:
        expired = [
            key for key, (started, _) in self._counters.items()
            if now - started >= self._window
        ]
        for key in expired:
            del self._counters[key]


_shared_limiter: EventRateLimiter | None = None
_shared_limiter_lock = threading.Lock()


def get_event_rate_limiter(
    window_seconds: float = 60.0,
    max_events: int = 100,
) -> EventRateLimiter:
    """
    Process-wide limiter for inbound client events.

    Every caller in the process shares one counter table.  Asking for
    different limits replaces the shared limiter and starts counting afresh.
    """
    global _shared_limiter
    with _shared_limiter_lock:
        current = _shared_limiter
        if current is None or current.limits != (window_seconds, max_events):
            if current is not None:
                logger.info(
                    "event_rate_limiter_reconfigured",
                    extra={"window_seconds": window_seconds, "max_events": max_events},
                )
            _shared_limiter = EventRateLimiter(window_seconds, max_events)
        return _shared_limiter


def reset_event_rate_limiter() -> None:
    """Drop the process-wide limiter (tests)."""
    global _shared_limiter
    with _shared_limiter_lock:
        _shared_limiter = None


class Notifier:
    """
    Best-effort publisher wrapped around a NotificationChannel.

    ``publish`` never raises.  Kernel events are never rate limited: the
    limiter guards events clients send in, not the changes the kernel
    reports back out.
    """

    def __init__(self, channel: NotificationChannel | None = None):
        self._channel = channel or NullChannel()

    @property
    def channel(self) -> NotificationChannel:
        return self._channel

    def publish(self, event: str, payload: Mapping[str, Any]) -> bool:
        """Publish ``event``; return whether the channel accepted it."""
        try:
            self._channel.publish(event, payload)
        except Exception:
            logger.error(
                "notification_publish_failed",
                extra={"event": event},
                exc_info=True,
            )
            return False
        return True
