"""Pure domain layer: enums, DTOs, lifecycles, validation, clock."""

from warehouse_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from warehouse_kernel.domain.dtos import (
    Actor,
    OrderLineRequest,
    OrderStatus,
    ReceivingLineRequest,
    ReceivingStatus,
    StockAction,
    TaskPriority,
    TaskStatus,
    TaskType,
    UserRole,
)

__all__ = [
    "Actor",
    "Clock",
    "DeterministicClock",
    "OrderLineRequest",
    "OrderStatus",
    "ReceivingLineRequest",
    "ReceivingStatus",
    "StockAction",
    "SystemClock",
    "TaskPriority",
    "TaskStatus",
    "TaskType",
    "UserRole",
]
