"""Selectors for the warehouse kernel (read side)."""

from warehouse_kernel.selectors.activity_selector import ActivitySelector
from warehouse_kernel.selectors.base import BaseSelector
from warehouse_kernel.selectors.inventory_selector import InventorySelector, LedgerDiscrepancy
from warehouse_kernel.selectors.location_selector import LocationSelector
from warehouse_kernel.selectors.order_selector import OrderSelector
from warehouse_kernel.selectors.task_selector import TaskCompletionStats, TaskSelector

__all__ = [
    "ActivitySelector",
    "BaseSelector",
    "InventorySelector",
    "LedgerDiscrepancy",
    "LocationSelector",
    "OrderSelector",
    "TaskCompletionStats",
    "TaskSelector",
]
