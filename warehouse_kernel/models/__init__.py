"""ORM models for the warehouse kernel."""

from warehouse_kernel.models.activity_log import ActivityLogEntry
from warehouse_kernel.models.inventory_log import InventoryLogEntry
from warehouse_kernel.models.location import Location
from warehouse_kernel.models.order import Order, OrderItem
from warehouse_kernel.models.product import Product
from warehouse_kernel.models.receiving import Receiving, ReceivingItem
from warehouse_kernel.models.sequence_counter import SequenceCounter
from warehouse_kernel.models.supplier import Supplier
from warehouse_kernel.models.task import Task
from warehouse_kernel.models.user import User

__all__ = [
    "ActivityLogEntry",
    "InventoryLogEntry",
    "Location",
    "Order",
    "OrderItem",
    "Product",
    "Receiving",
    "ReceivingItem",
    "SequenceCounter",
    "Supplier",
    "Task",
    "User",
]


def import_all_models() -> list[type]:
    """Return every mapped class; importing this package registers the tables."""
    return [globals()[name] for name in __all__]
