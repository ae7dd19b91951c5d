"""Services for the warehouse kernel (write side)."""

from warehouse_kernel.services.activity_recorder import ActivityRecorder
from warehouse_kernel.services.container import WarehouseServices
from warehouse_kernel.services.location_service import LocationService
from warehouse_kernel.services.order_service import OrderService
from warehouse_kernel.services.product_service import ProductService
from warehouse_kernel.services.receiving_service import ReceivingService
from warehouse_kernel.services.sequence_service import SequenceService
from warehouse_kernel.services.stock_ledger import StockLedger
from warehouse_kernel.services.task_service import TaskService

__all__ = [
    "ActivityRecorder",
    "LocationService",
    "OrderService",
    "ProductService",
    "ReceivingService",
    "SequenceService",
    "StockLedger",
    "TaskService",
    "WarehouseServices",
]
