"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    The enumerations shared by models and services, the request objects
    callers hand to workflow services (Actor, line-item requests), and the
    frozen snapshots services and selectors return instead of ORM entities.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``from_model()`` class methods are
    boundary converters invoked only from services/ and selectors/.

Invariants enforced:
    - Returned snapshots are frozen; callers cannot mutate persisted state
      through them.
    - Line-item requests reject non-positive quantities at construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from warehouse_kernel.exceptions import InvalidQuantityError

if TYPE_CHECKING:
    from warehouse_kernel.models.activity_log import ActivityLogEntry
    from warehouse_kernel.models.inventory_log import InventoryLogEntry
    from warehouse_kernel.models.location import Location
    from warehouse_kernel.models.order import Order, OrderItem
    from warehouse_kernel.models.product import Product
    from warehouse_kernel.models.receiving import Receiving, ReceivingItem
    from warehouse_kernel.models.task import Task


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class UserRole(str, Enum):
    ADMIN = "Admin"
    MANAGER = "Manager"
    STAFF = "Staff"


class SupplierStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class OrderStatus(str, Enum):
    """
    Order lifecycle.

    Contract:
        Pending -> Picking -> Packed -> Shipped -> Delivered; Cancelled is
        reachable from Pending and Picking only.  Delivered and Cancelled are
        terminal.  See domain/workflow.py ORDER_WORKFLOW.
    """

    PENDING = "Pending"
    PICKING = "Picking"
    PACKED = "Packed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class ReceivingStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TaskStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TaskType(str, Enum):
    PICKING = "Picking"
    PACKING = "Packing"
    RECEIVING = "Receiving"


class TaskPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class StockAction(str, Enum):
    """
    Kind of movement recorded in the inventory ledger.

    ADD and REMOVE are directional adjustments; UPDATE is a stock-count
    correction that sets an absolute quantity.
    """

    ADD = "ADD"
    REMOVE = "REMOVE"
    UPDATE = "UPDATE"


class ActivityEntity(str, Enum):
    ORDER = "order"
    RECEIVING = "receiving"
    INVENTORY = "inventory"
    TASK = "task"
    USER = "user"
    SUPPLIER = "supplier"
    LOCATION = "location"


class ActivityAction(str, Enum):
    # Orders
    ORDER_CREATED = "ORDER_CREATED"
    STATUS_UPDATED = "STATUS_UPDATED"
    STAFF_ASSIGNED = "STAFF_ASSIGNED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ORDER_DELETED = "ORDER_DELETED"
    # Receivings
    RECEIVING_CREATED = "RECEIVING_CREATED"
    RECEIVING_COMPLETED = "RECEIVING_COMPLETED"
    RECEIVING_CANCELLED = "RECEIVING_CANCELLED"
    RECEIVING_DELETED = "RECEIVING_DELETED"
    # Tasks
    TASK_CREATED = "TASK_CREATED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_STATUS_UPDATED = "TASK_STATUS_UPDATED"
    TASK_COMPLETED = "TASK_COMPLETED"
    TASK_CANCELLED = "TASK_CANCELLED"
    TASK_DELETED = "TASK_DELETED"
    # Catalogue and storage
    PRODUCT_CREATED = "PRODUCT_CREATED"
    PRODUCT_UPDATED = "PRODUCT_UPDATED"
    PRODUCT_DELETED = "PRODUCT_DELETED"
    PRODUCT_ASSIGNED = "PRODUCT_ASSIGNED"
    LOCATION_CREATED = "LOCATION_CREATED"
    LOCATION_UPDATED = "LOCATION_UPDATED"
    LOCATION_DELETED = "LOCATION_DELETED"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Actor:
    """
    The authenticated caller, as asserted by the identity provider.

    The kernel trusts this value; it does not authenticate.
    """

    actor_id: UUID
    role: UserRole = UserRole.STAFF

    @property
    def is_staff(self) -> bool:
        return self.role == UserRole.STAFF


@dataclass(frozen=True)
class OrderLineRequest:
    product_id: UUID
    quantity: int

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise InvalidQuantityError(self.quantity)


@dataclass(frozen=True)
class ReceivingLineRequest:
    product_id: UUID
    quantity: int
    unit_cost: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise InvalidQuantityError(self.quantity)
        if Decimal(self.unit_cost) < 0:
            raise InvalidQuantityError(self.unit_cost, field="unit_cost")


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProductInfo:
    id: UUID
    sku: str
    name: str
    quantity: int
    minimum_stock_level: int
    unit_price: Decimal
    location_id: UUID | None
    supplier_id: UUID | None
    category_id: UUID | None
    is_deleted: bool

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.minimum_stock_level

    @classmethod
    def from_model(cls, product: Product) -> ProductInfo:
        return cls(
            id=product.id,
            sku=product.sku,
            name=product.name,
            quantity=product.quantity,
            minimum_stock_level=product.minimum_stock_level,
            unit_price=Decimal(product.unit_price),
            location_id=product.location_id,
            supplier_id=product.supplier_id,
            category_id=product.category_id,
            is_deleted=product.is_deleted,
        )


@dataclass(frozen=True)
class LocationInfo:
    id: UUID
    zone: str
    rack: str
    shelf: str
    bin: str
    full_path: str
    capacity: int | None
    current_occupancy: int
    available_capacity: int | None
    description: str | None
    is_deleted: bool

    @classmethod
    def from_model(cls, location: Location) -> LocationInfo:
        return cls(
            id=location.id,
            zone=location.zone,
            rack=location.rack,
            shelf=location.shelf,
            bin=location.bin,
            full_path=location.full_path,
            capacity=location.capacity,
            current_occupancy=location.current_occupancy,
            available_capacity=location.available_capacity,
            description=location.description,
            is_deleted=location.is_deleted,
        )


@dataclass(frozen=True)
class InventoryLogInfo:
    id: UUID
    product_id: UUID
    action: StockAction
    quantity_changed: int
    previous_quantity: int
    new_quantity: int
    performed_by_id: UUID
    occurred_at: datetime
    note: str | None = None
    reference: str | None = None

    @classmethod
    def from_model(cls, entry: InventoryLogEntry) -> InventoryLogInfo:
        return cls(
            id=entry.id,
            product_id=entry.product_id,
            action=StockAction(entry.action),
            quantity_changed=entry.quantity_changed,
            previous_quantity=entry.previous_quantity,
            new_quantity=entry.new_quantity,
            performed_by_id=entry.performed_by_id,
            occurred_at=entry.occurred_at,
            note=entry.note,
            reference=entry.reference,
        )


@dataclass(frozen=True)
class AdjustmentResult:
    """Outcome of a stock ledger operation.

    ``entry`` is None when a stock count matched the stored quantity.
    """

    product: ProductInfo
    entry: InventoryLogInfo | None

    @property
    def is_low_stock(self) -> bool:
        return self.product.is_low_stock


@dataclass(frozen=True)
class OrderItemInfo:
    product_id: UUID
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    @classmethod
    def from_model(cls, item: OrderItem) -> OrderItemInfo:
        return cls(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=Decimal(item.unit_price),
            subtotal=Decimal(item.subtotal),
        )


@dataclass(frozen=True)
class OrderInfo:
    id: UUID
    order_number: str
    customer_name: str
    status: OrderStatus
    total_amount: Decimal
    items: tuple[OrderItemInfo, ...]
    assigned_staff_id: UUID | None
    created_by_id: UUID
    is_deleted: bool

    @classmethod
    def from_model(cls, order: Order) -> OrderInfo:
        return cls(
            id=order.id,
            order_number=order.order_number,
            customer_name=order.customer_name,
            status=OrderStatus(order.status),
            total_amount=Decimal(order.total_amount),
            items=tuple(OrderItemInfo.from_model(i) for i in order.items),
            assigned_staff_id=order.assigned_staff_id,
            created_by_id=order.created_by_id,
            is_deleted=order.is_deleted,
        )


@dataclass(frozen=True)
class ReceivingItemInfo:
    product_id: UUID
    quantity: int
    unit_cost: Decimal
    subtotal: Decimal

    @classmethod
    def from_model(cls, item: ReceivingItem) -> ReceivingItemInfo:
        return cls(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_cost=Decimal(item.unit_cost),
            subtotal=Decimal(item.subtotal),
        )


@dataclass(frozen=True)
class ReceivingInfo:
    id: UUID
    receiving_number: str
    supplier_id: UUID
    status: ReceivingStatus
    items: tuple[ReceivingItemInfo, ...]
    total_items: int
    total_quantity: int
    received_by_id: UUID
    notes: str | None
    is_deleted: bool

    @classmethod
    def from_model(cls, receiving: Receiving) -> ReceivingInfo:
        return cls(
            id=receiving.id,
            receiving_number=receiving.receiving_number,
            supplier_id=receiving.supplier_id,
            status=ReceivingStatus(receiving.status),
            items=tuple(ReceivingItemInfo.from_model(i) for i in receiving.items),
            total_items=receiving.total_items,
            total_quantity=receiving.total_quantity,
            received_by_id=receiving.received_by_id,
            notes=receiving.notes,
            is_deleted=receiving.is_deleted,
        )


@dataclass(frozen=True)
class TaskInfo:
    id: UUID
    title: str
    task_type: TaskType
    priority: TaskPriority
    status: TaskStatus
    assigned_to_id: UUID
    assigned_by_id: UUID
    related_order_id: UUID | None
    related_receiving_id: UUID | None
    started_at: datetime | None
    completed_at: datetime | None
    completion_duration: int | None
    description: str | None
    is_deleted: bool

    @classmethod
    def from_model(cls, task: Task) -> TaskInfo:
        return cls(
            id=task.id,
            title=task.title,
            task_type=TaskType(task.task_type),
            priority=TaskPriority(task.priority),
            status=TaskStatus(task.status),
            assigned_to_id=task.assigned_to_id,
            assigned_by_id=task.assigned_by_id,
            related_order_id=task.related_order_id,
            related_receiving_id=task.related_receiving_id,
            started_at=task.started_at,
            completed_at=task.completed_at,
            completion_duration=task.completion_duration,
            description=task.description,
            is_deleted=task.is_deleted,
        )


@dataclass(frozen=True)
class ActivityLogInfo:
    id: UUID
    entity_type: ActivityEntity
    entity_id: UUID
    action: ActivityAction
    performed_by_id: UUID
    occurred_at: datetime
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None

    @classmethod
    def from_model(cls, entry: ActivityLogEntry) -> ActivityLogInfo:
        return cls(
            id=entry.id,
            entity_type=ActivityEntity(entry.entity_type),
            entity_id=entry.entity_id,
            action=ActivityAction(entry.action),
            performed_by_id=entry.performed_by_id,
            occurred_at=entry.occurred_at,
            old_values=entry.old_values,
            new_values=entry.new_values,
        )


@dataclass(frozen=True)
class LocationTreeNode:
    """One level of the zone -> rack -> shelf -> bin hierarchy."""

    name: str
    children: tuple[LocationTreeNode, ...] = ()
    location: LocationInfo | None = None


@dataclass(frozen=True)
class OccupancyChange:
    """A location whose occupancy moved during a workflow transaction."""

    location_id: UUID
    previous_occupancy: int
    new_occupancy: int
    capacity: int | None = None

    @property
    def over_capacity(self) -> bool:
        return self.capacity is not None and self.new_occupancy > self.capacity


@dataclass(frozen=True)
class StockMovement:
    """A per-product movement produced by a shipment or receiving."""

    product_id: UUID
    sku: str
    quantity_changed: int
    new_quantity: int
    minimum_stock_level: int
    location_id: UUID | None = None

    @property
    def is_low_stock(self) -> bool:
        return self.new_quantity <= self.minimum_stock_level

