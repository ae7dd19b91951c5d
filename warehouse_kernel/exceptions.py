"""
Typed Exception Hierarchy for the Warehouse Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP adapters, CLI scripts, schedulers) map kernel failures to
responses. They must do so by type and by machine-readable code, never by
parsing messages:

    try:
        orders.transition_status(order_id, OrderStatus.SHIPPED, actor)
    except InsufficientStockError as e:
        respond(409, code=e.code, product=e.product_id, available=e.available)
    except InvalidTransitionError as e:
        respond(400, code=e.code, current=e.current_status)

Every exception has:
  1. a `code` class attribute (stable, API-safe identifier);
  2. a `kind` class attribute naming its category (one of the values below);
  3. structured attributes carrying the data needed to build a response.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    WarehouseKernelError (base)
    |
    +-- NotFoundError                      kind = "not_found"
    |   +-- ProductNotFoundError
    |   +-- LocationNotFoundError
    |   +-- OrderNotFoundError
    |   +-- ReceivingNotFoundError
    |   +-- TaskNotFoundError
    |   +-- SupplierNotFoundError
    |   +-- UserNotFoundError
    |
    +-- ConflictError                      kind = "conflict"
    |   +-- DuplicateSKUError
    |   +-- DuplicateLocationPathError
    |   +-- ProductAlreadyAssignedError
    |   +-- LocationNotEmptyError
    |
    +-- InvalidTransitionError             kind = "invalid_transition"
    |   +-- DeletionNotAllowedError
    |   +-- TaskClosedError
    |
    +-- InsufficientStockError             kind = "insufficient_stock"
    |   +-- CapacityExceededError
    |
    +-- ValidationError                    kind = "validation"
    |   +-- InvalidQuantityError
    |   +-- DuplicateLineItemError
    |   +-- EmptyLineItemsError
    |   +-- InvalidAssigneeError
    |   +-- MissingRelatedRecordError
    |   +-- InactiveSupplierError
    |
    +-- ForbiddenError                     kind = "forbidden"
    |   +-- TaskOwnershipError
    |
    +-- ImmutabilityViolationError         kind = "immutability"

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Catch the category when the response only depends on the kind:

    except NotFoundError as e:
        respond(404, code=e.code)

2. Retry only transient database conflicts (OperationalError raised by the
   driver), never kernel errors: a kernel error means the request itself
   cannot succeed against the current state.

3. ImmutabilityViolationError indicates a programming error or tampering
   attempt against the ledger; log and alert.
"""

from decimal import Decimal


class WarehouseKernelError(Exception):
    """
    Base exception for all warehouse kernel errors.

    All subclasses define `code` and inherit `kind` from their category.
    """

    code: str = "WAREHOUSE_KERNEL_ERROR"
    kind: str = "internal"


# Not found


class NotFoundError(WarehouseKernelError):
    """A referenced entity does not exist or is soft-deleted."""

    code: str = "NOT_FOUND"
    kind: str = "not_found"
    entity_type: str = "entity"

    def __init__(self, entity_id: str):
        self.entity_id = str(entity_id)
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class ProductNotFoundError(NotFoundError):
    code: str = "PRODUCT_NOT_FOUND"
    entity_type = "Product"


class LocationNotFoundError(NotFoundError):
    code: str = "LOCATION_NOT_FOUND"
    entity_type = "Location"


class OrderNotFoundError(NotFoundError):
    code: str = "ORDER_NOT_FOUND"
    entity_type = "Order"


class ReceivingNotFoundError(NotFoundError):
    code: str = "RECEIVING_NOT_FOUND"
    entity_type = "Receiving"


class TaskNotFoundError(NotFoundError):
    code: str = "TASK_NOT_FOUND"
    entity_type = "Task"


class SupplierNotFoundError(NotFoundError):
    code: str = "SUPPLIER_NOT_FOUND"
    entity_type = "Supplier"


class UserNotFoundError(NotFoundError):
    code: str = "USER_NOT_FOUND"
    entity_type = "User"


# Conflict


class ConflictError(WarehouseKernelError):
    """The operation collides with existing state."""

    code: str = "CONFLICT"
    kind: str = "conflict"


class DuplicateSKUError(ConflictError):
    code: str = "DUPLICATE_SKU"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Product with SKU {sku} already exists")


class DuplicateLocationPathError(ConflictError):
    code: str = "DUPLICATE_LOCATION_PATH"

    def __init__(self, full_path: str):
        self.full_path = full_path
        super().__init__(f"Location {full_path} already exists")


class ProductAlreadyAssignedError(ConflictError):
    """Product is already stored at the requested location."""

    code: str = "PRODUCT_ALREADY_ASSIGNED"

    def __init__(self, product_id: str, location_id: str):
        self.product_id = str(product_id)
        self.location_id = str(location_id)
        super().__init__(
            f"Product {product_id} is already assigned to location {location_id}"
        )


class LocationNotEmptyError(ConflictError):
    code: str = "LOCATION_NOT_EMPTY"

    def __init__(self, location_id: str, product_count: int):
        self.location_id = str(location_id)
        self.product_count = product_count
        super().__init__(
            f"Location {location_id} still stores {product_count} product(s)"
        )


# Invalid transition


class InvalidTransitionError(WarehouseKernelError):
    """Requested lifecycle move is not an edge of the workflow graph."""

    code: str = "INVALID_TRANSITION"
    kind: str = "invalid_transition"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_status: str,
        requested_status: str,
        reason: str | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.current_status = current_status
        self.requested_status = requested_status
        self.reason = reason
        message = (
            f"Cannot transition {entity_type} {entity_id} "
            f"from {current_status} to {requested_status}"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DeletionNotAllowedError(InvalidTransitionError):
    """Soft deletion is not permitted from the record's current status."""

    code: str = "DELETION_NOT_ALLOWED"

    def __init__(self, entity_type: str, entity_id: str, current_status: str):
        super().__init__(
            entity_type,
            entity_id,
            current_status,
            "Deleted",
            reason=f"{entity_type} in status {current_status} cannot be deleted",
        )


class TaskClosedError(InvalidTransitionError):
    """Task is Completed or Cancelled and cannot be reassigned."""

    code: str = "TASK_CLOSED"

    def __init__(self, task_id: str, current_status: str):
        super().__init__(
            "Task",
            task_id,
            current_status,
            current_status,
            reason="closed tasks cannot be reassigned",
        )


# Insufficient stock / capacity


class InsufficientStockError(WarehouseKernelError):
    """A deduction would make a product's quantity negative."""

    code: str = "INSUFFICIENT_STOCK"
    kind: str = "insufficient_stock"

    def __init__(self, product_id: str, requested: int, available: int, sku: str | None = None):
        self.product_id = str(product_id)
        self.sku = sku
        self.requested = requested
        self.available = available
        label = sku or product_id
        super().__init__(
            f"Insufficient stock for {label}: requested {requested}, available {available}"
        )


class CapacityExceededError(InsufficientStockError):
    """A location cannot hold the requested quantity."""

    code: str = "CAPACITY_EXCEEDED"

    def __init__(self, location_id: str, requested: int, available: int, capacity: int | None = None):
        WarehouseKernelError.__init__(
            self,
            f"Location {location_id} cannot hold {requested} more unit(s): "
            f"{available} available of capacity {capacity}",
        )
        self.location_id = str(location_id)
        self.requested = requested
        self.available = available
        self.capacity = capacity


# Validation


class ValidationError(WarehouseKernelError):
    """Input is well-formed but violates a business rule."""

    code: str = "VALIDATION_ERROR"
    kind: str = "validation"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidQuantityError(ValidationError):
    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: int | Decimal, field: str = "quantity"):
        self.quantity = quantity
        super().__init__(f"Invalid {field}: {quantity}", field=field)


class DuplicateLineItemError(ValidationError):
    code: str = "DUPLICATE_LINE_ITEM"

    def __init__(self, product_id: str):
        self.product_id = str(product_id)
        super().__init__(
            f"Product {product_id} appears more than once", field="items"
        )


class EmptyLineItemsError(ValidationError):
    code: str = "EMPTY_LINE_ITEMS"

    def __init__(self):
        super().__init__("At least one line item is required", field="items")


class InvalidAssigneeError(ValidationError):
    """User exists but cannot receive the assignment (inactive or wrong role)."""

    code: str = "INVALID_ASSIGNEE"

    def __init__(self, user_id: str, reason: str):
        self.user_id = str(user_id)
        self.reason = reason
        super().__init__(f"User {user_id} cannot be assigned: {reason}", field="assigned_to")


class MissingRelatedRecordError(ValidationError):
    """A task type requires a related order or receiving that was not given."""

    code: str = "MISSING_RELATED_RECORD"

    def __init__(self, task_type: str, required_field: str):
        self.task_type = task_type
        super().__init__(
            f"{task_type} tasks require {required_field}", field=required_field
        )


class InactiveSupplierError(ValidationError):
    code: str = "INACTIVE_SUPPLIER"

    def __init__(self, supplier_id: str):
        self.supplier_id = str(supplier_id)
        super().__init__(f"Supplier {supplier_id} is not active", field="supplier_id")


# Forbidden


class ForbiddenError(WarehouseKernelError):
    """Actor lacks the role or ownership required for the operation."""

    code: str = "FORBIDDEN"
    kind: str = "forbidden"

    def __init__(self, actor_id: str, reason: str):
        self.actor_id = str(actor_id)
        self.reason = reason
        super().__init__(f"Actor {actor_id} is not allowed: {reason}")


class TaskOwnershipError(ForbiddenError):
    code: str = "TASK_NOT_OWNED"

    def __init__(self, actor_id: str, task_id: str):
        self.task_id = str(task_id)
        super().__init__(actor_id, f"task {task_id} is assigned to another user")


# Immutability


class ImmutabilityViolationError(WarehouseKernelError):
    """Attempted to modify or delete an append-only ledger record."""

    code: str = "IMMUTABILITY_VIOLATION"
    kind: str = "immutability"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
