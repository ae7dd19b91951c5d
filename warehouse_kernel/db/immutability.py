"""
ORM-level append-only enforcement for the audit trail.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When Immutable | Why
--------------------|----------------|------------------------------------------
InventoryLogEntry   | ALWAYS         | Replaying it must reproduce stock levels
ActivityLogEntry    | ALWAYS         | Who-did-what history

SQLAlchemy fires ``before_update`` / ``before_delete`` mapper events before
the SQL is sent.  The listeners below raise ImmutabilityViolationError, which
aborts the flush; the database is never modified.

===============================================================================
USAGE
===============================================================================

Called once at application startup (scripts/init_db.py, test conftest):

    from warehouse_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from warehouse_kernel.exceptions import ImmutabilityViolationError
from warehouse_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _reject(operation: str, target) -> None:
    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"{entity_type} records are append-only ({operation} rejected)",
    )


def _block_update(mapper, connection, target):
    _reject("UPDATE", target)


def _block_delete(mapper, connection, target):
    _reject("DELETE", target)


def _append_only_models() -> tuple[type, ...]:
    from warehouse_kernel.models.activity_log import ActivityLogEntry
    from warehouse_kernel.models.inventory_log import InventoryLogEntry

    return (InventoryLogEntry, ActivityLogEntry)


def register_immutability_listeners() -> None:
    """Install append-only listeners (idempotent)."""
    for model in _append_only_models():
        if not event.contains(model, "before_update", _block_update):
            event.listen(model, "before_update", _block_update)
        if not event.contains(model, "before_delete", _block_delete):
            event.listen(model, "before_delete", _block_delete)


def unregister_immutability_listeners() -> None:
    """
    Remove the listeners.

    WARNING: Only use this in tests that need to violate the rule on purpose.
    """
    for model in _append_only_models():
        if event.contains(model, "before_update", _block_update):
            event.remove(model, "before_update", _block_update)
        if event.contains(model, "before_delete", _block_delete):
            event.remove(model, "before_delete", _block_delete)
