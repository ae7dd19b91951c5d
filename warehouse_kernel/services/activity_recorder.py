"""
ActivityRecorder -- best-effort who-did-what trail.

Responsibility:
    Writes one ActivityLogEntry per business action after the action's
    atomic unit of work has committed.

Architecture position:
    Kernel > Services.  Owned by every WorkflowService.

Invariants enforced:
    - A failed activity write never reverts or fails the business change it
      describes: the write runs in its own SAVEPOINT and any exception is
      logged (``activity_log_write_failed``) and swallowed.
    - Snapshots are stored as JSON-safe dicts (UUID, Decimal, datetime and
      Enum values are stringified).
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock, SystemClock
from warehouse_kernel.domain.dtos import (
    ActivityAction,
    ActivityEntity,
    ActivityLogInfo,
    Actor,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.activity_log import ActivityLogEntry
from warehouse_kernel.services.base import BaseService

logger = get_logger("services.activity")


def _json_safe(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_safe(v) for v in value]
    return value


class ActivityRecorder(BaseService):
    """
    Appends activity entries outside the business transaction.

    Guarantees:
        - ``record`` returns the stored entry, or None if the write failed.
        - With ``auto_commit=True`` the entry is committed immediately;
          otherwise it stays in the caller's transaction.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit

    def record(
        self,
        entity_type: ActivityEntity,
        entity_id: UUID,
        action: ActivityAction,
        actor: Actor,
        old_values: Mapping[str, Any] | None = None,
        new_values: Mapping[str, Any] | None = None,
    ) -> ActivityLogInfo | None:
        entry = ActivityLogEntry(
            entity_type=entity_type.value,
            entity_id=entity_id,
            action=action.value,
            performed_by_id=actor.actor_id,
            old_values=_json_safe(old_values) if old_values is not None else None,
            new_values=_json_safe(new_values) if new_values is not None else None,
            occurred_at=self._clock.now(),
        )
        try:
            with self.session.begin_nested():
                self.session.add(entry)
            if self._auto_commit:
                self.session.commit()
        except Exception:
            if self._auto_commit:
                self.session.rollback()
            logger.error(
                "activity_log_write_failed",
                extra={
                    "entity_type": entity_type.value,
                    "entity_id": str(entity_id),
                    "action": action.value,
                },
                exc_info=True,
            )
            return None

        logger.debug(
            "activity_recorded",
            extra={
                "entity_type": entity_type.value,
                "entity_id": str(entity_id),
                "action": action.value,
            },
        )
        return ActivityLogInfo.from_model(entry)
