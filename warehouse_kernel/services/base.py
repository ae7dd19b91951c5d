"""
BaseService and WorkflowService -- shared plumbing for kernel services.

Responsibility:
    BaseService carries the session for flush-only helpers (sequence
    allocation, activity recording).  WorkflowService adds what every
    mutating workflow needs: the injected clock, the notifier, the atomic
    unit-of-work wrapper and row-locking helpers.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Atomicity: the body of ``_atomic`` either commits as a whole or leaves
      no trace.  With ``auto_commit=True`` the service owns the transaction
      (commit on success, rollback on any exception).  With
      ``auto_commit=False`` the caller owns it and the body runs inside a
      SAVEPOINT, so a failure still rolls back only this operation.
    - Lock ordering: product rows are locked in ascending id order so two
      workflows touching overlapping products cannot deadlock.

Failure modes:
    - Every exception raised inside ``_atomic`` is re-raised after rollback.
"""

from __future__ import annotations

import time
from abc import ABC
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock, SystemClock
from warehouse_kernel.domain.dtos import Actor
from warehouse_kernel.exceptions import WarehouseKernelError
from warehouse_kernel.logging_config import LogContext, get_logger
from warehouse_kernel.models.product import Product
from warehouse_kernel.notifications import Notifier

logger = get_logger("services.base")

T = TypeVar("T")


class BaseService(ABC):
    """
    Abstract base for kernel services.

    Contract:
        Uses ``session.flush()`` inside the caller's transaction; never
        commits.
    """

    def __init__(self, session: Session):
        self.session = session


class WorkflowService(BaseService):
    """
    Base for services that own a unit of work.

    Contract:
        Public mutating methods wrap their body in ``_atomic`` and perform
        activity recording and notification only after it returns.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: Notifier | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._notifier = notifier or Notifier()
        self._auto_commit = auto_commit

        from warehouse_kernel.services.activity_recorder import ActivityRecorder

        self._activity = ActivityRecorder(session, self._clock, auto_commit=auto_commit)

    def _atomic(self, operation: str, actor: Actor, work: Callable[[], T], **fields: Any) -> T:
        """Run ``work`` as one all-or-nothing unit and return its result."""
        with LogContext.bind(actor_id=actor.actor_id, operation=operation):
            t0 = time.monotonic()
            try:
                if self._auto_commit:
                    result = work()
                    self.session.commit()
                else:
                    with self.session.begin_nested():
                        result = work()
            except WarehouseKernelError as exc:
                if self._auto_commit:
                    self.session.rollback()
                logger.warning(
                    f"{operation}_rejected",
                    extra={
                        **fields,
                        "error_code": exc.code,
                        "error_kind": exc.kind,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
                raise
            except Exception:
                if self._auto_commit:
                    self.session.rollback()
                logger.error(
                    f"{operation}_failed",
                    extra={
                        **fields,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                    exc_info=True,
                )
                raise
            logger.debug(
                f"{operation}_committed",
                extra={**fields, "duration_ms": round((time.monotonic() - t0) * 1000, 2)},
            )
            return result

    def _notify(self, event: str, payload: Mapping[str, Any], actor: Actor) -> None:
        self._notifier.publish(
            event,
            {**payload, "updatedBy": str(actor.actor_id), "timestamp": self._clock.now().isoformat()},
        )

    def _lock_products(self, product_ids: Iterable[UUID]) -> dict[UUID, Product]:
        """
        Load and row-lock products in ascending id order.

        Deleted products are included; callers decide how to treat them.
        Missing ids are simply absent from the result.
        """
        ids = sorted(set(product_ids), key=str)
        if not ids:
            return {}
        rows = self.session.execute(
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars()
        return {p.id: p for p in rows}
