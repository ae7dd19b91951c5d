"""
SequenceService -- document number allocation via locked counter rows.

Responsibility:
    Issues order and receiving numbers of the form ``PREFIX-YYYYMMDD-NNNNN``.
    Each prefix/day pair has its own counter row, so numbering restarts at 1
    every day.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Called by
    OrderService and ReceivingService inside their atomic unit of work.

Invariants enforced:
    - Uniqueness: the counter row is incremented under
      ``SELECT ... FOR UPDATE``; the max-plus-one query pattern is never used.
    - Transactional: a rolled-back workflow returns its number.

Failure modes:
    - IntegrityError when two transactions create the same day's counter at
      once; handled by rolling back a savepoint and re-reading the row.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.sequence_counter import SequenceCounter
from warehouse_kernel.services.base import BaseService

logger = get_logger("services.sequence")


class SequenceService(BaseService):
    """
    Transactional counters.

    Non-goals:
        - Does NOT commit; the caller's transaction publishes the increment.

    Usage:
        number = SequenceService(session).next_document_number("ORD", today)
        # "ORD-20240101-00001"
    """

    ORDER_PREFIX = "ORD"
    RECEIVING_PREFIX = "RCV"

    def __init__(self, session: Session, width: int = 5):
        super().__init__(session)
        self._width = width

    def next_value(self, sequence_name: str) -> int:
        """
        Increment and return the named counter (first value is 1).

        Postconditions:
            The counter row stays locked until the caller's transaction ends.
        """
        counter = self._lock_counter(sequence_name)

        if counter is None:
            savepoint = self.session.begin_nested()
            try:
                self.session.add(SequenceCounter(name=sequence_name, current_value=1))
                self.session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._lock_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self.session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def next_document_number(self, prefix: str, on_date: date) -> str:
        day = on_date.strftime("%Y%m%d")
        value = self.next_value(f"{prefix}-{day}")
        return f"{prefix}-{day}-{value:0{self._width}d}"

    def current_value(self, sequence_name: str) -> int | None:
        """Read a counter without incrementing or locking it."""
        return self.session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one_or_none()

    def _lock_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self.session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
