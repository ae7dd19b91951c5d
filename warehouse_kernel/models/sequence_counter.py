"""
Module: warehouse_kernel.models.sequence_counter
Responsibility: Named counter rows behind document number allocation.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Each row is a named sequence with its last issued value.  Incremented
    only under ``SELECT ... FOR UPDATE`` by SequenceService.
    """

    __tablename__ = "sequence_counters"

    # e.g. "ORD-20240101"
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(nullable=False, default=0)
