"""
Module: warehouse_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors, the read
    side of the kernel.
Architecture position: Kernel > Selectors.  May import from models/ and
    domain/dtos.py.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never add, delete, flush or commit.
    - Selectors return frozen DTOs, not ORM instances.
    - Soft-deleted rows are hidden unless ``include_deleted=True`` is passed
      explicitly.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from warehouse_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        The caller owns the session and its transaction scope.
    """

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _live(query, model, include_deleted: bool):
        if include_deleted:
            return query
        return query.where(model.is_deleted.is_(False))
