"""
Module: warehouse_kernel.models.location
Responsibility: ORM persistence for bin-level storage locations and their
    derived occupancy.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (zone, rack, shelf, bin) is unique among non-deleted locations.
    - current_occupancy >= 0.
    - capacity NULL means unlimited.  Capacity is checked when a product is
      assigned and when capacity is lowered; stock growth in place (receiving)
      may push occupancy past capacity, which is logged rather than refused.
"""

from sqlalchemy import CheckConstraint, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import SoftDeleteMixin, TrackedBase


class Location(SoftDeleteMixin, TrackedBase):
    """A storage bin addressed as ZONE-RACK-SHELF-BIN."""

    __tablename__ = "locations"

    __table_args__ = (
        CheckConstraint(
            "current_occupancy >= 0", name="ck_location_occupancy_non_negative"
        ),
        CheckConstraint(
            "capacity IS NULL OR capacity >= 0", name="ck_location_capacity_non_negative"
        ),
        Index(
            "uq_location_path_live",
            "zone",
            "rack",
            "shelf",
            "bin",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
    )

    zone: Mapped[str] = mapped_column(String(50), nullable=False)
    rack: Mapped[str] = mapped_column(String(50), nullable=False)
    shelf: Mapped[str] = mapped_column(String(50), nullable=False)
    bin: Mapped[str] = mapped_column(String(50), nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    capacity: Mapped[int | None] = mapped_column(nullable=True)

    current_occupancy: Mapped[int] = mapped_column(nullable=False, default=0)

    @property
    def full_path(self) -> str:
        return f"{self.zone}-{self.rack}-{self.shelf}-{self.bin}"

    @property
    def is_unlimited(self) -> bool:
        return self.capacity is None

    @property
    def available_capacity(self) -> int | None:
        """None when unlimited, otherwise max(0, capacity - occupancy)."""
        if self.capacity is None:
            return None
        return max(0, self.capacity - (self.current_occupancy or 0))

    def has_capacity_for(self, quantity: int) -> bool:
        if self.capacity is None:
            return True
        return (self.current_occupancy or 0) + quantity <= self.capacity

    def __repr__(self) -> str:
        return f"<Location {self.full_path}: {self.current_occupancy}/{self.capacity}>"
