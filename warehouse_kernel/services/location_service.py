"""
LocationService -- storage locations and their occupancy.

Responsibility:
    Creates, updates and soft-deletes bin locations, assigns products to
    them, and keeps ``current_occupancy`` equal to the summed quantity of
    the non-deleted products stored there.

Architecture position:
    Kernel > Services.  ``shift_occupancy`` is the flush-level primitive the
    order and receiving workflows call inside their own unit of work.

Invariants enforced:
    - Assignment never pushes a location past its capacity.
    - Capacity can never be lowered below current occupancy.
    - Occupancy is never negative (decrements floor at zero).
    - A location path (zone, rack, shelf, bin) is unique among non-deleted
      locations; zone is stored upper-cased.
    - ``recalculate`` is idempotent: with no intervening stock change, a
      second call stores the same value.

Failure modes:
    - LocationNotFoundError / ProductNotFoundError for missing or deleted rows.
    - ProductAlreadyAssignedError when assigning to the current location.
    - CapacityExceededError (an InsufficientStockError) on assignment or
      capacity change.
    - DuplicateLocationPathError, LocationNotEmptyError.
    - Occupancy above capacity found by ``recalculate`` or caused by stock
      growth in place is logged (``location_over_capacity``), not rejected.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from warehouse_kernel.domain.dtos import (
    ActivityAction,
    ActivityEntity,
    Actor,
    LocationInfo,
    OccupancyChange,
)
from warehouse_kernel.domain.validation import normalize_location_segment, optional_text
from warehouse_kernel.exceptions import (
    CapacityExceededError,
    DuplicateLocationPathError,
    InvalidQuantityError,
    LocationNotEmptyError,
    LocationNotFoundError,
    ProductAlreadyAssignedError,
    ProductNotFoundError,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.location import Location
from warehouse_kernel.models.product import Product
from warehouse_kernel.notifications import Events
from warehouse_kernel.services.base import WorkflowService

logger = get_logger("services.location")

_UNSET = object()


def _check_capacity_value(capacity: int | None) -> int | None:
    if capacity is None:
        return None
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 0:
        raise InvalidQuantityError(capacity, field="capacity")
    return capacity


class LocationService(WorkflowService):
    """
    Location lifecycle plus occupancy tracking.

    Guarantees:
        - ``assign_product`` moves the product and both occupancy counters in
          one atomic unit.
        - Notifications (``locationCreated``, ``locationUpdated``,
          ``locationDeleted``, ``productAssignedToLocation``,
          ``locationOccupancyUpdated``) follow the commit.
    """

    # ------------------------------------------------------------------
    # Location lifecycle
    # ------------------------------------------------------------------

    def create_location(
        self,
        zone: str,
        rack: str,
        shelf: str,
        bin: str,
        actor: Actor,
        capacity: int | None = None,
        description: str | None = None,
    ) -> LocationInfo:
        path = (
            normalize_location_segment(zone, "zone").upper(),
            normalize_location_segment(rack, "rack"),
            normalize_location_segment(shelf, "shelf"),
            normalize_location_segment(bin, "bin"),
        )
        capacity = _check_capacity_value(capacity)
        description = optional_text(description, "description", 500)

        def work() -> LocationInfo:
            self._ensure_path_free(path)
            location = Location(
                zone=path[0],
                rack=path[1],
                shelf=path[2],
                bin=path[3],
                capacity=capacity,
                current_occupancy=0,
                description=description,
                created_by_id=actor.actor_id,
            )
            self.session.add(location)
            self.session.flush()
            return LocationInfo.from_model(location)

        info = self._atomic("location_create", actor, work, full_path="-".join(path))
        logger.info(
            "location_created",
            extra={"location_id": str(info.id), "full_path": info.full_path, "capacity": capacity},
        )
        self._activity.record(
            ActivityEntity.LOCATION,
            info.id,
            ActivityAction.LOCATION_CREATED,
            actor,
            new_values={"fullPath": info.full_path, "capacity": capacity},
        )
        self._notify(Events.LOCATION_CREATED, _location_payload(info), actor)
        return info

    def update_location(
        self,
        location_id: UUID,
        actor: Actor,
        capacity: int | None | object = _UNSET,
        description: str | None | object = _UNSET,
        zone: str | None = None,
        rack: str | None = None,
        shelf: str | None = None,
        bin: str | None = None,
    ) -> LocationInfo:
        """
        Change capacity, description or path.  Pass ``capacity=None`` to
        make a location unlimited; omit an argument to leave it unchanged.

        Raises:
            CapacityExceededError: new capacity below current occupancy.
            DuplicateLocationPathError: new path collides with a live location.
        """
        if capacity is not _UNSET:
            capacity = _check_capacity_value(capacity)
        if description is not _UNSET:
            description = optional_text(description, "description", 500)

        def work() -> tuple[LocationInfo, dict]:
            location = self._lock_live_location(location_id)
            old_values = {
                "fullPath": location.full_path,
                "capacity": location.capacity,
                "description": location.description,
            }

            new_path = (
                normalize_location_segment(zone, "zone").upper() if zone is not None else location.zone,
                normalize_location_segment(rack, "rack") if rack is not None else location.rack,
                normalize_location_segment(shelf, "shelf") if shelf is not None else location.shelf,
                normalize_location_segment(bin, "bin") if bin is not None else location.bin,
            )
            if new_path != (location.zone, location.rack, location.shelf, location.bin):
                self._ensure_path_free(new_path, exclude_id=location.id)
                location.zone, location.rack, location.shelf, location.bin = new_path

            if capacity is not _UNSET:
                if capacity is not None and capacity < location.current_occupancy:
                    raise CapacityExceededError(
                        location_id=str(location.id),
                        requested=location.current_occupancy,
                        available=capacity,
                        capacity=capacity,
                    )
                location.capacity = capacity
            if description is not _UNSET:
                location.description = description

            location.updated_by_id = actor.actor_id
            self.session.flush()
            return LocationInfo.from_model(location), old_values

        info, old_values = self._atomic("location_update", actor, work, location_id=str(location_id))
        logger.info(
            "location_updated",
            extra={"location_id": str(info.id), "full_path": info.full_path, "capacity": info.capacity},
        )
        self._activity.record(
            ActivityEntity.LOCATION,
            info.id,
            ActivityAction.LOCATION_UPDATED,
            actor,
            old_values=old_values,
            new_values={
                "fullPath": info.full_path,
                "capacity": info.capacity,
                "description": info.description,
            },
        )
        self._notify(Events.LOCATION_UPDATED, _location_payload(info), actor)
        return info

    def delete_location(self, location_id: UUID, actor: Actor) -> LocationInfo:
        """
        Soft-delete an empty location.

        Raises:
            LocationNotEmptyError: non-deleted products are still stored there.
        """

        def work() -> LocationInfo:
            location = self._lock_live_location(location_id)
            stored = self.session.execute(
                select(func.count(Product.id)).where(
                    Product.location_id == location.id,
                    Product.is_deleted.is_(False),
                )
            ).scalar_one()
            if stored:
                raise LocationNotEmptyError(str(location.id), stored)
            location.mark_deleted(actor.actor_id, self._clock.now())
            self.session.flush()
            return LocationInfo.from_model(location)

        info = self._atomic("location_delete", actor, work, location_id=str(location_id))
        logger.info("location_deleted", extra={"location_id": str(info.id), "full_path": info.full_path})
        self._activity.record(
            ActivityEntity.LOCATION,
            info.id,
            ActivityAction.LOCATION_DELETED,
            actor,
            new_values={"isDeleted": True},
        )
        self._notify(Events.LOCATION_DELETED, {"locationId": str(info.id), "fullPath": info.full_path}, actor)
        return info

    # ------------------------------------------------------------------
    # Occupancy
    # ------------------------------------------------------------------

    def recalculate(self, location_id: UUID, actor: Actor) -> LocationInfo:
        """
        Set occupancy to the summed quantity of the non-deleted products at
        the location.  Over-capacity results are logged, not rejected.
        """

        def work() -> tuple[LocationInfo, int]:
            location = self._lock_live_location(location_id)
            previous = location.current_occupancy
            location.current_occupancy = self._stored_quantity(location.id)
            self.session.flush()
            return LocationInfo.from_model(location), previous

        info, previous = self._atomic("occupancy_recalculation", actor, work, location_id=str(location_id))
        if info.capacity is not None and info.current_occupancy > info.capacity:
            logger.warning(
                "location_over_capacity",
                extra={
                    "location_id": str(info.id),
                    "full_path": info.full_path,
                    "occupancy": info.current_occupancy,
                    "capacity": info.capacity,
                },
            )
        logger.info(
            "occupancy_recalculated",
            extra={
                "location_id": str(info.id),
                "previous_occupancy": previous,
                "occupancy": info.current_occupancy,
            },
        )
        self._notify(
            Events.LOCATION_OCCUPANCY_UPDATED,
            _occupancy_payload(info.id, previous, info.current_occupancy, info.capacity),
            actor,
        )
        return info

    def assign_product(self, location_id: UUID, product_id: UUID, actor: Actor) -> LocationInfo:
        """
        Move a product (its whole quantity) to ``location_id``.

        Raises:
            ProductAlreadyAssignedError: product already stored there.
            CapacityExceededError: target lacks room for the quantity.
        """

        def work() -> tuple[LocationInfo, list[OccupancyChange], UUID | None, int]:
            product = self._lock_products([product_id]).get(product_id)
            if product is None or product.is_deleted:
                raise ProductNotFoundError(str(product_id))
            if product.location_id == location_id:
                raise ProductAlreadyAssignedError(str(product_id), str(location_id))

            old_location_id = product.location_id
            locked = self._lock_locations(
                [location_id] + ([old_location_id] if old_location_id else [])
            )
            target = locked.get(location_id)
            if target is None or target.is_deleted:
                raise LocationNotFoundError(str(location_id))
            if not target.has_capacity_for(product.quantity):
                raise CapacityExceededError(
                    location_id=str(target.id),
                    requested=product.quantity,
                    available=target.available_capacity,
                    capacity=target.capacity,
                )

            changes: list[OccupancyChange] = []
            previous_source = locked.get(old_location_id) if old_location_id else None
            if previous_source is not None:
                before = previous_source.current_occupancy
                previous_source.current_occupancy = max(0, before - product.quantity)
                changes.append(
                    OccupancyChange(
                        previous_source.id, before, previous_source.current_occupancy, previous_source.capacity
                    )
                )

            before = target.current_occupancy
            target.current_occupancy = before + product.quantity
            changes.append(OccupancyChange(target.id, before, target.current_occupancy, target.capacity))

            product.location_id = target.id
            product.updated_by_id = actor.actor_id
            self.session.flush()
            return LocationInfo.from_model(target), changes, old_location_id, product.quantity

        info, changes, old_location_id, quantity = self._atomic(
            "product_assignment",
            actor,
            work,
            location_id=str(location_id),
            product_id=str(product_id),
        )
        logger.info(
            "product_assigned_to_location",
            extra={
                "product_id": str(product_id),
                "location_id": str(location_id),
                "previous_location_id": str(old_location_id) if old_location_id else None,
                "quantity": quantity,
            },
        )
        self._activity.record(
            ActivityEntity.LOCATION,
            info.id,
            ActivityAction.PRODUCT_ASSIGNED,
            actor,
            old_values={"productId": product_id, "locationId": old_location_id},
            new_values={"productId": product_id, "locationId": info.id, "quantity": quantity},
        )
        self._notify(
            Events.PRODUCT_ASSIGNED_TO_LOCATION,
            {
                "productId": str(product_id),
                "locationId": str(info.id),
                "previousLocationId": str(old_location_id) if old_location_id else None,
                "fullPath": info.full_path,
            },
            actor,
        )
        self.publish_occupancy_changes(changes, actor)
        return info

    def shift_occupancy(self, location_id: UUID, delta: int) -> OccupancyChange | None:
        """
        Add ``delta`` to a location's occupancy inside the caller's unit of
        work, flooring at zero.  Missing or deleted locations are skipped
        (returns None).  Capacity is not enforced here: stock growing in
        place is logged when it overflows.
        """
        location = self._lock_locations([location_id]).get(location_id)
        if location is None or location.is_deleted:
            logger.warning(
                "occupancy_target_missing",
                extra={"location_id": str(location_id), "delta": delta},
            )
            return None
        before = location.current_occupancy
        location.current_occupancy = max(0, before + delta)
        self.session.flush()
        change = OccupancyChange(location.id, before, location.current_occupancy, location.capacity)
        if change.over_capacity:
            logger.warning(
                "location_over_capacity",
                extra={
                    "location_id": str(location.id),
                    "full_path": location.full_path,
                    "occupancy": change.new_occupancy,
                    "capacity": change.capacity,
                },
            )
        return change

    def publish_occupancy_changes(self, changes: list[OccupancyChange], actor: Actor) -> None:
        for change in changes:
            self._notify(
                Events.LOCATION_OCCUPANCY_UPDATED,
                _occupancy_payload(
                    change.location_id,
                    change.previous_occupancy,
                    change.new_occupancy,
                    change.capacity,
                ),
                actor,
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _stored_quantity(self, location_id: UUID) -> int:
        return self.session.execute(
            select(func.coalesce(func.sum(Product.quantity), 0)).where(
                Product.location_id == location_id,
                Product.is_deleted.is_(False),
            )
        ).scalar_one()

    def _lock_locations(self, location_ids: list[UUID]) -> dict[UUID, Location]:
        ids = sorted(set(location_ids), key=str)
        rows = self.session.execute(
            select(Location)
            .where(Location.id.in_(ids))
            .order_by(Location.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars()
        return {loc.id: loc for loc in rows}

    def _lock_live_location(self, location_id: UUID) -> Location:
        location = self._lock_locations([location_id]).get(location_id)
        if location is None or location.is_deleted:
            raise LocationNotFoundError(str(location_id))
        return location

    def _ensure_path_free(self, path: tuple[str, str, str, str], exclude_id: UUID | None = None) -> None:
        query = select(Location.id).where(
            Location.zone == path[0],
            Location.rack == path[1],
            Location.shelf == path[2],
            Location.bin == path[3],
            Location.is_deleted.is_(False),
        )
        if exclude_id is not None:
            query = query.where(Location.id != exclude_id)
        if self.session.execute(query).first() is not None:
            raise DuplicateLocationPathError("-".join(path))


def _location_payload(info: LocationInfo) -> dict:
    return {
        "locationId": str(info.id),
        "fullPath": info.full_path,
        "capacity": info.capacity,
        "currentOccupancy": info.current_occupancy,
    }


def _occupancy_payload(location_id: UUID, previous: int, current: int, capacity: int | None) -> dict:
    return {
        "locationId": str(location_id),
        "previousOccupancy": previous,
        "currentOccupancy": current,
        "capacity": capacity,
    }
