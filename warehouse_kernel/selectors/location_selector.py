"""
Module: warehouse_kernel.selectors.location_selector
Responsibility: Location lookups, the zone -> rack -> shelf -> bin tree,
    products stored at a location and capacity search.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from warehouse_kernel.domain.dtos import LocationInfo, LocationTreeNode, ProductInfo
from warehouse_kernel.models.location import Location
from warehouse_kernel.models.product import Product
from warehouse_kernel.selectors.base import BaseSelector


class LocationSelector(BaseSelector[Location]):
    """Read-side queries over storage locations."""

    def get_location(self, location_id: UUID, include_deleted: bool = False) -> LocationInfo | None:
        location = self.session.get(Location, location_id)
        if location is None or (location.is_deleted and not include_deleted):
            return None
        return LocationInfo.from_model(location)

    def list_locations(
        self,
        zone: str | None = None,
        include_deleted: bool = False,
    ) -> list[LocationInfo]:
        query = self._live(select(Location), Location, include_deleted)
        if zone is not None:
            query = query.where(Location.zone == zone.strip().upper())
        query = query.order_by(Location.zone, Location.rack, Location.shelf, Location.bin)
        return [LocationInfo.from_model(loc) for loc in self.session.execute(query).scalars()]

    def with_available_capacity(self, quantity: int) -> list[LocationInfo]:
        """Live locations that could take ``quantity`` more units."""
        return [
            loc for loc in self.list_locations()
            if loc.available_capacity is None or loc.available_capacity >= quantity
        ]

    def products_at(self, location_id: UUID, include_deleted: bool = False) -> list[ProductInfo]:
        query = self._live(
            select(Product).where(Product.location_id == location_id), Product, include_deleted
        ).order_by(Product.sku)
        return [ProductInfo.from_model(p) for p in self.session.execute(query).scalars()]

    def hierarchy(self, include_deleted: bool = False) -> tuple[LocationTreeNode, ...]:
        """
        Build the zone -> rack -> shelf -> bin tree.

        Leaves carry the LocationInfo; inner nodes only a name.  Children
        are sorted by name at every level.
        """
        tree: dict = {}
        for loc in self.list_locations(include_deleted=include_deleted):
            tree.setdefault(loc.zone, {}).setdefault(loc.rack, {}).setdefault(loc.shelf, {})[
                loc.bin
            ] = loc
        return _nodes(tree)


def _nodes(level: dict) -> tuple[LocationTreeNode, ...]:
    nodes = []
    for name in sorted(level):
        child = level[name]
        if isinstance(child, LocationInfo):
            nodes.append(LocationTreeNode(name=name, location=child))
        else:
            nodes.append(LocationTreeNode(name=name, children=_nodes(child)))
    return tuple(nodes)
