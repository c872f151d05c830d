"""Per-facility marker visibility and icon decisions.

``resolve`` is a pure decision table over the current map state; the first
matching rule wins:

    search pick active   -> only the searched facility, SearchHighlight
    route active         -> only origin/destination facilities, RouteOrigin/RouteDestination
    otherwise            -> every facility, Category (Default when the category is unknown)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional

from ...models.domain import Facility, FacilityCategory, LatLng
from ..routing.endpoints import DeviceLocation, RouteSelection


class IconClass(str, Enum):
    DEFAULT = "Default"
    CATEGORY = "Category"
    SEARCH_HIGHLIGHT = "SearchHighlight"
    ROUTE_ORIGIN = "RouteOrigin"
    ROUTE_DESTINATION = "RouteDestination"
    DEVICE_LOCATION = "DeviceLocation"


@dataclass(frozen=True, slots=True)
class PresentationEntry:
    visible: bool
    icon_class: IconClass


@dataclass(frozen=True, slots=True)
class DeviceMarker:
    position: LatLng
    icon_class: IconClass


HIDDEN = PresentationEntry(visible=False, icon_class=IconClass.DEFAULT)


def _search_rule(facility: Facility, search_selection: str) -> PresentationEntry:
    if facility.id == search_selection:
        return PresentationEntry(True, IconClass.SEARCH_HIGHLIGHT)
    return HIDDEN


def _route_rule(facility: Facility, origin_id: str | None, destination_id: str | None) -> PresentationEntry:
    if facility.id == origin_id:
        return PresentationEntry(True, IconClass.ROUTE_ORIGIN)
    if facility.id == destination_id:
        return PresentationEntry(True, IconClass.ROUTE_DESTINATION)
    return HIDDEN


def _default_rule(facility: Facility) -> PresentationEntry:
    if facility.category is FacilityCategory.UNKNOWN:
        return PresentationEntry(True, IconClass.DEFAULT)
    return PresentationEntry(True, IconClass.CATEGORY)


def resolve(
    facilities: Iterable[Facility],
    search_selection: Optional[str],
    route_selection: RouteSelection,
    route_active: bool,
) -> Dict[str, PresentationEntry]:
    """Map every facility id to its PresentationEntry. Never fails."""
    origin_id, destination_id = route_selection.facility_ids()
    table: Dict[str, PresentationEntry] = {}
    for facility in facilities:
        if search_selection is not None:
            entry = _search_rule(facility, search_selection)
        elif route_active:
            entry = _route_rule(facility, origin_id, destination_id)
        else:
            entry = _default_rule(facility)
        table[facility.id] = entry
    return table


def resolve_device_marker(
    device_location: Optional[LatLng],
    route_selection: RouteSelection,
    route_active: bool,
) -> Optional[DeviceMarker]:
    """The live-location marker, shown unless a route that excludes it is active."""
    if device_location is None:
        return None
    is_origin = isinstance(route_selection.origin, DeviceLocation)
    if route_active and not is_origin:
        return None
    return DeviceMarker(
        position=device_location,
        icon_class=IconClass.ROUTE_ORIGIN if route_active and is_origin else IconClass.DEVICE_LOCATION,
    )
