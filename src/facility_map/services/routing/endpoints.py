"""Route endpoint variants and selection validation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ...data.facility_repository import FacilityCatalog
from ...models.domain import LatLng
from .errors import SelectionError, SelectionErrorKind

DEVICE_LOCATION_LABEL = "My Current Location"


@dataclass(frozen=True, slots=True)
class DeviceLocation:
    """The live device position, resolved only when a route is requested."""


@dataclass(frozen=True, slots=True)
class FacilityRef:
    facility_id: str


RouteEndpoint = Union[DeviceLocation, FacilityRef]


@dataclass(frozen=True, slots=True)
class RouteSelection:
    origin: Optional[RouteEndpoint] = None
    destination: Optional[RouteEndpoint] = None

    @property
    def is_empty(self) -> bool:
        return self.origin is None and self.destination is None

    @property
    def is_complete(self) -> bool:
        return self.origin is not None and self.destination is not None

    def facility_ids(self) -> tuple[str | None, str | None]:
        """Facility ids of (origin, destination); None where not a facility."""
        return (_facility_id(self.origin), _facility_id(self.destination))


@dataclass(frozen=True, slots=True)
class ValidationResult:
    error: Optional[SelectionErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise SelectionError(self.error)


def _facility_id(endpoint: Optional[RouteEndpoint]) -> str | None:
    return endpoint.facility_id if isinstance(endpoint, FacilityRef) else None


def validate(selection: RouteSelection, device_location_available: bool) -> ValidationResult:
    """Check whether a selection can be routed.

    Rules are applied in order and the first failure wins:
    both endpoints set, device location known when used as origin,
    and origin/destination not the same facility.
    """
    if not selection.is_complete:
        return ValidationResult(SelectionErrorKind.INCOMPLETE_SELECTION)
    if isinstance(selection.origin, DeviceLocation) and not device_location_available:
        return ValidationResult(SelectionErrorKind.DEVICE_LOCATION_UNAVAILABLE)
    origin_id, destination_id = selection.facility_ids()
    if origin_id is not None and origin_id == destination_id:
        return ValidationResult(SelectionErrorKind.SAME_ENDPOINT)
    return ValidationResult()


def check_endpoint(endpoint: RouteEndpoint, catalog: FacilityCatalog, *, as_origin: bool) -> None:
    """Reject endpoints that can never be valid for the given side."""
    if isinstance(endpoint, DeviceLocation):
        if not as_origin:
            raise SelectionError(
                SelectionErrorKind.INVALID_ENDPOINT,
                "The current location can only be used as the starting point.",
            )
        return
    if endpoint.facility_id not in catalog:
        raise SelectionError(
            SelectionErrorKind.INVALID_ENDPOINT,
            f"Unknown facility '{endpoint.facility_id}'.",
        )


def resolve_coordinate(
    endpoint: Optional[RouteEndpoint],
    catalog: FacilityCatalog,
    device_location: Optional[LatLng],
) -> Optional[LatLng]:
    if isinstance(endpoint, DeviceLocation):
        return device_location
    if isinstance(endpoint, FacilityRef):
        facility = catalog.get(endpoint.facility_id)
        return facility.position if facility else None
    return None


def endpoint_label(endpoint: Optional[RouteEndpoint], catalog: FacilityCatalog) -> str:
    """Display name used in the route summary panel."""
    if isinstance(endpoint, DeviceLocation):
        return DEVICE_LOCATION_LABEL
    if isinstance(endpoint, FacilityRef):
        facility = catalog.get(endpoint.facility_id)
        return facility.name if facility else ""
    return ""
