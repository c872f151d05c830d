"""Error taxonomy for route planning."""

from __future__ import annotations

from enum import Enum


class PlannerError(Exception):
    """Base class for every user-visible planner failure."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SelectionErrorKind(str, Enum):
    INCOMPLETE_SELECTION = "IncompleteSelection"
    DEVICE_LOCATION_UNAVAILABLE = "DeviceLocationUnavailable"
    SAME_ENDPOINT = "SameEndpoint"
    INVALID_ENDPOINT = "InvalidEndpoint"


SELECTION_MESSAGES = {
    SelectionErrorKind.INCOMPLETE_SELECTION: "Please select both origin and destination.",
    SelectionErrorKind.DEVICE_LOCATION_UNAVAILABLE: "Location not available. Enable GPS or choose a starting point.",
    SelectionErrorKind.SAME_ENDPOINT: "Origin and destination must be different places.",
    SelectionErrorKind.INVALID_ENDPOINT: "The selected place is not a valid route endpoint.",
}


class SelectionError(PlannerError):
    """Raised when the endpoint selection cannot be routed; recovered inline."""

    def __init__(self, kind: SelectionErrorKind, message: str | None = None) -> None:
        super().__init__(message or SELECTION_MESSAGES[kind])
        self.kind = kind


class RoutingErrorKind(str, Enum):
    NO_ROUTE_FOUND = "NoRouteFound"
    ENGINE_UNAVAILABLE = "EngineUnavailable"
    INVALID_COORDINATES = "InvalidCoordinates"


ROUTING_MESSAGES = {
    RoutingErrorKind.NO_ROUTE_FOUND: "No route could be found between the selected places.",
    RoutingErrorKind.ENGINE_UNAVAILABLE: "The routing service is currently unavailable. Please try again.",
    RoutingErrorKind.INVALID_COORDINATES: "One of the selected places has no usable coordinates.",
}


class RoutingError(PlannerError):
    """Raised when the routing engine cannot produce a route."""

    def __init__(self, kind: RoutingErrorKind, message: str | None = None) -> None:
        super().__init__(message or ROUTING_MESSAGES[kind])
        self.kind = kind


class DataError(PlannerError):
    """A malformed facility record; logged and skipped by the catalog loader."""


class RouteSuperseded(Exception):
    """A route computation was overtaken by a newer request or a cancel.

    Never shown to users: callers drop the outcome silently.
    """

    def __init__(self, generation: int) -> None:
        super().__init__(f"route request {generation} superseded")
        self.generation = generation
