"""Route planning coordinator: owns endpoint selection and the current route."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from ...data.facility_repository import FacilityCatalog
from ...models.domain import LatLng
from .adapter import RoutingEngineAdapter
from .endpoints import (
    DeviceLocation,
    RouteEndpoint,
    RouteSelection,
    check_endpoint,
    endpoint_label,
    resolve_coordinate,
    validate,
)
from .errors import PlannerError, RouteSuperseded, RoutingError, SelectionError
from .models import RouteResult

logger = logging.getLogger(__name__)


class PlannerState(str, Enum):
    IDLE = "Idle"
    PARTIALLY_SELECTED = "PartiallySelected"
    VALIDATING = "Validating"
    ROUTING = "Routing"
    ROUTED = "Routed"


@dataclass(frozen=True, slots=True)
class PlannerSnapshot:
    """Read-only view of the coordinator handed to listeners and the API."""

    state: PlannerState
    selection: RouteSelection
    result: Optional[RouteResult]
    error: Optional[PlannerError]
    device_location: Optional[LatLng]
    route_active: bool


Listener = Callable[[PlannerSnapshot], None]


class RoutePlanningCoordinator:
    def __init__(
        self,
        catalog: FacilityCatalog,
        adapter: RoutingEngineAdapter,
        *,
        auto_select_device_origin: bool = False,
    ) -> None:
        self.catalog = catalog
        self.adapter = adapter
        self.auto_select_device_origin = auto_select_device_origin
        self._selection = RouteSelection()
        self._result: Optional[RouteResult] = None
        self._state = PlannerState.IDLE
        self._last_error: Optional[PlannerError] = None
        self._device_location: Optional[LatLng] = None
        self._route_requested = False
        self._listeners: List[Listener] = []

    # ----------------
    # Queries
    # ----------------
    @property
    def state(self) -> PlannerState:
        return self._state

    @property
    def selection(self) -> RouteSelection:
        return self._selection

    @property
    def current_route(self) -> Optional[RouteResult]:
        return self._result

    @property
    def last_error(self) -> Optional[PlannerError]:
        return self._last_error

    @property
    def device_location(self) -> Optional[LatLng]:
        return self._device_location

    @property
    def route_active(self) -> bool:
        """Both endpoints chosen and a route requested, whether or not it succeeded."""
        return self._route_requested and self._selection.is_complete

    def validation_error(self) -> Optional[SelectionError]:
        outcome = validate(self._selection, self._device_location is not None)
        return SelectionError(outcome.error) if outcome.error else None

    def snapshot(self) -> PlannerSnapshot:
        return PlannerSnapshot(
            state=self._state,
            selection=self._selection,
            result=self._result,
            error=self._last_error,
            device_location=self._device_location,
            route_active=self.route_active,
        )

    def origin_label(self) -> str:
        return endpoint_label(self._selection.origin, self.catalog)

    def destination_label(self) -> str:
        return endpoint_label(self._selection.destination, self.catalog)

    # ----------------
    # Notifications
    # ----------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Planner listener {listener!r} failed")

    # ----------------
    # Commands
    # ----------------
    def set_origin(self, endpoint: Optional[RouteEndpoint]) -> None:
        if endpoint is not None:
            check_endpoint(endpoint, self.catalog, as_origin=True)
        self._update_selection(RouteSelection(origin=endpoint, destination=self._selection.destination))

    def set_destination(self, endpoint: Optional[RouteEndpoint]) -> None:
        if endpoint is not None:
            check_endpoint(endpoint, self.catalog, as_origin=False)
        self._update_selection(RouteSelection(origin=self._selection.origin, destination=endpoint))

    def _update_selection(self, selection: RouteSelection) -> None:
        if self._state in (PlannerState.ROUTING, PlannerState.ROUTED) or self.adapter.in_flight:
            self.adapter.cancel()
        self._selection = selection
        self._result = None
        self._route_requested = False
        self._last_error = None
        self._state = PlannerState.IDLE if selection.is_empty else PlannerState.PARTIALLY_SELECTED
        self._notify()

    async def create_route(self) -> Optional[RouteResult]:
        """Validate the selection and compute a route for it.

        Returns the new route, or None when a newer command superseded this
        request before it finished.

        Raises:
            SelectionError: the selection cannot be routed; state is unchanged.
            RoutingError: the engine failed; state reverts to PartiallySelected.
        """
        previous_state = self._state
        self._state = PlannerState.VALIDATING
        outcome = validate(self._selection, self._device_location is not None)
        if not outcome.ok:
            self._state = previous_state
            self._last_error = SelectionError(outcome.error)
            self._notify()
            raise self._last_error

        origin = resolve_coordinate(self._selection.origin, self.catalog, self._device_location)
        destination = resolve_coordinate(self._selection.destination, self.catalog, self._device_location)

        self._result = None
        self._last_error = None
        self._route_requested = True
        self._state = PlannerState.ROUTING
        self._notify()

        try:
            result = await self.adapter.compute_route(origin, destination)
        except RouteSuperseded as exc:
            logger.debug(f"Route request {exc.generation} superseded; leaving state untouched")
            return None
        except asyncio.CancelledError:
            # Caller gave up on a request that is still the current one.
            if self._state is PlannerState.ROUTING:
                self.adapter.cancel()
                self._state = PlannerState.PARTIALLY_SELECTED
                self._notify()
            raise
        except RoutingError as exc:
            logger.info(f"Route computation failed: {exc.kind.value}")
            self._state = PlannerState.PARTIALLY_SELECTED
            self._last_error = exc
            self._notify()
            raise

        self._result = result
        self._state = PlannerState.ROUTED
        self._notify()
        return result

    def clear_route(self) -> None:
        self.adapter.cancel()
        self._selection = RouteSelection()
        self._result = None
        self._route_requested = False
        self._last_error = None
        self._state = PlannerState.IDLE
        self._notify()

    def update_device_location(self, location: LatLng) -> None:
        """Record the live device position; checked again at create_route time."""
        first_fix = self._device_location is None
        self._device_location = (float(location[0]), float(location[1]))
        if first_fix and self.auto_select_device_origin and self._selection.origin is None:
            self._update_selection(RouteSelection(origin=DeviceLocation(), destination=self._selection.destination))
            return
        self._notify()

    def clear_device_location(self) -> None:
        self._device_location = None
        self._notify()
