"""Map session endpoints: route planning and marker presentation."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models.domain import FacilityCategory, parse_category
from ...schemas.planner import (
    DeviceLocationEndpoint,
    DeviceLocationRequest,
    EndpointModel,
    EndpointRequest,
    FacilityEndpoint,
    InstructionModel,
    PlannerErrorModel,
    PlannerStateResponse,
    RouteResultModel,
    SearchSelectionRequest,
    SessionCreatedResponse,
)
from ...services.catalog.search import filter_by_category
from ...services.presentation.map_view import build_map_view
from ...services.routing.endpoints import DeviceLocation, FacilityRef, RouteEndpoint
from ...services.routing.errors import PlannerError, RoutingError, RoutingErrorKind, SelectionError
from ...services.sessions import MapSession, SessionNotFound, SessionRegistry, get_session_registry

router = APIRouter(prefix="/sessions", tags=["sessions"])

ROUTING_STATUS = {
    RoutingErrorKind.NO_ROUTE_FOUND: status.HTTP_404_NOT_FOUND,
    RoutingErrorKind.ENGINE_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
    RoutingErrorKind.INVALID_COORDINATES: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def _endpoint_from_model(model: Optional[EndpointModel]) -> Optional[RouteEndpoint]:
    if model is None:
        return None
    if isinstance(model, FacilityEndpoint):
        return FacilityRef(model.facility_id)
    return DeviceLocation()


def _endpoint_to_model(endpoint: Optional[RouteEndpoint]) -> Optional[EndpointModel]:
    if endpoint is None:
        return None
    if isinstance(endpoint, FacilityRef):
        return FacilityEndpoint(facility_id=endpoint.facility_id)
    return DeviceLocationEndpoint()


def _error_model(error: Optional[PlannerError]) -> Optional[PlannerErrorModel]:
    if error is None:
        return None
    kind = getattr(error, "kind", None)
    return PlannerErrorModel(error=kind.value if kind else type(error).__name__, message=error.message)


def _state_response(session: MapSession) -> PlannerStateResponse:
    coordinator = session.coordinator
    snapshot = coordinator.snapshot()
    route = None
    if snapshot.result is not None:
        route = RouteResultModel(
            distance_meters=snapshot.result.distance_meters,
            duration_seconds=snapshot.result.duration_seconds,
            instructions=[
                InstructionModel(
                    maneuver=instruction.maneuver.value,
                    text=instruction.text,
                    distance_meters=instruction.distance_meters,
                )
                for instruction in snapshot.result.instructions
            ],
            geometry=[list(point) for point in snapshot.result.geometry],
        )
    return PlannerStateResponse(
        session_id=session.session_id,
        state=snapshot.state.value,
        origin=_endpoint_to_model(snapshot.selection.origin),
        destination=_endpoint_to_model(snapshot.selection.destination),
        origin_label=coordinator.origin_label(),
        destination_label=coordinator.destination_label(),
        route_active=snapshot.route_active,
        device_location=list(snapshot.device_location) if snapshot.device_location else None,
        search_selection=session.search_selection,
        route=route,
        error=_error_model(snapshot.error),
    )


def _selection_http_error(exc: SelectionError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"error": exc.kind.value, "message": exc.message},
    )


def _get_session(session_id: str, registry: SessionRegistry) -> MapSession:
    try:
        return registry.get(session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session '{session_id}' not found") from exc


@router.post("", response_model=SessionCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_session(registry: SessionRegistry = Depends(get_session_registry)) -> SessionCreatedResponse:
    try:
        session = registry.create()
    except (FileNotFoundError, ValueError) as exc:
        logging.exception(f"Error creating map session: {exc}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to create session: {str(exc)}",
        ) from exc
    return SessionCreatedResponse(session_id=session.session_id)


@router.get("/{session_id}", response_model=PlannerStateResponse, status_code=status.HTTP_200_OK)
async def get_state(session_id: str, registry: SessionRegistry = Depends(get_session_registry)) -> PlannerStateResponse:
    return _state_response(_get_session(session_id, registry))


@router.delete("/{session_id}", status_code=status.HTTP_200_OK)
async def close_session(session_id: str, registry: SessionRegistry = Depends(get_session_registry)) -> dict:
    try:
        registry.remove(session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session '{session_id}' not found") from exc
    return {"success": True, "message": f"Session {session_id} closed"}


@router.put("/{session_id}/origin", response_model=PlannerStateResponse, status_code=status.HTTP_200_OK)
async def set_origin(
    session_id: str,
    payload: EndpointRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> PlannerStateResponse:
    session = _get_session(session_id, registry)
    try:
        session.coordinator.set_origin(_endpoint_from_model(payload.endpoint))
    except SelectionError as exc:
        raise _selection_http_error(exc) from exc
    return _state_response(session)


@router.put("/{session_id}/destination", response_model=PlannerStateResponse, status_code=status.HTTP_200_OK)
async def set_destination(
    session_id: str,
    payload: EndpointRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> PlannerStateResponse:
    session = _get_session(session_id, registry)
    try:
        session.coordinator.set_destination(_endpoint_from_model(payload.endpoint))
    except SelectionError as exc:
        raise _selection_http_error(exc) from exc
    return _state_response(session)


@router.post("/{session_id}/route", response_model=PlannerStateResponse, status_code=status.HTTP_200_OK)
async def create_route(session_id: str, registry: SessionRegistry = Depends(get_session_registry)) -> PlannerStateResponse:
    session = _get_session(session_id, registry)
    try:
        await session.coordinator.create_route()
    except SelectionError as exc:
        raise _selection_http_error(exc) from exc
    except RoutingError as exc:
        raise HTTPException(
            status_code=ROUTING_STATUS[exc.kind],
            detail={"error": exc.kind.value, "message": exc.message},
        ) from exc
    return _state_response(session)


@router.delete("/{session_id}/route", response_model=PlannerStateResponse, status_code=status.HTTP_200_OK)
async def clear_route(session_id: str, registry: SessionRegistry = Depends(get_session_registry)) -> PlannerStateResponse:
    session = _get_session(session_id, registry)
    session.coordinator.clear_route()
    return _state_response(session)


@router.put("/{session_id}/device-location", response_model=PlannerStateResponse, status_code=status.HTTP_200_OK)
async def update_device_location(
    session_id: str,
    payload: DeviceLocationRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> PlannerStateResponse:
    session = _get_session(session_id, registry)
    session.coordinator.update_device_location((payload.latitude, payload.longitude))
    return _state_response(session)


@router.delete("/{session_id}/device-location", response_model=PlannerStateResponse, status_code=status.HTTP_200_OK)
async def clear_device_location(session_id: str, registry: SessionRegistry = Depends(get_session_registry)) -> PlannerStateResponse:
    session = _get_session(session_id, registry)
    session.coordinator.clear_device_location()
    return _state_response(session)


@router.put("/{session_id}/search", response_model=PlannerStateResponse, status_code=status.HTTP_200_OK)
async def select_search_result(
    session_id: str,
    payload: SearchSelectionRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> PlannerStateResponse:
    session = _get_session(session_id, registry)
    try:
        session.select_search_result(payload.facility_id)
    except SelectionError as exc:
        raise _selection_http_error(exc) from exc
    return _state_response(session)


@router.delete("/{session_id}/search", response_model=PlannerStateResponse, status_code=status.HTTP_200_OK)
async def reset_search(session_id: str, registry: SessionRegistry = Depends(get_session_registry)) -> PlannerStateResponse:
    session = _get_session(session_id, registry)
    session.reset_search()
    return _state_response(session)


@router.get("/{session_id}/map", status_code=status.HTTP_200_OK)
async def get_map_view(
    session_id: str,
    category: str | None = Query(default=None, description="Only present facilities of this category (e.g. SD, SMP, Primary)"),
    registry: SessionRegistry = Depends(get_session_registry),
) -> dict:
    session = _get_session(session_id, registry)
    selected: FacilityCategory | None = None
    if category:
        selected = parse_category(category)
        if selected is FacilityCategory.UNKNOWN:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown category '{category}'.")
    facilities = filter_by_category(session.coordinator.catalog, selected)
    return build_map_view(facilities, session.coordinator, session.search_selection)
