"""Route planner request/response schemas."""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class DeviceLocationEndpoint(BaseModel):
    kind: Literal["device_location"] = "device_location"


class FacilityEndpoint(BaseModel):
    kind: Literal["facility"] = "facility"
    facility_id: str = Field(..., min_length=1)


EndpointModel = Annotated[Union[DeviceLocationEndpoint, FacilityEndpoint], Field(discriminator="kind")]


class EndpointRequest(BaseModel):
    endpoint: Optional[EndpointModel] = Field(
        default=None,
        description="New endpoint; null clears this side of the selection.",
    )


class DeviceLocationRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class SearchSelectionRequest(BaseModel):
    facility_id: str = Field(..., min_length=1)


class InstructionModel(BaseModel):
    maneuver: str
    text: str
    distance_meters: float


class RouteResultModel(BaseModel):
    distance_meters: float
    duration_seconds: float
    instructions: List[InstructionModel]
    geometry: List[List[float]] = Field(default_factory=list)


class PlannerErrorModel(BaseModel):
    error: str
    message: str


class PlannerStateResponse(BaseModel):
    session_id: str
    state: str
    origin: Optional[EndpointModel] = None
    destination: Optional[EndpointModel] = None
    origin_label: str = ""
    destination_label: str = ""
    route_active: bool = False
    device_location: Optional[List[float]] = None
    search_selection: Optional[str] = None
    route: Optional[RouteResultModel] = None
    error: Optional[PlannerErrorModel] = None


class SessionCreatedResponse(BaseModel):
    session_id: str
